from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from src.dashboard.domain.models.session import Session


class RemoteDataGateway(ABC):
    """Boundary to the hosted backend-as-a-service.

    Every data call takes the caller's :class:`Session` explicitly. Failures
    are raised as :class:`~src.dashboard.errors.GatewayError`.
    """

    @abstractmethod
    async def invoke(self, function_name: str, body: Optional[Mapping[str, Any]] = None, *, session: Session) -> Any:
        """Invoke a remote function and return its decoded JSON response."""
        raise NotImplementedError

    @abstractmethod
    async def rpc(self, procedure: str, params: Mapping[str, Any], *, session: Session) -> Any:
        """Call a named remote procedure and return its decoded result."""
        raise NotImplementedError

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        session: Session,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """Return rows of ``table`` matching all equality ``filters``."""
        raise NotImplementedError

    @abstractmethod
    async def insert(self, table: str, row: Mapping[str, Any], *, session: Session) -> Dict[str, Any]:
        """Insert one row and return it as stored (with gateway-assigned fields)."""
        raise NotImplementedError

    @abstractmethod
    async def get_user(self, access_token: str) -> Session:
        """Resolve an access token into a session."""
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
