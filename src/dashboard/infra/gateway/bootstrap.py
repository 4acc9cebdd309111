from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from src.dashboard.config import settings
from src.dashboard.domain.models.session import Session
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.infra.gateway.http import GatewayConfig, HttpGateway
from src.dashboard.infra.gateway.inmemory import InMemoryGateway


logger = logging.getLogger("gateway")

_gateway_lock: Lock = Lock()
_gateway_instance: Optional[RemoteDataGateway] = None


def build_gateway(backend: Optional[str] = None) -> RemoteDataGateway:
    """Instantiate the gateway selected by GATEWAY_BACKEND."""

    backend = (backend or settings.gateway_backend).lower()
    if backend == "http":
        return HttpGateway(GatewayConfig.from_settings())
    if backend == "memory":
        return InMemoryGateway()
    raise ValueError(f"Unknown gateway backend: {backend!r}")


def get_gateway() -> RemoteDataGateway:
    """Return the process-wide gateway, creating it on first use.

    Also usable as a FastAPI dependency.
    """

    global _gateway_instance
    if _gateway_instance is not None:
        return _gateway_instance

    with _gateway_lock:
        if _gateway_instance is None:
            _gateway_instance = build_gateway()
    return _gateway_instance


def set_gateway(gateway: Optional[RemoteDataGateway]) -> None:
    """Replace the process-wide gateway (``None`` resets to lazy creation)."""

    global _gateway_instance
    with _gateway_lock:
        _gateway_instance = gateway


def service_session() -> Session:
    """Session used for deployment-level calls such as provisioning."""

    token = settings.gateway_service_key or settings.gateway_anon_key or "service"
    return Session(user_id="service", access_token=token)


async def provision_remote_tables(gateway: RemoteDataGateway, session: Optional[Session] = None) -> bool:
    """Best-effort, one-time provisioning of the patient notes table.

    Runs at application startup instead of before every read. Failures are
    logged and swallowed; the return value only reports whether the remote
    function acknowledged success.
    """

    session = session or service_session()
    try:
        result = await gateway.invoke(settings.notes_provision_function, session=session)
    except GatewayError as exc:
        logger.warning("Notes table provisioning failed (table may already exist): %s", exc.message)
        return False

    if isinstance(result, dict) and result.get("success"):
        logger.info("Notes table provisioning completed: %s", result.get("message"))
        return True

    logger.warning("Notes table provisioning returned an unexpected result: %r", result)
    return False
