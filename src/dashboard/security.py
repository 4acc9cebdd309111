from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.dashboard.config import settings
from src.dashboard.domain.models.session import Session
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.infra.gateway.bootstrap import get_gateway

logger = logging.getLogger("security")

# The access token issued by the hosted backend's auth API is expected as a
# bearer token when ENABLE_API_AUTH is true.
_bearer = HTTPBearer(auto_error=False)

ANONYMOUS_USER_ID = "anonymous"


def anonymous_session() -> Session:
    """Development session used when API authentication is disabled."""

    return Session(user_id=ANONYMOUS_USER_ID, access_token="anonymous", email="anonymous@example.com")


async def get_session(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> Session:
    """FastAPI dependency resolving the caller's session.

    - If ENABLE_API_AUTH is false (default for development/tests), every
      caller shares a synthesized anonymous session.
    - If ENABLE_API_AUTH is true, a bearer token must be supplied and the
      gateway's auth API must accept it.
    """

    if not settings.enable_api_auth:
        return anonymous_session()

    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        session = await gateway.get_user(credentials.credentials)
    except GatewayError as exc:
        logger.info("Rejected access token: %s", exc.message)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired access token.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    if not session.is_valid():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired access token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session
