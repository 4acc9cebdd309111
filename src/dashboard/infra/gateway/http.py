from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

import httpx

from src.dashboard.config import settings
from src.dashboard.domain.models.session import Session
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway


logger = logging.getLogger("gateway")


@dataclass
class GatewayConfig:
    """Connection settings for the hosted backend.

    The backend exposes PostgREST-style table and RPC endpoints under
    ``/rest/v1``, edge functions under ``/functions/v1`` and the auth API under
    ``/auth/v1``.
    """

    url: str
    anon_key: Optional[str]
    timeout_seconds: float

    @classmethod
    def from_settings(cls) -> "GatewayConfig":
        return cls(
            url=settings.gateway_url.rstrip("/"),
            anon_key=settings.gateway_anon_key,
            timeout_seconds=settings.gateway_timeout_seconds,
        )


class HttpGateway(RemoteDataGateway):
    """Remote data gateway speaking the hosted backend's HTTP API."""

    def __init__(self, config: GatewayConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self._config = config
        headers: Dict[str, str] = {}
        if config.anon_key:
            headers["apikey"] = config.anon_key
        self._client = httpx.AsyncClient(
            base_url=config.url,
            headers=headers,
            timeout=config.timeout_seconds,
            transport=transport,
        )

    def _auth_headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        access_token: str,
        json: Any = None,
        params: Optional[Mapping[str, str]] = None,
        extra_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        headers = self._auth_headers(access_token)
        if extra_headers:
            headers.update(extra_headers)

        try:
            response = await self._client.request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Gateway %s %s failed: %s", method, operation, exc)
            raise GatewayError(f"Gateway request failed: {exc}", operation=operation) from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.error(
                "Gateway %s %s failed with status %s: %s",
                method,
                operation,
                response.status_code,
                message,
            )
            raise GatewayError(message, status_code=response.status_code, operation=operation)

        if response.status_code == 204 or not response.content:
            return None

        try:
            return response.json()
        except ValueError as exc:
            logger.error("Gateway %s returned non-JSON response", operation)
            raise GatewayError(
                "Gateway returned a non-JSON response",
                status_code=response.status_code,
                operation=operation,
            ) from exc

    async def invoke(self, function_name: str, body: Optional[Mapping[str, Any]] = None, *, session: Session) -> Any:
        return await self._request(
            "POST",
            f"/functions/v1/{function_name}",
            operation=function_name,
            access_token=session.access_token,
            json=dict(body or {}),
        )

    async def rpc(self, procedure: str, params: Mapping[str, Any], *, session: Session) -> Any:
        return await self._request(
            "POST",
            f"/rest/v1/rpc/{procedure}",
            operation=procedure,
            access_token=session.access_token,
            json=dict(params),
        )

    async def select(
        self,
        table: str,
        *,
        session: Session,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        query: Dict[str, str] = {"select": "*"}
        for column, value in (filters or {}).items():
            query[column] = f"eq.{value}"
        if order_by:
            query["order"] = f"{order_by}.{'desc' if descending else 'asc'}"

        data = await self._request(
            "GET",
            f"/rest/v1/{table}",
            operation=f"select:{table}",
            access_token=session.access_token,
            params=query,
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise GatewayError("Expected a list of rows", operation=f"select:{table}")
        return data

    async def insert(self, table: str, row: Mapping[str, Any], *, session: Session) -> Dict[str, Any]:
        data = await self._request(
            "POST",
            f"/rest/v1/{table}",
            operation=f"insert:{table}",
            access_token=session.access_token,
            json=dict(row),
            extra_headers={"Prefer": "return=representation"},
        )
        # PostgREST returns the inserted rows as a list.
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict):
            return data
        raise GatewayError("Insert did not return the stored row", operation=f"insert:{table}")

    async def get_user(self, access_token: str) -> Session:
        data = await self._request(
            "GET",
            "/auth/v1/user",
            operation="auth:user",
            access_token=access_token,
        )
        if not isinstance(data, dict) or not data.get("id"):
            raise GatewayError("Auth endpoint did not return a user", operation="auth:user")

        expires_at: Optional[datetime] = None
        if data.get("expires_at"):
            try:
                expires_at = datetime.fromtimestamp(int(data["expires_at"]), tz=timezone.utc)
            except (TypeError, ValueError, OverflowError, OSError) as exc:
                logger.error("Auth endpoint returned an invalid expires_at: %r", data["expires_at"])
                raise GatewayError("Auth endpoint returned an invalid expiry", operation="auth:user") from exc

        return Session(
            user_id=str(data["id"]),
            access_token=access_token,
            email=data.get("email") or None,
            expires_at=expires_at,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "error", "msg", "error_description"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"
