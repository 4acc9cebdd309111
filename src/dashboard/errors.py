from __future__ import annotations

from typing import Any, Dict, Optional


class DashboardError(Exception):
    """Base exception for dashboard failures surfaced to callers."""

    code = "DASHBOARD_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class UnauthenticatedError(DashboardError):
    """Raised when a module is built or invoked without a valid session."""

    code = "UNAUTHENTICATED"


class GatewayError(DashboardError):
    """A call to the remote data gateway failed.

    ``status_code`` is the HTTP status returned by the gateway, or ``None``
    when the request never produced a response (connection errors, timeouts).
    """

    code = "GATEWAY_ERROR"

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        operation: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if status_code is not None:
            details["status_code"] = status_code
        if operation is not None:
            details["operation"] = operation
        super().__init__(message, details)
        self.status_code = status_code
        self.operation = operation
