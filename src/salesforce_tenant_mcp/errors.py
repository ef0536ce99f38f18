"""Error types raised by the session manager and Salesforce API layer."""

from __future__ import annotations

from typing import Any


class SalesforceError(Exception):
    """Base class for all errors raised by this package."""


class TransportError(SalesforceError):
    """Network level failure talking to Salesforce (DNS, connect, timeout).

    The original exception is kept in ``cause`` and chained as ``__cause__``.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class AuthenticationError(SalesforceError):
    """OAuth exchange rejected, or a session could not be (re)established."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        super().__init__(message)
        self.error_code = error_code


class ApiError(SalesforceError):
    """Salesforce answered a data call with a non-2xx status.

    Attributes:
        status: HTTP status code (0 when the failure was detected locally)
        error_code: Salesforce ``errorCode`` such as ``INVALID_SESSION_ID``
        message: Human readable message from Salesforce
    """

    def __init__(self, status: int, error_code: str, message: str) -> None:
        super().__init__(f"{error_code}: {message}" if message else error_code)
        self.status = status
        self.error_code = error_code
        self.message = message

    @classmethod
    def from_response(cls, status: int, body: Any) -> "ApiError":
        """Build an ApiError from a Salesforce error payload.

        Salesforce REST errors come back as a list of
        ``{"errorCode": ..., "message": ...}`` objects; only the first one
        is kept. Anything else is stringified into the message.
        """
        if isinstance(body, list) and body and isinstance(body[0], dict):
            first = body[0]
            return cls(
                status,
                str(first.get("errorCode", f"HTTP_{status}")),
                str(first.get("message", "")),
            )
        if isinstance(body, dict) and "errorCode" in body:
            return cls(status, str(body["errorCode"]), str(body.get("message", "")))
        return cls(status, f"HTTP_{status}", "" if body is None else str(body))

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used in tool responses."""
        return {
            "status": self.status,
            "errorCode": self.error_code,
            "message": self.message,
        }


class NotRegisteredError(SalesforceError):
    """No session is stored for the requested tenant."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(
            f"Salesforce session not initialized for tenant {tenant_id!r}. "
            "Register the tenant first."
        )
        self.tenant_id = tenant_id


class ManagerClosedError(SalesforceError):
    """The session manager was closed before the call could store a session."""

    def __init__(self, tenant_id: str) -> None:
        super().__init__(f"Session manager is closed; tenant {tenant_id!r} not stored")
        self.tenant_id = tenant_id
