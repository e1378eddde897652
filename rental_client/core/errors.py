"""
Failure taxonomy shared by the API modules and the stores.

Every error raised towards the presentation layer is an ``ApiError``
subclass, so callers can render ``str(exc)`` and decide on a retry
affordance from ``exc.retryable`` without inspecting HTTP details.
"""

from __future__ import annotations


class ApiError(RuntimeError):
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class NetworkError(ApiError):
    """Transport failure, timeout or a server-side 5xx."""

    retryable = True


class AuthError(ApiError):
    pass


class ValidationError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


class ConflictError(ApiError):
    """A conversation for the same property and partner already exists."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
        existing_conversation_id: str | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code, detail=detail)
        self.existing_conversation_id = existing_conversation_id


class SendFailed(ApiError):
    """A thread send that was rolled back; ``content`` goes back to the composer."""

    def __init__(self, content: str, cause: ApiError) -> None:
        super().__init__(
            f"Failed to send message: {cause}",
            status_code=cause.status_code,
            detail=cause.detail,
        )
        self.content = content
        self.cause = cause

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.cause.retryable
