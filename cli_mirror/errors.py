"""
Error kinds raised by the Glass client.

Every error carries a human readable message and, where the remote side
sent one, the structured error detail as returned by the API.
"""

from typing import Any, Optional


class GlassError(Exception):
    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ValidationError(GlassError):
    """Bad coordinates/zoom or a malformed JSON body."""


class NotFoundError(GlassError):
    """Unknown timeline entry or missing local file."""


class AuthError(GlassError):
    """App config problems, failed code exchange or token refresh."""


class TransportError(GlassError):
    """Network failure talking to Google."""


class ApiError(GlassError):
    """Non-2xx answer from the Mirror API (other than 404)."""

    def __init__(self, message: str, status_code: int, detail: Optional[Any] = None):
        super().__init__(message, detail)
        self.status_code = status_code


class PartialFailure(GlassError):
    """
    The entry was written but attaching media to it failed.
    The entry is NOT rolled back; entry_id is already persisted remotely.
    """

    def __init__(self, entry: dict, cause: GlassError):
        self.entry = entry
        self.entry_id = entry.get("id")
        self.cause = cause
        super().__init__(
            f"Timeline entry {self.entry_id} saved but attachment failed: {cause.message}",
            cause.detail,
        )


class BatchDeleteError(GlassError):
    """Delete-all stopped at the first failing entry."""

    def __init__(self, deleted: int, entry_id: str, cause: GlassError):
        self.deleted = deleted
        self.entry_id = entry_id
        self.cause = cause
        super().__init__(
            f"Deleting timeline entry {entry_id} failed after {deleted} "
            f"deleted: {cause.message}",
            cause.detail,
        )
