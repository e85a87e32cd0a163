from __future__ import annotations

from typing import Optional


class EstateDocsError(Exception):
    """Base class for every error raised by estate_docs."""


class BackOfficeError(EstateDocsError):
    """A back-office call failed: transport error, timeout, bad status or bad payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (status {self.status_code})"
        return self.message


class UploadValidationError(EstateDocsError):
    """Upload rejected before any network call was made."""

    def __init__(self, missing: list[str] | None = None, message: str | None = None):
        self.missing = list(missing or [])
        if message is None:
            message = "Please fill in all required fields and select a file"
            if self.missing:
                message += f" (missing: {', '.join(self.missing)})"
        super().__init__(message)


class MutationError(EstateDocsError):
    """A create/update/delete did not go through; the cache was left untouched."""

    def __init__(self, action: str, message: str):
        super().__init__(message)
        self.action = action
