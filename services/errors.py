"""Error taxonomy shared by services and routes, plus the public error body helper.

Every error the request path can raise derives from :class:`IntranetError` and
carries the status code and the message the caller is allowed to see. Upstream
detail goes to the log, never into ``public_message``.
"""
from __future__ import annotations

from typing import Dict, Iterable, Optional


class IntranetError(Exception):
    status_code: int = 500
    public_message: str = "Internal server error."

    def __init__(self, detail: Optional[str] = None, *, public_message: Optional[str] = None):
        super().__init__(detail or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class InvalidInput(IntranetError):
    status_code = 400
    public_message = "Invalid request."


class InvalidCredential(IntranetError):
    status_code = 401
    public_message = "Invalid email or password."


class NotFound(IntranetError):
    status_code = 404
    public_message = "Resource not found."


class CategoryNotFound(NotFound):
    status_code = 400

    def __init__(self, category: str):
        super().__init__(
            f"unknown category {category!r}",
            public_message=f"Unknown category: {category}",
        )
        self.category = category


class ResourceNotFound(NotFound):
    pass


class UpstreamUnavailable(IntranetError):
    status_code = 500
    public_message = "Upstream service unavailable."


class Conflict(IntranetError):
    status_code = 409
    public_message = "A file with that name already exists."


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is absent or invalid."""

    def __init__(self, message: str, missing: Iterable[str] = ()):
        super().__init__(message)
        self.missing = sorted(missing)


def error_payload(message: str) -> Dict[str, str]:
    """Return the error body every non-2xx response carries."""
    return {"message": message}
