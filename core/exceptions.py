"""
Helper error hierarchy.

Every error here is raised before a single command runs. Failures of the
commands themselves are never raised; they are recorded in the transcript.
"""

from typing import Optional


class HelperError(Exception):
    """Base class for errors surfaced to helper callers."""

    code: str = "helper_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message}


class AuthFailure(HelperError):
    """Credential rejected: malformed, wrong algorithm, bad signature or binding."""

    code = "unauthorized"

    def __init__(self, reason: str):
        super().__init__(f"Invalid token: {reason}")
        self.reason = reason


class TokenExpired(HelperError):
    """Credential was valid but its expiry has passed."""

    code = "token_expired"

    def __init__(self, exp: Optional[int] = None, now: Optional[int] = None):
        super().__init__("Token expired")
        self.exp = exp
        self.now = now


class ActionNotFound(HelperError):
    code = "action_not_found"

    def __init__(self, action_id: str):
        super().__init__(f"Action '{action_id}' not allowlisted")
        self.action_id = action_id


class NotReversible(HelperError):
    code = "not_reversible"

    def __init__(self, action_id: str):
        super().__init__(f"Action '{action_id}' is not reversible")
        self.action_id = action_id


class PlatformMismatch(HelperError):
    code = "platform_mismatch"

    def __init__(self, action_id: str, action_os: str, host_os: str):
        super().__init__(f"Action '{action_id}' targets {action_os}, not compatible with {host_os}")
        self.action_id = action_id
        self.action_os = action_os
        self.host_os = host_os


class CatalogError(HelperError):
    """Malformed catalog. Only raised while building it at startup."""

    code = "catalog_error"
