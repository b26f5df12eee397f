# repario/errors.py
"""
Errors raised by the service layer and routers.

Each error carries the HTTP status it maps to and an optional payload that is
merged into the JSON body next to the `error` message, e.g. the conflict
details a caller needs to resolve a blocked layout deletion.
"""

from typing import Any, Dict


class ReparioError(Exception):
    status_code = 500

    def __init__(self, error: str, **payload: Any) -> None:
        super().__init__(error)
        self.error = error
        self.payload: Dict[str, Any] = payload

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, **self.payload}


class ValidationFailed(ReparioError):
    status_code = 400


class AuthenticationFailed(ReparioError):
    status_code = 401


class PermissionDenied(ReparioError):
    status_code = 403


class NotFound(ReparioError):
    status_code = 404


class Conflict(ReparioError):
    status_code = 409
