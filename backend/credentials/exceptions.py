"""Error taxonomy for invoicing, approval, allocation and issuance.

Services raise these; views turn them into responses and batch operations
fold them into a BatchResult entry instead of aborting.
"""
from __future__ import annotations

__all__ = [
    "CredentialError",
    "ValidationError",
    "CollisionExhausted",
    "StateConflict",
    "RenderingFailure",
    "NotFound",
]


class CredentialError(Exception):
    code = "error"

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def as_dict(self) -> dict:
        data = {"code": self.code, "detail": self.message}
        if self.context:
            data["context"] = self.context
        return data


class ValidationError(CredentialError):
    """A precondition is not met (invoice unpaid, student not approved, ...)."""

    code = "validation_error"


class CollisionExhausted(CredentialError):
    """No free number or token was found within the retry budget."""

    code = "collision_exhausted"


class StateConflict(CredentialError):
    """The record was not in the expected prior state; nothing was written."""

    code = "state_conflict"


class RenderingFailure(CredentialError):
    code = "rendering_failure"


class NotFound(CredentialError):
    code = "not_found"
