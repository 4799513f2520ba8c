"""
Error taxonomy shared by the stores, services and HTTP layer.

Every error carries a human-readable message; the API turns it into
``{"error": message, **extra}`` with the class's status code.
"""

from __future__ import annotations

from typing import Any, Dict


class FocusFlowError(Exception):
    status_code = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra: Dict[str, Any] = extra


class Unauthorized(FocusFlowError):
    status_code = 401


class Forbidden(FocusFlowError):
    status_code = 403


class NotFound(FocusFlowError):
    status_code = 404


class ValidationError(FocusFlowError):
    status_code = 400


class InvalidState(FocusFlowError):
    status_code = 400


class BreakLocked(InvalidState):
    """Break mode exists for the session but the unlock delay has not passed."""

    def __init__(self, unlock_in_seconds: int):
        super().__init__(
            "Breaks unlock after the first 60 minutes of a session.",
            unlockInSeconds=unlock_in_seconds,
        )
        self.unlock_in_seconds = unlock_in_seconds


class UpstreamFailure(FocusFlowError):
    status_code = 502
