"""Business errors raised by the time tracking services.

Every error carries a stable machine-checkable ``kind`` and a human readable
message. The API layer turns them into ``{"detail": ..., "kind": ...}`` JSON
responses using ``status_code``.
"""
from fastapi import status


class TrackingError(Exception):
    kind = "TrackingError"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "kind": self.kind}


class NotFound(TrackingError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(TrackingError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class NotOwner(Forbidden):
    kind = "NotOwner"


class Conflict(TrackingError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class TimerAlreadyActive(Conflict):
    """The caller already has a running timer."""
    status_code = status.HTTP_400_BAD_REQUEST


class TimerTaskMissing(NotFound):
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransition(TrackingError):
    kind = "InvalidTransition"


class InvalidRange(TrackingError):
    kind = "InvalidRange"


class FutureDate(TrackingError):
    kind = "FutureDate"


class CapExceeded(TrackingError):
    kind = "CapExceeded"


class MissingReason(TrackingError):
    kind = "MissingReason"


class Immutable(TrackingError):
    kind = "Immutable"


class NotEditable(TrackingError):
    kind = "NotEditable"
