# app/errors.py
"""
Error taxonomy for the rental engine.
Services raise these; app.main turns them into JSON responses.
"""

from typing import Optional


class RentalError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"detail": self.detail, "error": type(self).__name__}


class ValidationError(RentalError):
    """Missing or malformed request fields. Raised before any state change."""
    status_code = 422


class ConflictError(RentalError):
    """Requested range overlaps a booking or maintenance buffer."""
    status_code = 409

    def __init__(self, detail: str, conflicts: list):
        super().__init__(detail)
        self.conflicts = conflicts

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflicts"] = [c.to_dict() for c in self.conflicts]
        return data


class PreconditionError(RentalError):
    """A lifecycle guard was not met (payment, release data, status...)."""
    status_code = 400

    def __init__(self, detail: str, guard: Optional[str] = None):
        super().__init__(detail)
        self.guard = guard

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.guard:
            data["guard"] = self.guard
        return data


class NotFoundError(RentalError):
    status_code = 404


class ExternalDispatchError(RentalError):
    """Notification channel failure. Never propagated past the notifier."""
    status_code = 502

    def __init__(self, channel: str, detail: str):
        super().__init__(detail)
        self.channel = channel
