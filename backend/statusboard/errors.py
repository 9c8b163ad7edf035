"""Error taxonomy for the incident write path.

Every error carries the HTTP status it maps to and the client-facing detail.
Details never contain store- or transport-specific text.
"""

from typing import Any


class IncidentError(Exception):
    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def detail(self) -> Any:
        return self.message


class UnauthorizedError(IncidentError):
    status_code = 401
    message = "Unauthorized"


class TenantNotFoundError(IncidentError):
    """Entity missing or owned by another organization. Both look the same to the caller."""
    status_code = 404
    message = "Not found"


class IncidentValidationError(IncidentError):
    status_code = 400
    message = "Invalid data"

    def __init__(self, violations: list[dict]):
        super().__init__()
        self.violations = violations

    @property
    def detail(self) -> Any:
        return {"message": self.message, "violations": self.violations}


class ServiceReferenceError(IncidentError):
    status_code = 400
    message = "One or more services not found"


class IncidentWriteError(IncidentError):
    """Transaction aborted: constraint violation or store unavailable."""
    status_code = 500


class NotifyError(IncidentError):
    """Publish attempt failed. Never reaches the caller."""
    status_code = 500
