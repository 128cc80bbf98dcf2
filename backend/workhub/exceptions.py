"""Domain exceptions.

Services raise these instead of HTTP errors; ``workhub.main`` maps each one
to a status code and a ``{"detail", "code"}`` body.
"""

from typing import Any


class WorkhubError(Exception):
    """Base exception for domain errors."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "WORKHUB_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(WorkhubError):
    """A referenced entity does not exist."""

    status_code = 404

    def __init__(self, resource: str, resource_id: Any | None = None):
        self.resource = resource
        self.resource_id = resource_id
        if resource_id is None:
            message = f"{resource} not found"
        else:
            message = f"{resource} {resource_id} not found"
        super().__init__(message=message, code="NOT_FOUND")


class ValidationError(WorkhubError):
    """Input is well-formed JSON but violates a domain rule."""

    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message=message, code="VALIDATION_ERROR")


class PermissionDeniedError(WorkhubError):
    """The permission evaluator refused the action."""

    status_code = 403

    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message=message, code="PERMISSION_DENIED")


class AuthenticationError(WorkhubError):
    """Missing or invalid credentials."""

    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message=message, code="NOT_AUTHENTICATED")
