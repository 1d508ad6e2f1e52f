"""
Error taxonomy shared by the request pipeline and the company service.

Each error carries the HTTP status it maps to; the API layer turns them into
responses in one exception handler.
"""
from typing import Any, Dict, List


class CompanyRegistryError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    detail: str = "Internal server error"

    def to_content(self) -> Dict[str, Any]:
        return {"detail": self.detail}


class FieldValidationError(ValueError):
    """A single company field failed validation."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationError(CompanyRegistryError):
    status_code = 400
    detail = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = errors

    def to_content(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class NotFoundError(CompanyRegistryError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.detail = f"{entity} not found"


class AccessDeniedError(CompanyRegistryError):
    status_code = 403
    detail = "Access denied"


class UpstreamError(CompanyRegistryError):
    """Storage or geolocation backend failure. Details stay in the logs."""

    status_code = 500


class DeadlineExceededError(UpstreamError):
    status_code = 504
    detail = "Request timed out"


class ShuttingDownError(CompanyRegistryError):
    status_code = 503
    detail = "Service is shutting down"


class ShutdownTimeoutError(RuntimeError):
    """In-flight requests did not drain within the shutdown bound."""
