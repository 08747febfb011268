"""
Shared error handling for the Storefront Catalog service.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class CatalogException(Exception):
    """Base exception for catalog services."""

    status_code: int = 400

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class ValidationError(CatalogException):
    """Validation-related errors."""

    status_code = 400

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class NotFoundError(CatalogException):
    """Requested resource does not exist or is not publicly visible."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any, details: Optional[Dict[str, Any]] = None):
        merged = {"resource": resource, "identifier": identifier}
        merged.update(details or {})
        super().__init__("NOT_FOUND", f"{resource} not found: {identifier}", merged)


class ConflictError(CatalogException):
    """Write rejected because it conflicts with existing data."""

    status_code = 409

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFLICT", message, details)


class DataSourceError(CatalogException):
    """Underlying data source is unavailable."""

    status_code = 503

    def __init__(self, message: str = "Data source unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("DATA_SOURCE_ERROR", message, details)


class CacheConfigurationError(CatalogException):
    """Cache registry declared with an invalid region set or policy."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_CONFIGURATION_ERROR", message, details)


class UnknownCacheRegionError(CatalogException):
    """A caller addressed a cache region outside the declared set."""

    status_code = 500

    def __init__(self, region: Any):
        super().__init__(
            "UNKNOWN_CACHE_REGION",
            f"Unknown cache region: {region!r}",
            {"region": str(region)},
        )


class CacheKeyError(CatalogException):
    """A caller used a key outside a region's fixed key set."""

    status_code = 500

    def __init__(self, region: str, key: Any):
        super().__init__(
            "CACHE_KEY_ERROR",
            f"Key {key!r} is not a fixed key of cache region {region!r}",
            {"region": region, "key": str(key)},
        )
