"""Error types raised by the ingestion pipeline."""

from typing import Any, Dict, Optional


class QuantaraError(Exception):
    """Base error carrying an error code and the HTTP status it maps to."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ValidationError(QuantaraError):
    """The request cannot be processed; nothing was persisted."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Validation error on {field}: {message}",
            code="VALIDATION_ERROR",
            status_code=400,
            details={"field": field},
        )


class StorageError(QuantaraError):
    """The datastore rejected the unit of work; it was rolled back."""

    def __init__(self, operation: str):
        super().__init__(
            message="Storage failure, no changes were saved",
            code="STORAGE_ERROR",
            status_code=500,
            details={"operation": operation},
        )
