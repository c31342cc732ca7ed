"""
Custom exceptions for the silver-layer pipeline.
Provides specific error types for the failure classes the loaders distinguish.
"""

from typing import Optional, Dict, Any


class ETLError(Exception):
    """Base exception for all ETL errors."""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(ETLError):
    """Malformed input or configuration that makes a single load impossible."""

    def __init__(
        self,
        message: str,
        validation_type: Optional[str] = None,
        table_name: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if validation_type:
            details["validation_type"] = validation_type
        if table_name:
            details["table_name"] = table_name
        super().__init__(message, details=details, **kwargs)


class WatermarkNotFoundError(ValidationError):
    """Raised when a watermark is read for a table that was never registered."""

    def __init__(self, table_name: str, **kwargs):
        super().__init__(
            f"No watermark registered for '{table_name}'",
            validation_type="watermark",
            table_name=table_name,
            **kwargs
        )


class TransientStorageError(ETLError):
    """Connectivity loss or transaction conflict. Not retried here."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if table_name:
            details["table_name"] = table_name
        super().__init__(message, details=details, **kwargs)


class InvariantViolation(ETLError):
    """A guaranteed property of the silver layer does not hold. Always fatal."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        offending_keys: Optional[list] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if table_name:
            details["table_name"] = table_name
        if offending_keys:
            details["offending_keys"] = offending_keys[:10]
        super().__init__(message, details=details, **kwargs)


class SilverTransformError(ETLError):
    """Exception raised when the hardcoded silver path aborts a batch."""

    def __init__(
        self,
        message: str,
        table_name: Optional[str] = None,
        batch_id: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if table_name:
            details["table_name"] = table_name
        if batch_id is not None:
            details["batch_id"] = batch_id
        super().__init__(message, details=details, **kwargs)
