"""
Custom exceptions for LedgerMap.

Provides a hierarchy of exceptions with error codes for consistent error handling.
"""
from typing import Any, Dict, Optional


class LedgerMapError(Exception):
    """
    Base exception for all LedgerMap errors.

    Attributes:
        error_code: Unique error code (e.g., LMP-001)
        message: Human-readable error message
        details: Additional error context
    """
    error_code: str = "LMP-000"
    http_status: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# Period Errors (LMP-1XX)
class PeriodNotFoundError(LedgerMapError):
    """Financial period not found."""
    error_code = "LMP-100"
    http_status = 404

    def __init__(self, period_id: Optional[int] = None, **kwargs):
        if period_id is None:
            message = "No financial period found"
        else:
            message = f"Financial period {period_id} not found"
        super().__init__(message, details={"period_id": period_id}, **kwargs)


# Taxonomy Errors (LMP-2XX)
class TaxonomyError(LedgerMapError):
    """Error while loading or querying the taxonomy."""
    error_code = "LMP-200"
    http_status = 500

    def __init__(self, message: str = "Failed to load taxonomy", **kwargs):
        super().__init__(message, **kwargs)


class TaxonomyItemNotFoundError(LedgerMapError):
    """Taxonomy item not found."""
    error_code = "LMP-201"
    http_status = 404

    def __init__(self, item_id: int, **kwargs):
        message = f"Taxonomy item {item_id} not found"
        super().__init__(message, details={"taxonomy_item_id": item_id}, **kwargs)


# Mapping Errors (LMP-3XX)
class MappingError(LedgerMapError):
    """Error during mapping."""
    error_code = "LMP-300"
    http_status = 400

    def __init__(self, message: str = "Failed to create mapping", **kwargs):
        super().__init__(message, **kwargs)


class DuplicateMappingError(MappingError):
    """A mapping already exists for the ledger name in this period."""
    error_code = "LMP-301"
    http_status = 409

    def __init__(self, ledger_name: str, period_id: int, **kwargs):
        message = f"Ledger '{ledger_name}' is already mapped for period {period_id}"
        super().__init__(
            message,
            details={"ledger_name": ledger_name, "period_id": period_id},
            **kwargs,
        )


class MappingNotFoundError(LedgerMapError):
    """Mapping not found."""
    error_code = "LMP-302"
    http_status = 404

    def __init__(self, mapping_id: int, **kwargs):
        message = f"Mapping {mapping_id} not found"
        super().__init__(message, details={"mapping_id": mapping_id}, **kwargs)


# Validation Errors (LMP-7XX)
class ValidationError(LedgerMapError):
    """Input validation failed."""
    error_code = "LMP-700"
    http_status = 400

    def __init__(self, message: str = "Validation failed", errors: Optional[list] = None, **kwargs):
        details = kwargs.pop("details", {})
        details["errors"] = errors or []
        super().__init__(message, details=details, **kwargs)


# Database Errors (LMP-8XX)
class DatabaseError(LedgerMapError):
    """Database operation failed."""
    error_code = "LMP-800"
    http_status = 500

    def __init__(self, message: str = "Database operation failed", **kwargs):
        super().__init__(message, **kwargs)
