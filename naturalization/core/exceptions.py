"""Custom exceptions for domain-specific errors"""

from typing import Any, Dict, Optional


class DomainException(Exception):
    """Base exception for all domain errors"""

    code = "domain_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# Data errors. Core operations report these as diagnostics instead of raising.
class DateParseError(DomainException):
    """Raised when date text matches none of the accepted formats"""

    code = "parse_error"

    def __init__(
        self,
        text: Optional[str],
        formats: tuple,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.text = text
        self.formats = formats
        super().__init__(
            message=f"Could not parse date {text!r} with formats {list(formats)}",
            details=details or {"text": text, "formats": list(formats)},
        )


class MissingReferenceError(DomainException):
    """Raised when a record references a parent record that does not exist"""

    code = "missing_reference"


class InconsistentStateError(DomainException):
    """Raised when stored state contradicts an invariant"""

    code = "inconsistent_state"


# External Service Errors
class RecordStoreError(DomainException):
    """Raised when a record or user meta store operation fails"""

    code = "record_store_error"


class SupabaseError(RecordStoreError):
    """Raised when Supabase operation fails"""

    pass
