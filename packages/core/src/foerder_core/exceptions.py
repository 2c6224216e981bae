"""Custom exceptions for the Förderprüfung reconciliation engine.

This module provides a hierarchy of exception classes for consistent error
handling across the core calculations and the extraction pipeline. All
exceptions inherit from FoerderError, making it easy to catch all
application-specific errors.

Business conditions (missing profile data, an unmet minimum income, an
unparseable amount) are reported as values on the result objects and never
raised. The exceptions below are reserved for caller mistakes and for
collaborators that could not be reached.

Example:
    try:
        item = apply_manual_edit(item, line_index, "1.250,00")
    except ValidationError as e:
        show_message(e.message)
    except FoerderError as e:
        logger.error("review_edit_failed", error=str(e))
"""

from typing import Any, Optional


class FoerderError(Exception):
    """Base exception for all Förderprüfung errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the error is potentially recoverable.

    Example:
        >>> raise FoerderError("Something went wrong", details={"code": 500})
        FoerderError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize FoerderError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error is potentially recoverable through
                retry or alternative approaches. Defaults to False.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message

    def __repr__(self) -> str:
        """Return detailed representation of the error."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"recoverable={self.recoverable!r})"
        )


class ExtractionError(FoerderError):
    """Error raised when the OCR collaborator returns unusable output.

    Attributes:
        file_path: The uploaded file that was being processed.
        document_type: Backend document type sent to the collaborator.
        status_code: HTTP status code of the failed call (if any).
    """

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        document_type: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ExtractionError.

        Args:
            message: Human-readable error description.
            file_path: Storage path of the uploaded file.
            document_type: Backend document type (e.g. "lohn_gehaltsbescheinigung").
            status_code: HTTP status code returned by the collaborator.
            details: Optional dictionary with additional context.
            recoverable: Whether extraction can be retried. Defaults to True
                since the next batch run calls the collaborator again.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.file_path = file_path
        self.document_type = document_type
        self.status_code = status_code

        if file_path:
            self.details["file_path"] = file_path
        if document_type:
            self.details["document_type"] = document_type
        if status_code is not None:
            self.details["status_code"] = status_code


class ValidationError(FoerderError):
    """Error raised when a reviewer edit cannot be applied.

    Attributes:
        field: The field or line that failed validation.
        value: The rejected value.
        constraint: The validation constraint that was violated.

    Example:
        >>> raise ValidationError(
        ...     "Zeile ist nicht bearbeitbar",
        ...     field="calculations[4]",
        ...     constraint="value.editable must be true",
        ... )
        ValidationError: Zeile ist nicht bearbeitbar
    """

    def __init__(
        self,
        message: str,
        *,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        constraint: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ValidationError.

        Args:
            message: Human-readable error description.
            field: The name of the field or line that failed validation.
            value: The invalid value.
            constraint: Description of the validation rule violated.
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed by user correction.
                Defaults to True.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.field = field
        self.value = value
        self.constraint = constraint

        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        if constraint:
            self.details["constraint"] = constraint


class PersistenceError(FoerderError):
    """Error raised when a store cannot be read or written.

    Attributes:
        key: Identifier of the record (application or resident id).
        record: Name of the record ("extraction_structure", "review_data", ...).
    """

    def __init__(
        self,
        message: str,
        *,
        key: Optional[str] = None,
        record: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize PersistenceError.

        Args:
            message: Human-readable error description.
            key: Application or resident identifier.
            record: Name of the persisted record.
            details: Optional dictionary with additional context.
            recoverable: Whether the operation can be retried. Defaults to True.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.key = key
        self.record = record

        if key:
            self.details["key"] = key
        if record:
            self.details["record"] = record


class ConfigurationError(FoerderError):
    """Error raised when configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).

    Example:
        >>> raise ConfigurationError(
        ...     "Missing OCR service URL",
        ...     config_key="FOERDER_OCR_BASE_URL",
        ...     expected="http(s) URL of the extraction service",
        ... )
        ConfigurationError: Missing OCR service URL
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        actual: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ConfigurationError.

        Args:
            message: Human-readable error description.
            config_key: The name of the configuration key that is problematic.
            expected: Description of what value was expected.
            actual: The actual value found (avoid including secrets).
            details: Optional dictionary with additional context.
            recoverable: Whether the error can be fixed at runtime.
                Defaults to False.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.config_key = config_key
        self.expected = expected
        self.actual = actual

        if config_key:
            self.details["config_key"] = config_key
        if expected:
            self.details["expected"] = expected
        if actual is not None:
            self.details["actual"] = actual


__all__ = [
    "FoerderError",
    "ExtractionError",
    "ValidationError",
    "PersistenceError",
    "ConfigurationError",
]
