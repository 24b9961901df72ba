"""Custom exceptions for the GigLedger tax export engine.

This module provides a hierarchy of exception classes so callers can tell
"your data has a problem" apart from "the export engine itself is broken".
All exceptions inherit from TaxExportError, making it easy to catch every
engine-specific error in one place.

Example:
    try:
        package = engine.build_package(raw, request)
    except ExportValidationError as e:
        # Show e.result.errors to the user and let them fix the data
        show_issues(e.result.errors)
    except TaxExportError as e:
        # Engine bug or broken contract: log and alert
        logger.error("export_failed", error=str(e), details=e.details)
"""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .models.validation import ValidationResult


class TaxExportError(Exception):
    """Base exception for all tax export engine errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
        recoverable: Whether the user can fix the cause and try again.

    Example:
        >>> raise TaxExportError("Something went wrong", details={"code": 500})
        TaxExportError: Something went wrong
    """

    def __init__(
        self,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize TaxExportError.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context about the error.
            recoverable: Whether the error can be fixed by the user re-running
                the export after correcting data. Defaults to False.
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


class ExportValidationError(TaxExportError):
    """Raised when user data has blocking validation errors.

    The full ValidationResult is attached so the caller can show every
    issue at once instead of only the first one.

    Attributes:
        result: The validation result that blocked the export.

    Example:
        >>> raise ExportValidationError("2 blocking error(s) found", result=result)
        ExportValidationError: 2 blocking error(s) found
    """

    def __init__(
        self,
        message: str,
        *,
        result: "ValidationResult",
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = True,
    ) -> None:
        """Initialize ExportValidationError.

        Args:
            message: Human-readable error description.
            result: The ValidationResult containing the blocking errors.
            details: Optional dictionary with additional context.
            recoverable: Defaults to True since the user can correct the
                offending records and export again.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.result = result

        self.details["blocking_errors"] = len(result.errors)
        self.details["warnings"] = len(result.warnings)


class ExportContractError(TaxExportError):
    """Raised when the engine receives input that violates its own contract.

    These are programming errors (missing metadata reaching the assembler,
    a renderer receiving no package, an unrounded amount reaching a
    formatter). They are never shown to the user as validation messages.

    Attributes:
        component: The pipeline component that detected the violation.
        field: The offending field, if applicable.

    Example:
        >>> raise ExportContractError(
        ...     "Tax year is required to assemble a package",
        ...     component="assembler",
        ...     field="tax_year",
        ... )
        ExportContractError: Tax year is required to assemble a package
    """

    def __init__(
        self,
        message: str,
        *,
        component: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize ExportContractError.

        Args:
            message: Human-readable error description.
            component: Name of the component raising the error.
            field: Name of the field that broke the contract.
            details: Optional dictionary with additional context.
            recoverable: Defaults to False; contract errors need a code fix.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.component = component
        self.field = field

        if component:
            self.details["component"] = component
        if field:
            self.details["field"] = field


class RenderError(TaxExportError):
    """Raised when a format renderer fails to produce output.

    Renders are never retried; the user re-triggers the export.

    Attributes:
        renderer: Name of the renderer that failed.
        filename: The file being produced when the failure happened.
    """

    def __init__(
        self,
        message: str,
        *,
        renderer: Optional[str] = None,
        filename: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False,
    ) -> None:
        """Initialize RenderError.

        Args:
            message: Human-readable error description.
            renderer: Name of the renderer that failed.
            filename: Output filename being generated, if known.
            details: Optional dictionary with additional context.
            recoverable: Defaults to False.
        """
        super().__init__(message, details=details, recoverable=recoverable)
        self.renderer = renderer
        self.filename = filename

        if renderer:
            self.details["renderer"] = renderer
        if filename:
            self.details["filename"] = filename


class ConfigurationError(TaxExportError):
    """Raised when engine configuration is invalid or missing.

    Attributes:
        config_key: The configuration key that is problematic.
        expected: Description of the expected value or format.
        actual: The actual value found (if any).
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
            actual: The actual value found.
            details: Optional dictionary with additional context.
            recoverable: Defaults to False.
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
    "TaxExportError",
    "ExportValidationError",
    "ExportContractError",
    "RenderError",
    "ConfigurationError",
]
