"""Tests for the exception hierarchy."""

import pytest

from gigledger_tax.exceptions import (
    ConfigurationError,
    ExportContractError,
    ExportValidationError,
    RenderError,
    TaxExportError,
)
from gigledger_tax.models import EntityCategory, Severity, ValidationIssue, ValidationResult


def issue(severity: Severity, field: str) -> ValidationIssue:
    return ValidationIssue(
        category=EntityCategory.EXPENSE,
        severity=severity,
        record_id="exp-1",
        field=field,
        message=f"Expense problem with {field}",
    )


class TestTaxExportError:
    """Test suite for the base error."""

    def test_message_and_defaults(self):
        error = TaxExportError("Something went wrong")

        assert str(error) == "Something went wrong"
        assert error.details == {}
        assert error.recoverable is False

    def test_repr(self):
        error = TaxExportError("oops", details={"code": 1})

        assert repr(error) == (
            "TaxExportError(message='oops', details={'code': 1}, recoverable=False)"
        )

    @pytest.mark.parametrize(
        "error",
        [
            ExportValidationError("x", result=ValidationResult()),
            ExportContractError("x"),
            RenderError("x"),
            ConfigurationError("x"),
        ],
    )
    def test_subclasses_share_base(self, error):
        assert isinstance(error, TaxExportError)


class TestExportValidationError:
    """Test suite for ExportValidationError."""

    def test_counts_in_details(self):
        result = ValidationResult(
            errors=(issue(Severity.ERROR, "amount"),),
            warnings=(issue(Severity.WARNING, "deductible_fraction"),),
        )
        error = ExportValidationError("1 blocking error(s) found", result=result)

        assert error.result is result
        assert error.recoverable is True
        assert error.details == {"blocking_errors": 1, "warnings": 1}


class TestContextualErrors:
    """Test suite for errors that record where they happened."""

    def test_contract_error(self):
        error = ExportContractError("no package", component="txf", field="package")

        assert error.details == {"component": "txf", "field": "package"}

    def test_render_error(self):
        error = RenderError("failed", renderer="pdf", filename="PDF_Summary_2025.pdf")

        assert error.renderer == "pdf"
        assert error.details == {"renderer": "pdf", "filename": "PDF_Summary_2025.pdf"}

    def test_configuration_error_omits_empty_context(self):
        error = ConfigurationError("bad", config_key="env")

        assert error.details == {"config_key": "env"}
        assert error.expected is None
