"""Data models for the tax export engine.

This package provides:
- Normalized input records (records.py)
- Validation issues and results (validation.py)
- The canonical TaxExportPackage and its parts (package.py)
- Export run parameters (request.py)
"""

from gigledger_tax.models.records import (
    ExpenseRecord,
    IncomeRecord,
    MileageRecord,
    NormalizedRecords,
    PayerRecord,
)
from gigledger_tax.models.validation import (
    EntityCategory,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from gigledger_tax.models.package import (
    SCHEMA_VERSION,
    ExpenseRow,
    ExportMetadata,
    IncomeRow,
    MileageRow,
    MileageSummary,
    OtherExpenseItem,
    PayerSummaryRow,
    RoundingPolicy,
    ScheduleCLineItem,
    ScheduleCSummary,
    TaxExportPackage,
)
from gigledger_tax.models.request import ExportRequest

__all__ = [
    # Records
    "IncomeRecord",
    "ExpenseRecord",
    "MileageRecord",
    "PayerRecord",
    "NormalizedRecords",
    # Validation
    "Severity",
    "EntityCategory",
    "ValidationIssue",
    "ValidationResult",
    # Package
    "SCHEMA_VERSION",
    "RoundingPolicy",
    "ExportMetadata",
    "OtherExpenseItem",
    "ScheduleCSummary",
    "ScheduleCLineItem",
    "IncomeRow",
    "ExpenseRow",
    "MileageRow",
    "PayerSummaryRow",
    "MileageSummary",
    "TaxExportPackage",
    # Request
    "ExportRequest",
]
