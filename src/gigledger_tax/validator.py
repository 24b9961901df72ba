"""Pre-export validation.

Checks normalized records for blocking errors and advisory warnings before
any totals are computed. Validation is pure and total: it never raises on
bad data, it reports it.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional, Union

import structlog

from .models import (
    EntityCategory,
    ExpenseRecord,
    ExportRequest,
    IncomeRecord,
    MileageRecord,
    NormalizedRecords,
    Severity,
    ValidationIssue,
    ValidationResult,
)
from .schedule_c import classify, is_meals_line

logger = structlog.get_logger()

SUPPORTED_CURRENCY = "USD"

_GIG_AMOUNT_FIELDS = ("gross_amount", "tips", "per_diem", "other_income", "fees")


class _IssueCollector:
    """Accumulates issues for one entity type in input order."""

    def __init__(self, category: EntityCategory):
        self.category = category
        self.errors: list[ValidationIssue] = []
        self.warnings: list[ValidationIssue] = []

    def error(self, record_id: str, field: str, message: str) -> None:
        self.errors.append(
            ValidationIssue(
                severity=Severity.ERROR,
                category=self.category,
                record_id=record_id,
                field=field,
                message=message,
            )
        )

    def warning(self, record_id: str, field: str, message: str) -> None:
        self.warnings.append(
            ValidationIssue(
                severity=Severity.WARNING,
                category=self.category,
                record_id=record_id,
                field=field,
                message=message,
            )
        )


class ExportValidator:
    """Validate export data and classify each problem as blocking or not.

    Blocking errors stop every renderer. Warnings are reported alongside a
    successful export and embedded in the summary document.
    """

    def validate(
        self,
        records: NormalizedRecords,
        request: ExportRequest,
    ) -> ValidationResult:
        """Validate all records for one export run.

        Args:
            records: Normalized gig, expense and mileage records
            request: The run whose date range bounds every record

        Returns:
            ValidationResult with errors and warnings in entity order
        """
        collectors = (
            self._check_gigs(records.income, request),
            self._check_expenses(records.expenses, request),
            self._check_mileage(records.mileage, request),
        )

        result = ValidationResult(
            errors=tuple(i for c in collectors for i in c.errors),
            warnings=tuple(i for c in collectors for i in c.warnings),
        )

        logger.info(
            "export_validated",
            tax_year=request.tax_year,
            is_valid=result.is_valid,
            errors=len(result.errors),
            warnings=len(result.warnings),
        )
        return result

    # -------------------------------------------------------------------------
    # Shared checks
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_date(
        collector: _IssueCollector,
        record_id: str,
        label: str,
        record: Union[IncomeRecord, ExpenseRecord, MileageRecord],
        request: ExportRequest,
    ) -> None:
        if record.date is None:
            shown = record.date_text or "missing"
            collector.error(record_id, "date", f"{label} has invalid date: {shown}")
        elif not request.contains(record.date):
            collector.error(
                record_id,
                "date",
                f"{label} date {record.date.isoformat()} is outside the export range "
                f"{request.date_start} to {request.date_end}.",
            )

    @staticmethod
    def _check_amount(
        collector: _IssueCollector,
        record_id: str,
        label: str,
        field: str,
        value: Optional[Decimal],
    ) -> None:
        name = field.replace("_", " ")
        if value is None:
            collector.error(
                record_id, field, f"{label} has a missing or unreadable {name}."
            )
        elif value < 0:
            collector.error(
                record_id,
                field,
                f"{label} has negative {name}: ${value}. Amounts must be positive.",
            )

    @staticmethod
    def _check_currency(
        collector: _IssueCollector,
        record_id: str,
        label: str,
        currency: str,
    ) -> None:
        if currency != SUPPORTED_CURRENCY:
            collector.error(
                record_id,
                "currency",
                f"{label} uses unsupported currency {currency}. Only USD exports are supported.",
            )

    # -------------------------------------------------------------------------
    # Per-entity checks
    # -------------------------------------------------------------------------

    def _check_gigs(
        self,
        gigs: Iterable[IncomeRecord],
        request: ExportRequest,
    ) -> _IssueCollector:
        collector = _IssueCollector(EntityCategory.GIG)

        for gig in gigs:
            label = f'Gig "{gig.display_title}"'

            for field in _GIG_AMOUNT_FIELDS:
                self._check_amount(collector, gig.id, label, field, getattr(gig, field))
            self._check_date(collector, gig.id, label, gig, request)
            self._check_currency(collector, gig.id, label, gig.currency)

            if not gig.payer_name:
                collector.warning(
                    gig.id,
                    "payer_name",
                    f"{label} is missing payer name. This may be needed for 1099 reconciliation.",
                )
            if gig.paid and not gig.payer_tax_id_hint:
                collector.warning(
                    gig.id,
                    "payer_tax_id",
                    f"Paid gig \"{gig.display_title}\" is missing payer EIN/SSN. "
                    "This is needed for 1099 reconciliation.",
                )

        return collector

    def _check_expenses(
        self,
        expenses: Iterable[ExpenseRecord],
        request: ExportRequest,
    ) -> _IssueCollector:
        collector = _IssueCollector(EntityCategory.EXPENSE)

        for expense in expenses:
            label = f'Expense "{expense.display_description}"'

            if not expense.category:
                collector.error(
                    expense.id,
                    "category",
                    f"{label} is missing a category. A category is required to "
                    "place it on a Schedule C line.",
                )
            self._check_amount(collector, expense.id, label, "amount", expense.amount)
            self._check_date(collector, expense.id, label, expense, request)
            self._check_currency(collector, expense.id, label, expense.currency)

            fraction = expense.deductible_fraction_override
            if fraction is not None and not (0 <= fraction <= 1):
                collector.error(
                    expense.id,
                    "deductible_fraction",
                    f"{label} has deductible fraction {fraction}. It must be between 0 and 1.",
                )

            if (
                expense.category
                and fraction == 0
                and is_meals_line(classify(expense.category).line)
            ):
                collector.warning(
                    expense.id,
                    "deductible_fraction",
                    f"Meals expense \"{expense.display_description}\" records a 0% "
                    "deductible share, so it adds nothing to line 24b.",
                )

        return collector

    def _check_mileage(
        self,
        trips: Iterable[MileageRecord],
        request: ExportRequest,
    ) -> _IssueCollector:
        collector = _IssueCollector(EntityCategory.MILEAGE)

        for trip in trips:
            label = "Mileage trip"

            if trip.miles is None:
                collector.error(trip.id, "miles", f"{label} has missing or unreadable miles.")
            elif trip.miles < 0:
                collector.error(trip.id, "miles", f"{label} has negative miles: {trip.miles}")
            self._check_date(collector, trip.id, label, trip, request)

            if not trip.purpose:
                collector.warning(
                    trip.id,
                    "purpose",
                    f'{label} from "{trip.origin or ""}" to "{trip.destination or ""}" '
                    "is missing business purpose.",
                )
            if not trip.origin:
                collector.warning(trip.id, "origin", f"{label} is missing origin location.")
            if not trip.destination:
                collector.warning(
                    trip.id, "destination", f"{label} is missing destination location."
                )

        return collector


# =============================================================================
# PRESENTATION HELPERS
# =============================================================================

def summarize(result: ValidationResult) -> str:
    """One-line status for a validation result."""
    if result.is_valid and not result.warnings:
        return "All checks passed. Your data is ready to export."
    if not result.is_valid:
        return f"{len(result.errors)} blocking error(s) found. Fix these before exporting."
    return (
        f"{len(result.warnings)} warning(s) found. "
        "You can still export, but review these issues."
    )


def group_by_category(
    issues: Iterable[ValidationIssue],
) -> dict[EntityCategory, list[ValidationIssue]]:
    """Group issues by entity type, keeping their order within each group."""
    grouped: dict[EntityCategory, list[ValidationIssue]] = defaultdict(list)
    for issue in issues:
        grouped[issue.category].append(issue)
    return dict(grouped)
