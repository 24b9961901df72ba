"""Assemble the canonical TaxExportPackage.

The assembler combines aggregated totals with per-row detail into the one
package every renderer reads. Detail-row display amounts are rounded here,
once, and never again.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional

import structlog

from .aggregator import AggregationResult
from .exceptions import ExportContractError
from .irs_tables import DE_MINIMIS_SAFE_HARBOR
from .models import (
    ExpenseRecord,
    ExpenseRow,
    ExportMetadata,
    ExportRequest,
    IncomeRow,
    MileageRow,
    NormalizedRecords,
    ScheduleCLineItem,
    ScheduleCSummary,
    TaxExportPackage,
    ValidationResult,
)
from .rounding import ZERO, round_cents
from .schedule_c import (
    EXPENSE_LINES,
    ScheduleCLine,
    line_definition,
)

logger = structlog.get_logger()

_INCOME_LINE_DESCRIPTIONS = {
    ScheduleCLine.GROSS_RECEIPTS: "Gross receipts from paid gigs",
    ScheduleCLine.RETURNS_ALLOWANCES: "Returns and allowances",
    ScheduleCLine.COST_OF_GOODS_SOLD: "Cost of goods sold",
    ScheduleCLine.OTHER_INCOME: "Other income",
}


class PackageAssembler:
    """Build a TaxExportPackage from validated records and their totals."""

    def __init__(
        self,
        asset_review_threshold: Decimal = DE_MINIMIS_SAFE_HARBOR,
        app_version: str = "1.0.0",
    ):
        self.asset_review_threshold = asset_review_threshold
        self.app_version = app_version

    def assemble(
        self,
        records: NormalizedRecords,
        aggregation: AggregationResult,
        request: ExportRequest,
        *,
        validation: Optional[ValidationResult] = None,
        created_at: Optional[dt.datetime] = None,
    ) -> TaxExportPackage:
        """Assemble the package for one export run.

        Args:
            records: The validated records
            aggregation: Totals computed from the same records
            request: Run parameters
            validation: Validation outcome; its warnings travel with the package
            created_at: Timestamp to stamp into metadata (default: now, UTC)

        Returns:
            The complete, immutable TaxExportPackage

        Raises:
            ExportContractError: If the request lacks a tax year or date
                range, or validation reported blocking errors
        """
        self._check_contract(request, validation)

        metadata = ExportMetadata(
            tax_year=request.tax_year,
            date_start=request.date_start,
            date_end=request.date_end,
            created_at=created_at or dt.datetime.now(dt.timezone.utc),
            timezone=request.timezone,
            include_tips=request.include_tips,
            include_fees_as_deduction=request.include_fees_as_deduction,
            app_version=self.app_version,
        )

        package = TaxExportPackage(
            metadata=metadata,
            schedule_c=aggregation.summary,
            schedule_c_line_items=self.build_line_items(aggregation.summary),
            income_rows=self._income_rows(records, aggregation),
            expense_rows=tuple(
                self._expense_row(e, aggregation) for e in records.expenses
            ),
            mileage_rows=self._mileage_rows(records, request),
            payer_summary_rows=aggregation.payer_rollups,
            mileage_summary=aggregation.mileage_summary,
            validation_warnings=validation.warnings if validation else (),
        )

        logger.info(
            "package_assembled",
            tax_year=request.tax_year,
            line_items=len(package.schedule_c_line_items),
            income_rows=len(package.income_rows),
            expense_rows=len(package.expense_rows),
            mileage_rows=len(package.mileage_rows),
            net_profit=str(package.schedule_c.net_profit),
        )
        return package

    @staticmethod
    def _check_contract(
        request: ExportRequest,
        validation: Optional[ValidationResult],
    ) -> None:
        if not request.tax_year:
            raise ExportContractError(
                "Tax year is required to assemble a package",
                component="assembler",
                field="tax_year",
            )
        if request.date_start is None or request.date_end is None:
            raise ExportContractError(
                "A date range is required to assemble a package",
                component="assembler",
                field="date_start" if request.date_start is None else "date_end",
            )
        if validation is not None and not validation.is_valid:
            raise ExportContractError(
                "Cannot assemble a package from data with blocking errors",
                component="assembler",
                details={"blocking_errors": len(validation.errors)},
            )

    # -------------------------------------------------------------------------
    # Schedule C line items
    # -------------------------------------------------------------------------

    @staticmethod
    def build_line_items(summary: ScheduleCSummary) -> tuple[ScheduleCLineItem, ...]:
        """Line items in form order.

        Income-section lines are always present. Expense lines appear only
        when nonzero. Reductions and expenses carry a negative raw amount.
        """
        items: list[ScheduleCLineItem] = []

        income_amounts = (
            (ScheduleCLine.GROSS_RECEIPTS, summary.gross_receipts, False),
            (ScheduleCLine.RETURNS_ALLOWANCES, summary.returns_allowances, True),
            (ScheduleCLine.COST_OF_GOODS_SOLD, summary.cogs, True),
            (ScheduleCLine.OTHER_INCOME, summary.other_income, False),
        )
        for line, amount, reduces in income_amounts:
            definition = line_definition(line)
            items.append(
                ScheduleCLineItem(
                    line=line,
                    ref_number=definition.ref_number,
                    line_name=definition.name,
                    description=_INCOME_LINE_DESCRIPTIONS[line],
                    raw_signed_amount=-amount if reduces and amount else amount,
                    amount_for_entry=amount,
                )
            )

        for line in EXPENSE_LINES:
            amount = summary.expense_total(line)
            if amount == ZERO:
                continue
            definition = line_definition(line)
            note = None
            if line is ScheduleCLine.OTHER_EXPENSES:
                note = "; ".join(
                    f"{item.name}: {item.amount}"
                    for item in summary.other_expenses_breakdown
                )
            items.append(
                ScheduleCLineItem(
                    line=line,
                    ref_number=definition.ref_number,
                    line_name=definition.name,
                    description=definition.name,
                    raw_signed_amount=-amount,
                    amount_for_entry=amount,
                    notes=note or None,
                )
            )

        return tuple(items)

    # -------------------------------------------------------------------------
    # Detail rows
    # -------------------------------------------------------------------------

    @staticmethod
    def _income_rows(
        records: NormalizedRecords,
        aggregation: AggregationResult,
    ) -> tuple[IncomeRow, ...]:
        rows = []
        for record in records.paid_income:
            amount = round_cents(aggregation.income_gross[record.id])
            fees = round_cents(record.fees or ZERO)
            rows.append(
                IncomeRow(
                    id=record.id,
                    received_date=record.date,
                    payer_id=record.payer_id,
                    payer_name=record.payer_name,
                    payer_email=record.payer_email,
                    payer_phone=record.payer_phone,
                    description=record.display_title,
                    amount=amount,
                    fees=fees,
                    net_amount=amount - fees,
                    related_gig_id=record.id,
                )
            )
        return tuple(rows)

    def _expense_row(
        self,
        record: ExpenseRecord,
        aggregation: AggregationResult,
    ) -> ExpenseRow:
        deduction = aggregation.expense_deductions[record.id]
        classification = deduction.classification
        amount = round_cents(record.amount or ZERO)

        review = (
            amount >= self.asset_review_threshold
            and classification.line is ScheduleCLine.OTHER_EXPENSES
        )

        return ExpenseRow(
            id=record.id,
            date=record.date,
            merchant=record.merchant,
            description=record.display_description,
            category=record.category or classification.label,
            line=classification.line,
            amount=amount,
            deductible_fraction=deduction.fraction,
            deductible_amount=round_cents(deduction.deductible),
            receipt_url=record.receipt_url,
            notes=record.notes,
            related_gig_id=record.related_gig_id,
            potential_asset_review=review,
            potential_asset_reason=(
                f"Amount is at or above the ${self.asset_review_threshold:,.0f} "
                "de minimis safe harbor; it may need depreciation instead of an "
                "immediate deduction."
                if review
                else None
            ),
        )

    @staticmethod
    def _mileage_rows(
        records: NormalizedRecords,
        request: ExportRequest,
    ) -> tuple[MileageRow, ...]:
        rate = request.mileage_rate
        return tuple(
            MileageRow(
                id=trip.id,
                date=trip.date,
                origin=trip.origin,
                destination=trip.destination,
                purpose=trip.purpose,
                miles=trip.miles or ZERO,
                rate=rate,
                deduction_amount=round_cents((trip.miles or ZERO) * rate),
                is_estimate=trip.is_estimate,
                notes=trip.notes,
                related_gig_id=trip.related_gig_id,
            )
            for trip in records.mileage
        )
