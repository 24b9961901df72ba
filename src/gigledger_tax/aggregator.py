"""Schedule C aggregation.

This module turns validated records into Schedule C totals. Every total is
computed at full precision and rounded exactly once, so the net-profit
identity holds to the cent without any adjustment:

    net_profit = gross_receipts - returns_allowances - cogs
                 + other_income - sum(expense_totals)
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from .exceptions import ExportContractError
from .irs_tables import SE_TAX_BASIS_FACTOR, SE_TAX_RATE
from .models import (
    ExpenseRecord,
    ExportRequest,
    IncomeRecord,
    MileageSummary,
    NormalizedRecords,
    OtherExpenseItem,
    PayerSummaryRow,
    ScheduleCSummary,
)
from .rounding import ZERO, format_currency, round_cents
from .schedule_c import LineClassification, ScheduleCLine, classify, is_meals_line

logger = structlog.get_logger()

UNASSIGNED_PAYER_KEY = "__unassigned__"


class CalculationStep(BaseModel):
    """One logged step of the aggregation, kept for the audit trail."""

    model_config = {"frozen": True}

    step: str
    input_value: str
    output_value: str
    source: str
    notes: Optional[str] = None


class ExpenseDeduction(BaseModel):
    """Deductible share of one expense, before rounding."""

    model_config = {"frozen": True}

    record_id: str
    classification: LineClassification
    fraction: Decimal = Field(ge=Decimal("0"), le=Decimal("1"))
    deductible: Decimal = Field(description="amount x fraction at full precision")


class AggregationResult(BaseModel):
    """Totals plus the per-row values the assembler needs for detail rows."""

    model_config = {"frozen": True}

    summary: ScheduleCSummary
    mileage_summary: MileageSummary
    payer_rollups: tuple[PayerSummaryRow, ...] = ()
    income_gross: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Income per record id before platform fees, full precision",
    )
    expense_deductions: dict[str, ExpenseDeduction] = Field(default_factory=dict)
    steps: tuple[CalculationStep, ...] = ()


def _known(value: Optional[Decimal], record_id: str, field: str) -> Decimal:
    """Unwrap a value validation should already have checked."""
    if value is None:
        raise ExportContractError(
            f"Record {record_id} reached aggregation with no {field}",
            component="aggregator",
            field=field,
        )
    return value


class ScheduleAggregator:
    """Compute Schedule C totals from validated records.

    All calculations are logged as ``calculation_step`` events and returned
    in the result so the numbers in an export can be traced.
    """

    def __init__(self) -> None:
        self._steps: list[CalculationStep] = []

    def _log_step(
        self,
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Record a step and emit it to the log."""
        self._steps.append(
            CalculationStep(
                step=step,
                input_value=input_value,
                output_value=output_value,
                source=source,
                notes=notes,
            )
        )
        logger.info(
            "calculation_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    # -------------------------------------------------------------------------
    # Income
    # -------------------------------------------------------------------------

    @staticmethod
    def row_gross(record: IncomeRecord, include_tips: bool) -> Decimal:
        """Amount earned on one gig before platform fees, unrounded."""
        gross = (
            _known(record.gross_amount, record.id, "gross_amount")
            + _known(record.per_diem, record.id, "per_diem")
            + _known(record.other_income, record.id, "other_income")
        )
        if include_tips:
            gross += _known(record.tips, record.id, "tips")
        return gross

    def _payer_rollups(
        self,
        paid: tuple[IncomeRecord, ...],
        gross_by_id: dict[str, Decimal],
    ) -> tuple[PayerSummaryRow, ...]:
        groups: dict[str, list[IncomeRecord]] = defaultdict(list)
        for record in paid:
            key = record.payer_id or record.payer_name or UNASSIGNED_PAYER_KEY
            groups[key].append(record)

        rows = []
        for key, records in groups.items():
            first = records[0]
            gross = round_cents(sum((gross_by_id[r.id] for r in records), ZERO))
            fees = round_cents(
                sum((_known(r.fees, r.id, "fees") for r in records), ZERO)
            )
            dates = [r.date for r in records if r.date is not None]
            if not dates:
                raise ExportContractError(
                    f"Payer group {key} has no dated payments",
                    component="aggregator",
                    field="date",
                )
            rows.append(
                PayerSummaryRow(
                    payer_id=first.payer_id,
                    payer_name=first.payer_name,
                    payer_email=first.payer_email,
                    payer_phone=first.payer_phone,
                    payments_count=len(records),
                    gross_amount=gross,
                    fees_total=fees,
                    net_amount=gross - fees,
                    first_payment_date=min(dates),
                    last_payment_date=max(dates),
                    notes=None if first.payer_name else "Payer name not recorded",
                )
            )
        return tuple(rows)

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    @staticmethod
    def deduction_for(record: ExpenseRecord) -> ExpenseDeduction:
        """Classify an expense and apply its deductible fraction."""
        classification = classify(record.category)
        fraction = (
            record.deductible_fraction_override
            if record.deductible_fraction_override is not None
            else classification.deductible_fraction
        )
        amount = _known(record.amount, record.id, "amount")
        return ExpenseDeduction(
            record_id=record.id,
            classification=classification,
            fraction=fraction,
            deductible=amount * fraction,
        )

    @staticmethod
    def itemize(
        by_label: dict[str, Decimal],
        total: Decimal,
    ) -> tuple[OtherExpenseItem, ...]:
        """Round each label's total so the entries add up to ``total``.

        Entries are rounded individually, then the cents left over are
        moved one at a time onto the entries that rounding moved furthest
        from their exact value (largest remainder). Entries that end at
        zero are dropped.
        """
        labels = list(by_label)
        rounded = {label: round_cents(by_label[label]) for label in labels}
        residual = total - sum(rounded.values(), ZERO)
        cents = int(residual / Decimal("0.01"))
        if cents > 0:
            order = sorted(
                labels, key=lambda name: by_label[name] - rounded[name], reverse=True
            )
            for label in order[:cents]:
                rounded[label] += Decimal("0.01")
        elif cents < 0:
            order = sorted(
                labels, key=lambda name: rounded[name] - by_label[name], reverse=True
            )
            for label in order[:-cents]:
                rounded[label] -= Decimal("0.01")
        return tuple(
            OtherExpenseItem(name=label, amount=rounded[label])
            for label in labels
            if rounded[label] != ZERO
        )

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def aggregate(
        self,
        records: NormalizedRecords,
        request: ExportRequest,
    ) -> AggregationResult:
        """Compute Schedule C totals for one export run.

        Args:
            records: Records that passed validation
            request: Run parameters (tips, fee treatment, mileage rate)

        Returns:
            AggregationResult with the summary, mileage summary, payer
            rollups and per-row values
        """
        self._steps = []
        notes: list[str] = []

        # Step 1: Gross receipts from paid gigs (cash basis), net of platform
        # fees when fees are also filed on line 10
        paid = records.paid_income
        gross_by_id = {r.id: self.row_gross(r, request.include_tips) for r in paid}
        fees_full = sum((_known(r.fees, r.id, "fees") for r in paid), ZERO)
        receipts_full = sum(gross_by_id.values(), ZERO)
        if request.include_fees_as_deduction:
            receipts_full -= fees_full
        gross_receipts = round_cents(receipts_full)
        self._log_step(
            step="gross_receipts",
            input_value=(
                f"paid_gigs={len(paid)}, include_tips={request.include_tips}, "
                f"fees_netted={request.include_fees_as_deduction}"
            ),
            output_value=str(gross_receipts),
            source="Schedule C line 1",
        )
        if not request.include_tips:
            notes.append("Tips were excluded from gross receipts.")

        # Step 2: Platform fees
        fees_total = round_cents(fees_full)
        returns_allowances = ZERO if request.include_fees_as_deduction else fees_total
        fees_line = (
            ScheduleCLine.COMMISSIONS_AND_FEES
            if request.include_fees_as_deduction
            else ScheduleCLine.RETURNS_ALLOWANCES
        )
        self._log_step(
            step="fees",
            input_value=f"fees_total={fees_total}",
            output_value=f"line_{fees_line.value}={fees_total}",
            source=f"Schedule C line {fees_line.value}",
        )

        # Step 3: Expenses grouped by line, deductible share at full precision
        deductions = {e.id: self.deduction_for(e) for e in records.expenses}
        line_sums: dict[ScheduleCLine, Decimal] = defaultdict(lambda: ZERO)
        other_by_label: dict[str, Decimal] = defaultdict(lambda: ZERO)
        meals_reduced = False
        for deduction in deductions.values():
            line = deduction.classification.line
            if line is ScheduleCLine.OTHER_EXPENSES:
                other_by_label[deduction.classification.label] += deduction.deductible
            else:
                line_sums[line] += deduction.deductible
            if is_meals_line(line) and deduction.fraction != 1:
                meals_reduced = True

        expense_totals: dict[ScheduleCLine, Decimal] = {}
        for line, full in line_sums.items():
            expense_totals[line] = round_cents(full)
            self._log_step(
                step=f"expense_line_{line.value}",
                input_value=str(full),
                output_value=str(expense_totals[line]),
                source=f"Schedule C line {line.value}",
            )
        if meals_reduced:
            notes.append(
                "Meals were reduced to their deductible share (default 50%) "
                "for Schedule C totals."
            )

        # Step 4: Line 27a is rounded once from the full-precision sum; the
        # itemized entries are apportioned so they add up to it
        if other_by_label:
            other_total = round_cents(sum(other_by_label.values(), ZERO))
            breakdown = self.itemize(other_by_label, other_total)
            if other_total != ZERO:
                expense_totals[ScheduleCLine.OTHER_EXPENSES] = other_total
            self._log_step(
                step="other_expenses",
                input_value=", ".join(f"{k}={v}" for k, v in other_by_label.items()),
                output_value=str(other_total),
                source="Schedule C line 27a",
            )
        else:
            breakdown = ()

        # Step 5: Standard mileage deduction on line 9
        rate = request.mileage_rate
        total_miles = sum(
            (_known(t.miles, t.id, "miles") for t in records.mileage), ZERO
        )
        mileage_deduction = round_cents(total_miles * rate)
        self._log_step(
            step="mileage",
            input_value=f"miles={total_miles}, rate={rate}",
            output_value=str(mileage_deduction),
            source=f"IRS standard mileage rate {request.tax_year}",
        )
        if mileage_deduction != ZERO:
            car = ScheduleCLine.CAR_AND_TRUCK
            expense_totals[car] = expense_totals.get(car, ZERO) + mileage_deduction
            notes.append(
                "Car and truck expenses include a standard mileage rate deduction "
                f"of {format_currency(mileage_deduction)} ({total_miles} miles at "
                f"${rate:.3f}/mile)."
            )

        if request.include_fees_as_deduction and fees_total != ZERO:
            expense_totals[fees_line] = expense_totals.get(fees_line, ZERO) + fees_total
            notes.append(
                f"Platform fees of {format_currency(fees_total)} were netted out of "
                "gross receipts and are filed as commissions and fees (line 10)."
            )
        elif fees_total != ZERO:
            notes.append(
                f"Platform fees of {format_currency(fees_total)} are reported as "
                "returns and allowances (line 2)."
            )

        expense_totals = {
            line: amount for line, amount in expense_totals.items() if amount != ZERO
        }

        # Step 6: Net profit from already-rounded terms
        cogs = ZERO
        other_income = ZERO
        total_expenses = sum(expense_totals.values(), ZERO)
        net_profit = (
            gross_receipts - returns_allowances - cogs + other_income - total_expenses
        )
        self._log_step(
            step="net_profit",
            input_value=(
                f"gross={gross_receipts}, returns={returns_allowances}, "
                f"cogs={cogs}, other_income={other_income}, expenses={total_expenses}"
            ),
            output_value=str(net_profit),
            source="Schedule C line 31",
        )

        # Step 7: Informational self-employment tax estimate
        se_tax_basis = round_cents(max(ZERO, net_profit * SE_TAX_BASIS_FACTOR))
        estimated_se_tax = round_cents(se_tax_basis * SE_TAX_RATE)
        self._log_step(
            step="se_tax_estimate",
            input_value=f"net_profit={net_profit}",
            output_value=f"basis={se_tax_basis}, tax={estimated_se_tax}",
            source="Schedule SE (informational)",
            notes="Wage-base caps are not applied",
        )

        summary = ScheduleCSummary(
            gross_receipts=gross_receipts,
            returns_allowances=returns_allowances,
            cogs=cogs,
            other_income=other_income,
            expense_totals=expense_totals,
            other_expenses_breakdown=breakdown,
            total_expenses=total_expenses,
            net_profit=net_profit,
            se_tax_basis=se_tax_basis,
            estimated_se_tax=estimated_se_tax,
            notes=tuple(notes),
        )

        mileage_summary = MileageSummary(
            tax_year=request.tax_year,
            total_business_miles=total_miles,
            standard_rate_used=rate,
            mileage_deduction_amount=mileage_deduction,
            entries_count=len(records.mileage),
            is_estimate_any=any(t.is_estimate for t in records.mileage),
            notes=f"IRS standard mileage rate for {request.tax_year}: ${rate:.3f}/mile",
        )

        logger.info(
            "schedule_aggregated",
            tax_year=request.tax_year,
            gross_receipts=str(gross_receipts),
            total_expenses=str(total_expenses),
            net_profit=str(net_profit),
        )

        return AggregationResult(
            summary=summary,
            mileage_summary=mileage_summary,
            payer_rollups=self._payer_rollups(paid, gross_by_id),
            income_gross=gross_by_id,
            expense_deductions=deductions,
            steps=tuple(self._steps),
        )
