"""Delimited (CSV) bundle for sharing with a tax preparer.

Six files: a Schedule C summary, a payer summary, a mileage summary, and
income, expense and mileage detail. They can be delivered as separate
files or zipped together with a README.
"""

import csv
import io
import zipfile
from typing import Any, Iterable, Optional, Sequence

import structlog

from ..models import TaxExportPackage
from ..rounding import format_currency
from ..schedule_c import line_definition
from .base import BundleShape, RenderedFile, cell_text, money, require_package

logger = structlog.get_logger()

CSV_MEDIA_TYPE = "text/csv"
ZIP_MEDIA_TYPE = "application/zip"


# =============================================================================
# CSV TEXT
# =============================================================================

def to_csv(headers: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Render rows as CSV text.

    A field is quoted only when it contains a comma, a double quote, CR or
    LF; embedded quotes are doubled. Lines end with LF.
    """
    # The writer quotes characters found in its line terminator, so CRLF
    # makes it quote both CR and LF; each record's CRLF is then swapped for LF.
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    lines = []
    for row in [list(headers), *([cell_text(value) for value in r] for r in rows)]:
        writer.writerow(row)
        lines.append(buffer.getvalue()[:-2])
        buffer.seek(0)
        buffer.truncate()
    return "\n".join(lines) + "\n"


# =============================================================================
# FILE LAYOUTS
# =============================================================================

SCHEDULE_C_HEADERS = (
    "schedule_c_line",
    "schedule_c_ref_number",
    "schedule_c_line_name",
    "line_description",
    "raw_signed_amount",
    "amount_for_entry",
    "notes",
)

PAYER_HEADERS = (
    "payer_id",
    "payer_name",
    "payer_email",
    "payer_phone",
    "payments_count",
    "gross_amount",
    "fees_total",
    "net_amount",
    "first_payment_date",
    "last_payment_date",
    "notes",
)

MILEAGE_SUMMARY_HEADERS = (
    "tax_year",
    "total_business_miles",
    "standard_rate_used",
    "mileage_deduction_amount",
    "entries_count",
    "is_estimate_any",
    "notes",
)

INCOME_HEADERS = (
    "id",
    "source",
    "received_date",
    "payer_id",
    "payer_name",
    "payer_email",
    "payer_phone",
    "description",
    "amount",
    "fees",
    "net_amount",
    "related_gig_id",
)

EXPENSE_HEADERS = (
    "id",
    "date",
    "merchant",
    "description",
    "gl_category",
    "schedule_c_line",
    "schedule_c_ref_number",
    "amount",
    "deductible_fraction",
    "deductible_amount",
    "receipt_url",
    "notes",
    "related_gig_id",
    "potential_asset_review",
    "potential_asset_reason",
)

MILEAGE_HEADERS = (
    "id",
    "date",
    "origin",
    "destination",
    "miles",
    "rate",
    "deduction_amount",
    "purpose",
    "is_estimate",
    "notes",
    "related_gig_id",
)


def schedule_c_csv(package: TaxExportPackage) -> str:
    return to_csv(
        SCHEDULE_C_HEADERS,
        (
            (
                item.line,
                item.ref_number,
                item.line_name,
                item.description,
                money(item.raw_signed_amount),
                money(item.amount_for_entry),
                item.notes,
            )
            for item in package.schedule_c_line_items
        ),
    )


def payer_summary_csv(package: TaxExportPackage) -> str:
    return to_csv(
        PAYER_HEADERS,
        (
            (
                r.payer_id,
                r.payer_name,
                r.payer_email,
                r.payer_phone,
                r.payments_count,
                money(r.gross_amount),
                money(r.fees_total),
                money(r.net_amount),
                r.first_payment_date,
                r.last_payment_date,
                r.notes,
            )
            for r in package.payer_summary_rows
        ),
    )


def mileage_summary_csv(package: TaxExportPackage) -> str:
    s = package.mileage_summary
    return to_csv(
        MILEAGE_SUMMARY_HEADERS,
        [(
            s.tax_year,
            s.total_business_miles,
            s.standard_rate_used,
            money(s.mileage_deduction_amount),
            s.entries_count,
            s.is_estimate_any,
            s.notes,
        )],
    )


def income_detail_csv(package: TaxExportPackage) -> str:
    return to_csv(
        INCOME_HEADERS,
        (
            (
                r.id,
                r.source,
                r.received_date,
                r.payer_id,
                r.payer_name,
                r.payer_email,
                r.payer_phone,
                r.description,
                money(r.amount),
                money(r.fees),
                money(r.net_amount),
                r.related_gig_id,
            )
            for r in package.income_rows
        ),
    )


def expense_detail_csv(package: TaxExportPackage) -> str:
    return to_csv(
        EXPENSE_HEADERS,
        (
            (
                r.id,
                r.date,
                r.merchant,
                r.description,
                r.category,
                r.line,
                line_definition(r.line).ref_number,
                money(r.amount),
                r.deductible_fraction,
                money(r.deductible_amount),
                r.receipt_url,
                r.notes,
                r.related_gig_id,
                r.potential_asset_review,
                r.potential_asset_reason,
            )
            for r in package.expense_rows
        ),
    )


def mileage_detail_csv(package: TaxExportPackage) -> str:
    return to_csv(
        MILEAGE_HEADERS,
        (
            (
                r.id,
                r.date,
                r.origin,
                r.destination,
                r.miles,
                r.rate,
                money(r.deduction_amount),
                r.purpose,
                r.is_estimate,
                r.notes,
                r.related_gig_id,
            )
            for r in package.mileage_rows
        ),
    )


def csv_documents(package: TaxExportPackage) -> list[tuple[str, str]]:
    """(filename, text) for each CSV in the bundle, in README order."""
    year = package.tax_year
    return [
        (f"ScheduleC_Summary_{year}.csv", schedule_c_csv(package)),
        (f"Payer_Summary_{year}.csv", payer_summary_csv(package)),
        (f"Mileage_Summary_{year}.csv", mileage_summary_csv(package)),
        (f"Income_Detail_{year}.csv", income_detail_csv(package)),
        (f"Expense_Detail_{year}.csv", expense_detail_csv(package)),
        (f"Mileage_{year}.csv", mileage_detail_csv(package)),
    ]


# =============================================================================
# README
# =============================================================================

_CSV_DESCRIPTIONS = (
    "Line-by-line Schedule C totals (expenses shown as POSITIVE in amount_for_entry)",
    "Payer totals for 1099 reconciliation",
    "Mileage totals for easy entry",
    "Detailed income transactions with payer info",
    "Detailed expenses with asset review flags",
    "Mileage log with standard deduction calculations",
)


def readme_text(
    package: TaxExportPackage,
    *,
    title: str = "GigLedger Tax Prep Pack",
    pdf_filename: Optional[str] = None,
) -> str:
    """Plain-text guide shipped inside archives."""
    meta = package.metadata
    sc = package.schedule_c
    mileage = package.mileage_summary
    year = meta.tax_year

    contents = [name for name, _ in csv_documents(package)]
    lines = [
        f"{title} ({year})",
        "",
        f"Date range: {meta.date_start.isoformat()} to {meta.date_end.isoformat()}",
        f"Basis: {meta.basis}",
        f"Currency: {meta.currency}",
        f"Rounding: {meta.rounding.precision} decimals, half away from zero",
        "",
        "CONTENTS",
        "--------",
    ]
    for number, (name, description) in enumerate(zip(contents, _CSV_DESCRIPTIONS), start=1):
        lines.append(f"{number}. {name} - {description}")
    number = len(contents) + 1
    if pdf_filename:
        lines.append(f"{number}. {pdf_filename} - Summary document for verification")
        number += 1
    lines.append(f"{number}. This README file")

    lines += [
        "",
        "HOW TO USE",
        "----------",
        f"1. Open ScheduleC_Summary_{year}.csv. Each row is a Schedule C line with its",
        "   IRS reference number.",
        '2. Enter the "amount_for_entry" value for each line. Expenses are POSITIVE',
        "   numbers; tax software subtracts them for you.",
        f"3. Use Mileage_Summary_{year}.csv for vehicle expenses:",
        f"   - Total business miles: {mileage.total_business_miles}",
        f"   - Standard rate: ${mileage.standard_rate_used:.3f}/mile",
        f"   - Total deduction: {format_currency(mileage.mileage_deduction_amount)}",
        "4. Keep the detail files for your records and share them with your preparer.",
        f"5. Verify that net profit matches: {format_currency(sc.net_profit)}",
        "",
        f"SCHEDULE C SUMMARY ({year})",
        "-------------------------------",
        f"Gross Receipts:           {format_currency(sc.gross_receipts)}",
        f"Returns & Allowances:     {format_currency(sc.returns_allowances)}",
        f"Cost of Goods Sold:       {format_currency(sc.cogs)}",
        f"Other Income:             {format_currency(sc.other_income)}",
        f"Total Expenses:           {format_currency(sc.total_expenses)}",
        f"NET PROFIT:               {format_currency(sc.net_profit)}",
        "",
        "DATA QUALITY NOTES",
        "------------------",
        f"- Income transactions: {len(package.income_rows)}",
        f"- Expense transactions: {len(package.expense_rows)}",
        f"- Mileage entries: {len(package.mileage_rows)}",
        f"- Payers tracked: {len(package.payer_summary_rows)}",
    ]
    lines += [f"- {note}" for note in sc.notes]
    if package.validation_warnings:
        lines += ["", "WARNINGS", "--------"]
        lines += [f"- {w.message}" for w in package.validation_warnings]

    lines += [
        "",
        "IMPORTANT",
        "---------",
        "- Cash basis: income when received, expenses when paid.",
        "- Meals are deducted at 50% unless a different share was recorded.",
        f"- Mileage uses the IRS standard rate for {year}.",
        '- Expenses flagged "potential_asset_review" may need depreciation treatment.',
        "- This is NOT tax advice. Verify all totals and consult a tax professional.",
        "",
        f"Generated by GigLedger {meta.app_version}",
    ]
    return "\n".join(lines) + "\n"


def build_zip(members: Iterable[tuple[str, bytes]]) -> bytes:
    """Zip members in the order given."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, data in members:
            archive.writestr(name, data)
    return buffer.getvalue()


# =============================================================================
# RENDERER
# =============================================================================

class DelimitedBundleRenderer:
    """Render the six-file CSV bundle."""

    name = "csv"

    def __init__(self, shape: BundleShape = BundleShape.FILES):
        self.shape = shape

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        package = require_package(package, self.name)
        documents = csv_documents(package)

        if self.shape is BundleShape.FILES:
            files = [
                RenderedFile(
                    filename=name,
                    content=text.encode("utf-8"),
                    media_type=CSV_MEDIA_TYPE,
                )
                for name, text in documents
            ]
        else:
            readme_name = f"README_{package.tax_year}.txt"
            members = [(name, text.encode("utf-8")) for name, text in documents]
            members.append(
                (
                    readme_name,
                    readme_text(package, title="GigLedger CSV Export").encode("utf-8"),
                )
            )
            files = [
                RenderedFile(
                    filename=f"GigLedger_CSV_{package.tax_year}.zip",
                    content=build_zip(members),
                    media_type=ZIP_MEDIA_TYPE,
                )
            ]

        logger.info(
            "renderer_completed",
            renderer=self.name,
            shape=self.shape.value,
            files=[f.filename for f in files],
        )
        return files
