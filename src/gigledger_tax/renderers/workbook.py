"""XLSX workbook with one sheet per export table."""

import io
from typing import Any

import structlog
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from ..exceptions import RenderError
from ..models import TaxExportPackage
from ..schedule_c import line_definition
from .base import RenderedFile, require_package
from .delimited import (
    EXPENSE_HEADERS,
    INCOME_HEADERS,
    MILEAGE_HEADERS,
    MILEAGE_SUMMARY_HEADERS,
    PAYER_HEADERS,
    SCHEDULE_C_HEADERS,
)

logger = structlog.get_logger()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

Sheet = list[list[Any]]


def autosize(ws, max_width: int = 60) -> None:
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        best = 0
        for row in range(1, ws.max_row + 1):
            v = ws.cell(row=row, column=col).value
            if v is None:
                continue
            best = max(best, len(str(v)))
        ws.column_dimensions[letter].width = min(max(10, best + 2), max_width)


class WorkbookRenderer:
    """Render the package as a multi-sheet workbook.

    Amount cells are numeric so spreadsheet formulas work on them.
    """

    name = "xlsx"

    def build_sheets(self, package: TaxExportPackage) -> dict[str, Sheet]:
        """Sheet name to rows (header row first), in workbook order."""
        package = require_package(package, self.name)
        sc = package.schedule_c
        ms = package.mileage_summary

        other_note = (
            "See 'Other Expenses Breakdown' sheet for itemized detail"
            if sc.other_expenses_breakdown
            else None
        )
        schedule_rows: Sheet = [list(SCHEDULE_C_HEADERS)]
        for item in package.schedule_c_line_items:
            note = item.notes
            if item.line.value == "27a" and other_note:
                note = other_note
            schedule_rows.append([
                item.line.value,
                item.ref_number,
                item.line_name,
                item.description,
                item.raw_signed_amount,
                item.amount_for_entry,
                note,
            ])

        payer_rows: Sheet = [list(PAYER_HEADERS)]
        payer_rows += [
            [
                r.payer_id,
                r.payer_name,
                r.payer_email,
                r.payer_phone,
                r.payments_count,
                r.gross_amount,
                r.fees_total,
                r.net_amount,
                r.first_payment_date,
                r.last_payment_date,
                r.notes,
            ]
            for r in package.payer_summary_rows
        ]

        mileage_summary_rows: Sheet = [
            list(MILEAGE_SUMMARY_HEADERS),
            [
                ms.tax_year,
                ms.total_business_miles,
                ms.standard_rate_used,
                ms.mileage_deduction_amount,
                ms.entries_count,
                ms.is_estimate_any,
                ms.notes,
            ],
        ]

        income_rows: Sheet = [list(INCOME_HEADERS)]
        income_rows += [
            [
                r.id,
                r.source,
                r.received_date,
                r.payer_id,
                r.payer_name,
                r.payer_email,
                r.payer_phone,
                r.description,
                r.amount,
                r.fees,
                r.net_amount,
                r.related_gig_id,
            ]
            for r in package.income_rows
        ]

        expense_rows: Sheet = [list(EXPENSE_HEADERS)]
        expense_rows += [
            [
                r.id,
                r.date,
                r.merchant,
                r.description,
                r.category,
                r.line.value,
                line_definition(r.line).ref_number,
                r.amount,
                r.deductible_fraction,
                r.deductible_amount,
                r.receipt_url,
                r.notes,
                r.related_gig_id,
                r.potential_asset_review,
                r.potential_asset_reason,
            ]
            for r in package.expense_rows
        ]

        mileage_rows: Sheet = [list(MILEAGE_HEADERS)]
        mileage_rows += [
            [
                r.id,
                r.date,
                r.origin,
                r.destination,
                r.miles,
                r.rate,
                r.deduction_amount,
                r.purpose,
                r.is_estimate,
                r.notes,
                r.related_gig_id,
            ]
            for r in package.mileage_rows
        ]

        other_rows: Sheet = [["name", "amount"]]
        other_rows += [[i.name, i.amount] for i in sc.other_expenses_breakdown]

        meta = package.metadata
        notes_rows: Sheet = [
            ["item", "value"],
            ["tax_year", meta.tax_year],
            ["date_start", meta.date_start],
            ["date_end", meta.date_end],
            ["basis", meta.basis],
            ["currency", meta.currency],
            ["rounding", f"{meta.rounding.mode}, {meta.rounding.precision} decimals"],
            ["schema_version", meta.schema_version],
            ["net_profit", sc.net_profit],
            ["se_tax_basis", sc.se_tax_basis],
            ["estimated_se_tax", sc.estimated_se_tax],
        ]
        notes_rows += [["note", note] for note in sc.notes]
        notes_rows += [["warning", w.message] for w in package.validation_warnings]

        return {
            "Schedule C Summary": schedule_rows,
            "Payer Summary": payer_rows,
            "Mileage Summary": mileage_summary_rows,
            "Income": income_rows,
            "Expenses": expense_rows,
            "Mileage": mileage_rows,
            "Other Expenses Breakdown": other_rows,
            "Notes": notes_rows,
        }

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        package = require_package(package, self.name)
        filename = f"GigLedger_Export_{package.tax_year}.xlsx"

        wb = Workbook()
        wb.remove(wb.active)
        for title, rows in self.build_sheets(package).items():
            ws = wb.create_sheet(title)
            for row in rows:
                ws.append(row)
            for cell in ws[1]:
                cell.font = Font(bold=True)
            ws.freeze_panes = "A2"
            autosize(ws)

        buffer = io.BytesIO()
        try:
            wb.save(buffer)
        except (TypeError, ValueError) as e:
            raise RenderError(
                f"Could not write workbook: {e}",
                renderer=self.name,
                filename=filename,
            ) from e

        logger.info("renderer_completed", renderer=self.name, files=[filename])
        return [
            RenderedFile(
                filename=filename,
                content=buffer.getvalue(),
                media_type=XLSX_MEDIA_TYPE,
            )
        ]
