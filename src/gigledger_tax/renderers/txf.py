"""TXF v042 exchange file for desktop tax software.

Layout: a header block (``V042``, ``A<program>``, ``D<date>``, ``^``) followed
by one ``TS`` record per nonzero Schedule C line, each stamped with the
export date. Income is positive; returns, cost of goods sold and expenses
are negative. Other expenses (line 27a) are written one record per
itemized entry so their labels survive the import.
"""

from decimal import Decimal
from typing import Literal, Optional

import structlog

from ..models import TaxExportPackage
from ..rounding import ZERO, format_cents
from ..schedule_c import EXPENSE_LINES, ScheduleCLine, line_definition
from .base import RenderedFile, require_package

logger = structlog.get_logger()

TxfFlavor = Literal["turbotax", "hrblock"]

TXF_VERSION = "V042"
TXF_MEDIA_TYPE = "application/x-txf"
MAX_LABEL_LENGTH = 60

_FLAVOR_NAMES = {
    "turbotax": "TurboTax",
    "hrblock": "H&R Block",
}

IMPORT_INSTRUCTIONS = (
    "TXF files can only be imported by desktop tax software (TurboTax Desktop "
    "or H&R Block Desktop). Online editions do not accept TXF; use the CSV "
    "bundle or the tax prep pack instead. In the desktop app choose "
    "File > Import > From Accounting Software, select this file, then review "
    "every imported Schedule C line against the PDF summary."
)


class TxfRenderer:
    """Render the Schedule C totals as a TXF v042 file."""

    name = "txf"

    def __init__(self, flavor: TxfFlavor = "turbotax"):
        if flavor not in _FLAVOR_NAMES:
            raise ValueError(f"Unknown TXF flavor: {flavor}")
        self.flavor = flavor

    def filename(self, tax_year: int) -> str:
        return f"gigledger_{self.flavor}_{tax_year}.txf"

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        package = require_package(package, self.name)
        text = self.render_text(package)
        rendered = RenderedFile(
            filename=self.filename(package.tax_year),
            content=text.encode("utf-8"),
            media_type=TXF_MEDIA_TYPE,
        )
        logger.info(
            "renderer_completed",
            renderer=self.name,
            flavor=self.flavor,
            files=[rendered.filename],
        )
        return [rendered]

    def render_text(self, package: TaxExportPackage) -> str:
        """The TXF document as text, lines joined with LF."""
        meta = package.metadata
        sc = package.schedule_c

        export_date = f"D{meta.created_at.strftime('%m/%d/%Y')}"
        lines = [
            TXF_VERSION,
            f"AGigLedger {meta.app_version} ({_FLAVOR_NAMES[self.flavor]} Export)",
            export_date,
            "^",
        ]

        def record(line: ScheduleCLine, amount: Decimal, number: int = 1,
                   label: Optional[str] = None) -> None:
            if amount == ZERO:
                return
            lines.extend([
                "TS",
                f"N{line_definition(line).ref_number}",
                "C1",
                f"L{number}",
                export_date,
                f"${format_cents(amount)}",
            ])
            if label:
                lines.append(f"P{label[:MAX_LABEL_LENGTH]}")
            lines.append("^")

        record(ScheduleCLine.GROSS_RECEIPTS, sc.gross_receipts)
        record(ScheduleCLine.RETURNS_ALLOWANCES, -abs(sc.returns_allowances))
        record(ScheduleCLine.COST_OF_GOODS_SOLD, -abs(sc.cogs))
        record(ScheduleCLine.OTHER_INCOME, abs(sc.other_income))

        for line in EXPENSE_LINES:
            if line is ScheduleCLine.OTHER_EXPENSES:
                continue
            record(line, -abs(sc.expense_total(line)))

        for number, item in enumerate(sc.other_expenses_breakdown, start=1):
            record(ScheduleCLine.OTHER_EXPENSES, -abs(item.amount), number, item.name)

        return "\n".join(lines) + "\n"
