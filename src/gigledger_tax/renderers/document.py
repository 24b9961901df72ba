"""Summary document for verifying an export.

The document is built as plain-text sections first, then laid out as a
letter-size PDF. Validation warnings are included word for word so the
reader sees exactly what the validator reported.
"""

from dataclasses import dataclass, field
from io import BytesIO
from xml.sax.saxutils import escape

import structlog
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..exceptions import RenderError
from ..models import TaxExportPackage
from ..rounding import format_currency
from .base import RenderedFile, require_package

logger = structlog.get_logger()

PDF_MEDIA_TYPE = "application/pdf"

DISCLAIMER = (
    "This summary is for informational purposes only and does not constitute "
    "tax advice. Verify all totals and consult a tax professional before filing."
)


@dataclass
class DocumentSection:
    """A titled block of the summary document."""
    title: str
    lines: list[str] = field(default_factory=list)

    @property
    def content(self) -> str:
        return "\n".join(self.lines)


class SummaryDocumentRenderer:
    """
    Render a human-readable Schedule C summary.

    Sections:
    - Export details (range, basis, rounding)
    - Schedule C lines
    - Other expenses breakdown
    - Mileage
    - Payers
    - Computation notes
    - Validation warnings
    """

    name = "pdf"

    def filename(self, tax_year: int) -> str:
        return f"PDF_Summary_{tax_year}.pdf"

    def build_sections(self, package: TaxExportPackage) -> list[DocumentSection]:
        package = require_package(package, self.name)
        meta = package.metadata
        sc = package.schedule_c
        ms = package.mileage_summary

        sections = [
            DocumentSection(
                title="Export Details",
                lines=[
                    f"Tax year: {meta.tax_year}",
                    f"Date range: {meta.date_start.isoformat()} to {meta.date_end.isoformat()}",
                    f"Basis: {meta.basis}",
                    f"Currency: {meta.currency}",
                    f"Rounding: {meta.rounding.precision} decimals, half away from zero",
                    f"Generated: {meta.created_at.strftime('%Y-%m-%d %H:%M %Z').strip()}",
                ],
            ),
            DocumentSection(
                title="Schedule C",
                lines=[
                    f"Line {item.line.value} {item.line_name}: "
                    f"{format_currency(item.amount_for_entry)}"
                    for item in package.schedule_c_line_items
                ]
                + [
                    f"Total expenses: {format_currency(sc.total_expenses)}",
                    f"Net profit: {format_currency(sc.net_profit)}",
                    f"Estimated self-employment tax (informational): "
                    f"{format_currency(sc.estimated_se_tax)}",
                ],
            ),
        ]

        if sc.other_expenses_breakdown:
            sections.append(
                DocumentSection(
                    title="Other Expenses",
                    lines=[
                        f"{item.name}: {format_currency(item.amount)}"
                        for item in sc.other_expenses_breakdown
                    ],
                )
            )

        sections.append(
            DocumentSection(
                title="Mileage",
                lines=[
                    f"Trips: {ms.entries_count}",
                    f"Business miles: {ms.total_business_miles}",
                    f"Standard rate: ${ms.standard_rate_used:.3f}/mile",
                    f"Deduction: {format_currency(ms.mileage_deduction_amount)}",
                ],
            )
        )

        if package.payer_summary_rows:
            sections.append(
                DocumentSection(
                    title="Payers",
                    lines=[
                        f"{r.payer_name or 'Unknown payer'}: {r.payments_count} "
                        f"payment(s), {format_currency(r.gross_amount)} gross"
                        for r in package.payer_summary_rows
                    ],
                )
            )

        if sc.notes:
            sections.append(DocumentSection(title="Notes", lines=list(sc.notes)))

        if package.validation_warnings:
            sections.append(
                DocumentSection(
                    title="Validation Warnings",
                    lines=[w.message for w in package.validation_warnings],
                )
            )

        return sections

    def render_text(self, package: TaxExportPackage) -> str:
        """Plain-text rendering of the same sections."""
        output = [f"GIGLEDGER SCHEDULE C SUMMARY ({package.tax_year})"]
        for section in self.build_sections(package):
            output.append("")
            output.append("=" * 60)
            output.append(section.title.upper())
            output.append("=" * 60)
            output.append(section.content)
        output.append("")
        output.append(DISCLAIMER)
        return "\n".join(output)

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        package = require_package(package, self.name)
        filename = self.filename(package.tax_year)
        try:
            content = self._format_pdf(package)
        except (LookupError, ValueError) as e:
            raise RenderError(
                f"Could not lay out summary document: {e}",
                renderer=self.name,
                filename=filename,
            ) from e

        logger.info("renderer_completed", renderer=self.name, files=[filename])
        return [RenderedFile(filename=filename, content=content, media_type=PDF_MEDIA_TYPE)]

    def _format_pdf(self, package: TaxExportPackage) -> bytes:
        """Lay out the sections as a PDF using reportlab."""
        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=letter,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"GigLedger Schedule C Summary {package.tax_year}",
        )

        styles = getSampleStyleSheet()
        styles.add(ParagraphStyle(
            name="ReportTitle",
            parent=styles["Heading1"],
            fontSize=18,
            spaceAfter=20,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#1a365d"),
        ))
        styles.add(ParagraphStyle(
            name="SectionHeading",
            parent=styles["Heading2"],
            fontSize=14,
            spaceAfter=12,
            spaceBefore=20,
            textColor=colors.HexColor("#2c5282"),
        ))
        styles.add(ParagraphStyle(
            name="Disclaimer",
            parent=styles["Normal"],
            fontSize=8,
            textColor=colors.grey,
            alignment=TA_CENTER,
        ))

        elements = [
            Paragraph(
                f"GIGLEDGER SCHEDULE C SUMMARY ({package.tax_year})",
                styles["ReportTitle"],
            ),
            Spacer(1, 0.2 * inch),
        ]

        for section in self.build_sections(package):
            elements.append(Paragraph(escape(section.title), styles["SectionHeading"]))
            if section.title == "Schedule C":
                elements.append(self._line_table(package))
                elements.append(Spacer(1, 0.1 * inch))
                for text in section.lines[len(package.schedule_c_line_items):]:
                    elements.append(Paragraph(escape(text), styles["Normal"]))
            else:
                for text in section.lines:
                    elements.append(Paragraph(escape(text), styles["Normal"]))

        elements.append(Spacer(1, 0.5 * inch))
        elements.append(Paragraph(DISCLAIMER, styles["Disclaimer"]))
        elements.append(Spacer(1, 0.1 * inch))
        elements.append(Paragraph(
            f"Generated by GigLedger {escape(package.metadata.app_version)}",
            styles["Disclaimer"],
        ))

        doc.build(elements)
        pdf_bytes = buffer.getvalue()
        buffer.close()

        return pdf_bytes

    @staticmethod
    def _line_table(package: TaxExportPackage) -> Table:
        data = [["Line", "Description", "Amount"]]
        data += [
            [item.line.value, item.line_name, format_currency(item.amount_for_entry)]
            for item in package.schedule_c_line_items
        ]
        table = Table(data, colWidths=[0.7 * inch, 4.3 * inch, 1.5 * inch])
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("ALIGN", (2, 0), (2, -1), "RIGHT"),
            ("LINEBELOW", (0, 0), (-1, 0), 1, colors.HexColor("#2c5282")),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f7fafc")]),
        ]))
        return table
