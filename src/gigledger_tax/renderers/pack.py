"""Tax prep pack: every CSV, the PDF summary and a README in one archive."""

import asyncio
from typing import Optional

import structlog

from ..models import TaxExportPackage
from .base import RenderedFile, require_package
from .delimited import ZIP_MEDIA_TYPE, build_zip, csv_documents, readme_text
from .document import SummaryDocumentRenderer

logger = structlog.get_logger()


class PrepPackRenderer:
    """Bundle the preparer-facing files into a single zip.

    Each member is produced by its own renderer from the same package, so a
    member never depends on another member's output.
    """

    name = "prep_pack"

    def __init__(self, document_renderer: Optional[SummaryDocumentRenderer] = None):
        self.document_renderer = document_renderer or SummaryDocumentRenderer()

    def filename(self, tax_year: int) -> str:
        return f"gigledger_tax_prep_pack_{tax_year}.zip"

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        package = require_package(package, self.name)
        pdf = self.document_renderer.render(package)[0]
        return [self._bundle(package, pdf)]

    async def render_async(self, package: TaxExportPackage) -> list[RenderedFile]:
        """Same output as render, with PDF layout moved off the event loop."""
        package = require_package(package, self.name)
        pdf_files = await asyncio.to_thread(self.document_renderer.render, package)
        return [self._bundle(package, pdf_files[0])]

    def _bundle(self, package: TaxExportPackage, pdf: RenderedFile) -> RenderedFile:
        year = package.tax_year
        members = [(name, text.encode("utf-8")) for name, text in csv_documents(package)]
        members.append((pdf.filename, pdf.content))
        members.append(
            (
                f"README_{year}.txt",
                readme_text(
                    package,
                    title="GigLedger Tax Prep Pack",
                    pdf_filename=pdf.filename,
                ).encode("utf-8"),
            )
        )

        rendered = RenderedFile(
            filename=self.filename(year),
            content=build_zip(members),
            media_type=ZIP_MEDIA_TYPE,
        )
        logger.info(
            "renderer_completed",
            renderer=self.name,
            files=[rendered.filename],
            members=[name for name, _ in members],
        )
        return rendered
