"""Export orchestration.

normalize -> validate -> aggregate -> assemble -> render

The engine owns the order of the stages. Blocking validation errors stop
the run before any totals are computed or any renderer is invoked.

Usage:
    engine = TaxExportEngine()
    request = engine.request(2025)
    outcome = engine.run(raw, request, formats=[ExportFormat.CSV, ExportFormat.TXF])
    if outcome.blocked:
        show(outcome.validation.errors)
"""

import asyncio
import datetime as dt
from enum import Enum
from typing import Any, Iterable, Optional, Union

import structlog
from pydantic import BaseModel

from .aggregator import AggregationResult, ScheduleAggregator
from .assembler import PackageAssembler
from .config import GigLedgerConfig
from .exceptions import ExportValidationError, RenderError, TaxExportError
from .models import (
    ExportRequest,
    NormalizedRecords,
    TaxExportPackage,
    ValidationResult,
)
from .normalizer import RawExportData, RecordNormalizer
from .renderers import (
    BackupRenderer,
    BundleShape,
    DelimitedBundleRenderer,
    PrepPackRenderer,
    RenderedFile,
    Renderer,
    SummaryDocumentRenderer,
    TxfRenderer,
    WorkbookRenderer,
)
from .validator import ExportValidator, summarize

logger = structlog.get_logger()


class ExportFormat(str, Enum):
    """Output formats the engine can render."""

    CSV = "csv"
    CSV_ZIP = "csv_zip"
    TXF = "txf"
    XLSX = "xlsx"
    PDF = "pdf"
    JSON = "json"
    PREP_PACK = "prep_pack"


# Renderers whose layout work is CPU-bound run in worker threads under run_async
_THREADED_FORMATS = frozenset({ExportFormat.XLSX, ExportFormat.PDF})


class PreparedExport(BaseModel):
    """Everything computed before rendering."""

    model_config = {"frozen": True}

    request: ExportRequest
    records: NormalizedRecords
    validation: ValidationResult
    summary: str
    aggregation: Optional[AggregationResult] = None
    package: Optional[TaxExportPackage] = None

    @property
    def blocked(self) -> bool:
        return not self.validation.is_valid


class ExportOutcome(BaseModel):
    """Result of one export run."""

    model_config = {"frozen": True}

    validation: ValidationResult
    summary: str
    package: Optional[TaxExportPackage] = None
    files: tuple[RenderedFile, ...] = ()

    @property
    def blocked(self) -> bool:
        return self.package is None

    def file(self, filename: str) -> RenderedFile:
        """Look up a rendered file by name."""
        for rendered in self.files:
            if rendered.filename == filename:
                return rendered
        raise KeyError(filename)


RawInput = Union[RawExportData, dict[str, Any]]


class TaxExportEngine:
    """Run exports for one user's data.

    The engine holds configuration only; every run is independent and
    shares no mutable state with other runs.
    """

    def __init__(self, config: Optional[GigLedgerConfig] = None):
        self.config = config or GigLedgerConfig()
        self.normalizer = RecordNormalizer()
        self.validator = ExportValidator()
        self.assembler = PackageAssembler(
            asset_review_threshold=self.config.export.asset_review_threshold,
            app_version=self.config.export.app_version,
        )

    def request(self, tax_year: int, **overrides: Any) -> ExportRequest:
        """Build a request from configured defaults."""
        return ExportRequest.from_settings(tax_year, self.config.export, **overrides)

    def renderer_for(self, export_format: ExportFormat) -> Renderer:
        """Create the renderer for a format."""
        export_format = ExportFormat(export_format)
        if export_format is ExportFormat.CSV:
            return DelimitedBundleRenderer(shape=BundleShape.FILES)
        if export_format is ExportFormat.CSV_ZIP:
            return DelimitedBundleRenderer(shape=BundleShape.ARCHIVE)
        if export_format is ExportFormat.TXF:
            return TxfRenderer(flavor=self.config.export.txf_flavor)
        if export_format is ExportFormat.XLSX:
            return WorkbookRenderer()
        if export_format is ExportFormat.PDF:
            return SummaryDocumentRenderer()
        if export_format is ExportFormat.JSON:
            return BackupRenderer()
        return PrepPackRenderer()

    # -------------------------------------------------------------------------
    # Pipeline
    # -------------------------------------------------------------------------

    def prepare(
        self,
        raw: RawInput,
        request: ExportRequest,
        *,
        created_at: Optional[dt.datetime] = None,
    ) -> PreparedExport:
        """Normalize and validate; aggregate and assemble only if valid.

        Args:
            raw: Rows fetched for the user and period
            request: Run parameters
            created_at: Timestamp for package metadata (default: now, UTC)

        Returns:
            PreparedExport; ``package`` is None when validation blocked
        """
        if isinstance(raw, dict):
            raw = RawExportData(**raw)

        records = self.normalizer.normalize(raw)
        validation = self.validator.validate(records, request)
        summary = summarize(validation)

        if not validation.is_valid:
            logger.warning(
                "export_blocked",
                tax_year=request.tax_year,
                errors=len(validation.errors),
                fields=sorted({e.field for e in validation.errors}),
            )
            return PreparedExport(
                request=request,
                records=records,
                validation=validation,
                summary=summary,
            )

        aggregation = ScheduleAggregator().aggregate(records, request)
        package = self.assembler.assemble(
            records,
            aggregation,
            request,
            validation=validation,
            created_at=created_at,
        )
        return PreparedExport(
            request=request,
            records=records,
            validation=validation,
            summary=summary,
            aggregation=aggregation,
            package=package,
        )

    def build_package(
        self,
        raw: RawInput,
        request: ExportRequest,
        *,
        created_at: Optional[dt.datetime] = None,
    ) -> TaxExportPackage:
        """Build the package or fail with every blocking error.

        Raises:
            ExportValidationError: If validation found blocking errors
        """
        prepared = self.prepare(raw, request, created_at=created_at)
        if prepared.package is None:
            raise ExportValidationError(prepared.summary, result=prepared.validation)
        return prepared.package

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    @staticmethod
    def _formats(formats: Optional[Iterable[ExportFormat]]) -> list[ExportFormat]:
        if formats is None:
            return list(ExportFormat)
        return [ExportFormat(f) for f in formats]

    def _render_one(
        self,
        export_format: ExportFormat,
        package: TaxExportPackage,
    ) -> list[RenderedFile]:
        renderer = self.renderer_for(export_format)
        try:
            return renderer.render(package)
        except TaxExportError:
            raise
        except Exception as e:
            raise RenderError(
                f"{export_format.value} renderer failed: {e}",
                renderer=renderer.name,
            ) from e

    async def _render_one_async(
        self,
        export_format: ExportFormat,
        package: TaxExportPackage,
    ) -> list[RenderedFile]:
        if export_format is ExportFormat.PREP_PACK:
            renderer = PrepPackRenderer()
            try:
                return await renderer.render_async(package)
            except TaxExportError:
                raise
            except Exception as e:
                raise RenderError(
                    f"{export_format.value} renderer failed: {e}",
                    renderer=renderer.name,
                ) from e
        if export_format in _THREADED_FORMATS:
            return await asyncio.to_thread(self._render_one, export_format, package)
        return self._render_one(export_format, package)

    def run(
        self,
        raw: RawInput,
        request: ExportRequest,
        formats: Optional[Iterable[ExportFormat]] = None,
        *,
        created_at: Optional[dt.datetime] = None,
    ) -> ExportOutcome:
        """Run the full pipeline and render the requested formats.

        Args:
            raw: Rows fetched for the user and period
            request: Run parameters
            formats: Formats to render (default: all)
            created_at: Timestamp for package metadata

        Returns:
            ExportOutcome; when blocked, ``package`` is None and no file is rendered

        Raises:
            RenderError: If a renderer fails
        """
        prepared = self.prepare(raw, request, created_at=created_at)
        if prepared.package is None:
            return ExportOutcome(validation=prepared.validation, summary=prepared.summary)

        files: list[RenderedFile] = []
        for export_format in self._formats(formats):
            files.extend(self._render_one(export_format, prepared.package))

        logger.info(
            "export_completed",
            tax_year=request.tax_year,
            files=[f.filename for f in files],
            warnings=len(prepared.validation.warnings),
        )
        return ExportOutcome(
            validation=prepared.validation,
            summary=prepared.summary,
            package=prepared.package,
            files=tuple(files),
        )

    async def run_async(
        self,
        raw: RawInput,
        request: ExportRequest,
        formats: Optional[Iterable[ExportFormat]] = None,
        *,
        created_at: Optional[dt.datetime] = None,
    ) -> ExportOutcome:
        """Like run, but renderers run concurrently.

        Files are returned in the order the formats were requested.
        """
        prepared = self.prepare(raw, request, created_at=created_at)
        if prepared.package is None:
            return ExportOutcome(validation=prepared.validation, summary=prepared.summary)

        results = await asyncio.gather(*(
            self._render_one_async(export_format, prepared.package)
            for export_format in self._formats(formats)
        ))
        files = [f for rendered in results for f in rendered]

        logger.info(
            "export_completed",
            tax_year=request.tax_year,
            files=[f.filename for f in files],
            warnings=len(prepared.validation.warnings),
        )
        return ExportOutcome(
            validation=prepared.validation,
            summary=prepared.summary,
            package=prepared.package,
            files=tuple(files),
        )
