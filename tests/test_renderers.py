"""Tests for the format renderers."""

import asyncio
import csv
import datetime as dt
import io
import json
import re
import zipfile
from decimal import Decimal

import pytest
from openpyxl import load_workbook
from PyPDF2 import PdfReader

from gigledger_tax import ExportRequest, RawExportData, TaxExportEngine, TaxExportPackage
from gigledger_tax.exceptions import ExportContractError
from gigledger_tax.renderers import (
    IMPORT_INSTRUCTIONS,
    BackupRenderer,
    BundleShape,
    DelimitedBundleRenderer,
    PrepPackRenderer,
    Renderer,
    SummaryDocumentRenderer,
    TxfRenderer,
    WorkbookRenderer,
    load_backup,
    to_csv,
)
from gigledger_tax.renderers.base import require_package

CREATED_AT = dt.datetime(2026, 1, 15, 18, 30, tzinfo=dt.timezone.utc)

CSV_NAMES = [
    "ScheduleC_Summary_2025.csv",
    "Payer_Summary_2025.csv",
    "Mileage_Summary_2025.csv",
    "Income_Detail_2025.csv",
    "Expense_Detail_2025.csv",
    "Mileage_2025.csv",
]

LONG_LABEL = "Rehearsal studio lockout plus cartage for the upright bass and drum kit"


@pytest.fixture
def package(
    engine: TaxExportEngine,
    basic_raw: RawExportData,
    request_2025: ExportRequest,
) -> TaxExportPackage:
    return engine.build_package(basic_raw, request_2025, created_at=CREATED_AT)


@pytest.fixture
def warned_package(engine: TaxExportEngine, request_2025: ExportRequest) -> TaxExportPackage:
    """A gig with no payer name, so the package carries one warning."""
    raw = RawExportData(
        gigs=[
            {
                "id": "gig-9",
                "date": "2025-06-01",
                "title": "Wedding, reception only",
                "gross_amount": "600",
                "payer_tax_id_hint": "**-***9876",
            }
        ]
    )
    return engine.build_package(raw, request_2025, created_at=CREATED_AT)


@pytest.fixture
def itemized_package(engine: TaxExportEngine, request_2025: ExportRequest) -> TaxExportPackage:
    """Two kinds of other expenses, one with a label longer than TXF allows."""
    raw = RawExportData(
        expenses=[
            {"id": "e1", "date": "2025-02-01", "category": "Equipment", "amount": "300"},
            {"id": "e2", "date": "2025-02-02", "category": LONG_LABEL, "amount": "125.50"},
            {"id": "e3", "date": "2025-02-03", "category": "Equipment", "amount": "20"},
        ],
        mileage=[
            {
                "id": "m1",
                "date": "2025-02-01",
                "miles": "100",
                "purpose": "Gig",
                "origin": "Home",
                "destination": "Club",
            }
        ],
    )
    return engine.build_package(raw, request_2025, created_at=CREATED_AT)


def read_csv(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


def normalized_pdf_text(content: bytes) -> str:
    reader = PdfReader(io.BytesIO(content))
    text = " ".join(page.extract_text() or "" for page in reader.pages)
    return re.sub(r"\s+", " ", text)


class TestRendererContract:
    """Test suite for the shared renderer contract."""

    @pytest.mark.parametrize(
        "renderer",
        [
            DelimitedBundleRenderer(),
            TxfRenderer(),
            WorkbookRenderer(),
            SummaryDocumentRenderer(),
            BackupRenderer(),
            PrepPackRenderer(),
        ],
    )
    def test_renderers_satisfy_protocol(self, renderer):
        assert isinstance(renderer, Renderer)

    @pytest.mark.parametrize(
        "renderer",
        [DelimitedBundleRenderer(), TxfRenderer(), WorkbookRenderer(), BackupRenderer()],
    )
    def test_missing_package_is_contract_error(self, renderer):
        with pytest.raises(ExportContractError) as exc_info:
            renderer.render(None)

        assert exc_info.value.field == "package"
        assert exc_info.value.component == renderer.name

    def test_require_package_passes_package_through(self, package: TaxExportPackage):
        assert require_package(package, "csv") is package


class TestToCsv:
    """Test suite for CSV text quoting."""

    def test_plain_fields_are_not_quoted(self):
        assert to_csv(["a", "b"], [["x", "1.00"]]) == "a,b\nx,1.00\n"

    def test_special_characters_are_quoted(self):
        text = to_csv(["name"], [['Smith, "Jr"\nline two']])

        assert text == 'name\n"Smith, ""Jr""\nline two"\n'
        assert read_csv(text) == [["name"], ['Smith, "Jr"\nline two']]

    def test_bare_carriage_return_is_quoted(self):
        text = to_csv(["h"], [["a\rb"], ["plain"]])

        assert text == 'h\n"a\rb"\nplain\n'
        assert read_csv(text) == [["h"], ["a\rb"], ["plain"]]

    def test_none_and_bool_cells(self):
        assert to_csv(["a", "b"], [[None, True]]) == "a,b\n,true\n"

    def test_header_only_when_no_rows(self):
        assert to_csv(["a", "b"], []) == "a,b\n"


class TestDelimitedBundleRenderer:
    """Test suite for the CSV bundle."""

    def test_six_files_in_order(self, package: TaxExportPackage):
        files = DelimitedBundleRenderer().render(package)

        assert [f.filename for f in files] == CSV_NAMES
        assert all(f.media_type == "text/csv" for f in files)

    def test_schedule_c_summary_rows(self, package: TaxExportPackage):
        files = {f.filename: f for f in DelimitedBundleRenderer().render(package)}
        rows = read_csv(files["ScheduleC_Summary_2025.csv"].content.decode("utf-8"))

        assert rows[0][:2] == ["schedule_c_line", "schedule_c_ref_number"]
        by_line = {row[0]: row for row in rows[1:]}
        assert by_line["1"][4:6] == ["1050.00", "1050.00"]
        assert by_line["10"][4:6] == ["-50.00", "50.00"]
        assert by_line["24b"][1] == "294"
        assert by_line["24b"][4:6] == ["-40.00", "40.00"]

    def test_description_with_comma_survives(self, warned_package: TaxExportPackage):
        files = {f.filename: f for f in DelimitedBundleRenderer().render(warned_package)}
        rows = read_csv(files["Income_Detail_2025.csv"].content.decode("utf-8"))

        header = rows[0]
        assert rows[1][header.index("description")] == "Wedding, reception only"

    def test_expense_detail_columns(self, package: TaxExportPackage):
        files = {f.filename: f for f in DelimitedBundleRenderer().render(package)}
        rows = read_csv(files["Expense_Detail_2025.csv"].content.decode("utf-8"))
        record = dict(zip(rows[0], rows[1]))

        assert record["gl_category"] == "Meals & Entertainment"
        assert record["schedule_c_line"] == "24b"
        assert record["amount"] == "80.00"
        assert record["deductible_amount"] == "40.00"
        assert record["potential_asset_review"] == "false"

    def test_archive_shape(self, package: TaxExportPackage):
        files = DelimitedBundleRenderer(shape=BundleShape.ARCHIVE).render(package)

        assert [f.filename for f in files] == ["GigLedger_CSV_2025.zip"]
        with zipfile.ZipFile(io.BytesIO(files[0].content)) as archive:
            assert archive.namelist() == CSV_NAMES + ["README_2025.txt"]
            readme = archive.read("README_2025.txt").decode("utf-8")

        assert "NET PROFIT:               $960.00" in readme
        assert "WARNINGS" not in readme

    def test_readme_lists_warnings(self, warned_package: TaxExportPackage):
        files = DelimitedBundleRenderer(shape=BundleShape.ARCHIVE).render(warned_package)
        with zipfile.ZipFile(io.BytesIO(files[0].content)) as archive:
            readme = archive.read("README_2025.txt").decode("utf-8")

        assert "WARNINGS" in readme
        assert "is missing payer name" in readme


class TestTxfRenderer:
    """Test suite for the TXF v042 renderer."""

    def test_header(self, package: TaxExportPackage):
        lines = TxfRenderer().render_text(package).splitlines()

        assert lines[:4] == [
            "V042",
            "AGigLedger 1.0.0 (TurboTax Export)",
            "D01/15/2026",
            "^",
        ]

    def test_hrblock_header(self, package: TaxExportPackage):
        files = TxfRenderer(flavor="hrblock").render(package)

        assert files[0].filename == "gigledger_hrblock_2025.txf"
        assert "(H&R Block Export)" in files[0].content.decode("utf-8")

    def test_unknown_flavor_rejected(self):
        with pytest.raises(ValueError):
            TxfRenderer(flavor="taxact")

    def test_records(self, package: TaxExportPackage):
        text = TxfRenderer().render_text(package)

        assert "TS\nN293\nC1\nL1\nD01/15/2026\n$1050.00\n^\n" in text
        assert "TS\nN307\nC1\nL1\nD01/15/2026\n$-50.00\n^\n" in text
        assert "TS\nN294\nC1\nL1\nD01/15/2026\n$-40.00\n^\n" in text
        assert text.endswith("^\n")

    def test_every_record_is_dated(self, itemized_package: TaxExportPackage):
        blocks = TxfRenderer().render_text(itemized_package).split("TS\n")[1:]

        assert len(blocks) == 3
        assert all(block.splitlines()[3] == "D01/15/2026" for block in blocks)

    def test_zero_lines_are_skipped(self, package: TaxExportPackage):
        text = TxfRenderer().render_text(package)

        assert "N296" not in text
        assert "N295" not in text
        assert "N304" not in text

    def test_other_expenses_itemized(self, itemized_package: TaxExportPackage):
        text = TxfRenderer().render_text(itemized_package)

        assert "TS\nN302\nC1\nL1\nD01/15/2026\n$-320.00\nPEquipment/Gear\n^\n" in text
        assert f"TS\nN302\nC1\nL2\nD01/15/2026\n$-125.50\nP{LONG_LABEL[:60]}\n^\n" in text
        assert LONG_LABEL not in text
        assert "TS\nN306\nC1\nL1\nD01/15/2026\n$-67.00\n^\n" in text

    def test_import_instructions_name_desktop_software(self):
        assert "desktop" in IMPORT_INSTRUCTIONS.lower()


class TestWorkbookRenderer:
    """Test suite for the XLSX renderer."""

    def test_sheet_names(self, package: TaxExportPackage):
        files = WorkbookRenderer().render(package)
        workbook = load_workbook(io.BytesIO(files[0].content))

        assert files[0].filename == "GigLedger_Export_2025.xlsx"
        assert workbook.sheetnames == [
            "Schedule C Summary",
            "Payer Summary",
            "Mileage Summary",
            "Income",
            "Expenses",
            "Mileage",
            "Other Expenses Breakdown",
            "Notes",
        ]

    def test_amounts_are_numeric(self, package: TaxExportPackage):
        files = WorkbookRenderer().render(package)
        sheet = load_workbook(io.BytesIO(files[0].content))["Schedule C Summary"]
        header = [cell.value for cell in sheet[1]]
        first = [cell.value for cell in sheet[2]]

        amount = first[header.index("amount_for_entry")]
        assert isinstance(amount, (int, float))
        assert amount == 1050

    def test_build_sheets_keeps_decimals(self, itemized_package: TaxExportPackage):
        sheets = WorkbookRenderer().build_sheets(itemized_package)

        assert sheets["Other Expenses Breakdown"] == [
            ["name", "amount"],
            ["Equipment/Gear", Decimal("320.00")],
            [LONG_LABEL, Decimal("125.50")],
        ]

    def test_notes_sheet_carries_warnings(self, warned_package: TaxExportPackage):
        sheets = WorkbookRenderer().build_sheets(warned_package)
        warnings = [row[1] for row in sheets["Notes"] if row[0] == "warning"]

        assert len(warnings) == 1
        assert "is missing payer name" in warnings[0]


class TestSummaryDocumentRenderer:
    """Test suite for the PDF summary."""

    def test_renders_pdf(self, package: TaxExportPackage):
        files = SummaryDocumentRenderer().render(package)

        assert files[0].filename == "PDF_Summary_2025.pdf"
        assert files[0].media_type == "application/pdf"
        assert files[0].content.startswith(b"%PDF")

    def test_sections(self, itemized_package: TaxExportPackage):
        titles = [s.title for s in SummaryDocumentRenderer().build_sections(itemized_package)]

        assert titles == ["Export Details", "Schedule C", "Other Expenses", "Mileage", "Notes"]

    def test_warning_text_is_verbatim(self, warned_package: TaxExportPackage):
        renderer = SummaryDocumentRenderer()
        message = warned_package.validation_warnings[0].message

        assert message in renderer.render_text(warned_package)

        pdf_text = normalized_pdf_text(renderer.render(warned_package)[0].content)
        assert "Validation Warnings" in pdf_text
        assert "is missing payer name" in pdf_text

    def test_net_profit_in_pdf(self, package: TaxExportPackage):
        pdf_text = normalized_pdf_text(SummaryDocumentRenderer().render(package)[0].content)

        assert "Net profit: $960.00" in pdf_text


class TestBackupRenderer:
    """Test suite for the JSON backup."""

    def test_round_trip(self, itemized_package: TaxExportPackage):
        files = BackupRenderer().render(itemized_package)

        assert files[0].filename == "GigLedger_Backup_2025.json"
        assert load_backup(files[0].content) == itemized_package

    def test_is_readable_json(self, package: TaxExportPackage):
        data = json.loads(BackupRenderer().render(package)[0].content)

        assert data["metadata"]["schema_version"] == "2026-01-26.1"
        assert data["metadata"]["tax_year"] == 2025

    def test_invalid_backup(self):
        with pytest.raises(ExportContractError) as exc_info:
            load_backup(b'{"metadata": {}}')

        assert exc_info.value.component == "backup"


class TestPrepPackRenderer:
    """Test suite for the tax prep pack archive."""

    def test_members(self, package: TaxExportPackage):
        files = PrepPackRenderer().render(package)

        assert files[0].filename == "gigledger_tax_prep_pack_2025.zip"
        with zipfile.ZipFile(io.BytesIO(files[0].content)) as archive:
            names = archive.namelist()
            readme = archive.read("README_2025.txt").decode("utf-8")
            pdf = archive.read("PDF_Summary_2025.pdf")

        assert names == CSV_NAMES + ["PDF_Summary_2025.pdf", "README_2025.txt"]
        assert "PDF_Summary_2025.pdf - Summary document for verification" in readme
        assert pdf.startswith(b"%PDF")

    def test_render_async_matches_render(self, package: TaxExportPackage):
        renderer = PrepPackRenderer()
        files = asyncio.run(renderer.render_async(package))

        with zipfile.ZipFile(io.BytesIO(files[0].content)) as archive:
            assert archive.namelist() == CSV_NAMES + ["PDF_Summary_2025.pdf", "README_2025.txt"]
