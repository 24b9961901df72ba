"""Format renderers for the tax export package.

Every renderer reads the same immutable TaxExportPackage and returns
in-memory files:
- DelimitedBundleRenderer: six CSVs, as files or one zip (delimited.py)
- TxfRenderer: TXF v042 for desktop tax software (txf.py)
- WorkbookRenderer: XLSX workbook (workbook.py)
- SummaryDocumentRenderer: PDF summary (document.py)
- BackupRenderer: JSON snapshot, restorable with load_backup (backup.py)
- PrepPackRenderer: CSVs, PDF and README in one zip (pack.py)
"""

from gigledger_tax.renderers.base import BundleShape, RenderedFile, Renderer
from gigledger_tax.renderers.backup import BackupRenderer, load_backup
from gigledger_tax.renderers.delimited import DelimitedBundleRenderer, to_csv
from gigledger_tax.renderers.document import DocumentSection, SummaryDocumentRenderer
from gigledger_tax.renderers.pack import PrepPackRenderer
from gigledger_tax.renderers.txf import IMPORT_INSTRUCTIONS, TxfRenderer
from gigledger_tax.renderers.workbook import WorkbookRenderer

__all__ = [
    # Contract
    "Renderer",
    "RenderedFile",
    "BundleShape",
    # Renderers
    "DelimitedBundleRenderer",
    "TxfRenderer",
    "WorkbookRenderer",
    "SummaryDocumentRenderer",
    "BackupRenderer",
    "PrepPackRenderer",
    # Helpers
    "DocumentSection",
    "IMPORT_INSTRUCTIONS",
    "load_backup",
    "to_csv",
]
