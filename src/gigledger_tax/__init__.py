"""GigLedger tax export engine.

Turns a self-employed user's gigs, expenses, mileage and payers for one tax
year into a validated Schedule C package, and renders that package as CSV,
TXF, XLSX, PDF, JSON or a zipped tax prep pack.
"""

from gigledger_tax.config import ExportSettings, GigLedgerConfig, load_config
from gigledger_tax.engine import (
    ExportFormat,
    ExportOutcome,
    PreparedExport,
    TaxExportEngine,
)
from gigledger_tax.exceptions import (
    ConfigurationError,
    ExportContractError,
    ExportValidationError,
    RenderError,
    TaxExportError,
)
from gigledger_tax.models import ExportRequest, TaxExportPackage, ValidationResult
from gigledger_tax.normalizer import RawExportData
from gigledger_tax.schedule_c import ScheduleCLine, classify

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Engine
    "TaxExportEngine",
    "ExportRequest",
    "ExportFormat",
    "ExportOutcome",
    "PreparedExport",
    "RawExportData",
    # Results
    "TaxExportPackage",
    "ValidationResult",
    "ScheduleCLine",
    "classify",
    # Config
    "GigLedgerConfig",
    "ExportSettings",
    "load_config",
    # Errors
    "TaxExportError",
    "ExportValidationError",
    "ExportContractError",
    "RenderError",
    "ConfigurationError",
]
