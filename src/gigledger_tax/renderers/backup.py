"""JSON backup snapshot of the full package."""

import structlog
from pydantic import ValidationError

from ..exceptions import ExportContractError
from ..models import TaxExportPackage
from .base import RenderedFile, require_package

logger = structlog.get_logger()

JSON_MEDIA_TYPE = "application/json"


class BackupRenderer:
    """Serialize the package losslessly so it can be restored later."""

    name = "json"

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        package = require_package(package, self.name)
        filename = f"GigLedger_Backup_{package.tax_year}.json"
        content = package.model_dump_json(indent=2).encode("utf-8")
        logger.info("renderer_completed", renderer=self.name, files=[filename])
        return [RenderedFile(filename=filename, content=content, media_type=JSON_MEDIA_TYPE)]


def load_backup(content: bytes) -> TaxExportPackage:
    """Restore a package written by BackupRenderer.

    Raises:
        ExportContractError: If the content is not a valid package snapshot
    """
    try:
        return TaxExportPackage.model_validate_json(content)
    except ValidationError as e:
        raise ExportContractError(
            f"Backup is not a valid tax export package: {e.error_count()} error(s)",
            component="backup",
            details={"errors": e.errors(include_url=False)},
        ) from e
