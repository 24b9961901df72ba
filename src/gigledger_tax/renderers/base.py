"""Renderer contract shared by every export format.

Renderers are pure functions of a TaxExportPackage. They format amounts
that are already rounded and never recompute totals. Any class with a
matching ``render`` method satisfies the protocol, no inheritance needed.

Example Usage:
    ```python
    class MyRenderer:
        name = "my_format"

        def render(self, package: TaxExportPackage) -> list[RenderedFile]:
            return [RenderedFile(filename="out.txt", content=b"...", media_type="text/plain")]

    assert isinstance(MyRenderer(), Renderer)
    ```
"""

from enum import Enum
from typing import Any, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from ..exceptions import ExportContractError
from ..models import TaxExportPackage
from ..rounding import format_cents


# =============================================================================
# ENUMERATIONS
# =============================================================================

class BundleShape(str, Enum):
    """How a multi-file export is delivered."""

    FILES = "files"
    """One RenderedFile per document."""

    ARCHIVE = "archive"
    """All documents in a single zip archive."""


# =============================================================================
# RESULT MODELS
# =============================================================================

class RenderedFile(BaseModel):
    """An in-memory output file. The caller decides where it goes."""

    model_config = {"frozen": True}

    filename: str = Field(description="Suggested filename, including extension")
    content: bytes = Field(description="Complete file contents")
    media_type: str = Field(description="MIME type of the content")

    @property
    def size(self) -> int:
        return len(self.content)


# =============================================================================
# PROTOCOLS
# =============================================================================

@runtime_checkable
class Renderer(Protocol):
    """Protocol every export format renderer satisfies."""

    name: str

    def render(self, package: TaxExportPackage) -> list[RenderedFile]:
        """Render the package into one or more files.

        Raises:
            ExportContractError: If package is None
            RenderError: If the output could not be produced
        """
        ...


# =============================================================================
# HELPERS
# =============================================================================

def require_package(package: Optional[TaxExportPackage], renderer: str) -> TaxExportPackage:
    """Fail fast when a renderer is handed no package."""
    if package is None:
        raise ExportContractError(
            "A TaxExportPackage is required to render",
            component=renderer,
            field="package",
        )
    return package


def cell_text(value: Any) -> str:
    """Text for one cell of a delimited file.

    Decimals are printed as-is; the assembler already rounded every
    amount, so money always arrives with two places.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def money(value: Any) -> str:
    """Two-decimal text for an already-rounded amount."""
    return format_cents(value)
