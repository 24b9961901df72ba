"""Validation issue models for pre-export checks."""

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """How an issue affects the export."""
    ERROR = "error"      # blocks every renderer
    WARNING = "warning"  # reported, export proceeds


class EntityCategory(str, Enum):
    """Record type an issue belongs to, in reporting order."""
    GIG = "gig"
    EXPENSE = "expense"
    MILEAGE = "mileage"


class ValidationIssue(BaseModel):
    """A single problem found in the export data."""

    model_config = {"frozen": True}

    severity: Severity = Field(description="Whether the issue blocks the export")
    category: EntityCategory = Field(description="Record type the issue belongs to")
    record_id: str = Field(description="Identifier of the offending record")
    field: str = Field(description="Name of the offending field")
    message: str = Field(description="Human-readable explanation")


class ValidationResult(BaseModel):
    """Outcome of validating one export run.

    Errors and warnings are each kept in entity order (gig, expense,
    mileage), with records in input order within an entity.
    """

    model_config = {"frozen": True}

    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[ValidationIssue, ...] = ()

    @property
    def is_valid(self) -> bool:
        """False if any blocking error exists, regardless of warnings."""
        return not self.errors

    @property
    def issues(self) -> tuple[ValidationIssue, ...]:
        """All issues, errors first."""
        return self.errors + self.warnings

    @property
    def total_issues(self) -> int:
        return len(self.errors) + len(self.warnings)

    @property
    def summary_counts(self) -> dict[str, int]:
        return {"errors": len(self.errors), "warnings": len(self.warnings)}
