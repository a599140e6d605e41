"""Schemas for bulk account import."""

from pydantic import BaseModel, ConfigDict, Field


class ImportRowError(BaseModel):
    """A CSV data row that could not be imported. row is 1-based, header excluded."""

    row: int = Field(..., ge=1)
    reason: str


class BulkImportResponse(BaseModel):
    """Outcome of POST /signup/massive. Partial success is a normal result."""

    model_config = ConfigDict(populate_by_name=True)

    msn: str
    total: int = Field(..., ge=0)
    success_count: int = Field(..., ge=0, serialization_alias="successCount")
    error_count: int = Field(..., ge=0, serialization_alias="errorCount")
    errors: list[ImportRowError] = Field(default_factory=list)
