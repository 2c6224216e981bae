"""Pipeline data types.

This module defines the payloads exchanged with the OCR collaborator and the
summary returned by the extraction batch.

Type Hierarchy:
    ExtractionOutcome - what the OCR collaborator returned for one file
    FileTask - one uploaded file scheduled for extraction
    ProcessingSummary - outcome of one batch run over an application
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtractionOutcome(BaseModel):
    """Response of the comprehensive-extraction endpoint for one file.

    Attributes:
        success: Whether the service could process the file
        extracted_values: Specific values keyed by field id plus generic
            fields (net_value, gross_value, amount, year, month, ...)
        overall_confidence: Overall confidence reported by newer service versions
        confidence_score: Confidence reported by older service versions
        extraction_method: Method the service used
        message: Error or status message from the service
    """

    model_config = ConfigDict(extra="ignore")

    success: bool = False
    extracted_values: dict[str, Any] = Field(default_factory=dict)
    overall_confidence: Optional[float] = None
    confidence_score: Optional[float] = None
    extraction_method: Optional[str] = None
    message: Optional[str] = None

    @property
    def confidence(self) -> float:
        """Overall confidence, falling back to the legacy score, then 0."""
        return self.overall_confidence or self.confidence_score or 0.0


class FileTask(BaseModel):
    """One uploaded file scheduled for extraction."""

    person_id: str
    document_type: str
    file_name: str
    file_path: str
    backend_document_type: str
    relevant_values: list[str] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """Human-readable reference used in error messages."""
        return self.file_name


class ProcessingSummary(BaseModel):
    """Outcome of one extraction batch run.

    Attributes:
        success: False only if the batch could not run at all
        processed_files: Files sent to the collaborator (including failures)
        total_files: Files under document types with uploads
        skipped_files: Files not re-sent because they were already extracted
        errors: One German message per failed file
        updated_structure: The structure as written back to the store
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    processed_files: int = Field(default=0, ge=0, alias="processedFiles")
    total_files: int = Field(default=0, ge=0, alias="totalFiles")
    skipped_files: int = Field(default=0, ge=0, alias="skippedFiles")
    errors: list[str] = Field(default_factory=list)
    updated_structure: Optional[dict[str, Any]] = Field(default=None, alias="updatedStructure")

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0
