"""Collaborator interfaces and pipeline types for foerder-pipeline.

The protocols in this package are framework-agnostic: the OCR client and the
stores are injected, so the batch and the review workflow can run against
in-memory fakes in tests.
"""

from foerder_pipeline.interfaces.base import (
    ApplicationStore,
    ExtractionClient,
    Result,
    ResultStatus,
)
from foerder_pipeline.interfaces.types import ExtractionOutcome, FileTask, ProcessingSummary

__all__ = [
    "ApplicationStore",
    "ExtractionClient",
    "ExtractionOutcome",
    "FileTask",
    "ProcessingSummary",
    "Result",
    "ResultStatus",
]
