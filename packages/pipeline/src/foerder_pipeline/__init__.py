"""Foerder Pipeline - OCR extraction batch, stores and review workflow."""

__version__ = "0.1.0"

from .clients import HttpExtractionClient, StaticExtractionClient
from .config import FoerderConfig, configure_logging, load_config
from .extraction import ExtractionStructureProcessor
from .interfaces import ExtractionOutcome, ProcessingSummary, Result
from .review import ReviewWorkflow, run_review
from .storage import (
    InMemoryApplicationStore,
    InMemoryProfileSource,
    JsonFileApplicationStore,
    JsonFileProfileSource,
)

__all__ = [
    "ExtractionOutcome",
    "ExtractionStructureProcessor",
    "FoerderConfig",
    "HttpExtractionClient",
    "InMemoryApplicationStore",
    "InMemoryProfileSource",
    "JsonFileApplicationStore",
    "JsonFileProfileSource",
    "ProcessingSummary",
    "Result",
    "ReviewWorkflow",
    "StaticExtractionClient",
    "configure_logging",
    "load_config",
    "run_review",
]
