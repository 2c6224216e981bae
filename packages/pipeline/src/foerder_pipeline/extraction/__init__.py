"""OCR extraction batch and document-type mapping tables."""

from foerder_pipeline.extraction.mapping import (
    BACKEND_DOCUMENT_TYPES,
    DEFAULT_BACKEND_DOCUMENT_TYPE,
    GENERIC_VALUE_MAPPINGS,
    backend_document_type,
    map_extracted_values,
)
from foerder_pipeline.extraction.processor import ExtractionStructureProcessor

__all__ = [
    "BACKEND_DOCUMENT_TYPES",
    "DEFAULT_BACKEND_DOCUMENT_TYPE",
    "GENERIC_VALUE_MAPPINGS",
    "ExtractionStructureProcessor",
    "backend_document_type",
    "map_extracted_values",
]
