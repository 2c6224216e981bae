"""ExtractionClient implementations."""

from foerder_pipeline.clients.http_client import COMPREHENSIVE_EXTRACT_PATH, HttpExtractionClient
from foerder_pipeline.clients.static import StaticExtractionClient

__all__ = [
    "COMPREHENSIVE_EXTRACT_PATH",
    "HttpExtractionClient",
    "StaticExtractionClient",
]
