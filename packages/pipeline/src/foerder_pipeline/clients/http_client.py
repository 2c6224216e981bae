"""HTTP client of the document-value extraction service."""

import time
from typing import Optional

import httpx
import structlog
from pydantic import ValidationError as PydanticValidationError

from foerder_core.exceptions import ExtractionError

from foerder_pipeline.config import ExtractionServiceConfig
from foerder_pipeline.interfaces.base import Result
from foerder_pipeline.interfaces.types import ExtractionOutcome

logger = structlog.get_logger()

COMPREHENSIVE_EXTRACT_PATH = "/api/document-values/comprehensive-extract"


class HttpExtractionClient:
    """Calls the comprehensive-extract endpoint for one file at a time.

    Every failure mode (HTTP status, timeout, transport, malformed body, a
    response with success=false) is returned as a failed Result.
    """

    def __init__(
        self,
        config: ExtractionServiceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        return headers

    @staticmethod
    def _parse_outcome(response: httpx.Response, file_path: str, document_type: str) -> ExtractionOutcome:
        try:
            return ExtractionOutcome.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ExtractionError(
                "Ungültige Antwort des Extraktionsdienstes",
                file_path=file_path,
                document_type=document_type,
                status_code=response.status_code,
                details={"error": str(e)},
            ) from e

    async def extract(self, file_path: str, document_type: str) -> Result[ExtractionOutcome]:
        url = f"{self.config.base_url}{COMPREHENSIVE_EXTRACT_PATH}"
        t0 = time.monotonic()

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout,
                transport=self._transport,
            ) as client:
                resp = await client.post(
                    url,
                    headers=self._headers(),
                    data={"document_path": file_path, "document_type": document_type},
                )
                resp.raise_for_status()
            outcome = self._parse_outcome(resp, file_path, document_type)
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.warning(
                "extraction_http_error",
                file_path=file_path,
                document_type=document_type,
                status_code=status_code,
            )
            return Result.failure(
                f"HTTP {status_code} vom Extraktionsdienst",
                details={"status_code": status_code},
                duration_ms=_elapsed_ms(t0),
            )
        except httpx.TimeoutException:
            logger.warning("extraction_timeout", file_path=file_path, timeout=self.config.timeout)
            return Result.timeout(
                f"Zeitüberschreitung nach {self.config.timeout:g} Sekunden",
                duration_ms=_elapsed_ms(t0),
            )
        except httpx.TransportError as e:
            logger.warning("extraction_transport_error", file_path=file_path, error=str(e))
            return Result.failure(
                f"Extraktionsdienst nicht erreichbar: {e}",
                duration_ms=_elapsed_ms(t0),
            )
        except ExtractionError as e:
            logger.warning("extraction_invalid_response", file_path=file_path, error=str(e))
            return Result.failure(e.message, details=e.details, duration_ms=_elapsed_ms(t0))

        if not outcome.success:
            return Result.failure(
                outcome.message or "Extraktion vom Dienst abgelehnt",
                duration_ms=_elapsed_ms(t0),
            )
        return Result.success(outcome, duration_ms=_elapsed_ms(t0))


def _elapsed_ms(t0: float) -> float:
    return round((time.monotonic() - t0) * 1000, 2)
