"""Extraction client answering from a fixed table of outcomes.

Used for local runs without the OCR service and as the deterministic
collaborator in tests.
"""

import asyncio
from typing import Optional, Union

from foerder_pipeline.interfaces.base import Result
from foerder_pipeline.interfaces.types import ExtractionOutcome

CannedResponse = Union[ExtractionOutcome, Result, Exception]


class StaticExtractionClient:
    """Return canned outcomes keyed by file path.

    A canned entry may be an ExtractionOutcome (wrapped into a successful
    Result, or a failed one when its success flag is false), a ready Result,
    or an exception that is raised from extract().

    Attributes:
        calls: (file_path, document_type) pairs in call order
        max_in_flight: Highest number of concurrently running calls seen
    """

    def __init__(
        self,
        responses: Optional[dict[str, CannedResponse]] = None,
        default: Optional[CannedResponse] = None,
        delay: float = 0.0,
    ) -> None:
        self.responses = dict(responses or {})
        self.default = default
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self.max_in_flight = 0
        self._in_flight = 0

    async def extract(self, file_path: str, document_type: str) -> Result[ExtractionOutcome]:
        self.calls.append((file_path, document_type))
        self._in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self._in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self.responses.get(file_path, self.default)
        finally:
            self._in_flight -= 1

        if response is None:
            return Result.failure(f"Keine Antwort hinterlegt für {file_path}")
        if isinstance(response, Exception):
            raise response
        if isinstance(response, Result):
            return response
        if not response.success:
            return Result.failure(response.message or "Extraktion vom Dienst abgelehnt")
        return Result.success(response)
