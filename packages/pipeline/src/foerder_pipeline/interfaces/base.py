"""Collaborator interfaces of the extraction pipeline.

This module defines the result wrapper returned by remote calls and the
protocols (contracts) of the collaborators the pipeline talks to. The
protocols use Python's structural subtyping via typing.Protocol, so any
class with matching methods is compatible without explicit inheritance.

Example Usage:
    ```python
    from foerder_pipeline.interfaces.base import ExtractionClient, Result

    class MyOcrClient:
        async def extract(self, file_path: str, document_type: str) -> Result:
            outcome = await self._call_service(file_path, document_type)
            return Result.success(outcome)

    assert isinstance(MyOcrClient(), ExtractionClient)
    ```
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Generic, Optional, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, Field

from foerder_pipeline.interfaces.types import ExtractionOutcome


# =============================================================================
# TYPE VARIABLES
# =============================================================================

ResultT = TypeVar("ResultT")
"""Type variable for result data types."""


# =============================================================================
# ENUMERATIONS
# =============================================================================

class ResultStatus(str, Enum):
    """Status codes for remote call results."""

    SUCCESS = "success"
    """The call completed and returned usable data."""

    ERROR = "error"
    """The call failed or returned unusable data."""

    TIMEOUT = "timeout"
    """The call exceeded its time limit."""


# =============================================================================
# RESULT MODEL
# =============================================================================

class Result(BaseModel, Generic[ResultT]):
    """Explicit success-or-failure value of a remote call.

    Failures of single extraction calls are business conditions of the batch,
    so they are returned as values and threaded through to the batch summary
    instead of being raised.

    Attributes:
        status: success, error or timeout
        data: The result data if status is SUCCESS
        error: Error message otherwise
        error_details: Additional error context (status code, ...)
        duration_ms: Call duration in milliseconds
    """

    status: ResultStatus = Field(
        default=ResultStatus.SUCCESS,
        description="Outcome of the call",
    )
    data: Optional[ResultT] = Field(
        default=None,
        description="The result data of a successful call",
    )
    error: Optional[str] = Field(
        default=None,
        description="Error message if the call did not succeed",
    )
    error_details: Optional[dict[str, Any]] = Field(
        default=None,
        description="Additional error context and details",
    )
    duration_ms: Optional[float] = Field(
        default=None,
        ge=0,
        description="Call duration in milliseconds",
    )

    @property
    def is_success(self) -> bool:
        """Check if the call succeeded."""
        return self.status == ResultStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        """Check if the call failed (including timeouts)."""
        return self.status != ResultStatus.SUCCESS

    @classmethod
    def success(cls, data: Any, *, duration_ms: Optional[float] = None) -> Result[Any]:
        """Create a successful result with the given data."""
        return cls(status=ResultStatus.SUCCESS, data=data, duration_ms=duration_ms)

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        details: Optional[dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ) -> Result[Any]:
        """Create an error result with the given message."""
        return cls(
            status=ResultStatus.ERROR,
            error=message,
            error_details=details,
            duration_ms=duration_ms,
        )

    @classmethod
    def timeout(cls, message: str, *, duration_ms: Optional[float] = None) -> Result[Any]:
        """Create a timeout result with the given message."""
        return cls(status=ResultStatus.TIMEOUT, error=message, duration_ms=duration_ms)


# =============================================================================
# COLLABORATOR PROTOCOLS
# =============================================================================

@runtime_checkable
class ExtractionClient(Protocol):
    """Protocol of the OCR comprehensive-extraction collaborator.

    Notes:
        - Implementations MUST be async-compatible
        - Implementations SHOULD NOT raise; transport and service failures are
          returned as Result values with ERROR or TIMEOUT status
    """

    async def extract(self, file_path: str, document_type: str) -> Result[ExtractionOutcome]:
        """Extract financial values from one uploaded file.

        Args:
            file_path: Storage path of the uploaded file
            document_type: Backend document type (e.g. "lohn_gehaltsbescheinigung")

        Returns:
            Result holding the ExtractionOutcome, or the failure
        """
        ...


@runtime_checkable
class ApplicationStore(Protocol):
    """Protocol of the per-application JSON record store.

    Records are read and written wholesale; the last write wins.
    Implementations raise PersistenceError when the store is unreachable.
    """

    def load_extraction_structure(self, application_id: str) -> Optional[dict[str, Any]]:
        """Load the extraction structure blob, None if not created yet."""
        ...

    def save_extraction_structure(self, application_id: str, structure: dict[str, Any]) -> None:
        """Replace the extraction structure blob."""
        ...

    def load_review_data(self, application_id: str) -> Optional[dict[str, Any]]:
        """Load the review record blob, None if not created yet."""
        ...

    def save_review_data(self, application_id: str, review_data: dict[str, Any]) -> None:
        """Replace the review record blob."""
        ...
