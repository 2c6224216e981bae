"""JSON record stores for applications and resident profiles.

Directory layout of the file stores:

    {data_dir}/applications/{application_id}/extraction_structure.json
    {data_dir}/applications/{application_id}/review_data.json
    {data_dir}/residents/{resident_id}/user_data.json
    {data_dir}/residents/{resident_id}/user_financials.json

Records are read and replaced wholesale. A write goes to a temporary file
first and is moved into place, so readers never see a half-written record.
"""

import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from foerder_core.exceptions import PersistenceError
from foerder_core.models import ApplicantProfile, FinancialRecord

logger = structlog.get_logger()

EXTRACTION_STRUCTURE_FILE = "extraction_structure.json"
REVIEW_DATA_FILE = "review_data.json"
USER_DATA_FILE = "user_data.json"
USER_FINANCIALS_FILE = "user_financials.json"


# =============================================================================
# JSON FILE HELPERS
# =============================================================================

def _read_json(path: Path, key: str) -> Optional[dict[str, Any]]:
    if not path.exists():
        return None
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise PersistenceError(
            f"Datensatz konnte nicht gelesen werden: {path.name}",
            key=key,
            record=path.name,
            details={"error": str(e)},
        ) from e
    if not isinstance(data, dict):
        raise PersistenceError(
            f"Datensatz ist kein JSON-Objekt: {path.name}",
            key=key,
            record=path.name,
        )
    return data


def _write_json(path: Path, key: str, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
    except (OSError, TypeError, ValueError) as e:
        raise PersistenceError(
            f"Datensatz konnte nicht gespeichert werden: {path.name}",
            key=key,
            record=path.name,
            details={"error": str(e)},
        ) from e
    logger.debug("record_saved", key=key, record=path.name)


# =============================================================================
# APPLICATION STORES
# =============================================================================

class JsonFileApplicationStore:
    """ApplicationStore persisting each record as a JSON file."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def _path(self, application_id: str, record: str) -> Path:
        return self.data_dir / "applications" / application_id / record

    def load_extraction_structure(self, application_id: str) -> Optional[dict[str, Any]]:
        return _read_json(self._path(application_id, EXTRACTION_STRUCTURE_FILE), application_id)

    def save_extraction_structure(self, application_id: str, structure: dict[str, Any]) -> None:
        _write_json(self._path(application_id, EXTRACTION_STRUCTURE_FILE), application_id, structure)

    def load_review_data(self, application_id: str) -> Optional[dict[str, Any]]:
        return _read_json(self._path(application_id, REVIEW_DATA_FILE), application_id)

    def save_review_data(self, application_id: str, review_data: dict[str, Any]) -> None:
        _write_json(self._path(application_id, REVIEW_DATA_FILE), application_id, review_data)


class InMemoryApplicationStore:
    """ApplicationStore keeping deep copies of the records in memory.

    Attributes:
        saves: Number of save calls, per record name
    """

    def __init__(
        self,
        extraction_structures: Optional[dict[str, dict[str, Any]]] = None,
        review_data: Optional[dict[str, dict[str, Any]]] = None,
    ):
        self._structures = copy.deepcopy(extraction_structures or {})
        self._review_data = copy.deepcopy(review_data or {})
        self.saves: dict[str, int] = {"extraction_structure": 0, "review_data": 0}

    def load_extraction_structure(self, application_id: str) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._structures.get(application_id))

    def save_extraction_structure(self, application_id: str, structure: dict[str, Any]) -> None:
        self._structures[application_id] = copy.deepcopy(structure)
        self.saves["extraction_structure"] += 1

    def load_review_data(self, application_id: str) -> Optional[dict[str, Any]]:
        return copy.deepcopy(self._review_data.get(application_id))

    def save_review_data(self, application_id: str, review_data: dict[str, Any]) -> None:
        self._review_data[application_id] = copy.deepcopy(review_data)
        self.saves["review_data"] += 1


# =============================================================================
# PROFILE SOURCES
# =============================================================================

def _validate_record(model: Any, data: Optional[dict[str, Any]], key: str, record: str) -> Any:
    if data is None:
        return None
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise PersistenceError(
            f"Datensatz hat ein ungültiges Format: {record}",
            key=key,
            record=record,
            details={"error_count": e.error_count()},
        ) from e


class JsonFileProfileSource:
    """ProfileSource reading the resident records from JSON files."""

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def _path(self, resident_id: str, record: str) -> Path:
        return self.data_dir / "residents" / resident_id / record

    def get_applicant_profile(self, resident_id: str) -> Optional[ApplicantProfile]:
        data = _read_json(self._path(resident_id, USER_DATA_FILE), resident_id)
        return _validate_record(ApplicantProfile, data, resident_id, USER_DATA_FILE)

    def get_financial_record(self, resident_id: str) -> Optional[FinancialRecord]:
        data = _read_json(self._path(resident_id, USER_FINANCIALS_FILE), resident_id)
        return _validate_record(FinancialRecord, data, resident_id, USER_FINANCIALS_FILE)


class InMemoryProfileSource:
    """ProfileSource over raw record dicts keyed by resident id."""

    def __init__(
        self,
        profiles: Optional[dict[str, dict[str, Any]]] = None,
        financials: Optional[dict[str, dict[str, Any]]] = None,
    ):
        self.profiles = profiles or {}
        self.financials = financials or {}

    def get_applicant_profile(self, resident_id: str) -> Optional[ApplicantProfile]:
        return _validate_record(
            ApplicantProfile, self.profiles.get(resident_id), resident_id, USER_DATA_FILE
        )

    def get_financial_record(self, resident_id: str) -> Optional[FinancialRecord]:
        return _validate_record(
            FinancialRecord, self.financials.get(resident_id), resident_id, USER_FINANCIALS_FILE
        )
