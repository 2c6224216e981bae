"""Models for the persisted extraction structure.

The extraction structure is the JSON blob kept per application that records,
for every household member and document type, the uploaded files and the
values the OCR pipeline pulled out of them:

    {
        "main_applicant": {
            "lohn_gehaltsbescheinigungen": {
                "numberOfFiles": 1,
                "relevantValues": ["monthlynetsalary"],
                "extractionComplete": true,
                "gehalt_januar.pdf": {
                    "filePath": "...", "confidence": "0.93",
                    "methodUsed": "OCR_COMPREHENSIVE",
                    "monthlynetsalary": {"year": "2024", ..., "net_value": 2450.5}
                }
            }
        }
    }

Files sit next to the three structural keys and value records sit next to
the file metadata. The models below split them into explicit mappings on
load and flatten them again on dump, so an unchanged structure serializes
back to the same JSON.
"""

import math
import re
from enum import Enum
from typing import Annotated, Any, ClassVar, Iterator, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    RootModel,
    SerializerFunctionWrapHandler,
    Tag,
    model_serializer,
    model_validator,
)


RawScalar = Union[str, int, float, None]
"""A figure or metadata value exactly as stored (strings are kept verbatim)."""


# =============================================================================
# FIGURE KINDS
# =============================================================================

class FigureKind(str, Enum):
    """Which figure a value record carries. Values are the stored JSON keys."""

    NET = "net_value"
    GROSS = "gross_value"
    AMOUNT = "amount"
    YEAR = "year"


FIELD_FIGURE_KINDS: dict[str, FigureKind] = {
    # Pay slip figures
    "monthlynetsalary": FigureKind.NET,
    "wheinachtsgeld_next12_net": FigureKind.NET,
    "urlaubsgeld_next12_net": FigureKind.NET,
    "otheremploymentmonthlynetincome": FigureKind.NET,
    "prior_year_earning": FigureKind.GROSS,
    "wheinachtsgeld_last12": FigureKind.GROSS,
    "urlaubsgeld_last12": FigureKind.GROSS,
    "otherincome_last12": FigureKind.GROSS,
    "prior_year": FigureKind.YEAR,
    # Expense receipts
    "werbungskosten": FigureKind.AMOUNT,
    "kinderbetreuungskosten": FigureKind.AMOUNT,
    "unterhaltszahlungen": FigureKind.AMOUNT,
}

_NET_PATTERN = re.compile(r"(^|_)net($|_)|net(salary|income|value)")
_GROSS_PATTERN = re.compile(r"gross|brutto|last12|earning")


def figure_kind_for(field_id: str) -> FigureKind:
    """Return the figure kind a field id is stored and read as.

    Known field ids come from FIELD_FIGURE_KINDS. Unknown ids fall back to a
    naming rule: salary/net fields are net, bonus and prior-year figures are
    gross, everything else is a plain amount.
    """
    if field_id in FIELD_FIGURE_KINDS:
        return FIELD_FIGURE_KINDS[field_id]
    lowered = field_id.lower()
    if _NET_PATTERN.search(lowered):
        return FigureKind.NET
    if _GROSS_PATTERN.search(lowered):
        return FigureKind.GROSS
    return FigureKind.AMOUNT


def parse_confidence(raw: Any) -> Optional[float]:
    """Parse a stored confidence; returns None unless it lies in (0, 1]."""
    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(str(raw).strip().replace(",", "."))
    except ValueError:
        return None
    if math.isnan(value) or value <= 0 or value > 1:
        return None
    return value


def has_confidence(raw: Any) -> bool:
    """Whether a stored file confidence marks the file as extracted."""
    if raw is None or isinstance(raw, bool):
        return False
    try:
        value = float(str(raw).strip().replace(",", "."))
    except ValueError:
        return False
    return not math.isnan(value) and value != 0


def format_confidence(value: float) -> str:
    """Stringify a confidence for storage: 1.0 -> "1", 0.93 -> "0.93"."""
    if float(value).is_integer():
        return str(int(value))
    return str(float(value))


# =============================================================================
# LENIENT INPUT
# =============================================================================
#
# Stored structures carry whatever the OCR collaborator returned. A malformed
# entry must not make the whole application unreadable, so the validators
# below coerce bad shapes to blanks instead of failing.

def _is_raw_scalar(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float))


def _coerce(data: dict[str, Any], keys: tuple[str, ...], check: Any, fallback: Any) -> dict[str, Any]:
    """Replace values under any of `keys` failing `check` with `fallback`."""
    bad = [key for key in keys if key in data and not check(data[key])]
    if not bad:
        return data
    data = dict(data)
    for key in bad:
        data[key] = fallback
    return data


_RECORD_FLAG_KEYS = ("isMonthly", "is_monthly", "isRecurring", "is_recurring")
_RECORD_SCALAR_KEYS = ("year", "month", "confidence", "net_value", "gross_value", "amount")


def _lenient_record(data: Any) -> Any:
    """Non-bool flags become None, non-scalar figures and metadata become blank."""
    if not isinstance(data, dict):
        return data
    data = _coerce(data, _RECORD_FLAG_KEYS, lambda v: v is None or isinstance(v, bool), None)
    return _coerce(data, _RECORD_SCALAR_KEYS, _is_raw_scalar, "")


# =============================================================================
# VALUE RECORDS
# =============================================================================

class _ValueRecordBase(BaseModel):
    """Metadata shared by all value records."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: ClassVar[FigureKind]

    year: RawScalar = ""
    month: RawScalar = ""
    is_monthly: Optional[bool] = Field(default=None, alias="isMonthly")
    confidence: RawScalar = ""
    is_recurring: Optional[bool] = Field(default=None, alias="isRecurring")

    @model_validator(mode="before")
    @classmethod
    def _lenient_input(cls, data: Any) -> Any:
        return _lenient_record(data)

    @property
    def figure(self) -> RawScalar:
        """The stored figure, or None for records without one."""
        return getattr(self, self.kind.value, None)


class NetValueRecord(_ValueRecordBase):
    """A net figure (monthly net salary, net bonus shares)."""

    kind: ClassVar[FigureKind] = FigureKind.NET
    net_value: RawScalar = ""


class GrossValueRecord(_ValueRecordBase):
    """A gross figure (prior-year earnings, bonuses of the last 12 months)."""

    kind: ClassVar[FigureKind] = FigureKind.GROSS
    gross_value: RawScalar = ""


class AmountRecord(_ValueRecordBase):
    """A plain amount (expenses, benefits)."""

    kind: ClassVar[FigureKind] = FigureKind.AMOUNT
    amount: RawScalar = ""


class YearRecord(BaseModel):
    """A year-only fact such as the prior tax year."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    kind: ClassVar[FigureKind] = FigureKind.YEAR

    year: RawScalar = ""
    confidence: RawScalar = ""

    @model_validator(mode="before")
    @classmethod
    def _lenient_input(cls, data: Any) -> Any:
        return _lenient_record(data)

    @property
    def figure(self) -> RawScalar:
        return None


_FIGURE_KEY_ORDER = (FigureKind.NET, FigureKind.GROSS, FigureKind.AMOUNT)


def _value_record_tag(value: Any) -> str:
    if isinstance(value, dict):
        for kind in _FIGURE_KEY_ORDER:
            if kind.value in value:
                return kind.value
        return FigureKind.YEAR.value
    return getattr(value, "kind", FigureKind.AMOUNT).value


ValueRecord = Annotated[
    Union[
        Annotated[NetValueRecord, Tag(FigureKind.NET.value)],
        Annotated[GrossValueRecord, Tag(FigureKind.GROSS.value)],
        Annotated[AmountRecord, Tag(FigureKind.AMOUNT.value)],
        Annotated[YearRecord, Tag(FigureKind.YEAR.value)],
    ],
    Discriminator(_value_record_tag),
]
"""Tagged union of value records, discriminated by the figure key present."""

_RECORD_CLASSES: dict[FigureKind, type] = {
    FigureKind.NET: NetValueRecord,
    FigureKind.GROSS: GrossValueRecord,
    FigureKind.AMOUNT: AmountRecord,
    FigureKind.YEAR: YearRecord,
}


def build_value_record(kind: FigureKind, figure: RawScalar = "", **metadata: Any) -> Any:
    """Create a value record of the given kind.

    Args:
        kind: Which figure the record carries
        figure: The figure value (ignored for year records)
        **metadata: year, month, is_monthly, confidence, is_recurring

    Returns:
        A NetValueRecord, GrossValueRecord, AmountRecord or YearRecord
    """
    record_cls = _RECORD_CLASSES[kind]
    if kind is FigureKind.YEAR:
        return record_cls(
            year=metadata.get("year", ""),
            confidence=metadata.get("confidence", ""),
        )
    return record_cls(**{kind.value: figure}, **metadata)


def empty_value_record(field_id: str) -> Any:
    """Blank record written when no figure could be mapped for a field."""
    return build_value_record(figure_kind_for(field_id))


# =============================================================================
# FILES AND DOCUMENT TYPES
# =============================================================================

_FILE_FIELD_KEYS = frozenset({
    "filePath", "file_path",
    "confidence",
    "methodUsed", "method_used",
    "uploadedAt", "uploaded_at",
    "values",
})


class FileExtraction(BaseModel):
    """One uploaded file and the value records extracted from it.

    Attributes:
        file_path: Storage path handed to the OCR collaborator
        confidence: Overall extraction confidence, stored as a string
        method_used: Extraction method reported by the collaborator, or "error"
        uploaded_at: Upload timestamp as stored by the upload flow
        values: Value records keyed by field id
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    file_path: str = Field(default="", alias="filePath")
    confidence: RawScalar = ""
    method_used: str = Field(default="", alias="methodUsed")
    uploaded_at: RawScalar = Field(default=None, alias="uploadedAt")
    values: dict[str, ValueRecord] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_values(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = _coerce(data, ("filePath", "file_path", "methodUsed", "method_used"),
                       lambda v: isinstance(v, str), "")
        data = _coerce(data, ("uploadedAt", "uploaded_at"), _is_raw_scalar, None)
        data = _coerce(data, ("confidence",), _is_raw_scalar, "")
        if isinstance(data.get("values"), dict):
            return data
        collected: dict[str, Any] = {}
        rest: dict[str, Any] = {}
        for key, value in data.items():
            if key not in _FILE_FIELD_KEYS and isinstance(value, dict):
                collected[key] = value
            else:
                rest[key] = value
        rest["values"] = collected
        return rest

    @model_serializer(mode="wrap")
    def _flatten_values(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        values = data.pop("values", {})
        for key in ("uploadedAt", "uploaded_at"):
            if key in data and data[key] is None:
                del data[key]
        data.update(values)
        return data

    @property
    def is_extracted(self) -> bool:
        """Whether the file carries a non-zero confidence."""
        return has_confidence(self.confidence)

    def bare_value(self, field_id: str) -> RawScalar:
        """A field stored as a plain figure instead of a record, or None."""
        value = (self.model_extra or {}).get(field_id)
        if isinstance(value, bool) or not _is_raw_scalar(value):
            return None
        return value


def _as_count(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, float):
        return value.is_integer() and value >= 0
    if isinstance(value, str):
        return value.strip().isdigit()
    return False


def _lenient_document(data: dict[str, Any]) -> dict[str, Any]:
    """Bad counts become 0, bad flags False, bad value lists lose their junk."""
    data = _coerce(data, ("numberOfFiles", "number_of_files"), _as_count, 0)
    data = _coerce(data, ("extractionComplete", "extraction_complete"),
                   lambda v: isinstance(v, bool), False)
    for key in ("relevantValues", "relevant_values"):
        if key not in data:
            continue
        raw = data[key]
        cleaned = [v for v in raw if isinstance(v, str)] if isinstance(raw, list) else []
        if cleaned != raw:
            data = dict(data)
            data[key] = cleaned
    return data


_DOCUMENT_FIELD_KEYS = frozenset({
    "numberOfFiles", "number_of_files",
    "relevantValues", "relevant_values",
    "extractionComplete", "extraction_complete",
    "files",
})


class DocumentExtraction(BaseModel):
    """Files uploaded for one document type of one person.

    Attributes:
        number_of_files: Number of uploads recorded by the upload flow
        relevant_values: Field ids this document type is expected to yield
        extraction_complete: True once every file has a non-zero confidence
        files: File records keyed by file name
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    number_of_files: int = Field(default=0, alias="numberOfFiles")
    relevant_values: list[str] = Field(default_factory=list, alias="relevantValues")
    extraction_complete: bool = Field(default=False, alias="extractionComplete")
    files: dict[str, FileExtraction] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def _collect_files(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = _lenient_document(data)
        files = data.get("files")
        if isinstance(files, dict) and "filePath" not in files:
            return data
        collected: dict[str, Any] = {}
        rest: dict[str, Any] = {}
        for key, value in data.items():
            if key not in _DOCUMENT_FIELD_KEYS and isinstance(value, dict):
                collected[key] = value
            else:
                rest[key] = value
        rest["files"] = collected
        return rest

    @model_serializer(mode="wrap")
    def _flatten_files(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        files = data.pop("files", {})
        data.update(files)
        return data

    @property
    def has_uploads(self) -> bool:
        return self.number_of_files > 0


# =============================================================================
# STRUCTURE
# =============================================================================

class ExtractionProgress(BaseModel):
    """Progress of OCR extraction over one application."""

    model_config = ConfigDict(populate_by_name=True)

    total_files: int = Field(default=0, ge=0, alias="totalFiles")
    processed_files: int = Field(default=0, ge=0, alias="processedFiles")
    completed_documents: int = Field(default=0, ge=0, alias="completedDocuments")
    total_documents: int = Field(default=0, ge=0, alias="totalDocuments")
    progress_percentage: int = Field(default=0, ge=0, le=100, alias="progressPercentage")


def _entry_tag(value: Any) -> str:
    if isinstance(value, (dict, DocumentExtraction)):
        return "document"
    return "opaque"


PersonEntry = Annotated[
    Union[
        Annotated[DocumentExtraction, Tag("document")],
        Annotated[Any, Tag("opaque")],
    ],
    Discriminator(_entry_tag),
]
"""A document type, or a plain value some other flow stored next to them."""

PersonExtraction = dict[str, PersonEntry]
"""Document types of one person, keyed by document type id."""


def _person_tag(value: Any) -> str:
    return "person" if isinstance(value, dict) else "opaque"


StructureEntry = Annotated[
    Union[
        Annotated[PersonExtraction, Tag("person")],
        Annotated[Any, Tag("opaque")],
    ],
    Discriminator(_person_tag),
]


class ExtractionStructure(RootModel[dict[str, StructureEntry]]):
    """Extraction results for every person of an application.

    Keys are "main_applicant" or a co-applicant UUID.
    """

    root: dict[str, StructureEntry] = Field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Optional[dict[str, Any]]) -> "ExtractionStructure":
        """Validate a stored blob; None yields an empty structure."""
        return cls.model_validate(data or {})

    def to_json(self) -> dict[str, Any]:
        """Dump to the stored JSON shape."""
        return self.model_dump(mode="json", by_alias=True)

    def person(self, person_id: str) -> dict[str, DocumentExtraction]:
        """Document types of one person (empty if nothing was uploaded).

        Plain values stored beside the document types are left out.
        """
        entry = self.root.get(person_id)
        if not isinstance(entry, dict):
            return {}
        return {
            document_type: document
            for document_type, document in entry.items()
            if isinstance(document, DocumentExtraction)
        }

    def iter_documents(self) -> Iterator[tuple[str, str, DocumentExtraction]]:
        """Yield (person_id, document_type, document) in stored order."""
        for person_id in self.root:
            for document_type, document in self.person(person_id).items():
                yield person_id, document_type, document

    def progress(self) -> ExtractionProgress:
        """Summarize how many uploads already carry extraction results."""
        total_files = 0
        processed_files = 0
        completed_documents = 0
        total_documents = 0

        for _, _, document in self.iter_documents():
            if not document.has_uploads:
                continue
            total_documents += 1
            total_files += len(document.files)
            if document.extraction_complete:
                completed_documents += 1
            processed_files += sum(1 for f in document.files.values() if f.is_extracted)

        percentage = 0
        if total_files > 0:
            percentage = math.floor(processed_files * 100 / total_files + 0.5)

        return ExtractionProgress(
            total_files=total_files,
            processed_files=processed_files,
            completed_documents=completed_documents,
            total_documents=total_documents,
            progress_percentage=min(percentage, 100),
        )
