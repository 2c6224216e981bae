"""Mapping between upload document types and the OCR collaborator's output.

Two fixed tables drive the mapping:

1. BACKEND_DOCUMENT_TYPES - which backend document type the collaborator is
   asked to extract for each upload document type
2. GENERIC_VALUE_MAPPINGS - for document types whose generic output must be
   interpreted per field (pay slips), which generic figure feeds which
   relevant value. Document types without a table read every relevant value
   from the generic "amount".

Values the collaborator returns under their own field id always win over the
generic output.
"""

from typing import Any, Optional

from foerder_core.models import (
    FigureKind,
    build_value_record,
    empty_value_record,
    figure_kind_for,
)


# =============================================================================
# BACKEND DOCUMENT TYPES
# =============================================================================

DEFAULT_BACKEND_DOCUMENT_TYPE = "werbungskosten_nachweis"

BACKEND_DOCUMENT_TYPES: dict[str, str] = {
    # Upload document type: backend document type
    "lohn_gehaltsbescheinigungen": "lohn_gehaltsbescheinigung",
    "werbungskosten_nachweis": "werbungskosten_nachweis",
    "einkommenssteuerbescheid": "einkommenssteuerbescheid",
    "einkommenssteuererklaerung": "einkommenssteuerbescheid",
    "rentenbescheid": "rentenbescheid",
    "arbeitslosengeldbescheid": "arbeitslosengeld_bescheid",
    "guv_euer_nachweis": "werbungskosten_nachweis",
    "unterhaltsverpflichtung_nachweis": "unterhaltsverpflichtung_nachweis",
    "unterhaltsleistungen_nachweis": "unterhalt_bescheid",
    "kinderbetreuungskosten_nachweis": "kinderbetreuungskosten_nachweis",
}


def backend_document_type(
    document_type: str,
    default: str = DEFAULT_BACKEND_DOCUMENT_TYPE,
) -> str:
    """Get the backend document type for an upload document type.

    Args:
        document_type: Upload document type id
        default: Backend type for document types without a mapping

    Returns:
        Backend document type sent to the collaborator
    """
    return BACKEND_DOCUMENT_TYPES.get(document_type, default)


# =============================================================================
# GENERIC OUTPUT MAPPING
# =============================================================================

GENERIC_VALUE_MAPPINGS: dict[str, dict[str, FigureKind]] = {
    "lohn_gehaltsbescheinigungen": {
        "monthlynetsalary": FigureKind.NET,
        "prior_year_earning": FigureKind.GROSS,
        "wheinachtsgeld_last12": FigureKind.GROSS,
        "urlaubsgeld_last12": FigureKind.GROSS,
        "otherincome_last12": FigureKind.GROSS,
        "prior_year": FigureKind.YEAR,
    },
}

_FIGURE_KINDS = (FigureKind.NET, FigureKind.GROSS, FigureKind.AMOUNT)


def _scalar(value: Any) -> Any:
    """Keep strings and numbers as stored; anything else becomes blank."""
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return ""
    return value


def _flag(value: Any) -> Optional[bool]:
    return value if isinstance(value, bool) else None


def _metadata(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "year": _scalar(data.get("year")) or "",
        "month": _scalar(data.get("month")) or "",
        "is_monthly": _flag(data.get("isMonthly")),
        "confidence": _scalar(data.get("confidence")) or "",
        "is_recurring": _flag(data.get("isRecurring")),
    }


def _record_from_specific(value_id: str, data: dict[str, Any]) -> Any:
    """Normalize a value the collaborator returned under its own field id."""
    expected = figure_kind_for(value_id)
    metadata = _metadata(data)

    if expected is FigureKind.YEAR and not any(k.value in data for k in _FIGURE_KINDS):
        return build_value_record(FigureKind.YEAR, **metadata)

    present = [kind for kind in _FIGURE_KINDS if kind.value in data]
    if not present:
        kind = expected if expected is not FigureKind.YEAR else FigureKind.AMOUNT
        return build_value_record(kind, "", **metadata)

    kind = expected if expected in present else present[0]
    if "laufzeit" in data:
        metadata["laufzeit"] = _scalar(data["laufzeit"])
    return build_value_record(kind, _scalar(data[kind.value]), **metadata)


def _record_from_generic(
    document_type: str,
    value_id: str,
    generic: dict[str, Any],
) -> Optional[Any]:
    """Build a value from the collaborator's generic fields, if a mapping exists."""
    table = GENERIC_VALUE_MAPPINGS.get(document_type)
    if table is None:
        kind = FigureKind.AMOUNT
    else:
        kind = table.get(value_id)
        if kind is None:
            return None

    metadata = _metadata(generic)
    if kind is FigureKind.YEAR:
        return build_value_record(FigureKind.YEAR, **metadata)
    return build_value_record(kind, _scalar(generic.get(kind.value)) or "", **metadata)


def map_extracted_values(
    document_type: str,
    relevant_values: list[str],
    extracted_values: dict[str, Any],
) -> dict[str, Any]:
    """Map the collaborator's output onto a document type's relevant values.

    Every relevant value receives a record: the collaborator's own entry for
    the value id, else the generic mapping, else an explicit empty record of
    the value's figure kind.

    Args:
        document_type: Upload document type id
        relevant_values: Field ids the document type is expected to yield
        extracted_values: extracted_values of the ExtractionOutcome

    Returns:
        Value records keyed by field id
    """
    records: dict[str, Any] = {}
    for value_id in relevant_values:
        specific = extracted_values.get(value_id)
        if isinstance(specific, dict):
            records[value_id] = _record_from_specific(value_id, specific)
            continue
        if specific is not None and _scalar(specific) != "":
            kind = figure_kind_for(value_id)
            if kind is FigureKind.YEAR:
                records[value_id] = build_value_record(kind, year=_scalar(specific))
            else:
                records[value_id] = build_value_record(kind, _scalar(specific))
            continue

        record = _record_from_generic(document_type, value_id, extracted_values)
        records[value_id] = record if record is not None else empty_value_record(value_id)
    return records
