"""Resolve one financial field to an authoritative value.

Values extracted from uploaded documents take precedence over what the
applicant typed into the form. The first uploaded file (in stored order)
that holds a positive figure for the field wins; there is no averaging
across files and no preference for newer uploads.
"""

from decimal import Decimal
from typing import Any, Optional

import structlog

from foerder_core.currency import parse_currency
from foerder_core.models.calculation import ValueSource, ValueWithMetadata
from foerder_core.models.extraction import (
    ExtractionStructure,
    FigureKind,
    figure_kind_for,
    parse_confidence,
)

logger = structlog.get_logger()

MAIN_APPLICANT_ID = "main_applicant"
MAIN_APPLICANT_DOCUMENT_PREFIX = "hauptantragsteller"


def document_id_prefix(person_id: str) -> str:
    """Prefix of document ids uploaded for a person."""
    if person_id == MAIN_APPLICANT_ID:
        return MAIN_APPLICANT_DOCUMENT_PREFIX
    return f"applicant_{person_id}"


def _read_figure(record: Any, field_id: str) -> Decimal:
    """Read a record's figure: the field's own kind first, then a plain amount."""
    keys = [figure_kind_for(field_id).value, FigureKind.AMOUNT.value]
    for key in dict.fromkeys(keys):
        if key == FigureKind.YEAR.value:
            continue
        figure = parse_currency(getattr(record, key, None))
        if figure > 0:
            return figure
    return Decimal("0")


def resolve_value(
    field_id: str,
    form_value: Any,
    extraction_structure: Optional[ExtractionStructure],
    person_id: str,
) -> ValueWithMetadata:
    """Resolve a field for one person.

    Args:
        field_id: Field id as used in the form and the extraction structure
        form_value: The value the applicant entered
        extraction_structure: Extraction results of the application (may be None)
        person_id: "main_applicant" or a co-applicant UUID

    Returns:
        The extracted value with its document reference, or the parsed form
        value when no uploaded document yields a positive figure
    """
    documents = extraction_structure.person(person_id) if extraction_structure else {}

    for document_type, document in documents.items():
        for file_name, file in document.files.items():
            record = file.values.get(field_id)
            if record is not None:
                figure = _read_figure(record, field_id)
            else:
                figure = parse_currency(file.bare_value(field_id))
            if figure <= 0:
                continue

            confidence = parse_confidence(file.confidence)
            if confidence is None:
                confidence = parse_confidence(getattr(record, "confidence", None))

            logger.debug(
                "value_resolved",
                field=field_id,
                person_id=person_id,
                source=ValueSource.EXTRACTED.value,
                document_type=document_type,
                file_name=file_name,
                value=str(figure),
            )
            return ValueWithMetadata(
                value=figure,
                source=ValueSource.EXTRACTED,
                document_ids=[f"{document_id_prefix(person_id)}_{document_type}_0"],
                confidence=confidence,
                editable=True,
            )

    value = parse_currency(form_value)
    logger.debug(
        "value_resolved",
        field=field_id,
        person_id=person_id,
        source=ValueSource.FORM.value,
        value=str(value),
    )
    return ValueWithMetadata(value=value, source=ValueSource.FORM, editable=True)
