"""Checklist items generated from the household calculation.

The available-monthly-income item is the case worker's entry point into the
calculation: it carries the ordered report lines, the totals and the system
verdict. Reviewers may overwrite editable lines; every edit recomputes all
subtotals and totals from scratch.
"""

from decimal import Decimal
from typing import Optional, Union

import structlog

from .calculator import (
    DEFICIT_ERROR_PREFIX,
    HouseholdAggregator,
    minimum_income_errors,
    recalculate_totals,
)
from .currency import parse_currency
from .exceptions import ValidationError
from .models.calculation import HouseholdResult, LineType, ValueSource
from .models.checklist import CalculationData, ChecklistItem, ChecklistStatus
from .models.extraction import ExtractionStructure

logger = structlog.get_logger()

AVAILABLE_INCOME_ITEM_ID = "automatic-available-monthly-income"
AVAILABLE_INCOME_ITEM_TITLE = "Verfügbares Monatseinkommen (Automatische Extraktion)"
SELF_DISCLOSURE_FORM = "selbstauskunft"
CALCULATION_FAILED_ERROR = "Die Berechnung des verfügbaren Monatseinkommens ist fehlgeschlagen"

SYSTEM_COMMENT = (
    "Das verfügbare Monatseinkommen wurde automatisch berechnet. Werte aus hochgeladenen "
    "Dokumenten haben Vorrang vor den Angaben in der Selbstauskunft; fehlt ein Dokumentwert, "
    "wird die Angabe aus der Selbstauskunft verwendet. Einzelwerte können bearbeitet werden, "
    "Zwischensummen und Gesamtsummen werden danach neu berechnet."
)
FAILED_SYSTEM_COMMENT = (
    "Das verfügbare Monatseinkommen konnte nicht automatisch berechnet werden. "
    "Bitte die Angaben manuell prüfen."
)

EditValue = Union[Decimal, int, float, str]


def _status_for(errors: list[str]) -> ChecklistStatus:
    return ChecklistStatus.WRONG if errors else ChecklistStatus.CORRECT


class ExtractionChecklistGenerator:
    """Generate automatic checklist items from extraction-based calculations."""

    def __init__(self, aggregator: HouseholdAggregator):
        self.aggregator = aggregator

    def generate_automatic_items(
        self, extraction_structure: Optional[ExtractionStructure]
    ) -> list[ChecklistItem]:
        """Calculate the household and wrap the result into checklist items.

        Args:
            extraction_structure: Extraction results of the application

        Returns:
            The automatic checklist items (currently the available-income item)
        """
        result = self.aggregator.calculate_available_monthly_income(extraction_structure)
        item = build_available_income_item(result)
        logger.info(
            "checklist_item_generated",
            item_id=item.id,
            status=item.system_status.value,
            errors=len(item.system_errors),
            warnings=len(item.system_warnings),
        )
        return [item]


def build_available_income_item(result: HouseholdResult) -> ChecklistItem:
    """Wrap a household result into the available-income checklist item."""
    return ChecklistItem(
        id=AVAILABLE_INCOME_ITEM_ID,
        title=AVAILABLE_INCOME_ITEM_TITLE,
        system_status=_status_for(result.errors),
        agent_status=ChecklistStatus.UNDEFINED,
        system_comment=SYSTEM_COMMENT,
        system_errors=list(result.errors),
        system_warnings=list(result.warnings),
        linked_forms=[SELF_DISCLOSURE_FORM],
        linked_docs=result.linked_document_ids(),
        linked_signed_docs=[],
        agent_notes="",
        calculation_data=CalculationData(
            calculations=result.calculations,
            total_income=result.total_income,
            total_expenses=result.total_expenses,
            available_income=result.available_income,
        ),
    )


def build_failed_item(message: str = CALCULATION_FAILED_ERROR) -> ChecklistItem:
    """Checklist item shown when the calculation could not run at all."""
    return ChecklistItem(
        id=AVAILABLE_INCOME_ITEM_ID,
        title=AVAILABLE_INCOME_ITEM_TITLE,
        system_status=ChecklistStatus.WRONG,
        agent_status=ChecklistStatus.UNDEFINED,
        system_comment=FAILED_SYSTEM_COMMENT,
        system_errors=[message],
        linked_forms=[SELF_DISCLOSURE_FORM],
        agent_notes="",
        calculation_data=CalculationData(),
    )


def apply_manual_edit(
    item: ChecklistItem,
    line_index: int,
    new_value: EditValue,
) -> ChecklistItem:
    """Overwrite one editable line and recompute the item.

    The edited value is tagged as a manual entry; document references of an
    extracted value are kept. Subtotals and totals are recomputed from all
    lines, and the minimum-income verdict is re-derived from the validation
    line.

    Args:
        item: Checklist item holding calculation data
        line_index: Index into calculation_data.calculations
        new_value: Replacement amount (numbers or German currency text)

    Returns:
        A new checklist item; the given item is not modified

    Raises:
        ValidationError: If the item has no calculation, the index is out of
            range, or the line is not editable
    """
    data = item.calculation_data
    if data is None or not data.calculations:
        raise ValidationError(
            "Der Prüfpunkt enthält keine Berechnung",
            field="calculationData",
        )
    if not 0 <= line_index < len(data.calculations):
        raise ValidationError(
            "Zeile existiert nicht",
            field=f"calculations[{line_index}]",
            value=line_index,
            constraint=f"0 <= index < {len(data.calculations)}",
        )

    line = data.calculations[line_index]
    if not line.is_editable:
        raise ValidationError(
            "Zeile ist nicht bearbeitbar",
            field=f"calculations[{line_index}]",
            constraint="value.editable must be true",
        )

    amount = parse_currency(new_value)
    edited_value = line.value.model_copy(
        update={"value": amount, "source": ValueSource.MANUAL, "confidence": None}
    )
    lines = list(data.calculations)
    lines[line_index] = line.model_copy(update={"value": edited_value})

    lines, totals = recalculate_totals(lines)

    errors = [e for e in item.system_errors if not e.startswith(DEFICIT_ERROR_PREFIX)]
    validation = next((l for l in lines if l.type == LineType.VALIDATION), None)
    if validation is not None:
        errors.extend(minimum_income_errors(totals.available_income, validation.amount))

    logger.info(
        "manual_edit_applied",
        item_id=item.id,
        line_index=line_index,
        label=line.label,
        previous=str(line.amount),
        value=str(amount),
        available_income=str(totals.available_income),
    )

    return item.model_copy(update={
        "system_status": _status_for(errors),
        "system_errors": errors,
        "calculation_data": CalculationData(
            calculations=lines,
            total_income=totals.total_income,
            total_expenses=totals.total_expenses,
            available_income=totals.available_income,
        ),
    })
