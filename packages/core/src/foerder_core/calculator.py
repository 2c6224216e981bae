"""Disposable monthly income of a subsidy household.

This module provides:
1. PersonIncomeCalculator - income and expense lines of one household member
2. HouseholdAggregator - all members, household totals and the check against
   the statutory minimum income
3. recalculate_totals - the single-pass recompute shared by fresh results and
   reviewer edits

All calculation steps are logged for the reviewer's audit trail.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

import structlog

from .categories import CATALOGUE, Category, CategoryKind
from .currency import format_currency, parse_currency
from .interfaces import ProfileSource
from .minimum_income import SINGLE_PERSON_MINIMUM, get_minimum_required_income
from .models.calculation import (
    AVAILABLE_INCOME_KEY,
    TOTAL_EXPENSES_KEY,
    TOTAL_INCOME_KEY,
    AuditEntry,
    CalculationLine,
    HouseholdResult,
    HouseholdTotals,
    LineType,
    PersonIncome,
    ValueSource,
    ValueWithMetadata,
)
from .models.extraction import ExtractionStructure
from .models.profile import FormFinancials
from .resolver import MAIN_APPLICANT_ID, resolve_value

logger = structlog.get_logger()

MONTHS_PER_YEAR = Decimal("12")

# Labels and messages shown to case workers
SUBTOTAL_LABEL = "Überschuss"
TOTAL_INCOME_LABEL = "Gesamt Einnahmen"
TOTAL_EXPENSES_LABEL = "Gesamt Ausgaben"
AVAILABLE_INCOME_LABEL = "Verfügbares Monatseinkommen gesamt"
PROFILE_MISSING_ERROR = "Benutzerdaten konnten nicht geladen werden"
FINANCIALS_MISSING_ERROR = "Finanzdaten konnten nicht geladen werden"
DEFICIT_ERROR_PREFIX = "Mindestbedarf nicht erfüllt"
HOUSEHOLD_SIZE_MISSING_WARNING = (
    "Haushaltsgröße nicht verfügbar - Prüfung der Tragbarkeit der Belastung nicht möglich. "
    "Bitte Anzahl der Erwachsenen und Kinder in der Selbstauskunft ergänzen."
)
NO_ADULTS_WARNING = "Keine Erwachsenen im Haushalt - bitte Haushaltsangaben prüfen"
NEGATIVE_INCOME_WARNING = (
    "Das verfügbare Einkommen ist negativ - die Ausgaben übersteigen die Einnahmen"
)
BELOW_SINGLE_MINIMUM_WARNING = (
    "Das verfügbare Einkommen ist geringer als der Mindestbedarf "
    "für einen 1-Personen-Haushalt"
)


def validation_label(household_size: int) -> str:
    return f"Mindestbedarf für {household_size}-Personen-Haushalt"


def minimum_income_errors(available_income: Decimal, minimum_required: Decimal) -> list[str]:
    """Return the shortfall error if the household keeps less than the minimum."""
    difference = available_income - minimum_required
    if difference < 0:
        return [f"{DEFICIT_ERROR_PREFIX} (Fehlbetrag: {format_currency(-difference)})"]
    return []


def _computed(value: Decimal) -> ValueWithMetadata:
    """A derived amount; reviewers edit the inputs, never the sums."""
    return ValueWithMetadata(value=value, source=ValueSource.FORM, editable=False)


def _total_kind(line: CalculationLine) -> Optional[str]:
    if line.key in (TOTAL_INCOME_KEY, TOTAL_EXPENSES_KEY, AVAILABLE_INCOME_KEY):
        return line.key
    # Snapshots persisted before total lines carried a key
    label = line.label.lower()
    if "einnahmen" in label:
        return TOTAL_INCOME_KEY
    if "ausgaben" in label:
        return TOTAL_EXPENSES_KEY
    if "verfügbar" in label:
        return AVAILABLE_INCOME_KEY
    return None


def recalculate_totals(
    lines: Sequence[CalculationLine],
) -> tuple[list[CalculationLine], HouseholdTotals]:
    """Recompute every subtotal and total from the item lines.

    Walks the lines once: the running surplus restarts at every person
    header, income items add, expense items subtract, and each subtotal line
    receives the surplus of its person. The three total lines are filled
    from the household sums. Item and validation lines are returned
    unchanged.

    Args:
        lines: Report lines in display order

    Returns:
        Tuple of (updated lines, household totals)
    """
    total_income = Decimal("0")
    total_expenses = Decimal("0")
    surplus = Decimal("0")
    updated: list[CalculationLine] = []
    total_positions: list[tuple[int, str]] = []

    for line in lines:
        if line.type == LineType.PERSON_HEADER:
            surplus = Decimal("0")
        elif line.type == LineType.INCOME_ITEM:
            surplus += line.amount
            total_income += line.amount
        elif line.type == LineType.EXPENSE_ITEM:
            surplus -= line.amount
            total_expenses += line.amount
        elif line.type == LineType.SUBTOTAL:
            line = _with_amount(line, surplus)
        elif line.type == LineType.TOTAL:
            kind = _total_kind(line)
            if kind is not None:
                total_positions.append((len(updated), kind))
        updated.append(line)

    totals = HouseholdTotals(
        total_income=total_income,
        total_expenses=total_expenses,
        available_income=total_income - total_expenses,
    )
    amounts = {
        TOTAL_INCOME_KEY: totals.total_income,
        TOTAL_EXPENSES_KEY: totals.total_expenses,
        AVAILABLE_INCOME_KEY: totals.available_income,
    }
    for position, kind in total_positions:
        updated[position] = _with_amount(updated[position], amounts[kind])

    return updated, totals


def _with_amount(line: CalculationLine, amount: Decimal) -> CalculationLine:
    if line.value is None:
        value = _computed(amount)
    else:
        value = line.value.model_copy(update={"value": amount})
    return line.model_copy(update={"value": value})


class PersonIncomeCalculator:
    """
    Build the income and expense lines of one household member.

    Each present catalogue category yields exactly one line. Scalar figures
    are resolved against the uploaded documents first; list figures (loans,
    pensions, ...) are summed from the form.
    """

    def __init__(self, categories: Sequence[Category] = CATALOGUE):
        """
        Initialize calculator.

        Args:
            categories: Ordered catalogue (default: the full statutory catalogue)
        """
        self.categories = tuple(categories)
        self._audit_log: list[AuditEntry] = []

    @property
    def audit_log(self) -> list[AuditEntry]:
        """Steps of the last calculation."""
        return list(self._audit_log)

    def _log_step(
        self,
        step: str,
        person_id: str,
        input_value: Any,
        output_value: Any,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        entry = AuditEntry(
            step=step,
            person_id=person_id,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
        )
        self._audit_log.append(entry)
        logger.info(
            "calculation_step",
            step=step,
            person_id=person_id,
            input=input_value,
            output=output_value,
            source=source,
        )

    def _resolve_category(
        self,
        category: Category,
        person_id: str,
        financials: FormFinancials,
        extraction_structure: Optional[ExtractionStructure],
    ) -> ValueWithMetadata:
        raw = getattr(financials, category.attribute)

        if category.is_list:
            rows = raw or []
            value = sum(
                (parse_currency(getattr(row, category.list_amount_field)) for row in rows),
                Decimal("0"),
            )
            resolved = ValueWithMetadata(value=value, source=ValueSource.FORM, editable=True)
            input_value = f"{len(rows)} Einträge"
        else:
            resolved = resolve_value(
                category.field_id, raw, extraction_structure, person_id
            )
            input_value = raw

        # Annual figures are spread over twelve months whatever their source
        if category.annual:
            resolved = resolved.model_copy(update={"value": resolved.value / MONTHS_PER_YEAR})

        self._log_step(
            step=f"{category.kind.value}_{category.key}",
            person_id=person_id,
            input_value=None if input_value is None else str(input_value),
            output_value=str(resolved.value),
            source=resolved.source.value,
            notes=category.label,
        )
        return resolved

    def calculate_person_income(
        self,
        person_id: str,
        person_name: str,
        financials: FormFinancials,
        extraction_structure: Optional[ExtractionStructure] = None,
    ) -> PersonIncome:
        """
        Calculate the income and expense lines of one person.

        Args:
            person_id: "main_applicant" or the co-applicant UUID
            person_name: Display name for the report
            financials: The person's self-disclosure figures
            extraction_structure: Extraction results of the application

        Returns:
            PersonIncome with lines in catalogue order and their sums
        """
        self._audit_log = []  # Reset audit log

        income = Decimal("0")
        expenses = Decimal("0")
        income_lines: list[CalculationLine] = []
        expense_lines: list[CalculationLine] = []

        for category in self.categories:
            if not category.is_present(financials):
                continue
            value = self._resolve_category(category, person_id, financials, extraction_structure)
            if category.kind == CategoryKind.INCOME:
                income += value.value
                income_lines.append(CalculationLine(
                    type=LineType.INCOME_ITEM,
                    label=category.label,
                    value=value,
                    person_id=person_id,
                    key=category.key,
                ))
            else:
                expenses += value.value
                expense_lines.append(CalculationLine(
                    type=LineType.EXPENSE_ITEM,
                    label=category.label,
                    value=value,
                    person_id=person_id,
                    key=category.key,
                ))

        self._log_step(
            step="person_surplus",
            person_id=person_id,
            input_value=f"income={income}, expenses={expenses}",
            output_value=str(income - expenses),
            source="Calculated",
            notes=person_name,
        )

        return PersonIncome(
            person_id=person_id,
            person_name=person_name,
            income=income,
            expenses=expenses,
            income_lines=income_lines,
            expense_lines=expense_lines,
        )


class HouseholdAggregator:
    """
    Calculate the available monthly income of a whole household.

    Combines the main applicant and every additional household member with
    income, checks the result against the statutory minimum income and
    returns the ordered report lines for the review dashboard.

    Missing profile data and an unmet minimum are reported in
    HouseholdResult.errors; only failures of the profile store propagate.
    """

    def __init__(
        self,
        resident_id: str,
        profile_source: ProfileSource,
        person_calculator: Optional[PersonIncomeCalculator] = None,
    ):
        """
        Initialize aggregator.

        Args:
            resident_id: Resident whose application is calculated
            profile_source: Store holding the profile and financial record
            person_calculator: Calculator for single persons (default: full catalogue)
        """
        self.resident_id = resident_id
        self.profile_source = profile_source
        self.person_calculator = person_calculator or PersonIncomeCalculator()
        self._audit_log: list[AuditEntry] = []
        self._warnings: list[str] = []

    def _log_step(
        self,
        step: str,
        input_value: Any,
        output_value: Any,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        entry = AuditEntry(
            step=step,
            input_value=input_value,
            output_value=output_value,
            source=source,
            notes=notes,
        )
        self._audit_log.append(entry)
        logger.info(
            "calculation_step",
            step=step,
            resident_id=self.resident_id,
            input=input_value,
            output=output_value,
            source=source,
        )

    def _person_lines(self, person: PersonIncome) -> list[CalculationLine]:
        return [
            CalculationLine(
                type=LineType.PERSON_HEADER,
                label=person.person_name,
                person_id=person.person_id,
                person_name=person.person_name,
            ),
            *person.income_lines,
            *person.expense_lines,
            CalculationLine(
                type=LineType.SUBTOTAL,
                label=SUBTOTAL_LABEL,
                value=_computed(person.surplus),
                person_id=person.person_id,
            ),
        ]

    def _calculate_person(
        self,
        person_id: str,
        person_name: str,
        financials: FormFinancials,
        extraction_structure: Optional[ExtractionStructure],
    ) -> PersonIncome:
        person = self.person_calculator.calculate_person_income(
            person_id, person_name, financials, extraction_structure
        )
        self._audit_log.extend(self.person_calculator.audit_log)
        return person

    def calculate_available_monthly_income(
        self,
        extraction_structure: Optional[ExtractionStructure] = None,
    ) -> HouseholdResult:
        """
        Calculate the household's available monthly income.

        Args:
            extraction_structure: Extraction results of the application
                (None when nothing was uploaded)

        Returns:
            HouseholdResult with report lines, totals, errors and audit log
        """
        # Reset state
        self._audit_log = []
        self._warnings = []

        profile = self.profile_source.get_applicant_profile(self.resident_id)
        if profile is None:
            logger.warning("profile_missing", resident_id=self.resident_id)
            return HouseholdResult(errors=[PROFILE_MISSING_ERROR])

        financial_record = self.profile_source.get_financial_record(self.resident_id)
        if financial_record is None:
            logger.warning("financial_record_missing", resident_id=self.resident_id)
            return HouseholdResult(errors=[FINANCIALS_MISSING_ERROR])

        persons: list[PersonIncome] = []

        # Step 1: Main applicant
        if profile.no_income:
            self._log_step(
                step="person_skipped",
                input_value=MAIN_APPLICANT_ID,
                output_value="0",
                source="Profile",
                notes="Kein eigenes Einkommen",
            )
        else:
            persons.append(self._calculate_person(
                MAIN_APPLICANT_ID, profile.display_name, financial_record, extraction_structure
            ))

        # Step 2: Additional household members
        for person_id, member in profile.weitere_antragstellende_personen.items():
            name = member.display_name(person_id)
            if member.not_household or member.no_income:
                self._log_step(
                    step="person_skipped",
                    input_value=person_id,
                    output_value="0",
                    source="Profile",
                    notes="Nicht im Haushalt" if member.not_household else "Kein eigenes Einkommen",
                )
                continue
            financials = financial_record.financials_for(person_id)
            if financials is None:
                self._warnings.append(
                    f"Keine Finanzdaten für {name} vorhanden - Person wird nicht berücksichtigt"
                )
                continue
            persons.append(self._calculate_person(person_id, name, financials, extraction_structure))

        lines: list[CalculationLine] = []
        for person in persons:
            lines.extend(self._person_lines(person))

        lines.extend([
            CalculationLine(type=LineType.TOTAL, label=TOTAL_INCOME_LABEL,
                            value=_computed(Decimal("0")), key=TOTAL_INCOME_KEY),
            CalculationLine(type=LineType.TOTAL, label=TOTAL_EXPENSES_LABEL,
                            value=_computed(Decimal("0")), key=TOTAL_EXPENSES_KEY),
            CalculationLine(type=LineType.TOTAL, label=AVAILABLE_INCOME_LABEL,
                            value=_computed(Decimal("0")), key=AVAILABLE_INCOME_KEY),
        ])

        # Step 3: Statutory minimum
        household_size = profile.household_size
        minimum_required = get_minimum_required_income(household_size)
        if household_size > 0:
            lines.append(CalculationLine(
                type=LineType.VALIDATION,
                label=validation_label(household_size),
                value=_computed(minimum_required),
            ))

        # Step 4: Totals, computed the same way as after a reviewer edit
        lines, totals = recalculate_totals(lines)
        self._log_step(
            step="available_income",
            input_value=f"income={totals.total_income}, expenses={totals.total_expenses}",
            output_value=str(totals.available_income),
            source="Calculated",
        )

        errors: list[str] = []
        if household_size > 0:
            errors.extend(minimum_income_errors(totals.available_income, minimum_required))
            self._log_step(
                step="minimum_income_check",
                input_value=f"size={household_size}, available={totals.available_income}",
                output_value=str(minimum_required),
                source="Mindestbedarfstabelle",
                notes=errors[0] if errors else None,
            )
        else:
            self._warnings.append(HOUSEHOLD_SIZE_MISSING_WARNING)
            if totals.available_income < SINGLE_PERSON_MINIMUM:
                self._warnings.append(BELOW_SINGLE_MINIMUM_WARNING)

        if profile.adult_count == 0 and profile.child_count > 0:
            self._warnings.append(NO_ADULTS_WARNING)
        if totals.available_income < 0:
            self._warnings.append(NEGATIVE_INCOME_WARNING)

        return HouseholdResult(
            calculations=lines,
            errors=errors,
            warnings=list(self._warnings),
            total_income=totals.total_income,
            total_expenses=totals.total_expenses,
            available_income=totals.available_income,
            household_size=household_size,
            minimum_required=minimum_required if household_size > 0 else None,
            audit_log=list(self._audit_log),
        )
