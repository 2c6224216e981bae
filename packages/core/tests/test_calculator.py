"""Tests for the person and household income calculators."""

from decimal import Decimal

import pytest

from core_fakes import FakeProfileSource
from foerder_core.calculator import (
    FINANCIALS_MISSING_ERROR,
    HOUSEHOLD_SIZE_MISSING_WARNING,
    NEGATIVE_INCOME_WARNING,
    PROFILE_MISSING_ERROR,
    HouseholdAggregator,
    PersonIncomeCalculator,
    recalculate_totals,
)
from foerder_core.models import (
    CalculationLine,
    ExtractionStructure,
    FormFinancials,
    HouseholdResult,
    LineType,
    ValueSource,
)

RESIDENT = "resident-1"
CO_APPLICANT = "7d1c2b3a-aaaa-4bbb-8ccc-000000000002"


def _aggregate(profile, financials, structure=None) -> HouseholdResult:
    source = FakeProfileSource({RESIDENT: profile}, {RESIDENT: financials})
    return HouseholdAggregator(RESIDENT, source).calculate_available_monthly_income(structure)


def _lines_of(result: HouseholdResult, line_type: LineType) -> list[CalculationLine]:
    return [line for line in result.calculations if line.type == line_type]


class TestPersonIncomeCalculator:
    """Test suite for PersonIncomeCalculator."""

    def test_salary_with_bonuses_and_loans(self, salary_financials):
        """Salary, monthly bonus shares and summed loans should become lines."""
        calculator = PersonIncomeCalculator()
        person = calculator.calculate_person_income(
            "main_applicant", "Anna Schmidt", FormFinancials.model_validate(salary_financials)
        )

        assert [line.key for line in person.income_lines] == [
            "salary", "christmas_bonus", "vacation_bonus",
        ]
        assert [line.value.value for line in person.income_lines] == [
            Decimal("2400.00"), Decimal("100"), Decimal("50"),
        ]
        assert [line.key for line in person.expense_lines] == ["loans"]
        assert person.expense_lines[0].value.value == Decimal("500.00")
        assert person.income == Decimal("2550.00")
        assert person.expenses == Decimal("500.00")
        assert person.surplus == Decimal("2050.00")

    def test_absent_categories_produce_no_lines(self):
        """Categories whose presence flag is false should be skipped."""
        financials = FormFinancials.model_validate({
            "hasSalaryIncome": False,
            "monthlynetsalary": "3000",
            "haskindergeldincome": True,
            "monthlykindergeldnetincome": "250",
        })

        person = PersonIncomeCalculator().calculate_person_income("main_applicant", "A", financials)

        assert [line.key for line in person.income_lines] == ["child_benefit"]
        assert person.expense_lines == []

    def test_extracted_salary_preferred(self, salary_financials, payslip_structure):
        """The pay slip figure should replace the form salary."""
        person = PersonIncomeCalculator().calculate_person_income(
            "main_applicant",
            "Anna Schmidt",
            FormFinancials.model_validate(salary_financials),
            payslip_structure,
        )

        salary = person.income_lines[0]
        assert salary.value.value == Decimal("2500")
        assert salary.value.source == ValueSource.EXTRACTED
        assert salary.value.document_ids == ["hauptantragsteller_lohn_gehaltsbescheinigungen_0"]

    def test_bonus_divided_by_twelve_when_extracted(self):
        """Annual bonuses should be spread over twelve months whatever their source."""
        structure = ExtractionStructure.from_json({
            "main_applicant": {
                "lohn_gehaltsbescheinigungen": {
                    "numberOfFiles": 1,
                    "relevantValues": ["wheinachtsgeld_next12_net"],
                    "extractionComplete": True,
                    "dezember.pdf": {
                        "filePath": "p", "confidence": "0.9",
                        "wheinachtsgeld_next12_net": {"net_value": 2400},
                    },
                },
            },
        })
        financials = FormFinancials.model_validate({"hasSalaryIncome": True})

        person = PersonIncomeCalculator().calculate_person_income(
            "main_applicant", "A", financials, structure
        )

        bonus = person.income_lines[1]
        assert bonus.key == "christmas_bonus"
        assert bonus.value.value == Decimal("200")
        assert bonus.value.source == ValueSource.EXTRACTED

    def test_annual_and_list_categories(self):
        """Annual rent income is divided by 12; maintenance sums amountTotal."""
        financials = FormFinancials.model_validate({
            "hasrentincome": True,
            "incomerent_net": "6.000,00",
            "haspensionincome": True,
            "pensionmonthlynetincome": [{"amount": "800"}, {"amount": "120,50"}],
            "unterhaltszahlungenTotal": [{"amountTotal": "300"}],
            "hasBausparvertraege": True,
            "sparratebausparvertraege": "50",
        })

        person = PersonIncomeCalculator().calculate_person_income("main_applicant", "A", financials)

        values = {line.key: line.value.value for line in person.income_lines + person.expense_lines}
        assert values == {
            "rent": Decimal("500"),
            "pension": Decimal("920.50"),
            "maintenance_payments": Decimal("300"),
            "building_savings": Decimal("50"),
        }
        assert all(line.value.source == ValueSource.FORM for line in person.expense_lines)

    def test_audit_log(self, salary_financials):
        """Every resolved category should be recorded in the audit log."""
        calculator = PersonIncomeCalculator()
        calculator.calculate_person_income(
            "main_applicant", "A", FormFinancials.model_validate(salary_financials)
        )

        steps = [entry.step for entry in calculator.audit_log]
        assert steps[0] == "income_salary"
        assert "expense_loans" in steps
        assert steps[-1] == "person_surplus"


class TestHouseholdAggregator:
    """Test suite for HouseholdAggregator."""

    def test_single_person_report(self, single_adult_profile, salary_financials, payslip_structure):
        """The report should list header, items, subtotal, totals and validation in order."""
        result = _aggregate(single_adult_profile, salary_financials, payslip_structure)

        assert [line.type for line in result.calculations] == [
            LineType.PERSON_HEADER,
            LineType.INCOME_ITEM,
            LineType.INCOME_ITEM,
            LineType.INCOME_ITEM,
            LineType.EXPENSE_ITEM,
            LineType.SUBTOTAL,
            LineType.TOTAL,
            LineType.TOTAL,
            LineType.TOTAL,
            LineType.VALIDATION,
        ]
        assert result.calculations[0].label == "Anna Schmidt"
        assert result.total_income == Decimal("2650")
        assert result.total_expenses == Decimal("500.00")
        assert result.available_income == Decimal("2150.00")
        assert result.errors == []
        assert result.linked_document_ids() == ["hauptantragsteller_lohn_gehaltsbescheinigungen_0"]

    def test_malformed_record_flags(self, single_adult_profile, salary_financials):
        """Records with string flags should still feed the report."""
        structure = ExtractionStructure.from_json({
            "main_applicant": {
                "lohn_gehaltsbescheinigungen": {
                    "numberOfFiles": 1,
                    "relevantValues": None,
                    "extractionComplete": True,
                    "gehalt.pdf": {
                        "filePath": "a1/gehalt.pdf",
                        "confidence": "0.9",
                        "monthlynetsalary": {"net_value": 2500, "isMonthly": "ja"},
                        "werbungskosten": {"amount": 120, "isMonthly": ""},
                    },
                },
            },
        })

        result = _aggregate(single_adult_profile, salary_financials, structure)

        salary = _lines_of(result, LineType.INCOME_ITEM)[0]
        assert salary.amount == Decimal("2500")
        assert salary.value.source == ValueSource.EXTRACTED
        assert result.available_income == Decimal("2150.00")
        assert result.errors == []

    def test_totals_consistent(self, single_adult_profile, salary_financials):
        """Subtotals and totals should equal the sums of the item lines."""
        result = _aggregate(single_adult_profile, salary_financials)

        income = sum((l.amount for l in _lines_of(result, LineType.INCOME_ITEM)), Decimal("0"))
        expenses = sum((l.amount for l in _lines_of(result, LineType.EXPENSE_ITEM)), Decimal("0"))
        subtotal = _lines_of(result, LineType.SUBTOTAL)[0]
        totals = _lines_of(result, LineType.TOTAL)

        assert result.total_income == income
        assert result.total_expenses == expenses
        assert result.available_income == result.total_income - result.total_expenses
        assert subtotal.amount == income - expenses
        assert subtotal.label == "Überschuss"
        assert subtotal.value.editable is False
        assert [t.amount for t in totals] == [income, expenses, income - expenses]
        assert [t.label for t in totals] == [
            "Gesamt Einnahmen", "Gesamt Ausgaben", "Verfügbares Monatseinkommen gesamt",
        ]

    def test_minimum_shortfall(self, single_adult_profile):
        """One adult with 800 EUR available should miss the minimum by 190 EUR."""
        financials = {"hasSalaryIncome": True, "monthlynetsalary": "800"}

        result = _aggregate(single_adult_profile, financials)

        assert result.available_income == Decimal("800")
        assert result.minimum_required == Decimal("990")
        assert result.errors == ["Mindestbedarf nicht erfüllt (Fehlbetrag: 190,00 €)"]
        assert result.calculations, "result is still returned with all lines"

    def test_three_person_household(self):
        """Two adults and one child should need 1590 EUR."""
        profile = {"firstname": "Max", "adult_count": 2, "child_count": 1}
        financials = {"hasSalaryIncome": True, "monthlynetsalary": "4000"}

        result = _aggregate(profile, financials)

        validation = _lines_of(result, LineType.VALIDATION)
        assert len(validation) == 1
        assert validation[0].label == "Mindestbedarf für 3-Personen-Haushalt"
        assert validation[0].amount == Decimal("1590")
        assert result.household_size == 3
        assert result.errors == []

    def test_no_income_persons_contribute_nothing(self, salary_financials):
        """Persons flagged noIncome or notHousehold should produce no lines."""
        profile = {
            "firstname": "Anna",
            "noIncome": True,
            "adult_count": 2,
            "weitere_antragstellende_personen": {
                CO_APPLICANT: {"firstName": "Ben", "lastName": "Meyer", "noIncome": True},
                "9e8d7c6b-0000-4000-8000-000000000003": {"firstName": "Cara", "notHousehold": True},
            },
        }
        financials = dict(salary_financials)
        financials["additional_applicants_financials"] = {CO_APPLICANT: salary_financials}

        result = _aggregate(profile, financials)

        assert _lines_of(result, LineType.PERSON_HEADER) == []
        assert _lines_of(result, LineType.INCOME_ITEM) == []
        assert result.total_income == Decimal("0")
        assert result.available_income == Decimal("0")

    def test_co_applicant_block(self, single_adult_profile, salary_financials):
        """Co-applicants with financial data should get their own block and subtotal."""
        profile = dict(single_adult_profile, adult_count=2)
        profile["weitere_antragstellende_personen"] = {
            CO_APPLICANT: {"firstName": "Ben", "lastName": "Meyer"},
            "0a1b2c3d-ffff-4000-8000-000000000004": {},
        }
        financials = dict(salary_financials)
        financials["additional_applicants_financials"] = {
            CO_APPLICANT: {"haskindergeldincome": True, "monthlykindergeldnetincome": "250"},
        }

        result = _aggregate(profile, financials)

        headers = _lines_of(result, LineType.PERSON_HEADER)
        subtotals = _lines_of(result, LineType.SUBTOTAL)
        assert [h.label for h in headers] == ["Anna Schmidt", "Ben Meyer"]
        assert headers[1].person_id == CO_APPLICANT
        assert subtotals[1].amount == Decimal("250")
        assert result.total_income == Decimal("2800.00")
        assert any("Person 0a1b2c3d" in warning for warning in result.warnings)

    def test_missing_profile(self, salary_financials):
        """A missing profile should be reported, not raised."""
        source = FakeProfileSource({}, {RESIDENT: salary_financials})

        result = HouseholdAggregator(RESIDENT, source).calculate_available_monthly_income()

        assert result.errors == [PROFILE_MISSING_ERROR]
        assert result.calculations == []
        assert result.available_income == Decimal("0")

    def test_missing_financials(self, single_adult_profile):
        source = FakeProfileSource({RESIDENT: single_adult_profile}, {})

        result = HouseholdAggregator(RESIDENT, source).calculate_available_monthly_income()

        assert result.errors == [FINANCIALS_MISSING_ERROR]
        assert result.total_income == Decimal("0")

    def test_unknown_household_size(self, salary_financials):
        """Without a household size there is no validation line, only a warning."""
        result = _aggregate({"firstname": "Anna"}, salary_financials)

        assert _lines_of(result, LineType.VALIDATION) == []
        assert result.minimum_required is None
        assert result.errors == []
        assert HOUSEHOLD_SIZE_MISSING_WARNING in result.warnings

    def test_negative_available_income(self, single_adult_profile):
        """Expenses above income should be flagged as a warning and a shortfall."""
        financials = {
            "hasSalaryIncome": True,
            "monthlynetsalary": "500",
            "loans": [{"amount": "700"}],
        }

        result = _aggregate(single_adult_profile, financials)

        assert result.available_income == Decimal("-200")
        assert NEGATIVE_INCOME_WARNING in result.warnings
        assert result.errors == ["Mindestbedarf nicht erfüllt (Fehlbetrag: 1.190,00 €)"]

    def test_store_failure_propagates(self):
        """Failures of the profile store are not turned into result errors."""

        class BrokenSource:
            def get_applicant_profile(self, resident_id):
                raise ConnectionError("store unavailable")

            def get_financial_record(self, resident_id):
                return None

        with pytest.raises(ConnectionError):
            HouseholdAggregator(RESIDENT, BrokenSource()).calculate_available_monthly_income()


class TestRecalculateTotals:
    """Test suite for recalculate_totals."""

    def test_legacy_total_lines_found_by_label(self, single_adult_profile, salary_financials):
        """Total lines without a key should be recognised by their label."""
        result = _aggregate(single_adult_profile, salary_financials)
        stripped = [line.model_copy(update={"key": None}) for line in result.calculations]

        lines, totals = recalculate_totals(stripped)

        assert totals.available_income == result.available_income
        assert [l.amount for l in lines if l.type == LineType.TOTAL] == [
            result.total_income, result.total_expenses, result.available_income,
        ]
