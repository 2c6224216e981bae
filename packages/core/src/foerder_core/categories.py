"""Fixed catalogue of income and expense categories.

The catalogue decides which self-disclosure fields count towards the
disposable monthly income, in which order they appear in the report and
how each figure is read. Order matters: it is the order of the report lines.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from foerder_core.models.profile import FormFinancials


class CategoryKind(str, Enum):
    """Whether a category adds to or subtracts from the disposable income."""

    INCOME = "income"
    EXPENSE = "expense"


@dataclass(frozen=True)
class Category:
    """One catalogue entry.

    Attributes:
        key: Stable identifier, written to the report line
        label: German display label
        kind: Income or expense
        attribute: FormFinancials attribute holding the figure or the list;
            for scalar categories also the field id looked up in the
            extraction structure
        flag: FormFinancials attribute of the presence flag; list categories
            without a flag are present whenever their list exists
        is_list: Whether the figure is the sum of a repeatable list
        list_amount_field: Field summed on each list row
        annual: Whether the figure is annual and divided by 12
    """

    key: str
    label: str
    kind: CategoryKind
    attribute: str
    flag: Optional[str] = None
    is_list: bool = False
    list_amount_field: str = "amount"
    annual: bool = False

    @property
    def field_id(self) -> str:
        return self.attribute

    def is_present(self, financials: FormFinancials) -> bool:
        """Check the presence flag (and, for lists, that the list exists)."""
        if self.flag is not None and not getattr(financials, self.flag):
            return False
        if self.is_list:
            return getattr(financials, self.attribute) is not None
        return True


# =============================================================================
# INCOME
# =============================================================================

INCOME_CATEGORIES: tuple[Category, ...] = (
    Category(
        key="salary",
        label="Monatliches Nettogehalt",
        kind=CategoryKind.INCOME,
        attribute="monthlynetsalary",
        flag="has_salary_income",
    ),
    Category(
        key="christmas_bonus",
        label="Weihnachtsgeld (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="wheinachtsgeld_next12_net",
        flag="has_salary_income",
        annual=True,
    ),
    Category(
        key="vacation_bonus",
        label="Urlaubsgeld (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="urlaubsgeld_next12_net",
        flag="has_salary_income",
        annual=True,
    ),
    Category(
        key="other_employment",
        label="Sonstige Einkünfte aus nichtselbständiger Arbeit (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="otheremploymentmonthlynetincome",
        flag="has_salary_income",
        is_list=True,
        annual=True,
    ),
    Category(
        key="agriculture",
        label="Einkünfte aus Land- und Forstwirtschaft (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="incomeagriculture_net",
        flag="has_agriculture_income",
        annual=True,
    ),
    Category(
        key="rent",
        label="Einkünfte aus Vermietung und Verpachtung (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="incomerent_net",
        flag="has_rent_income",
        annual=True,
    ),
    Category(
        key="capital",
        label="Einkünfte aus Kapitalvermögen (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="yearlycapitalnetincome",
        flag="has_capital_income",
        annual=True,
    ),
    Category(
        key="business",
        label="Einkünfte aus Gewerbebetrieb (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="yearlybusinessnetincome",
        flag="has_business_income",
        annual=True,
    ),
    Category(
        key="self_employment",
        label="Einkünfte aus selbständiger Arbeit (pro Monat)",
        kind=CategoryKind.INCOME,
        attribute="yearlyselfemployednetincome",
        flag="has_business_income",
        annual=True,
    ),
    Category(
        key="pension",
        label="Renten-/Versorgungsbezüge",
        kind=CategoryKind.INCOME,
        attribute="pensionmonthlynetincome",
        flag="has_pension_income",
        is_list=True,
    ),
    Category(
        key="maintenance_tax_free",
        label="Steuerfreie Unterhaltsleistungen",
        kind=CategoryKind.INCOME,
        attribute="incomeunterhalttaxfree",
        flag="has_taxfree_unterhalt_income",
    ),
    Category(
        key="maintenance_taxable",
        label="Steuerpflichtige Unterhaltsleistungen",
        kind=CategoryKind.INCOME,
        attribute="incomeunterhalttaxable_net",
        flag="has_taxable_unterhalt_income",
    ),
    Category(
        key="child_benefit",
        label="Kindergeld",
        kind=CategoryKind.INCOME,
        attribute="monthlykindergeldnetincome",
        flag="has_kindergeld_income",
    ),
    Category(
        key="care_allowance",
        label="Pflegegeld",
        kind=CategoryKind.INCOME,
        attribute="monthlypflegegeldnetincome",
        flag="has_pflegegeld_income",
    ),
    Category(
        key="parental_allowance",
        label="Elterngeld",
        kind=CategoryKind.INCOME,
        attribute="monthlyelterngeldnetincome",
        flag="has_elterngeld_income",
    ),
    Category(
        key="other_income",
        label="Sonstige monatliche Einkünfte",
        kind=CategoryKind.INCOME,
        attribute="othermonthlynetincome",
        flag="has_other_net_income",
        is_list=True,
    ),
)


# =============================================================================
# EXPENSES
# =============================================================================

EXPENSE_CATEGORIES: tuple[Category, ...] = (
    Category(
        key="loans",
        label="Darlehensrückzahlungen",
        kind=CategoryKind.EXPENSE,
        attribute="loans",
        is_list=True,
    ),
    Category(
        key="bridge_loans",
        label="Zwischenkredit",
        kind=CategoryKind.EXPENSE,
        attribute="zwischenkredit",
        is_list=True,
    ),
    Category(
        key="maintenance_payments",
        label="Unterhaltszahlungen",
        kind=CategoryKind.EXPENSE,
        attribute="unterhaltszahlungen_total",
        is_list=True,
        list_amount_field="amount_total",
    ),
    Category(
        key="other_obligations",
        label="Sonstige Zahlungsverpflichtungen",
        kind=CategoryKind.EXPENSE,
        attribute="otherzahlungsverpflichtung",
        is_list=True,
    ),
    Category(
        key="insurance_and_taxes",
        label="Sonstige Versicherungen und Steuern",
        kind=CategoryKind.EXPENSE,
        attribute="betragotherinsurancetaxexpenses",
        is_list=True,
    ),
    Category(
        key="pension_insurance",
        label="Kapital-/Rentenversicherung",
        kind=CategoryKind.EXPENSE,
        attribute="praemiekapitalrentenversicherung",
        flag="has_rentenversicherung",
    ),
    Category(
        key="building_savings",
        label="Bausparverträge",
        kind=CategoryKind.EXPENSE,
        attribute="sparratebausparvertraege",
        flag="has_bausparvertraege",
    ),
)


CATALOGUE: tuple[Category, ...] = INCOME_CATEGORIES + EXPENSE_CATEGORIES
