"""Typed views of the applicant profile and the self-disclosure form.

Both records are owned by the portal's profile store; only the fields the
income calculation reads are modelled, everything else is ignored. Amount
fields keep the raw entered value and are parsed with parse_currency.
"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


RawAmount = Optional[Union[str, int, float]]
"""An amount as entered in the form ("1.200,50", 1200.5, "")."""


def _parse_count(value: Any) -> int:
    """Parse a person count the way the form stores it ("2", 2, "", None)."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return max(int(str(value).strip()), 0)
    except ValueError:
        return 0


class HouseholdMember(BaseModel):
    """An additional applicant or household member from the profile."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    not_household: Optional[bool] = Field(default=None, alias="notHousehold")
    no_income: Optional[bool] = Field(default=None, alias="noIncome")

    def display_name(self, person_id: str) -> str:
        """Full name, or a short placeholder built from the person id."""
        name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return name or f"Person {person_id[:8]}"


class ApplicantProfile(BaseModel):
    """The main applicant's profile record.

    Attributes:
        firstname: Main applicant's first name
        lastname: Main applicant's last name
        no_income: Main applicant declared no income of their own
        adult_count: Adults living in the household
        child_count: Children living in the household
        weitere_antragstellende_personen: Additional persons keyed by UUID
    """

    model_config = ConfigDict(populate_by_name=True)

    firstname: Optional[str] = None
    lastname: Optional[str] = None
    no_income: Optional[bool] = Field(default=None, alias="noIncome")
    adult_count: int = 0
    child_count: int = 0
    weitere_antragstellende_personen: dict[str, HouseholdMember] = Field(default_factory=dict)

    @field_validator("adult_count", "child_count", mode="before")
    @classmethod
    def parse_count(cls, v: Any) -> int:
        """Unparseable counts are treated as 0."""
        return _parse_count(v)

    @field_validator("weitere_antragstellende_personen", mode="before")
    @classmethod
    def missing_persons_as_empty(cls, v: Any) -> Any:
        """Persons must be keyed by the UUID their financial records use."""
        return {} if v is None else v

    @property
    def household_size(self) -> int:
        return self.adult_count + self.child_count

    @property
    def display_name(self) -> str:
        name = " ".join(part for part in (self.firstname, self.lastname) if part)
        return name or "Hauptantragsteller"


class AmountEntry(BaseModel):
    """One row of a repeatable amount list (loans, pensions, ...)."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    amount: RawAmount = None
    amount_total: RawAmount = Field(default=None, alias="amountTotal")


class FormFinancials(BaseModel):
    """Self-disclosure figures of one person.

    Presence flags decide whether a category is counted at all; amount
    fields hold the figure as entered. Annual figures are divided by 12 by
    the income catalogue, not here.
    """

    model_config = ConfigDict(populate_by_name=True)

    # Employment
    has_salary_income: Optional[bool] = Field(default=None, alias="hasSalaryIncome")
    monthlynetsalary: RawAmount = None
    wheinachtsgeld_next12_net: RawAmount = None
    urlaubsgeld_next12_net: RawAmount = None
    otheremploymentmonthlynetincome: Optional[list[AmountEntry]] = None

    # Other taxable income (annual figures)
    has_agriculture_income: Optional[bool] = Field(default=None, alias="hasagricultureincome")
    incomeagriculture_net: RawAmount = None
    has_rent_income: Optional[bool] = Field(default=None, alias="hasrentincome")
    incomerent_net: RawAmount = None
    has_capital_income: Optional[bool] = Field(default=None, alias="hascapitalincome")
    yearlycapitalnetincome: RawAmount = None
    has_business_income: Optional[bool] = Field(default=None, alias="hasbusinessincome")
    yearlybusinessnetincome: RawAmount = None
    yearlyselfemployednetincome: RawAmount = None

    # Pensions and transfers (monthly figures)
    has_pension_income: Optional[bool] = Field(default=None, alias="haspensionincome")
    pensionmonthlynetincome: Optional[list[AmountEntry]] = None
    has_taxfree_unterhalt_income: Optional[bool] = Field(
        default=None, alias="hastaxfreeunterhaltincome"
    )
    incomeunterhalttaxfree: RawAmount = None
    has_taxable_unterhalt_income: Optional[bool] = Field(
        default=None, alias="hastaxableunterhaltincome"
    )
    incomeunterhalttaxable_net: RawAmount = None
    has_kindergeld_income: Optional[bool] = Field(default=None, alias="haskindergeldincome")
    monthlykindergeldnetincome: RawAmount = None
    has_pflegegeld_income: Optional[bool] = Field(default=None, alias="haspflegegeldincome")
    monthlypflegegeldnetincome: RawAmount = None
    has_elterngeld_income: Optional[bool] = Field(default=None, alias="haselterngeldincome")
    monthlyelterngeldnetincome: RawAmount = None
    has_other_net_income: Optional[bool] = Field(default=None, alias="hasothernetincome")
    othermonthlynetincome: Optional[list[AmountEntry]] = None

    # Obligations
    loans: Optional[list[AmountEntry]] = None
    zwischenkredit: Optional[list[AmountEntry]] = None
    unterhaltszahlungen_total: Optional[list[AmountEntry]] = Field(
        default=None, alias="unterhaltszahlungenTotal"
    )
    otherzahlungsverpflichtung: Optional[list[AmountEntry]] = None
    betragotherinsurancetaxexpenses: Optional[list[AmountEntry]] = None
    has_rentenversicherung: Optional[bool] = Field(default=None, alias="hasRentenversicherung")
    praemiekapitalrentenversicherung: RawAmount = None
    has_bausparvertraege: Optional[bool] = Field(default=None, alias="hasBausparvertraege")
    sparratebausparvertraege: RawAmount = None

    @field_validator(
        "otheremploymentmonthlynetincome",
        "pensionmonthlynetincome",
        "othermonthlynetincome",
        "loans",
        "zwischenkredit",
        "unterhaltszahlungen_total",
        "otherzahlungsverpflichtung",
        "betragotherinsurancetaxexpenses",
        mode="before",
    )
    @classmethod
    def drop_blank_rows(cls, v: Any) -> Any:
        """Remove empty rows the form leaves behind when a row is deleted."""
        if isinstance(v, list):
            return [row for row in v if isinstance(row, dict)]
        return v


class FinancialRecord(FormFinancials):
    """The application's financial record.

    The main applicant's figures sit at the top level; figures of additional
    household members are keyed by their UUID.
    """

    additional_applicants_financials: dict[str, FormFinancials] = Field(default_factory=dict)

    @field_validator("additional_applicants_financials", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {key: value for key, value in v.items() if value is not None}
        return v

    def financials_for(self, person_id: str) -> Optional[FormFinancials]:
        """Form figures of an additional household member, if recorded."""
        return self.additional_applicants_financials.get(person_id)
