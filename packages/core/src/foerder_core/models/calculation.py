"""Calculation models: provenance-tagged values, report lines and results.

Amounts are Decimals in Python and plain JSON numbers in the persisted
review record.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, model_validator


Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]
"""Decimal amount serialized as a JSON number."""


def _utc_now() -> datetime:
    """Return current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


class ValueSource(str, Enum):
    """Where a resolved value came from."""

    EXTRACTED = "extracted"
    FORM = "form"
    MANUAL = "manual"


class LineType(str, Enum):
    """Kinds of lines in the calculation report."""

    PERSON_HEADER = "person_header"
    INCOME_ITEM = "income_item"
    EXPENSE_ITEM = "expense_item"
    SUBTOTAL = "subtotal"
    TOTAL = "total"
    VALIDATION = "validation"


# Keys of the three household total lines
TOTAL_INCOME_KEY = "total_income"
TOTAL_EXPENSES_KEY = "total_expenses"
AVAILABLE_INCOME_KEY = "available_income"


class ValueWithMetadata(BaseModel):
    """A monetary value together with its provenance.

    Attributes:
        value: The amount in EUR
        source: extracted, form or manual
        document_ids: Documents the value was read from
        confidence: Extraction confidence (0.0 to 1.0)
        editable: Whether a reviewer may overwrite the value
    """

    model_config = ConfigDict(populate_by_name=True)

    value: Money = Decimal("0")
    source: ValueSource = ValueSource.FORM
    document_ids: Optional[list[str]] = Field(default=None, alias="documentIds")
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    editable: bool = True

    @model_validator(mode="after")
    def _extracted_values_name_documents(self) -> "ValueWithMetadata":
        if self.source == ValueSource.EXTRACTED and not self.document_ids:
            raise ValueError("extracted values must reference at least one document")
        return self


class CalculationLine(BaseModel):
    """One line of the calculation report.

    Attributes:
        type: Line kind
        label: German display label
        value: Amount with provenance (headers carry none)
        person_id: "main_applicant" or the co-applicant UUID
        person_name: Display name on person header lines
        key: Catalogue category of an item, or the kind of a total line
    """

    model_config = ConfigDict(populate_by_name=True)

    type: LineType
    label: str
    value: Optional[ValueWithMetadata] = None
    person_id: Optional[str] = Field(default=None, alias="personId")
    person_name: Optional[str] = Field(default=None, alias="personName")
    key: Optional[str] = None

    @property
    def amount(self) -> Decimal:
        """The line's amount, 0 for lines without a value."""
        return self.value.value if self.value else Decimal("0")

    @property
    def is_editable(self) -> bool:
        return self.value is not None and self.value.editable


class AuditEntry(BaseModel):
    """One calculation step, kept for reviewer traceability."""

    timestamp: datetime = Field(default_factory=_utc_now)
    step: str
    person_id: Optional[str] = None
    input_value: Optional[Any] = None
    output_value: Optional[Any] = None
    source: str
    notes: Optional[str] = None


class PersonIncome(BaseModel):
    """Income and expense lines of one household member."""

    person_id: str
    person_name: str
    income: Money = Decimal("0")
    expenses: Money = Decimal("0")
    income_lines: list[CalculationLine] = Field(default_factory=list)
    expense_lines: list[CalculationLine] = Field(default_factory=list)

    @property
    def surplus(self) -> Decimal:
        return self.income - self.expenses


class HouseholdTotals(BaseModel):
    """Household sums produced by one recompute pass."""

    total_income: Money = Decimal("0")
    total_expenses: Money = Decimal("0")
    available_income: Money = Decimal("0")


class HouseholdResult(BaseModel):
    """Result of the household calculation.

    Attributes:
        calculations: Ordered report lines
        errors: Blocking findings (German, for direct display)
        warnings: Non-blocking findings
        total_income: Sum of all income lines
        total_expenses: Sum of all expense lines
        available_income: total_income - total_expenses
        household_size: Adults plus children
        minimum_required: Statutory minimum for the household size
        audit_log: Calculation steps
    """

    model_config = ConfigDict(populate_by_name=True)

    calculations: list[CalculationLine] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    total_income: Money = Field(default=Decimal("0"), alias="totalIncome")
    total_expenses: Money = Field(default=Decimal("0"), alias="totalExpenses")
    available_income: Money = Field(default=Decimal("0"), alias="availableIncome")
    household_size: int = Field(default=0, ge=0, alias="householdSize")
    minimum_required: Optional[Money] = Field(default=None, alias="minimumRequired")
    audit_log: list[AuditEntry] = Field(default_factory=list, alias="auditLog")

    @property
    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def linked_document_ids(self) -> list[str]:
        """Document ids referenced by any line, first occurrence order."""
        seen: dict[str, None] = {}
        for line in self.calculations:
            if line.value and line.value.document_ids:
                for document_id in line.value.document_ids:
                    seen.setdefault(document_id, None)
        return list(seen)
