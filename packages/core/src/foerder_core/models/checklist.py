"""Review checklist models persisted in the application's review record."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from foerder_core.models.calculation import CalculationLine, Money


AUTOMATIC_ITEM_PREFIX = "automatic-"
"""Checklist items whose id starts with this prefix are generated, not hand-made."""


class ChecklistStatus(str, Enum):
    """Status of a checklist item, as set by the system or the case worker."""

    CORRECT = "correct"
    WRONG = "wrong"
    UNDEFINED = "undefined"
    CREATED = "created"


class CalculationData(BaseModel):
    """Snapshot of the calculation kept inside a checklist item."""

    model_config = ConfigDict(populate_by_name=True)

    calculations: list[CalculationLine] = Field(default_factory=list)
    total_income: Money = Field(default=Decimal("0"), alias="totalIncome")
    total_expenses: Money = Field(default=Decimal("0"), alias="totalExpenses")
    available_income: Money = Field(default=Decimal("0"), alias="availableIncome")


class ChecklistItem(BaseModel):
    """One item of the case worker's review checklist.

    Unknown keys written by the review UI are preserved.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    title: str = ""
    system_status: ChecklistStatus = Field(default=ChecklistStatus.UNDEFINED, alias="systemStatus")
    agent_status: ChecklistStatus = Field(default=ChecklistStatus.UNDEFINED, alias="agentStatus")
    system_comment: str = Field(default="", alias="systemComment")
    system_errors: list[str] = Field(default_factory=list, alias="systemErrors")
    system_warnings: list[str] = Field(default_factory=list, alias="systemWarnings")
    linked_forms: list[str] = Field(default_factory=list, alias="linkedForms")
    linked_docs: list[str] = Field(default_factory=list, alias="linkedDocs")
    linked_signed_docs: list[str] = Field(default_factory=list, alias="linkedSignedDocs")
    agent_notes: Optional[str] = Field(default=None, alias="agentNotes")
    calculation_data: Optional[CalculationData] = Field(default=None, alias="calculationData")

    @property
    def is_automatic(self) -> bool:
        return self.id.startswith(AUTOMATIC_ITEM_PREFIX)


class ReviewData(BaseModel):
    """The review record of one application."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    checklist_items: list[ChecklistItem] = Field(default_factory=list, alias="checklistItems")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    version: int = Field(default=1, ge=1)

    def find_item(self, item_id: str) -> Optional[ChecklistItem]:
        """Return the checklist item with the given id, if present."""
        for item in self.checklist_items:
            if item.id == item_id:
                return item
        return None

    def has_automatic_items(self) -> bool:
        return any(item.is_automatic for item in self.checklist_items)
