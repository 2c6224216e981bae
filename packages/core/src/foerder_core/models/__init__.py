"""Data models for foerder-core.

This package provides:
- The persisted extraction structure and its value records (extraction.py)
- Provenance-tagged values, report lines and results (calculation.py)
- Typed views of the profile and self-disclosure records (profile.py)
- Review checklist records (checklist.py)
"""

from foerder_core.models.calculation import (
    AVAILABLE_INCOME_KEY,
    TOTAL_EXPENSES_KEY,
    TOTAL_INCOME_KEY,
    AuditEntry,
    CalculationLine,
    HouseholdResult,
    HouseholdTotals,
    LineType,
    Money,
    PersonIncome,
    ValueSource,
    ValueWithMetadata,
)
from foerder_core.models.checklist import (
    AUTOMATIC_ITEM_PREFIX,
    CalculationData,
    ChecklistItem,
    ChecklistStatus,
    ReviewData,
)
from foerder_core.models.extraction import (
    FIELD_FIGURE_KINDS,
    AmountRecord,
    DocumentExtraction,
    ExtractionProgress,
    ExtractionStructure,
    FigureKind,
    FileExtraction,
    GrossValueRecord,
    NetValueRecord,
    PersonExtraction,
    ValueRecord,
    YearRecord,
    build_value_record,
    empty_value_record,
    figure_kind_for,
    format_confidence,
    has_confidence,
    parse_confidence,
)
from foerder_core.models.profile import (
    AmountEntry,
    ApplicantProfile,
    FinancialRecord,
    FormFinancials,
    HouseholdMember,
)

__all__ = [
    # Extraction structure
    "FigureKind",
    "FIELD_FIGURE_KINDS",
    "NetValueRecord",
    "GrossValueRecord",
    "AmountRecord",
    "YearRecord",
    "ValueRecord",
    "FileExtraction",
    "DocumentExtraction",
    "PersonExtraction",
    "ExtractionStructure",
    "ExtractionProgress",
    "build_value_record",
    "empty_value_record",
    "figure_kind_for",
    "format_confidence",
    "has_confidence",
    "parse_confidence",
    # Calculation
    "Money",
    "ValueSource",
    "ValueWithMetadata",
    "LineType",
    "CalculationLine",
    "AuditEntry",
    "PersonIncome",
    "HouseholdTotals",
    "HouseholdResult",
    "TOTAL_INCOME_KEY",
    "TOTAL_EXPENSES_KEY",
    "AVAILABLE_INCOME_KEY",
    # Profile
    "AmountEntry",
    "FormFinancials",
    "FinancialRecord",
    "HouseholdMember",
    "ApplicantProfile",
    # Checklist
    "AUTOMATIC_ITEM_PREFIX",
    "ChecklistStatus",
    "CalculationData",
    "ChecklistItem",
    "ReviewData",
]
