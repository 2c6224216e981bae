"""Foerder Core - Extraction-based household income reconciliation."""

__version__ = "0.1.0"

from .calculator import HouseholdAggregator, PersonIncomeCalculator, recalculate_totals
from .checklist import ExtractionChecklistGenerator, apply_manual_edit
from .currency import format_currency, parse_currency
from .models import ExtractionStructure, HouseholdResult, ValueWithMetadata
from .resolver import resolve_value

__all__ = [
    "ExtractionChecklistGenerator",
    "ExtractionStructure",
    "HouseholdAggregator",
    "HouseholdResult",
    "PersonIncomeCalculator",
    "ValueWithMetadata",
    "apply_manual_edit",
    "format_currency",
    "parse_currency",
    "recalculate_totals",
    "resolve_value",
]
