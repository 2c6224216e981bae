"""Statutory minimum monthly income by household size.

The subsidy programme requires that a household keeps at least this much
disposable income per month after all recurring obligations. The table is
fixed by the programme guidelines; it is not configurable at runtime.
"""

from decimal import Decimal


# =============================================================================
# VERSION TRACKING
# =============================================================================

MINIMUM_INCOME_TABLE_VERSION = "2024"


def get_minimum_income_table_version() -> str:
    """Return the version of the minimum-income table in use."""
    return MINIMUM_INCOME_TABLE_VERSION


# =============================================================================
# MINIMUM INCOME BY HOUSEHOLD SIZE
# =============================================================================

MINIMUM_INCOME_BY_HOUSEHOLD_SIZE = {
    # Household size: Monthly amount in EUR
    1: Decimal("990"),
    2: Decimal("1270"),
    # For each additional person over 2, add 320 EUR
}

MINIMUM_INCOME_ADDITIONAL_PERSON = Decimal("320")

# Single-person minimum, used for the low-income warning
SINGLE_PERSON_MINIMUM = MINIMUM_INCOME_BY_HOUSEHOLD_SIZE[1]


def get_minimum_required_income(household_size: int) -> Decimal:
    """Get the minimum monthly income a household must keep.

    Args:
        household_size: Number of adults plus children in the household

    Returns:
        Monthly minimum in EUR; 0 when the household size is unknown
    """
    if household_size <= 0:
        return Decimal("0")
    if household_size <= 2:
        return MINIMUM_INCOME_BY_HOUSEHOLD_SIZE[household_size]

    base = MINIMUM_INCOME_BY_HOUSEHOLD_SIZE[2]
    additional = MINIMUM_INCOME_ADDITIONAL_PERSON * (household_size - 2)
    return base + additional
