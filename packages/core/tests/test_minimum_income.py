"""Tests for the statutory minimum-income table."""

from decimal import Decimal

from foerder_core.minimum_income import (
    get_minimum_income_table_version,
    get_minimum_required_income,
)


class TestMinimumRequiredIncome:
    """Test suite for get_minimum_required_income."""

    def test_one_person(self):
        assert get_minimum_required_income(1) == Decimal("990")

    def test_two_persons(self):
        assert get_minimum_required_income(2) == Decimal("1270")

    def test_each_additional_person_adds_320(self):
        """Households above two persons add 320 EUR per person."""
        assert get_minimum_required_income(3) == Decimal("1590")
        assert get_minimum_required_income(5) == Decimal("2230")

    def test_unknown_household_size(self):
        """Zero or negative sizes should yield no minimum."""
        assert get_minimum_required_income(0) == Decimal("0")
        assert get_minimum_required_income(-1) == Decimal("0")

    def test_version(self):
        assert get_minimum_income_table_version() == "2024"
