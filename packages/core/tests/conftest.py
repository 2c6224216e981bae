"""Shared fixtures for foerder-core tests."""

from typing import Any

import pytest

from foerder_core.models import ExtractionStructure


@pytest.fixture
def single_adult_profile() -> dict[str, Any]:
    """Profile of a one-person household."""
    return {
        "firstname": "Anna",
        "lastname": "Schmidt",
        "adult_count": "1",
        "child_count": "0",
    }


@pytest.fixture
def salary_financials() -> dict[str, Any]:
    """Form figures of an employee with a loan."""
    return {
        "hasSalaryIncome": True,
        "monthlynetsalary": "2.400,00",
        "wheinachtsgeld_next12_net": "1200",
        "urlaubsgeld_next12_net": "600",
        "loans": [{"amount": "350,00"}, {"amount": "150"}],
    }


@pytest.fixture
def payslip_structure() -> ExtractionStructure:
    """Extraction structure with one processed pay slip for the main applicant."""
    return ExtractionStructure.from_json({
        "main_applicant": {
            "lohn_gehaltsbescheinigungen": {
                "numberOfFiles": 1,
                "relevantValues": ["monthlynetsalary"],
                "extractionComplete": True,
                "gehalt_januar.pdf": {
                    "filePath": "applications/a1/gehalt_januar.pdf",
                    "confidence": "0.92",
                    "methodUsed": "OCR_COMPREHENSIVE",
                    "uploadedAt": "2024-05-02T10:00:00Z",
                    "monthlynetsalary": {
                        "year": "2024",
                        "month": "01",
                        "isMonthly": True,
                        "confidence": "0.9",
                        "isRecurring": True,
                        "net_value": 2500,
                    },
                },
            },
        },
    })
