"""Collaborator interfaces the core calculation depends on.

The core never performs I/O itself; the profile store is injected through
the structural protocol below. Any object with matching methods qualifies.
"""

from typing import Optional, Protocol, runtime_checkable

from foerder_core.models.profile import ApplicantProfile, FinancialRecord


@runtime_checkable
class ProfileSource(Protocol):
    """Read access to a resident's profile and financial record.

    Implementations return None when a record does not exist and raise
    PersistenceError when the store cannot be reached.
    """

    def get_applicant_profile(self, resident_id: str) -> Optional[ApplicantProfile]:
        """Load the applicant profile of a resident."""
        ...

    def get_financial_record(self, resident_id: str) -> Optional[FinancialRecord]:
        """Load the financial record (self-disclosure form) of a resident."""
        ...
