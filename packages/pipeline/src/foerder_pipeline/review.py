"""Review workflow of one application.

Ties the core checklist generation to the stores: loads the extraction
structure, runs the household calculation, and keeps the automatic items of
the review record up to date. Reviewer edits go through the same
recomputation as generated items before they are persisted.
"""

from datetime import datetime, timezone
from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from foerder_core.calculator import HouseholdAggregator
from foerder_core.checklist import (
    EditValue,
    ExtractionChecklistGenerator,
    apply_manual_edit,
    build_failed_item,
)
from foerder_core.exceptions import FoerderError, ValidationError
from foerder_core.interfaces import ProfileSource
from foerder_core.models import ChecklistItem, ExtractionStructure, ReviewData

from foerder_pipeline.interfaces.base import ApplicationStore

logger = structlog.get_logger()


class ReviewWorkflow:
    """Generate, persist and edit the automatic checklist items.

    Example:
        workflow = ReviewWorkflow("app-42", "resident-7", store, profiles)
        items = workflow.generate_automatic_items()
        workflow.save_automatic_items(items)
        workflow.apply_manual_edit("automatic-available-monthly-income", 1, "2.100,00")
    """

    def __init__(
        self,
        application_id: str,
        resident_id: str,
        store: ApplicationStore,
        profile_source: ProfileSource,
    ):
        self.application_id = application_id
        self.resident_id = resident_id
        self.store = store
        self.generator = ExtractionChecklistGenerator(
            HouseholdAggregator(resident_id, profile_source)
        )

    def _load_review_data(self) -> ReviewData:
        raw = self.store.load_review_data(self.application_id)
        if raw is None:
            return ReviewData()
        return ReviewData.model_validate(raw)

    def _save_review_data(self, review_data: ReviewData) -> None:
        self.store.save_review_data(
            self.application_id,
            review_data.model_dump(mode="json", by_alias=True),
        )

    def generate_automatic_items(self) -> list[ChecklistItem]:
        """
        Calculate the household and build the automatic checklist items.

        Returns:
            The automatic items; empty if the application has no extraction
            structure yet, a single failed item if the calculation could not run
        """
        try:
            raw = self.store.load_extraction_structure(self.application_id)
            if raw is None:
                logger.info("checklist_generation_skipped", application_id=self.application_id)
                return []
            structure = ExtractionStructure.from_json(raw)
            return self.generator.generate_automatic_items(structure)
        except (FoerderError, PydanticValidationError) as e:
            logger.error(
                "checklist_generation_failed",
                application_id=self.application_id,
                resident_id=self.resident_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return [build_failed_item()]

    def has_existing_automatic_items(self) -> bool:
        """Check if the review record already holds automatic items."""
        return self._load_review_data().has_automatic_items()

    def save_automatic_items(self, items: list[ChecklistItem]) -> ReviewData:
        """
        Replace all automatic items of the review record.

        Hand-made items are kept in their order; the automatic items follow.

        Args:
            items: Freshly generated automatic items

        Returns:
            The review record as written
        """
        review_data = self._load_review_data()
        kept = [item for item in review_data.checklist_items if not item.is_automatic]
        updated = review_data.model_copy(update={
            "checklist_items": kept + list(items),
            "last_updated": datetime.now(timezone.utc),
            "version": review_data.version + 1 if review_data.last_updated else review_data.version,
        })
        self._save_review_data(updated)
        logger.info(
            "automatic_items_saved",
            application_id=self.application_id,
            automatic=len(items),
            kept=len(kept),
            version=updated.version,
        )
        return updated

    def apply_manual_edit(
        self,
        item_id: str,
        line_index: int,
        value: EditValue,
    ) -> ChecklistItem:
        """
        Apply a reviewer's replacement value and persist the recomputed item.

        Args:
            item_id: Id of the checklist item holding the calculation
            line_index: Index of the edited line
            value: Replacement amount

        Returns:
            The recomputed checklist item

        Raises:
            ValidationError: If the item does not exist or the edit is invalid
        """
        review_data = self._load_review_data()
        item = review_data.find_item(item_id)
        if item is None:
            raise ValidationError(
                "Prüfpunkt nicht gefunden",
                field="checklistItems",
                value=item_id,
            )

        edited = apply_manual_edit(item, line_index, value)
        updated = review_data.model_copy(update={
            "checklist_items": [
                edited if existing.id == item_id else existing
                for existing in review_data.checklist_items
            ],
            "last_updated": datetime.now(timezone.utc),
        })
        self._save_review_data(updated)
        return edited


def run_review(
    application_id: str,
    resident_id: str,
    store: ApplicationStore,
    profile_source: ProfileSource,
) -> Optional[ReviewData]:
    """Regenerate and persist the automatic items; None if nothing was generated."""
    workflow = ReviewWorkflow(application_id, resident_id, store, profile_source)
    items = workflow.generate_automatic_items()
    if not items:
        return None
    return workflow.save_automatic_items(items)
