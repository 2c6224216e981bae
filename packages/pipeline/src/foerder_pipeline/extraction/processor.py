"""Batch extraction over all uploads of one application.

The processor sends every uploaded file to the OCR collaborator, maps the
returned values onto the file's relevant values and writes the whole
extraction structure back in one replacement. Failures of single files are
collected as messages; they never abort the batch.
"""

import asyncio
import time
from typing import Any, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from foerder_core.models import ExtractionProgress, ExtractionStructure, format_confidence

from foerder_pipeline.config import FoerderConfig
from foerder_pipeline.extraction.mapping import backend_document_type, map_extracted_values
from foerder_pipeline.interfaces.base import ApplicationStore, ExtractionClient, Result
from foerder_pipeline.interfaces.types import ExtractionOutcome, FileTask, ProcessingSummary

logger = structlog.get_logger()

DEFAULT_EXTRACTION_METHOD = "OCR_COMPREHENSIVE"
ERROR_EXTRACTION_METHOD = "error"
FAILED_CONFIDENCE = "0"

NO_STRUCTURE_ERROR = "Keine Extraktionsstruktur für diesen Antrag gefunden"
INVALID_STRUCTURE_ERROR = "Die gespeicherte Extraktionsstruktur ist ungültig"


def _merged_record(existing: Any, fresh: Any) -> Any:
    """Lay a freshly mapped record over the stored one.

    Keys only the stored record has (such as "laufzeit") are kept.
    """
    if existing is None:
        return fresh
    merged = existing.model_dump(by_alias=True)
    merged.update(fresh.model_dump(by_alias=True))
    return type(fresh).model_validate(merged)


class ExtractionStructureProcessor:
    """Run OCR extraction over every uploaded file of an application.

    Example:
        processor = ExtractionStructureProcessor(
            application_id="app-42",
            store=JsonFileApplicationStore("./data"),
            client=HttpExtractionClient(config.ocr),
            config=config,
        )
        summary = await processor.process_extraction_structure()
    """

    def __init__(
        self,
        application_id: str,
        store: ApplicationStore,
        client: ExtractionClient,
        config: Optional[FoerderConfig] = None,
    ):
        """
        Initialize processor.

        Args:
            application_id: Application whose uploads are processed
            store: Store holding the extraction structure
            client: OCR comprehensive-extraction collaborator
            config: Pipeline settings (default: loaded from the environment)
        """
        self.application_id = application_id
        self.store = store
        self.client = client
        self.config = config or FoerderConfig()

    def _load_structure(self) -> tuple[Optional[ExtractionStructure], Optional[str]]:
        raw = self.store.load_extraction_structure(self.application_id)
        if raw is None:
            return None, NO_STRUCTURE_ERROR
        try:
            return ExtractionStructure.from_json(raw), None
        except PydanticValidationError as e:
            logger.error(
                "extraction_structure_invalid",
                application_id=self.application_id,
                error_count=e.error_count(),
            )
            return None, INVALID_STRUCTURE_ERROR

    def _collect_tasks(self, structure: ExtractionStructure) -> tuple[list[FileTask], int]:
        """List the files to send; returns (tasks, number of skipped files)."""
        tasks: list[FileTask] = []
        skipped = 0
        skip_completed = self.config.processing.skip_completed_files
        default_type = self.config.ocr.default_document_type

        for person_id, document_type, document in structure.iter_documents():
            if not document.has_uploads:
                continue
            for file_name, file in document.files.items():
                if skip_completed and file.is_extracted:
                    skipped += 1
                    continue
                tasks.append(FileTask(
                    person_id=person_id,
                    document_type=document_type,
                    file_name=file_name,
                    file_path=file.file_path,
                    backend_document_type=backend_document_type(document_type, default_type),
                    relevant_values=document.relevant_values,
                ))
        return tasks, skipped

    async def _extract_file(
        self,
        task: FileTask,
        semaphore: asyncio.Semaphore,
    ) -> Result[ExtractionOutcome]:
        """Call the collaborator for one file; never raises for call failures."""
        timeout = self.config.ocr.timeout
        async with semaphore:
            started = time.monotonic()
            try:
                result = await asyncio.wait_for(
                    self.client.extract(task.file_path, task.backend_document_type),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                return Result.timeout(
                    f"Zeitüberschreitung nach {timeout:g} Sekunden",
                    duration_ms=(time.monotonic() - started) * 1000,
                )
            except Exception as e:
                logger.error(
                    "extraction_client_raised",
                    application_id=self.application_id,
                    file_name=task.file_name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return Result.failure(str(e) or type(e).__name__)

        if result.is_success and (result.data is None or not result.data.success):
            message = result.data.message if result.data is not None else None
            return Result.failure(message or "Keine verwertbaren Daten erhalten")
        return result

    def _apply_result(
        self,
        structure: ExtractionStructure,
        task: FileTask,
        result: Result[ExtractionOutcome],
        errors: list[str],
    ) -> None:
        file = structure.person(task.person_id)[task.document_type].files[task.file_name]

        if result.is_success:
            outcome = result.data
            file.confidence = format_confidence(outcome.confidence)
            file.method_used = outcome.extraction_method or DEFAULT_EXTRACTION_METHOD
            mapped = map_extracted_values(
                task.document_type, task.relevant_values, outcome.extracted_values
            )
            for field_id, record in mapped.items():
                file.values[field_id] = _merged_record(file.values.get(field_id), record)
            logger.info(
                "extraction_file_completed",
                application_id=self.application_id,
                person_id=task.person_id,
                document_type=task.document_type,
                file_name=task.file_name,
                confidence=file.confidence,
                values=len(task.relevant_values),
            )
            return

        file.confidence = FAILED_CONFIDENCE
        file.method_used = ERROR_EXTRACTION_METHOD
        errors.append(f"Extraktion fehlgeschlagen für {task.label}: {result.error}")
        logger.warning(
            "extraction_file_failed",
            application_id=self.application_id,
            person_id=task.person_id,
            document_type=task.document_type,
            file_name=task.file_name,
            status=result.status.value,
            error=result.error,
        )

    @staticmethod
    def _mark_complete(structure: ExtractionStructure) -> None:
        for _, _, document in structure.iter_documents():
            if not document.has_uploads:
                continue
            document.extraction_complete = bool(document.files) and all(
                file.is_extracted for file in document.files.values()
            )

    async def process_extraction_structure(self) -> ProcessingSummary:
        """
        Extract every uploaded file and persist the updated structure.

        Returns:
            ProcessingSummary with counts, per-file errors and the written structure

        Raises:
            PersistenceError: If the store cannot be read or written
        """
        structure, error = self._load_structure()
        if structure is None:
            logger.warning(
                "extraction_batch_aborted",
                application_id=self.application_id,
                reason=error,
            )
            return ProcessingSummary(success=False, errors=[error])

        tasks, skipped = self._collect_tasks(structure)
        logger.info(
            "extraction_batch_started",
            application_id=self.application_id,
            files=len(tasks),
            skipped=skipped,
            max_concurrency=self.config.ocr.max_concurrency,
        )

        semaphore = asyncio.Semaphore(self.config.ocr.max_concurrency)
        results = await asyncio.gather(
            *(self._extract_file(task, semaphore) for task in tasks)
        )

        errors: list[str] = []
        for task, result in zip(tasks, results):
            self._apply_result(structure, task, result, errors)
        self._mark_complete(structure)

        updated = structure.to_json()
        self.store.save_extraction_structure(self.application_id, updated)

        logger.info(
            "extraction_batch_completed",
            application_id=self.application_id,
            processed=len(tasks),
            failed=len(errors),
        )
        return ProcessingSummary(
            success=True,
            processed_files=len(tasks),
            total_files=len(tasks) + skipped,
            skipped_files=skipped,
            errors=errors,
            updated_structure=updated,
        )

    async def get_extraction_progress(self) -> ExtractionProgress:
        """
        Summarize extraction progress of the application.

        Returns:
            ExtractionProgress; all zero if no structure exists yet
        """
        structure, _ = self._load_structure()
        if structure is None:
            return ExtractionProgress()
        return structure.progress()
