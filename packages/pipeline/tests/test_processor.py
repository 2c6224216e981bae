"""Tests for the extraction batch."""

import json

import pytest

from foerder_core.exceptions import PersistenceError
from foerder_pipeline.clients import StaticExtractionClient
from foerder_pipeline.config import ExtractionServiceConfig, FoerderConfig, ProcessingConfig
from foerder_pipeline.extraction import ExtractionStructureProcessor
from foerder_pipeline.extraction.processor import NO_STRUCTURE_ERROR
from foerder_pipeline.interfaces import ExtractionOutcome, Result
from foerder_pipeline.storage import InMemoryApplicationStore
from pipeline_fakes import (
    APPLICATION,
    CO_APPLICANT,
    document,
    payslip_outcome,
    payslip_upload_structure,
    pension_outcome,
    uploaded_file,
)


def _config(**ocr) -> FoerderConfig:
    return FoerderConfig(env="test", ocr=ExtractionServiceConfig(**ocr))


def _responses(**overrides):
    responses = {
        "a1/gehalt_januar.pdf": payslip_outcome(2500),
        "a1/gehalt_februar.pdf": payslip_outcome(2600, confidence=1.0),
        "a1/rente.pdf": pension_outcome(1400),
    }
    responses.update(overrides)
    return responses


def _processor(store, client, config=None) -> ExtractionStructureProcessor:
    return ExtractionStructureProcessor(APPLICATION, store, client, config or _config())


@pytest.fixture
def store() -> InMemoryApplicationStore:
    return InMemoryApplicationStore({APPLICATION: payslip_upload_structure()})


class TestProcessExtractionStructure:
    """Test suite for ExtractionStructureProcessor.process_extraction_structure."""

    @pytest.mark.asyncio
    async def test_extracts_every_uploaded_file(self, store):
        client = StaticExtractionClient(_responses())

        summary = await _processor(store, client).process_extraction_structure()

        assert summary.success
        assert summary.processed_files == 3
        assert summary.total_files == 3
        assert summary.errors == []
        assert sorted(client.calls) == [
            ("a1/gehalt_februar.pdf", "lohn_gehaltsbescheinigung"),
            ("a1/gehalt_januar.pdf", "lohn_gehaltsbescheinigung"),
            ("a1/rente.pdf", "rentenbescheid"),
        ]

        saved = store.load_extraction_structure(APPLICATION)
        assert saved == summary.updated_structure
        payslips = saved["main_applicant"]["lohn_gehaltsbescheinigungen"]
        assert payslips["extractionComplete"] is True
        january = payslips["gehalt_januar.pdf"]
        assert january["confidence"] == "0.92"
        assert january["methodUsed"] == "OCR_COMPREHENSIVE"
        assert january["uploadedAt"] == "2024-05-02T10:00:00Z"
        assert january["monthlynetsalary"]["net_value"] == 2500
        assert january["prior_year"]["year"] == "2024"
        assert payslips["gehalt_februar.pdf"]["confidence"] == "1"

        pension = saved[CO_APPLICANT]["rentenbescheid"]
        assert pension["extractionComplete"] is True
        assert pension["rente.pdf"]["confidence"] == "0.8"
        assert pension["rente.pdf"]["monthlypensionnetincome"]["amount"] == 1400

    @pytest.mark.asyncio
    async def test_document_types_without_uploads_untouched(self, store):
        await _processor(store, StaticExtractionClient(_responses())).process_extraction_structure()

        saved = store.load_extraction_structure(APPLICATION)
        assert saved["main_applicant"]["einkommenssteuerbescheid"] == {
            "numberOfFiles": 0,
            "relevantValues": ["yearlyincome"],
            "extractionComplete": False,
        }

    @pytest.mark.asyncio
    async def test_idempotent_with_deterministic_client(self, store):
        """A second run with the same outcomes writes an identical structure."""
        client = StaticExtractionClient(_responses())

        first = await _processor(store, client).process_extraction_structure()
        second = await _processor(store, client).process_extraction_structure()

        assert json.dumps(first.updated_structure) == json.dumps(second.updated_structure)
        assert store.saves["extraction_structure"] == 2

    @pytest.mark.asyncio
    async def test_partial_failure_keeps_batch_running(self, store):
        client = StaticExtractionClient(_responses(**{
            "a1/gehalt_februar.pdf": Result.failure("HTTP 500 vom Extraktionsdienst"),
        }))

        summary = await _processor(store, client).process_extraction_structure()

        assert summary.success
        assert summary.processed_files == 3
        assert summary.errors == [
            "Extraktion fehlgeschlagen für gehalt_februar.pdf: HTTP 500 vom Extraktionsdienst"
        ]
        payslips = summary.updated_structure["main_applicant"]["lohn_gehaltsbescheinigungen"]
        assert payslips["gehalt_februar.pdf"]["confidence"] == "0"
        assert payslips["gehalt_februar.pdf"]["methodUsed"] == "error"
        assert payslips["gehalt_januar.pdf"]["confidence"] == "0.92"
        assert payslips["extractionComplete"] is False
        assert summary.updated_structure[CO_APPLICANT]["rentenbescheid"]["extractionComplete"] is True

    @pytest.mark.asyncio
    async def test_failed_file_keeps_previous_values(self):
        previous = {"net_value": 2400, "year": "2024", "month": "03"}
        store = InMemoryApplicationStore({APPLICATION: {
            "main_applicant": {
                "lohn_gehaltsbescheinigungen": document(
                    ["monthlynetsalary"],
                    {"gehalt.pdf": uploaded_file("a1/gehalt.pdf", monthlynetsalary=previous)},
                ),
            },
        }})
        client = StaticExtractionClient(default=Result.failure("nicht lesbar"))

        summary = await _processor(store, client).process_extraction_structure()

        record = summary.updated_structure["main_applicant"]["lohn_gehaltsbescheinigungen"]["gehalt.pdf"]
        assert record["monthlynetsalary"]["net_value"] == 2400
        assert record["confidence"] == "0"

    @pytest.mark.asyncio
    async def test_reextraction_keeps_extra_record_keys(self):
        """Keys the new outcome does not carry should survive on the stored record."""
        previous = {"net_value": 2400, "year": "2023", "laufzeit": "12 Monate", "geprueft": True}
        store = InMemoryApplicationStore({APPLICATION: {
            "main_applicant": {
                "lohn_gehaltsbescheinigungen": document(
                    ["monthlynetsalary"],
                    {"gehalt.pdf": uploaded_file("a1/gehalt.pdf", monthlynetsalary=previous)},
                ),
            },
        }})
        client = StaticExtractionClient({"a1/gehalt.pdf": payslip_outcome(2500)})

        summary = await _processor(store, client).process_extraction_structure()

        record = summary.updated_structure["main_applicant"]["lohn_gehaltsbescheinigungen"]["gehalt.pdf"]
        assert record["monthlynetsalary"]["net_value"] == 2500
        assert record["monthlynetsalary"]["year"] == "2024"
        assert record["monthlynetsalary"]["laufzeit"] == "12 Monate"
        assert record["monthlynetsalary"]["geprueft"] is True

    @pytest.mark.asyncio
    async def test_malformed_stored_record_does_not_block_batch(self):
        """A stored record with a string flag should not stop extraction."""
        store = InMemoryApplicationStore({APPLICATION: {
            "main_applicant": {
                "lastUpdated": "2024-05-01",
                "lohn_gehaltsbescheinigungen": document(
                    ["monthlynetsalary"],
                    {"gehalt.pdf": uploaded_file(
                        "a1/gehalt.pdf", werbungskosten={"amount": 120, "isMonthly": ""},
                    )},
                ),
            },
        }})
        client = StaticExtractionClient({"a1/gehalt.pdf": payslip_outcome(2500)})

        summary = await _processor(store, client).process_extraction_structure()

        assert summary.success
        assert summary.processed_files == 1
        assert client.calls == [("a1/gehalt.pdf", "lohn_gehaltsbescheinigung")]
        saved = store.load_extraction_structure(APPLICATION)
        assert saved["main_applicant"]["lastUpdated"] == "2024-05-01"
        record = saved["main_applicant"]["lohn_gehaltsbescheinigungen"]["gehalt.pdf"]
        assert record["werbungskosten"]["amount"] == 120
        assert record["werbungskosten"]["isMonthly"] is None
        assert record["monthlynetsalary"]["net_value"] == 2500

    @pytest.mark.asyncio
    async def test_client_exception_captured(self, store):
        client = StaticExtractionClient(_responses(**{
            "a1/rente.pdf": RuntimeError("connection reset"),
        }))

        summary = await _processor(store, client).process_extraction_structure()

        assert summary.errors == ["Extraktion fehlgeschlagen für rente.pdf: connection reset"]
        assert summary.updated_structure[CO_APPLICANT]["rentenbescheid"]["rente.pdf"]["methodUsed"] == "error"

    @pytest.mark.asyncio
    async def test_unsuccessful_outcome_is_failure(self, store):
        client = StaticExtractionClient(_responses(**{
            "a1/rente.pdf": Result.success(ExtractionOutcome(success=False, message="Seite leer")),
        }))

        summary = await _processor(store, client).process_extraction_structure()

        assert summary.errors == ["Extraktion fehlgeschlagen für rente.pdf: Seite leer"]

    @pytest.mark.asyncio
    async def test_slow_call_times_out(self, store):
        client = StaticExtractionClient(default=pension_outcome(), delay=0.5)

        summary = await _processor(store, client, _config(timeout=0.05)).process_extraction_structure()

        assert len(summary.errors) == 3
        assert all("Zeitüberschreitung" in error for error in summary.errors)

    @pytest.mark.asyncio
    async def test_concurrency_bounded(self):
        files = {f"beleg_{i}.pdf": uploaded_file(f"a1/beleg_{i}.pdf") for i in range(6)}
        store = InMemoryApplicationStore({APPLICATION: {
            "main_applicant": {"werbungskosten_nachweis": document(["werbungskosten"], files)},
        }})
        client = StaticExtractionClient(default=pension_outcome(80), delay=0.01)

        summary = await _processor(store, client, _config(max_concurrency=2)).process_extraction_structure()

        assert summary.processed_files == 6
        assert 1 <= client.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_skip_completed_files(self):
        structure = payslip_upload_structure()
        structure["main_applicant"]["lohn_gehaltsbescheinigungen"]["gehalt_januar.pdf"]["confidence"] = "0.9"
        store = InMemoryApplicationStore({APPLICATION: structure})
        client = StaticExtractionClient(_responses())
        config = FoerderConfig(env="test", processing=ProcessingConfig(skip_completed_files=True))

        summary = await _processor(store, client, config).process_extraction_structure()

        assert summary.skipped_files == 1
        assert summary.processed_files == 2
        assert summary.total_files == 3
        assert "a1/gehalt_januar.pdf" not in [path for path, _ in client.calls]
        payslips = summary.updated_structure["main_applicant"]["lohn_gehaltsbescheinigungen"]
        assert payslips["gehalt_januar.pdf"]["confidence"] == "0.9"
        assert payslips["extractionComplete"] is True

    @pytest.mark.asyncio
    async def test_missing_structure(self):
        store = InMemoryApplicationStore()
        client = StaticExtractionClient()

        summary = await _processor(store, client).process_extraction_structure()

        assert not summary.success
        assert summary.errors == [NO_STRUCTURE_ERROR]
        assert client.calls == []
        assert store.saves["extraction_structure"] == 0

    @pytest.mark.asyncio
    async def test_store_failure_raises(self):
        class BrokenStore(InMemoryApplicationStore):
            def load_extraction_structure(self, application_id):
                raise PersistenceError("Datenbank nicht erreichbar", key=application_id)

        with pytest.raises(PersistenceError):
            await _processor(BrokenStore(), StaticExtractionClient()).process_extraction_structure()


class TestExtractionProgress:
    """Test suite for ExtractionStructureProcessor.get_extraction_progress."""

    @pytest.mark.asyncio
    async def test_progress_before_and_after(self, store):
        client = StaticExtractionClient(_responses(**{
            "a1/rente.pdf": Result.failure("nicht lesbar"),
        }))
        processor = _processor(store, client)

        before = await processor.get_extraction_progress()
        assert before.total_files == 3
        assert before.processed_files == 0
        assert before.total_documents == 2

        await processor.process_extraction_structure()
        after = await processor.get_extraction_progress()

        assert after.processed_files == 2
        assert after.completed_documents == 1
        assert after.progress_percentage == 67

    @pytest.mark.asyncio
    async def test_progress_without_structure(self):
        progress = await _processor(InMemoryApplicationStore(), StaticExtractionClient()).get_extraction_progress()

        assert progress.total_files == 0
        assert progress.progress_percentage == 0
