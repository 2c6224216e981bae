"""Tests for the JSON record stores."""

import json

import pytest

from foerder_core.exceptions import PersistenceError
from foerder_core.interfaces import ProfileSource
from foerder_pipeline.interfaces import ApplicationStore
from foerder_pipeline.storage import (
    InMemoryApplicationStore,
    InMemoryProfileSource,
    JsonFileApplicationStore,
    JsonFileProfileSource,
)
from pipeline_fakes import APPLICATION, RESIDENT, payslip_upload_structure


class TestJsonFileApplicationStore:
    """Test suite for JsonFileApplicationStore."""

    def test_satisfies_protocol(self, tmp_path):
        assert isinstance(JsonFileApplicationStore(tmp_path), ApplicationStore)

    def test_missing_records(self, tmp_path):
        store = JsonFileApplicationStore(tmp_path)

        assert store.load_extraction_structure(APPLICATION) is None
        assert store.load_review_data(APPLICATION) is None

    def test_save_and_load(self, tmp_path):
        store = JsonFileApplicationStore(tmp_path)
        structure = payslip_upload_structure()

        store.save_extraction_structure(APPLICATION, structure)
        store.save_review_data(APPLICATION, {"checklistItems": [], "version": 1})

        assert store.load_extraction_structure(APPLICATION) == structure
        assert store.load_review_data(APPLICATION) == {"checklistItems": [], "version": 1}
        path = tmp_path / "applications" / APPLICATION / "extraction_structure.json"
        assert json.loads(path.read_text(encoding="utf-8")) == structure

    def test_save_replaces_whole_record(self, tmp_path):
        store = JsonFileApplicationStore(tmp_path)
        store.save_review_data(APPLICATION, {"checklistItems": [{"id": "a"}], "note": "x"})

        store.save_review_data(APPLICATION, {"checklistItems": []})

        assert store.load_review_data(APPLICATION) == {"checklistItems": []}
        leftovers = [p.name for p in (tmp_path / "applications" / APPLICATION).iterdir()]
        assert leftovers == ["review_data.json"]

    def test_umlauts_preserved(self, tmp_path):
        store = JsonFileApplicationStore(tmp_path)
        store.save_review_data(APPLICATION, {"title": "Verfügbares Monatseinkommen"})

        path = tmp_path / "applications" / APPLICATION / "review_data.json"
        assert "Verfügbares" in path.read_text(encoding="utf-8")

    def test_corrupt_record_raises(self, tmp_path):
        path = tmp_path / "applications" / APPLICATION / "extraction_structure.json"
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceError) as exc_info:
            JsonFileApplicationStore(tmp_path).load_extraction_structure(APPLICATION)

        assert exc_info.value.key == APPLICATION
        assert exc_info.value.record == "extraction_structure.json"

    def test_non_object_record_raises(self, tmp_path):
        path = tmp_path / "applications" / APPLICATION / "review_data.json"
        path.parent.mkdir(parents=True)
        path.write_text("[1, 2]", encoding="utf-8")

        with pytest.raises(PersistenceError):
            JsonFileApplicationStore(tmp_path).load_review_data(APPLICATION)

    def test_unserializable_record_raises(self, tmp_path):
        with pytest.raises(PersistenceError):
            JsonFileApplicationStore(tmp_path).save_review_data(APPLICATION, {"x": object()})


class TestInMemoryApplicationStore:
    """Test suite for InMemoryApplicationStore."""

    def test_records_are_copied(self):
        store = InMemoryApplicationStore({APPLICATION: payslip_upload_structure()})

        loaded = store.load_extraction_structure(APPLICATION)
        loaded["main_applicant"] = {}

        assert store.load_extraction_structure(APPLICATION)["main_applicant"] != {}

    def test_save_counts(self):
        store = InMemoryApplicationStore()

        store.save_review_data(APPLICATION, {"checklistItems": []})

        assert store.saves == {"extraction_structure": 0, "review_data": 1}


class TestProfileSources:
    """Test suite for the profile sources."""

    def test_json_file_profile_source(self, tmp_path):
        resident_dir = tmp_path / "residents" / RESIDENT
        resident_dir.mkdir(parents=True)
        (resident_dir / "user_data.json").write_text(
            json.dumps({"firstname": "Anna", "lastname": "Schmidt", "adult_count": "2"}),
            encoding="utf-8",
        )
        (resident_dir / "user_financials.json").write_text(
            json.dumps({"hasSalaryIncome": True, "monthlynetsalary": "2.400,00"}),
            encoding="utf-8",
        )
        source = JsonFileProfileSource(tmp_path)

        assert isinstance(source, ProfileSource)
        profile = source.get_applicant_profile(RESIDENT)
        assert profile.display_name == "Anna Schmidt"
        assert profile.adult_count == 2
        assert source.get_financial_record(RESIDENT).has_salary_income is True

    def test_missing_resident(self, tmp_path):
        source = JsonFileProfileSource(tmp_path)

        assert source.get_applicant_profile(RESIDENT) is None
        assert source.get_financial_record(RESIDENT) is None

    def test_invalid_record_raises(self):
        source = InMemoryProfileSource(profiles={RESIDENT: {"weitere_antragstellende_personen": 5}})

        with pytest.raises(PersistenceError):
            source.get_applicant_profile(RESIDENT)

    def test_person_list_is_rejected(self):
        """Additional persons stored as a list cannot be matched to financials."""
        source = InMemoryProfileSource(profiles={RESIDENT: {
            "weitere_antragstellende_personen": [{"firstName": "Ben"}],
        }})

        with pytest.raises(PersistenceError):
            source.get_applicant_profile(RESIDENT)
