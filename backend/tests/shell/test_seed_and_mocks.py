"""Tests for the sample catalog seeding and the mock extraction/prediction stand-ins."""

import pytest

from src.core.biomarkers import reading_from_reference
from src.core.models import ConditionTag, Role
from src.shell.mock_services import SAMPLE_VALUES, extract_biomarkers, predict_condition
from src.shell.repository import InMemoryRepository
from src.shell.seed import bootstrap_admin, sample_foods, seed_catalog


class TestSeedCatalog:
    """Tests for seed_catalog and sample_foods."""

    def test_stable_ids(self):
        ids = [f.id for f in sample_foods()]
        assert ids[0] == "food_1"
        assert ids[-1] == "food_20"

    def test_seeds_foods_and_suitability(self):
        repo = InMemoryRepository()

        assert seed_catalog(repo) == 20
        assert len(repo.list_foods()) == 20
        assert len(repo.list_suitability()) == 80
        assert all(s.is_suitable for s in repo.list_suitability())

    def test_reseeding_is_a_no_op(self):
        repo = InMemoryRepository()
        seed_catalog(repo)
        assert seed_catalog(repo) == 0


class TestBootstrapAdmin:
    """Tests for bootstrap_admin."""

    def test_without_env(self, monkeypatch):
        monkeypatch.delenv("NUTRIX_ADMIN_EMAIL", raising=False)
        monkeypatch.delenv("NUTRIX_ADMIN_PASSWORD", raising=False)
        assert bootstrap_admin(InMemoryRepository()) is False

    def test_creates_admin_once(self, monkeypatch):
        monkeypatch.setenv("NUTRIX_ADMIN_EMAIL", "admin@example.com")
        monkeypatch.setenv("NUTRIX_ADMIN_PASSWORD", "Sup3r-secret!")
        repo = InMemoryRepository()

        assert bootstrap_admin(repo) is True
        assert bootstrap_admin(repo) is False
        assert repo.get_user_by_email("admin@example.com").role == Role.ADMIN


class TestExtractBiomarkers:
    """Tests for extract_biomarkers."""

    def test_returns_every_sample_value(self):
        readings, elapsed_ms = extract_biomarkers("labs.pdf")

        assert len(readings) == len(SAMPLE_VALUES)
        assert elapsed_ms >= 0
        assert readings[0].name == "Hemoglobin"
        assert readings[0].value == 10.5


class TestPredictCondition:
    """Tests for predict_condition."""

    def test_sample_report_is_anemia(self):
        readings, _ = extract_biomarkers("labs.pdf")
        condition, _ = predict_condition(readings)
        assert condition == ConditionTag.ANEMIA

    def test_no_readings_is_fit(self):
        assert predict_condition([])[0] == ConditionTag.FIT

    def test_all_normal_is_fit(self):
        readings = [reading_from_reference("glucose", 90), reading_from_reference("hemoglobin", 14)]
        assert predict_condition(readings)[0] == ConditionTag.FIT

    @pytest.mark.parametrize("key,value,expected", [
        ("hba1c", 6.2, ConditionTag.DIABETES),
        ("systolic_bp", 142, ConditionTag.HYPERTENSION),
        ("hdl", 30, ConditionTag.CHOLESTEROL),
        ("ldl", 150, ConditionTag.CHOLESTEROL),
    ])
    def test_single_signal(self, key, value, expected):
        assert predict_condition([reading_from_reference(key, value)])[0] == expected

    def test_priority_order(self):
        """Diabetes outranks hypertension when both are present."""
        readings = [
            reading_from_reference("systolic_bp", 150),
            reading_from_reference("glucose", 130),
        ]
        assert predict_condition(readings)[0] == ConditionTag.DIABETES
