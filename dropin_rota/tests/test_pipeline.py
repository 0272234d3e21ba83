"""End-to-end tests: input directory + profile -> rota summary -> evaluation."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest

from dropin_rota.config import get_profile
from dropin_rota.evaluate import evaluate_outcome
from dropin_rota.pipeline import build_request, read_input, resolution_summary, rota_summary

FIXTURES_DIR = Path(__file__).resolve().parents[2] / "rota_core" / "io" / "tests" / "fixtures" / "minimal"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("DROPIN_ROTA_PROFILE_FILE", raising=False)


@pytest.fixture
def summary():
    return rota_summary(FIXTURES_DIR)


class TestBuildRequest:
    def test_meta_overrides_profile(self):
        rota_input = read_input(FIXTURES_DIR)
        request = build_request(rota_input, get_profile("default"))
        assert request.default_shift_size == 3
        assert request.target_frequency == 0.5
        assert [c.name for c in request.criteria] == ["male_balance", "no_double_shifts"]

    def test_meta_overrides_appended(self, tmp_path):
        for path in FIXTURES_DIR.iterdir():
            shutil.copy(path, tmp_path / path.name)
        meta = json.loads((tmp_path / "rota.json").read_text())
        meta["overrides"] = [{"rrule": "FREQ=WEEKLY", "closed": True}]
        (tmp_path / "rota.json").write_text(json.dumps(meta))
        result = rota_summary(tmp_path)
        assert all(s["size"] == 0 for s in result["shifts"])
        assert result["success"]


class TestRotaSummary:
    def test_shifts(self, summary):
        assert [len(s["allocated_groups"]) for s in summary["shifts"]] == [2, 2, 1]
        assert [u["index"] for u in summary["underfilled"]] == [1, 2]

    def test_named_profile(self):
        result = rota_summary(FIXTURES_DIR, "small_team")
        assert result["metrics"]["max_allocation_frequency"] == 2

    def test_resolution_summary(self):
        result = resolution_summary(FIXTURES_DIR)
        assert result["discarded"] == {"individual_V-08": "no_response"}
        beckers = next(g for g in result["groups"] if g["group_key"] == "beckers")
        assert beckers["members"] == ["V-02", "V-03"]
        assert beckers["available_shifts"] == [0, 1, 2]


class TestEvaluate:
    def test_coverage(self, summary):
        report = evaluate_outcome(summary)
        assert not report["success"]
        assert report["coverage"]["open_shifts"] == 3
        assert report["coverage"]["full_shifts"] == 1
        assert report["coverage"]["seats"] == 9
        assert report["coverage"]["seats_filled"] == 6

    def test_team_leads(self, summary):
        report = evaluate_outcome(summary)
        assert report["team_leads"]["shifts_with_team_lead"] == 2
        assert report["team_leads"]["shifts_without_team_lead"] == ["2026-01-05"]

    def test_underfilled_and_resolution(self, summary):
        report = evaluate_outcome(summary)
        assert report["underfilled"]["count"] == 2
        assert report["underfilled"]["missing_seats"] == 3
        assert report["resolution"] == {"eligible_groups": 5, "discarded": {"no_response": 1}}

    def test_fairness(self, summary):
        fairness = evaluate_outcome(summary)["fairness"]
        assert fairness["groups"] == 5
        assert fairness["groups_never_allocated"] == 0
        assert 0 <= fairness["allocation_gini"] <= 1

    def test_empty(self):
        report = evaluate_outcome({})
        assert report["coverage"]["shift_fill_rate"] == 0.0
        assert report["validation"]["count"] == 0
