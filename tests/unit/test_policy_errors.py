from __future__ import annotations

from agentcore.policy import (
    DeepInvestigationError,
    budget_unmet_error,
    docdex_unavailable_error,
    evaluate_evidence_gate,
    evaluate_investigation_budget,
    evidence_unmet_error,
    quota_unmet_error,
)


def test_evidence_error_carries_assessment_details() -> None:
    assessment = evaluate_evidence_gate({"minSearchHits": 3}, {"search_hits": 1, "gaps": ["tests"]})

    error = evidence_unmet_error(assessment)

    assert isinstance(error, DeepInvestigationError)
    assert error.code == "deep_investigation_evidence_unmet"
    assert error.details["missing"] == ["search_hits"]
    assert error.details["required"]["search_hits"] == 3
    assert error.details["gaps"] == ["tests"]
    assert len(error.remediation) == 2
    assert "evidence gate unmet" in str(error)


def test_quota_error_lists_categories() -> None:
    error = quota_unmet_error(["search", "tree"], {"search": 2}, {"search": 1})

    assert error.code == "deep_investigation_quota_unmet"
    assert str(error).endswith("Missing categories: search, tree")
    assert error.to_dict()["details"]["observed"] == {"search": 1}


def test_budget_error_reports_observed_effort() -> None:
    status = evaluate_investigation_budget({"minCycles": 3, "maxCycles": 5}, cycles=1, elapsed_ms=20)

    error = budget_unmet_error(status)

    assert error.code == "deep_investigation_budget_unmet"
    assert error.details == {"minCycles": 3, "minSeconds": 0.0, "maxCycles": 5, "cycles": 1, "elapsedMs": 20}


def test_docdex_error_message_includes_remediation() -> None:
    error = docdex_unavailable_error(["health"], ["Start docdex", "Index the repo"])

    assert error.code == "deep_investigation_docdex_unavailable"
    assert "Missing: health" in str(error)
    assert "Remediation: Start docdex | Index the repo" in str(error)
