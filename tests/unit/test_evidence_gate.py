from __future__ import annotations

import pytest

from agentcore.policy import (
    EvidenceGateConfig,
    evaluate_evidence_gate,
    evaluate_investigation_budget,
    evaluate_tool_quota,
)

BASE_CONFIG = {
    "minSearchHits": 2,
    "minOpenOrSnippet": 1,
    "minSymbolsOrAst": 1,
    "minImpact": 1,
    "maxWarnings": 1,
}

BASE_EVIDENCE = {
    "search_hits": 3,
    "snippet_count": 1,
    "symbol_files": 1,
    "ast_files": 0,
    "impact_files": 1,
    "impact_edges": 0,
    "repo_map": True,
}

BASE_USAGE = {"search": 1, "open_or_snippet": 1, "symbols_or_ast": 1, "impact": 1, "tree": 0, "dag_export": 0}


def test_gate_passes_when_thresholds_are_met() -> None:
    result = evaluate_evidence_gate(BASE_CONFIG, BASE_EVIDENCE, BASE_USAGE)

    assert result.status == "pass"
    assert result.passed
    assert result.missing == []
    assert result.score == 1
    assert result.threshold == 1


def test_search_hits_shortfall_fails() -> None:
    result = evaluate_evidence_gate(
        {**BASE_CONFIG, "minSearchHits": 4},
        {**BASE_EVIDENCE, "search_hits": 1},
        BASE_USAGE,
    )

    assert result.status == "fail"
    assert result.missing == ["search_hits"]
    assert result.score == pytest.approx(0.8)


def test_warnings_fail_only_when_exceeding_ceiling() -> None:
    config = {"minSearchHits": 1, "maxWarnings": 1}
    evidence = {"search_hits": 5, "warnings": ["w1", "w2"]}

    result = evaluate_evidence_gate(config, evidence, None, ["w1"])

    assert result.status == "fail"
    assert result.missing == ["warnings"]
    assert result.score == pytest.approx(0.8)
    assert result.observed.warnings == 2
    assert result.warnings == ["w1", "w2"]


def test_warnings_at_ceiling_pass() -> None:
    result = evaluate_evidence_gate({"maxWarnings": 2}, {"warnings": ["a", "", "b", "a"]})
    assert result.status == "pass"
    assert result.observed.warnings == 2


def test_tool_usage_can_satisfy_open_or_snippet() -> None:
    result = evaluate_evidence_gate(
        {**BASE_CONFIG, "minOpenOrSnippet": 2},
        {**BASE_EVIDENCE, "snippet_count": 0},
        {**BASE_USAGE, "open_or_snippet": 2},
    )

    assert result.status == "pass"
    assert result.observed.open_or_snippet == 2


def test_symbols_or_ast_sums_raw_counters() -> None:
    result = evaluate_evidence_gate(
        {"minSymbolsOrAst": 3},
        {"symbol_files": 2, "ast_files": 1},
        {"symbols_or_ast": 1},
    )
    assert result.observed.symbols_or_ast == 3
    assert result.status == "pass"


def test_impact_takes_strongest_source() -> None:
    result = evaluate_evidence_gate({"minImpact": 4}, {"impact_files": 1, "impact_edges": 4}, {"impact": 2})
    assert result.observed.impact == 4


def test_required_metrics_are_floored_and_clamped() -> None:
    result = evaluate_evidence_gate(EvidenceGateConfig(min_search_hits=2.9, min_impact=-3, max_warnings=-1))

    assert result.required.search_hits == 2
    assert result.required.impact == 0
    assert result.required.warnings == 0


def test_missing_inputs_count_as_zero() -> None:
    result = evaluate_evidence_gate({"minSearchHits": 1, "minImpact": 1})

    assert result.status == "fail"
    assert result.missing == ["search_hits", "impact"]
    assert result.score == pytest.approx(0.6)
    assert result.warnings is None
    assert result.gaps is None


def test_gaps_are_passed_through() -> None:
    result = evaluate_evidence_gate({}, {"gaps": ["no tests found"]})
    assert result.gaps == ["no tests found"]
    assert result.to_dict()["gaps"] == ["no tests found"]


def test_custom_combiner_is_used() -> None:
    result = evaluate_evidence_gate(
        {"minOpenOrSnippet": 3},
        {"snippet_count": 2},
        {"open_or_snippet": 1},
        combine=lambda *values: sum(values),
    )
    assert result.observed.open_or_snippet == 3
    assert result.status == "pass"


def test_tool_quota_reports_missing_categories() -> None:
    missing = evaluate_tool_quota({"search": 2, "dagExport": 1, "tree": 0}, {"search": 1, "dag_export": 0})
    assert missing == ["search", "dag_export"]


def test_investigation_budget() -> None:
    met = evaluate_investigation_budget({"minCycles": 2, "minSeconds": 1}, cycles=2, elapsed_ms=1500)
    unmet = evaluate_investigation_budget({"minCycles": 2, "minSeconds": 1}, cycles=1, elapsed_ms=1500)

    assert met.met
    assert not unmet.met
    assert unmet.to_details()["minCycles"] == 2


def test_null_counters_and_mixed_warning_lists_read_as_empty() -> None:
    result = evaluate_evidence_gate(
        {"minSearchHits": 1, "maxWarnings": 1},
        {"search_hits": 3, "snippet_count": None, "impact_files": "many", "warnings": ["w1", 7, None]},
        {"open_or_snippet": None},
        ["w1", {"bad": True}],
    )

    assert result.status == "pass"
    assert result.observed.open_or_snippet == 0
    assert result.observed.impact == 0
    assert result.warnings == ["w1"]


def test_observed_counters_are_clamped_to_non_negative_integers() -> None:
    negative = evaluate_evidence_gate({}, {"search_hits": -2})
    fractional = evaluate_evidence_gate({"minOpenOrSnippet": 2}, {"snippet_count": 1.5}, {"open_or_snippet": 1.9})

    assert negative.status == "pass"
    assert negative.observed.search_hits == 0
    assert fractional.observed.open_or_snippet == 1
    assert fractional.missing == ["open_or_snippet"]


def test_tool_quota_clamps_usage() -> None:
    assert evaluate_tool_quota({"search": 2}, {"search": 1.9, "tree": None}) == ["search"]
    assert evaluate_tool_quota({}, {"search": -4}) == []
