"""Evidence gate for deep investigation.

The gate decides whether a research phase gathered enough evidence before a
patch-producing phase is allowed to run. It is a pure function: callers hand
in the configured thresholds plus whatever counters the research phase
collected, and receive an :class:`EvidenceAssessment` describing which of the
five signal categories fell short.

Signal categories
    ``search_hits``, ``open_or_snippet``, ``symbols_or_ast``, ``impact`` are
    lower bounds; ``warnings`` is an upper bound on the number of distinct
    warning strings.

Two independent sources feed most observed metrics (raw evidence counters and
tool-usage counters). :func:`combine_signals` decides how they merge; the
default keeps the strongest signal.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

__all__ = [
    "EVIDENCE_SIGNALS",
    "EvidenceAssessment",
    "EvidenceGateConfig",
    "EvidenceMetrics",
    "InvestigationBudget",
    "InvestigationBudgetStatus",
    "ResearchEvidence",
    "TOOL_QUOTA_CATEGORIES",
    "ToolQuotaConfig",
    "ToolUsage",
    "combine_signals",
    "evaluate_evidence_gate",
    "evaluate_investigation_budget",
    "evaluate_tool_quota",
]

EvidenceSignal = Literal["search_hits", "open_or_snippet", "symbols_or_ast", "impact", "warnings"]
EVIDENCE_SIGNALS: tuple[EvidenceSignal, ...] = (
    "search_hits",
    "open_or_snippet",
    "symbols_or_ast",
    "impact",
    "warnings",
)
TOOL_QUOTA_CATEGORIES: tuple[str, ...] = (
    "search",
    "open_or_snippet",
    "symbols_or_ast",
    "impact",
    "tree",
    "dag_export",
)


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return value


def _count(value: Any) -> int:
    return max(0, math.floor(_number(value)))


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class _CounterModel(_CamelModel):
    """Telemetry counters: non-numeric input reads as zero, non-string list items are dropped."""

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_numbers(cls, value: Any, info: ValidationInfo) -> Any:
        if info.field_name in {"warnings", "gaps"}:
            if not isinstance(value, (list, tuple)):
                return None
            return [item for item in value if isinstance(item, str)]
        return _number(value)


class EvidenceGateConfig(_CamelModel):
    """Configured thresholds; values are floored and clamped at evaluation."""

    min_search_hits: float = Field(default=0, alias="minSearchHits")
    min_open_or_snippet: float = Field(default=0, alias="minOpenOrSnippet")
    min_symbols_or_ast: float = Field(default=0, alias="minSymbolsOrAst")
    min_impact: float = Field(default=0, alias="minImpact")
    max_warnings: float = Field(default=0, alias="maxWarnings")


class ToolQuotaConfig(_CamelModel):
    """Minimum number of tool invocations per research category."""

    search: float = 0
    open_or_snippet: float = Field(default=0, alias="openOrSnippet")
    symbols_or_ast: float = Field(default=0, alias="symbolsOrAst")
    impact: float = 0
    tree: float = 0
    dag_export: float = Field(default=0, alias="dagExport")


class InvestigationBudget(_CamelModel):
    """Minimum research effort before a gate decision is meaningful."""

    min_cycles: int = Field(default=0, alias="minCycles")
    min_seconds: float = Field(default=0, alias="minSeconds")
    max_cycles: Optional[int] = Field(default=None, alias="maxCycles")


class ResearchEvidence(_CounterModel):
    """Raw counters reported by the research phase."""

    search_hits: float = 0
    snippet_count: float = 0
    symbol_files: float = 0
    ast_files: float = 0
    impact_files: float = 0
    impact_edges: float = 0
    warnings: Optional[List[str]] = None
    gaps: Optional[List[str]] = None


class ToolUsage(_CounterModel):
    """Per-category tool invocation counters."""

    search: float = 0
    open_or_snippet: float = 0
    symbols_or_ast: float = 0
    impact: float = 0
    tree: float = 0
    dag_export: float = 0


@dataclass(slots=True)
class EvidenceMetrics:
    """Five counters compared between required and observed."""

    search_hits: float = 0
    open_or_snippet: float = 0
    symbols_or_ast: float = 0
    impact: float = 0
    warnings: float = 0

    def to_dict(self) -> Dict[str, float]:
        return {signal: getattr(self, signal) for signal in EVIDENCE_SIGNALS}


@dataclass(slots=True)
class EvidenceAssessment:
    """Outcome of :func:`evaluate_evidence_gate`."""

    status: Literal["pass", "fail"]
    score: float
    required: EvidenceMetrics
    observed: EvidenceMetrics
    missing: List[EvidenceSignal] = field(default_factory=list)
    threshold: float = 1.0
    warnings: Optional[List[str]] = None
    gaps: Optional[List[str]] = None

    @property
    def passed(self) -> bool:
        return self.status == "pass"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "score": self.score,
            "threshold": self.threshold,
            "missing": list(self.missing),
            "required": self.required.to_dict(),
            "observed": self.observed.to_dict(),
        }
        if self.warnings is not None:
            payload["warnings"] = list(self.warnings)
        if self.gaps is not None:
            payload["gaps"] = list(self.gaps)
        return payload


@dataclass(slots=True)
class InvestigationBudgetStatus:
    met: bool
    cycles: int
    elapsed_ms: float
    min_cycles: int
    min_seconds: float
    max_cycles: Optional[int] = None

    def to_details(self) -> Dict[str, Any]:
        return {
            "minCycles": self.min_cycles,
            "minSeconds": self.min_seconds,
            "maxCycles": self.max_cycles,
            "cycles": self.cycles,
            "elapsedMs": self.elapsed_ms,
        }


def _unique_strings(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        if isinstance(value, str) and value:
            seen.setdefault(value, None)
    return list(seen)


def combine_signals(*values: float) -> float:
    """Merge independent observations of one metric (default: strongest wins)."""

    return max((_number(value) for value in values), default=0)


SignalCombiner = Callable[..., float]


def _required_metrics(config: EvidenceGateConfig) -> EvidenceMetrics:
    return EvidenceMetrics(
        search_hits=_count(config.min_search_hits),
        open_or_snippet=_count(config.min_open_or_snippet),
        symbols_or_ast=_count(config.min_symbols_or_ast),
        impact=_count(config.min_impact),
        warnings=_count(config.max_warnings),
    )


def _observed_metrics(
    evidence: ResearchEvidence,
    usage: ToolUsage,
    warnings: List[str],
    combine: SignalCombiner,
) -> EvidenceMetrics:
    return EvidenceMetrics(
        search_hits=_count(evidence.search_hits),
        open_or_snippet=_count(combine(_count(evidence.snippet_count), _count(usage.open_or_snippet))),
        symbols_or_ast=_count(
            combine(
                _count(evidence.symbol_files) + _count(evidence.ast_files),
                _count(usage.symbols_or_ast),
            )
        ),
        impact=_count(
            combine(_count(evidence.impact_files), _count(evidence.impact_edges), _count(usage.impact))
        ),
        warnings=len(warnings),
    )


def _missing_signals(observed: EvidenceMetrics, required: EvidenceMetrics) -> List[EvidenceSignal]:
    missing: List[EvidenceSignal] = []
    for signal in EVIDENCE_SIGNALS[:-1]:
        if getattr(observed, signal) < getattr(required, signal):
            missing.append(signal)
    if observed.warnings > required.warnings:
        missing.append("warnings")
    return missing


def evaluate_evidence_gate(
    config: EvidenceGateConfig | Dict[str, Any],
    evidence: ResearchEvidence | Dict[str, Any] | None = None,
    tool_usage: ToolUsage | Dict[str, Any] | None = None,
    warnings: Optional[Sequence[str]] = None,
    *,
    combine: SignalCombiner = combine_signals,
) -> EvidenceAssessment:
    """Score the research evidence against ``config``.

    ``score`` is the fraction of the five categories that are satisfied, so
    it does not reflect how far short a failing metric fell.
    """

    gate = config if isinstance(config, EvidenceGateConfig) else EvidenceGateConfig.model_validate(config)
    research = (
        evidence
        if isinstance(evidence, ResearchEvidence)
        else ResearchEvidence.model_validate(evidence or {})
    )
    usage = tool_usage if isinstance(tool_usage, ToolUsage) else ToolUsage.model_validate(tool_usage or {})

    warning_list = _unique_strings([*(research.warnings or []), *(warnings or [])])
    required = _required_metrics(gate)
    observed = _observed_metrics(research, usage, warning_list, combine)
    missing = _missing_signals(observed, required)
    total = len(EVIDENCE_SIGNALS)
    return EvidenceAssessment(
        status="pass" if not missing else "fail",
        score=(total - len(missing)) / total,
        threshold=1.0,
        missing=missing,
        required=required,
        observed=observed,
        warnings=warning_list or None,
        gaps=list(research.gaps) if research.gaps is not None else None,
    )


def evaluate_tool_quota(
    required: ToolQuotaConfig | Dict[str, Any],
    usage: ToolUsage | Dict[str, Any] | None,
) -> List[str]:
    """Return the tool categories whose usage fell below the quota."""

    quota = required if isinstance(required, ToolQuotaConfig) else ToolQuotaConfig.model_validate(required)
    observed = usage if isinstance(usage, ToolUsage) else ToolUsage.model_validate(usage or {})
    return [
        category
        for category in TOOL_QUOTA_CATEGORIES
        if _count(getattr(observed, category)) < _count(getattr(quota, category))
    ]


def evaluate_investigation_budget(
    budget: InvestigationBudget | Dict[str, Any],
    cycles: int,
    elapsed_ms: float,
) -> InvestigationBudgetStatus:
    """Check that research ran for at least the configured cycles and time."""

    limits = budget if isinstance(budget, InvestigationBudget) else InvestigationBudget.model_validate(budget)
    min_cycles = _count(limits.min_cycles)
    min_seconds = max(0.0, float(_number(limits.min_seconds)))
    met = cycles >= min_cycles and elapsed_ms >= min_seconds * 1000
    return InvestigationBudgetStatus(
        met=met,
        cycles=cycles,
        elapsed_ms=elapsed_ms,
        min_cycles=min_cycles,
        min_seconds=min_seconds,
        max_cycles=limits.max_cycles,
    )
