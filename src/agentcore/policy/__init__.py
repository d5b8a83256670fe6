"""Policy decisions that guard patch-producing phases."""

from .errors import (
    DeepInvestigationError,
    budget_unmet_error,
    docdex_unavailable_error,
    evidence_unmet_error,
    quota_unmet_error,
)
from .evidence_gate import (
    EvidenceAssessment,
    EvidenceGateConfig,
    EvidenceMetrics,
    InvestigationBudget,
    ResearchEvidence,
    ToolQuotaConfig,
    ToolUsage,
    combine_signals,
    evaluate_evidence_gate,
    evaluate_investigation_budget,
    evaluate_tool_quota,
)

__all__ = [
    "DeepInvestigationError",
    "EvidenceAssessment",
    "EvidenceGateConfig",
    "EvidenceMetrics",
    "InvestigationBudget",
    "ResearchEvidence",
    "ToolQuotaConfig",
    "ToolUsage",
    "budget_unmet_error",
    "combine_signals",
    "docdex_unavailable_error",
    "evaluate_evidence_gate",
    "evaluate_investigation_budget",
    "evaluate_tool_quota",
    "evidence_unmet_error",
    "quota_unmet_error",
]
