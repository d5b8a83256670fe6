"""Errors raised when a deep investigation does not meet its requirements."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Dict, List, Literal, Optional

from .evidence_gate import EvidenceAssessment, InvestigationBudgetStatus

__all__ = [
    "DeepInvestigationError",
    "DeepInvestigationErrorCode",
    "budget_unmet_error",
    "docdex_unavailable_error",
    "evidence_unmet_error",
    "quota_unmet_error",
]

DeepInvestigationErrorCode = Literal[
    "deep_investigation_docdex_unavailable",
    "deep_investigation_quota_unmet",
    "deep_investigation_budget_unmet",
    "deep_investigation_evidence_unmet",
]


class DeepInvestigationError(RuntimeError):
    """Carry a machine-readable code plus remediation hints for operators."""

    def __init__(
        self,
        code: DeepInvestigationErrorCode,
        message: str,
        remediation: Sequence[str],
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.remediation: List[str] = list(remediation)
        self.details: Dict[str, Any] = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "remediation": list(self.remediation),
            "details": dict(self.details),
        }


def docdex_unavailable_error(missing: Sequence[str], remediation: Sequence[str]) -> DeepInvestigationError:
    message = " ".join(
        [
            "Deep investigation requires docdex health, stats, and file coverage.",
            f"Missing: {', '.join(missing)}",
            f"Remediation: {' | '.join(remediation)}",
        ]
    )
    return DeepInvestigationError(
        "deep_investigation_docdex_unavailable",
        message,
        remediation,
        {"missing": list(missing)},
    )


def quota_unmet_error(
    missing: Sequence[str],
    required: Mapping[str, Any],
    observed: Mapping[str, Any],
) -> DeepInvestigationError:
    return DeepInvestigationError(
        "deep_investigation_quota_unmet",
        f"Deep investigation tool quota unmet. Missing categories: {', '.join(missing)}",
        [
            "Increase deepInvestigation.toolQuota requirements.",
            "Ensure the research phase executes the required docdex tools.",
        ],
        {"missing": list(missing), "required": dict(required), "observed": dict(observed)},
    )


def budget_unmet_error(status: InvestigationBudgetStatus) -> DeepInvestigationError:
    return DeepInvestigationError(
        "deep_investigation_budget_unmet",
        "Deep investigation budget unmet. Increase min cycles/time or reduce requirements.",
        [
            "Increase deepInvestigation.investigationBudget minCycles/minSeconds.",
            "Reduce research requirements if budget is intentionally smaller.",
        ],
        status.to_details(),
    )


def evidence_unmet_error(assessment: EvidenceAssessment) -> DeepInvestigationError:
    return DeepInvestigationError(
        "deep_investigation_evidence_unmet",
        "Deep investigation evidence gate unmet. Increase research depth or relax evidence thresholds.",
        [
            "Increase research depth or add more docdex tool coverage.",
            "Relax deepInvestigation.evidenceGate thresholds if necessary.",
        ],
        {
            "missing": list(assessment.missing),
            "required": assessment.required.to_dict(),
            "observed": assessment.observed.to_dict(),
            "warnings": list(assessment.warnings or []),
            "gaps": list(assessment.gaps or []),
        },
    )
