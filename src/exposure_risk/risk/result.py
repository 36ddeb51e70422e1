"""Result of a risk calculation run."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from exposure_risk.exposure.types import DetectionFailureReason
from exposure_risk.risk.levels import RiskLevel


class CalculationOutcome(str, Enum):
    """How a calculation run ended."""

    SUCCESS = "success"  # Detection summary received and merged
    EARLY_EXIT = "early_exit"  # A policy check made the risk undeterminable
    FAILURE = "failure"  # Detection failed, timed out or the run broke


@dataclass(frozen=True)
class CalculationResult:
    """Either a risk level or a failure reason.

    Early exits are successful results: their risk level says that the risk
    cannot currently be determined.

    Attributes:
        outcome: How the run ended.
        risk_level: Calculated risk level (None on failure).
        failure_reason: Why the run failed (None on success).
        failure_detail: Optional free-form failure detail.
        run_id: Identifier of the calculation run.
        policy_candidates: Candidate produced by each policy check, by check name.
        completed_at: When the result was produced.
    """

    outcome: CalculationOutcome
    risk_level: RiskLevel | None = None
    failure_reason: DetectionFailureReason | None = None
    failure_detail: str | None = None
    run_id: str | None = None
    policy_candidates: dict[str, str | None] = field(default_factory=dict)
    completed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def success(
        cls,
        risk_level: RiskLevel,
        run_id: str | None = None,
        early_exit: bool = False,
    ) -> "CalculationResult":
        """Create a successful result."""
        outcome = CalculationOutcome.EARLY_EXIT if early_exit else CalculationOutcome.SUCCESS
        return cls(outcome=outcome, risk_level=risk_level, run_id=run_id)

    @classmethod
    def failure(
        cls,
        reason: DetectionFailureReason,
        detail: str | None = None,
        run_id: str | None = None,
    ) -> "CalculationResult":
        """Create a failed result."""
        return cls(
            outcome=CalculationOutcome.FAILURE,
            failure_reason=reason,
            failure_detail=detail,
            run_id=run_id,
        )

    @property
    def is_success(self) -> bool:
        """Whether the result carries a risk level."""
        return self.outcome != CalculationOutcome.FAILURE

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "outcome": self.outcome.value,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "failure_reason": self.failure_reason.value if self.failure_reason else None,
            "failure_detail": self.failure_detail,
            "run_id": self.run_id,
            "policy_candidates": dict(self.policy_candidates),
            "completed_at": self.completed_at.isoformat(),
        }
