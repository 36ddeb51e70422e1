"""Risk level classification and the monotonic escalation rule.

The ordering of risk levels is fixed:

    LOW < HIGH < UNKNOWN_OUTDATED < UNKNOWN_INITIAL < INACTIVE

LOW and HIGH are the determinable levels produced by an exposure detection
run. The remaining three mean the risk cannot be determined right now and
rank above the determinable ones, so once a policy check produces one of
them no detection result can replace it.
"""

from collections.abc import Iterable
from enum import Enum


class RiskLevel(str, Enum):
    """Risk level reported to the user."""

    UNKNOWN_INITIAL = "unknown_initial"  # No data or not tracing long enough
    INACTIVE = "inactive"  # Exposure notification off or not authorized
    UNKNOWN_OUTDATED = "unknown_outdated"  # Last detection is stale
    LOW = "low"
    HIGH = "high"

    @property
    def rank(self) -> int:
        """Position of the level in the escalation order."""
        return _RISK_LEVEL_RANK[self]

    @property
    def is_determinable(self) -> bool:
        """Whether the level is the outcome of an actual exposure assessment."""
        return self in (RiskLevel.LOW, RiskLevel.HIGH)

    @property
    def ends_calculation(self) -> bool:
        """Whether reaching this level stops a calculation before detection."""
        return not self.is_determinable

    @classmethod
    def _coerce(cls, other: object) -> "RiskLevel":
        """Convert a comparison operand to a RiskLevel.

        Plain strings are looked up by value, so ordering never falls back to
        alphabetical string comparison.

        Raises:
            TypeError: If ``other`` is not a RiskLevel or a valid level value.
        """
        if isinstance(other, RiskLevel):
            return other
        if isinstance(other, str):
            try:
                return cls(other)
            except ValueError:
                raise TypeError(f"{other!r} is not a risk level") from None
        raise TypeError(f"Cannot order RiskLevel against {type(other).__name__}")

    def __lt__(self, other: object) -> bool:
        return self.rank < self._coerce(other).rank

    def __le__(self, other: object) -> bool:
        return self.rank <= self._coerce(other).rank

    def __gt__(self, other: object) -> bool:
        return self.rank > self._coerce(other).rank

    def __ge__(self, other: object) -> bool:
        return self.rank >= self._coerce(other).rank


_RISK_LEVEL_RANK: dict[RiskLevel, int] = {
    RiskLevel.LOW: 0,
    RiskLevel.HIGH: 1,
    RiskLevel.UNKNOWN_OUTDATED: 2,
    RiskLevel.UNKNOWN_INITIAL: 3,
    RiskLevel.INACTIVE: 4,
}

RISK_LEVEL_ORDER: tuple[RiskLevel, ...] = tuple(
    sorted(_RISK_LEVEL_RANK, key=_RISK_LEVEL_RANK.__getitem__)
)

BASELINE_RISK_LEVEL = RiskLevel.LOW


def merge_risk_level(current: RiskLevel, candidate: RiskLevel | None) -> RiskLevel:
    """Escalate ``current`` to ``candidate`` only if it is strictly greater.

    Args:
        current: The running risk level.
        candidate: A level produced by a check, or None for no change.

    Returns:
        The merged risk level. Ties keep ``current``.
    """
    if candidate is not None and candidate > current:
        return candidate
    return current


def max_risk_level(
    candidates: Iterable[RiskLevel | None],
    start: RiskLevel = BASELINE_RISK_LEVEL,
) -> RiskLevel:
    """Fold a sequence of candidates into a single level with merge_risk_level."""
    level = start
    for candidate in candidates:
        level = merge_risk_level(level, candidate)
    return level
