"""
Conditions for user-defined rule-engine entries.

A condition names the situation the trader wants to avoid, e.g.
``risk_percent > 1.5`` or ``if drawdown >= 10 -> reduce size``. A trade
violates the rule when its condition holds.
"""

import logging
import operator
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

KNOWN_METRICS = frozenset(
    {
        "position_size",
        "risk_percent",
        "daily_trades",
        "weekly_trades",
        "daily_pnl",
        "daily_risk",
        "weekly_risk",
        "drawdown",
        "consecutive_losses",
        "hour",
        "risk_reward",
    }
)

OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "==": operator.eq,
    "!=": operator.ne,
}

CONDITION_PATTERN = re.compile(
    r"^\s*(?:if\s+)?(?P<metric>[a-z_]+)\s*(?P<op>>=|<=|==|!=|>|<)\s*"
    r"(?P<threshold>-?\d+(?:\.\d+)?)\s*(?:(?:->|→).*)?$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class Condition:
    metric: str
    op: str
    threshold: float

    def holds(self, metrics: Dict[str, Optional[float]]) -> Optional[bool]:
        """Evaluate against trade metrics; None when the metric is unknown for this trade."""
        value = metrics.get(self.metric)
        if value is None:
            return None
        return OPERATORS[self.op](value, self.threshold)

    def __str__(self) -> str:
        return f"{self.metric} {self.op} {self.threshold:g}"


@lru_cache(maxsize=256)
def parse_condition(text: Optional[str]) -> Optional[Condition]:
    """Parse a condition string; None (rule disabled) if it is not understood."""
    if not text or not isinstance(text, str):
        return None

    match = CONDITION_PATTERN.match(text)
    if not match:
        logger.warning(f"Custom rule condition not understood, rule disabled: {text!r}")
        return None

    metric = match.group("metric").lower()
    if metric not in KNOWN_METRICS:
        logger.warning(f"Custom rule uses unknown metric {metric!r}, rule disabled")
        return None

    return Condition(
        metric=metric,
        op=match.group("op"),
        threshold=float(match.group("threshold")),
    )
