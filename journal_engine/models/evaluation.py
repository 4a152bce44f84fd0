"""
Rule evaluation result models.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple, Union

Value = Union[str, float, int, None]


class RuleId(str, Enum):
    """Identifiers of the built-in checks."""

    MAX_TRADES_PER_DAY = "max-trades-per-day"
    MAX_TRADES_PER_WEEK = "max-trades-per-week"
    TRADING_HOURS = "trading-hours"
    MAX_LOT_SIZE = "max-lot-size"
    DAILY_PROFIT_TARGET = "daily-profit-target"
    DAILY_LOSS_LIMIT = "daily-loss-limit"
    MIN_RISK_REWARD = "min-risk-reward"
    RISK_PER_TRADE = "risk-per-trade"
    MAX_RISK_DAILY = "max-risk-daily"
    MAX_RISK_WEEKLY = "max-risk-weekly"
    MAX_DRAWDOWN = "max-drawdown"
    COOLDOWN_AFTER_LOSS = "cooldown-after-loss"
    MAX_CONSECUTIVE_LOSSES = "max-consecutive-losses"
    ALLOWED_SESSION = "allowed-session"
    ALLOWED_DAY = "allowed-day"


# Checks that count against "risk respect" in the evolution assessment
RISK_RULE_IDS = frozenset(
    {
        RuleId.RISK_PER_TRADE.value,
        RuleId.MAX_RISK_DAILY.value,
        RuleId.MAX_RISK_WEEKLY.value,
        RuleId.MAX_DRAWDOWN.value,
    }
)

CUSTOM_RULE_PREFIX = "custom:"


class Severity(str, Enum):
    CRITICAL = "critical"
    MINOR = "minor"


class RuleStatus(str, Enum):
    """Overall rule status of a trade."""

    CLEAN = "clean"
    MINOR_VIOLATION = "minor-violation"
    CRITICAL_VIOLATION = "critical-violation"


class TradeClassification(str, Enum):
    MODEL = "model"  # disciplined, profitable, high R/R
    NEUTRAL = "neutral"
    ERROR = "error"  # critical violation or very poor R/R


@dataclass(frozen=True)
class EvaluatedRule:
    """A check the trade satisfied."""

    rule_id: str
    rule_key: str
    expected_value: Value = None
    actual_value: Value = None
    severity: Severity = Severity.CRITICAL

    def to_dict(self) -> Dict:
        return {
            "rule_id": self.rule_id,
            "rule_key": self.rule_key,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class ViolatedRule:
    """A check the trade failed (or an advisory finding)."""

    rule_id: str
    rule_key: str
    expected_value: Value = None
    actual_value: Value = None
    severity: Severity = Severity.CRITICAL
    message: str = ""

    def to_dict(self) -> Dict:
        return {
            "rule_id": self.rule_id,
            "rule_key": self.rule_key,
            "expected_value": self.expected_value,
            "actual_value": self.actual_value,
            "severity": self.severity.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class TradeEvaluation:
    """Result of evaluating one trade against the rule configuration.

    Immutable, so the host can cache and share it safely.
    """

    trade_id: str
    evaluated_rules: Tuple[EvaluatedRule, ...] = ()
    violated_rules: Tuple[ViolatedRule, ...] = ()
    advisories: Tuple[ViolatedRule, ...] = ()
    status: RuleStatus = RuleStatus.CLEAN
    classification: TradeClassification = TradeClassification.NEUTRAL
    requires_session_close: bool = False

    def __post_init__(self):
        for name in ("evaluated_rules", "violated_rules", "advisories"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @property
    def evaluated_ids(self) -> FrozenSet[str]:
        return frozenset(r.rule_id for r in self.evaluated_rules)

    @property
    def violated_ids(self) -> FrozenSet[str]:
        return frozenset(r.rule_id for r in self.violated_rules)

    @property
    def advisory_ids(self) -> FrozenSet[str]:
        return frozenset(r.rule_id for r in self.advisories)

    @property
    def is_compliant(self) -> bool:
        return not self.violated_rules

    def has_violation(self, rule_ids) -> bool:
        """Check whether any of the given rule ids was violated."""
        return not self.violated_ids.isdisjoint(rule_ids)

    def get_violation(self, rule_id: str) -> Optional[ViolatedRule]:
        for rule in self.violated_rules:
            if rule.rule_id == rule_id:
                return rule
        return None

    def to_dict(self) -> Dict:
        return {
            "trade_id": self.trade_id,
            "evaluated_rules": [r.to_dict() for r in self.evaluated_rules],
            "violated_rules": [r.to_dict() for r in self.violated_rules],
            "advisories": [r.to_dict() for r in self.advisories],
            "status": self.status.value,
            "classification": self.classification.value,
            "requires_session_close": self.requires_session_close,
        }
