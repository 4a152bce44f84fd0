"""
Trader rule configuration (the host's ``Settings.advanced`` tree).

Every section and bound is optional. Anything absent or malformed reads as
"disabled" so the evaluator stays total over partial settings.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .trade import pick

logger = logging.getLogger(__name__)

SESSION_NAMES = ("asian", "london", "new-york", "overlap", "other")
WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)
DRAWDOWN_MODES = ("warning", "partial-block", "hard-stop")
CUSTOM_RULE_SEVERITIES = ("info", "warning", "block")


def _section(data: Any, *keys: str) -> Optional[Dict]:
    """Return a nested dict section, or None when absent or not a mapping."""
    if not isinstance(data, dict):
        return None
    value = pick(data, *keys)
    if value is None:
        return None
    if not isinstance(value, dict):
        logger.warning(f"Ignoring malformed settings section {keys[0]!r}: {value!r}")
        return None
    return value


def _bound(data: Dict, *keys: str) -> Optional[float]:
    """Read an optional numeric bound; malformed values disable the bound."""
    value = pick(data, *keys)
    if value is None or isinstance(value, bool):
        return None
    try:
        bound = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric bound {keys[0]!r}: {value!r}")
        return None
    if not math.isfinite(bound):
        logger.warning(f"Ignoring non-finite bound {keys[0]!r}: {value!r}")
        return None
    return bound


def _int_bound(data: Dict, *keys: str) -> Optional[int]:
    value = _bound(data, *keys)
    return int(value) if value is not None else None


def _condition(raw: Dict) -> Optional[str]:
    condition = raw.get("condition")
    if condition is None or isinstance(condition, str):
        return condition
    logger.warning(f"Ignoring non-text condition of custom rule {raw.get('id')!r}: {condition!r}")
    return None


def _flag(data: Dict, *keys: str, default: bool = False) -> bool:
    value = pick(data, *keys)
    if isinstance(value, bool):
        return value
    return default


@dataclass(frozen=True)
class TradingHours:
    enabled: bool = False
    start_hour: int = 0
    end_hour: int = 24

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "TradingHours":
        if not data:
            return cls()
        start = _int_bound(data, "startHour", "start_hour")
        end = _int_bound(data, "endHour", "end_hour")
        if start is None or end is None:
            return cls()
        return cls(enabled=_flag(data, "enabled"), start_hour=start, end_hour=end)


@dataclass(frozen=True)
class PsychologicalRule:
    """Free-form advisory rule; never checked mechanically."""

    id: str
    text: str


@dataclass(frozen=True)
class TradingRules:
    max_trades_per_day: Optional[int] = None
    max_trades_per_week: Optional[int] = None
    allowed_trading_hours: TradingHours = field(default_factory=TradingHours)
    max_lot_size: Optional[float] = None
    daily_profit_target: Optional[float] = None
    daily_loss_limit: Optional[float] = None
    min_risk_reward: Optional[float] = None
    psychological_rules: Tuple[PsychologicalRule, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "TradingRules":
        if not data:
            return cls()

        psychological = []
        raw_rules = pick(data, "psychologicalRules", "psychological_rules") or []
        if isinstance(raw_rules, list):
            for i, raw in enumerate(raw_rules):
                if isinstance(raw, str):
                    psychological.append(PsychologicalRule(id=f"psych-{i + 1}", text=raw))
                elif isinstance(raw, dict) and raw.get("text"):
                    psychological.append(
                        PsychologicalRule(id=str(raw.get("id") or f"psych-{i + 1}"), text=raw["text"])
                    )

        return cls(
            max_trades_per_day=_int_bound(data, "maxTradesPerDay", "max_trades_per_day"),
            max_trades_per_week=_int_bound(data, "maxTradesPerWeek", "max_trades_per_week"),
            allowed_trading_hours=TradingHours.from_dict(
                _section(data, "allowedTradingHours", "allowed_trading_hours")
            ),
            max_lot_size=_bound(data, "maxLotSize", "max_lot_size"),
            daily_profit_target=_bound(data, "dailyProfitTarget", "daily_profit_target"),
            daily_loss_limit=_bound(data, "dailyLossLimit", "daily_loss_limit"),
            min_risk_reward=_bound(data, "minRiskReward", "min_risk_reward"),
            psychological_rules=tuple(psychological),
        )


@dataclass(frozen=True)
class RiskManagementConfig:
    # Percentages of capital
    max_risk_per_trade: Optional[float] = None
    max_risk_daily: Optional[float] = None
    max_risk_weekly: Optional[float] = None
    max_drawdown: Optional[float] = None
    drawdown_mode: str = "warning"

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "RiskManagementConfig":
        if not data:
            return cls()
        mode = pick(data, "drawdownMode", "drawdown_mode")
        if mode not in DRAWDOWN_MODES:
            mode = "warning"
        return cls(
            max_risk_per_trade=_bound(data, "maxRiskPerTrade", "max_risk_per_trade"),
            max_risk_daily=_bound(data, "maxRiskDaily", "max_risk_daily"),
            max_risk_weekly=_bound(data, "maxRiskWeekly", "max_risk_weekly"),
            max_drawdown=_bound(data, "maxDrawdown", "max_drawdown"),
            drawdown_mode=mode,
        )


@dataclass(frozen=True)
class DisciplineConfig:
    cooldown_after_loss: Optional[float] = None  # minutes
    max_trades_consecutive_loss: Optional[int] = None
    force_session_close_on_critical_rule: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "DisciplineConfig":
        if not data:
            return cls()
        return cls(
            cooldown_after_loss=_bound(data, "cooldownAfterLoss", "cooldown_after_loss"),
            max_trades_consecutive_loss=_int_bound(
                data, "maxTradesConsecutiveLoss", "max_trades_consecutive_loss"
            ),
            force_session_close_on_critical_rule=_flag(
                data,
                "forceSessionCloseOnCriticalRule",
                "force_session_close_on_critical_rule",
            ),
        )


@dataclass(frozen=True)
class CustomRule:
    id: str
    name: str
    enabled: bool = True
    severity: str = "warning"  # info, warning, block
    condition: Optional[str] = None


@dataclass(frozen=True)
class RuleEngineConfig:
    enabled: bool = False
    rules: Tuple[CustomRule, ...] = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "RuleEngineConfig":
        if not data:
            return cls()

        rules = []
        raw_rules = data.get("rules") or []
        if isinstance(raw_rules, list):
            for raw in raw_rules:
                if not isinstance(raw, dict) or not raw.get("id"):
                    logger.warning(f"Ignoring malformed custom rule: {raw!r}")
                    continue
                severity = raw.get("severity")
                if severity not in CUSTOM_RULE_SEVERITIES:
                    severity = "warning"
                rules.append(
                    CustomRule(
                        id=str(raw["id"]),
                        name=str(raw.get("name") or raw["id"]),
                        enabled=_flag(raw, "enabled", default=True),
                        severity=severity,
                        condition=_condition(raw),
                    )
                )

        return cls(enabled=_flag(data, "enabled"), rules=tuple(rules))


@dataclass(frozen=True)
class SessionsConfig:
    timezone: Optional[str] = None
    allowed_sessions: Dict[str, bool] = field(
        default_factory=lambda: {name: True for name in SESSION_NAMES}
    )
    allowed_days: Dict[str, bool] = field(
        default_factory=lambda: {name: True for name in WEEKDAY_NAMES}
    )
    block_trading_outside_session: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "SessionsConfig":
        if not data:
            return cls()

        sessions = _section(data, "allowedSessions", "allowed_sessions") or {}
        days = _section(data, "allowedDays", "allowed_days") or {}
        timezone = data.get("timezone")
        return cls(
            timezone=timezone if isinstance(timezone, str) and timezone else None,
            # Unlisted entries stay allowed
            allowed_sessions={
                name: _flag(sessions, name, name.replace("-", "_"), default=True)
                for name in SESSION_NAMES
            },
            allowed_days={name: _flag(days, name, default=True) for name in WEEKDAY_NAMES},
            block_trading_outside_session=_flag(
                data, "blockTradingOutsideSession", "block_trading_outside_session"
            ),
        )


@dataclass(frozen=True)
class AdvancedSettings:
    trading_rules: Optional[TradingRules] = None
    risk_management: Optional[RiskManagementConfig] = None
    discipline: Optional[DisciplineConfig] = None
    rule_engine: Optional[RuleEngineConfig] = None
    sessions: Optional[SessionsConfig] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "AdvancedSettings":
        if not isinstance(data, dict):
            return cls()

        def load(loader, *keys):
            section = _section(data, *keys)
            return loader(section) if section is not None else None

        return cls(
            trading_rules=load(TradingRules.from_dict, "tradingRules", "trading_rules"),
            risk_management=load(
                RiskManagementConfig.from_dict, "riskManagement", "risk_management"
            ),
            discipline=load(DisciplineConfig.from_dict, "discipline"),
            rule_engine=load(RuleEngineConfig.from_dict, "ruleEngine", "rule_engine"),
            sessions=load(SessionsConfig.from_dict, "sessions"),
        )


@dataclass(frozen=True)
class Settings:
    """The slice of the host's settings the engine reads."""

    account_size: float = 0.0
    current_capital: Optional[float] = None
    initial_capital: Optional[float] = None
    advanced: Optional[AdvancedSettings] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict]) -> "Settings":
        if not isinstance(data, dict):
            return cls()
        return cls(
            account_size=_bound(data, "accountSize", "account_size") or 0.0,
            current_capital=_bound(data, "currentCapital", "current_capital"),
            initial_capital=_bound(data, "initialCapital", "initial_capital"),
            advanced=AdvancedSettings.from_dict(data.get("advanced")),
        )

    @property
    def capital(self) -> float:
        """Capital risk percentages are measured against."""
        return self.current_capital or self.account_size

    @property
    def starting_equity(self) -> float:
        """Equity the drawdown curve starts from."""
        return self.initial_capital or self.account_size

    @property
    def trading_rules(self) -> TradingRules:
        return (self.advanced and self.advanced.trading_rules) or TradingRules()

    @property
    def risk_management(self) -> Optional[RiskManagementConfig]:
        return self.advanced.risk_management if self.advanced else None

    @property
    def discipline(self) -> Optional[DisciplineConfig]:
        return self.advanced.discipline if self.advanced else None

    @property
    def rule_engine(self) -> Optional[RuleEngineConfig]:
        return self.advanced.rule_engine if self.advanced else None

    @property
    def sessions(self) -> Optional[SessionsConfig]:
        return self.advanced.sessions if self.advanced else None

    def rule_config(self) -> Dict:
        """Everything the rule evaluator reads, as plain data."""
        return {
            "capital": self.capital,
            "starting_equity": self.starting_equity,
            "advanced": _plain(self.advanced),
        }

    def to_dict(self) -> Dict:
        return {
            "account_size": self.account_size,
            "current_capital": self.current_capital,
            "initial_capital": self.initial_capital,
            "advanced": _plain(self.advanced),
        }


def _plain(value: Any) -> Any:
    """Dataclass tree -> JSON-compatible data with stable ordering."""
    if hasattr(value, "__dataclass_fields__"):
        return {name: _plain(getattr(value, name)) for name in value.__dataclass_fields__}
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in sorted(value.items())}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
