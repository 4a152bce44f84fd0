"""
Rule evaluator for journal trades.

Checks each trade against the trader's discipline and risk rules, using the
trade history up to that trade for frequency, P/L and streak aggregations.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from ..config import EngineSettings
from ..models.evaluation import (
    CUSTOM_RULE_PREFIX,
    EvaluatedRule,
    RuleId,
    RuleStatus,
    Severity,
    TradeClassification,
    TradeEvaluation,
    ViolatedRule,
)
from ..models.settings import Settings
from ..models.trade import Trade
from .calculations import (
    current_drawdown_percent,
    equity_curve,
    localize_trades,
    trade_risk_percent,
)
from .custom_rules import parse_condition
from .sessions import resolve_timezone, session_for, week_start, weekday_for

logger = logging.getLogger(__name__)


@dataclass
class TradeContext:
    """Aggregates over the history as seen at one trade's entry."""

    trade: Trade
    day_trades: List[Trade] = field(default_factory=list)
    week_trades: List[Trade] = field(default_factory=list)
    prior_closed: List[Trade] = field(default_factory=list)  # closed at or before entry
    daily_pnl: float = 0.0
    risk_percent: Optional[float] = None
    daily_risk: float = 0.0
    weekly_risk: float = 0.0
    drawdown: float = 0.0

    @property
    def consecutive_losses(self) -> int:
        count = 0
        for prior in reversed(self.prior_closed):
            if not prior.is_loser:
                break
            count += 1
        return count

    def metrics(self) -> Dict[str, Optional[float]]:
        """Values custom rule conditions can refer to."""
        return {
            "position_size": self.trade.position_size,
            "risk_percent": self.risk_percent,
            "daily_trades": len(self.day_trades),
            "weekly_trades": len(self.week_trades),
            "daily_pnl": self.daily_pnl,
            "daily_risk": self.daily_risk,
            "weekly_risk": self.weekly_risk,
            "drawdown": self.drawdown,
            "consecutive_losses": self.consecutive_losses,
            "hour": self.trade.entry_date.hour,
            "risk_reward": self.trade.risk_reward,
        }


@dataclass
class CheckLog:
    """Check outcomes collected while evaluating one trade."""

    evaluated: List[EvaluatedRule] = field(default_factory=list)
    violated: List[ViolatedRule] = field(default_factory=list)
    advisories: List[ViolatedRule] = field(default_factory=list)


class RuleEvaluator:
    """
    Evaluates trades against the configured trading rules.

    Stateless: every call recomputes from the trades and settings passed in.
    Absent or malformed configuration disables the corresponding check.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()

    def evaluate(
        self,
        trade: Trade,
        all_trades: List[Trade],
        settings: Settings,
    ) -> TradeEvaluation:
        """
        Evaluate one trade against the rules.

        Args:
            trade: Trade under evaluation
            all_trades: Full trade history (may include ``trade``)
            settings: Trader settings holding the rule configuration

        Returns:
            TradeEvaluation with satisfied, violated and advisory rules

        Raises:
            MalformedTradeError: a trade lacks a required field
        """
        tz = resolve_timezone(settings.sessions.timezone if settings.sessions else None)
        history = localize_trades(all_trades, tz)
        local_trade = localize_trades([trade], tz)[0]
        return self._evaluate_local(local_trade, history, settings)

    def evaluate_all(self, trades: List[Trade], settings: Settings) -> List[TradeEvaluation]:
        """Evaluate every trade of a history against that same history."""
        tz = resolve_timezone(settings.sessions.timezone if settings.sessions else None)
        history = localize_trades(trades, tz)
        evaluations = [self._evaluate_local(t, history, settings) for t in history]

        violating = sum(1 for e in evaluations if not e.is_compliant)
        logger.debug(f"Evaluated {len(evaluations)} trades, {violating} with violations")
        return evaluations

    def evaluate_and_update(
        self,
        trade: Trade,
        all_trades: List[Trade],
        settings: Settings,
    ) -> Trade:
        """Return a copy of the trade carrying its fresh evaluation."""
        return apply_evaluation(trade, self.evaluate(trade, all_trades, settings))

    def update_all(self, trades: List[Trade], settings: Settings) -> List[Trade]:
        """Return copies of all trades carrying fresh evaluations."""
        evaluations = self.evaluate_all(trades, settings)
        return [apply_evaluation(t, e) for t, e in zip(trades, evaluations)]

    def _evaluate_local(
        self,
        trade: Trade,
        history: List[Trade],
        settings: Settings,
    ) -> TradeEvaluation:
        result = CheckLog()
        context = self._build_context(trade, history, settings)

        self._check_frequency(result, context, settings)
        self._check_trading_hours(result, context, settings)
        self._check_lot_size(result, context, settings)
        self._check_daily_pnl(result, context, settings)
        self._check_risk(result, context, settings)
        self._check_discipline(result, context, settings)
        self._check_sessions(result, context, settings)
        self._check_custom_rules(result, context, settings)

        evaluation = TradeEvaluation(
            trade_id=trade.id,
            evaluated_rules=result.evaluated,
            violated_rules=result.violated,
            advisories=result.advisories,
            status=self._status(result.violated),
        )
        discipline = settings.discipline
        return replace(
            evaluation,
            classification=self.classify_trade(trade, evaluation),
            requires_session_close=bool(
                discipline
                and discipline.force_session_close_on_critical_rule
                and evaluation.status == RuleStatus.CRITICAL_VIOLATION
            ),
        )

    def _build_context(
        self,
        trade: Trade,
        history: List[Trade],
        settings: Settings,
    ) -> TradeContext:
        others = [t for t in history if t.id != trade.id]
        entry = trade.entry_date
        key = trade.sort_key
        up_to_trade = [t for t in others if t.sort_key <= key] + [trade]

        day = entry.date()
        week = week_start(entry)
        day_trades = [t for t in up_to_trade if t.entry_date.date() == day]
        week_trades = [t for t in up_to_trade if week_start(t.entry_date) == week]

        prior_closed = sorted(
            (t for t in others if t.is_closed and t.pnl is not None and t.closed_at <= entry),
            key=lambda t: (t.closed_at, t.id),
        )

        capital = settings.capital

        def total_risk(trades: List[Trade]) -> float:
            risks = (trade_risk_percent(t, capital) for t in trades)
            return sum(r for r in risks if r is not None)

        return TradeContext(
            trade=trade,
            day_trades=day_trades,
            week_trades=week_trades,
            prior_closed=prior_closed,
            daily_pnl=sum(t.pnl for t in day_trades if t.is_closed and t.pnl is not None),
            risk_percent=trade_risk_percent(trade, capital),
            daily_risk=total_risk(day_trades),
            weekly_risk=total_risk(week_trades),
            drawdown=current_drawdown_percent(
                equity_curve(prior_closed, settings.starting_equity)
            ),
        )

    def _check_frequency(self, result, context: TradeContext, settings: Settings) -> None:
        rules = settings.trading_rules

        if rules.max_trades_per_day is not None:
            count = len(context.day_trades)
            _record(
                result,
                RuleId.MAX_TRADES_PER_DAY,
                "maxTradesPerDay",
                respected=count <= rules.max_trades_per_day,
                expected=rules.max_trades_per_day,
                actual=count,
                message=f"Daily limit of {rules.max_trades_per_day} trades exceeded",
            )

        if rules.max_trades_per_week is not None:
            count = len(context.week_trades)
            _record(
                result,
                RuleId.MAX_TRADES_PER_WEEK,
                "maxTradesPerWeek",
                respected=count <= rules.max_trades_per_week,
                expected=rules.max_trades_per_week,
                actual=count,
                message=f"Weekly limit of {rules.max_trades_per_week} trades exceeded",
            )

    def _check_trading_hours(self, result, context: TradeContext, settings: Settings) -> None:
        hours = settings.trading_rules.allowed_trading_hours
        if not hours.enabled:
            return

        hour = context.trade.entry_date.hour
        window = f"{hours.start_hour}:00 - {hours.end_hour}:00"
        _record(
            result,
            RuleId.TRADING_HOURS,
            "allowedTradingHours",
            respected=hours.start_hour <= hour < hours.end_hour,
            expected=window,
            actual=f"{hour}:00",
            message=f"Trade outside allowed hours ({window})",
        )

    def _check_lot_size(self, result, context: TradeContext, settings: Settings) -> None:
        max_lot = settings.trading_rules.max_lot_size
        if max_lot is None:
            return

        size = context.trade.position_size
        _record(
            result,
            RuleId.MAX_LOT_SIZE,
            "maxLotSize",
            respected=size <= max_lot,
            expected=max_lot,
            actual=size,
            message=f"Lot size ({size:g}) exceeds the maximum allowed ({max_lot:g})",
        )

    def _check_daily_pnl(self, result, context: TradeContext, settings: Settings) -> None:
        rules = settings.trading_rules
        daily_pnl = round(context.daily_pnl, 2)

        if rules.daily_loss_limit is not None:
            breached = context.daily_pnl < 0 and abs(context.daily_pnl) >= rules.daily_loss_limit
            _record(
                result,
                RuleId.DAILY_LOSS_LIMIT,
                "dailyLossLimit",
                respected=not breached,
                expected=-rules.daily_loss_limit,
                actual=daily_pnl,
                message=f"Daily loss limit of {rules.daily_loss_limit:g} reached",
            )

        if rules.daily_profit_target is not None:
            reached = context.daily_pnl >= rules.daily_profit_target
            _record(
                result,
                RuleId.DAILY_PROFIT_TARGET,
                "dailyProfitTarget",
                respected=not reached,
                expected=rules.daily_profit_target,
                actual=daily_pnl,
                severity=Severity.MINOR,
                message=f"Daily profit target of {rules.daily_profit_target:g} reached",
                advisory=True,
            )

        trade = context.trade
        if rules.min_risk_reward is not None and trade.is_closed and trade.risk_reward is not None:
            _record(
                result,
                RuleId.MIN_RISK_REWARD,
                "minRiskReward",
                respected=trade.risk_reward >= rules.min_risk_reward,
                expected=rules.min_risk_reward,
                actual=round(trade.risk_reward, 2),
                severity=Severity.MINOR,
                message=(
                    f"R/R ({trade.risk_reward:.2f}) is below the minimum "
                    f"({rules.min_risk_reward:g})"
                ),
            )

    def _check_risk(self, result, context: TradeContext, settings: Settings) -> None:
        risk = settings.risk_management
        if risk is None:
            return

        if risk.max_risk_per_trade is not None and context.risk_percent is not None:
            pct = context.risk_percent
            critical = pct > risk.max_risk_per_trade * self.settings.evaluation.critical_risk_multiplier
            _record(
                result,
                RuleId.RISK_PER_TRADE,
                "maxRiskPerTrade",
                respected=pct <= risk.max_risk_per_trade,
                expected=risk.max_risk_per_trade,
                actual=round(pct, 2),
                severity=Severity.CRITICAL if critical else Severity.MINOR,
                message=f"Risk ({pct:.2f}%) exceeds the per-trade limit ({risk.max_risk_per_trade:g}%)",
            )

        if risk.max_risk_daily is not None:
            _record(
                result,
                RuleId.MAX_RISK_DAILY,
                "maxRiskDaily",
                respected=context.daily_risk <= risk.max_risk_daily,
                expected=risk.max_risk_daily,
                actual=round(context.daily_risk, 2),
                message=(
                    f"Daily risk ({context.daily_risk:.2f}%) exceeds the limit "
                    f"({risk.max_risk_daily:g}%)"
                ),
            )

        if risk.max_risk_weekly is not None:
            _record(
                result,
                RuleId.MAX_RISK_WEEKLY,
                "maxRiskWeekly",
                respected=context.weekly_risk <= risk.max_risk_weekly,
                expected=risk.max_risk_weekly,
                actual=round(context.weekly_risk, 2),
                message=(
                    f"Weekly risk ({context.weekly_risk:.2f}%) exceeds the limit "
                    f"({risk.max_risk_weekly:g}%)"
                ),
            )

        if risk.max_drawdown is not None:
            _record(
                result,
                RuleId.MAX_DRAWDOWN,
                "maxDrawdown",
                respected=context.drawdown <= risk.max_drawdown,
                expected=risk.max_drawdown,
                actual=round(context.drawdown, 2),
                message=(
                    f"Entered at {context.drawdown:.2f}% drawdown, beyond the "
                    f"{risk.max_drawdown:g}% limit"
                ),
                advisory=risk.drawdown_mode == "warning",
            )

    def _check_discipline(self, result, context: TradeContext, settings: Settings) -> None:
        discipline = settings.discipline
        if discipline is None:
            return

        entry = context.trade.entry_date

        if discipline.cooldown_after_loss is not None:
            cooldown = timedelta(minutes=discipline.cooldown_after_loss)
            losses = [t for t in context.prior_closed if t.is_loser]
            last_loss: Optional[datetime] = losses[-1].closed_at if losses else None
            minutes_since = (
                round((entry - last_loss).total_seconds() / 60, 1) if last_loss else None
            )
            _record(
                result,
                RuleId.COOLDOWN_AFTER_LOSS,
                "cooldownAfterLoss",
                respected=last_loss is None or entry - last_loss >= cooldown,
                expected=discipline.cooldown_after_loss,
                actual=minutes_since,
                message=(
                    f"Entered {minutes_since} min after a loss, cooldown is "
                    f"{discipline.cooldown_after_loss:g} min"
                ),
            )

        limit = discipline.max_trades_consecutive_loss
        if limit is not None and limit > 0:
            streak = context.consecutive_losses
            _record(
                result,
                RuleId.MAX_CONSECUTIVE_LOSSES,
                "maxTradesConsecutiveLoss",
                respected=streak < limit,
                expected=limit,
                actual=streak,
                message=f"Traded after {streak} consecutive losses (limit {limit})",
            )

    def _check_sessions(self, result, context: TradeContext, settings: Settings) -> None:
        sessions = settings.sessions
        if sessions is None:
            return

        entry = context.trade.entry_date
        advisory = not sessions.block_trading_outside_session

        session = session_for(entry)
        _record(
            result,
            RuleId.ALLOWED_SESSION,
            "allowedSessions",
            respected=sessions.allowed_sessions.get(session, True),
            expected=", ".join(s for s, ok in sessions.allowed_sessions.items() if ok),
            actual=session,
            message=f"Trade in disallowed session '{session}'",
            advisory=advisory,
        )

        weekday = weekday_for(entry)
        _record(
            result,
            RuleId.ALLOWED_DAY,
            "allowedDays",
            respected=sessions.allowed_days.get(weekday, True),
            expected=", ".join(d for d, ok in sessions.allowed_days.items() if ok),
            actual=weekday,
            message=f"Trade on disallowed day '{weekday}'",
            advisory=advisory,
        )

    def _check_custom_rules(self, result, context: TradeContext, settings: Settings) -> None:
        engine = settings.rule_engine
        if engine is None or not engine.enabled:
            return

        metrics = context.metrics()
        for rule in engine.rules:
            if not rule.enabled:
                continue

            condition = parse_condition(rule.condition)
            if condition is None:
                continue

            holds = condition.holds(metrics)
            if holds is None:
                continue

            _record(
                result,
                f"{CUSTOM_RULE_PREFIX}{rule.id}",
                rule.name,
                respected=not holds,
                expected=f"not ({condition})",
                actual=metrics[condition.metric],
                severity=Severity.CRITICAL if rule.severity == "block" else Severity.MINOR,
                message=f"{rule.name}: {condition}",
            )

    @staticmethod
    def _status(violated: List[ViolatedRule]) -> RuleStatus:
        if any(v.severity == Severity.CRITICAL for v in violated):
            return RuleStatus.CRITICAL_VIOLATION
        if violated:
            return RuleStatus.MINOR_VIOLATION
        return RuleStatus.CLEAN

    def classify_trade(self, trade: Trade, result: TradeEvaluation) -> TradeClassification:
        """Classify a trade as model, neutral or error."""
        thresholds = self.settings.evaluation

        if result.status == RuleStatus.CRITICAL_VIOLATION or (
            trade.risk_reward is not None and trade.risk_reward < thresholds.error_max_risk_reward
        ):
            return TradeClassification.ERROR

        if (
            trade.is_winner
            and trade.risk_reward is not None
            and trade.risk_reward >= thresholds.model_min_risk_reward
            and not result.violated_rules
        ):
            return TradeClassification.MODEL

        return TradeClassification.NEUTRAL


def apply_evaluation(trade: Trade, evaluation: TradeEvaluation) -> Trade:
    """Copy of ``trade`` carrying the evaluation's derived fields."""
    return replace(
        trade,
        evaluated_rules=tuple(evaluation.evaluated_rules),
        violated_rules=tuple(evaluation.violated_rules),
        classification=evaluation.classification.value,
    )


def _record(
    result: CheckLog,
    rule_id,
    rule_key: str,
    respected: bool,
    expected=None,
    actual=None,
    severity: Severity = Severity.CRITICAL,
    message: str = "",
    advisory: bool = False,
) -> None:
    """Add one check outcome to the result."""
    rule_id = rule_id.value if isinstance(rule_id, RuleId) else rule_id

    if respected:
        result.evaluated.append(
            EvaluatedRule(
                rule_id=rule_id,
                rule_key=rule_key,
                expected_value=expected,
                actual_value=actual,
                severity=severity,
            )
        )
        return

    violation = ViolatedRule(
        rule_id=rule_id,
        rule_key=rule_key,
        expected_value=expected,
        actual_value=actual,
        severity=severity,
        message=message,
    )
    if advisory:
        result.advisories.append(violation)
    else:
        result.violated.append(violation)
