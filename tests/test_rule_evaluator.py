"""Tests for the rule evaluator."""

from dataclasses import FrozenInstanceError, replace
from datetime import datetime

import pytest

from journal_engine.analysis.rule_evaluator import RuleEvaluator
from journal_engine.config import EngineSettings, EvaluationConfig
from journal_engine.models.evaluation import (
    RuleId,
    RuleStatus,
    Severity,
    TradeClassification,
)
from journal_engine.models.settings import (
    DisciplineConfig,
    RiskManagementConfig,
    RuleEngineConfig,
    SessionsConfig,
    Settings,
    TradingHours,
    TradingRules,
)
from journal_engine.models.trade import MalformedTradeError, Trade


def _evaluate_by_id(evaluator, trades, settings):
    return {t.id: e for t, e in zip(trades, evaluator.evaluate_all(trades, settings))}


class TestFrequencyRules:
    """Tests for daily and weekly trade limits."""

    def test_only_trade_beyond_daily_limit_violates(self, evaluator, same_day_trades, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=3))
        results = _evaluate_by_id(evaluator, same_day_trades, settings)

        for trade_id in ("t1", "t2", "t3"):
            assert RuleId.MAX_TRADES_PER_DAY.value in results[trade_id].evaluated_ids
            assert results[trade_id].is_compliant

        violation = results["t4"].get_violation(RuleId.MAX_TRADES_PER_DAY.value)
        assert violation is not None
        assert violation.severity == Severity.CRITICAL
        assert violation.actual_value == 4
        assert violation.expected_value == 3

        # next day starts a fresh count
        assert results["t5"].is_compliant

    def test_daily_count_independent_of_input_order(self, evaluator, same_day_trades, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=3))
        results = _evaluate_by_id(evaluator, list(reversed(same_day_trades)), settings)
        assert not results["t4"].is_compliant
        assert results["t1"].is_compliant

    def test_weekly_limit(self, evaluator, make_trade, trader_settings):
        # Sunday 2024-03-03 starts the week; Sunday 2024-03-10 starts the next
        trades = [
            make_trade("a", datetime(2024, 3, 3, 10)),
            make_trade("b", datetime(2024, 3, 5, 10)),
            make_trade("c", datetime(2024, 3, 9, 10)),
            make_trade("d", datetime(2024, 3, 10, 10)),
        ]
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_week=2))
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["a"].is_compliant
        assert results["b"].is_compliant
        assert results["c"].has_violation({RuleId.MAX_TRADES_PER_WEEK.value})
        assert results["d"].is_compliant

    def test_same_entry_time_ordered_by_id(self, evaluator, make_trade, trader_settings):
        moment = datetime(2024, 3, 5, 10)
        trades = [make_trade("b", moment), make_trade("a", moment)]
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=1))
        results = _evaluate_by_id(evaluator, trades, settings)
        assert results["a"].is_compliant
        assert not results["b"].is_compliant


class TestTradeLimits:
    """Tests for trading hours, lot size and daily P/L rules."""

    def test_trading_hours_window(self, evaluator, make_trade, trader_settings):
        rules = TradingRules(allowed_trading_hours=TradingHours(enabled=True, start_hour=8, end_hour=17))
        settings = trader_settings(trading_rules=rules)
        trades = [
            make_trade("early", datetime(2024, 3, 5, 7, 59)),
            make_trade("start", datetime(2024, 3, 5, 8, 0)),
            make_trade("end", datetime(2024, 3, 5, 17, 0)),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["early"].has_violation({RuleId.TRADING_HOURS.value})
        assert results["start"].is_compliant
        assert results["end"].has_violation({RuleId.TRADING_HOURS.value})

    def test_disabled_trading_hours_not_evaluated(self, evaluator, make_trade, trader_settings):
        rules = TradingRules(allowed_trading_hours=TradingHours(enabled=False, start_hour=8, end_hour=17))
        trade = make_trade("t", datetime(2024, 3, 5, 3))
        result = evaluator.evaluate(trade, [trade], trader_settings(trading_rules=rules))
        assert RuleId.TRADING_HOURS.value not in result.evaluated_ids
        assert result.is_compliant

    def test_lot_size(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_lot_size=2.0))
        trades = [
            make_trade("ok", datetime(2024, 3, 5, 9), position_size=2.0),
            make_trade("big", datetime(2024, 3, 5, 10), position_size=2.5),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)
        assert results["ok"].is_compliant
        violation = results["big"].get_violation(RuleId.MAX_LOT_SIZE.value)
        assert violation.severity == Severity.CRITICAL
        assert "2.5" in violation.message

    def test_daily_loss_limit(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(daily_loss_limit=100.0))
        trades = [
            make_trade("first", datetime(2024, 3, 5, 9), pnl=-60.0),
            make_trade("second", datetime(2024, 3, 5, 11), pnl=-50.0),
            make_trade("tomorrow", datetime(2024, 3, 6, 9), pnl=-10.0),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["first"].is_compliant
        assert results["second"].has_violation({RuleId.DAILY_LOSS_LIMIT.value})
        assert results["tomorrow"].is_compliant

    def test_profit_target_is_advisory(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(daily_profit_target=200.0))
        trade = make_trade("t", datetime(2024, 3, 5, 9), pnl=300.0)
        result = evaluator.evaluate(trade, [trade], settings)

        assert result.is_compliant
        assert RuleId.DAILY_PROFIT_TARGET.value in result.advisory_ids
        assert result.status == RuleStatus.CLEAN

    def test_min_risk_reward_is_minor(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(min_risk_reward=1.5))
        trade = make_trade("t", datetime(2024, 3, 5, 9), pnl=20.0, risk_reward=1.0)
        result = evaluator.evaluate(trade, [trade], settings)

        assert result.get_violation(RuleId.MIN_RISK_REWARD.value).severity == Severity.MINOR
        assert result.status == RuleStatus.MINOR_VIOLATION


class TestRiskRules:
    """Tests for risk management rules."""

    def _risky_trade(self, make_trade, id, hour, size, day=5):
        # 1 point of risk per unit; 10000 capital, so 100 units risk 1%
        return make_trade(
            id,
            datetime(2024, 3, day, hour),
            position_size=size,
            entry_price=100.0,
            stop_loss=99.0,
            pnl=10.0,
        )

    def test_risk_per_trade_severity(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(risk_management=RiskManagementConfig(max_risk_per_trade=1.0))
        trades = [
            self._risky_trade(make_trade, "within", 9, 100),
            self._risky_trade(make_trade, "minor", 10, 120),
            self._risky_trade(make_trade, "critical", 11, 200),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["within"].is_compliant
        assert results["minor"].get_violation(RuleId.RISK_PER_TRADE.value).severity == Severity.MINOR
        assert results["critical"].get_violation(RuleId.RISK_PER_TRADE.value).severity == Severity.CRITICAL
        assert results["critical"].status == RuleStatus.CRITICAL_VIOLATION

    def test_risk_per_trade_needs_stop_loss(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(risk_management=RiskManagementConfig(max_risk_per_trade=1.0))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=1000)
        result = evaluator.evaluate(trade, [trade], settings)
        assert RuleId.RISK_PER_TRADE.value not in result.evaluated_ids
        assert result.is_compliant

    def test_daily_and_weekly_risk(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(
            risk_management=RiskManagementConfig(max_risk_daily=1.0, max_risk_weekly=1.5)
        )
        trades = [
            self._risky_trade(make_trade, "a", 9, 60),
            self._risky_trade(make_trade, "b", 10, 60),
            self._risky_trade(make_trade, "c", 10, 60, day=6),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["a"].is_compliant
        assert results["b"].has_violation({RuleId.MAX_RISK_DAILY.value})
        assert not results["b"].has_violation({RuleId.MAX_RISK_WEEKLY.value})
        assert not results["c"].has_violation({RuleId.MAX_RISK_DAILY.value})
        assert results["c"].has_violation({RuleId.MAX_RISK_WEEKLY.value})

    @pytest.mark.parametrize(
        "mode,blocking",
        [("warning", False), ("partial-block", True), ("hard-stop", True)],
    )
    def test_drawdown_mode(self, evaluator, make_trade, trader_settings, mode, blocking):
        settings = trader_settings(
            account_size=1000.0,
            risk_management=RiskManagementConfig(max_drawdown=10.0, drawdown_mode=mode),
        )
        trades = [
            make_trade("loss", datetime(2024, 3, 5, 10), pnl=-150.0),
            make_trade("next", datetime(2024, 3, 6, 10), pnl=10.0),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["loss"].is_compliant
        assert results["next"].has_violation({RuleId.MAX_DRAWDOWN.value}) is blocking
        assert (RuleId.MAX_DRAWDOWN.value in results["next"].advisory_ids) is not blocking


class TestDisciplineRules:
    """Tests for cooldown and consecutive loss rules."""

    def test_cooldown_after_loss(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(discipline=DisciplineConfig(cooldown_after_loss=60))
        loss = make_trade("loss", datetime(2024, 3, 5, 9), pnl=-50.0)  # closes 10:00
        too_soon = make_trade("soon", datetime(2024, 3, 5, 10, 30))
        later = make_trade("later", datetime(2024, 3, 5, 11, 30))

        soon_result = evaluator.evaluate(too_soon, [loss, too_soon], settings)
        later_result = evaluator.evaluate(later, [loss, later], settings)

        violation = soon_result.get_violation(RuleId.COOLDOWN_AFTER_LOSS.value)
        assert violation is not None
        assert violation.actual_value == 30.0
        assert later_result.is_compliant

    def test_cooldown_ignores_winners(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(discipline=DisciplineConfig(cooldown_after_loss=60))
        win = make_trade("win", datetime(2024, 3, 5, 9), pnl=50.0)
        trade = make_trade("t", datetime(2024, 3, 5, 10, 5))
        assert evaluator.evaluate(trade, [win, trade], settings).is_compliant

    def test_consecutive_losses(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(discipline=DisciplineConfig(max_trades_consecutive_loss=2))
        trades = [
            make_trade("l1", datetime(2024, 3, 5, 9), pnl=-10.0),
            make_trade("l2", datetime(2024, 3, 5, 11), pnl=-10.0),
            make_trade("t3", datetime(2024, 3, 5, 13), pnl=10.0),
            make_trade("t4", datetime(2024, 3, 5, 15), pnl=10.0),
        ]
        results = _evaluate_by_id(evaluator, trades, settings)

        assert results["l1"].is_compliant
        assert results["l2"].is_compliant
        assert results["t3"].get_violation(RuleId.MAX_CONSECUTIVE_LOSSES.value).actual_value == 2
        assert results["t4"].is_compliant

    def test_zero_consecutive_limit_disabled(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(discipline=DisciplineConfig(max_trades_consecutive_loss=0))
        trade = make_trade("t", datetime(2024, 3, 5, 9))
        result = evaluator.evaluate(trade, [trade], settings)
        assert RuleId.MAX_CONSECUTIVE_LOSSES.value not in result.evaluated_ids

    def test_force_session_close(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(
            trading_rules=TradingRules(max_lot_size=1.0),
            discipline=DisciplineConfig(force_session_close_on_critical_rule=True),
        )
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=5.0)
        result = evaluator.evaluate(trade, [trade], settings)
        assert result.status == RuleStatus.CRITICAL_VIOLATION
        assert result.requires_session_close is True


class TestSessionRules:
    """Tests for session and weekday restrictions."""

    def test_session_advisory_by_default(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(sessions=SessionsConfig.from_dict({"allowedSessions": {"other": False}}))
        trade = make_trade("late", datetime(2024, 3, 5, 23))
        result = evaluator.evaluate(trade, [trade], settings)

        assert result.is_compliant
        assert RuleId.ALLOWED_SESSION.value in result.advisory_ids

    def test_session_blocks_when_configured(self, evaluator, make_trade, trader_settings):
        sessions = SessionsConfig.from_dict(
            {"allowedSessions": {"other": False}, "blockTradingOutsideSession": True}
        )
        trade = make_trade("late", datetime(2024, 3, 5, 23))
        result = evaluator.evaluate(trade, [trade], trader_settings(sessions=sessions))

        violation = result.get_violation(RuleId.ALLOWED_SESSION.value)
        assert violation.actual_value == "other"

    def test_allowed_session(self, evaluator, make_trade, trader_settings):
        sessions = SessionsConfig.from_dict(
            {"allowedSessions": {"other": False}, "blockTradingOutsideSession": True}
        )
        trade = make_trade("london", datetime(2024, 3, 5, 9))
        result = evaluator.evaluate(trade, [trade], trader_settings(sessions=sessions))
        assert RuleId.ALLOWED_SESSION.value in result.evaluated_ids
        assert result.is_compliant

    def test_disallowed_day(self, evaluator, make_trade, trader_settings):
        sessions = SessionsConfig.from_dict(
            {"allowedDays": {"saturday": False}, "blockTradingOutsideSession": True}
        )
        saturday = make_trade("sat", datetime(2024, 3, 9, 10))
        result = evaluator.evaluate(saturday, [saturday], trader_settings(sessions=sessions))
        assert result.get_violation(RuleId.ALLOWED_DAY.value).actual_value == "saturday"

    def test_unknown_timezone_keeps_wall_clock(self, evaluator, make_trade, trader_settings):
        sessions = SessionsConfig.from_dict(
            {
                "timezone": "Nowhere/Imaginary",
                "allowedSessions": {"other": False},
                "blockTradingOutsideSession": True,
            }
        )
        trade = make_trade("t", datetime(2024, 3, 5, 23))
        result = evaluator.evaluate(trade, [trade], trader_settings(sessions=sessions))
        assert result.has_violation({RuleId.ALLOWED_SESSION.value})


class TestCustomRules:
    """Tests for user-defined rules."""

    def _engine(self, condition, severity="block", enabled=True):
        return RuleEngineConfig.from_dict(
            {
                "enabled": enabled,
                "rules": [
                    {"id": "big-size", "name": "No big size", "severity": severity, "condition": condition}
                ],
            }
        )

    def test_condition_holding_is_violation(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(rule_engine=self._engine("position_size > 5"))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=10)
        result = evaluator.evaluate(trade, [trade], settings)

        violation = result.get_violation("custom:big-size")
        assert violation.severity == Severity.CRITICAL
        assert violation.rule_key == "No big size"

    def test_warning_severity_is_minor(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(rule_engine=self._engine("position_size > 5", severity="warning"))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=10)
        result = evaluator.evaluate(trade, [trade], settings)
        assert result.status == RuleStatus.MINOR_VIOLATION

    def test_condition_not_holding(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(rule_engine=self._engine("position_size > 5"))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=2)
        result = evaluator.evaluate(trade, [trade], settings)
        assert "custom:big-size" in result.evaluated_ids

    def test_unparsable_condition_skipped(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(rule_engine=self._engine("when the moon is full"))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=10)
        result = evaluator.evaluate(trade, [trade], settings)
        assert "custom:big-size" not in result.evaluated_ids
        assert result.is_compliant

    @pytest.mark.parametrize("condition", [{"metric": "hour"}, 5, ["position_size > 5"]])
    def test_non_text_condition_skipped(self, evaluator, make_trade, trader_settings, condition):
        settings = trader_settings(rule_engine=self._engine(condition))
        assert settings.rule_engine.rules[0].condition is None

        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=10)
        result = evaluator.evaluate(trade, [trade], settings)
        assert "custom:big-size" not in result.evaluated_ids
        assert result.is_compliant

    def test_disabled_engine(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(rule_engine=self._engine("position_size > 5", enabled=False))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=10)
        assert evaluator.evaluate(trade, [trade], settings).is_compliant


class TestClassification:
    """Tests for trade classification."""

    def test_model_trade(self, evaluator, make_trade):
        trade = make_trade("t", datetime(2024, 3, 5, 9), pnl=100.0, risk_reward=2.5)
        result = evaluator.evaluate(trade, [trade], Settings())
        assert result.classification == TradeClassification.MODEL

    def test_poor_risk_reward_is_error(self, evaluator, make_trade):
        trade = make_trade("t", datetime(2024, 3, 5, 9), pnl=100.0, risk_reward=0.3)
        result = evaluator.evaluate(trade, [trade], Settings())
        assert result.classification == TradeClassification.ERROR

    def test_critical_violation_is_error(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_lot_size=1.0))
        trade = make_trade("t", datetime(2024, 3, 5, 9), pnl=100.0, risk_reward=3.0, position_size=2)
        result = evaluator.evaluate(trade, [trade], settings)
        assert result.classification == TradeClassification.ERROR

    def test_open_trade_is_neutral(self, evaluator, make_trade):
        trade = make_trade("t", datetime(2024, 3, 5, 9), status="open")
        result = evaluator.evaluate(trade, [trade], Settings())
        assert result.classification == TradeClassification.NEUTRAL

    def test_thresholds_configurable(self, make_trade):
        evaluator = RuleEvaluator(EngineSettings(evaluation=EvaluationConfig(model_min_risk_reward=3.0)))
        trade = make_trade("t", datetime(2024, 3, 5, 9), pnl=100.0, risk_reward=2.5)
        result = evaluator.evaluate(trade, [trade], Settings())
        assert result.classification == TradeClassification.NEUTRAL


class TestEvaluatorProperties:
    """Properties that hold for every configuration."""

    def test_no_configuration_evaluates_nothing(self, evaluator, same_day_trades):
        for result in evaluator.evaluate_all(same_day_trades, Settings()):
            assert result.evaluated_rules == ()
            assert result.violated_rules == ()
            assert result.status == RuleStatus.CLEAN

    def test_empty_sections_evaluate_nothing(self, evaluator, same_day_trades):
        settings = Settings.from_dict(
            {
                "accountSize": 10000,
                "advanced": {
                    "tradingRules": {},
                    "riskManagement": {},
                    "discipline": {},
                    "ruleEngine": {"enabled": True, "rules": []},
                },
            }
        )
        for result in evaluator.evaluate_all(same_day_trades, settings):
            assert result.violated_rules == ()

    def test_idempotent(self, evaluator, same_day_trades, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=3))
        first = evaluator.evaluate_all(same_day_trades, settings)
        second = evaluator.evaluate_all(same_day_trades, settings)
        assert [e.to_dict() for e in first] == [e.to_dict() for e in second]

    def test_disabling_rule_removes_it(self, evaluator, same_day_trades, trader_settings):
        enabled = trader_settings(trading_rules=TradingRules(max_trades_per_day=3, max_lot_size=0.5))
        disabled = trader_settings(trading_rules=TradingRules(max_lot_size=0.5))
        rule = RuleId.MAX_TRADES_PER_DAY.value

        assert any(e.has_violation({rule}) for e in evaluator.evaluate_all(same_day_trades, enabled))
        for result in evaluator.evaluate_all(same_day_trades, disabled):
            assert rule not in result.evaluated_ids
            assert rule not in result.violated_ids
            assert result.has_violation({RuleId.MAX_LOT_SIZE.value})

    def test_evaluation_does_not_mutate_input(self, evaluator, same_day_trades, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=1))
        snapshot = [t.to_dict() for t in same_day_trades]
        evaluator.evaluate_all(same_day_trades, settings)
        assert [t.to_dict() for t in same_day_trades] == snapshot

    def test_malformed_history_trade_raises(self, evaluator, make_trade):
        good = make_trade("good", datetime(2024, 3, 5, 9))
        bad = Trade(id="bad", entry_date=None, status="closed", position_size=1.0)

        with pytest.raises(MalformedTradeError) as exc:
            evaluator.evaluate(good, [good, bad], Settings())
        assert exc.value.trade_id == "bad"
        assert exc.value.field_name == "entry_date"

    def test_duplicate_ids_rejected(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=1))
        first = make_trade("dup", datetime(2024, 3, 5, 9))
        second = make_trade("dup", datetime(2024, 3, 5, 10))

        with pytest.raises(MalformedTradeError) as exc:
            evaluator.evaluate_all([first, second], settings)
        assert exc.value.trade_id == "dup"
        assert exc.value.field_name == "id"
        assert "duplicate" in str(exc.value)

        with pytest.raises(MalformedTradeError):
            evaluator.evaluate(second, [first, second], settings)

    def test_results_are_immutable(self, evaluator, make_trade):
        result = evaluator.evaluate(make_trade("t", datetime(2024, 3, 5, 9)), [], Settings())
        assert isinstance(result.violated_rules, tuple)
        with pytest.raises(FrozenInstanceError):
            result.status = RuleStatus.CRITICAL_VIOLATION


class TestEvaluateAndUpdate:
    """Tests for attaching evaluations to trades."""

    def test_copy_carries_evaluation(self, evaluator, make_trade, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_lot_size=1.0))
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=2.0, pnl=5.0)

        updated = evaluator.evaluate_and_update(trade, [trade], settings)

        assert [v.rule_id for v in updated.violated_rules] == [RuleId.MAX_LOT_SIZE.value]
        assert updated.classification == "error"
        assert trade.violated_rules == ()
        # derived fields don't take part in equality
        assert updated == trade

    def test_update_all_keeps_order(self, evaluator, same_day_trades, trader_settings):
        settings = trader_settings(trading_rules=TradingRules(max_trades_per_day=3))
        shuffled = [same_day_trades[3]] + same_day_trades[:3]
        updated = evaluator.update_all(shuffled, settings)

        assert [t.id for t in updated] == ["t4", "t1", "t2", "t3"]
        assert updated[0].violated_rules
        assert all(not t.violated_rules for t in updated[1:])

    def test_reevaluation_replaces_previous_results(self, evaluator, make_trade, trader_settings):
        trade = make_trade("t", datetime(2024, 3, 5, 9), position_size=2.0)
        strict = trader_settings(trading_rules=TradingRules(max_lot_size=1.0))
        relaxed = trader_settings(trading_rules=TradingRules(max_lot_size=5.0))

        flagged = evaluator.evaluate_and_update(trade, [trade], strict)
        cleared = evaluator.evaluate_and_update(replace(flagged), [flagged], relaxed)
        assert cleared.violated_rules == ()
