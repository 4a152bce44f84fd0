"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta

import pytest

from journal_engine.analysis.evolution import EvolutionClassifier
from journal_engine.analysis.rule_evaluator import RuleEvaluator
from journal_engine.config import EngineSettings
from journal_engine.models.settings import AdvancedSettings, Settings
from journal_engine.models.trade import Trade


@pytest.fixture
def settings():
    """Create default engine settings."""
    return EngineSettings()


@pytest.fixture
def evaluator(settings):
    return RuleEvaluator(settings)


@pytest.fixture
def classifier(settings):
    return EvolutionClassifier(settings)


@pytest.fixture
def make_trade():
    """Factory for trades; closed trades exit one hour after entry by default."""

    def _make_trade(
        id,
        entry_date,
        status="closed",
        pnl=None,
        position_size=1.0,
        exit_date=None,
        entry_price=None,
        stop_loss=None,
        risk_reward=None,
    ):
        if status == "closed" and exit_date is None:
            exit_date = entry_date + timedelta(hours=1)
        return Trade(
            id=id,
            entry_date=entry_date,
            status=status,
            position_size=position_size,
            exit_date=exit_date,
            pnl=pnl,
            entry_price=entry_price,
            stop_loss=stop_loss,
            risk_reward=risk_reward,
        )

    return _make_trade


@pytest.fixture
def trader_settings():
    """Factory for trader settings with the given advanced sections."""

    def _trader_settings(account_size=10000.0, **sections):
        return Settings(account_size=account_size, advanced=AdvancedSettings(**sections))

    return _trader_settings


@pytest.fixture
def same_day_trades(make_trade):
    """Four trades on Tuesday 2024-03-05 and one on the next day."""
    day = datetime(2024, 3, 5)
    trades = [
        make_trade(f"t{i}", day.replace(hour=9 + i), pnl=10.0) for i in range(1, 5)
    ]
    trades.append(make_trade("t5", datetime(2024, 3, 6, 10, 0), pnl=10.0))
    return trades


@pytest.fixture
def sample_trade_record():
    """A trade as stored by the journal's trade store."""
    return {
        "id": "trade-123",
        "asset": "EURUSD",
        "positionType": "long",
        "entryPrice": 1.0850,
        "exitPrice": 1.0900,
        "positionSize": 2,
        "leverage": None,
        "stopLoss": 1.0820,
        "takeProfit": 1.0950,
        "entryDate": "2024-01-15T10:30:00",
        "exitDate": "2024-01-15T14:00:00",
        "status": "closed",
        "pnl": 100.0,
        "riskReward": 1.67,
        "evaluatedRules": [],
        "violatedRules": [],
    }
