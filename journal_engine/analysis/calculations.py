"""
Performance calculations shared by the rule evaluator and evolution classifier.
"""

import math
from collections import OrderedDict
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

from ..models.trade import MalformedTradeError, Trade
from .sessions import local_time


@dataclass(frozen=True)
class EquityPoint:
    date: datetime
    equity: float
    peak: float

    @property
    def drawdown_percent(self) -> float:
        if self.peak <= 0:
            return 0.0
        return (self.peak - self.equity) / self.peak * 100


def localize_trades(trades: Iterable[Trade], tz: Optional[ZoneInfo] = None) -> List[Trade]:
    """Validate trades and convert their timestamps to naive local time.

    Raises:
        MalformedTradeError: a trade lacks a required field, or two trades
            share an id
    """
    localized = []
    seen = set()
    for trade in trades:
        trade.validate()
        if trade.id in seen:
            raise MalformedTradeError(trade.id, "id", "duplicate")
        seen.add(trade.id)
        localized.append(
            replace(
                trade,
                entry_date=local_time(trade.entry_date, tz),
                exit_date=local_time(trade.exit_date, tz) if trade.exit_date else None,
            )
        )
    return localized


def realized_trades(trades: Iterable[Trade]) -> List[Trade]:
    """Closed trades with a realized P/L, in close order."""
    closed = [t for t in trades if t.is_closed and t.pnl is not None]
    return sorted(closed, key=lambda t: (t.closed_at, t.id))


def equity_curve(trades: Iterable[Trade], starting_equity: float) -> List[EquityPoint]:
    """Equity after each realized trade, with the running peak."""
    points = []
    equity = starting_equity
    peak = starting_equity
    for trade in realized_trades(trades):
        equity += trade.pnl
        peak = max(peak, equity)
        points.append(EquityPoint(date=trade.closed_at, equity=equity, peak=peak))
    return points


def current_drawdown_percent(curve: List[EquityPoint]) -> float:
    return curve[-1].drawdown_percent if curve else 0.0


def max_drawdown_percent(curve: List[EquityPoint]) -> float:
    return max((p.drawdown_percent for p in curve), default=0.0)


def win_rate(trades: Iterable[Trade]) -> float:
    """Percentage of realized trades with positive P/L."""
    closed = realized_trades(trades)
    if not closed:
        return 0.0
    return sum(1 for t in closed if t.pnl > 0) / len(closed) * 100


def average_r(trades: Iterable[Trade]) -> float:
    rs = [t.risk_reward for t in trades if t.is_closed and t.risk_reward is not None]
    return sum(rs) / len(rs) if rs else 0.0


def monthly_pnl(trades: Iterable[Trade]) -> "OrderedDict[Tuple[int, int], float]":
    """Summed realized P/L per (year, month) of close, oldest first."""
    months: Dict[Tuple[int, int], float] = {}
    for trade in realized_trades(trades):
        key = (trade.closed_at.year, trade.closed_at.month)
        months[key] = months.get(key, 0.0) + trade.pnl
    return OrderedDict(sorted(months.items()))


def coefficient_of_variation(values: List[float]) -> Optional[float]:
    """Population std / |mean|; None when the mean is zero."""
    if not values:
        return None
    mean = sum(values) / len(values)
    if mean == 0:
        return None
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return math.sqrt(variance) / abs(mean)


def trade_risk_amount(trade: Trade) -> Optional[float]:
    """Money at risk between entry and stop; None without a stop loss."""
    if trade.stop_loss is None or trade.entry_price is None:
        return None
    leverage = trade.leverage or 1
    return abs(trade.entry_price - trade.stop_loss) * trade.position_size * leverage


def trade_risk_percent(trade: Trade, capital: float) -> Optional[float]:
    amount = trade_risk_amount(trade)
    if amount is None:
        return None
    return amount / capital * 100 if capital > 0 else 0.0


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))
