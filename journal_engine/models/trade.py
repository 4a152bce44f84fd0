"""
Trade model matching the journal's trade store.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

VALID_STATUSES = ("open", "closed")


class MalformedTradeError(ValueError):
    """A trade is missing a field the engine cannot do without."""

    def __init__(self, trade_id: Any, field_name: str, detail: str = "missing"):
        self.trade_id = trade_id
        self.field_name = field_name
        super().__init__(f"Trade {trade_id!r}: field '{field_name}' is {detail}")


def pick(data: Dict, *keys: str) -> Any:
    """Return the first non-None value among the given keys."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or pass through a datetime)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    raise TypeError(f"Unsupported datetime value: {value!r}")


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


@dataclass(frozen=True)
class Trade:
    """A journal trade.

    ``evaluated_rules``, ``violated_rules`` and ``classification`` are written
    by the rule evaluator and never read back by the engine.
    """

    id: str
    entry_date: datetime
    status: str  # "open" or "closed"
    position_size: float
    position_type: str = "long"
    asset: str = ""
    entry_price: Optional[float] = None
    exit_price: Optional[float] = None
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    leverage: Optional[float] = None
    exit_date: Optional[datetime] = None
    pnl: Optional[float] = None
    risk_reward: Optional[float] = None

    # Rule evaluation fields
    evaluated_rules: Tuple = field(default=(), compare=False)
    violated_rules: Tuple = field(default=(), compare=False)
    classification: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_dict(cls, data: Dict) -> "Trade":
        """Create from a trade-store record (camelCase or snake_case keys)."""
        trade_id = data.get("id")
        if trade_id is None or trade_id == "":
            raise MalformedTradeError(trade_id, "id")

        def required(field_name: str, *keys: str) -> Any:
            value = pick(data, *keys)
            if value is None or value == "":
                raise MalformedTradeError(trade_id, field_name)
            return value

        def convert(field_name: str, converter, value: Any) -> Any:
            try:
                return converter(value)
            except (TypeError, ValueError) as e:
                raise MalformedTradeError(trade_id, field_name, f"invalid ({e})") from e

        entry_date = convert(
            "entry_date", parse_datetime, required("entry_date", "entryDate", "entry_date")
        )
        status = required("status", "status")
        if status not in VALID_STATUSES:
            raise MalformedTradeError(trade_id, "status", f"invalid ({status!r})")
        position_size = convert(
            "position_size",
            float,
            required("position_size", "positionSize", "position_size"),
        )

        return cls(
            id=str(trade_id),
            entry_date=entry_date,
            status=status,
            position_size=position_size,
            position_type=pick(data, "positionType", "position_type") or "long",
            asset=data.get("asset") or "",
            entry_price=convert(
                "entry_price", _optional_float, pick(data, "entryPrice", "entry_price")
            ),
            exit_price=convert(
                "exit_price", _optional_float, pick(data, "exitPrice", "exit_price")
            ),
            stop_loss=convert(
                "stop_loss", _optional_float, pick(data, "stopLoss", "stop_loss")
            ),
            take_profit=convert(
                "take_profit", _optional_float, pick(data, "takeProfit", "take_profit")
            ),
            leverage=convert("leverage", _optional_float, data.get("leverage")),
            exit_date=convert(
                "exit_date", parse_datetime, pick(data, "exitDate", "exit_date")
            ),
            pnl=convert("pnl", _optional_float, data.get("pnl")),
            risk_reward=convert(
                "risk_reward", _optional_float, pick(data, "riskReward", "risk_reward")
            ),
        )

    def validate(self) -> None:
        """Fail fast on required fields the engine aggregates over."""
        if self.id is None or self.id == "":
            raise MalformedTradeError(self.id, "id")
        if not isinstance(self.entry_date, datetime):
            raise MalformedTradeError(self.id, "entry_date")
        if self.status not in VALID_STATUSES:
            raise MalformedTradeError(self.id, "status", f"invalid ({self.status!r})")
        if self.position_size is None:
            raise MalformedTradeError(self.id, "position_size")

    @property
    def is_closed(self) -> bool:
        return self.status == "closed"

    @property
    def is_winner(self) -> bool:
        """Check if this was a winning trade."""
        return self.is_closed and self.pnl is not None and self.pnl > 0

    @property
    def is_loser(self) -> bool:
        return self.is_closed and self.pnl is not None and self.pnl < 0

    @property
    def closed_at(self) -> datetime:
        """Close time, falling back to entry time when the exit was not logged."""
        return self.exit_date or self.entry_date

    @property
    def sort_key(self) -> Tuple[datetime, str]:
        return (self.entry_date, self.id)

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage/serialization."""
        return {
            "id": self.id,
            "asset": self.asset,
            "position_type": self.position_type,
            "position_size": self.position_size,
            "status": self.status,
            "entry_date": self.entry_date.isoformat(),
            "exit_date": self.exit_date.isoformat() if self.exit_date else None,
            "entry_price": self.entry_price,
            "exit_price": self.exit_price,
            "stop_loss": self.stop_loss,
            "take_profit": self.take_profit,
            "leverage": self.leverage,
            "pnl": self.pnl,
            "risk_reward": self.risk_reward,
            "evaluated_rules": [r.to_dict() for r in self.evaluated_rules],
            "violated_rules": [r.to_dict() for r in self.violated_rules],
            "classification": self.classification,
        }
