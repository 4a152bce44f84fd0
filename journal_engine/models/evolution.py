"""
Trader evolution models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class TraderPhase(Enum):
    """Developmental phase, a narrative bucketing of the level."""

    EXPLORATION = "exploration"
    CONSOLIDATION = "consolidation"
    CONSISTENCY = "consistency"
    OPTIMIZATION = "optimization"

    @classmethod
    def from_level(cls, level: int) -> "TraderPhase":
        if level >= 4:
            return cls.OPTIMIZATION
        elif level == 3:
            return cls.CONSISTENCY
        elif level == 2:
            return cls.CONSOLIDATION
        else:
            return cls.EXPLORATION


LEVEL_NAMES = {
    1: "Explorer",
    2: "Consolidating Trader",
    3: "Consistent Trader",
    4: "Optimizing Trader",
}

PHASE_NAMES = {
    TraderPhase.EXPLORATION: "Exploration",
    TraderPhase.CONSOLIDATION: "Consolidation",
    TraderPhase.CONSISTENCY: "Consistency",
    TraderPhase.OPTIMIZATION: "Optimization",
}

# Order doubles as the bottleneck tie-break
PROGRESS_DIMENSIONS = (
    "drawdown_control",
    "green_months",
    "operational_consistency",
    "risk_respect",
)

DIMENSION_LABELS = {
    "drawdown_control": "Drawdown Control",
    "green_months": "Green Months",
    "operational_consistency": "Operational Consistency",
    "risk_respect": "Risk Rule Respect",
}


@dataclass(frozen=True)
class EvolutionProgress:
    """Per-dimension progress, each 0-100."""

    drawdown_control: float = 0.0
    green_months: float = 0.0
    operational_consistency: float = 0.0
    risk_respect: float = 0.0

    def scores(self) -> Dict[str, float]:
        return {name: getattr(self, name) for name in PROGRESS_DIMENSIONS}

    def minimum(self) -> float:
        return min(self.scores().values())

    def to_dict(self) -> Dict:
        return {name: round(score, 2) for name, score in self.scores().items()}


@dataclass(frozen=True)
class EvolutionMetrics:
    """Raw figures behind the progress scores."""

    total_months: int = 0
    green_months: int = 0
    current_drawdown_percent: float = 0.0
    max_drawdown_percent: float = 0.0
    win_rate: float = 0.0  # percent
    avg_r: float = 0.0
    closed_trades: int = 0
    consistency_determinate: bool = False
    risk_compliant_trades: int = 0

    def to_dict(self) -> Dict:
        return {
            "total_months": self.total_months,
            "green_months": self.green_months,
            "current_drawdown_percent": round(self.current_drawdown_percent, 2),
            "max_drawdown_percent": round(self.max_drawdown_percent, 2),
            "win_rate": round(self.win_rate, 2),
            "avg_r": round(self.avg_r, 4),
            "closed_trades": self.closed_trades,
            "consistency_determinate": self.consistency_determinate,
            "risk_compliant_trades": self.risk_compliant_trades,
        }


@dataclass(frozen=True)
class EvolutionResult:
    """Longitudinal assessment of a trader, recomputed on every call."""

    level: int = 1
    phase: TraderPhase = TraderPhase.EXPLORATION
    bottleneck: Optional[str] = None
    progress: EvolutionProgress = field(default_factory=EvolutionProgress)
    metrics: EvolutionMetrics = field(default_factory=EvolutionMetrics)
    is_meaningful: bool = False

    @property
    def level_name(self) -> str:
        return LEVEL_NAMES[self.level]

    @property
    def phase_name(self) -> str:
        return PHASE_NAMES[self.phase]

    @property
    def bottleneck_label(self) -> Optional[str]:
        if self.bottleneck is None:
            return None
        return DIMENSION_LABELS.get(self.bottleneck, self.bottleneck)

    def to_dict(self) -> Dict:
        return {
            "level": self.level,
            "level_name": self.level_name,
            "phase": self.phase.value,
            "phase_name": self.phase_name,
            "bottleneck": self.bottleneck,
            "bottleneck_label": self.bottleneck_label,
            "progress": self.progress.to_dict(),
            "metrics": self.metrics.to_dict(),
            "is_meaningful": self.is_meaningful,
        }
