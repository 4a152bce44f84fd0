"""
Aggregate report models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .evaluation import TradeEvaluation
from .evolution import EvolutionResult


@dataclass
class ComplianceMetrics:
    """Aggregate rule compliance across a trade history."""

    total_trades: int = 0
    compliant_trades: int = 0

    # Status distribution
    clean_count: int = 0
    minor_violation_count: int = 0
    critical_violation_count: int = 0

    # Classification distribution
    model_count: int = 0
    neutral_count: int = 0
    error_count: int = 0

    # rule id -> number of trades violating it
    violations_by_rule: Dict[str, int] = field(default_factory=dict)

    # Performance correlation
    compliant_win_rate: float = 0.0
    non_compliant_win_rate: float = 0.0

    @property
    def compliance_rate(self) -> float:
        return self.compliant_trades / self.total_trades if self.total_trades else 0.0

    def most_violated(self, limit: int = 3) -> List[str]:
        ranked = sorted(self.violations_by_rule.items(), key=lambda kv: (-kv[1], kv[0]))
        return [rule_id for rule_id, _ in ranked[:limit]]

    def to_dict(self) -> Dict:
        return {
            "total_trades": self.total_trades,
            "compliant_trades": self.compliant_trades,
            "compliance_rate": round(self.compliance_rate, 4),
            "status_distribution": {
                "clean": self.clean_count,
                "minor_violation": self.minor_violation_count,
                "critical_violation": self.critical_violation_count,
            },
            "classification_distribution": {
                "model": self.model_count,
                "neutral": self.neutral_count,
                "error": self.error_count,
            },
            "violations_by_rule": dict(sorted(self.violations_by_rule.items())),
            "win_rate_by_compliance": {
                "compliant": round(self.compliant_win_rate, 4),
                "non_compliant": round(self.non_compliant_win_rate, 4),
            },
        }


@dataclass
class AnalysisReport:
    """Rule compliance and evolution for one trade history."""

    generated_at: datetime = field(default_factory=datetime.utcnow)
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None

    metrics: ComplianceMetrics = field(default_factory=ComplianceMetrics)
    evaluations: List[TradeEvaluation] = field(default_factory=list)
    evolution: EvolutionResult = field(default_factory=EvolutionResult)

    def to_dict(self) -> Dict:
        return {
            "generated_at": self.generated_at.isoformat(),
            "period_start": self.period_start.isoformat() if self.period_start else None,
            "period_end": self.period_end.isoformat() if self.period_end else None,
            "metrics": self.metrics.to_dict(),
            "evaluations": [e.to_dict() for e in self.evaluations],
            "evolution": self.evolution.to_dict(),
        }
