"""
Trader evolution classifier.

Derives level, phase, progress and bottleneck from the full trade history.
"""

import logging
from typing import List, Optional, Tuple

from ..config import EngineSettings
from ..models.evaluation import RISK_RULE_IDS
from ..models.evolution import (
    PROGRESS_DIMENSIONS,
    EvolutionMetrics,
    EvolutionProgress,
    EvolutionResult,
    TraderPhase,
)
from ..models.settings import Settings
from ..models.trade import Trade
from .calculations import (
    average_r,
    clamp,
    coefficient_of_variation,
    current_drawdown_percent,
    equity_curve,
    localize_trades,
    max_drawdown_percent,
    monthly_pnl,
    realized_trades,
    win_rate,
)
from .rule_evaluator import RuleEvaluator
from .sessions import resolve_timezone

logger = logging.getLogger(__name__)


class EvolutionClassifier:
    """
    Classifies a trader's development from their trade history.

    Thresholds come from ``EngineSettings.evolution``; the trader's own
    drawdown bound comes from the rule configuration.
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        rule_evaluator: Optional[RuleEvaluator] = None,
    ):
        self.settings = settings or EngineSettings()
        self.rule_evaluator = rule_evaluator or RuleEvaluator(self.settings)

    def classify(self, all_trades: List[Trade], settings: Settings) -> EvolutionResult:
        """
        Classify the trader's evolution.

        Args:
            all_trades: Full trade history
            settings: Trader settings (capital, drawdown bound, risk rules)

        Returns:
            EvolutionResult; level 1 / exploration with zero progress for an
            empty history
        """
        config = self.settings.evolution
        tz = resolve_timezone(settings.sessions.timezone if settings.sessions else None)
        trades = localize_trades(all_trades, tz)
        closed = realized_trades(trades)

        if not closed:
            return EvolutionResult()

        curve = equity_curve(trades, settings.starting_equity)
        months = monthly_pnl(trades)
        green = sum(1 for pnl in months.values() if pnl > 0)
        current_dd = current_drawdown_percent(curve)

        consistency, determinate = self._consistency_score(list(months.values()))
        risk_compliant = self._risk_compliant_count(trades, settings)

        progress = EvolutionProgress(
            drawdown_control=self.drawdown_control(current_dd, settings),
            green_months=clamp(green / len(months) * 100) if months else 0.0,
            operational_consistency=consistency,
            risk_respect=clamp(risk_compliant / len(closed) * 100),
        )
        metrics = EvolutionMetrics(
            total_months=len(months),
            green_months=green,
            current_drawdown_percent=current_dd,
            max_drawdown_percent=max_drawdown_percent(curve),
            win_rate=win_rate(trades),
            avg_r=average_r(trades),
            closed_trades=len(closed),
            consistency_determinate=determinate,
            risk_compliant_trades=risk_compliant,
        )

        level = self.level_for(progress, metrics.total_months, determinate)
        result = EvolutionResult(
            level=level,
            phase=TraderPhase.from_level(level),
            bottleneck=self.bottleneck(progress),
            progress=progress,
            metrics=metrics,
            is_meaningful=len(closed) >= config.min_closed_trades,
        )

        logger.debug(
            f"Evolution: level {result.level} ({result.phase.value}), "
            f"bottleneck={result.bottleneck}, {len(closed)} closed trades "
            f"over {metrics.total_months} months"
        )
        return result

    def drawdown_control(self, drawdown_percent: float, settings: Settings) -> float:
        """100 at no drawdown, 0 at or beyond the bound, linear between."""
        risk = settings.risk_management
        bound = risk.max_drawdown if risk and risk.max_drawdown else None
        if bound is None or bound <= 0:
            bound = self.settings.evolution.default_max_drawdown
        return clamp(100 * (1 - drawdown_percent / bound))

    def _consistency_score(self, monthly_values: List[float]) -> Tuple[float, bool]:
        """Score from the variation of monthly P/L; (0, False) when indeterminate."""
        config = self.settings.evolution
        if len(monthly_values) < config.min_consistency_months:
            return 0.0, False

        cv = coefficient_of_variation(monthly_values)
        if cv is None:
            return 0.0, True
        return clamp(100 * (1 - cv / config.cv_ceiling)), True

    def _risk_compliant_count(self, trades: List[Trade], settings: Settings) -> int:
        """Closed trades without any risk-bound violation."""
        evaluations = self.rule_evaluator.evaluate_all(trades, settings)
        return sum(
            1
            for trade, evaluation in zip(trades, evaluations)
            if trade.is_closed
            and trade.pnl is not None
            and not evaluation.has_violation(RISK_RULE_IDS)
        )

    def level_for(
        self,
        progress: EvolutionProgress,
        total_months: int,
        consistency_determinate: bool = True,
    ) -> int:
        """Highest level reached without skipping any gate.

        An indeterminate consistency score does not gate levels; it only
        counts as 0 when picking the bottleneck.
        """
        scores = progress.scores()
        if not consistency_determinate:
            del scores["operational_consistency"]
        weakest = min(scores.values())
        level = 1
        for candidate, (min_score, min_months) in sorted(
            self.settings.evolution.level_gates().items()
        ):
            if weakest < min_score or total_months < min_months:
                break
            level = candidate
        return level

    def bottleneck(self, progress: EvolutionProgress) -> Optional[str]:
        """Weakest dimension, or None when every score is balanced."""
        scores = progress.scores()
        if all(score >= self.settings.evolution.balanced_threshold for score in scores.values()):
            return None
        # min() keeps the first of equal scores, i.e. dimension order
        return min(PROGRESS_DIMENSIONS, key=lambda name: scores[name])
