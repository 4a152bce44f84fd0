"""
Main journal analyzer.

Host-side orchestration over the engine: owns the memoization boundary so
the evaluator and classifier themselves stay pure.
"""

import hashlib
import json
import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional

from .analysis.evolution import EvolutionClassifier
from .analysis.rule_evaluator import RuleEvaluator, apply_evaluation
from .config import EngineSettings
from .models.evaluation import RuleStatus, TradeClassification, TradeEvaluation
from .models.evolution import EvolutionResult
from .models.report import AnalysisReport, ComplianceMetrics
from .models.settings import Settings
from .models.trade import Trade

logger = logging.getLogger(__name__)


def fingerprint(trades: List[Trade], config: Dict) -> str:
    """Content hash of a trade collection plus a configuration subtree.

    Derived evaluation fields are left out, so re-evaluated trades hash the
    same as the trades they came from.
    """
    payload = {
        "trades": [_trade_identity(t) for t in trades],
        "config": config,
    }
    encoded = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _trade_identity(trade: Trade) -> Dict[str, Any]:
    data = trade.to_dict()
    for derived in ("evaluated_rules", "violated_rules", "classification"):
        data.pop(derived, None)
    return data


class JournalAnalyzer:
    """
    Main entry point for the host.

    Evaluations are cached on a fingerprint of (trades, rule configuration)
    and evolution results on (trades, full settings); any change to either
    produces a new key, so cached results are never stale.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self.settings = settings or EngineSettings()
        self.rule_evaluator = RuleEvaluator(self.settings)
        self.evolution_classifier = EvolutionClassifier(self.settings, self.rule_evaluator)
        self._cache: "OrderedDict[str, Any]" = OrderedDict()
        self.cache_hits = 0
        self.cache_misses = 0

    def evaluate_trades(
        self,
        trades: List[Trade],
        settings: Settings,
    ) -> List[TradeEvaluation]:
        """Evaluate every trade, memoized on (trades, rule configuration)."""
        key = "evaluate:" + fingerprint(trades, settings.rule_config())
        return self._memoized(key, lambda: self.rule_evaluator.evaluate_all(trades, settings))

    def evaluated_trades(self, trades: List[Trade], settings: Settings) -> List[Trade]:
        """Trades carrying their evaluation, ready to be persisted by the host."""
        evaluations = self.evaluate_trades(trades, settings)
        return [apply_evaluation(t, e) for t, e in zip(trades, evaluations)]

    def evolution(self, trades: List[Trade], settings: Settings) -> EvolutionResult:
        """Classify trader evolution, memoized on (trades, settings)."""
        key = "evolution:" + fingerprint(trades, settings.to_dict())
        return self._memoized(key, lambda: self.evolution_classifier.classify(trades, settings))

    def generate_report(
        self,
        trades: List[Trade],
        settings: Settings,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
    ) -> AnalysisReport:
        """
        Build a compliance and evolution report.

        Args:
            trades: Full trade history (rules need it for aggregation)
            settings: Trader settings
            period_start: Only report on trades entered at or after this time
            period_end: Only report on trades entered before this time

        Returns:
            AnalysisReport
        """
        evaluations = self.evaluate_trades(trades, settings)
        pairs = [
            (t, e)
            for t, e in zip(trades, evaluations)
            if _in_period(t, period_start, period_end)
        ]

        return AnalysisReport(
            period_start=period_start,
            period_end=period_end,
            metrics=compliance_summary(pairs),
            evaluations=[e for _, e in pairs],
            evolution=self.evolution(trades, settings),
        )

    def clear_cache(self) -> None:
        self._cache.clear()

    def _memoized(self, key: str, compute):
        if not self.settings.cache_enabled:
            return compute()

        if key in self._cache:
            self.cache_hits += 1
            self._cache.move_to_end(key)
            return _detached(self._cache[key])

        self.cache_misses += 1
        value = compute()
        self._cache[key] = value
        while len(self._cache) > self.settings.cache_max_entries:
            evicted, _ = self._cache.popitem(last=False)
            logger.debug(f"Evicted cached result {evicted[:24]}")
        return _detached(value)


def _detached(value):
    # cached lists hold frozen results; hand out a fresh list each time
    return list(value) if isinstance(value, list) else value


def _in_period(trade: Trade, start: Optional[datetime], end: Optional[datetime]) -> bool:
    entry = trade.entry_date.replace(tzinfo=None)
    if start is not None and entry < start.replace(tzinfo=None):
        return False
    if end is not None and entry >= end.replace(tzinfo=None):
        return False
    return True


def compliance_summary(pairs) -> ComplianceMetrics:
    """Aggregate (trade, evaluation) pairs into compliance metrics."""
    metrics = ComplianceMetrics(total_trades=len(pairs))
    compliant_closed = []
    non_compliant_closed = []

    for trade, evaluation in pairs:
        if evaluation.is_compliant:
            metrics.compliant_trades += 1

        if evaluation.status == RuleStatus.CLEAN:
            metrics.clean_count += 1
        elif evaluation.status == RuleStatus.MINOR_VIOLATION:
            metrics.minor_violation_count += 1
        else:
            metrics.critical_violation_count += 1

        if evaluation.classification == TradeClassification.MODEL:
            metrics.model_count += 1
        elif evaluation.classification == TradeClassification.ERROR:
            metrics.error_count += 1
        else:
            metrics.neutral_count += 1

        for rule_id in evaluation.violated_ids:
            metrics.violations_by_rule[rule_id] = metrics.violations_by_rule.get(rule_id, 0) + 1

        if trade.is_closed and trade.pnl is not None:
            bucket = compliant_closed if evaluation.is_compliant else non_compliant_closed
            bucket.append(trade)

    if compliant_closed:
        metrics.compliant_win_rate = sum(1 for t in compliant_closed if t.is_winner) / len(
            compliant_closed
        )
    if non_compliant_closed:
        metrics.non_compliant_win_rate = sum(
            1 for t in non_compliant_closed if t.is_winner
        ) / len(non_compliant_closed)

    return metrics
