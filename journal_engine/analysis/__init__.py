"""Rule evaluation and trader evolution components."""

from .rule_evaluator import RuleEvaluator
from .evolution import EvolutionClassifier

__all__ = ["RuleEvaluator", "EvolutionClassifier"]
