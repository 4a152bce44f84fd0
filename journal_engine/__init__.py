"""
Journal Engine - Trade rule evaluation and trader evolution.

Checks journal trades against the trader's discipline and risk rules and
derives a longitudinal evolution assessment from the trade history.
"""

from .analysis import EvolutionClassifier, RuleEvaluator
from .analyzer import JournalAnalyzer
from .runner import JournalRunner

__version__ = "0.1.0"
__all__ = ["RuleEvaluator", "EvolutionClassifier", "JournalAnalyzer", "JournalRunner"]
