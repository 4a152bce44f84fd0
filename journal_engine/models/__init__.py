"""Journal engine models."""

from .trade import MalformedTradeError, Trade
from .settings import (
    AdvancedSettings,
    CustomRule,
    DisciplineConfig,
    RiskManagementConfig,
    RuleEngineConfig,
    SessionsConfig,
    Settings,
    TradingHours,
    TradingRules,
)
from .evaluation import (
    EvaluatedRule,
    RuleId,
    RuleStatus,
    Severity,
    TradeClassification,
    TradeEvaluation,
    ViolatedRule,
)
from .evolution import (
    EvolutionMetrics,
    EvolutionProgress,
    EvolutionResult,
    TraderPhase,
)
from .report import AnalysisReport, ComplianceMetrics

__all__ = [
    "MalformedTradeError",
    "Trade",
    "AdvancedSettings",
    "CustomRule",
    "DisciplineConfig",
    "RiskManagementConfig",
    "RuleEngineConfig",
    "SessionsConfig",
    "Settings",
    "TradingHours",
    "TradingRules",
    "EvaluatedRule",
    "RuleId",
    "RuleStatus",
    "Severity",
    "TradeClassification",
    "TradeEvaluation",
    "ViolatedRule",
    "EvolutionMetrics",
    "EvolutionProgress",
    "EvolutionResult",
    "TraderPhase",
    "AnalysisReport",
    "ComplianceMetrics",
]
