"""
Adaptive difficulty.

Components:
- DifficultyAdjuster: optimal difficulty with ZPD and flow analysis
- RealTimeAdapter: per-answer adaptation state machine and plans
"""
from learning_core.difficulty.difficulty_adjuster import DifficultyAdjuster
from learning_core.difficulty.models import (
    AdaptationDecision,
    AdaptationPlan,
    AdaptationTriggers,
    AdaptationType,
    DifficultyAdjustments,
    DifficultyRecommendation,
    FlowAssessment,
    FlowBand,
    RecentPerformance,
    ResponseAnalysis,
    ZPDAnalysis,
    Zone,
)
from learning_core.difficulty.realtime import ADAPTATION_STRATEGIES, RealTimeAdapter

__all__ = [
    "ADAPTATION_STRATEGIES",
    "DifficultyAdjuster",
    "RealTimeAdapter",
    "AdaptationDecision",
    "AdaptationPlan",
    "AdaptationTriggers",
    "AdaptationType",
    "DifficultyAdjustments",
    "DifficultyRecommendation",
    "FlowAssessment",
    "FlowBand",
    "RecentPerformance",
    "ResponseAnalysis",
    "ZPDAnalysis",
    "Zone",
]
