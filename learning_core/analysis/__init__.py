"""
Pattern analysis over learner event windows.

Components:
- PatternAnalyzer: performance, engagement, efficiency, temporal, social
  and behavior-archetype analysis
- statistics: trend, consistency, momentum and related series helpers
"""
from learning_core.analysis.archetypes import (
    BEHAVIOR_ARCHETYPES,
    BehaviorArchetype,
    BehaviorPattern,
)
from learning_core.analysis.pattern_analyzer import BehaviorSignals, PatternAnalyzer
from learning_core.analysis.statistics import (
    Momentum,
    Trend,
    consistency,
    improvement,
    linear_slope,
    momentum,
    stddev,
    trend,
)

__all__ = [
    "BEHAVIOR_ARCHETYPES",
    "BehaviorArchetype",
    "BehaviorPattern",
    "BehaviorSignals",
    "PatternAnalyzer",
    "Momentum",
    "Trend",
    "consistency",
    "improvement",
    "linear_slope",
    "momentum",
    "stddev",
    "trend",
]
