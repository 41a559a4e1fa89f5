"""
Learner profiling.

Components:
- ProfileModeler: multi-dimensional user profile (cognitive, learning style,
  personality, motivation, metacognition, skills)
- KnowledgeStateModeler: per-concept mastery, readiness and retention
"""
from learning_core.profiling.knowledge_state import KnowledgeStateModeler
from learning_core.profiling.models import (
    Concept,
    ConceptGraph,
    ForgettingCurve,
    KnowledgeState,
    KnowledgeStateEntry,
    LearningGap,
    UserProfile,
)
from learning_core.profiling.profile_modeler import ProfileModeler

__all__ = [
    "KnowledgeStateModeler",
    "ProfileModeler",
    "Concept",
    "ConceptGraph",
    "ForgettingCurve",
    "KnowledgeState",
    "KnowledgeStateEntry",
    "LearningGap",
    "UserProfile",
]
