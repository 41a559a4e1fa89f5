"""
Adaptive learning analytics core.

Turns learner interaction events into pattern reports, learner profiles,
per-concept knowledge states and difficulty recommendations.
"""

__version__ = "0.1.0"
