"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from config import Settings  # noqa: E402
from learning_core.core.sources import (  # noqa: E402
    StaticEnvironmentProvider,
    StaticLearnerDataSource,
)
from learning_core.engine import LearningAnalyticsEngine  # noqa: E402

START = datetime(2024, 5, 6, 10, 0, 0)  # a Monday morning


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


class FakeClock:
    """Manually advanced clock injected wherever the services take `clock=`."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings():
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def environment():
    """Deterministic environment/device metadata."""
    return StaticEnvironmentProvider(
        environment={"timezone": "UTC", "language": "es", "platform": "test"},
        device={"device_type": "desktop", "connectivity": "online", "touch_support": False},
    )


@pytest.fixture
def fixture_doc():
    """A learner with Spanish mastery data and a small concept graph."""
    return {
        "learners": [
            {
                "user_id": "u1",
                "behavior": {
                    "response_times": [4000, 5000, 6000],
                    "session_lengths": [1200, 1500, 1800],
                    "interaction_patterns": ["hint_request", "exercise_complete"],
                    "difficulty_progression": [0.3, 0.4, 0.5],
                    "calibration": [
                        {"confidence": 0.9, "correct": True},
                        {"confidence": 0.8, "correct": True},
                        {"confidence": 0.3, "correct": False},
                    ],
                },
                "performance": [
                    {"exercise_type": "vocabulary", "score": 0.9, "complexity": "low"},
                    {"exercise_type": "vocabulary", "score": 0.95, "complexity": "medium"},
                    {"exercise_type": "grammar", "score": 0.5, "complexity": "high"},
                ],
                "engagement": [
                    {"session_id": "s1", "duration": 1200, "completed": True, "difficulty": 0.6},
                    {"session_id": "s2", "duration": 1500, "completed": True, "self_directed": True},
                ],
                "interactions": [
                    {"type": "image_click"},
                    {"type": "diagram_view"},
                    {"type": "audio_play"},
                ],
                "subjects": {
                    "spanish": {
                        "mastery": {
                            "greetings": {
                                "attempts": 10,
                                "recent_scores": [0.9, 0.95, 0.9],
                                "all_scores": [0.7, 0.8, 0.9, 0.95, 0.9],
                            },
                            "numbers": {
                                "attempts": 4,
                                "recent_scores": [0.5, 0.6],
                                "all_scores": [0.4, 0.5, 0.6],
                            },
                        },
                        "history": [
                            {"concept_id": "greetings", "timestamp": "2024-05-05T10:00:00", "score": 0.9},
                            {"concept_id": "numbers", "timestamp": "2024-04-20T10:00:00", "score": 0.6},
                        ],
                    }
                },
                "learning_state": {"motivation_level": 0.7, "fatigue_level": 0.1},
                "performance_history": {
                    "vocabulary": [
                        {"score": 0.8, "time_to_complete": 60, "difficulty": 0.5},
                        {"score": 0.85, "time_to_complete": 55, "difficulty": 0.5},
                        {"score": 0.9, "time_to_complete": 50, "difficulty": 0.55},
                    ]
                },
                "user_state": {"level": 4, "current_streak": 2},
            }
        ],
        "concept_graphs": {
            "spanish": [
                {"id": "greetings", "name": "Greetings"},
                {"id": "numbers", "name": "Numbers"},
                {"id": "time", "name": "Telling Time", "prerequisites": ["numbers"]},
                {"id": "dates", "name": "Dates", "prerequisites": ["numbers", "time"]},
            ]
        },
        "exercise_difficulties": {"ex-1": 0.6},
    }


@pytest.fixture
def data_source(fixture_doc):
    return StaticLearnerDataSource.from_dict(fixture_doc)


@pytest.fixture
def engine(data_source, environment, clock, settings):
    """Engine wired to the static fixture, fixed clock and default settings."""
    return LearningAnalyticsEngine(
        data_source=data_source,
        environment=environment,
        clock=clock,
        settings=settings,
    )
