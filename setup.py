"""
Setup script for learning-core.

Learning Core is the adaptive learning analytics engine behind a
language-learning app. It serves three roles:

1. Event Tracking - Sessions, running metrics and in-session interventions
2. Learner Modeling - Behavior patterns, profiles and knowledge state
3. Adaptive Difficulty - ZPD/flow-aware difficulty and real-time adaptation

The 'learning-core' command replays event logs and fixtures from the terminal.
"""

from setuptools import find_packages, setup

setup(
    name="learning-core",
    version="0.1.0",
    description="Adaptive learning analytics: patterns, profiles, knowledge state and difficulty",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    author="Right Learning",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["config"],
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "learning-core=learning_core.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "Intended Audience :: Education",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning analytics adaptive-difficulty knowledge-tracing education",
)
