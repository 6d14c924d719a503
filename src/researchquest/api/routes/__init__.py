"""API Routes"""

from . import (
    communities,
    gamification,
    journey,
    projects,
    resources,
    tasks,
    topics,
)

__all__ = [
    "communities",
    "gamification",
    "journey",
    "projects",
    "resources",
    "tasks",
    "topics",
]
