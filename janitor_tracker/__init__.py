"""
Janitor Resource Tracker

Persistence and cleanup-eligibility decisions for cloud resources tracked
by the janitor.
"""

import importlib.metadata

__version__ = importlib.metadata.version("janitor-tracker")

from .db.tracker import ResourceTracker
from .errors import (
    BackendUnavailable,
    IntegrityViolation,
    SerializationError,
    TrackerError,
)
from .resources import CleanupState, Resource, ResourceType
from .rules import RuleConfig, RuleOutcome, evaluate

__all__ = [
    "BackendUnavailable",
    "CleanupState",
    "IntegrityViolation",
    "Resource",
    "ResourceTracker",
    "ResourceType",
    "RuleConfig",
    "RuleOutcome",
    "SerializationError",
    "TrackerError",
    "evaluate",
]
