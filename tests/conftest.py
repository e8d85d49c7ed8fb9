"""Test configuration and fixtures."""

from datetime import datetime, timezone
from typing import Callable, Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from janitor_tracker.db.tracker import ResourceTracker
from janitor_tracker.resources import CleanupState, Resource, ResourceType

TABLE_NAME = "janitor_resources"


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """Create a fresh in-memory database for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def tracker(engine: Engine) -> ResourceTracker:
    """Tracker with its table already created."""
    tracker = ResourceTracker(engine, TABLE_NAME)
    tracker.ensure_schema()
    return tracker


@pytest.fixture
def make_volume() -> Callable[..., Resource]:
    """Factory for a detached, fully populated volume with optional overrides."""

    def _make(**overrides) -> Resource:
        defaults = {
            "resource_id": "vol-0123456789",
            "resource_type": ResourceType.EBS_VOLUME,
            "region": "us-east-1",
            "state": CleanupState.MARKED,
            "description": "size=100, zone=us-east-1a",
            "owner_email": "owner@example.com",
            "termination_reason": "Detached for more than 30 days",
            "expected_termination_time": datetime(2024, 4, 1, tzinfo=timezone.utc),
            "launch_time": datetime(2023, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc),
            "mark_time": datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc),
            "opt_out_of_janitor": False,
            "additional_fields": {
                "awsResourceState": "available",
                "tag.Name": "scratch-volume",
            },
        }
        defaults.update(overrides)
        return Resource(**defaults)

    return _make
