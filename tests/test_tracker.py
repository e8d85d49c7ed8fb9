"""
Tests for the ResourceTracker store.

Verifies:
- Schema creation is idempotent and tolerant of failures
- upsert() inserts once and updates in place afterwards
- find() by key and by id, with integrity checks
- list_resources() filtering and row-level strictness
- Backend failures surface as BackendUnavailable
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, func, inspect, select, text
from structlog.testing import capture_logs

from janitor_tracker.db.codec import bind_values, encode_attributes, encode_row
from janitor_tracker.db.tracker import ResourceTracker
from janitor_tracker.errors import BackendUnavailable, IntegrityViolation, SerializationError
from janitor_tracker.resources import CleanupState, ResourceType

TABLE_NAME = "janitor_resources"


def count_rows(tracker: ResourceTracker) -> int:
    with tracker.engine.connect() as conn:
        return conn.execute(select(func.count()).select_from(tracker.table)).scalar()


def insert_raw(tracker: ResourceTracker, resource) -> None:
    """Insert a row directly, bypassing upsert()."""
    values = bind_values(encode_row(resource, encode_attributes(resource)))
    with tracker.engine.begin() as conn:
        conn.execute(tracker.table.insert().values(**values))


class TestEnsureSchema:
    """Tests for ResourceTracker.ensure_schema()."""

    def test_creates_table_with_fixed_columns(self, engine):
        ResourceTracker(engine, TABLE_NAME).ensure_schema()

        columns = {c["name"] for c in inspect(engine).get_columns(TABLE_NAME)}
        assert columns == {
            "resourceId", "resourceType", "region", "ownerEmail", "description",
            "state", "terminationReason", "expectedTerminationTime",
            "actualTerminationTime", "notificationTime", "launchTime", "markTime",
            "optOutOfJanitor", "additionalFields",
        }

    def test_is_idempotent(self, tracker, make_volume):
        tracker.upsert(make_volume())
        tracker.ensure_schema()
        assert count_rows(tracker) == 1

    def test_failure_is_logged_not_raised(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'tracker.db'}")
        tracker = ResourceTracker(engine, TABLE_NAME)

        with capture_logs() as logs:
            tracker.ensure_schema()

        warnings = [entry for entry in logs if entry["log_level"] == "warning"]
        assert warnings[0]["event"] == "create_table_failed"
        assert warnings[0]["table"] == TABLE_NAME


class TestUpsert:
    """Tests for ResourceTracker.upsert()."""

    def test_first_sighting_inserts(self, tracker, make_volume):
        resource = make_volume()
        tracker.upsert(resource)

        assert count_rows(tracker) == 1
        assert tracker.find(resource.resource_id, resource.region).model_dump() == (
            resource.model_dump()
        )

    def test_identical_upserts_keep_one_row(self, tracker, make_volume):
        resource = make_volume()
        tracker.upsert(resource)
        tracker.upsert(resource)

        assert count_rows(tracker) == 1
        found = tracker.find(resource.resource_id, resource.region)
        assert found.model_dump() == resource.model_dump()

    def test_resighting_updates_in_place(self, tracker, make_volume):
        tracker.upsert(make_volume(state=CleanupState.MARKED))

        updated = make_volume(
            state=CleanupState.JANITOR_TERMINATED,
            actual_termination_time=datetime(2024, 4, 2, tzinfo=timezone.utc),
            owner_email="new-owner@example.com",
            additional_fields={"awsResourceState": "deleting"},
        )
        tracker.upsert(updated)

        assert count_rows(tracker) == 1
        found = tracker.find(updated.resource_id, updated.region)
        assert found.state == CleanupState.JANITOR_TERMINATED
        assert found.actual_termination_time == datetime(2024, 4, 2, tzinfo=timezone.utc)
        assert found.owner_email == "new-owner@example.com"
        assert found.additional_fields == {"awsResourceState": "deleting"}

    def test_update_can_clear_fields(self, tracker, make_volume):
        tracker.upsert(make_volume())
        tracker.upsert(make_volume(termination_reason=None, expected_termination_time=None))

        found = tracker.find("vol-0123456789", "us-east-1")
        assert found.termination_reason is None
        assert found.expected_termination_time is None

    def test_same_id_in_other_region_is_a_new_row(self, tracker, make_volume):
        tracker.upsert(make_volume(region="us-east-1"))
        tracker.upsert(make_volume(region="eu-west-1", description="copy"))

        assert count_rows(tracker) == 2
        assert tracker.find("vol-0123456789", "us-east-1").description != "copy"
        assert tracker.find("vol-0123456789", "eu-west-1").description == "copy"

    def test_sentinel_email_is_stored_as_null(self, tracker, make_volume):
        resource = make_volume()
        # Bypass model validation the way a stale caller might
        resource.__dict__["owner_email"] = "0"
        tracker.upsert(resource)

        with tracker.engine.connect() as conn:
            stored = conn.execute(select(tracker.table.c.ownerEmail)).scalar()
        assert stored is None
        assert tracker.find(resource.resource_id, resource.region).owner_email is None

    def test_booleans_and_times_use_storage_encoding(self, tracker, make_volume):
        tracker.upsert(make_volume(opt_out_of_janitor=True))

        with tracker.engine.connect() as conn:
            row = conn.execute(select(tracker.table)).one()._mapping
        assert row["optOutOfJanitor"] == "true"
        assert row["expectedTerminationTime"] == 1711929600000
        assert row["actualTerminationTime"] is None

    def test_encoding_failure_writes_nothing(self, tracker, make_volume):
        resource = make_volume()
        resource.additional_fields["size"] = 100

        with capture_logs() as logs:
            with pytest.raises(SerializationError):
                tracker.upsert(resource)

        assert count_rows(tracker) == 0
        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert errors[0]["event"] == "additional_fields_encode_failed"
        assert errors[0]["resource_id"] == resource.resource_id

    def test_encoding_failure_leaves_existing_row_untouched(self, tracker, make_volume):
        tracker.upsert(make_volume(description="original"))

        changed = make_volume(description="changed")
        changed.set_additional_field("notes", "x" * 5000)
        with pytest.raises(SerializationError):
            tracker.upsert(changed)

        assert tracker.find("vol-0123456789", "us-east-1").description == "original"

    def test_statements_are_traced(self, tracker, make_volume):
        with capture_logs() as logs:
            tracker.upsert(make_volume())

        events = [entry["event"] for entry in logs]
        assert "query" in events
        assert "insert" in events
        insert_entry = next(entry for entry in logs if entry["event"] == "insert")
        assert "INSERT INTO" in insert_entry["statement"]
        assert insert_entry["params"]["resourceId"] == "vol-0123456789"


    def test_early_timestamp_round_trips(self, tracker, make_volume):
        launched = datetime(68, 9, 3, 13, 20, tzinfo=timezone.utc)
        tracker.upsert(make_volume(launch_time=launched))

        assert tracker.find("vol-0123456789", "us-east-1").launch_time == launched
        assert len(tracker.list_resources("us-east-1")) == 1


class TestFind:
    """Tests for ResourceTracker.find()."""

    def test_not_found_returns_none(self, tracker):
        with capture_logs() as logs:
            assert tracker.find("vol-missing", "us-east-1") is None
        assert logs[-1]["event"] == "resource_not_found"

    def test_find_by_id_alone(self, tracker, make_volume):
        tracker.upsert(make_volume())
        assert tracker.find("vol-0123456789").region == "us-east-1"

    def test_duplicate_key_rows_raise(self, tracker, make_volume):
        insert_raw(tracker, make_volume())
        insert_raw(tracker, make_volume())

        with pytest.raises(IntegrityViolation) as exc_info:
            tracker.find("vol-0123456789", "us-east-1")
        assert exc_info.value.code == "INTEGRITY_VIOLATION"

    def test_id_in_several_regions_raises_without_region(self, tracker, make_volume):
        tracker.upsert(make_volume(region="us-east-1"))
        tracker.upsert(make_volume(region="us-west-2"))

        with pytest.raises(IntegrityViolation):
            tracker.find("vol-0123456789")
        assert tracker.find("vol-0123456789", "us-west-2") is not None

    @pytest.mark.parametrize("resource_id, region", [("", "us-east-1"), ("vol-1", "")])
    def test_empty_key_parts_are_rejected(self, tracker, resource_id, region):
        with pytest.raises(ValueError):
            tracker.find(resource_id, region)

    def test_malformed_timestamp_is_tolerated(self, tracker):
        with tracker.engine.begin() as conn:
            conn.execute(
                text(
                    f"INSERT INTO {TABLE_NAME} (resourceId, resourceType, region, "
                    "launchTime, markTime, optOutOfJanitor) "
                    "VALUES ('vol-bad', 'EBS_VOLUME', 'us-east-1', 'not-a-number', "
                    "1709294400000, 'false')"
                )
            )

        resource = tracker.find("vol-bad", "us-east-1")

        assert resource.launch_time is None
        assert resource.mark_time == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert resource.additional_fields == {}


class TestListResources:
    """Tests for ResourceTracker.list_resources()."""

    @pytest.fixture
    def populated(self, tracker, make_volume):
        tracker.upsert(make_volume(resource_id="vol-east-1"))
        tracker.upsert(make_volume(resource_id="vol-east-2", state=CleanupState.UNMARKED))
        tracker.upsert(
            make_volume(resource_id="i-east-1", resource_type=ResourceType.INSTANCE)
        )
        tracker.upsert(make_volume(resource_id="vol-west-1", region="us-west-2"))
        tracker.upsert(
            make_volume(
                resource_id="i-west-1",
                resource_type=ResourceType.INSTANCE,
                region="us-west-2",
            )
        )
        return tracker

    def test_filters_by_type_and_region(self, populated):
        resources = populated.list_resources("us-east-1", resource_type=ResourceType.EBS_VOLUME)
        assert {r.resource_id for r in resources} == {"vol-east-1", "vol-east-2"}

    def test_filters_by_state(self, populated):
        resources = populated.list_resources(
            "us-east-1", resource_type=ResourceType.EBS_VOLUME, state=CleanupState.UNMARKED
        )
        assert [r.resource_id for r in resources] == ["vol-east-2"]

    def test_region_only(self, populated):
        resources = populated.list_resources("us-west-2")
        assert {r.resource_id for r in resources} == {"vol-west-1", "i-west-1"}

    def test_no_match_is_empty(self, populated):
        assert populated.list_resources("ap-south-1") == []

    def test_region_is_required(self, tracker):
        with pytest.raises(ValueError):
            tracker.list_resources("")

    def test_one_malformed_row_fails_the_query(self, populated):
        with populated.engine.begin() as conn:
            conn.execute(
                populated.table.update()
                .where(populated.table.c.resourceId == "vol-east-2")
                .values(additionalFields="{broken")
            )

        with pytest.raises(SerializationError):
            populated.list_resources("us-east-1")
        # Rows outside the filter are not affected
        assert len(populated.list_resources("us-west-2")) == 2


class TestBackendFailures:
    """Tests for database failures."""

    def test_missing_table_is_backend_unavailable(self, engine, make_volume):
        tracker = ResourceTracker(engine, "never_created")

        with pytest.raises(BackendUnavailable) as exc_info:
            tracker.upsert(make_volume())
        assert exc_info.value.code == "BACKEND_UNAVAILABLE"

    def test_unreachable_database_is_backend_unavailable(self, tmp_path):
        engine = create_engine(f"sqlite:///{tmp_path / 'missing' / 'tracker.db'}")
        tracker = ResourceTracker(engine, TABLE_NAME)

        with pytest.raises(BackendUnavailable):
            tracker.find("vol-1", "us-east-1")
