"""
Resource tracking store backed by a relational table.

One row per (resourceId, region). ``upsert`` inserts on first sighting and
updates the row in place afterwards; lookups refuse to pick between
duplicate rows.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Mapping, Optional

import structlog
from structlog.stdlib import BoundLogger
from sqlalchemy import Engine, and_, insert, select, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.schema import CreateTable

from ..config import Settings, get_settings
from ..errors import BackendUnavailable, IntegrityViolation, SerializationError
from ..resources.enums import CleanupState, ResourceType
from ..resources.resource import (
    FIELD_REGION,
    FIELD_RESOURCE_ID,
    FIELD_RESOURCE_TYPE,
    FIELD_STATE,
    Resource,
)
from .base import create_tracker_engine
from .codec import DecoderRegistry, bind_values, decode_row, encode_attributes, encode_row
from .tables import MUTABLE_COLUMNS, build_resource_table

logger = structlog.get_logger()


class ResourceTracker:
    """Durable record of janitor resources.

    Usage:
        tracker = ResourceTracker.from_settings()
        tracker.ensure_schema()
        tracker.upsert(resource)
        marked = tracker.list_resources("us-east-1", state=CleanupState.MARKED)
    """

    def __init__(
        self,
        engine: Engine,
        table_name: str,
        registry: Optional[DecoderRegistry] = None,
    ):
        self.engine = engine
        self.table = build_resource_table(table_name)
        self.registry = registry
        self.logger = logger.bind(table=table_name)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ResourceTracker":
        """Build a tracker from configuration, with a small connection pool."""
        settings = settings or get_settings()
        return cls(create_tracker_engine(settings=settings), settings.resource_table)

    def ensure_schema(self) -> None:
        """Create the tracking table if it does not already exist.

        Failures are logged and swallowed: the table may already be there.
        """
        self.logger.info("create_table")
        try:
            self.logger.debug(
                "create_table_statement",
                statement=str(CreateTable(self.table).compile(self.engine)),
            )
            self.table.create(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            self.logger.warning("create_table_failed", error=str(e))

    def upsert(self, resource: Resource) -> None:
        """
        Insert a resource on first sighting, otherwise update its row.

        Raises:
            SerializationError: If the additional fields cannot be encoded;
                nothing is written in that case
            BackendUnavailable: If the database call fails
        """
        try:
            attributes = encode_attributes(resource)
        except SerializationError:
            self.logger.error(
                "additional_fields_encode_failed",
                resource_id=resource.resource_id,
                region=resource.region,
            )
            raise

        values = bind_values(encode_row(resource, attributes))
        log = self.logger.bind(resource_id=resource.resource_id, region=resource.region)
        log.debug("saving_resource")

        with self._begin() as conn:
            existing = self._select(
                conn, resource_id=resource.resource_id, region=resource.region
            )
            if not existing:
                self._insert(conn, values, log)
            else:
                self._update(conn, values, log)

        log.debug("resource_saved")

    def find(self, resource_id: str, region: Optional[str] = None) -> Optional[Resource]:
        """
        Get a resource by id, and by region when given.

        Looking up by id alone assumes ids are unique across regions.

        Raises:
            IntegrityViolation: If more than one row matches
        """
        if not resource_id:
            raise ValueError("resource_id must not be empty")
        if region is not None and not region:
            raise ValueError("region must not be empty")

        with self._begin() as conn:
            rows = self._select(conn, resource_id=resource_id, region=region)

        if len(rows) > 1:
            where = f" in region {region}" if region else ""
            raise IntegrityViolation(
                f"{len(rows)} rows found for resource {resource_id}{where}"
            )
        if not rows:
            self.logger.info("resource_not_found", resource_id=resource_id, region=region)
            return None
        return decode_row(rows[0], self.registry)

    def list_resources(
        self,
        region: str,
        resource_type: Optional[ResourceType] = None,
        state: Optional[CleanupState] = None,
    ) -> List[Resource]:
        """
        Get every resource in a region, optionally filtered by type and state.

        Raises:
            SerializationError: If any matching row cannot be decoded
        """
        if not region:
            raise ValueError("region must not be empty")

        with self._begin() as conn:
            rows = self._select(
                conn,
                region=region,
                resource_type=resource_type.value if resource_type else None,
                state=state.value if state else None,
            )
        return [decode_row(row, self.registry) for row in rows]

    # Statement helpers

    @contextmanager
    def _begin(self) -> Iterator[Connection]:
        """Run one tracker operation in a transaction; nothing is retried."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except DBAPIError as e:
            self.logger.error("database_call_failed", error=str(e))
            raise BackendUnavailable(f"Database call failed: {e}") from e

    def _select(
        self,
        conn: Connection,
        resource_id: Optional[str] = None,
        region: Optional[str] = None,
        resource_type: Optional[str] = None,
        state: Optional[str] = None,
    ) -> List[Mapping[str, Any]]:
        columns = self.table.c
        conditions = []
        params: Dict[str, Any] = {}
        if resource_id is not None:
            conditions.append(columns[FIELD_RESOURCE_ID] == resource_id)
            params[FIELD_RESOURCE_ID] = resource_id
        if resource_type is not None:
            conditions.append(columns[FIELD_RESOURCE_TYPE] == resource_type)
            params[FIELD_RESOURCE_TYPE] = resource_type
        if state is not None:
            conditions.append(columns[FIELD_STATE] == state)
            params[FIELD_STATE] = state
        if region is not None:
            conditions.append(columns[FIELD_REGION] == region)
            params[FIELD_REGION] = region

        statement = select(self.table).where(and_(*conditions))
        self.logger.debug("query", statement=str(statement), params=params)
        return [dict(row._mapping) for row in conn.execute(statement)]

    def _insert(self, conn: Connection, values: Dict[str, Any], log: BoundLogger) -> None:
        statement = insert(self.table).values(**values)
        log.debug("insert", statement=str(statement), params=values)
        result = conn.execute(statement)
        log.debug("rows_inserted", count=result.rowcount)

    def _update(self, conn: Connection, values: Dict[str, Any], log: BoundLogger) -> None:
        columns = self.table.c
        statement = (
            update(self.table)
            .where(columns[FIELD_RESOURCE_ID] == values[FIELD_RESOURCE_ID])
            .where(columns[FIELD_REGION] == values[FIELD_REGION])
            .values(**{name: values[name] for name in MUTABLE_COLUMNS})
        )
        log.debug("update", statement=str(statement), params=values)
        result = conn.execute(statement)
        log.debug("rows_updated", count=result.rowcount)
