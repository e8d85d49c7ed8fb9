"""Create janitor resources table

Revision ID: 001_janitor_resources
Revises:
Create Date: 2026-10-19

Creates the resource tracking table under the configured name, with a
unique (resourceId, region) key and indexes for the list filters.
"""
import sqlalchemy as sa
from alembic import op

from janitor_tracker.config import get_settings

# revision identifiers
revision = "001_janitor_resources"
down_revision = None
branch_labels = None
depends_on = None


def _column(name: str, type_) -> sa.Column:
    # Unquoted, to match tables created by ResourceTracker.ensure_schema()
    return sa.Column(name, type_, quote=False)


def upgrade() -> None:
    table = get_settings().resource_table

    op.create_table(
        table,
        _column("resourceId", sa.String(255)),
        _column("resourceType", sa.String(255)),
        _column("region", sa.String(25)),
        _column("ownerEmail", sa.String(255)),
        _column("description", sa.String(255)),
        _column("state", sa.String(25)),
        _column("terminationReason", sa.String(255)),
        _column("expectedTerminationTime", sa.BigInteger),
        _column("actualTerminationTime", sa.BigInteger),
        _column("notificationTime", sa.BigInteger),
        _column("launchTime", sa.BigInteger),
        _column("markTime", sa.BigInteger),
        _column("optOutOfJanitor", sa.String(8)),
        _column("additionalFields", sa.String(4096)),
        sa.UniqueConstraint("resourceId", "region", name=f"uq_{table}_resource_region"),
        sa.Index(f"ix_{table}_region_type_state", "region", "resourceType", "state"),
    )


def downgrade() -> None:
    op.drop_table(get_settings().resource_table)
