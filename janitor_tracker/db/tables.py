"""
Table definition for tracked janitor resources.

Column names and widths must stay as they are: existing deployments share
this table. Names are emitted unquoted so that backends which fold
identifiers keep resolving them the same way.
"""

from typing import Optional

from sqlalchemy import BigInteger, Column, MetaData, String, Table

from ..resources.resource import (
    FIELD_ACTUAL_TERMINATION_TIME,
    FIELD_ADDITIONAL_FIELDS,
    FIELD_DESCRIPTION,
    FIELD_EXPECTED_TERMINATION_TIME,
    FIELD_LAUNCH_TIME,
    FIELD_MARK_TIME,
    FIELD_NOTIFICATION_TIME,
    FIELD_OPT_OUT_OF_JANITOR,
    FIELD_OWNER_EMAIL,
    FIELD_REGION,
    FIELD_RESOURCE_ID,
    FIELD_RESOURCE_TYPE,
    FIELD_STATE,
    FIELD_TERMINATION_REASON,
)

ADDITIONAL_FIELDS_MAX_LENGTH = 4096

# Every column except the (resourceId, region) key
MUTABLE_COLUMNS = (
    FIELD_RESOURCE_TYPE,
    FIELD_OWNER_EMAIL,
    FIELD_DESCRIPTION,
    FIELD_STATE,
    FIELD_TERMINATION_REASON,
    FIELD_EXPECTED_TERMINATION_TIME,
    FIELD_ACTUAL_TERMINATION_TIME,
    FIELD_NOTIFICATION_TIME,
    FIELD_LAUNCH_TIME,
    FIELD_MARK_TIME,
    FIELD_OPT_OUT_OF_JANITOR,
    FIELD_ADDITIONAL_FIELDS,
)


def build_resource_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    """Describe the tracking table under the given name."""
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column(FIELD_RESOURCE_ID, String(255), quote=False),
        Column(FIELD_RESOURCE_TYPE, String(255), quote=False),
        Column(FIELD_REGION, String(25), quote=False),
        Column(FIELD_OWNER_EMAIL, String(255), quote=False),
        Column(FIELD_DESCRIPTION, String(255), quote=False),
        Column(FIELD_STATE, String(25), quote=False),
        Column(FIELD_TERMINATION_REASON, String(255), quote=False),
        Column(FIELD_EXPECTED_TERMINATION_TIME, BigInteger, quote=False),
        Column(FIELD_ACTUAL_TERMINATION_TIME, BigInteger, quote=False),
        Column(FIELD_NOTIFICATION_TIME, BigInteger, quote=False),
        Column(FIELD_LAUNCH_TIME, BigInteger, quote=False),
        Column(FIELD_MARK_TIME, BigInteger, quote=False),
        Column(FIELD_OPT_OUT_OF_JANITOR, String(8), quote=False),
        Column(FIELD_ADDITIONAL_FIELDS, String(ADDITIONAL_FIELDS_MAX_LENGTH), quote=False),
    )
