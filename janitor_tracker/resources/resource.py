"""
Tracked resource entity.

A Resource has a fixed set of typed fields, which map one-to-one onto the
columns of the tracking table, plus an open-ended ``additional_fields`` map
for type-specific metadata. Tags and the provider-side state live in the
additional fields so they survive a round trip through the store.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import CleanupState, ResourceType

# Column names of the tracking table
FIELD_RESOURCE_ID = "resourceId"
FIELD_RESOURCE_TYPE = "resourceType"
FIELD_REGION = "region"
FIELD_OWNER_EMAIL = "ownerEmail"
FIELD_DESCRIPTION = "description"
FIELD_STATE = "state"
FIELD_TERMINATION_REASON = "terminationReason"
FIELD_EXPECTED_TERMINATION_TIME = "expectedTerminationTime"
FIELD_ACTUAL_TERMINATION_TIME = "actualTerminationTime"
FIELD_NOTIFICATION_TIME = "notificationTime"
FIELD_LAUNCH_TIME = "launchTime"
FIELD_MARK_TIME = "markTime"
FIELD_OPT_OUT_OF_JANITOR = "optOutOfJanitor"
FIELD_ADDITIONAL_FIELDS = "additionalFields"

# Well-known additional fields
FIELD_AWS_RESOURCE_STATE = "awsResourceState"
TAG_PREFIX = "tag."

TIME_FIELDS = (
    FIELD_EXPECTED_TERMINATION_TIME,
    FIELD_ACTUAL_TERMINATION_TIME,
    FIELD_NOTIFICATION_TIME,
    FIELD_LAUNCH_TIME,
    FIELD_MARK_TIME,
)

# Fixed columns holding free text
TEXT_FIELDS = (
    FIELD_RESOURCE_ID,
    FIELD_REGION,
    FIELD_OWNER_EMAIL,
    FIELD_DESCRIPTION,
    FIELD_TERMINATION_REASON,
)

# Column name -> model attribute, for every fixed column
FIELD_TO_ATTRIBUTE: Dict[str, str] = {
    FIELD_RESOURCE_ID: "resource_id",
    FIELD_RESOURCE_TYPE: "resource_type",
    FIELD_REGION: "region",
    FIELD_OWNER_EMAIL: "owner_email",
    FIELD_DESCRIPTION: "description",
    FIELD_STATE: "state",
    FIELD_TERMINATION_REASON: "termination_reason",
    FIELD_EXPECTED_TERMINATION_TIME: "expected_termination_time",
    FIELD_ACTUAL_TERMINATION_TIME: "actual_termination_time",
    FIELD_NOTIFICATION_TIME: "notification_time",
    FIELD_LAUNCH_TIME: "launch_time",
    FIELD_MARK_TIME: "mark_time",
    FIELD_OPT_OUT_OF_JANITOR: "opt_out_of_janitor",
}

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Blank emails and the legacy "0" sentinel both mean no owner."""
    if email is None or not email.strip() or email == "0":
        return None
    return email


def to_millis(value: datetime) -> int:
    """Milliseconds since the epoch for a timezone-aware datetime."""
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_millis(millis: int) -> datetime:
    return EPOCH + timedelta(milliseconds=millis)


def format_date(value: datetime) -> str:
    """Render a datetime as ``yyyy-MM-ddTHH:mm:ss.SSSZ`` in UTC."""
    value = value.astimezone(timezone.utc)
    # strftime does not pad years before 1000
    return f"{value.year:04d}" + value.strftime("-%m-%dT%H:%M:%S.") + (
        f"{value.microsecond // 1000:03d}Z"
    )


def parse_date(value: str) -> datetime:
    return datetime.strptime(value, DATE_FORMAT).replace(tzinfo=timezone.utc)


class Resource(BaseModel):
    """A cloud resource tracked by the janitor."""

    model_config = ConfigDict(validate_assignment=True)

    # Identity
    resource_id: str = Field(min_length=1)
    resource_type: ResourceType
    region: str = Field(min_length=1)

    # Lifecycle
    state: Optional[CleanupState] = None
    description: Optional[str] = None
    termination_reason: Optional[str] = None
    expected_termination_time: Optional[datetime] = None
    actual_termination_time: Optional[datetime] = None
    notification_time: Optional[datetime] = None
    launch_time: Optional[datetime] = None
    mark_time: Optional[datetime] = None

    # Ownership and override
    owner_email: Optional[str] = None
    opt_out_of_janitor: bool = False

    additional_fields: Dict[str, str] = Field(default_factory=dict)

    @field_validator("owner_email")
    @classmethod
    def _normalize_owner_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value)

    @field_validator(
        "expected_termination_time",
        "actual_termination_time",
        "notification_time",
        "launch_time",
        "mark_time",
    )
    @classmethod
    def _to_utc_millis(cls, value: Optional[datetime]) -> Optional[datetime]:
        """Store times as UTC with millisecond precision, like the table does."""
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        else:
            value = value.astimezone(timezone.utc)
        return value.replace(microsecond=value.microsecond // 1000 * 1000)

    # Additional fields

    def get_additional_field(self, name: str) -> Optional[str]:
        return self.additional_fields.get(name)

    def set_additional_field(self, name: str, value: str) -> None:
        self.additional_fields[name] = value

    def additional_field_names(self) -> List[str]:
        return list(self.additional_fields)

    # Tags

    def get_tag(self, key: str) -> Optional[str]:
        return self.additional_fields.get(TAG_PREFIX + key)

    def set_tag(self, key: str, value: str) -> None:
        self.additional_fields[TAG_PREFIX + key] = value

    @property
    def tags(self) -> Dict[str, str]:
        """All tags on the resource, keyed without the storage prefix."""
        return {
            name[len(TAG_PREFIX):]: value
            for name, value in self.additional_fields.items()
            if name.startswith(TAG_PREFIX)
        }

    # Provider-side state, e.g. "available" or "in-use" for a volume

    @property
    def aws_resource_state(self) -> Optional[str]:
        return self.additional_fields.get(FIELD_AWS_RESOURCE_STATE)

    def set_aws_resource_state(self, value: str) -> None:
        self.additional_fields[FIELD_AWS_RESOURCE_STATE] = value

    def to_field_map(self) -> Dict[str, Optional[str]]:
        """Flatten the resource into column-named string values.

        Additional fields come first so that fixed fields win on a name clash.
        """
        fields: Dict[str, Optional[str]] = dict(self.additional_fields)
        fields.update(
            {
                FIELD_RESOURCE_ID: self.resource_id,
                FIELD_RESOURCE_TYPE: self.resource_type.value,
                FIELD_REGION: self.region,
                FIELD_OWNER_EMAIL: self.owner_email,
                FIELD_DESCRIPTION: self.description,
                FIELD_STATE: self.state.value if self.state else None,
                FIELD_TERMINATION_REASON: self.termination_reason,
                FIELD_OPT_OUT_OF_JANITOR: str(self.opt_out_of_janitor).lower(),
            }
        )
        for field_name in TIME_FIELDS:
            value = getattr(self, FIELD_TO_ATTRIBUTE[field_name])
            fields[field_name] = format_date(value) if value is not None else None
        return fields

    @classmethod
    def from_field_map(cls, fields: Mapping[str, Optional[str]]) -> "Resource":
        """Build a resource from column-named string values.

        Keys that are not fixed columns become additional fields. Raises
        ValueError when a fixed field cannot be parsed.
        """
        values: Dict[str, Any] = {}
        additional: Dict[str, str] = {}
        for name, value in fields.items():
            if name not in FIELD_TO_ATTRIBUTE:
                if value is not None:
                    additional[name] = value
                continue
            if value is None:
                continue
            # Free text may legitimately be empty
            if value == "" and name not in TEXT_FIELDS:
                continue
            if name in TIME_FIELDS:
                values[FIELD_TO_ATTRIBUTE[name]] = parse_date(value)
            elif name == FIELD_OPT_OUT_OF_JANITOR:
                values[FIELD_TO_ATTRIBUTE[name]] = value.strip().lower() == "true"
            else:
                values[FIELD_TO_ATTRIBUTE[name]] = value

        return cls(additional_fields=additional, **values)

    def __str__(self) -> str:
        return (
            f"Resource(id={self.resource_id}, type={self.resource_type.value}, "
            f"region={self.region})"
        )
