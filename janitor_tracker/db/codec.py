"""
Conversion between Resource entities and rows of the tracking table.

A row holds the fixed fields in their own columns and every additional
field in one JSON object in the ``additionalFields`` column. When decoding,
fixed columns always win over same-named entries of that object.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

import structlog

from ..errors import SerializationError
from ..resources.enums import ResourceType
from ..resources.resource import (
    FIELD_ADDITIONAL_FIELDS,
    FIELD_DESCRIPTION,
    FIELD_OPT_OUT_OF_JANITOR,
    FIELD_OWNER_EMAIL,
    FIELD_REGION,
    FIELD_RESOURCE_ID,
    FIELD_RESOURCE_TYPE,
    FIELD_STATE,
    FIELD_TERMINATION_REASON,
    FIELD_TO_ATTRIBUTE,
    TIME_FIELDS,
    Resource,
    format_date,
    from_millis,
    normalize_email,
    parse_date,
    to_millis,
)
from .tables import ADDITIONAL_FIELDS_MAX_LENGTH

logger = structlog.get_logger()


# Values bound to statement parameters


@dataclass(frozen=True)
class NullValue:
    """SQL NULL."""

    def bind(self) -> None:
        return None


@dataclass(frozen=True)
class TextValue:
    value: str

    def bind(self) -> str:
        return self.value


@dataclass(frozen=True)
class IntegerValue:
    value: int

    def bind(self) -> int:
        return self.value


@dataclass(frozen=True)
class BooleanValue:
    """Booleans are stored as their canonical string form."""

    value: bool

    def bind(self) -> str:
        return "true" if self.value else "false"


ColumnValue = Union[NullValue, TextValue, IntegerValue, BooleanValue]

NULL = NullValue()


def text_value(value: Optional[str]) -> ColumnValue:
    return NULL if value is None else TextValue(value)


def time_value(value: Optional[datetime]) -> ColumnValue:
    return NULL if value is None else IntegerValue(to_millis(value))


def bool_value(value: bool) -> ColumnValue:
    return BooleanValue(bool(value))


def email_value(value: Optional[str]) -> ColumnValue:
    """Owner emails that are blank or the legacy "0" are never written."""
    return text_value(normalize_email(value))


def bind_values(values: Mapping[str, ColumnValue]) -> Dict[str, Any]:
    """Resolve tagged values into plain statement parameters."""
    return {name: value.bind() for name, value in values.items()}


# Row decoders by resource type

RowDecoder = Callable[[Mapping[str, Optional[str]]], Resource]


class DecoderRegistry:
    """Maps a resource type to the function that builds its entity.

    Types without a registered decoder are built as plain Resources.
    """

    def __init__(self, default: RowDecoder = Resource.from_field_map):
        self.default = default
        self.decoders: Dict[ResourceType, RowDecoder] = {}

    def register(self, resource_type: ResourceType, decoder: RowDecoder) -> None:
        self.decoders[resource_type] = decoder

    def get(self, resource_type: ResourceType) -> RowDecoder:
        return self.decoders.get(resource_type, self.default)


default_registry = DecoderRegistry()


def register_decoder(resource_type: ResourceType, decoder: RowDecoder) -> None:
    """Register a decoder on the default registry."""
    default_registry.register(resource_type, decoder)


def get_decoder(resource_type: ResourceType) -> RowDecoder:
    return default_registry.get(resource_type)


# Encoding


def encode_attributes(resource: Resource) -> str:
    """
    Serialize the additional fields of a resource into one JSON object.

    Raises:
        SerializationError: If a key or value is not a string, or the blob
            would not fit the additionalFields column
    """
    fields: Dict[str, str] = {}
    for name in resource.additional_field_names():
        value = resource.get_additional_field(name)
        if not isinstance(name, str) or not isinstance(value, str):
            raise SerializationError(
                f"Additional field {name!r} of resource {resource.resource_id} "
                f"is not a string mapping (got {type(value).__name__})"
            )
        fields[name] = value

    try:
        blob = json.dumps(fields, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise SerializationError(
            f"Cannot encode additional fields of resource {resource.resource_id}: {e}"
        ) from e

    if len(blob) > ADDITIONAL_FIELDS_MAX_LENGTH:
        raise SerializationError(
            f"Additional fields of resource {resource.resource_id} take {len(blob)} "
            f"characters, the column holds {ADDITIONAL_FIELDS_MAX_LENGTH}"
        )
    return blob


def encode_row(resource: Resource, attributes: str) -> Dict[str, ColumnValue]:
    """All column values of the row for a resource."""
    return {
        FIELD_RESOURCE_ID: text_value(resource.resource_id),
        FIELD_RESOURCE_TYPE: text_value(resource.resource_type.value),
        FIELD_REGION: text_value(resource.region),
        FIELD_OWNER_EMAIL: email_value(resource.owner_email),
        FIELD_DESCRIPTION: text_value(resource.description),
        FIELD_STATE: text_value(resource.state.value if resource.state else None),
        FIELD_TERMINATION_REASON: text_value(resource.termination_reason),
        **{
            name: time_value(getattr(resource, FIELD_TO_ATTRIBUTE[name]))
            for name in TIME_FIELDS
        },
        FIELD_OPT_OUT_OF_JANITOR: bool_value(resource.opt_out_of_janitor),
        FIELD_ADDITIONAL_FIELDS: TextValue(attributes),
    }


# Decoding


def decode_attributes(blob: Optional[str]) -> Dict[str, str]:
    """
    Parse the additionalFields column.

    A NULL column means no additional fields. Scalar values are read back as
    strings; anything else is a hard failure.
    """
    if blob is None:
        return {}
    try:
        data = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Malformed additional fields JSON: {e}") from e
    if not isinstance(data, dict):
        raise SerializationError(
            f"Additional fields must be a JSON object, got {type(data).__name__}"
        )

    fields: Dict[str, str] = {}
    for name, value in data.items():
        if isinstance(value, str):
            fields[name] = value
        elif isinstance(value, bool):
            fields[name] = "true" if value else "false"
        elif isinstance(value, (int, float)):
            fields[name] = str(value)
        elif value is not None:
            raise SerializationError(
                f"Additional field {name!r} holds a nested {type(value).__name__}"
            )
    return fields


def millis_to_formatted_date(value: Any, field: str = "") -> Optional[str]:
    """Format stored epoch milliseconds, or None when absent or malformed."""
    if value is None:
        return None
    try:
        formatted = format_date(from_millis(int(value)))
        parse_date(formatted)
        return formatted
    except (TypeError, ValueError, OverflowError):
        logger.error("timestamp_parse_failed", field=field, value=value)
        return None


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def decode_row(
    row: Mapping[str, Any], registry: Optional[DecoderRegistry] = None
) -> Resource:
    """
    Rebuild a Resource from a row of the tracking table.

    Malformed timestamps are logged and dropped. A malformed additionalFields
    blob or an unparseable fixed field fails the whole row.

    Raises:
        SerializationError: If the row cannot be turned into a Resource
    """
    registry = registry or default_registry
    resource_id = row.get(FIELD_RESOURCE_ID)

    try:
        fields: Dict[str, Optional[str]] = dict(
            decode_attributes(row.get(FIELD_ADDITIONAL_FIELDS))
        )
    except SerializationError:
        logger.error("additional_fields_decode_failed", resource_id=resource_id)
        raise

    # Fixed columns are authoritative
    for name in FIELD_TO_ATTRIBUTE:
        fields.pop(name, None)
    for name in (
        FIELD_RESOURCE_ID,
        FIELD_RESOURCE_TYPE,
        FIELD_REGION,
        FIELD_DESCRIPTION,
        FIELD_STATE,
        FIELD_TERMINATION_REASON,
        FIELD_OPT_OUT_OF_JANITOR,
    ):
        fields[name] = _as_text(row.get(name))

    fields[FIELD_OWNER_EMAIL] = normalize_email(_as_text(row.get(FIELD_OWNER_EMAIL)))

    for name in TIME_FIELDS:
        formatted = millis_to_formatted_date(row.get(name), field=name)
        if formatted is not None:
            fields[name] = formatted

    try:
        resource_type = ResourceType(fields[FIELD_RESOURCE_TYPE])
        return registry.get(resource_type)(fields)
    except ValueError as e:
        logger.error("resource_decode_failed", resource_id=resource_id, error=str(e))
        raise SerializationError(
            f"Cannot build resource {resource_id} from stored row: {e}"
        ) from e
