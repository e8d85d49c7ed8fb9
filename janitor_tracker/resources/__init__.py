"""
Tracked resource model for the janitor.
"""

from .enums import CleanupState, ResourceType
from .resource import (
    FIELD_AWS_RESOURCE_STATE,
    TAG_PREFIX,
    Resource,
    format_date,
    normalize_email,
    parse_date,
)

__all__ = [
    "CleanupState",
    "FIELD_AWS_RESOURCE_STATE",
    "Resource",
    "ResourceType",
    "TAG_PREFIX",
    "format_date",
    "normalize_email",
    "parse_date",
]
