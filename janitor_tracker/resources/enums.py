"""
Canonical enums for tracked janitor resources.

Values are persisted by name, so members must never be renamed.
"""

from enum import Enum


class ResourceType(str, Enum):
    """Kinds of cloud resources the janitor tracks."""

    INSTANCE = "INSTANCE"
    ASG = "ASG"
    EBS_VOLUME = "EBS_VOLUME"
    EBS_SNAPSHOT = "EBS_SNAPSHOT"
    LAUNCH_CONFIG = "LAUNCH_CONFIG"
    IMAGE = "IMAGE"
    S3_BUCKET = "S3_BUCKET"
    SECURITY_GROUP = "SECURITY_GROUP"
    ELB = "ELB"


class CleanupState(str, Enum):
    """Lifecycle state of a resource in the cleanup process."""

    MARKED = "MARKED"
    UNMARKED = "UNMARKED"
    JANITOR_TERMINATED = "JANITOR_TERMINATED"
    USER_TERMINATED = "USER_TERMINATED"
