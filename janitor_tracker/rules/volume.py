"""
Owner override rule for detached storage volumes.

Owners can tag a volume with the janitor tag to control cleanup:

- "donotmark" exempts the volume from marking
- a date in YYYY-MM-DD form schedules it for termination on that day

Only volumes that are not attached to anything are considered; attached
volumes are always exempt. Any other tag value is reported and ignored, so
a typo can never mark a volume.

This is a pure function over the resource: it mutates the expected
termination time and reason when marking, but never persists anything.
Callers save the resource through the tracker.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from functools import partial
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel

from ..resources.enums import ResourceType
from ..resources.resource import Resource

default_logger = structlog.get_logger()

DEFAULT_JANITOR_TAG = "janitor"
DO_NOT_MARK = "donotmark"
# A volume in the "available" state is not attached to any instance
UNATTACHED_STATE = "available"

TERMINATION_DATE_FORMAT = "%Y-%m-%d"
_TERMINATION_DATE_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


class RuleOutcome(str, Enum):
    """Decision of a rule about a single resource."""

    EXEMPT = "exempt"
    NOT_APPLICABLE = "not_applicable"
    MARK_FOR_CLEANUP = "mark_for_cleanup"


class RuleConfig(BaseModel):
    """Configuration for the override tag rule."""

    governed_type: ResourceType = ResourceType.EBS_VOLUME
    tag_key: str = DEFAULT_JANITOR_TAG
    do_not_mark_value: str = DO_NOT_MARK
    unattached_state: str = UNATTACHED_STATE
    date_format: str = TERMINATION_DATE_FORMAT


def _get_default_rule_config() -> RuleConfig:
    """
    Get default rule config from environment settings.

    Lazy-loads the settings so the rule stays importable without them.
    """
    from ..config import get_settings

    return RuleConfig(tag_key=get_settings().janitor_tag)


def parse_termination_date(value: str, date_format: str = TERMINATION_DATE_FORMAT) -> datetime:
    """
    Parse a user supplied termination date as midnight UTC.

    Examples:
        "2024-03-15" -> 2024-03-15 00:00:00+00:00
        "2024-3-15" -> ValueError
        "not-a-date" -> ValueError
    """
    # strptime alone accepts "2024-3-15"
    if date_format == TERMINATION_DATE_FORMAT and not _TERMINATION_DATE_PATTERN.match(value):
        raise ValueError(f"{value!r} does not match YYYY-MM-DD")
    return datetime.strptime(value, date_format).replace(tzinfo=timezone.utc)


def evaluate(
    resource: Resource,
    config: Optional[RuleConfig] = None,
    logger: Optional[Any] = None,
) -> RuleOutcome:
    """
    Decide whether the owner's janitor tag exempts or schedules a volume.

    Args:
        resource: The resource to evaluate; updated in place when marked
        config: Optional rule configuration. If not provided, the tag key is
                read from settings.
        logger: Optional structlog-style logger receiving diagnostics

    Returns:
        NOT_APPLICABLE for resources of other types, untagged volumes and
        unparseable tags; EXEMPT for attached volumes and "donotmark";
        MARK_FOR_CLEANUP when the tag holds a valid date.

    Raises:
        ValueError: If resource is None
    """
    if resource is None:
        raise ValueError("resource must not be None")
    if config is None:
        config = _get_default_rule_config()
    log = (logger or default_logger).bind(resource_id=resource.resource_id)

    if resource.resource_type != config.governed_type:
        return RuleOutcome.NOT_APPLICABLE

    if resource.aws_resource_state != config.unattached_state:
        return RuleOutcome.EXEMPT

    janitor_tag = resource.get_tag(config.tag_key)
    if janitor_tag is None:
        return RuleOutcome.NOT_APPLICABLE

    if janitor_tag == config.do_not_mark_value:
        log.info("resource_tagged_do_not_mark", tag=config.tag_key)
        return RuleOutcome.EXEMPT

    try:
        termination_date = parse_termination_date(janitor_tag, config.date_format)
    except ValueError:
        log.error("janitor_tag_not_a_date", tag=config.tag_key, value=janitor_tag)
        return RuleOutcome.NOT_APPLICABLE

    resource.expected_termination_time = termination_date
    resource.termination_reason = f"User specified termination date {janitor_tag}"
    return RuleOutcome.MARK_FOR_CLEANUP


def make_rule(
    config: Optional[RuleConfig] = None, logger: Optional[Any] = None
) -> Callable[[Resource], RuleOutcome]:
    """Bind configuration and a logger, returning the rule as a function."""
    return partial(evaluate, config=config, logger=logger)
