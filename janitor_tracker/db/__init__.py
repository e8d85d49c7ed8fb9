"""
Database package for the janitor resource tracker.
"""

from .base import create_tracker_engine, get_database_url
from .codec import (
    DecoderRegistry,
    decode_row,
    encode_attributes,
    get_decoder,
    register_decoder,
)
from .tables import build_resource_table
from .tracker import ResourceTracker

__all__ = [
    "DecoderRegistry",
    "ResourceTracker",
    "build_resource_table",
    "create_tracker_engine",
    "decode_row",
    "encode_attributes",
    "get_database_url",
    "get_decoder",
    "register_decoder",
]
