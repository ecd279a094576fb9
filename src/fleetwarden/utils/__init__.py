"""Shared utilities for fleetwarden."""

from ._logging import LogFormatType, create_logger, create_null_logger
from ._time import get_timestamp, now, parse_timestamp

__all__ = [
    "LogFormatType",
    "create_logger",
    "create_null_logger",
    "get_timestamp",
    "now",
    "parse_timestamp",
]
