"""Timestamp helpers."""

import pendulum


def now() -> pendulum.DateTime:
    """Return the current time in UTC."""
    return pendulum.now("UTC")


def get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    return now().to_iso8601_string()


def parse_timestamp(value: str) -> pendulum.DateTime:
    """Parse an ISO 8601 timestamp produced by get_timestamp()."""
    parsed = pendulum.parse(value)
    if not isinstance(parsed, pendulum.DateTime):
        msg = f"Not a datetime: {value!r}"
        raise TypeError(msg)
    return parsed
