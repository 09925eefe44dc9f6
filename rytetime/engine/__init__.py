"""Core engine for rytetime."""

from rytetime.engine.timezones import (
    as_utc,
    to_instant,
    to_naive_utc,
    to_wall_clock,
    to_zoned_time,
    utc_now,
    validate_timezone,
)

__all__ = [
    "as_utc",
    "to_instant",
    "to_naive_utc",
    "to_wall_clock",
    "to_zoned_time",
    "utc_now",
    "validate_timezone",
]
