"""Time zone conversion between absolute instants and zoned wall-clock times.

An instant is a timezone-aware datetime in UTC. A zoned time is the same
moment expressed in an IANA zone. Naive datetimes passed to
``to_instant`` are read as wall-clock times in the given zone; naive
datetimes anywhere else are treated as UTC (that is how the store keeps
them).
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from rytetime.errors import InvalidTimeZone


def get_zone(zone: str) -> ZoneInfo:
    """Resolve an IANA zone name, raising InvalidTimeZone for anything unknown."""
    if not isinstance(zone, str) or not zone.strip():
        raise InvalidTimeZone(f"Invalid time zone: {zone!r}")
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise InvalidTimeZone(f"Unknown time zone: {zone}") from e


def validate_timezone(zone: str) -> str:
    """Return the zone name unchanged if it resolves."""
    return get_zone(zone).key


def as_utc(dt: datetime) -> datetime:
    """Normalize a datetime to aware UTC (naive is assumed to already be UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_naive_utc(dt: datetime) -> datetime:
    """Naive UTC form used for database columns."""
    return as_utc(dt).replace(tzinfo=None)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_zoned_time(instant: datetime, zone: str) -> datetime:
    """Express an instant as an aware datetime in ``zone``."""
    return as_utc(instant).astimezone(get_zone(zone))


def to_instant(zoned_time: datetime, zone: str) -> datetime:
    """Convert a wall-clock time in ``zone`` to an aware UTC instant.

    Aware input is converted directly and ``zone`` is only validated.
    For naive input the ``fold`` attribute picks the occurrence of an
    ambiguous wall time (0 = first, 1 = second).
    """
    tz = get_zone(zone)
    if zoned_time.tzinfo is None:
        zoned_time = zoned_time.replace(tzinfo=tz)
    return zoned_time.astimezone(timezone.utc)


def to_wall_clock(instant: datetime, zone: str) -> datetime:
    """Naive wall-clock reading of an instant in ``zone`` (fold preserved)."""
    return to_zoned_time(instant, zone).replace(tzinfo=None)


def format_utc_offset(dt: datetime) -> str:
    """Render an aware datetime's offset as +HH:MM."""
    offset = dt.utcoffset()
    total_minutes = int(offset.total_seconds() // 60) if offset is not None else 0
    sign = "+" if total_minutes >= 0 else "-"
    hours, minutes = divmod(abs(total_minutes), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def is_dst(dt: datetime) -> bool:
    delta = dt.dst()
    return bool(delta and delta.total_seconds() != 0)
