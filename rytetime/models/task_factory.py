"""Task creation factory for rytetime.

Centralizes how a new task's due instant and advisory local view are
derived from client input so the API and the service agree.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from rytetime.engine.timezones import to_instant, to_wall_clock, utc_now, validate_timezone
from rytetime.models.task import Task, TaskPriority


def resolve_origin_instant(origin_datetime: datetime, origin_timezone: str) -> datetime:
    """Due instant for client input.

    A naive datetime is a wall-clock reading in ``origin_timezone``; an aware
    one already names the instant.
    """
    return to_instant(origin_datetime, validate_timezone(origin_timezone))


def local_view(instant: datetime, local_timezone: Optional[str]) -> Optional[datetime]:
    """Wall-clock reading of the instant in the viewer's zone, if one is known."""
    if not local_timezone:
        return None
    return to_wall_clock(instant, validate_timezone(local_timezone))


def create_task_base(
    user_id: str,
    title: str,
    origin_datetime: datetime,
    origin_timezone: str,
    description: Optional[str] = None,
    priority: Optional[TaskPriority] = None,
    tags: Optional[List[str]] = None,
    recurrence_rule: Optional[str] = None,
    local_timezone: Optional[str] = None,
    task_id: Optional[str] = None,
) -> Task:
    """Create a Task with derived fields filled in.

    Args:
        user_id: Owner ID
        title: Task title
        origin_datetime: Due time as entered by the user
        origin_timezone: IANA zone the due time was entered in
        local_timezone: Viewer zone for the advisory local view (defaults to the origin zone)

    Raises:
        InvalidTimeZone: If either zone does not resolve
    """
    instant = resolve_origin_instant(origin_datetime, origin_timezone)
    local_timezone = local_timezone or origin_timezone
    now = utc_now()
    return Task(
        id=task_id or str(uuid.uuid4()),
        user_id=user_id,
        title=title,
        description=description,
        priority=priority or TaskPriority.MEDIUM,
        tags=tags or [],
        recurrence_rule=recurrence_rule,
        origin_datetime=instant,
        origin_timezone=origin_timezone,
        local_datetime=local_view(instant, local_timezone),
        local_timezone=local_timezone,
        created_at=now,
        updated_at=now,
    )
