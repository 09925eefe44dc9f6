"""Task list export (Markdown and CSV)."""

import csv
import io
from enum import Enum
from typing import List

from rytetime.engine.timezones import to_zoned_time
from rytetime.models.task import Task

CSV_HEADERS = [
    "Title",
    "Description",
    "Priority",
    "Origin DateTime",
    "Origin Timezone",
    "Local DateTime",
    "Local Timezone",
    "Tags",
    "Recurrence Rule",
]


class ExportFormat(str, Enum):
    MARKDOWN = "markdown"
    CSV = "csv"


def _origin_wall_clock(task: Task) -> str:
    return to_zoned_time(task.origin_datetime, task.origin_timezone).strftime("%Y-%m-%d %H:%M")


def _local_wall_clock(task: Task) -> str:
    return task.local_datetime.strftime("%Y-%m-%d %H:%M") if task.local_datetime else ""


def export_to_markdown(tasks: List[Task]) -> str:
    lines = ["# Tasks", ""]
    for task in tasks:
        lines.append(f"## {task.title}")
        lines.append("")
        lines.append(f"- **Priority:** {task.priority}")
        if task.description:
            lines.append(f"- **Description:** {task.description}")
        lines.append(f"- **Due:** {_origin_wall_clock(task)} ({task.origin_timezone})")
        if task.local_timezone:
            lines.append(f"- **Local:** {_local_wall_clock(task)} ({task.local_timezone})")
        if task.tags:
            lines.append(f"- **Tags:** {', '.join(task.tags)}")
        if task.recurrence_rule:
            lines.append(f"- **Recurrence:** {task.recurrence_rule}")
        lines.append("")
    return "\n".join(lines)


def export_to_csv(tasks: List[Task]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADERS)
    for task in tasks:
        writer.writerow([
            task.title,
            task.description or "",
            task.priority,
            _origin_wall_clock(task),
            task.origin_timezone,
            _local_wall_clock(task),
            task.local_timezone or "",
            ";".join(task.tags),
            task.recurrence_rule or "",
        ])
    return buffer.getvalue()


def export_tasks(tasks: List[Task], export_format: ExportFormat) -> str:
    if ExportFormat(export_format) == ExportFormat.CSV:
        return export_to_csv(tasks)
    return export_to_markdown(tasks)
