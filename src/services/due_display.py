"""Due date/time display rules for task cards."""

from datetime import date, datetime, time, timedelta
from enum import StrEnum

from pydantic import BaseModel

from src.domain.task import Task


class DueColor(StrEnum):
    """Colour applied to a task's due badge."""

    OVERDUE = "red"
    UPCOMING = "blue"


class DueDisplay(BaseModel):
    """Rendered due information for one task."""

    label: str | None = None
    time_label: str | None = None
    color: DueColor | None = None


def format_time_12h(value: time) -> str:
    """Format a time of day as ``2:00 PM``."""
    hour12 = value.hour % 12 or 12
    period = "PM" if value.hour >= 12 else "AM"  # noqa: PLR2004
    return f"{hour12}:{value.minute:02d} {period}"


def due_label(due_date: date | None, due_time: time | None, *, today: date) -> str | None:
    """``Today`` for today's tasks and time-only tasks, otherwise ``Mon DD``."""
    if due_date is None:
        return "Today" if due_time is not None else None
    if due_date == today:
        return "Today"
    return due_date.strftime("%b %d")


def due_moment(due_date: date | None, due_time: time | None, *, today: date) -> datetime | None:
    """The instant after which a task counts as overdue.

    A time without a date is read as today at that time; a date without a time
    runs until the end of that day.
    """
    if due_date is None and due_time is None:
        return None
    day = due_date or today
    if due_time is None:
        return datetime.combine(day + timedelta(days=1), time.min)
    return datetime.combine(day, due_time)


def describe_due(task: Task, *, now: datetime) -> DueDisplay:
    """Label, 12-hour time and colour for a task's due information at ``now``."""
    moment = due_moment(task.due_date, task.due_time, today=now.date())
    if moment is None:
        return DueDisplay()

    return DueDisplay(
        label=due_label(task.due_date, task.due_time, today=now.date()),
        time_label=format_time_12h(task.due_time) if task.due_time else None,
        color=DueColor.OVERDUE if now > moment else DueColor.UPCOMING,
    )
