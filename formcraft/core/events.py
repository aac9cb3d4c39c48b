"""
Calendar events from event-request submissions.

Fields of an event-request form carry a `target_key` naming the event
property they feed (name, date, time, endTime, location, description,
owner). Once a submission is approved, its values are read through those
keys into a CalendarEvent.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import Field

from formcraft.core.schema import (
    CamelModel,
    FormSchema,
    Submission,
    SubmissionStatus,
    SubmissionType,
)
from formcraft.core.utils import to_text

logger = logging.getLogger(__name__)


class CalendarEvent(CamelModel):
    """Event created from an approved event request."""

    id: str
    name: str
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = ""
    end_time: str = ""
    location: str = "TBD"
    description: str = ""
    owner: str = "TBD"
    creator: str | None = None
    watchers: list[str] = Field(default_factory=list)


def event_id_for(submission: Submission) -> str:
    return f"ev_{submission.id}"


def _target_value(form: FormSchema, submission: Submission, key: str) -> Any:
    for field in form.fields:
        if field.target_key == key:
            return submission.data.get(field.id)
    return None


def submission_to_event(form: FormSchema, submission: Submission) -> CalendarEvent | None:
    """Map an approved event-request submission onto a calendar event.

    Blank values fall back to defaults: "Untitled event", today's UTC
    date, "TBD" for location, and the submitter (or "TBD") as owner. The
    start time is read from the "time" key, or "startTime" when no field
    targets "time".

    Returns:
        The event, or None for other submission types and for
        submissions that are not approved.
    """
    if form.submission_type != SubmissionType.EVENT_REQUEST:
        return None
    if submission.status != SubmissionStatus.APPROVED:
        return None

    def text(key: str) -> str:
        return to_text(_target_value(form, submission, key)).strip()

    event = CalendarEvent(
        id=event_id_for(submission),
        name=text("name") or "Untitled event",
        date=text("date") or datetime.now(timezone.utc).date().isoformat(),
        time=text("time") or text("startTime"),
        end_time=text("endTime"),
        location=text("location") or "TBD",
        description=text("description"),
        owner=text("owner") or submission.submitted_by or "TBD",
        creator=submission.submitted_by,
    )
    logger.info("Created event %s from submission %s", event.id, submission.id)
    return event
