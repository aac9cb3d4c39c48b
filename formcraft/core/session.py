"""
In-memory session and form stores for the HTTP host.

A session holds either a FormBuilder (someone editing a form) or a
FormFillSession (someone filling one out). Sessions are created on
demand and cleaned up after a period of inactivity.

`FormRegistry` is the host side of the core's two callbacks: it receives
schemas from `FormBuilder.save()` and payloads from
`FormFillSession.submit()`, tracks approvals, and keeps everything in
memory only.
"""

import threading
import time
import uuid
from enum import Enum
from typing import Any

from formcraft.core.builder import FormBuilder
from formcraft.core.events import CalendarEvent, submission_to_event
from formcraft.core.form_state import FormFillSession
from formcraft.core.schema import FormSchema, Submission
from formcraft.core.submission import apply_approval, build_submission


# Idle sessions are dropped after half an hour
DEFAULT_SESSION_TIMEOUT_SECONDS = 1800


class SessionKind(str, Enum):
    BUILDER = "builder"
    FILL = "fill"


class Session:
    """One open builder or fill session and when it was last used."""

    def __init__(self, state: FormBuilder | FormFillSession):
        self.state = state
        self.kind = SessionKind.BUILDER if isinstance(state, FormBuilder) else SessionKind.FILL
        self.created_at = time.time()
        self.last_accessed_at = self.created_at

    @property
    def idle_seconds(self) -> float:
        return time.time() - self.last_accessed_at

    def touch(self) -> None:
        self.last_accessed_at = time.time()

    def is_expired(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS) -> bool:
        return self.idle_seconds > timeout_seconds


class SessionStore:
    """Open sessions keyed by id, held in process memory.

    Every access goes through one re-entrant lock, which routes also
    hold while running a command so two requests never interleave on
    the same builder or filler.
    """

    def __init__(self, timeout_seconds: int = DEFAULT_SESSION_TIMEOUT_SECONDS):
        self._timeout_seconds = timeout_seconds
        self._by_id: dict[str, Session] = {}
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        """Lock to hold while running commands against a session's state."""
        return self._lock

    def create_session(
        self,
        state: FormBuilder | FormFillSession,
        session_id: str | None = None,
    ) -> tuple[str, Session]:
        """Open a session around a builder or filler.

        Args:
            state: The FormBuilder or FormFillSession to hold.
            session_id: Id to register under; a UUID4 when omitted.

        Returns:
            (session_id, session)
        """
        session_id = session_id or str(uuid.uuid4())
        session = Session(state)
        with self._lock:
            self._by_id[session_id] = session
        return session_id, session

    def get_session(self, session_id: str, kind: SessionKind | None = None) -> Session | None:
        """Look up a live session and mark it used.

        Returns None for unknown ids, for sessions idle past the timeout
        (which are dropped on the way) and for sessions of another kind.
        """
        with self._lock:
            session = self._by_id.get(session_id)
            if session is not None and session.is_expired(self._timeout_seconds):
                self._by_id.pop(session_id)
                session = None

        if session is None or (kind is not None and session.kind != kind):
            return None
        session.touch()
        return session

    def delete_session(self, session_id: str) -> bool:
        """Close a session. False if there was none."""
        with self._lock:
            return self._by_id.pop(session_id, None) is not None

    def cleanup_expired(self) -> int:
        """Drop every idle session and report how many went."""
        with self._lock:
            stale = [sid for sid, s in self._by_id.items() if s.is_expired(self._timeout_seconds)]
            for sid in stale:
                self._by_id.pop(sid)
        return len(stale)

    def count(self) -> int:
        with self._lock:
            return len(self._by_id)

    def list_session_ids(self) -> list[str]:
        with self._lock:
            return list(self._by_id)


class FormRegistry:
    """Saved forms, their submissions and the events they produce, kept in memory.

    A form filled from an inline schema is never saved, but the registry
    still remembers the schema it was submitted against so its
    submissions can be listed and approved.
    """

    def __init__(self):
        self._forms: dict[str, FormSchema] = {}
        self._submitted_forms: dict[str, FormSchema] = {}
        self._submissions: list[Submission] = []
        self._events: list[CalendarEvent] = []
        self._lock = threading.RLock()

    def save_form(self, schema: FormSchema) -> None:
        """`on_save` target for FormBuilder."""
        with self._lock:
            self._forms[schema.id] = schema

    def get_form(self, form_id: str) -> FormSchema | None:
        with self._lock:
            return self._forms.get(form_id)

    def list_forms(self) -> list[FormSchema]:
        with self._lock:
            return list(self._forms.values())

    def knows_form(self, form_id: str) -> bool:
        """True if the form was saved or has been submitted against."""
        with self._lock:
            return form_id in self._forms or form_id in self._submitted_forms

    def record_submission(
        self,
        form: FormSchema,
        data: dict[str, Any],
        submitted_by: str | None = None,
    ) -> Submission:
        """Store a submission; approval-free event requests create their event at once."""
        submission = build_submission(form, data, submitted_by)
        with self._lock:
            self._submitted_forms[form.id] = form
            submission = self._attach_event(form, submission)
            self._submissions.append(submission)
        return submission

    def record_approval(self, submission_id: str, approver_id: str, approved: bool) -> Submission | None:
        """Apply one approver's decision.

        Returns:
            The updated submission, or None if there is no such submission.

        Raises:
            ValueError: If the approver may not decide on it (see
                `apply_approval`).
        """
        with self._lock:
            for i, submission in enumerate(self._submissions):
                if submission.id == submission_id:
                    break
            else:
                return None
            updated = apply_approval(submission, approver_id, approved)
            form = self._submitted_forms.get(updated.form_id) or self._forms.get(updated.form_id)
            if form is not None:
                updated = self._attach_event(form, updated)
            self._submissions[i] = updated
        return updated

    def get_submission(self, submission_id: str) -> Submission | None:
        with self._lock:
            return next((s for s in self._submissions if s.id == submission_id), None)

    def list_submissions(self, form_id: str | None = None) -> list[Submission]:
        """Submissions, newest first, optionally for one form."""
        with self._lock:
            found = [s for s in self._submissions if form_id is None or s.form_id == form_id]
        return list(reversed(found))

    def list_events(self) -> list[CalendarEvent]:
        with self._lock:
            return list(self._events)

    def _attach_event(self, form: FormSchema, submission: Submission) -> Submission:
        event = submission_to_event(form, submission)
        if event is None:
            return submission
        self._events.append(event)
        return submission.model_copy(update={"event_id": event.id})
