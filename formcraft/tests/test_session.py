"""
Unit tests for the in-memory session store and form registry.

Tests cover:
- Session creation with generated and custom ids
- Kind detection and kind-filtered lookup
- Expiry on access and bulk cleanup
- Saved forms and submissions, including inline forms
- Approval decisions and the events they create
"""

import time

import pytest

from formcraft.core.builder import FormBuilder
from formcraft.core.form_state import FormFillSession
from formcraft.core.schema import FormSchema, SubmissionStatus
from formcraft.core.session import FormRegistry, SessionKind, SessionStore


# =============================================================
# Test: SessionStore
# =============================================================


class TestSessionStore:

    def test_create_and_get(self):
        store = SessionStore()
        session_id, session = store.create_session(FormBuilder())
        assert store.get_session(session_id) is session
        assert session.kind == SessionKind.BUILDER

    def test_custom_id(self):
        store = SessionStore()
        session_id, _ = store.create_session(FormBuilder(), session_id="mine")
        assert session_id == "mine"
        assert store.list_session_ids() == ["mine"]

    def test_fill_kind(self):
        store = SessionStore()
        session_id, session = store.create_session(FormFillSession(FormSchema()))
        assert session.kind == SessionKind.FILL
        assert store.get_session(session_id, kind=SessionKind.FILL) is session

    def test_kind_mismatch(self):
        store = SessionStore()
        session_id, _ = store.create_session(FormBuilder())
        assert store.get_session(session_id, kind=SessionKind.FILL) is None
        assert store.count() == 1

    def test_unknown_session(self):
        assert SessionStore().get_session("nope") is None

    def test_delete(self):
        store = SessionStore()
        session_id, _ = store.create_session(FormBuilder())
        assert store.delete_session(session_id) is True
        assert store.delete_session(session_id) is False
        assert store.count() == 0

    def test_expired_session_removed_on_access(self):
        store = SessionStore(timeout_seconds=60)
        session_id, session = store.create_session(FormBuilder())
        session.last_accessed_at = time.time() - 120
        assert store.get_session(session_id) is None
        assert store.count() == 0

    def test_access_refreshes(self):
        store = SessionStore(timeout_seconds=60)
        session_id, session = store.create_session(FormBuilder())
        session.last_accessed_at = time.time() - 30
        store.get_session(session_id)
        assert session.is_expired(60) is False
        assert time.time() - session.last_accessed_at < 5

    def test_cleanup_expired(self):
        store = SessionStore(timeout_seconds=60)
        _, old = store.create_session(FormBuilder())
        fresh_id, _ = store.create_session(FormBuilder())
        old.last_accessed_at = time.time() - 120
        assert store.cleanup_expired() == 1
        assert store.list_session_ids() == [fresh_id]


# =============================================================
# Test: FormRegistry
# =============================================================


class TestFormRegistry:

    def test_save_and_get(self):
        registry = FormRegistry()
        form = FormSchema(title="Survey")
        registry.save_form(form)
        assert registry.get_form(form.id) is form
        assert registry.list_forms() == [form]

    def test_save_replaces(self):
        registry = FormRegistry()
        form = FormSchema(title="Survey")
        registry.save_form(form)
        renamed = form.model_copy(update={"title": "Renamed"})
        registry.save_form(renamed)
        assert registry.get_form(form.id).title == "Renamed"
        assert len(registry.list_forms()) == 1

    def test_missing_form(self):
        assert FormRegistry().get_form("nope") is None

    def test_builder_save_target(self):
        registry = FormRegistry()
        builder = FormBuilder(on_save=registry.save_form)
        schema = builder.save()
        assert registry.get_form(schema.id) == schema

    def test_submissions_newest_first(self):
        registry = FormRegistry()
        f1, f2 = FormSchema(id="f1"), FormSchema(id="f2")
        first = registry.record_submission(f1, {"a": 1})
        registry.record_submission(f2, {"a": 2})
        third = registry.record_submission(f1, {"a": 3}, submitted_by="ann")
        assert [s.id for s in registry.list_submissions("f1")] == [third.id, first.id]
        assert len(registry.list_submissions()) == 3
        assert third.submitted_by == "ann"

    def test_submitted_form_is_known_but_not_saved(self):
        registry = FormRegistry()
        registry.record_submission(FormSchema(id="inline"), {})
        assert registry.knows_form("inline") is True
        assert registry.get_form("inline") is None
        assert registry.knows_form("other") is False


class TestRegistryApprovals:

    @pytest.fixture
    def event_form(self) -> FormSchema:
        return FormSchema(
            id="ev_form",
            submission_type="event-request",
            approval_workflow={"approverIds": ["u1"]},
            fields=[{"id": "n", "type": "text", "targetKey": "name"}],
        )

    def test_event_created_when_approved(self, event_form):
        registry = FormRegistry()
        submission = registry.record_submission(event_form, {"n": "Fair"})
        assert registry.list_events() == []

        updated = registry.record_approval(submission.id, "u1", True)
        assert updated.event_id == f"ev_{submission.id}"
        assert registry.get_submission(submission.id) == updated
        assert [e.name for e in registry.list_events()] == ["Fair"]

    def test_rejection_creates_no_event(self, event_form):
        registry = FormRegistry()
        submission = registry.record_submission(event_form, {"n": "Fair"})
        updated = registry.record_approval(submission.id, "u1", False)
        assert updated.status == SubmissionStatus.REJECTED
        assert updated.event_id is None
        assert registry.list_events() == []

    def test_general_form_without_workflow(self):
        registry = FormRegistry()
        submission = registry.record_submission(FormSchema(), {"a": 1})
        assert submission.status == SubmissionStatus.APPROVED
        assert submission.event_id is None
        assert registry.list_events() == []

    def test_unknown_submission(self):
        assert FormRegistry().record_approval("sub_missing", "u1", True) is None

    def test_bad_approver_leaves_submission(self, event_form):
        registry = FormRegistry()
        submission = registry.record_submission(event_form, {})
        with pytest.raises(ValueError):
            registry.record_approval(submission.id, "u2", True)
        assert registry.get_submission(submission.id) == submission
