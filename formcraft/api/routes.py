"""
FastAPI routes for the FormCraft backend.

Endpoints:
- GET    /health                                  health check
- GET    /templates                               list system form templates
- GET    /templates/{slot_id}                     build a form from a template
- POST   /builder/sessions                        start editing a form
- GET    /builder/sessions/{id}                   current form and layout
- POST   /builder/sessions/{id}/fields            add a field
- PATCH  /builder/sessions/{id}/fields/{field_id} update a field
- DELETE /builder/sessions/{id}/fields/{field_id} remove a field
- POST   /builder/sessions/{id}/drop              drop a palette item or field
- PATCH  /builder/sessions/{id}/settings          change form settings
- POST   /builder/sessions/{id}/steps/derive      rebuild wizard steps
- POST   /builder/sessions/{id}/actions           apply a schema-edit action
- POST   /builder/sessions/{id}/save              save the form
- POST   /fill/sessions                           start filling a form
- GET    /fill/sessions/{id}                      current fill state
- PUT    /fill/sessions/{id}/values/{field_id}    set a value
- POST   /fill/sessions/{id}/blur/{field_id}      validate one field
- POST   /fill/sessions/{id}/next | previous      wizard navigation
- POST   /fill/sessions/{id}/submit               validate and submit
- DELETE /sessions/{id}                           discard a session
- GET    /forms                                   saved forms
- GET    /forms/{form_id}/submissions             submissions of a form
- POST   /submissions/{id}/approvals              approve or reject a submission
- GET    /events                                  events from approved event requests
"""

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ValidationError

from formcraft.core.actions import FormAction, apply_form_action, parse_form_action
from formcraft.core.builder import FormBuilder
from formcraft.core.form_state import FormFillSession, InvalidTransitionError
from formcraft.core.reorder import DropIntent
from formcraft.core.schema import FieldType, FormSchema, Submission
from formcraft.core.session import FormRegistry, Session, SessionKind, SessionStore
from formcraft.core.templates import TemplateNotFoundError, get_template, list_templates

logger = logging.getLogger(__name__)

router = APIRouter()

# These will be injected by the app factory
_session_store: SessionStore | None = None
_registry: FormRegistry | None = None


def configure_routes(session_store: SessionStore, registry: FormRegistry):
    """Inject the session store and form registry into the routes module.

    Called by the app factory during startup.
    """
    global _session_store, _registry
    _session_store = session_store
    _registry = registry


# --- Request / Response Models ---


class CreateBuilderRequest(BaseModel):
    """Start from a schema, a template slot, or a blank form."""

    form: dict[str, Any] | None = None
    template: str | None = None
    created_by: str = ""


class AddFieldRequest(BaseModel):
    type: FieldType
    index: int | None = None


class UpdateFieldRequest(BaseModel):
    updates: dict[str, Any]


class SettingsRequest(BaseModel):
    settings: dict[str, Any]


class ActionRequest(BaseModel):
    """Either raw assistant text containing a [FORM_ACTION] block, or the action itself."""

    content: str | None = None
    action: FormAction | None = None


class BuilderResponse(BaseModel):
    session_id: str
    form: dict[str, Any]
    layout: dict[str, Any]
    selected_field_id: str | None = None
    result: dict[str, Any] | None = None


class CreateFillRequest(BaseModel):
    form_id: str | None = None
    form: dict[str, Any] | None = None


class SetValueRequest(BaseModel):
    value: Any = None


class SubmitRequest(BaseModel):
    submitted_by: str | None = None


class ApprovalRequest(BaseModel):
    approver_id: str
    approved: bool


class FillResponse(BaseModel):
    session_id: str
    status: str
    step_index: int
    step_count: int
    field_ids: list[str]
    values: dict[str, Any]
    errors: dict[str, str]
    payload: dict[str, Any] | None = None
    submission_id: str | None = None
    submission_status: str | None = None


# --- Helpers ---


def _store() -> SessionStore:
    if _session_store is None or _registry is None:
        raise HTTPException(status_code=500, detail="Server not properly configured")
    return _session_store


def _get_session(session_id: str, kind: SessionKind) -> Session:
    session = _store().get_session(session_id, kind=kind)
    if session is None:
        raise HTTPException(status_code=404, detail=f"{kind.value.capitalize()} session '{session_id}' not found")
    return session


def _validation_error(e: ValidationError | ValueError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(e))


def _builder_response(session_id: str, builder: FormBuilder, result: dict | None = None) -> BuilderResponse:
    return BuilderResponse(
        session_id=session_id,
        form=builder.to_schema().to_dict(),
        layout=builder.layout().model_dump(mode="json", by_alias=True),
        selected_field_id=builder.selected_field_id,
        result=result,
    )


def _fill_response(session_id: str, fill: FormFillSession, submission: Submission | None = None) -> FillResponse:
    return FillResponse(
        session_id=session_id,
        status=fill.status.value,
        step_index=fill.step_index,
        step_count=fill.step_count,
        field_ids=[f.id for f in fill.get_fields_for_step()],
        values=fill.values,
        errors=fill.errors,
        payload=fill.payload,
        submission_id=submission.id if submission else None,
        submission_status=submission.status.value if submission else None,
    )


# --- Templates ---


@router.get("/templates")
async def templates():
    """List system form templates."""
    return {"templates": list_templates()}


@router.get("/templates/{slot_id}")
async def template(slot_id: str, created_by: str = ""):
    """Build a fresh form from the template for a slot."""
    try:
        return get_template(slot_id, created_by).to_dict()
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# --- Builder ---


@router.post("/builder/sessions", response_model=BuilderResponse)
async def create_builder(request: CreateBuilderRequest):
    """Start a builder session from a schema, a template or a blank form."""
    store = _store()
    try:
        if request.form is not None:
            schema = FormSchema.model_validate(request.form)
        elif request.template:
            schema = get_template(request.template, request.created_by)
        else:
            schema = FormSchema(created_by=request.created_by)
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValidationError as e:
        raise _validation_error(e)

    builder = FormBuilder(schema, on_save=_registry.save_form)
    session_id, _ = store.create_session(builder)
    logger.info("Builder session %s started for form %s", session_id, schema.id)
    return _builder_response(session_id, builder)


@router.get("/builder/sessions/{session_id}", response_model=BuilderResponse)
async def get_builder(session_id: str):
    builder = _get_session(session_id, SessionKind.BUILDER).state
    return _builder_response(session_id, builder)


@router.post("/builder/sessions/{session_id}/fields", response_model=BuilderResponse)
async def add_field(session_id: str, request: AddFieldRequest):
    builder = _get_session(session_id, SessionKind.BUILDER).state
    with _store().lock:
        field = builder.create_field(request.type, request.index)
    return _builder_response(session_id, builder, {"field_id": field.id})


@router.patch("/builder/sessions/{session_id}/fields/{field_id}", response_model=BuilderResponse)
async def update_field(session_id: str, field_id: str, request: UpdateFieldRequest):
    """Partially update a field. Unknown ids leave the form unchanged."""
    builder = _get_session(session_id, SessionKind.BUILDER).state
    try:
        with _store().lock:
            updated = builder.update_field(field_id, request.updates)
    except ValidationError as e:
        raise _validation_error(e)
    return _builder_response(session_id, builder, {"updated": updated is not None})


@router.delete("/builder/sessions/{session_id}/fields/{field_id}", response_model=BuilderResponse)
async def remove_field(session_id: str, field_id: str):
    builder = _get_session(session_id, SessionKind.BUILDER).state
    with _store().lock:
        removed = builder.remove_field(field_id)
    return _builder_response(session_id, builder, {"removed": removed})


@router.post("/builder/sessions/{session_id}/drop", response_model=BuilderResponse)
async def drop(session_id: str, intent: DropIntent):
    """Move an existing field or insert a palette type at the drop index."""
    builder = _get_session(session_id, SessionKind.BUILDER).state
    with _store().lock:
        created = builder.handle_drop(intent)
    return _builder_response(session_id, builder, {"field_id": created.id if created else None})


@router.patch("/builder/sessions/{session_id}/settings", response_model=BuilderResponse)
async def update_settings(session_id: str, request: SettingsRequest):
    builder = _get_session(session_id, SessionKind.BUILDER).state
    try:
        with _store().lock:
            builder.update_settings(**request.settings)
    except (ValidationError, ValueError) as e:
        raise _validation_error(e)
    return _builder_response(session_id, builder)


@router.post("/builder/sessions/{session_id}/steps/derive", response_model=BuilderResponse)
async def derive_steps(session_id: str):
    builder = _get_session(session_id, SessionKind.BUILDER).state
    with _store().lock:
        steps = builder.derive_steps()
    return _builder_response(session_id, builder, {"step_count": len(steps)})


@router.post("/builder/sessions/{session_id}/actions", response_model=BuilderResponse)
async def apply_action(session_id: str, request: ActionRequest):
    """Apply a schema-edit action through the builder commands."""
    builder = _get_session(session_id, SessionKind.BUILDER).state
    action = request.action
    text = None
    if action is None and request.content is not None:
        text, action = parse_form_action(request.content)
    if action is None:
        return _builder_response(session_id, builder, {"text": text, "applied": None})

    with _store().lock:
        applied = apply_form_action(builder, action)
    return _builder_response(session_id, builder, {"text": text, "applied": applied.model_dump()})


@router.post("/builder/sessions/{session_id}/save", response_model=BuilderResponse)
async def save_form(session_id: str):
    """Save the form being edited. This is the only way a form is saved."""
    builder = _get_session(session_id, SessionKind.BUILDER).state
    try:
        with _store().lock:
            schema = builder.save()
    except Exception as e:
        logger.error("Error saving form: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error saving form: {str(e)}")
    return _builder_response(session_id, builder, {"form_id": schema.id})


# --- Filler ---


@router.post("/fill/sessions", response_model=FillResponse)
async def create_fill(request: CreateFillRequest):
    """Start filling a saved form (by id) or an inline schema."""
    store = _store()
    if request.form_id:
        schema = _registry.get_form(request.form_id)
        if schema is None:
            raise HTTPException(status_code=404, detail=f"Form '{request.form_id}' not found")
    elif request.form is not None:
        try:
            schema = FormSchema.model_validate(request.form)
        except ValidationError as e:
            raise _validation_error(e)
    else:
        raise HTTPException(status_code=400, detail="Either form_id or form is required")

    fill = FormFillSession(schema)
    session_id, _ = store.create_session(fill)
    logger.info("Fill session %s started for form %s", session_id, schema.id)
    return _fill_response(session_id, fill)


@router.get("/fill/sessions/{session_id}", response_model=FillResponse)
async def get_fill(session_id: str):
    fill = _get_session(session_id, SessionKind.FILL).state
    return _fill_response(session_id, fill)


@router.put("/fill/sessions/{session_id}/values/{field_id}", response_model=FillResponse)
async def set_value(session_id: str, field_id: str, request: SetValueRequest):
    fill = _get_session(session_id, SessionKind.FILL).state
    try:
        with _store().lock:
            fill.set_value(field_id, request.value)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _fill_response(session_id, fill)


@router.post("/fill/sessions/{session_id}/blur/{field_id}", response_model=FillResponse)
async def blur(session_id: str, field_id: str):
    fill = _get_session(session_id, SessionKind.FILL).state
    try:
        with _store().lock:
            fill.blur(field_id)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _fill_response(session_id, fill)


@router.post("/fill/sessions/{session_id}/next", response_model=FillResponse)
async def next_step(session_id: str):
    fill = _get_session(session_id, SessionKind.FILL).state
    try:
        with _store().lock:
            fill.next_step()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _fill_response(session_id, fill)


@router.post("/fill/sessions/{session_id}/previous", response_model=FillResponse)
async def previous_step(session_id: str):
    fill = _get_session(session_id, SessionKind.FILL).state
    try:
        with _store().lock:
            fill.previous_step()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _fill_response(session_id, fill)


@router.post("/fill/sessions/{session_id}/submit", response_model=FillResponse)
async def submit(session_id: str, request: SubmitRequest | None = None):
    """Validate every visible field and record the submission if clean."""
    fill = _get_session(session_id, SessionKind.FILL).state
    submitted_by = request.submitted_by if request else None
    recorded = []

    def sink(payload: dict[str, Any]) -> None:
        recorded.append(_registry.record_submission(fill.schema, payload, submitted_by))

    try:
        with _store().lock:
            fill.submit(sink)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error("Error submitting form: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error submitting form: {str(e)}")

    return _fill_response(session_id, fill, recorded[0] if recorded else None)


# --- Sessions, forms, health ---


@router.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    """Discard a builder or fill session."""
    deleted = _store().delete_session(session_id)
    return {
        "success": deleted,
        "message": "Session deleted" if deleted else "Session not found",
    }


@router.get("/forms")
async def list_forms():
    _store()
    return {
        "forms": [
            {"id": f.id, "title": f.title, "field_count": len(f.fields), "updated_at": f.updated_at}
            for f in _registry.list_forms()
        ]
    }


@router.get("/forms/{form_id}/submissions")
async def list_submissions(form_id: str):
    _store()
    if not _registry.knows_form(form_id):
        raise HTTPException(status_code=404, detail=f"Form '{form_id}' not found")
    return {"submissions": [s.to_dict() for s in _registry.list_submissions(form_id)]}


@router.post("/submissions/{submission_id}/approvals")
async def approve_submission(submission_id: str, request: ApprovalRequest):
    """Record an approver's decision on a pending submission."""
    _store()
    try:
        submission = _registry.record_approval(submission_id, request.approver_id, request.approved)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if submission is None:
        raise HTTPException(status_code=404, detail=f"Submission '{submission_id}' not found")
    return submission.to_dict()


@router.get("/events")
async def list_events():
    """Calendar events created from approved event requests."""
    _store()
    return {"events": [e.to_dict() for e in _registry.list_events()]}


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    session_count = _session_store.count() if _session_store else 0
    return {
        "status": "healthy",
        "active_sessions": session_count,
    }
