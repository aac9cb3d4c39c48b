"""
Schema-edit actions from assistant-style callers.

An assistant (or any other automated caller) proposes edits as a
`FormAction` envelope. The envelope is never applied to the field list
directly: `apply_form_action` replays it through the builder's
create/update/remove commands, so the same invariants hold as for edits
made by hand.

Text replies may embed the envelope as
``[FORM_ACTION]{...json...}[/FORM_ACTION]``; `parse_form_action` pulls it out.
"""

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from formcraft.core.builder import FormBuilder
from formcraft.core.schema import CamelModel, FieldType

logger = logging.getLogger(__name__)

_ACTION_BLOCK = re.compile(r"\[FORM_ACTION\]([\s\S]*?)\[/FORM_ACTION\]")

_VALID_TYPES = {t.value for t in FieldType}

# Per-field keys an assistant is allowed to set when adding a field
_ADD_FIELD_KEYS = ("label", "required", "placeholder", "options", "description")


# --- Action Models ---


class FieldUpdate(CamelModel):
    """Partial update for the field at `index` in the pre-action list."""

    index: int
    updates: dict[str, Any] = Field(default_factory=dict)


class FormAction(CamelModel):
    """A batch of schema edits.

    Indices in `update_fields` and `delete_field_indices` refer to the
    field list as it was before the action, so additions made by the
    same action never shift them.
    """

    form: dict[str, Any] | None = Field(
        default=None,
        description="Form-level settings to change (title, description, layout, formWidth, showTitle)",
    )
    add_fields: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Fields to append; each needs a valid 'type'",
    )
    update_fields: list[FieldUpdate] = Field(default_factory=list)
    delete_field_indices: list[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.form or self.add_fields or self.update_fields or self.delete_field_indices)


class AppliedAction(BaseModel):
    """What `apply_form_action` actually did."""

    added: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


# --- Parsing ---


def parse_form_action(content: str) -> tuple[str, FormAction | None]:
    """Split an assistant reply into display text and an optional action.

    Malformed JSON or an invalid envelope is logged and ignored.

    Returns:
        (text, action). `text` is the reply with the action block
        removed, or "Done." when nothing else remains.
    """
    match = _ACTION_BLOCK.search(content)
    if match is None:
        return content.strip() or "Done.", None

    text = _ACTION_BLOCK.sub("", content, count=1).strip() or "Done."
    try:
        action = FormAction.model_validate(json.loads(match.group(1).strip()))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning("Ignoring malformed form action: %s", e)
        return text, None

    return text, None if action.is_empty else action


# --- Application ---


def apply_form_action(builder: FormBuilder, action: FormAction) -> AppliedAction:
    """Replay an action through the builder's commands.

    Fields with an unknown type and indices outside the list are skipped
    rather than rejected, so one bad entry does not void the rest.
    """
    result = AppliedAction()
    snapshot = [f.id for f in builder.fields]

    if action.form:
        settings = {k: v for k, v in action.form.items() if v is not None}
        try:
            builder.update_settings(**settings)
        except (ValueError, ValidationError) as e:
            logger.warning("Skipping form settings from action: %s", e)
            result.skipped.append("form")

    for entry in action.add_fields:
        field_type = str(entry.get("type", ""))
        if field_type not in _VALID_TYPES:
            logger.warning("Skipping added field with unknown type %r", field_type)
            result.skipped.append(f"add:{field_type}")
            continue
        field = builder.create_field(field_type)
        overrides: dict[str, Any] = {k: entry[k] for k in _ADD_FIELD_KEYS if entry.get(k) is not None}
        overrides["label"] = entry.get("label") or "Untitled"
        overrides["required"] = bool(entry.get("required"))
        overrides["col_span"] = 2
        try:
            builder.update_field(field.id, overrides)
        except ValidationError as e:
            logger.warning("Skipping invalid added %s field: %s", field_type, e)
            builder.remove_field(field.id)
            result.skipped.append(f"add:{field_type}")
            continue
        result.added.append(field.id)

    for change in action.update_fields:
        if not 0 <= change.index < len(snapshot) or not change.updates:
            result.skipped.append(f"update:{change.index}")
            continue
        field_id = snapshot[change.index]
        try:
            if builder.update_field(field_id, change.updates) is not None:
                result.updated.append(field_id)
        except ValidationError as e:
            logger.warning("Skipping invalid update for field %s: %s", field_id, e)
            result.skipped.append(f"update:{change.index}")

    for index in action.delete_field_indices:
        if not 0 <= index < len(snapshot):
            result.skipped.append(f"delete:{index}")
            continue
        if builder.remove_field(snapshot[index]):
            result.removed.append(snapshot[index])

    logger.info(
        "Applied form action: %d added, %d updated, %d removed, %d skipped",
        len(result.added), len(result.updated), len(result.removed), len(result.skipped),
    )
    return result
