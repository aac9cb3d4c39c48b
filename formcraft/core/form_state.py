"""
Fill-time state for a published form.

Tracks the values entered so far, per-field errors and touched flags,
and the wizard position. The session is a small state machine:

    Editing(step) --next-->     Editing(step + 1)   (no validation gate)
    Editing(step) --previous--> Editing(step - 1)
    Editing(last) --submit-->   Submitted           (only with zero errors)

Submitting validates every visible field of every step, not just the
current one. On failure the session stays on the last step with the
errors populated for display.
"""

import logging
from enum import Enum
from typing import Any, Callable

from formcraft.core.schema import STRUCTURAL_TYPES, FormField, FormSchema
from formcraft.core.submission import assemble_submission
from formcraft.core.validation import validate_field, validate_fields
from formcraft.core.visibility import get_visible_fields

logger = logging.getLogger(__name__)


class FillStatus(str, Enum):
    EDITING = "editing"
    SUBMITTED = "submitted"


class InvalidTransitionError(Exception):
    """Raised when a navigation or submit is not allowed in the current state."""

    def __init__(self, action: str, message: str):
        self.action = action
        self.message = message
        super().__init__(f"Cannot {action}: {message}")


class FormFillSession:
    """Manages the state of a single form-filling session.

    Args:
        schema: The published form. Its `steps` decide the wizard pages;
            no steps means one implicit page holding every field.
    """

    def __init__(self, schema: FormSchema):
        self.schema = schema
        self.values: dict[str, Any] = {}
        self.errors: dict[str, str] = {}
        self.touched: set[str] = set()
        self.step_index: int = 0
        self.status: FillStatus = FillStatus.EDITING
        self.payload: dict[str, Any] | None = None

    # -----------------------------------------------------------------
    # Field resolution
    # -----------------------------------------------------------------

    @property
    def is_multi_step(self) -> bool:
        return len(self.schema.steps) > 0

    @property
    def step_count(self) -> int:
        return len(self.schema.steps) if self.is_multi_step else 1

    @property
    def is_last_step(self) -> bool:
        return self.step_index == self.step_count - 1

    def get_visible_fields(self) -> list[FormField]:
        """All fields whose visibility rules pass, across every step."""
        return get_visible_fields(self.schema.fields, self.values)

    def get_fields_for_step(self, step_index: int | None = None) -> list[FormField]:
        """Visible fields of one step (the current one by default).

        A step without field ids shows every visible field.
        """
        visible = self.get_visible_fields()
        if not self.is_multi_step:
            return visible
        index = self.step_index if step_index is None else step_index
        step = self.schema.steps[index]
        if not step.field_ids:
            return visible
        ids = set(step.field_ids)
        return [f for f in visible if f.id in ids]

    def get_input_fields(self, step_index: int | None = None) -> list[FormField]:
        """Fields of a step that take input, leaving out sections and tables."""
        return [f for f in self.get_fields_for_step(step_index) if f.type not in STRUCTURAL_TYPES]

    def get_submittable_fields(self) -> list[FormField]:
        """Input fields that are visible in at least one step, in form order."""
        seen: set[str] = set()
        for index in range(self.step_count):
            seen.update(f.id for f in self.get_input_fields(index))
        return [f for f in self.schema.fields if f.id in seen]

    # -----------------------------------------------------------------
    # Value management
    # -----------------------------------------------------------------

    def set_value(self, field_id: str, value: Any) -> None:
        """Store a value; a touched field's error is cleared until next blur.

        Raises:
            ValueError: If the field_id does not exist in the schema.
        """
        self._require_field(field_id)
        self._require_editing("change a value")
        self.values[field_id] = value
        if field_id in self.touched:
            self.errors.pop(field_id, None)

    def get_value(self, field_id: str) -> Any:
        return self.values.get(field_id)

    def blur(self, field_id: str) -> str | None:
        """Mark a field touched and validate it on its own.

        Returns:
            The field's error message, or None.

        Raises:
            ValueError: If the field_id does not exist in the schema.
        """
        field = self._require_field(field_id)
        self.touched.add(field_id)
        error = validate_field(field, self.values.get(field_id))
        if error is None:
            self.errors.pop(field_id, None)
        else:
            self.errors[field_id] = error
        return error

    # -----------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------

    def next_step(self) -> int:
        """Advance one step. Values are not validated here."""
        self._require_editing("go to the next step")
        if self.step_index >= self.step_count - 1:
            raise InvalidTransitionError("go to the next step", "already on the last step")
        self.step_index += 1
        return self.step_index

    def previous_step(self) -> int:
        self._require_editing("go to the previous step")
        if self.step_index <= 0:
            raise InvalidTransitionError("go to the previous step", "already on the first step")
        self.step_index -= 1
        return self.step_index

    def submit(self, sink: Callable[[dict[str, Any]], Any] | None = None) -> dict[str, Any] | None:
        """Validate all visible fields and, if clean, assemble the payload.

        Args:
            sink: Host callback that receives the payload on success.

        Returns:
            The assembled payload, or None when validation failed (see
            `errors`).

        Raises:
            InvalidTransitionError: If not on the last step or already submitted.
            Exception: Whatever the sink raises; the session stays editable.
        """
        self._require_editing("submit")
        if not self.is_last_step:
            raise InvalidTransitionError("submit", "only allowed from the last step")

        fields = self.get_submittable_fields()
        self.touched = {f.id for f in fields}
        self.errors = validate_fields(fields, self.values)
        if self.errors:
            logger.info(
                "Submit blocked for form %s: %d invalid fields",
                self.schema.id, len(self.errors),
            )
            return None

        payload = assemble_submission(self.schema.fields, self.values)
        # A failing sink leaves the session editable so the submit can be retried
        if sink is not None:
            sink(payload)
        self.payload = payload
        self.status = FillStatus.SUBMITTED
        logger.info("Form %s submitted with %d values", self.schema.id, len(payload))
        return payload

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _require_field(self, field_id: str) -> FormField:
        field = self.schema.get_field(field_id)
        if field is None:
            raise ValueError(f"Field '{field_id}' does not exist in the schema")
        return field

    def _require_editing(self, action: str) -> None:
        if self.status == FillStatus.SUBMITTED:
            raise InvalidTransitionError(action, "form already submitted")
