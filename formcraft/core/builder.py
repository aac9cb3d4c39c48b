"""
Form builder command processor.

`FormBuilder` owns the field list of a form being edited and is the only
way to change it: every command replaces the whole list, so there is no
partially applied state between commands. Rendering code re-derives the
layout from the current list after each command.

Saving is explicit. `save()` hands the current schema to the host's
`on_save` callback; no command saves on its own.

Drag feedback (what is being dragged, which drop zone is hovered) lives
in `DragState`, which never touches the field list.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from formcraft.core import reorder
from formcraft.core.layout import FieldGrouping, LayoutView, build_layout, group_fields_by_section
from formcraft.core.reorder import Direction, DropIntent, DropIntentKind
from formcraft.core.schema import (
    FieldType,
    FormField,
    FormSchema,
    Step,
    create_field,
    create_form,
    normalize_keys,
)
from formcraft.core.steps import derive_steps

logger = logging.getLogger(__name__)

# Form-level settings that `update_settings` may change
SETTINGS_KEYS = frozenset({
    "title",
    "description",
    "layout",
    "form_width",
    "header_image",
    "side_image",
    "show_title",
    "submission_type",
    "approval_workflow",
})


class DragState:
    """Transient drag-and-drop feedback for the builder canvas.

    Pure presentation state. `end()` resets everything whether or not a
    drop happened.
    """

    def __init__(self):
        self.dragging_type: FieldType | None = None
        self.dragging_field_id: str | None = None
        self.drop_zone_hover: int | None = None
        self.drag_over: bool = False

    def start_palette_drag(self, field_type: FieldType | str) -> None:
        self.dragging_type = FieldType(field_type)

    def start_field_drag(self, field_id: str) -> None:
        self.dragging_field_id = field_id

    def over(self) -> None:
        self.drag_over = True

    def enter_drop_zone(self, index: int) -> None:
        self.drop_zone_hover = index

    def leave_drop_zone(self) -> None:
        self.drop_zone_hover = None

    def leave_canvas(self) -> None:
        self.drag_over = False
        self.drop_zone_hover = None

    def end(self) -> None:
        self.dragging_type = None
        self.dragging_field_id = None
        self.drop_zone_hover = None
        self.drag_over = False

    @property
    def active(self) -> bool:
        return self.dragging_type is not None or self.dragging_field_id is not None


class FormBuilder:
    """Edits one form through discrete commands.

    Args:
        schema: The form to edit. A blank form is created when omitted.
        on_save: Host callback invoked by `save()` with the current schema.
    """

    def __init__(
        self,
        schema: FormSchema | None = None,
        on_save: Callable[[FormSchema], Any] | None = None,
    ):
        self._schema = schema if schema is not None else create_form()
        self.fields: list[FormField] = list(self._schema.fields)
        self.steps: list[Step] = list(self._schema.steps)
        self.selected_field_id: str | None = None
        self.drag = DragState()
        self.on_save = on_save

    # -----------------------------------------------------------------
    # Field commands
    # -----------------------------------------------------------------

    def create_field(self, field_type: FieldType | str, at_index: int | None = None) -> FormField:
        """Insert a new field with type defaults and select it.

        `at_index` is clamped to the list bounds; None appends.
        """
        field = create_field(field_type)
        self.fields = reorder.insert_field(self.fields, field, at_index)
        self.selected_field_id = field.id
        logger.debug("Added %s field %s at %s", field.type.value, field.id, at_index)
        return field

    def update_field(self, field_id: str, updates: dict[str, Any]) -> FormField | None:
        """Apply a partial update to a field.

        Keys may be snake_case or camelCase. The id cannot be changed.

        Returns:
            The updated field, or None if no field has that id.

        Raises:
            pydantic.ValidationError: If the update produces an invalid field.
        """
        index = reorder.find_index(self.fields, field_id)
        if index == -1:
            logger.debug("update ignored, unknown field %s", field_id)
            return None

        merged = {**self.fields[index].model_dump(), **normalize_keys(FormField, updates)}
        merged["id"] = field_id
        updated = FormField.model_validate(merged)

        fields = list(self.fields)
        fields[index] = updated
        self.fields = fields
        return updated

    def remove_field(self, field_id: str) -> bool:
        """Remove a single field; a section's children stay in place.

        Returns:
            True if a field was removed.
        """
        before = len(self.fields)
        self.fields = reorder.remove_field(self.fields, field_id)
        if self.selected_field_id == field_id:
            self.selected_field_id = None
        return len(self.fields) < before

    def move_field(self, field_id: str, target_index: int) -> None:
        """Move a field, or a section with its block, to a gap index."""
        self.fields = reorder.move_field_to_index(self.fields, field_id, target_index)

    def nudge_field(self, field_id: str, direction: Direction | str) -> None:
        """Swap a field with its neighbour."""
        self.fields = reorder.move_field(self.fields, field_id, direction)

    def set_field_col_span(self, field_id: str, col_span: int) -> FormField | None:
        return self.update_field(field_id, {"col_span": col_span})

    def select(self, field_id: str | None) -> None:
        self.selected_field_id = field_id

    @property
    def selected_field(self) -> FormField | None:
        if self.selected_field_id is None:
            return None
        index = reorder.find_index(self.fields, self.selected_field_id)
        return self.fields[index] if index != -1 else None

    # -----------------------------------------------------------------
    # Drag and drop
    # -----------------------------------------------------------------

    def handle_drop(self, intent: DropIntent) -> FormField | None:
        """Dispatch a drop to the move or insert command.

        A drop without an index lands at the end of the list. Drop
        feedback is cleared either way.

        Returns:
            The newly created field for an insert, otherwise None.
        """
        index = intent.index if intent.index is not None else len(self.fields)
        created = None
        match intent.kind:
            case DropIntentKind.MOVE:
                self.move_field(intent.field_id, index)
            case DropIntentKind.INSERT:
                created = self.create_field(intent.field_type, index)
            case None:
                logger.debug("Ignoring drop without field id or type")
        self.drag.end()
        return created

    # -----------------------------------------------------------------
    # Derived views
    # -----------------------------------------------------------------

    def group(self) -> FieldGrouping:
        return group_fields_by_section(self.fields)

    def layout(self) -> LayoutView:
        return build_layout(self.fields)

    # -----------------------------------------------------------------
    # Steps and settings
    # -----------------------------------------------------------------

    def derive_steps(self) -> list[Step]:
        """Rebuild the wizard steps from the current sections.

        Steps are not kept in sync automatically; call this again after
        structural edits.
        """
        self.steps = derive_steps(self.fields)
        logger.debug("Derived %d steps", len(self.steps))
        return self.steps

    def set_steps(self, steps: list[Step]) -> None:
        self.steps = list(steps)

    def clear_steps(self) -> None:
        """Turn the form back into a single page."""
        self.steps = []

    def update_settings(self, **changes: Any) -> FormSchema:
        """Change form-level settings such as title, layout or width.

        Raises:
            ValueError: If a key is not a form setting.
            pydantic.ValidationError: If a value is invalid.
        """
        changes = normalize_keys(FormSchema, changes)
        unknown = set(changes) - SETTINGS_KEYS
        if unknown:
            raise ValueError(f"Unknown form settings: {sorted(unknown)}")
        self._schema = FormSchema.model_validate({**self._schema.model_dump(), **changes})
        return self._schema

    # -----------------------------------------------------------------
    # Output
    # -----------------------------------------------------------------

    def to_schema(self) -> FormSchema:
        """Snapshot the form being edited as a FormSchema."""
        return FormSchema.model_validate({
            **self._schema.model_dump(),
            "title": self._schema.title.strip() or "Untitled form",
            "description": self._schema.description.strip(),
            "fields": self.fields,
            "steps": self.steps,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })

    def save(self) -> FormSchema:
        """Hand the current schema to the host's save callback."""
        schema = self.to_schema()
        self._schema = schema
        if self.on_save is not None:
            self.on_save(schema)
        logger.info("Saved form %s (%d fields, %d steps)", schema.id, len(schema.fields), len(schema.steps))
        return schema
