"""
Form schema definition and validation models.

These Pydantic models define the contract between the form builder,
the form filler and the host application. The schema is the single
source of truth for field definitions, layout widths, validation rules,
visibility conditions and wizard steps.

Attribute names are snake_case in Python and camelCase on the wire
(``colSpan``, ``useAsStep``, ``fieldIds``...). Both spellings are
accepted when building a model.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from formcraft.core.utils import new_id


# --- Enums ---


class FieldType(str, Enum):
    """Supported form field types."""

    SECTION = "section"
    TEXT = "text"
    TEXTAREA = "textarea"
    EMAIL = "email"
    PHONE = "phone"
    NUMBER = "number"
    DATE = "date"
    DATETIME = "datetime"
    YESNO = "yesno"
    DROPDOWN = "dropdown"
    RADIO = "radio"
    CHECKLIST = "checklist"
    CHECKBOX = "checkbox"
    ATTACHMENT = "attachment"
    IMAGE = "image"
    SLIDER = "slider"
    SIGNATURE = "signature"
    HIDDEN = "hidden"
    TABLE = "table"
    PROFILES = "profiles"


class ConditionOperator(str, Enum):
    """Operators understood by the visibility evaluator.

    Rules may carry other operator strings; those fail open.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"


class FormLayout(str, Enum):
    """Page layout of the filled-out form."""

    DEFAULT = "default"
    HEADER_COVER = "header-cover"
    SPLIT = "split"


class FormWidth(str, Enum):
    """Maximum width of the form (narrow 480px, standard 768px, wide 1200px)."""

    NARROW = "narrow"
    STANDARD = "standard"
    WIDE = "wide"


class SubmissionType(str, Enum):
    """What a submission turns into once approved."""

    GENERAL = "general"
    EVENT_REQUEST = "event-request"


class SubmissionStatus(str, Enum):
    """Approval state of a submission.

    Forms without an approval workflow produce approved submissions
    straight away; the others start pending.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# Types whose values are picked from `options`
CHOICE_TYPES = frozenset({
    FieldType.DROPDOWN,
    FieldType.RADIO,
    FieldType.YESNO,
    FieldType.CHECKLIST,
})

# Types that span both columns when freshly created
FULL_WIDTH_TYPES = frozenset({FieldType.SECTION, FieldType.TEXTAREA})

# Types for which `required` is ignored
REQUIRED_EXEMPT_TYPES = frozenset({FieldType.SECTION, FieldType.HIDDEN})

# Types that are structure, not input; never validated at submit
STRUCTURAL_TYPES = frozenset({FieldType.SECTION, FieldType.TABLE})


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        """Dump as a JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# --- Field sub-models ---


class ConditionalRule(CamelModel):
    """Visibility rule: show the owning field only when the rule passes.

    An empty or null `field_id` means "no rule" and always passes.
    """

    field_id: str | None = Field(
        default="",
        description="The field whose current value is inspected",
    )
    operator: str | None = Field(
        default=ConditionOperator.EQUALS.value,
        description="One of the ConditionOperator values; None means equals, anything else fails open",
    )
    value: Any = Field(
        default="",
        description="Comparison value (case-insensitive, trimmed)",
    )


class FieldValidation(CamelModel):
    """Per-field validation settings."""

    max_length: int | None = Field(
        default=None,
        description="Maximum number of characters for text values",
    )
    min: float | None = Field(default=None, description="Slider minimum")
    max: float | None = Field(default=None, description="Slider maximum")
    step: float | None = Field(default=None, description="Slider increment")
    email: bool | None = None
    phone: bool | None = None


# --- Form Field ---


class FormField(CamelModel):
    """Definition of a single form element.

    Fields are immutable: every builder command produces new field
    instances rather than editing existing ones in place.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Identifier, unique within a form")
    type: FieldType = Field(..., description="The widget type for this field")
    label: str = ""
    required: bool = Field(
        default=False,
        description="Whether a value must be provided (ignored for section and hidden)",
    )
    placeholder: str = ""
    options: list[str] | None = Field(
        default=None,
        description="Ordered choices for dropdown, radio, yesno and checklist fields",
    )
    col_span: int = Field(
        default=1,
        ge=1,
        le=2,
        description="Width in the two-column grid",
    )
    validation: FieldValidation | None = None
    conditional: ConditionalRule | None = None
    target_key: str | None = Field(
        default=None,
        description="Event property this field feeds on event-request forms",
    )
    default_value: Any = Field(
        default=None,
        description="Value submitted for hidden fields when nothing else was set",
    )

    # Section-only attributes
    description: str | None = None
    section_background_color: str | None = None
    section_background_image: str | None = None
    use_as_step: bool | None = None


# --- Steps and schema ---


class Step(CamelModel):
    """A named group of field ids shown together in a multi-step form."""

    id: str
    title: str = ""
    field_ids: list[str] = Field(default_factory=list)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ApprovalWorkflow(CamelModel):
    """Who has to sign off a submission before it counts."""

    approver_ids: list[str] = Field(default_factory=list)
    type: str = Field(
        default="all",
        description="Only \"all\" is supported: every approver must approve",
    )


class FormSchema(CamelModel):
    """Top-level form definition.

    Validates field id uniqueness. Visibility rules that point at
    unknown fields are allowed here; they simply fail open when evaluated.
    """

    id: str = Field(default_factory=lambda: new_id("form"))
    title: str = "Untitled form"
    description: str = ""
    fields: list[FormField] = Field(default_factory=list)
    layout: FormLayout = FormLayout.DEFAULT
    form_width: FormWidth = FormWidth.STANDARD
    header_image: str = ""
    side_image: str = ""
    show_title: bool = True
    steps: list[Step] = Field(
        default_factory=list,
        description="Derived wizard steps; empty means a single page",
    )
    submission_type: SubmissionType = SubmissionType.GENERAL
    approval_workflow: ApprovalWorkflow | None = None
    created_by: str = ""
    created_at: str = Field(default_factory=_utc_now_iso)
    updated_at: str = Field(default_factory=_utc_now_iso)

    @model_validator(mode="after")
    def validate_unique_field_ids(self) -> "FormSchema":
        """Field ids must be unique within a form."""
        seen: set[str] = set()
        for f in self.fields:
            if f.id in seen:
                raise ValueError(f"Duplicate field ID: '{f.id}'")
            seen.add(f.id)
        return self

    def get_field(self, field_id: str) -> FormField | None:
        """Look up a field by its ID."""
        for f in self.fields:
            if f.id == field_id:
                return f
        return None

    @property
    def requires_approval(self) -> bool:
        return bool(self.approval_workflow and self.approval_workflow.approver_ids)


class Approval(CamelModel):
    """One approver's decision; `approved` stays None until they decide."""

    approver_id: str
    approved: bool | None = None
    at: str | None = None


class Submission(CamelModel):
    """A completed, assembled form response."""

    id: str = Field(default_factory=lambda: new_id("sub"))
    form_id: str
    data: dict[str, Any] = Field(default_factory=dict)
    submitted_by: str | None = None
    submitted_at: str = Field(default_factory=_utc_now_iso)
    status: SubmissionStatus = SubmissionStatus.APPROVED
    approvals: list[Approval] | None = None
    event_id: str | None = Field(
        default=None,
        description="Id of the calendar event created from an approved event request",
    )


# --- Factories ---


def _default_label(field_type: FieldType) -> str:
    if field_type == FieldType.HIDDEN:
        return "Hidden"
    if field_type == FieldType.SECTION:
        return "Section"
    return "Untitled field"


def create_field(field_type: FieldType | str, **overrides: Any) -> FormField:
    """Create a field with the defaults appropriate for its type.

    Choice types get placeholder options, text types an unset
    `maxLength`, sliders a 0-100 range and sections their styling
    attributes with `useAsStep` on. Sections and textareas span both
    columns. Any keyword (snake_case or camelCase) overrides a default.

    Raises:
        ValueError: If `field_type` is not a known field type.
    """
    field_type = FieldType(field_type)
    data: dict[str, Any] = {
        "id": new_id("f"),
        "type": field_type,
        "label": _default_label(field_type),
        "required": False,
        "placeholder": "",
    }

    if field_type in CHOICE_TYPES:
        data["options"] = (
            ["Yes", "No"] if field_type == FieldType.YESNO else ["Option 1", "Option 2"]
        )
    if field_type == FieldType.EMAIL:
        data["validation"] = {"email": True}
    if field_type == FieldType.PHONE:
        data["validation"] = {"phone": True}
    if field_type in {FieldType.TEXT, FieldType.TEXTAREA}:
        data["validation"] = {"max_length": None}
    if field_type == FieldType.SLIDER:
        data["validation"] = {"min": 0, "max": 100, "step": 1}
    if field_type == FieldType.SECTION:
        data.update(
            description="",
            section_background_color="",
            section_background_image="",
            use_as_step=True,
        )

    data["col_span"] = 2 if field_type in FULL_WIDTH_TYPES else 1
    data.update(normalize_keys(FormField, overrides))
    return FormField.model_validate(data)


def normalize_keys(model: type[BaseModel], updates: dict[str, Any]) -> dict[str, Any]:
    """Map camelCase keys of a partial update onto the model's attribute names.

    Unknown keys are passed through untouched so that pydantic can ignore them.
    """
    aliases = {info.alias: name for name, info in model.model_fields.items() if info.alias}
    return {aliases.get(key, key): value for key, value in updates.items()}


def create_form(created_by: str = "", **overrides: Any) -> FormSchema:
    """Create an empty single-page form."""
    return FormSchema.model_validate({"created_by": created_by, **overrides})
