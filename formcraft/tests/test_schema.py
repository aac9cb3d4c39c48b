"""
Unit tests for the form schema models and field factory.

Tests cover:
- Per-type defaults from create_field (labels, options, validation, colSpan)
- Overrides in snake_case and camelCase
- colSpan bounds and unknown field types
- FormSchema id uniqueness and tolerance of stale conditional targets
- camelCase serialization
"""

import pytest
from pydantic import ValidationError

from formcraft.core.schema import (
    FieldType,
    FormField,
    FormSchema,
    Submission,
    SubmissionStatus,
    create_field,
    create_form,
    normalize_keys,
)
from formcraft.core.visibility import is_field_visible


# =============================================================
# Test: create_field defaults
# =============================================================


class TestCreateFieldDefaults:
    """Each type gets the defaults the builder palette expects."""

    def test_text_field(self):
        field = create_field("text")
        assert field.type == FieldType.TEXT
        assert field.label == "Untitled field"
        assert field.required is False
        assert field.placeholder == ""
        assert field.col_span == 1
        assert field.validation.max_length is None

    def test_section_field(self):
        field = create_field("section")
        assert field.label == "Section"
        assert field.col_span == 2
        assert field.use_as_step is True
        assert field.description == ""
        assert field.section_background_color == ""
        assert field.section_background_image == ""

    def test_textarea_is_full_width(self):
        assert create_field("textarea").col_span == 2

    def test_hidden_label(self):
        assert create_field("hidden").label == "Hidden"

    def test_yesno_options(self):
        assert create_field("yesno").options == ["Yes", "No"]

    @pytest.mark.parametrize("field_type", ["dropdown", "radio", "checklist"])
    def test_choice_options(self, field_type):
        assert create_field(field_type).options == ["Option 1", "Option 2"]

    def test_slider_range(self):
        validation = create_field("slider").validation
        assert (validation.min, validation.max, validation.step) == (0, 100, 1)

    def test_email_and_phone_flags(self):
        assert create_field("email").validation.email is True
        assert create_field("phone").validation.phone is True

    @pytest.mark.parametrize("field_type", ["number", "date", "checkbox", "signature", "profiles"])
    def test_other_types_are_half_width(self, field_type):
        field = create_field(field_type)
        assert field.col_span == 1
        assert field.options is None
        assert field.use_as_step is None

    def test_ids_are_unique(self):
        created = {create_field("text").id for _ in range(50)}
        assert len(created) == 50

    def test_id_format(self):
        assert create_field("text").id.startswith("f_")

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError):
            create_field("carousel")


class TestCreateFieldOverrides:

    def test_snake_case_override(self):
        field = create_field("text", label="Name", required=True, col_span=2)
        assert field.label == "Name"
        assert field.required is True
        assert field.col_span == 2

    def test_camel_case_override(self):
        field = create_field("section", useAsStep=False, colSpan=1)
        assert field.use_as_step is False
        assert field.col_span == 1

    def test_conditional_override(self):
        field = create_field("text", conditional={"fieldId": "f1", "operator": "equals", "value": "Yes"})
        assert field.conditional.field_id == "f1"
        assert field.conditional.value == "Yes"


# =============================================================
# Test: FormField constraints
# =============================================================


class TestFormFieldConstraints:

    def test_col_span_must_be_one_or_two(self):
        with pytest.raises(ValidationError):
            FormField(id="x", type="text", col_span=3)
        with pytest.raises(ValidationError):
            FormField(id="x", type="text", col_span=0)

    def test_col_span_defaults_to_one_when_loaded(self):
        """Stored fields without colSpan are treated as half width."""
        assert FormField(id="s", type="section").col_span == 1

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            FormField(id="", type="text")

    def test_fields_are_immutable(self):
        field = FormField(id="x", type="text")
        with pytest.raises(ValidationError):
            field.label = "changed"

    def test_camel_case_dump(self):
        field = create_field("section", label="Intro")
        data = field.to_dict()
        assert data["colSpan"] == 2
        assert data["useAsStep"] is True
        assert data["type"] == "section"
        assert "col_span" not in data

    def test_loads_camel_case(self):
        field = FormField.model_validate({
            "id": "x",
            "type": "text",
            "colSpan": 2,
            "validation": {"maxLength": 10},
            "conditional": {"fieldId": "y", "operator": "contains", "value": "a"},
        })
        assert field.col_span == 2
        assert field.validation.max_length == 10
        assert field.conditional.operator == "contains"


# =============================================================
# Test: FormSchema
# =============================================================


class TestFormSchema:

    def test_defaults(self):
        form = create_form("alice")
        assert form.title == "Untitled form"
        assert form.fields == []
        assert form.steps == []
        assert form.show_title is True
        assert form.layout.value == "default"
        assert form.form_width.value == "standard"
        assert form.created_by == "alice"
        assert form.id.startswith("form_")

    def test_duplicate_field_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate field ID"):
            FormSchema(fields=[
                {"id": "f1", "type": "text"},
                {"id": "f1", "type": "email"},
            ])

    def test_stale_conditional_reference_allowed(self):
        form = FormSchema(fields=[
            {"id": "f1", "type": "text", "conditional": {"fieldId": "gone", "value": "x"}},
        ])
        assert form.fields[0].conditional.field_id == "gone"

    def test_null_conditional_target_loads(self):
        form = FormSchema.model_validate({"fields": [
            {"id": "f1", "type": "text", "conditional": {"fieldId": None, "operator": None, "value": "x"}},
        ]})
        assert form.fields[0].conditional.field_id is None
        assert is_field_visible(form.fields[0], {})

    def test_get_field(self):
        form = FormSchema(fields=[{"id": "f1", "type": "text"}])
        assert form.get_field("f1").id == "f1"
        assert form.get_field("missing") is None

    def test_invalid_layout_rejected(self):
        with pytest.raises(ValidationError):
            FormSchema(layout="carousel")

    def test_round_trip_through_dict(self):
        form = FormSchema(
            title="Survey",
            form_width="wide",
            fields=[create_field("section", label="Intro"), create_field("text")],
        )
        again = FormSchema.model_validate(form.to_dict())
        assert again == form


class TestSubmission:

    def test_defaults(self):
        submission = Submission(form_id="form_1", data={"a": 1})
        assert submission.status == SubmissionStatus.APPROVED
        assert submission.approvals is None
        assert submission.event_id is None
        assert submission.id.startswith("sub_")
        assert submission.to_dict()["formId"] == "form_1"

    def test_approval_workflow_loads(self):
        form = FormSchema.model_validate({"approvalWorkflow": {"approverIds": ["u1"]}})
        assert form.approval_workflow.type == "all"
        assert form.requires_approval is True
        assert FormSchema().requires_approval is False


class TestNormalizeKeys:

    def test_maps_aliases(self):
        assert normalize_keys(FormField, {"colSpan": 2, "label": "x"}) == {"col_span": 2, "label": "x"}

    def test_unknown_keys_pass_through(self):
        assert normalize_keys(FormField, {"mystery": 1}) == {"mystery": 1}
