"""
Per-field value validation.

Validation failures are data, not exceptions: `validate_field` returns a
user-facing message or None, and callers decide what to do with it.
"""

import re
from typing import Any, Iterable, Mapping

from formcraft.core.schema import REQUIRED_EXEMPT_TYPES, FieldType, FormField
from formcraft.core.utils import is_blank, to_text

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[\d\s\-+()]{7,20}$")

REQUIRED_MESSAGE = "This field is required."
REQUIRED_CHOICE_MESSAGE = "Select at least one option."
EMAIL_MESSAGE = "Please enter a valid email."
PHONE_MESSAGE = "Please enter a valid phone number."


def validate_field(field: FormField, value: Any) -> str | None:
    """Validate a candidate value for a field.

    Checks run in order and the first failure wins: required, email
    format, phone format, maximum length. Format checks are skipped for
    empty values, so an optional email field may be left blank.

    Args:
        field: The field definition.
        value: The value entered by the user (None when untouched).

    Returns:
        An error message, or None if the value is acceptable.
    """
    if field.required and field.type not in REQUIRED_EXEMPT_TYPES:
        if field.type == FieldType.CHECKLIST:
            if not isinstance(value, list) or not value:
                return REQUIRED_CHOICE_MESSAGE
        elif is_blank(value):
            return REQUIRED_MESSAGE

    if field.type == FieldType.EMAIL and value:
        if not EMAIL_PATTERN.match(to_text(value).strip()):
            return EMAIL_MESSAGE

    if field.type == FieldType.PHONE and value:
        compact = re.sub(r"\s", "", to_text(value))
        if not PHONE_PATTERN.match(compact):
            return PHONE_MESSAGE

    max_length = field.validation.max_length if field.validation else None
    if max_length and value and len(to_text(value)) > max_length:
        return f"Maximum {max_length} characters."

    return None


def validate_fields(
    fields: Iterable[FormField],
    values: Mapping[str, Any],
) -> dict[str, str]:
    """Validate several fields at once.

    Returns:
        {field_id: message} for every field that failed; empty when all pass.
    """
    errors: dict[str, str] = {}
    for field in fields:
        message = validate_field(field, values.get(field.id))
        if message is not None:
            errors[field.id] = message
    return errors
