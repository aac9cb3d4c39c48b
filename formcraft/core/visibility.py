"""
Visibility evaluator for conditional form fields.

A field with a `conditional` rule is shown only while the rule passes
against the current fill-time values. Evaluation runs for every
conditional field on every value change, so it is a plain function with
no lookups beyond a single dict access.

Rules fail open: a missing rule, an empty target id, a target that no
longer exists, or an unknown operator all mean "visible".
"""

from typing import Any, Collection, Mapping, Sequence

from formcraft.core.schema import ConditionalRule, ConditionOperator, FormField
from formcraft.core.utils import to_text


def evaluate_visibility(
    rule: ConditionalRule | Mapping[str, Any] | None,
    values: Mapping[str, Any],
) -> bool:
    """Decide whether a conditional rule passes for the given values.

    Both sides are trimmed and lower-cased before comparing, so
    ``"Yes "`` equals ``"yes"``.

    Args:
        rule: The visibility rule, as a model or a plain dict, or None.
        values: Current fill-time values keyed by field ID.

    Returns:
        True if the owning field should be visible.
    """
    if rule is None:
        return True
    if not isinstance(rule, ConditionalRule):
        rule = ConditionalRule.model_validate(rule)
    if not rule.field_id:
        return True

    raw = values.get(rule.field_id)
    current = raw.strip() if isinstance(raw, str) else raw
    target = to_text(rule.value).strip().lower()
    compare = to_text(current).lower()

    match rule.operator or ConditionOperator.EQUALS.value:
        case ConditionOperator.EQUALS.value:
            return compare == target
        case ConditionOperator.NOT_EQUALS.value:
            return compare != target
        case ConditionOperator.CONTAINS.value:
            return target in compare
        case ConditionOperator.IS_EMPTY.value:
            return _is_empty(current)
        case ConditionOperator.IS_NOT_EMPTY.value:
            return not _is_empty(current)

    return True


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def is_field_visible(
    field: FormField,
    values: Mapping[str, Any],
    known_ids: Collection[str] | None = None,
) -> bool:
    """Determine if a field should be visible given the current values.

    Args:
        field: The form field to evaluate.
        values: Current fill-time values keyed by field ID.
        known_ids: IDs of every field in the form. When given, a rule
            whose target is not among them is stale and passes.
    """
    rule = field.conditional
    if rule is None or not rule.field_id:
        return True
    if known_ids is not None and rule.field_id not in known_ids:
        return True
    return evaluate_visibility(rule, values)


def get_visible_fields(
    fields: Sequence[FormField],
    values: Mapping[str, Any],
) -> list[FormField]:
    """Return the fields whose visibility rules pass, in their original order.

    `fields` must be the complete field list of the form, since it is
    also used to detect rules that point at deleted fields.
    """
    known_ids = {f.id for f in fields}
    return [f for f in fields if is_field_visible(f, values, known_ids)]
