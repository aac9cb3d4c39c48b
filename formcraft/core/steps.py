"""
Wizard step derivation.

Steps are cut at sections flagged ``useAsStep`` (the default for new
sections). Derivation is a full rebuild: previous steps are discarded,
never merged. Steps are a snapshot. Fields added, removed or reordered
afterwards are not reflected until `derive_steps` is called again.
"""

from typing import Sequence

from formcraft.core.schema import FieldType, FormField, Step
from formcraft.core.utils import now_ms


def starts_step(field: FormField) -> bool:
    """True for a section that has not opted out of being a step."""
    return field.type == FieldType.SECTION and field.use_as_step is not False


def derive_steps(fields: Sequence[FormField]) -> list[Step]:
    """Partition the field list into wizard steps at section boundaries.

    Each qualifying section opens a new step that holds the section
    itself and every following field up to the next qualifying section.
    Fields ahead of the first qualifying section form a leading
    "Step 1". Without any qualifying section, the whole form is a single
    step, titled after the first field when that field is a section.

    Returns:
        A new list of steps. Never empty.
    """
    stamp = now_ms()

    if not any(starts_step(f) for f in fields):
        first = fields[0] if fields else None
        title = first.label if first is not None and first.type == FieldType.SECTION else ""
        return [Step(id=f"s_{stamp}", title=title or "Step 1", field_ids=[f.id for f in fields])]

    steps: list[Step] = []
    current_ids: list[str] = []
    step_num = 1
    title = "Step 1"

    for field in fields:
        if starts_step(field):
            if current_ids:
                steps.append(Step(id=f"s_{stamp}_{step_num}", title=title, field_ids=current_ids))
                step_num += 1
            title = field.label or f"Step {step_num}"
            current_ids = [field.id]
        else:
            current_ids.append(field.id)

    if current_ids:
        steps.append(Step(id=f"s_{stamp}_{step_num}", title=title, field_ids=current_ids))

    return steps
