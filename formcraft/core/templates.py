"""
System form templates.

Each template is a YAML file under ``formcraft/schemas/`` describing a
starter form for one system slot (event, tech, facilities, it). Fields
are written with a local ``key`` instead of an id; every call to
`get_template` mints fresh field ids, rewires conditional rules and
steps to them, and returns a ready-to-edit FormSchema.

Format:
    slot: tech
    label: Tech form
    summary: "Form for A/V requests"
    form:
      title: Tech request
    fields:
      - key: summary
        type: text
        label: Summary
        required: true
    steps:            # optional; derived from sections when absent
      - title: Tech request
        fields: [summary]
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from formcraft.core.schema import FormSchema, Step, create_field, create_form
from formcraft.core.steps import derive_steps
from formcraft.core.utils import new_id

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).parent.parent / "schemas"


class TemplateNotFoundError(Exception):
    """Raised when no template exists for a slot."""

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"No form template for slot '{slot_id}'")


def templates_dir() -> Path:
    """Template directory, overridable with FORMCRAFT_TEMPLATES_DIR."""
    override = os.getenv("FORMCRAFT_TEMPLATES_DIR")
    return Path(override) if override else DEFAULT_TEMPLATES_DIR


def _load_raw(path: Path) -> dict[str, Any] | None:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read template %s: %s", path.name, e)
        return None
    if not isinstance(data, dict) or not data.get("slot"):
        logger.warning("Template %s has no slot, ignoring", path.name)
        return None
    return data


def _iter_templates() -> list[dict[str, Any]]:
    directory = templates_dir()
    if not directory.exists():
        return []
    raw = (_load_raw(path) for path in sorted(directory.glob("*.yaml")))
    return [t for t in raw if t is not None]


def list_templates() -> list[dict[str, str]]:
    """Describe the available templates: slot id, label and summary."""
    return [
        {
            "id": str(t["slot"]),
            "label": str(t.get("label", t["slot"])),
            "description": str(t.get("summary", "")),
        }
        for t in _iter_templates()
    ]


def get_template(slot_id: str, created_by: str = "") -> FormSchema:
    """Build a new form from the template for `slot_id`.

    Raises:
        TemplateNotFoundError: If no template declares that slot.
    """
    for template in _iter_templates():
        if template["slot"] == slot_id:
            return _build_form(template, created_by)
    raise TemplateNotFoundError(slot_id)


def _build_form(template: dict[str, Any], created_by: str) -> FormSchema:
    ids: dict[str, str] = {}
    pending: list[dict[str, Any]] = []
    for raw in template.get("fields") or []:
        entry = dict(raw)
        field_id = new_id("f")
        ids[entry.pop("key", field_id)] = field_id
        pending.append({**entry, "id": field_id})

    fields = []
    for entry in pending:
        conditional = entry.get("conditional")
        if conditional and conditional.get("fieldId") in ids:
            entry["conditional"] = {**conditional, "fieldId": ids[conditional["fieldId"]]}
        field_type = entry.pop("type")
        fields.append(create_field(field_type, **entry))

    if template.get("steps"):
        steps = [
            Step(
                id=new_id("s"),
                title=str(step.get("title", "")),
                field_ids=[ids[k] for k in step.get("fields", []) if k in ids],
            )
            for step in template["steps"]
        ]
    else:
        steps = derive_steps(fields)

    return create_form(created_by, **(template.get("form") or {}), fields=fields, steps=steps)
