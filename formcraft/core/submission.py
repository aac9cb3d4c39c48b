"""
Submission payload assembly.

The payload is built from the entire field list, including fields that
are currently hidden by a visibility rule or belong to another step. A
value entered into a field that later became hidden is therefore still
submitted.

Submissions of forms with an approval workflow start pending and move
to approved or rejected as approvers decide.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from formcraft.core.schema import (
    Approval,
    FieldType,
    FormField,
    FormSchema,
    Submission,
    SubmissionStatus,
)

logger = logging.getLogger(__name__)


def assemble_submission(
    fields: Sequence[FormField],
    values: Mapping[str, Any],
) -> dict[str, Any]:
    """Produce the cleaned payload for a submission.

    - checkbox: always present, coerced to bool
    - checklist: always present, ``[]`` when unset
    - hidden: always present, the entered value or the field's default
    - anything else: present only when not None and not ``""``

    Never raises; missing values become omissions or safe defaults.
    """
    data: dict[str, Any] = {}
    for field in fields:
        value = values.get(field.id)
        if field.type == FieldType.CHECKBOX:
            data[field.id] = bool(value)
        elif field.type == FieldType.CHECKLIST:
            data[field.id] = value or []
        elif field.type == FieldType.HIDDEN:
            data[field.id] = value if value is not None else field.default_value
        elif value is not None and value != "":
            data[field.id] = value
    return data


def build_submission(
    form: FormSchema,
    data: Mapping[str, Any],
    submitted_by: str | None = None,
) -> Submission:
    """Wrap an assembled payload in a Submission record.

    Forms with approvers get a pending submission carrying one open
    approval per approver. All other submissions are approved at once.
    """
    if form.requires_approval:
        submission = Submission(
            form_id=form.id,
            data=dict(data),
            submitted_by=submitted_by,
            status=SubmissionStatus.PENDING,
            approvals=[Approval(approver_id=a) for a in form.approval_workflow.approver_ids],
        )
    else:
        submission = Submission(form_id=form.id, data=dict(data), submitted_by=submitted_by)
    logger.info(
        "Built %s submission %s for form %s (%d values)",
        submission.status.value, submission.id, form.id, len(data),
    )
    return submission


def apply_approval(submission: Submission, approver_id: str, approved: bool) -> Submission:
    """Record one approver's decision and recompute the status.

    Any rejection rejects the submission; it is approved once every
    approver has approved, and stays pending otherwise.

    Returns:
        A new Submission; the given one is left untouched.

    Raises:
        ValueError: If the approver is not on the submission or has
            already decided.
    """
    approvals = submission.approvals or []
    current = next((a for a in approvals if a.approver_id == approver_id), None)
    if current is None:
        raise ValueError(f"'{approver_id}' is not an approver of submission {submission.id}")
    if current.approved is not None:
        raise ValueError(f"'{approver_id}' has already decided on submission {submission.id}")

    decided_at = datetime.now(timezone.utc).isoformat()
    approvals = [
        a.model_copy(update={"approved": approved, "at": decided_at}) if a is current else a
        for a in approvals
    ]
    if any(a.approved is False for a in approvals):
        status = SubmissionStatus.REJECTED
    elif all(a.approved is True for a in approvals):
        status = SubmissionStatus.APPROVED
    else:
        status = SubmissionStatus.PENDING

    logger.info(
        "Approver %s %s submission %s (now %s)",
        approver_id, "approved" if approved else "rejected", submission.id, status.value,
    )
    return submission.model_copy(update={"approvals": approvals, "status": status})
