"""
Drag-and-drop reordering of the flat field list.

A section and the non-section fields that follow it form a block that
always moves as a unit. Moves compute the block's full range first and
then splice the whole block, which keeps its members contiguous and in
their original relative order.

All functions return a new list and leave their input untouched. An
unknown field id yields the input unchanged.
"""

import logging
from enum import Enum
from typing import Sequence

from pydantic import Field

from formcraft.core.schema import CamelModel, FieldType, FormField

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"


class DropIntentKind(str, Enum):
    MOVE = "move"
    INSERT = "insert"


class DropIntent(CamelModel):
    """What a drop target received.

    Palette drags carry a field type to insert; canvas drags carry the
    id of an existing field or section to move. When both are present
    the id wins.
    """

    field_id: str | None = Field(default=None, description="Existing field being moved")
    field_type: FieldType | None = Field(default=None, description="Palette type being inserted")
    index: int | None = Field(default=None, description="Drop position; None means end of list")

    @property
    def kind(self) -> DropIntentKind | None:
        if self.field_id:
            return DropIntentKind.MOVE
        if self.field_type is not None:
            return DropIntentKind.INSERT
        return None


def find_index(fields: Sequence[FormField], field_id: str) -> int:
    """Position of the field with the given id, or -1."""
    for i, f in enumerate(fields):
        if f.id == field_id:
            return i
    return -1


def block_range(fields: Sequence[FormField], index: int) -> tuple[int, int]:
    """Inclusive range of the block starting at `index`.

    For a section, the block runs to the last contiguous non-section
    field after it. Any other field is a block of one.
    """
    end = index
    if fields[index].type == FieldType.SECTION:
        for i in range(index + 1, len(fields)):
            if fields[i].type == FieldType.SECTION:
                break
            end = i
    return index, end


def insert_field(fields: Sequence[FormField], field: FormField, at_index: int | None = None) -> list[FormField]:
    """Insert `field` at `at_index`, clamped to ``[0, len(fields)]``.

    None appends.
    """
    result = list(fields)
    if at_index is None:
        at_index = len(result)
    result.insert(max(0, min(at_index, len(result))), field)
    return result


def move_field_to_index(
    fields: Sequence[FormField],
    field_id: str,
    target_index: int,
) -> list[FormField]:
    """Move a field, or a section with its whole block, to `target_index`.

    `target_index` is a gap position in the current list (0 = before the
    first field, ``len`` = after the last). Dropping anywhere inside the
    block's own range, including the gap right after it, does nothing.

    Returns:
        The reordered list, or an unchanged copy for a no-op move.
    """
    from_index = find_index(fields, field_id)
    if from_index == -1:
        logger.debug("move ignored, unknown field %s", field_id)
        return list(fields)

    from_index, from_end = block_range(fields, from_index)
    if from_index <= target_index <= from_end + 1:
        return list(fields)

    block = list(fields[from_index:from_end + 1])
    remaining = list(fields[:from_index]) + list(fields[from_end + 1:])

    if target_index > from_end:
        insert_at = max(0, min(target_index - len(block), len(remaining)))
    else:
        insert_at = max(0, min(target_index, len(remaining)))

    remaining[insert_at:insert_at] = block
    logger.debug(
        "moved block %s (%d fields) from %d to %d",
        field_id, len(block), from_index, insert_at,
    )
    return remaining


def move_field(
    fields: Sequence[FormField],
    field_id: str,
    direction: Direction | str,
) -> list[FormField]:
    """Swap a single field with its neighbour above or below.

    This is the keyboard-style nudge; unlike `move_field_to_index` it
    moves only the one field. Moving past either end does nothing.
    """
    i = find_index(fields, field_id)
    if i == -1:
        return list(fields)
    j = i - 1 if Direction(direction) == Direction.UP else i + 1
    if j < 0 or j >= len(fields):
        return list(fields)
    result = list(fields)
    result[i], result[j] = result[j], result[i]
    return result


def remove_field(fields: Sequence[FormField], field_id: str) -> list[FormField]:
    """Drop one field by id.

    Removing a section removes only its header; its former children
    join whatever block now precedes them.
    """
    return [f for f in fields if f.id != field_id]
