"""
Layout grouping for the two-column form grid.

The schema stores fields as one flat ordered list. For presentation the
list is split into a preamble (fields before the first section) and one
group per section holding the section's block members; each group is
then packed into rows where two single-width fields may share a row.

Everything here is a pure view over the list: nothing is mutated, and
calling a function twice on the same input yields equal output.
"""

from typing import Sequence

from pydantic import BaseModel, Field, computed_field

from formcraft.core.schema import FieldType, FormField


class SectionGroup(BaseModel):
    """A section header and the fields of its block."""

    section: FormField
    child_fields: list[FormField] = Field(default_factory=list)
    section_index: int = Field(..., description="Position of the section in the flat list")


class FieldGrouping(BaseModel):
    """Fields before the first section, then one group per section."""

    preamble: list[FormField] = Field(default_factory=list)
    sections: list[SectionGroup] = Field(default_factory=list)


class Row(BaseModel):
    """One grid row: a full-width field, a pair, or a lone half-width field."""

    fields: list[FormField]
    start_index: int = Field(..., description="Position of the row's first field in the grouped subset")
    offset: int = Field(default=0, description="Position of the grouped subset in the flat list")

    @computed_field
    @property
    def has_inline_slot(self) -> bool:
        """True when the row's second column is empty and can take a drop."""
        return len(self.fields) == 1 and self.fields[0].col_span == 1

    @computed_field
    @property
    def inline_index(self) -> int | None:
        """Flat-list index a drop into the empty column inserts at."""
        return inline_drop_index(self)


class SectionLayout(BaseModel):
    section: FormField
    section_index: int
    rows: list[Row] = Field(default_factory=list)


class LayoutView(BaseModel):
    """Fully grouped and row-packed view of a field list."""

    preamble_rows: list[Row] = Field(default_factory=list)
    sections: list[SectionLayout] = Field(default_factory=list)


def group_fields_by_section(fields: Sequence[FormField]) -> FieldGrouping:
    """Split the flat list at section boundaries.

    A section owns every following non-section field up to the next
    section. Fields before the first section form the preamble.
    """
    preamble: list[FormField] = []
    sections: list[SectionGroup] = []

    i = 0
    while i < len(fields):
        if fields[i].type != FieldType.SECTION:
            preamble.append(fields[i])
            i += 1
            continue

        section_index = i
        children: list[FormField] = []
        i += 1
        while i < len(fields) and fields[i].type != FieldType.SECTION:
            children.append(fields[i])
            i += 1
        sections.append(
            SectionGroup(section=fields[section_index], child_fields=children, section_index=section_index)
        )

    return FieldGrouping(preamble=preamble, sections=sections)


def group_into_rows(fields: Sequence[FormField], offset: int = 0) -> list[Row]:
    """Pack fields into two-column rows.

    A full-width field gets its own row. A half-width field shares its
    row with the next field when that one is also half-width; otherwise
    it sits alone. `offset` is where `fields` starts in the flat list.
    """
    rows: list[Row] = []
    i = 0
    while i < len(fields):
        field = fields[i]
        if field.col_span == 2:
            rows.append(Row(fields=[field], start_index=i, offset=offset))
            i += 1
        elif i + 1 < len(fields) and fields[i + 1].col_span == 1:
            rows.append(Row(fields=[field, fields[i + 1]], start_index=i, offset=offset))
            i += 2
        else:
            rows.append(Row(fields=[field], start_index=i, offset=offset))
            i += 1
    return rows


def inline_drop_index(row: Row, offset: int | None = None) -> int | None:
    """Insertion index for the empty column beside a lone half-width field.

    Dropping there places the new field right after the lone field, not
    at the end of the list.

    Args:
        row: A row produced by `group_into_rows`.
        offset: Position in the flat list of the subset's first field
            (0 for the preamble, ``section_index + 1`` for a section).
            Defaults to the offset the row was built with.

    Returns:
        The flat-list index, or None if the row has no inline slot.
    """
    if not row.has_inline_slot:
        return None
    if offset is None:
        offset = row.offset
    return offset + row.start_index + 1


def build_layout(fields: Sequence[FormField]) -> LayoutView:
    """Group by section and pack every group into rows."""
    grouping = group_fields_by_section(fields)
    return LayoutView(
        preamble_rows=group_into_rows(grouping.preamble),
        sections=[
            SectionLayout(
                section=group.section,
                section_index=group.section_index,
                rows=group_into_rows(group.child_fields, group.section_index + 1),
            )
            for group in grouping.sections
        ],
    )
