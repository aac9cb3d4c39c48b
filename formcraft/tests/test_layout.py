"""
Unit tests for section grouping and row packing.

Tests cover:
- Preamble and section blocks
- Consecutive and trailing sections
- Two-column row packing
- Inline drop slots beside lone half-width fields, also in the JSON view
- Purity: repeated calls give equal output and leave input untouched
"""

from formcraft.core.layout import (
    build_layout,
    group_fields_by_section,
    group_into_rows,
    inline_drop_index,
)
from formcraft.core.schema import FormField


# --- Helpers ---


def make_field(field_id: str, field_type: str = "text", col_span: int = 1) -> FormField:
    return FormField(id=field_id, type=field_type, col_span=col_span)


def ids(fields) -> list[str]:
    return [f.id for f in fields]


# =============================================================
# Test: group_fields_by_section
# =============================================================


class TestGroupFieldsBySection:

    def test_preamble_and_sections(self, sectioned_fields):
        grouping = group_fields_by_section(sectioned_fields)
        assert ids(grouping.preamble) == ["a"]
        assert [g.section.id for g in grouping.sections] == ["S1", "S2"]
        assert ids(grouping.sections[0].child_fields) == ["b", "c"]
        assert ids(grouping.sections[1].child_fields) == ["d"]

    def test_section_indexes(self, sectioned_fields):
        grouping = group_fields_by_section(sectioned_fields)
        assert [g.section_index for g in grouping.sections] == [1, 4]

    def test_no_sections(self):
        fields = [make_field("a"), make_field("b")]
        grouping = group_fields_by_section(fields)
        assert ids(grouping.preamble) == ["a", "b"]
        assert grouping.sections == []

    def test_empty_list(self):
        grouping = group_fields_by_section([])
        assert grouping.preamble == []
        assert grouping.sections == []

    def test_consecutive_sections(self):
        fields = [make_field("S1", "section"), make_field("S2", "section"), make_field("x")]
        grouping = group_fields_by_section(fields)
        assert grouping.preamble == []
        assert grouping.sections[0].child_fields == []
        assert ids(grouping.sections[1].child_fields) == ["x"]

    def test_trailing_section_has_no_children(self):
        fields = [make_field("a"), make_field("S1", "section")]
        grouping = group_fields_by_section(fields)
        assert ids(grouping.preamble) == ["a"]
        assert grouping.sections[0].child_fields == []

    def test_is_pure(self, sectioned_fields):
        snapshot = list(sectioned_fields)
        first = group_fields_by_section(sectioned_fields)
        second = group_fields_by_section(sectioned_fields)
        assert first == second
        assert sectioned_fields == snapshot


# =============================================================
# Test: group_into_rows
# =============================================================


class TestGroupIntoRows:

    def test_pairs_half_width_fields(self):
        rows = group_into_rows([make_field("p"), make_field("q"), make_field("r")])
        assert [ids(r.fields) for r in rows] == [["p", "q"], ["r"]]
        assert [r.start_index for r in rows] == [0, 2]

    def test_full_width_gets_own_row(self):
        rows = group_into_rows([make_field("x"), make_field("y", col_span=2), make_field("z")])
        assert [ids(r.fields) for r in rows] == [["x"], ["y"], ["z"]]

    def test_full_width_first(self):
        rows = group_into_rows([make_field("y", col_span=2), make_field("p"), make_field("q")])
        assert [ids(r.fields) for r in rows] == [["y"], ["p", "q"]]

    def test_empty(self):
        assert group_into_rows([]) == []

    def test_reflects_new_order(self):
        fields = [make_field("p"), make_field("q"), make_field("y", col_span=2)]
        before = group_into_rows(fields)
        after = group_into_rows([fields[2], fields[0], fields[1]])
        assert [ids(r.fields) for r in before] == [["p", "q"], ["y"]]
        assert [ids(r.fields) for r in after] == [["y"], ["p", "q"]]


# =============================================================
# Test: inline drop slots
# =============================================================


class TestInlineDropIndex:

    def test_lone_half_width_has_slot(self):
        rows = group_into_rows([make_field("p"), make_field("q"), make_field("r")])
        assert rows[1].has_inline_slot is True
        assert inline_drop_index(rows[1]) == 3

    def test_paired_row_has_no_slot(self):
        rows = group_into_rows([make_field("p"), make_field("q")])
        assert rows[0].has_inline_slot is False
        assert inline_drop_index(rows[0]) is None

    def test_full_width_row_has_no_slot(self):
        rows = group_into_rows([make_field("y", col_span=2)])
        assert inline_drop_index(rows[0]) is None

    def test_slot_right_after_lone_field_not_end(self):
        fields = [make_field("x"), make_field("y", col_span=2), make_field("z")]
        rows = group_into_rows(fields)
        assert inline_drop_index(rows[0]) == 1

    def test_section_offset(self, sectioned_fields):
        view = build_layout(sectioned_fields)
        second = view.sections[1]
        assert inline_drop_index(second.rows[0], second.section_index + 1) == 6

    def test_rows_remember_their_offset(self, sectioned_fields):
        view = build_layout(sectioned_fields)
        assert inline_drop_index(view.sections[1].rows[0]) == 6
        assert inline_drop_index(view.preamble_rows[0]) == 1

    def test_slot_in_json_dump(self, sectioned_fields):
        view = build_layout(sectioned_fields).model_dump(mode="json")
        lone = view["sections"][1]["rows"][0]
        paired = view["sections"][0]["rows"][0]
        assert (lone["has_inline_slot"], lone["inline_index"]) == (True, 6)
        assert (paired["has_inline_slot"], paired["inline_index"]) == (False, None)


# =============================================================
# Test: build_layout
# =============================================================


class TestBuildLayout:

    def test_full_view(self, sectioned_fields):
        view = build_layout(sectioned_fields)
        assert [ids(r.fields) for r in view.preamble_rows] == [["a"]]
        assert [ids(r.fields) for r in view.sections[0].rows] == [["b", "c"]]
        assert [ids(r.fields) for r in view.sections[1].rows] == [["d"]]

    def test_repeatable(self, sectioned_fields):
        assert build_layout(sectioned_fields) == build_layout(sectioned_fields)
