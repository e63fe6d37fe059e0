"""Tests for lookup codes and reminder offsets."""

import pytest

from projectdesk.codes import Codes, generated_label, parse_offset_token, parse_reminder_offsets


class TestOffsetParsing:
    """Tests for reminder offset parsing."""

    @pytest.mark.parametrize(
        "token,expected",
        [
            ("7", 7),
            ("7 days", 7),
            ("1 week before", 7),
            ("2 weeks", 14),
            ("3d", 3),
            ("soon", None),
        ],
    )
    def test_token(self, token, expected):
        assert parse_offset_token(token) == expected

    def test_cell_is_sorted_and_unique(self):
        assert parse_reminder_offsets("14, 3, 2 weeks, 7") == [3, 7, 14]

    def test_blank_cell(self):
        assert parse_reminder_offsets("") is None
        assert parse_reminder_offsets(None) is None

    def test_list_input(self):
        assert parse_reminder_offsets([7, 3]) == [3, 7]


class TestGeneratedLabel:
    """Tests for deterministic labels."""

    @pytest.mark.parametrize(
        "offset,label",
        [
            (1, "1 day before"),
            (3, "3 days before"),
            (7, "1 week before"),
            (14, "2 weeks before"),
            (21, "3 weeks before"),
            (28, "28 days before"),
            (10, "10 days before"),
        ],
    )
    def test_label(self, offset, label):
        assert generated_label(offset) == label


class TestCodes:
    """Tests for the codes table."""

    def test_defaults_from_workspace(self, workspace):
        codes = Codes.load(workspace.codes_path)
        assert codes.default_category == "LCAP"
        assert codes.statuses[0] == "Project Assigned"
        assert "Complete" in codes.statuses
        assert codes.offset_to_label(7) == "1 week before"

    def test_label_round_trip(self, workspace):
        """Every configured label maps back to its offset."""
        codes = Codes.load(workspace.codes_path)
        for offset in (3, 7, 14):
            assert codes.label_to_offset(codes.offset_to_label(offset)) == offset

    def test_label_lookup_is_case_insensitive(self):
        codes = Codes(offset_labels={14: "Two Weeks Out"})
        assert codes.label_to_offset("two weeks out") == 14
        assert codes.label_to_offset("5") == 5
        assert codes.label_to_offset("") is None

    def test_unconfigured_offset_gets_generated_label(self):
        assert Codes().offset_to_label(21) == "3 weeks before"

    def test_offsets_for_defaults_when_blank(self):
        codes = Codes()
        assert codes.offsets_for("") == [3, 7, 14]
        assert codes.offsets_for("3, 14") == [3, 14]

    def test_format_offsets(self):
        assert Codes().format_offsets([14, 3, 7, 3]) == "3, 7, 14"
