"""Tests for tables and the CSV record store."""

import pytest

from projectdesk.exceptions import ConfigError, RecordNotFoundError
from projectdesk.store.csv_store import CsvRecordStore
from projectdesk.store.record import ProjectRecord, parse_date, split_list
from projectdesk.store.snapshot import SnapshotTable, StatusChange, diff_statuses
from projectdesk.store.tables import KeyValueTable, read_rows, write_rows


@pytest.fixture
def store(tmp_path):
    return CsvRecordStore.create(
        tmp_path / "projects.csv",
        ["project_id", "project_name", "due_date", "automation_status", "notes"],
    )


class TestParsing:
    """Tests for cell parsing helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2026-11-02", "2026-11-02"),
            ("11/02/2026", "2026-11-02"),
            ("11/2/26", "2026-11-02"),
            ("2026-11-02T09:00:00", "2026-11-02"),
            ("soon", None),
            ("", None),
        ],
    )
    def test_parse_date(self, value, expected):
        result = parse_date(value)
        assert (result.isoformat() if result else None) == expected

    def test_split_list_dedupes_case_insensitively(self):
        assert split_list(" Dana Reyes, sam@district.org,, dana reyes ") == ["Dana Reyes", "sam@district.org"]


class TestProjectRecord:
    """Tests for ProjectRecord dirty tracking."""

    def test_unchanged_value_is_not_dirty(self):
        record = ProjectRecord(3, {"project_name": "Budget"})
        record.set("project_name", "Budget")
        assert not record.is_dirty

    def test_set_marks_key(self):
        record = ProjectRecord(3)
        record.set("due_date", parse_date("11/02/2026"))
        assert record.get("due_date") == "2026-11-02"
        assert record.dirty_keys == {"due_date"}

    def test_unknown_automation_value(self):
        record = ProjectRecord(3, {"automation_status": "Maybe"})
        assert record.automation_status is None
        assert record.raw_automation_status == "Maybe"

    def test_display_title(self):
        record = ProjectRecord(3, {"project_name": "Budget", "project_id": "SUSD-25_26-0001"})
        assert record.display_title == "Budget [SUSD-25_26-0001]"


class TestCsvRecordStore:
    """Tests for CsvRecordStore."""

    def test_append_and_load(self, store):
        store.append_record({"project_name": "Budget", "due_date": "2026-11-02"})
        store.append_record({"project_name": "Staffing"})

        records = store.load_all()
        assert [r.row_number for r in records] == [3, 4]
        assert records[0].name == "Budget"
        assert not records[0].is_dirty

    def test_columns_addressed_by_key(self, tmp_path):
        """Relabeling and reordering columns doesn't change what a key reads."""
        path = tmp_path / "projects.csv"
        write_rows(
            path,
            [
                ["Notes!", "Name of project", "ID"],
                ["notes", "project_name", "project_id"],
                ["hello", "Budget", "SUSD-25_26-0001"],
            ],
        )
        store = CsvRecordStore(path)
        record = store.load_all()[0]
        assert record.project_id == "SUSD-25_26-0001"
        assert store.column_index("project_name") == 1
        assert store.column_index("missing") is None

    def test_first_duplicate_key_wins(self, tmp_path):
        path = tmp_path / "projects.csv"
        write_rows(path, [["A", "B"], ["notes", "notes"], ["first", "second"]])
        store = CsvRecordStore(path)
        assert store.load_all()[0].notes == "first"
        assert store.keys() == ["notes", "notes"]

    def test_flush_writes_only_dirty_cells(self, store):
        """Cells edited elsewhere after loading survive a flush."""
        store.append_record({"project_name": "Budget", "notes": "original"})
        record = store.load_all()[0]

        rows = read_rows(store.path)
        rows[2][4] = "edited by a person"
        write_rows(store.path, rows)

        record.set("automation_status", "Created")
        assert store.flush_dirty([record]) == 1

        reloaded = store.load_all()[0]
        assert reloaded.raw_automation_status == "Created"
        assert reloaded.notes == "edited by a person"

    def test_flush_clean_records_writes_nothing(self, store):
        store.append_record({"project_name": "Budget"})
        assert store.flush_dirty(store.load_all()) == 0

    def test_blank_rows_are_skipped(self, store):
        store.append_record({"project_name": "Budget"})
        rows = read_rows(store.path) + [["", "", "", "", ""]]
        write_rows(store.path, rows)
        store.append_record({"project_name": "Staffing"})
        assert [r.row_number for r in store.load_all()] == [3, 5]

    def test_hidden_and_allowed_values_persist(self, store):
        record = store.append_record({"project_name": "Budget"})
        store.hide_record(record)
        store.set_allowed_values(record, ["Ready"])

        other = CsvRecordStore(store.path)
        assert other.is_hidden(record)
        assert other.allowed_values(record) == ["Ready"]

    def test_sidecar_changes_from_two_stores_merge(self, store):
        """A store's write never drops what another store wrote in the meantime."""
        first = store.append_record({"project_name": "Budget"})
        second = store.append_record({"project_name": "Staffing"})
        other = CsvRecordStore(store.path)
        assert other.allowed_values(first) is None

        store.set_allowed_values(first, ["Created", "Updated"])
        other.hide_record(second)
        other.set_allowed_values(second, ["Error", "Ready"])

        fresh = CsvRecordStore(store.path)
        assert fresh.allowed_values(first) == ["Created", "Updated"]
        assert fresh.allowed_values(second) == ["Error", "Ready"]
        assert fresh.is_hidden(second)
        assert not fresh.is_hidden(first)

    def test_missing_key_row(self, tmp_path):
        path = tmp_path / "projects.csv"
        write_rows(path, [["Only labels"]])
        with pytest.raises(ConfigError):
            CsvRecordStore(path).load_all()

    def test_find(self, store):
        store.append_record({"project_name": "Budget", "project_id": "SUSD-25_26-0001"})
        store.append_record({"project_name": "Staffing"})
        records = store.load_all()
        assert store.find(records, "susd-25_26-0001").name == "Budget"
        assert store.find(records, "4").name == "Staffing"
        with pytest.raises(RecordNotFoundError):
            store.find(records, "99")


class TestKeyValueTable:
    """Tests for KeyValueTable."""

    def test_set_updates_in_place(self, tmp_path):
        table = KeyValueTable(tmp_path / "config.csv")
        table.write_all({"District ID": "SUSD", "Next Serial": "1"})
        table.set("Next Serial", 2)
        table.set("Debug Mode", "true")
        assert table.read() == {"District ID": "SUSD", "Next Serial": "2", "Debug Mode": "true"}
        assert table.keys() == ["District ID", "Next Serial", "Debug Mode"]


class TestSnapshot:
    """Tests for status snapshots."""

    def test_diff_reports_only_changed_known_ids(self):
        previous = {"A": "On Track", "B": "On Track", "C": "Stuck"}
        current = {"A": "Complete", "B": "On Track", "D": "Project Assigned"}
        assert diff_statuses(previous, current) == [StatusChange("A", "On Track", "Complete")]

    def test_overwrite_round_trip(self, tmp_path):
        table = SnapshotTable(tmp_path / "snapshot.csv")
        assert table.load() == {}
        table.overwrite({"B": "Late", "A": "On Track"})
        assert table.load() == {"A": "On Track", "B": "Late"}
