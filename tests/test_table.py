"""
Tests for projavu.table — CSV lookup table parsing, lookups, persistence.
"""

import pytest

from projavu.errors import (
    InsertTable,
    ParsingTable,
    ReadTable,
    RowNotFound,
    UnexpectedTable,
    WriteTable,
)
from projavu.table import (
    COLUMNS,
    IdeaTable,
    Table,
    column_values,
    delete_row,
    export_table,
    find_column,
    find_row_by_value,
    insert_row,
    parse_table,
)

HEADER = "id,reference,title,progress,tags\n"


@pytest.fixture
def table_file(tmp_path):
    t = IdeaTable(tmp_path / "table.csv")
    t.initialize()
    return t


# ---------------------------------------------------------------------------
# Parsing / export
# ---------------------------------------------------------------------------


class TestParse:
    def test_header_only(self):
        table = parse_table(HEADER)
        assert table.header == list(COLUMNS)
        assert table.rows == []

    def test_rows(self):
        table = parse_table(HEADER + "1,ab/cd,Title,pending,x y\n")
        assert table.rows == [["1", "ab/cd", "Title", "pending", "x y"]]

    def test_quoted_fields(self):
        text = HEADER + '1,ab/cd,"Hello, ""world""\nsecond line",nigh,\n'
        table = parse_table(text)
        assert table.rows[0][2] == 'Hello, "world"\nsecond line'

    def test_empty_text(self):
        with pytest.raises(ParsingTable):
            parse_table("")

    def test_ragged_row(self):
        with pytest.raises(ParsingTable):
            parse_table(HEADER + "1,ab/cd,Title\n")

    def test_bad_quoting(self):
        with pytest.raises(ParsingTable):
            parse_table(HEADER + '1,ab/cd,"unterminated,pending,\n')

    def test_duplicate_column(self):
        with pytest.raises(ParsingTable):
            parse_table("id,id\n")

    def test_blank_lines_ignored(self):
        table = parse_table(HEADER + "\n1,r,T,pending,\n\n")
        assert len(table) == 1

    def test_export_roundtrip_with_special_characters(self):
        table = Table()
        insert_row(table, {
            "id": "1", "reference": "ab/cd",
            "title": 'comma, "quote"\nand newline',
            "progress": "current", "tags": "a b",
        })
        assert parse_table(export_table(table)) == table

    def test_export_header_first(self):
        assert export_table(Table()) == HEADER


# ---------------------------------------------------------------------------
# Lookups and mutation
# ---------------------------------------------------------------------------


class TestLookups:
    def _table(self):
        return parse_table(HEADER + "1,r1,A,pending,\n2,r2,B,nigh,x\n3,r1,C,defer,\n")

    def test_find_column(self):
        assert find_column(self._table(), "title") == 2

    def test_find_column_missing(self):
        table = parse_table("id,reference\n")
        with pytest.raises(UnexpectedTable):
            find_column(table, "tags")

    def test_column_values(self):
        assert column_values(self._table(), "reference") == ["r1", "r2", "r1"]

    def test_find_row_by_value(self):
        table = self._table()
        assert find_row_by_value(table, 0, "2") == 1

    def test_find_row_first_match(self):
        table = self._table()
        assert find_row_by_value(table, 1, "r1") == 0

    def test_find_row_not_found(self):
        with pytest.raises(RowNotFound):
            find_row_by_value(self._table(), 0, "9")

    def test_find_row_bad_column(self):
        with pytest.raises(UnexpectedTable):
            find_row_by_value(self._table(), 10, "1")

    def test_insert_fills_missing_columns(self):
        table = Table()
        index = insert_row(table, {"id": "7", "title": "T"})
        assert index == 0
        assert table.rows[0] == ["7", "", "T", "", ""]

    def test_insert_follows_header_order(self):
        table = parse_table("title,id,reference,progress,tags\n")
        insert_row(table, {"id": "1", "title": "T"})
        assert table.rows[0] == ["T", "1", "", "", ""]

    def test_insert_unknown_column(self):
        with pytest.raises(InsertTable):
            insert_row(Table(), {"color": "red"})

    def test_delete_row(self):
        table = self._table()
        removed = delete_row(table, 1)
        assert removed[0] == "2"
        assert column_values(table, "id") == ["1", "3"]

    def test_delete_row_out_of_range(self):
        with pytest.raises(InsertTable):
            delete_row(self._table(), 3)


# ---------------------------------------------------------------------------
# On-disk table
# ---------------------------------------------------------------------------


class TestIdeaTable:
    def test_initialize_writes_header(self, tmp_path):
        t = IdeaTable(tmp_path / "table.csv")
        assert t.initialize() is True
        assert (tmp_path / "table.csv").read_text() == HEADER

    def test_initialize_idempotent(self, table_file):
        table = table_file.read()
        insert_row(table, {"id": "1", "reference": "r", "title": "T",
                           "progress": "pending", "tags": ""})
        table_file.write(table)
        assert table_file.initialize() is False
        assert len(table_file.read()) == 1

    def test_write_then_read(self, table_file):
        table = table_file.read()
        insert_row(table, {"id": "1", "reference": "r", "title": "Ünïcode, yes",
                           "progress": "nigh", "tags": "a"})
        table_file.write(table)
        assert table_file.read() == table

    def test_write_leaves_no_temp_file(self, table_file, tmp_path):
        table_file.write(table_file.read())
        assert sorted(p.name for p in tmp_path.iterdir()) == ["table.csv"]

    def test_read_missing_file(self, tmp_path):
        with pytest.raises(ReadTable):
            IdeaTable(tmp_path / "absent.csv").read()

    def test_read_corrupted_file(self, tmp_path):
        path = tmp_path / "table.csv"
        path.write_text(HEADER + "1,2\n")
        with pytest.raises(ParsingTable):
            IdeaTable(path).read()

    def test_write_into_missing_directory(self, tmp_path):
        t = IdeaTable(tmp_path / "missing" / "table.csv")
        with pytest.raises(WriteTable):
            t.write(Table())
