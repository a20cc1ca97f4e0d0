"""Tests for the tabular codec."""

import pytest

from lib.tabular.codec import (
    Table,
    parse,
    parse_table,
    read_table,
    serialize,
    serialize_table,
    write_table,
)


HEADER = ["Venue Name", "Sport(s)", "Booking URL", "Description"]


class TestParse:
    """Parsing tolerance rules."""

    def test_simple_rows(self):
        rows = parse("a,b\n1,2\n3,4\n")
        assert rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_crlf_and_lf_mixed(self):
        rows = parse("a,b\r\n1,2\n3,4\r\n")
        assert rows == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_quoted_delimiter_newline_and_quote(self):
        text = 'name,notes\n"Smith, J","Line one\nLine ""two"""\n'
        rows = parse(text)
        assert rows == [{"name": "Smith, J", "notes": 'Line one\nLine "two"'}]

    def test_trailing_blank_rows_dropped(self):
        rows = parse("a,b\n1,2\n\n\n,\n")
        assert rows == [{"a": "1", "b": "2"}]

    def test_leading_blank_lines_skipped(self):
        rows = parse("\n\n a , b \n1,2\n")
        assert rows == [{"a": "1", "b": "2"}]

    def test_short_row_defaults_to_empty(self):
        rows = parse("a,b,c\n1\n")
        assert rows == [{"a": "1", "b": "", "c": ""}]

    def test_long_row_mapped_positionally(self):
        rows = parse("a,b\n1,2,3,4\n")
        assert rows == [{"a": "1", "b": "2"}]

    def test_unterminated_quote_does_not_raise(self):
        rows = parse('a,b\n1,2\n3,"unterminated\n')
        assert rows[0] == {"a": "1", "b": "2"}
        assert rows[1]["a"] == "3"
        assert rows[1]["b"].startswith("unterminated")

    def test_empty_input(self):
        assert parse("") == []
        assert parse("\n\n") == []
        assert parse_table("") == Table()

    def test_header_only(self):
        table = parse_table("a,b\n")
        assert table.header == ["a", "b"]
        assert table.rows == []

    def test_custom_delimiter(self):
        rows = parse("a;b\n1;2,5\n", delimiter=";")
        assert rows == [{"a": "1", "b": "2,5"}]


class TestSerialize:
    """Serialization rules."""

    def test_header_and_trailing_newline(self):
        text = serialize([{"a": "1", "b": "2"}], ["a", "b"])
        assert text == "a,b\n1,2\n"

    def test_quotes_only_when_needed(self):
        text = serialize([{"a": 'say "hi"', "b": "x,y"}], ["a", "b"])
        assert text == 'a,b\n"say ""hi""","x,y"\n'

    def test_none_and_lists(self):
        text = serialize([{"a": None, "b": ["tennis", "squash"]}], ["a", "b"])
        assert text == 'a,b\n,"tennis, squash"\n'

    def test_extra_keys_ignored(self):
        text = serialize([{"a": "1", "zzz": "ignored"}], ["a"])
        assert text == "a\n1\n"

    def test_serialize_table_pads_short_rows(self):
        table = Table(header=["a", "b", "c"], rows=[["1"], ["1", "2", "3", "4"]])
        assert serialize_table(table) == "a,b,c\n1,,\n1,2,3\n"


class TestRoundTrip:
    """parse(serialize(rows, header)) == rows."""

    @pytest.mark.parametrize("rows", [
        [{"Venue Name": "Court One", "Sport(s)": "tennis", "Booking URL": "https://a.example/book", "Description": ""}],
        [{"Venue Name": "Smith, Jones & Co", "Sport(s)": "tennis, squash", "Booking URL": "https://b.example/?a=1&b=2", "Description": 'The "best" courts'}],
        [{"Venue Name": "Multi\nLine", "Sport(s)": "", "Booking URL": "", "Description": "one\r\ntwo\nthree"}],
        [
            {"Venue Name": "A", "Sport(s)": "", "Booking URL": "", "Description": ""},
            {"Venue Name": "", "Sport(s)": "", "Booking URL": "x", "Description": ""},
        ],
    ])
    def test_round_trip(self, rows):
        assert parse(serialize(rows, HEADER)) == rows

    def test_values_normalized_to_strings(self):
        rows = [{"Venue Name": "A", "Sport(s)": 3, "Booking URL": None, "Description": True}]
        assert parse(serialize(rows, HEADER)) == [
            {"Venue Name": "A", "Sport(s)": "3", "Booking URL": "", "Description": "True"}
        ]


class TestFiles:
    """read_table/write_table."""

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "out" / "venues.csv"
        write_table(path, [{"a": "1", "b": "x,y"}], ["a", "b"])
        table = read_table(path)
        assert table.header == ["a", "b"]
        assert table.rows == [["1", "x,y"]]

    def test_read_strips_bom(self, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffa,b\n1,2\n".encode("utf-8"))
        assert read_table(path).header == ["a", "b"]

    def test_write_leaves_no_temp_files(self, tmp_path):
        write_table(tmp_path / "v.csv", [], ["a"])
        assert [p.name for p in tmp_path.iterdir()] == ["v.csv"]
