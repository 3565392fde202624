"""
Tests for the in-process per-file text operations.
"""
import csv
import json

import pytest

from fanout.core.models import WorkItem
from fanout.core.textops import (
    LOCAL_OPERATIONS, csv_to_json_file, dedupe_lines_file, dedupe_sorted_file, get_operation,
    json_to_csv_file, txt_to_csv_file, unique_adjacent)


def item_for(path):
    return WorkItem(value=str(path), index=0)


class TestSortedDedup:
    def test_adjacent_duplicates_removed(self, temp_dir):
        path = temp_dir / "sorted.txt"
        path.write_bytes(b"a\na\nb\nb\nb\nc\n")

        summary = dedupe_sorted_file(item_for(path))

        assert (temp_dir / "sorted.txt_deduped").read_bytes() == b"a\nb\nc\n"
        assert summary.endswith(b": 3 written, 3 dropped\n")
        assert path.read_bytes() == b"a\na\nb\nb\nb\nc\n"

    def test_non_adjacent_lines_kept(self, temp_dir):
        path = temp_dir / "unsorted.txt"
        path.write_bytes(b"a\nb\na\n")

        dedupe_sorted_file(item_for(path))

        assert (temp_dir / "unsorted.txt_deduped").read_bytes() == b"a\nb\na\n"

    def test_missing_final_newline(self, temp_dir):
        path = temp_dir / "tail.txt"
        path.write_bytes(b"x\nx")

        dedupe_sorted_file(item_for(path))

        assert (temp_dir / "tail.txt_deduped").read_bytes() == b"x\n"

    def test_empty_file(self, temp_dir):
        path = temp_dir / "empty.txt"
        path.write_bytes(b"")

        dedupe_sorted_file(item_for(path))

        assert (temp_dir / "empty.txt_deduped").read_bytes() == b""

    def test_unique_adjacent(self):
        assert list(unique_adjacent([1, 1, 2, 1, 1])) == [1, 2, 1]


class TestLineDedup:
    def test_sort_and_unique(self, temp_dir):
        path = temp_dir / "words.txt"
        path.write_bytes(b"pear\napple\npear\nfig\napple\n")

        summary = dedupe_lines_file(item_for(path))

        assert (temp_dir / "words.txt_deduped").read_bytes() == b"apple\nfig\npear\n"
        assert summary.endswith(b": 3 written, 2 dropped\n")


class TestConversions:
    def test_txt_to_csv(self, temp_dir):
        path = temp_dir / "table.txt"
        path.write_text("a b c\n1 2 3\n")

        txt_to_csv_file(item_for(path))

        assert (temp_dir / "table.txt.csv").read_text() == "a,b,c\n1,2,3\n"

    def test_csv_to_json(self, temp_dir):
        path = temp_dir / "people.csv"
        path.write_text("name,age\nann,31\nbob,42\n")

        summary = csv_to_json_file(item_for(path))

        data = json.loads((temp_dir / "people.csv.json").read_text())
        assert data == [{"name": "ann", "age": "31"}, {"name": "bob", "age": "42"}]
        assert b"2 written" in summary

    def test_json_to_csv_union_of_keys(self, temp_dir):
        path = temp_dir / "rows.json"
        path.write_text(json.dumps([{"a": 1, "b": 2}, {"b": 3, "c": 4}]))

        json_to_csv_file(item_for(path))

        with open(temp_dir / "rows.json.csv", newline="") as f:
            rows = list(csv.reader(f))
        assert rows == [["a", "b", "c"], ["1", "2", ""], ["", "3", "4"]]

    def test_json_to_csv_empty_array(self, temp_dir):
        path = temp_dir / "empty.json"
        path.write_text("[]")

        json_to_csv_file(item_for(path))

        assert (temp_dir / "empty.json.csv").read_text() == ""

    def test_json_to_csv_rejects_non_array(self, temp_dir):
        path = temp_dir / "obj.json"
        path.write_text('{"a": 1}')

        with pytest.raises(ValueError, match="array of objects"):
            json_to_csv_file(item_for(path))


class TestRegistry:
    def test_known_operations(self):
        assert set(LOCAL_OPERATIONS) == {
            "dedupe-sorted", "dedupe-lines", "txt-to-csv", "csv-to-json", "json-to-csv"}
        assert get_operation("dedupe-sorted") is dedupe_sorted_file

    def test_unknown_operation(self):
        with pytest.raises(ValueError, match="Unknown operation"):
            get_operation("reverse")
