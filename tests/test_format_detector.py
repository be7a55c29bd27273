"""Tests for fast table format detection."""

import logging

import pytest

from schemamap.detection.format_detector import (
    CSV_CONFIDENCE,
    MARKDOWN_CONFIDENCE,
    TSV_CONFIDENCE,
    detect_csv_reliability,
    parse_markdown_row,
    quick_detect,
)


class TestQuickDetectTSV:
    def test_minimal_tsv(self):
        result = quick_detect("ID\tName\n1\tA")

        assert result is not None
        assert result.format == "tsv"
        assert result.confidence == TSV_CONFIDENCE == 0.95
        assert result.rows == [["ID", "Name"], ["1", "A"]]

    def test_headers_and_data_rows(self):
        result = quick_detect("ID\tName\tStatus\n1\tTest1\tActive\n2\tTest2\tInactive")

        assert len(result.rows) == 3
        assert result.headers == ["ID", "Name", "Status"]
        assert result.data_rows == [["1", "Test1", "Active"], ["2", "Test2", "Inactive"]]

    def test_blank_lines_ignored(self):
        result = quick_detect("ID\tName\n\n1\tA\n\n")

        assert result.format == "tsv"
        assert len(result.rows) == 2

    def test_inconsistent_field_count_not_tsv(self):
        assert quick_detect("a\tb\n1\t2\t3") is None


class TestQuickDetectMarkdown:
    def test_markdown_table(self):
        content = (
            "| ID | Name | Status |\n"
            "| --- | --- | --- |\n"
            "| 1 | Test1 | Active |\n"
            "| 2 | Test2 | Inactive |"
        )
        result = quick_detect(content)

        assert result is not None
        assert result.format == "markdown_table"
        assert result.confidence == MARKDOWN_CONFIDENCE
        assert result.headers == ["ID", "Name", "Status"]
        assert result.data_rows[0] == ["1", "Test1", "Active"]
        assert len(result.rows) == 3

    def test_aligned_separator(self):
        result = quick_detect("| A | B |\n|:---|---:|\n| 1 | 2 |")

        assert result.format == "markdown_table"
        assert result.rows == [["A", "B"], ["1", "2"]]

    def test_lines_outside_table_are_logged(self, caplog):
        content = "| A | B |\n|---|---|\n| 1 | 2 |\nSource: sprint review\n| 3 | 4 |"

        with caplog.at_level(logging.DEBUG, logger="schemamap.detection.format_detector"):
            result = quick_detect(content)

        assert result.rows == [["A", "B"], ["1", "2"], ["3", "4"]]
        assert "skipped 1 line(s)" in caplog.text

    def test_pipe_without_separator_is_not_markdown(self):
        assert quick_detect("| A | B |\n| 1 | 2 |") is None


class TestQuickDetectCSV:
    def test_csv(self):
        result = quick_detect("ID,Name,Status\n1,Test1,Active\n2,Test2,Inactive")

        assert result is not None
        assert result.format == "csv"
        assert result.confidence == CSV_CONFIDENCE
        assert len(result.rows) == 3

    def test_two_column_csv(self):
        result = quick_detect("ID,Name\n1,A")

        assert result.format == "csv"
        assert result.rows == [["ID", "Name"], ["1", "A"]]

    def test_inconsistent_column_counts(self):
        assert quick_detect("a,b,c\n1,2\n3,4,5") is None

    def test_large_input_not_fast_path_csv(self):
        content = "a,b\n" + "1,2\n" * 99

        assert quick_detect(content) is None


class TestNoDetection:
    @pytest.mark.parametrize(
        "content",
        [
            "",
            "   \n  ",
            "This is just a single line of text",
            "ID,Name,Status",
            "ID\tName",
            "first line\nsecond line",
        ],
    )
    def test_returns_none(self, content):
        assert quick_detect(content) is None


class TestHelpers:
    @pytest.mark.parametrize(
        "line,expected",
        [
            ("| ID | Name | Status |", ["ID", "Name", "Status"]),
            ("|TC-001|Test Case Name|Passed|", ["TC-001", "Test Case Name", "Passed"]),
            ("| --- | --- | --- |", ["---", "---", "---"]),
        ],
    )
    def test_parse_markdown_row(self, line, expected):
        assert parse_markdown_row(line) == expected

    def test_csv_reliability_all_matching(self):
        assert detect_csv_reliability(["a,b", "1,2", "3,4"]) == 1.0

    def test_csv_reliability_partial(self):
        assert detect_csv_reliability(["a,b", "1,2", "3"]) == 0.5

    def test_csv_reliability_requires_comma_and_two_lines(self):
        assert detect_csv_reliability(["a,b"]) == 0.0
        assert detect_csv_reliability(["ab", "12"]) == 0.0

    def test_csv_reliability_samples_at_most_nine_lines(self):
        lines = ["a,b"] + ["1,2"] * 9 + ["x"] * 20

        assert detect_csv_reliability(lines) == 1.0
