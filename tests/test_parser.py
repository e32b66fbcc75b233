"""Tests for SRT segmenter."""

import pytest
from pathlib import Path
import tempfile

from subterm.errors import MalformedInputError
from subterm.parser import parse_blocks, flatten_units, save_text, read_srt, validate_srt_file


class TestParseBlocks:

    def test_parse_simple(self):
        content = """1
00:00:01,000 --> 00:00:03,500
Hello world

2
00:00:04,000 --> 00:00:06,500
Goodbye world

"""
        blocks = parse_blocks(content)
        assert len(blocks) == 2
        assert blocks[0].id == "1"
        assert blocks[0].timestamp == "00:00:01,000 --> 00:00:03,500"
        assert blocks[0].text_lines == ("Hello world",)
        assert blocks[1].text_lines == ("Goodbye world",)

    def test_parse_multiline_keeps_lines(self):
        content = """1
00:00:01,000 --> 00:00:03,500
Line one
Line two
"""
        blocks = parse_blocks(content)
        assert blocks[0].text_lines == ("Line one", "Line two")

    def test_parse_empty(self):
        with pytest.raises(MalformedInputError):
            parse_blocks("")
        with pytest.raises(MalformedInputError):
            parse_blocks("   \n\n  ")

    def test_parse_no_trailing_newline(self):
        """Test that last block is captured even without trailing newlines."""
        content = """1
00:00:01,000 --> 00:00:03,500
First

2
00:00:04,000 --> 00:00:06,500
Last entry"""
        blocks = parse_blocks(content)
        assert len(blocks) == 2
        assert blocks[1].text_lines == ("Last entry",)

    def test_parse_windows_line_endings(self):
        content = "1\r\n00:00:01,000 --> 00:00:03,500\r\nHello\r\n\r\n"
        blocks = parse_blocks(content)
        assert len(blocks) == 1
        assert blocks[0].text_lines == ("Hello",)

    def test_trailing_whitespace_ignored(self):
        content = "1  \n00:00:01,000 --> 00:00:03,500 \nHello   \n\n\n   \n2\n00:00:04,000 --> 00:00:05,000\nBye\n  \n"
        blocks = parse_blocks(content)
        assert [b.id for b in blocks] == ["1", "2"]
        assert blocks[0].timestamp == "00:00:01,000 --> 00:00:03,500"
        assert blocks[0].text_lines == ("Hello",)

    def test_timestamp_passed_through(self):
        content = "1\n 00:00:01,000 --> 00:00:03,500  X1:40 X2:600\nHello"
        blocks = parse_blocks(content)
        assert blocks[0].timestamp == " 00:00:01,000 --> 00:00:03,500  X1:40 X2:600"
        assert blocks[0].to_srt() == content

    def test_block_without_text(self):
        blocks = parse_blocks("1\n00:00:01,000 --> 00:00:03,500\n\n2\n00:00:04,000 --> 00:00:05,000\nHi")
        assert blocks[0].text_lines == ()
        assert blocks[1].text_lines == ("Hi",)

    def test_missing_timestamp(self):
        with pytest.raises(MalformedInputError, match="timestamp"):
            parse_blocks("1\n00:00:01,000 --> 00:00:03,500\nHello\n\n2")

    def test_duplicate_ids(self):
        content = "1\n00:00:01,000 --> 00:00:02,000\nA\n\n1\n00:00:03,000 --> 00:00:04,000\nB"
        with pytest.raises(MalformedInputError, match="Duplicate"):
            parse_blocks(content)


class TestFlattenUnits:

    def test_unique_ids_in_document_order(self):
        content = """7
00:00:01,000 --> 00:00:03,500
a
b

8
00:00:04,000 --> 00:00:06,500
c"""
        units = flatten_units(parse_blocks(content))
        assert [u.unique_id for u in units] == ["7-0", "7-1", "8-0"]
        assert [u.original_text for u in units] == ["a", "b", "c"]

    def test_ids_are_unique(self):
        content = "\n\n".join(
            f"{i}\n00:00:0{i},000 --> 00:00:0{i},500\nx\ny" for i in range(1, 6)
        )
        ids = [u.unique_id for u in flatten_units(parse_blocks(content))]
        assert len(ids) == len(set(ids)) == 10


class TestValidateSrtFile:

    def test_nonexistent(self):
        error = validate_srt_file(Path("/nonexistent/file.srt"))
        assert "not found" in error

    def test_wrong_extension(self):
        with tempfile.NamedTemporaryFile(suffix=".txt") as f:
            error = validate_srt_file(Path(f.name))
            assert "Invalid file extension" in error

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.srt"
        path.write_text("")
        assert validate_srt_file(path) == "File is empty"

    def test_valid_file(self, tmp_path):
        path = tmp_path / "ok.srt"
        path.write_bytes(b"test content")
        assert validate_srt_file(path) is None


class TestFileHelpers:

    def test_save_and_read(self, tmp_path):
        path = tmp_path / "nested" / "out.srt"
        save_text("1\n00:00:01,000 --> 00:00:02,000\n你好", path)
        assert read_srt(path) == "1\n00:00:01,000 --> 00:00:02,000\n你好"

    def test_read_strips_bom(self, tmp_path):
        path = tmp_path / "bom.srt"
        path.write_bytes("\ufeff1\n00:00:01,000 --> 00:00:02,000\nHi".encode("utf-8"))
        assert read_srt(path).startswith("1\n")
