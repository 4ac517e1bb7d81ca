"""
Tests for the concat list and FFMETADATA writers.
"""

import os
import json
import tempfile

import pytest
from unittest.mock import patch

from m4b_chapters.chapters import (
    ChapterRecord, build_join_timeline, build_split_chapters, parse_chapter_listing
)
from m4b_chapters.errors import TemporaryFileError
from m4b_chapters.metadata import (
    create_chapter_metadata, create_chapter_metadata_content, create_concat_content,
    create_concat_file, escape_ffmetadata, remove_temp_files, to_milliseconds
)


class TestChapterMetadataContent:
    """Test FFMETADATA rendering."""

    def test_layout(self):
        chapters = [ChapterRecord("Intro", 0.0), ChapterRecord("Body", 10.0), ChapterRecord("Outro", 30.0)]
        content = create_chapter_metadata_content(chapters, 35.0)

        assert content == (
            "FFMETADATA1\n"
            "[CHAPTER]\nTIMEBASE=1/1000\nSTART=0\nEND=10000\ntitle=Intro\n\n"
            "[CHAPTER]\nTIMEBASE=1/1000\nSTART=10000\nEND=30000\ntitle=Body\n\n"
            "[CHAPTER]\nTIMEBASE=1/1000\nSTART=30000\nEND=35000\ntitle=Outro\n\n"
        )

    def test_last_end_is_total_duration(self):
        durations = {"a.m4b": 10.0, "b.m4b": 20.0, "c.m4b": 5.0}
        timeline = build_join_timeline(list(durations), durations.__getitem__)
        content = create_chapter_metadata_content(timeline.chapters, timeline.total_duration)

        ends = [line for line in content.splitlines() if line.startswith("END=")]
        assert ends[-1] == "END=35000"

    def test_zero_chapters(self):
        assert create_chapter_metadata_content([], 0.0) == "FFMETADATA1\n"

    def test_milliseconds_truncate(self):
        assert to_milliseconds(1.2349) == 1234
        assert to_milliseconds(0.0009) == 0

    def test_title_escaping(self):
        content = create_chapter_metadata_content([ChapterRecord("a=b;c#d\\e", 0.0)], 1.0)
        assert "title=a\\=b\\;c\\#d\\\\e\n" in content

    def test_escape_newline(self):
        assert escape_ffmetadata("line1\nline2") == "line1\\\nline2"

    def test_join_then_split_recovers_starts(self):
        """Chapter starts survive a write/read cycle to millisecond precision."""
        durations = {"01_A.m4b": 12.3456, "02_B.m4b": 7.0009, "03_C.m4b": 100.25}
        timeline = build_join_timeline(list(durations), durations.__getitem__)
        content = create_chapter_metadata_content(timeline.chapters, timeline.total_duration)

        # Build the listing a prober would report for a file muxed with this metadata
        entries = []
        block = {}
        for line in content.splitlines():
            if line.startswith("START="):
                block["start"] = int(line[len("START="):])
            elif line.startswith("END="):
                block["end"] = int(line[len("END="):])
            elif line.startswith("title="):
                block["title"] = line[len("title="):]
                entries.append({
                    "id": len(entries),
                    "time_base": "1/1000",
                    "start": block["start"],
                    "start_time": f"{block['start'] / 1000:.6f}",
                    "end": block["end"],
                    "end_time": f"{block['end'] / 1000:.6f}",
                    "tags": {"title": block["title"]},
                })
                block = {}

        recovered = build_split_chapters(parse_chapter_listing(json.dumps({"chapters": entries})))
        expected = [0.0, 12.3456, 12.3456 + 7.0009]
        assert [c.title for c in recovered] == ["A", "B", "C"]
        for chapter, start in zip(recovered, expected):
            assert chapter.start_time == pytest.approx(start, abs=0.001)


class TestConcatContent:
    """Test concat list rendering."""

    def test_absolute_paths_in_order(self, tmp_path):
        first = tmp_path / "02_B.m4b"
        second = tmp_path / "01_A.m4b"
        content = create_concat_content([str(first), str(second)])
        assert content == f"file '{first}'\nfile '{second}'\n"

    def test_relative_paths_made_absolute(self):
        content = create_concat_content(["chapter.m4b"])
        assert content == f"file '{os.path.abspath('chapter.m4b')}'\n"

    def test_single_quotes_escaped(self):
        content = create_concat_content(["/books/Author's Cut.m4b"])
        assert content == "file '/books/Author'\\''s Cut.m4b'\n"

    def test_empty(self):
        assert create_concat_content([]) == ""


class TestTempFiles:
    """Test temporary file creation and cleanup."""

    def test_files_are_unique_and_written(self, tmp_path):
        chapters = [ChapterRecord("Intro", 0.0)]
        first = create_chapter_metadata(chapters, 1.0, temp_dir=str(tmp_path))
        second = create_chapter_metadata(chapters, 1.0, temp_dir=str(tmp_path))
        concat = create_concat_file(["/a.m4b"], temp_dir=str(tmp_path))

        assert len({first, second, concat}) == 3
        assert os.path.basename(first).startswith("chapter_metadata_")
        assert os.path.basename(concat).startswith("chapter_join_")
        with open(first, encoding='utf-8') as f:
            assert f.read().startswith("FFMETADATA1\n")
        with open(concat, encoding='utf-8') as f:
            assert f.read() == "file '/a.m4b'\n"

    def test_default_temp_dir(self):
        path = create_concat_file(["/a.m4b"])
        try:
            assert os.path.dirname(path) == tempfile.gettempdir()
        finally:
            os.remove(path)

    def test_unwritable_directory(self, tmp_path):
        missing = tmp_path / "does-not-exist"
        with pytest.raises(TemporaryFileError):
            create_concat_file(["/a.m4b"], temp_dir=str(missing))

    def test_undecodable_path_bytes_are_preserved(self, tmp_path):
        name = "/books/01_Intro\udcff.m4b"
        path = create_concat_file([name], temp_dir=str(tmp_path))

        with open(path, 'rb') as f:
            assert f.read() == b"file '/books/01_Intro\xff.m4b'\n"

    def test_unencodable_content_is_removed(self, tmp_path):
        with pytest.raises(TemporaryFileError):
            create_concat_file(["/books/\ud800.m4b"], temp_dir=str(tmp_path))
        assert os.listdir(tmp_path) == []

    def test_remove_temp_files(self, tmp_path):
        path = create_concat_file(["/a.m4b"], temp_dir=str(tmp_path))
        assert remove_temp_files([path, str(tmp_path / "already-gone.txt")]) is True
        assert not os.path.exists(path)

    def test_remove_failure_is_a_warning(self, tmp_path, caplog):
        path = create_concat_file(["/a.m4b"], temp_dir=str(tmp_path))
        with patch('m4b_chapters.metadata.os.remove', side_effect=PermissionError("denied")):
            assert remove_temp_files([path]) is False
        assert "Could not clean up temporary file" in caplog.text
