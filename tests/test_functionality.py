"""
Functionality tests for M4B Chapters - joining and splitting real audio.

These tests create real audio files with FFmpeg and run the join and split
workflows end to end.
"""

import pytest
import tempfile
import os
import shutil
import subprocess

from m4b_chapters.errors import ChapterToolError
from m4b_chapters.joiner import join_m4b_files, probe_duration
from m4b_chapters.splitter import probe_chapters, split_m4b_file
from m4b_chapters.chapters import build_split_chapters
from m4b_chapters.utils import resolve_toolkit


class TestAudioFunctionality:
    """Test joining and splitting actual M4B files."""

    @pytest.fixture(autouse=True)
    def setup_and_teardown(self):
        """Setup and teardown for each test."""
        try:
            self.toolkit = resolve_toolkit()
        except ChapterToolError:
            pytest.skip("FFmpeg not available, skipping functionality tests")

        self.temp_dir = tempfile.mkdtemp(prefix="m4b_chapters_test_")
        yield

        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def create_test_m4b(self, filename: str, duration: float) -> str:
        """Create a mono AAC M4B file of a sine tone."""
        output_path = os.path.join(self.temp_dir, filename)
        cmd = [
            self.toolkit.ffmpeg, '-nostdin', '-f', 'lavfi',
            '-i', f'sine=frequency=440:duration={duration}:sample_rate=22050',
            '-ac', '1',
            '-c:a', 'aac',
            '-b:a', '64k',
            '-y',
            output_path
        ]
        try:
            subprocess.run(cmd, capture_output=True, text=True, check=True)
        except subprocess.CalledProcessError as e:
            pytest.fail(f"Failed to create test audio file {output_path}: {e.stderr}")
        return output_path

    def test_join_then_split(self):
        """Joined chapter marks match the summed input durations and split back out."""
        inputs = [
            self.create_test_m4b("01_Opening.m4b", 2.0),
            self.create_test_m4b("02_Middle Part.m4b", 1.5),
            self.create_test_m4b("03_Ending.m4b", 2.5),
        ]
        durations = [probe_duration(self.toolkit, path) for path in inputs]
        joined = os.path.join(self.temp_dir, "joined.m4b")

        result = join_m4b_files(joined, inputs, toolkit=self.toolkit)

        assert os.path.getsize(joined) > 0
        assert result.chapter_count == 3
        assert result.total_duration == pytest.approx(sum(durations))

        chapters = build_split_chapters(probe_chapters(self.toolkit, joined))
        assert [c.title for c in chapters] == ["Opening", "Middle Part", "Ending"]
        expected_starts = [0.0, durations[0], durations[0] + durations[1]]
        for chapter, expected in zip(chapters, expected_starts):
            assert chapter.start_time == pytest.approx(expected, abs=0.01)

        output_dir = os.path.join(self.temp_dir, "output")
        split = split_m4b_file(joined, output_dir=output_dir, toolkit=self.toolkit)

        assert split.successful == split.total == 3
        assert sorted(os.listdir(output_dir)) == [
            "01_Opening.m4b", "02_Middle Part.m4b", "03_Ending.m4b"
        ]
        for path in split.written:
            assert os.path.getsize(path) > 0
