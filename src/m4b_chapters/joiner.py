"""
Join single-chapter M4B files into one multi-chapter M4B.

The audio is stream-copied through FFmpeg's concat demuxer, so no
re-encoding happens; chapter markers come from a generated FFMETADATA file.
"""

import os
import time
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .chapters import ChapterRecord, build_join_timeline, parse_duration
from .errors import CollaboratorError, InputNotFoundError
from .metadata import create_chapter_metadata, create_concat_file, remove_temp_files
from .utils import Toolkit, format_command, format_time, resolve_toolkit, run_process

# Set up logging
logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    """Outcome of a successful join."""
    output_file: str
    chapters: List[ChapterRecord]
    total_duration: float

    @property
    def chapter_count(self) -> int:
        return len(self.chapters)


def validate_input_files(input_files: Sequence[str]) -> None:
    """Fail on the first input that does not exist."""
    logger.info("Validating input files...")
    total = len(input_files)
    for index, file_path in enumerate(input_files, 1):
        if not os.path.isfile(file_path):
            raise InputNotFoundError(file_path)
        logger.info(f"  [{index}/{total}] ✓ {os.path.basename(file_path)}")


def probe_duration(toolkit: Toolkit, file_path: str) -> float:
    """Get the duration of an audio file in seconds via ffprobe."""
    args = [
        '-v', 'error',
        '-show_entries', 'format=duration',
        '-of', 'csv=p=0',
        file_path
    ]
    result = run_process(toolkit.ffprobe, args)
    if not result.ok:
        raise CollaboratorError(
            f"ffprobe failed to get duration of '{file_path}': {result.stderr.strip()}",
            [toolkit.ffprobe, *args], result.exit_status, result.stdout, result.stderr
        )
    return parse_duration(file_path, result.stdout)


def build_concat_command(concat_file: str, metadata_file: str, output_file: str) -> List[str]:
    """FFmpeg arguments for a stream-copy concat with chapters from metadata_file."""
    return [
        '-nostdin',
        '-f', 'concat',
        '-safe', '0',
        '-i', concat_file,
        '-f', 'ffmetadata',
        '-i', metadata_file,
        '-map_metadata', '1',
        '-map_chapters', '1',
        '-c', 'copy',
        '-movflags', 'use_metadata_tags',
        '-avoid_negative_ts', 'make_zero',
        output_file
    ]


def join_m4b_files(output_file: str, input_files: Sequence[str],
                   toolkit: Optional[Toolkit] = None,
                   temp_dir: Optional[str] = None) -> JoinResult:
    """
    Combine M4B files into a single M4B file, one chapter per input.

    Chapter titles come from the input file names with any "NN_" prefix
    removed; each chapter starts where the previous inputs end.

    Args:
        output_file: Path of the combined M4B
        input_files: Inputs in chapter order
        toolkit: Pre-resolved ffmpeg/ffprobe; resolved from PATH if omitted
        temp_dir: Directory for the concat and metadata files (system default if omitted)

    Returns:
        JoinResult describing the written file

    Raises:
        ChapterToolError: Any validation, probing, temp-file or muxing failure
    """
    start = time.time()

    validate_input_files(input_files)

    if toolkit is None:
        toolkit = resolve_toolkit()

    logger.info("Analyzing chapter files...")
    timeline = build_join_timeline(input_files, lambda path: probe_duration(toolkit, path))
    logger.info(
        f"Total duration: {timeline.total_duration:.1f}s "
        f"({timeline.total_duration / 60:.1f} minutes)"
    )

    logger.info("Preparing for concatenation...")
    temp_files = []
    try:
        temp_files.append(create_concat_file(input_files, temp_dir))
        temp_files.append(create_chapter_metadata(timeline.chapters, timeline.total_duration, temp_dir))
        logger.info("  ✓ Created temporary files")

        concat_file, metadata_file = temp_files
        args = build_concat_command(concat_file, metadata_file, output_file)

        logger.info("Concatenating audio files...")
        logger.info(f"  Command: {format_command([toolkit.ffmpeg, *args])}")
        result = run_process(toolkit.ffmpeg, args)
        if not result.ok:
            raise CollaboratorError(
                "ffmpeg failed to concatenate files",
                [toolkit.ffmpeg, *args], result.exit_status, result.stdout, result.stderr
            )
        logger.info("  ✓ Concatenation completed successfully")
    finally:
        if remove_temp_files(temp_files) and temp_files:
            logger.info("  ✓ Cleaned up temporary files")

    logger.info(f"Joined {len(timeline.chapters)} chapters in {format_time(time.time() - start)}")
    return JoinResult(
        output_file=output_file,
        chapters=timeline.chapters,
        total_duration=timeline.total_duration
    )
