"""
Split a chaptered M4B file into one M4B file per chapter.

Chapters are read with ffprobe's JSON output and each one is cut out with
an FFmpeg stream copy. A failed chapter is logged and skipped; everything
before the extraction loop is fatal.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from tqdm import tqdm

from .chapters import (
    ChapterRecord, ProbedChapter, build_split_chapters,
    chapter_spans, parse_chapter_listing
)
from .errors import (
    ChapterParseError, CollaboratorError, ExecutionError,
    InputNotFoundError, NoChaptersError
)
from .sanitize import sanitize_filename
from .utils import Toolkit, ensure_output_directory, resolve_toolkit, run_process

# Set up logging
logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = 'output'


@dataclass
class SplitResult:
    """Outcome of a split run."""
    output_dir: str
    chapters: List[ChapterRecord]
    written: List[str] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.chapters)

    @property
    def successful(self) -> int:
        return len(self.written)


def probe_chapters(toolkit: Toolkit, input_file: str, lenient: bool = False) -> List[ProbedChapter]:
    """
    Read an input file's chapter listing with ffprobe.

    Args:
        toolkit: Resolved ffmpeg/ffprobe
        input_file: File to probe
        lenient: Treat an undecodable listing or malformed chapter entry as an
            empty listing instead of failing

    Raises:
        CollaboratorError: ffprobe exited non-zero
        ChapterParseError: Output or a chapter entry could not be decoded (strict mode)
    """
    args = [
        '-v', 'error',
        '-show_chapters',
        '-print_format', 'json',
        input_file
    ]
    result = run_process(toolkit.ffprobe, args)
    if not result.ok:
        raise CollaboratorError(
            "ffprobe failed to extract metadata",
            [toolkit.ffprobe, *args], result.exit_status, result.stdout, result.stderr
        )

    try:
        return parse_chapter_listing(result.stdout)
    except ChapterParseError as e:
        logger.debug(f"--- JSON Data Start ---\n{result.stdout}\n--- JSON Data End ---")
        if not lenient:
            raise
        logger.warning(f"{e}. Continuing without chapters.")
        return []


def chapter_filename(number: int, title: str) -> str:
    """Output name for a chapter: "NN_<sanitized title>.m4b"."""
    return f"{number:02d}_{sanitize_filename(title)}.m4b"


def build_extract_command(input_file: str, start: float, end: Optional[float], output_file: str) -> List[str]:
    """FFmpeg arguments that stream-copy [start, end) of input_file; no end means to EOF."""
    args = [
        '-nostdin',
        '-i', input_file,
        '-ss', f'{start:.6f}'
    ]
    if end is not None:
        args.extend(['-to', f'{end:.6f}'])
    args.extend([
        '-c', 'copy',
        '-map_metadata', '0',
        '-vn',
        output_file
    ])
    return args


def extract_chapter(toolkit: Toolkit, input_file: str, start: float,
                    end: Optional[float], output_file: str) -> bool:
    """Cut one chapter out of input_file. Failures are logged, not raised."""
    args = build_extract_command(input_file, start, end, output_file)
    try:
        result = run_process(toolkit.ffmpeg, args)
    except ExecutionError as e:
        logger.error(f"    {e}")
        return False

    if not result.ok:
        logger.error(f"    ffmpeg failed (Exit Code: {result.exit_status}).")
        logger.error(f"    ffmpeg stderr:\n{result.stderr}")
        return False
    return True


def split_m4b_file(input_file: str, output_dir: str = DEFAULT_OUTPUT_DIR,
                   toolkit: Optional[Toolkit] = None, lenient: bool = False,
                   show_progress_bar: bool = False) -> SplitResult:
    """
    Split an M4B file at its chapter marks.

    Args:
        input_file: Chaptered M4B to split
        output_dir: Directory for the per-chapter files (created if missing)
        toolkit: Pre-resolved ffmpeg/ffprobe; resolved from PATH if omitted
        lenient: Warn instead of failing on undecodable listings, unusable
            time bases and files without chapters
        show_progress_bar: Show a tqdm progress bar over the chapters

    Returns:
        SplitResult listing written files and failed chapter numbers

    Raises:
        ChapterToolError: Any failure before the per-chapter loop
    """
    if not os.path.isfile(input_file):
        raise InputNotFoundError(input_file)

    if toolkit is None:
        toolkit = resolve_toolkit()

    ensure_output_directory(output_dir)
    logger.info(f"Output directory created/ensured at '{output_dir}'")

    logger.info(f"Extracting chapter metadata from '{input_file}'...")
    chapters = build_split_chapters(probe_chapters(toolkit, input_file, lenient), lenient)
    result = SplitResult(output_dir=output_dir, chapters=chapters)

    if not chapters:
        if not lenient:
            raise NoChaptersError(input_file)
        logger.warning(f"No chapters parsed from metadata of '{input_file}'. Nothing to split.")
        return result

    logger.info(f"Found {len(chapters)} chapters.")
    logger.info("Splitting chapters...")

    spans = chapter_spans(chapters)
    progress_bar = None
    if show_progress_bar:
        progress_bar = tqdm(total=len(chapters), desc="Splitting", unit="chapter")

    try:
        for number, chapter, end in spans:
            filename = chapter_filename(number, chapter.title)
            output_file = os.path.join(output_dir, filename)

            if progress_bar is None:
                logger.info(f"  [{number}/{len(chapters)}] '{chapter.title}' to '{filename}'...")

            if extract_chapter(toolkit, input_file, chapter.start_time, end, output_file):
                result.written.append(output_file)
                if progress_bar is None:
                    logger.info(f"  [{number}/{len(chapters)}] ✓ {filename}")
            else:
                result.failed.append(number)
                logger.warning(f"  [{number}/{len(chapters)}] ✗ Failed to extract chapter {number}")

            if progress_bar is not None:
                progress_bar.update(1)
                progress_bar.set_postfix({'Success': result.successful, 'Chapter': filename[:30]})
    finally:
        if progress_bar is not None:
            progress_bar.close()

    logger.info(f"Chapter splitting complete. Output files are in '{output_dir}/'")
    return result
