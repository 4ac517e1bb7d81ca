"""
FFmpeg input files for a join: the concat list and the FFMETADATA chapter file.

Both are written to private, uniquely named temporary files and removed
again once ffmpeg has finished with them.
"""

import os
import re
import tempfile
import logging
from typing import Iterable, List, Optional, Sequence

from .chapters import ChapterRecord
from .errors import TemporaryFileError

# Set up logging
logger = logging.getLogger(__name__)

FFMETADATA_HEADER = 'FFMETADATA1'
CONCAT_PREFIX = 'chapter_join_'
METADATA_PREFIX = 'chapter_metadata_'

_FFMETADATA_SPECIAL = re.compile(r'([\\=;#\n])')


def to_milliseconds(seconds: float) -> int:
    """Seconds to whole milliseconds, truncated toward zero."""
    return int(seconds * 1000)


def escape_ffmetadata(value: str) -> str:
    """Backslash-escape '=', ';', '#', '\\' and newlines in an FFMETADATA value."""
    return _FFMETADATA_SPECIAL.sub(r'\\\1', value)


def escape_concat_path(path: str) -> str:
    """Quote a path for the concat demuxer's `file '...'` directive."""
    # Close the quote, emit an escaped quote, reopen
    return path.replace("'", "'\\''")


def create_concat_content(files: Iterable[str]) -> str:
    """One `file '<absolute path>'` line per input, in join order."""
    return ''.join(
        f"file '{escape_concat_path(os.path.abspath(file_path))}'\n"
        for file_path in files
    )


def create_chapter_metadata_content(chapters: Sequence[ChapterRecord], total_duration: float) -> str:
    """
    Render chapters in FFmpeg's FFMETADATA format.

    Each chapter ends where the next one starts; the last one ends at
    total_duration. Times use a 1/1000 time base.

    Args:
        chapters: Chapter records in timeline order
        total_duration: Length of the whole timeline in seconds

    Returns:
        The metadata text, header included
    """
    lines = [FFMETADATA_HEADER]
    for index, chapter in enumerate(chapters):
        if index < len(chapters) - 1:
            end_ms = to_milliseconds(chapters[index + 1].start_time)
        else:
            end_ms = to_milliseconds(total_duration)

        lines.extend([
            '[CHAPTER]',
            'TIMEBASE=1/1000',
            f'START={to_milliseconds(chapter.start_time)}',
            f'END={end_ms}',
            f'title={escape_ffmetadata(chapter.title)}',
            '',
        ])
    return '\n'.join(lines) + '\n'


def write_temp_file(content: str, prefix: str, temp_dir: Optional[str] = None) -> str:
    """
    Write text to a new uniquely named temporary file.

    Returns:
        Path to the file; the caller is responsible for removing it

    Raises:
        TemporaryFileError: If the file cannot be created or written
    """
    try:
        fd, path = tempfile.mkstemp(prefix=prefix, suffix='.txt', dir=temp_dir)
    except OSError as e:
        raise TemporaryFileError(f"Failed to create temporary file: {e}") from e

    try:
        # Undecodable path bytes arrive as surrogates; write them back out unchanged
        with os.fdopen(fd, 'w', encoding='utf-8', errors='surrogateescape', newline='\n') as f:
            f.write(content)
    except (OSError, UnicodeError) as e:
        remove_temp_files([path])
        raise TemporaryFileError(f"Failed to write temporary file {path}: {e}") from e

    logger.debug(f"Wrote {path}")
    return path


def create_concat_file(files: Sequence[str], temp_dir: Optional[str] = None) -> str:
    """Create a temporary concat list for FFmpeg."""
    return write_temp_file(create_concat_content(files), CONCAT_PREFIX, temp_dir)


def create_chapter_metadata(chapters: Sequence[ChapterRecord], total_duration: float,
                            temp_dir: Optional[str] = None) -> str:
    """Create a temporary FFMETADATA file with chapter information."""
    return write_temp_file(
        create_chapter_metadata_content(chapters, total_duration),
        METADATA_PREFIX, temp_dir
    )


def remove_temp_files(paths: Iterable[str]) -> bool:
    """
    Delete temporary files, warning about (not raising on) failures.

    Returns:
        True if every file was removed
    """
    failed: List[str] = []
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning(f"Could not clean up temporary file {path}: {e}")
            failed.append(path)
    return not failed
