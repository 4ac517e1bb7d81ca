"""
Chapter model and boundary calculation.

Join mode turns an ordered list of input files into chapter records by
accumulating probed durations. Split mode turns ffprobe's JSON chapter
listing into chapter records sorted by start time.
"""

import json
import math
import re
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import (
    ChapterDecodeError, ChapterFieldParseError,
    DurationParseError, TimeBaseError
)

# Set up logging
logger = logging.getLogger(__name__)

NUMERIC_PREFIX = re.compile(r'^\d+_')


@dataclass(frozen=True)
class ChapterRecord:
    """A chapter title and where it starts on the combined timeline."""
    title: str
    start_time: float  # seconds


@dataclass(frozen=True)
class ProbedChapter:
    """One entry of `ffprobe -show_chapters -print_format json`."""
    id: int
    time_base: str      # e.g. "1/1000"
    start: int          # start in time_base units
    start_time: str     # start as decimal string, e.g. "12.500000"
    end: int
    end_time: str
    title: Optional[str] = None

    @classmethod
    def from_json(cls, index: int, entry: Any) -> 'ProbedChapter':
        """Validate one JSON chapter object and build a ProbedChapter from it."""
        if not isinstance(entry, dict):
            raise ChapterFieldParseError(index, 'chapter', 'expected an object')

        tags = entry.get('tags') or {}
        if not isinstance(tags, dict):
            raise ChapterFieldParseError(index, 'tags', 'expected an object')
        title = tags.get('title')
        if title is not None and not isinstance(title, str):
            raise ChapterFieldParseError(index, 'tags.title', 'expected a string')

        return cls(
            id=_int_field(entry, 'id', index),
            time_base=_str_field(entry, 'time_base', index),
            start=_int_field(entry, 'start', index),
            start_time=_str_field(entry, 'start_time', index),
            end=_int_field(entry, 'end', index),
            end_time=_str_field(entry, 'end_time', index),
            title=title,
        )


def _int_field(entry: Dict[str, Any], field: str, index: int) -> int:
    if field not in entry:
        raise ChapterFieldParseError(index, field, 'missing')
    value = entry[field]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ChapterFieldParseError(index, field, f'expected an integer, got {value!r}')
    return value


def _str_field(entry: Dict[str, Any], field: str, index: int) -> str:
    if field not in entry:
        raise ChapterFieldParseError(index, field, 'missing')
    value = entry[field]
    if not isinstance(value, str):
        raise ChapterFieldParseError(index, field, f'expected a string, got {value!r}')
    return value


@dataclass(frozen=True)
class DirectTime:
    """Start time read straight from the decimal `start_time` string."""
    value: float


@dataclass(frozen=True)
class DerivedTime:
    """Start time that has to be computed from time-base units."""
    numerator: int
    denominator: int
    units: int


StartTime = Union[DirectTime, DerivedTime]


def _parse_decimal(text: str) -> Optional[float]:
    try:
        value = float(text.strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_time_base(chapter: ProbedChapter) -> Tuple[int, int]:
    """Split a "num/den" time base into two integers; den must be non-zero."""
    parts = chapter.time_base.split('/')
    if len(parts) != 2:
        raise TimeBaseError(chapter.id, chapter.time_base, 'expected "numerator/denominator"')
    try:
        numerator, denominator = int(parts[0]), int(parts[1])
    except ValueError:
        raise TimeBaseError(chapter.id, chapter.time_base, 'components are not integers') from None
    if denominator == 0:
        raise TimeBaseError(chapter.id, chapter.time_base, 'denominator is zero')
    return numerator, denominator


def start_time_source(chapter: ProbedChapter) -> StartTime:
    """Pick how a chapter's start is known: the decimal string, else time-base arithmetic."""
    value = _parse_decimal(chapter.start_time)
    if value is not None:
        return DirectTime(value)

    logger.warning(
        f"Could not parse start_time string '{chapter.start_time}' for chapter ID "
        f"{chapter.id}. Attempting fallback calculation."
    )
    numerator, denominator = parse_time_base(chapter)
    return DerivedTime(numerator, denominator, chapter.start)


def resolve_start_time(source: StartTime) -> float:
    """Evaluate a start-time variant to seconds."""
    if isinstance(source, DirectTime):
        return source.value
    return source.units * source.numerator / source.denominator


def parse_chapter_listing(raw: str) -> List[ProbedChapter]:
    """
    Parse ffprobe's JSON chapter dump.

    Raises:
        ChapterDecodeError: Output is not JSON or lacks a "chapters" array
        ChapterFieldParseError: A chapter entry is malformed
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ChapterDecodeError(str(e), raw) from e

    if not isinstance(data, dict) or not isinstance(data.get('chapters'), list):
        raise ChapterDecodeError('expected an object with a "chapters" array', raw)

    return [ProbedChapter.from_json(i, entry) for i, entry in enumerate(data['chapters'])]


def build_split_chapters(probed: Sequence[ProbedChapter], lenient: bool = False) -> List[ChapterRecord]:
    """
    Turn probed chapters into records sorted by start time.

    Chapters without a usable title get "Chapter_NN", numbered only among
    the chapters that needed one.

    Args:
        probed: Chapters in the order the prober listed them
        lenient: Drop chapters with an unusable time base instead of failing

    Returns:
        Chapter records, stable-sorted by start time

    Raises:
        TimeBaseError: A start time cannot be determined (strict mode only)
    """
    records = []
    synthesized = 0

    for chapter in probed:
        try:
            start = resolve_start_time(start_time_source(chapter))
        except TimeBaseError as e:
            if not lenient:
                raise
            logger.warning(f"{e}. Skipping chapter.")
            continue

        title = chapter.title
        if title is None or not title.strip():
            synthesized += 1
            title = f"Chapter_{synthesized:02d}"
            logger.warning(f"Chapter ID {chapter.id} found with missing title. Using default: '{title}'")

        records.append(ChapterRecord(title=title, start_time=start))

    records.sort(key=lambda record: record.start_time)
    return records


def chapter_spans(chapters: Sequence[ChapterRecord]) -> Iterator[Tuple[int, ChapterRecord, Optional[float]]]:
    """Yield (1-based number, chapter, end) where end is the next start, or None for the last."""
    for i, chapter in enumerate(chapters):
        end = chapters[i + 1].start_time if i + 1 < len(chapters) else None
        yield i + 1, chapter, end


@dataclass
class JoinTimeline:
    """Chapters of a joined book plus its overall length."""
    chapters: List[ChapterRecord]
    total_duration: float


def title_from_filename(file_path: str) -> str:
    """Chapter title from a file name: extension and a leading "NN_" removed."""
    return NUMERIC_PREFIX.sub('', Path(file_path).stem, count=1)


def parse_duration(file_path: str, output: str) -> float:
    """Parse ffprobe's bare `format=duration` output."""
    value = _parse_decimal(output)
    if value is None:
        raise DurationParseError(file_path, output)
    return value


def build_join_timeline(file_paths: Sequence[str], probe_duration: Callable[[str], float]) -> JoinTimeline:
    """
    Lay input files end to end, one chapter per file.

    Each chapter starts where the previous files' durations add up to.

    Args:
        file_paths: Input files in join order
        probe_duration: Returns a file's duration in seconds

    Returns:
        JoinTimeline with one record per file and the summed duration
    """
    chapters = []
    current_time = 0.0
    total = len(file_paths)

    for index, file_path in enumerate(file_paths, 1):
        duration = probe_duration(file_path)
        title = title_from_filename(file_path)
        chapters.append(ChapterRecord(title=title, start_time=current_time))
        logger.info(f"  [{index}/{total}] ✓ {Path(file_path).name} ({duration:.1f}s) -> '{title}'")
        current_time += duration

    return JoinTimeline(chapters=chapters, total_duration=current_time)
