"""
M4B Chapters - join and split chaptered M4B audiobooks with FFmpeg.

All audio is stream-copied by ffmpeg; chapter data is read with ffprobe
and written through FFMETADATA files.
"""

__version__ = '0.1.0'

from .chapters import ChapterRecord, ProbedChapter, build_join_timeline, build_split_chapters
from .joiner import JoinResult, join_m4b_files
from .sanitize import sanitize_filename
from .splitter import SplitResult, split_m4b_file

__all__ = [
    '__version__',
    'ChapterRecord',
    'ProbedChapter',
    'build_join_timeline',
    'build_split_chapters',
    'JoinResult',
    'join_m4b_files',
    'sanitize_filename',
    'SplitResult',
    'split_m4b_file',
]
