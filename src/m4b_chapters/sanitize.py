"""
Turn arbitrary chapter titles into safe file name segments.
"""

import re
import uuid
import unicodedata
from typing import Callable, Optional

MAX_FILENAME_BYTES = 200
FALLBACK_TITLE_PREFIX = 'Untitled_Chapter_'

# Path separators, quotes (straight and curly) and shell-special characters
UNSAFE_CHARACTERS = frozenset('/\\:\'"<>|?*&%$!@^`~\0“”‘’')

_UNDERSCORE_RUN = re.compile(r'_{2,}')
_EDGE_JUNK = re.compile(r'^[\s_]+|[\s_]+$')


def _random_suffix() -> str:
    return uuid.uuid4().hex[:8].upper()


def fallback_name(suffix_factory: Optional[Callable[[], str]] = None) -> str:
    """Generated name for titles that sanitize to nothing."""
    return f"{FALLBACK_TITLE_PREFIX}{(suffix_factory or _random_suffix)()}"


def _is_unsafe(ch: str) -> bool:
    # Cc covers ASCII/C1 controls, Cf format controls such as zero-width joiners
    return ch in UNSAFE_CHARACTERS or unicodedata.category(ch) in ('Cc', 'Cf')


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes of UTF-8 without splitting a character."""
    encoded = text.encode('utf-8')
    if len(encoded) <= max_bytes:
        return text
    return encoded[:max_bytes].decode('utf-8', errors='ignore')


def sanitize_filename(title: str, max_bytes: int = MAX_FILENAME_BYTES,
                      suffix_factory: Optional[Callable[[], str]] = None) -> str:
    """
    Make a chapter title usable as a single path segment.

    Unsafe characters become underscores, runs of underscores collapse to
    one, and the result is trimmed and limited to max_bytes of UTF-8.
    Titles that end up empty get an "Untitled_Chapter_XXXXXXXX" name.

    Args:
        title: Raw chapter title
        max_bytes: Encoded length limit
        suffix_factory: Source of the 8-hex-digit fallback suffix

    Returns:
        A non-empty, filesystem-safe name
    """
    sanitized = title.strip()
    sanitized = ''.join('_' if _is_unsafe(ch) else ch for ch in sanitized)
    sanitized = _UNDERSCORE_RUN.sub('_', sanitized)
    sanitized = sanitized.strip('_')

    if not sanitized:
        return fallback_name(suffix_factory)

    if len(sanitized.encode('utf-8')) > max_bytes:
        sanitized = _EDGE_JUNK.sub('', truncate_utf8(sanitized, max_bytes))
        if not sanitized:
            return fallback_name(suffix_factory)

    return sanitized
