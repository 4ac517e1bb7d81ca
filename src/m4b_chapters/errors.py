"""
Exceptions raised by the chapter join/split tools.

Library functions raise these; the command-line layer turns them into a
printed diagnostic and a non-zero exit status.

    ChapterToolError
    ├── UsageError
    │   └── InputNotFoundError
    ├── ExecutableNotFoundError
    │   └── ExecutableNotExecutableError
    ├── ExecutionError
    ├── CollaboratorError
    ├── DurationParseError
    ├── ChapterParseError
    │   ├── ChapterDecodeError
    │   └── ChapterFieldParseError
    ├── TimeBaseError
    ├── NoChaptersError
    ├── TemporaryFileError
    └── OutputDirectoryError
"""

from typing import Any, Dict, List, Optional


class ChapterToolError(Exception):
    """Base exception for all chapter tool errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class UsageError(ChapterToolError):
    """Invalid command-line usage."""


class InputNotFoundError(UsageError):
    """An input file given on the command line does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Input file not found: '{path}'", {'path': path})
        self.path = path


class ExecutableNotFoundError(ChapterToolError):
    """A required external program is not on the search path."""

    def __init__(self, name: str, message: Optional[str] = None):
        super().__init__(
            message or (
                f"Could not find executable '{name}'. "
                "Please ensure it is installed and in your PATH."
            ),
            {'name': name},
        )
        self.name = name


class ExecutableNotExecutableError(ExecutableNotFoundError):
    """A file with the program's name exists on the search path but cannot be executed."""

    def __init__(self, name: str, path: str):
        super().__init__(name, f"Found '{path}' for '{name}', but it is not executable.")
        self.details['path'] = path
        self.path = path


class ExecutionError(ChapterToolError):
    """An external program could not be launched at all."""

    def __init__(self, argv: List[str], reason: str):
        super().__init__(f"Failed to run {argv[0]}: {reason}", {'argv': list(argv)})
        self.argv = list(argv)
        self.reason = reason


class CollaboratorError(ChapterToolError):
    """An external program ran but exited with a non-zero status."""

    def __init__(self, action: str, argv: List[str], exit_status: int,
                 stdout: str = '', stderr: str = ''):
        super().__init__(
            f"{action} (Exit Code: {exit_status})",
            {'argv': list(argv), 'exit_status': exit_status},
        )
        self.action = action
        self.argv = list(argv)
        self.exit_status = exit_status
        self.stdout = stdout
        self.stderr = stderr


class DurationParseError(ChapterToolError):
    """The prober's duration output is not a decimal number."""

    def __init__(self, path: str, output: str):
        super().__init__(
            f"Could not parse duration from ffprobe output for '{path}': {output!r}",
            {'path': path, 'output': output},
        )
        self.path = path
        self.output = output


class ChapterParseError(ChapterToolError):
    """The prober's chapter listing could not be interpreted."""


class ChapterDecodeError(ChapterParseError):
    """The chapter listing is not valid JSON."""

    def __init__(self, reason: str, raw: str):
        super().__init__(f"Failed to decode chapter JSON: {reason}", {'raw': raw})
        self.raw = raw


class ChapterFieldParseError(ChapterParseError):
    """A chapter entry is missing a field or has one of the wrong type."""

    def __init__(self, index: int, field: str, reason: str):
        super().__init__(
            f"Chapter entry {index}: invalid '{field}' field ({reason})",
            {'index': index, 'field': field},
        )
        self.index = index
        self.field = field


class TimeBaseError(ChapterToolError):
    """A chapter's start time cannot be derived from its time base."""

    def __init__(self, chapter_id: int, time_base: str, reason: str):
        super().__init__(
            f"Could not use time_base '{time_base}' for chapter ID {chapter_id}: {reason}",
            {'chapter_id': chapter_id, 'time_base': time_base},
        )
        self.chapter_id = chapter_id
        self.time_base = time_base


class NoChaptersError(ChapterToolError):
    """The input file yielded no usable chapters."""

    def __init__(self, path: str):
        super().__init__(
            f"No chapters parsed from metadata of '{path}'. Does the input file have chapters?",
            {'path': path},
        )
        self.path = path


class TemporaryFileError(ChapterToolError):
    """A private temporary file could not be written."""


class OutputDirectoryError(ChapterToolError):
    """The output directory could not be created."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Could not create output directory '{path}': {reason}", {'path': path})
        self.path = path
