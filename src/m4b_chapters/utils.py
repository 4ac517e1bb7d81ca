"""
Shared helpers: locating ffmpeg/ffprobe, running them, and formatting.
"""

import os
import shlex
import shutil
import subprocess
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .errors import (
    ExecutableNotFoundError, ExecutableNotExecutableError,
    ExecutionError, OutputDirectoryError
)

# Set up logging
logger = logging.getLogger(__name__)

FFMPEG = 'ffmpeg'
FFPROBE = 'ffprobe'


@dataclass(frozen=True)
class ProcessResult:
    """Exit status and captured output of one external program run."""
    exit_status: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


@dataclass(frozen=True)
class Toolkit:
    """Resolved paths of the two external programs."""
    ffmpeg: str
    ffprobe: str


def format_time(seconds: float) -> str:
    """Format seconds into a human-readable time string."""
    if seconds < 60:
        return f"{seconds:.0f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        return f"{hours}h {minutes}m {secs}s"


def format_command(argv: Sequence[str]) -> str:
    """Render an argument vector as a copy-pasteable shell command."""
    return shlex.join(str(arg) for arg in argv)


def resolve_executable(name: str, search_path: Optional[str] = None) -> str:
    """
    Find an executable on the search path, like `which`.

    Args:
        name: Program name (e.g. "ffmpeg")
        search_path: os.pathsep-separated directories; defaults to $PATH

    Returns:
        Absolute path to the executable

    Raises:
        ExecutableNotExecutableError: A file of that name exists but lacks execute permission
        ExecutableNotFoundError: Nothing of that name is on the search path
    """
    if search_path is None:
        search_path = os.environ.get('PATH', os.defpath)

    found = shutil.which(name, path=search_path)
    if found:
        return os.path.abspath(found)

    for directory in search_path.split(os.pathsep):
        if not directory:
            continue
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            raise ExecutableNotExecutableError(name, candidate)

    raise ExecutableNotFoundError(name)


def resolve_toolkit(search_path: Optional[str] = None) -> Toolkit:
    """Resolve ffmpeg and ffprobe, logging where each was found."""
    logger.info("Resolving dependencies...")
    ffmpeg = resolve_executable(FFMPEG, search_path)
    logger.info(f"  ffmpeg:  {ffmpeg}")
    ffprobe = resolve_executable(FFPROBE, search_path)
    logger.info(f"  ffprobe: {ffprobe}")
    return Toolkit(ffmpeg=ffmpeg, ffprobe=ffprobe)


def run_process(executable: str, arguments: Sequence[str]) -> ProcessResult:
    """
    Run an external program to completion and capture its output.

    Both streams are read in full; the call blocks until the child exits.
    A non-zero exit status is returned, not raised.

    Args:
        executable: Path to the program
        arguments: Arguments passed after the program path

    Returns:
        ProcessResult with exit status, stdout and stderr

    Raises:
        ExecutionError: If the program could not be started
    """
    argv: List[str] = [executable, *arguments]
    logger.debug(f"Running: {format_command(argv)}")
    try:
        completed = subprocess.run(
            argv, capture_output=True, text=True,
            encoding='utf-8', errors='replace'
        )
    except OSError as e:
        raise ExecutionError(argv, str(e)) from e

    return ProcessResult(
        exit_status=completed.returncode,
        stdout=completed.stdout or '',
        stderr=completed.stderr or ''
    )


def ensure_output_directory(directory: str) -> str:
    """Create a directory (and parents) if it does not exist yet."""
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(directory, str(e)) from e
    return directory
