"""
Command-line interface for M4B Chapters.

Provides a unified entry point plus the two standalone programs:
- join / chapter-join: Combine single-chapter M4B files into one chaptered M4B
- split / chapter-break: Split a chaptered M4B into one M4B per chapter
"""

import argparse
import logging
import os
import sys
from typing import Callable, List, Optional

from . import __version__
from .errors import ChapterToolError, CollaboratorError
from .joiner import join_m4b_files
from .splitter import DEFAULT_OUTPUT_DIR, split_m4b_file


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def report_error(error: ChapterToolError) -> None:
    """Print a diagnostic for a failed run, including captured tool output."""
    print(f"Error: {error}", file=sys.stderr)
    if isinstance(error, CollaboratorError):
        tool = os.path.basename(error.argv[0]) if error.argv else 'tool'
        if error.stdout.strip():
            print(f"{tool} stdout:\n{error.stdout}", file=sys.stderr)
        if error.stderr.strip() and error.stderr.strip() not in error.message:
            print(f"{tool} stderr:\n{error.stderr}", file=sys.stderr)


def cmd_join(args) -> int:
    """Handle the join command."""
    setup_logging(args.verbose)

    result = join_m4b_files(args.output, args.inputs)

    print(f"✅ Audiobook created successfully: '{result.output_file}'")
    print(f"  Chapters: {result.chapter_count}")
    print(f"  Duration: {result.total_duration:.1f}s ({result.total_duration / 60:.1f} minutes)")
    return 0


def cmd_split(args) -> int:
    """Handle the split command."""
    setup_logging(args.verbose)

    result = split_m4b_file(
        args.input,
        output_dir=args.output_dir,
        lenient=args.lenient,
        show_progress_bar=args.progress_bar
    )

    if result.total == 0:
        print("⚠️  No chapters found; nothing was written")
        return 0
    if result.successful == result.total:
        print(f"✅ Split {result.total} chapters into '{result.output_dir}/'")
        return 0

    print(f"⚠️  {result.successful}/{result.total} chapters extracted into '{result.output_dir}/'")
    # Partial success still exits 0; only a run that wrote nothing fails
    return 1 if result.successful == 0 else 0


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--version',
        action='version',
        version=f'M4B Chapters {__version__}'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )


def _add_join_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        'output',
        help='Output M4B file path'
    )
    parser.add_argument(
        'inputs',
        nargs='*',
        help='Chapter M4B files, in order (e.g. 01_Intro.m4b 02_Chapter_1.m4b)'
    )


def _add_split_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        'input',
        help='Chaptered M4B file to split'
    )
    parser.add_argument(
        '--output-dir', '-o',
        default=DEFAULT_OUTPUT_DIR,
        help=f'Directory for the chapter files (default: {DEFAULT_OUTPUT_DIR})'
    )
    parser.add_argument(
        '--lenient',
        action='store_true',
        help='Warn instead of failing when the chapter listing is unreadable, malformed or empty'
    )
    parser.add_argument(
        '--progress-bar', '-p',
        action='store_true',
        help='Show a visual progress bar'
    )


JOIN_EPILOG = """
Examples:
  # Join numbered chapter files; "01_" style prefixes are dropped from titles
  %(prog)s complete_audiobook.m4b 01_Opening_Credits.m4b 02_Chapter_1.m4b 03_Chapter_2.m4b
"""

SPLIT_EPILOG = """
Examples:
  # Write output/01_<title>.m4b, output/02_<title>.m4b, ...
  %(prog)s audiobook.m4b

  # Choose the output directory and show a progress bar
  %(prog)s audiobook.m4b --output-dir chapters -p
"""


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = ArgumentParser(
        prog='m4b-chapters',
        description="M4B Chapters - Join and split chaptered M4B audiobooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Join chapter files into one audiobook
  m4b-chapters join book.m4b 01_Intro.m4b 02_Chapter_1.m4b

  # Split an audiobook into one file per chapter
  m4b-chapters split book.m4b --output-dir chapters
        """
    )
    _add_common_arguments(parser)

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    join_parser = subparsers.add_parser(
        'join',
        help='Join M4B files into a single file with one chapter per input',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=JOIN_EPILOG
    )
    _add_join_arguments(join_parser)

    split_parser = subparsers.add_parser(
        'split',
        help='Split an M4B file into one file per chapter',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=SPLIT_EPILOG
    )
    _add_split_arguments(split_parser)

    return parser


def create_join_parser() -> argparse.ArgumentParser:
    """Parser for the standalone chapter-join program."""
    parser = ArgumentParser(
        prog='chapter-join',
        description="Join M4B files into a single M4B with one chapter per input file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=JOIN_EPILOG
    )
    _add_common_arguments(parser)
    _add_join_arguments(parser)
    return parser


def create_split_parser() -> argparse.ArgumentParser:
    """Parser for the standalone chapter-break program."""
    parser = ArgumentParser(
        prog='chapter-break',
        description="Split a chaptered M4B file into one M4B file per chapter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=SPLIT_EPILOG
    )
    _add_common_arguments(parser)
    _add_split_arguments(parser)
    return parser


def _run(handler: Callable[[argparse.Namespace], int], args: argparse.Namespace) -> int:
    try:
        return handler(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except ChapterToolError as e:
        report_error(e)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'join':
        return _run(cmd_join, args)
    elif args.command == 'split':
        return _run(cmd_split, args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


def join_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for chapter-join."""
    args = create_join_parser().parse_args(argv)
    return _run(cmd_join, args)


def split_main(argv: Optional[List[str]] = None) -> int:
    """Entry point for chapter-break."""
    args = create_split_parser().parse_args(argv)
    return _run(cmd_split, args)


if __name__ == '__main__':
    sys.exit(main())
