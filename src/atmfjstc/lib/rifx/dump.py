"""
Command line tool that shows the block structure of a RIFX file.

Usage::

    rifx-dump path/to/file [--max-bytes N] [--no-color] [--verbose]

Each block is shown on a line of its own, indented according to its nesting level, along with its declared size and
a preview of its data. Blocks recovered from malformed data are highlighted.
"""

import sys
import logging

from argparse import ArgumentParser
from typing import Iterable, Tuple, Optional, List, TextIO

from colorama import just_fix_windows_console
from termcolor import colored

from atmfjstc.lib.rifx import parse_rifx_file
from atmfjstc.lib.rifx.errors import RIFXError
from atmfjstc.lib.rifx.model import Block, BlockList


INDENT = '  '

DEFAULT_MAX_BYTES = 16


def render_tree(root: BlockList, max_bytes: int = DEFAULT_MAX_BYTES) -> Iterable[Tuple[str, Optional[str]]]:
    """
    Renders a decoded RIFX tree as text lines.

    Yields:
        ``(line, color)`` tuples, where `color` is a `termcolor` color name or None for lines that need no highlight.
    """
    yield f"RIFX '{root.identifier_text}' ({_count_text(root)})", None

    for depth, block in root.walk():
        yield INDENT * (depth + 1) + format_block(block, max_bytes), ('yellow' if block.recovered else None)


def format_block(block: Block, max_bytes: int = DEFAULT_MAX_BYTES) -> str:
    head = f"{block.type_text:<4} {block.size:>10}"

    if block.is_list:
        return f"{head}  '{block.sublist.identifier_text}' ({_count_text(block.sublist)})"

    text = f"{head}  {preview_bytes(block.raw_data, max_bytes)}"

    return (text + "  [recovered]") if block.recovered else text


def preview_bytes(data: bytes, max_bytes: int) -> str:
    """
    Shows up to `max_bytes` of data as hex followed by the printable characters, e.g. ``31 32 33 |123|``
    """
    shown = data[:max_bytes]

    hex_part = ' '.join(f'{b:02x}' for b in shown)
    text_part = ''.join(chr(b) if 32 <= b < 127 else '.' for b in shown)
    more = ' ...' if len(data) > max_bytes else ''

    if len(shown) == 0:
        return '(empty)' + more

    return f"{hex_part}{more} |{text_part}|"


def _count_text(block_list: BlockList) -> str:
    return f"{block_list.num_blocks} block{'' if block_list.num_blocks == 1 else 's'}"


def dump_rifx(
    root: BlockList, max_bytes: int = DEFAULT_MAX_BYTES, use_color: bool = True, file: Optional[TextIO] = None
):
    file = file or sys.stdout

    for line, color in render_tree(root, max_bytes):
        print(colored(line, color) if (use_color and (color is not None)) else line, file=file)


def init_console_friendly_logging(level: int = logging.WARNING):
    logging.basicConfig(
        level=level,
        style='{',
        format='[{asctime}] {levelname}: {message}',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _parse_args(argv: Optional[List[str]]):
    parser = ArgumentParser(prog='rifx-dump', description="Show the block structure of a RIFX file.")
    parser.add_argument('file', help="Path to the RIFX file")
    parser.add_argument(
        '--max-bytes', '-b', type=int, default=DEFAULT_MAX_BYTES,
        help=f"How many bytes of each block's data to preview (default: {DEFAULT_MAX_BYTES})"
    )
    parser.add_argument('--no-color', action='store_true', help="Do not highlight recovered blocks")
    parser.add_argument('--verbose', '-v', action='store_true', help="Log each block as it is decoded")

    args = parser.parse_args(argv)

    if args.max_bytes < 0:
        parser.error("--max-bytes must be non-negative")

    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)

    init_console_friendly_logging(logging.DEBUG if args.verbose else logging.WARNING)

    use_color = not args.no_color
    if use_color:
        just_fix_windows_console()

    try:
        root = parse_rifx_file(args.file)
    except (RIFXError, OSError) as e:
        message = f"Error: {e}"
        print(colored(message, 'red', attrs=['bold']) if use_color else message, file=sys.stderr)
        return 1

    dump_rifx(root, max_bytes=args.max_bytes, use_color=use_color)

    return 0


if __name__ == '__main__':
    sys.exit(main())
