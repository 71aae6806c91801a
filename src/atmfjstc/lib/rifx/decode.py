"""
Recursive decoder for RIFX streams.

The format is a big-endian variant of RIFF::

    file        := "RIFX" u32(file_size) list_body
    list_body   := tag4 block*              (blocks bounded by the enclosing size)
    block       := tag4 u32(size) payload pad?
    payload     := list_body                (iff tag4 == "LIST")
                 | raw(size)
    pad         := 0x00                     (iff size is odd)

The decoder reads strictly forward and materializes the whole tree before returning it. Any read that comes up short
aborts the parse with a `TruncatedInputError`. The one kind of corruption that is tolerated is a block whose declared
size does not fit in the enclosing list: such a block, along with everything after it in the list, is absorbed into a
single ``ANON`` block (see `decode_block`).
"""

import logging

from dataclasses import dataclass
from typing import Union, BinaryIO, Optional, Tuple

from atmfjstc.lib.rifx.ChunkReader import ChunkReader, TAG_SIZE, SIZE_FIELD_SIZE
from atmfjstc.lib.rifx.errors import TruncatedInputError, MalformedBlockError
from atmfjstc.lib.rifx.model import Block, BlockList, RawPayload, NestedPayload, LIST_TAG, ANON_TAG, \
    BLOCK_HEADER_SIZE, tag_text


LOG = logging.getLogger(__name__)

RIFX_MAGIC = b'RIFX'


@dataclass(frozen=True)
class DecoderOptions:
    """
    Options controlling how the decoder treats suspicious data.

    Attributes:
        recover_malformed: If True (the default), a block whose declared size exceeds the space left in its enclosing
            list is recovered as an ``ANON`` block. If False, a `MalformedBlockError` is raised instead.
        max_depth: The maximum nesting depth of ``LIST`` blocks. Deeper nesting raises a `MalformedBlockError`. Use
            None to disable the limit.
    """

    recover_malformed: bool = True
    max_depth: Optional[int] = 64

    def __post_init__(self):
        if (self.max_depth is not None) and (self.max_depth < 0):
            raise ValueError(f"max_depth must be non-negative! (is: {self.max_depth})")


DEFAULT_OPTIONS = DecoderOptions()


def parse_rifx(source: Union[bytes, BinaryIO, ChunkReader], options: Optional[DecoderOptions] = None) -> BlockList:
    """
    Parses a complete RIFX stream.

    Args:
        source: The data, as a `bytes` value, a binary file object or an existing `ChunkReader`. The stream is read
            from its current position, forward only.
        options: Decoder options; see `DecoderOptions`.

    Returns:
        The root `BlockList` of the file.

    Raises:
        FormatError: If the stream does not start with the ``RIFX`` signature.
        TruncatedInputError: If the stream ends prematurely anywhere in the structure.
        MalformedBlockError: Only in strict mode (or if the nesting limit is exceeded).
    """
    reader = source if isinstance(source, ChunkReader) else ChunkReader(source)

    reader.expect_magic(RIFX_MAGIC)
    file_size = reader.read_uint32('file size')

    LOG.debug(f"RIFX stream declares {file_size} bytes of content")

    root, _ = decode_list(reader, file_size, options)

    return root


def decode_list(
    reader: ChunkReader, budget: int, options: Optional[DecoderOptions] = None, depth: int = 0
) -> Tuple[BlockList, int]:
    """
    Decodes a list body (identifier followed by blocks) occupying `budget` bytes.

    Returns:
        The decoded list and the number of bytes actually consumed. For well-formed data, the latter is equal to
        `budget`.
    """
    options = options or DEFAULT_OPTIONS
    start_position = reader.tell()

    try:
        identifier = reader.read_tag('list identifier')
        consumed = TAG_SIZE

        LOG.debug(f"List '{tag_text(identifier)}' at {start_position}, {budget} bytes")

        blocks = []
        while consumed < budget:
            block, block_consumed = decode_block(reader, budget - consumed, options, depth)
            blocks.append(block)
            consumed += block_consumed
    except TruncatedInputError as e:
        e.bytes_consumed = reader.tell() - start_position
        raise

    return BlockList(identifier, tuple(blocks)), consumed


def decode_block(
    reader: ChunkReader, remaining_budget: int, options: Optional[DecoderOptions] = None, depth: int = 0
) -> Tuple[Block, int]:
    """
    Decodes a single block (tag, size, payload and padding).

    Args:
        reader: The reader, positioned at the start of the block.
        remaining_budget: How many bytes are left in the enclosing list. A block whose declared payload does not fit
            in this space (after the 8 header bytes) is considered malformed.
        options: Decoder options; see `DecoderOptions`.
        depth: The nesting depth of the enclosing list (0 for the root).

    Returns:
        The block and the number of bytes consumed, including any padding.

    A malformed block is handled by reading the rest of the enclosing list's data verbatim and returning it as a
    recovered ``ANON`` block, whose data is the original tag and size bytes followed by that remainder. This uses up
    the whole remaining budget, so the enclosing list ends with the recovered block. No padding is read in this case.
    """
    options = options or DEFAULT_OPTIONS
    start_position = reader.tell()

    try:
        block_type = reader.read_tag('block type')
        size_bytes = reader.read_amount(SIZE_FIELD_SIZE, f"size of block '{tag_text(block_type)}'")
        declared_size = int.from_bytes(size_bytes, byteorder='big', signed=False)
        consumed = BLOCK_HEADER_SIZE

        available = remaining_budget - BLOCK_HEADER_SIZE

        if declared_size > available:
            if not options.recover_malformed:
                raise MalformedBlockError(
                    start_position, block_type, declared_size, remaining_budget,
                    f"declared size {declared_size} exceeds the {max(available, 0)} bytes left in the enclosing list"
                )

            remainder = reader.read_amount(max(available, 0), 'remainder of malformed block')
            consumed += len(remainder)

            LOG.warning(
                f"Block '{tag_text(block_type)}' at {start_position} declares {declared_size} bytes but only "
                f"{max(available, 0)} are left in the enclosing list; recovered as '{tag_text(ANON_TAG)}'"
            )

            recovered = Block(ANON_TAG, declared_size, RawPayload(block_type + size_bytes + remainder), recovered=True)

            return recovered, consumed

        LOG.debug(f"Block '{tag_text(block_type)}' at {start_position}, {declared_size} bytes")

        if block_type == LIST_TAG:
            if (options.max_depth is not None) and (depth >= options.max_depth):
                raise MalformedBlockError(
                    start_position, block_type, declared_size, remaining_budget,
                    f"lists are nested deeper than the limit of {options.max_depth}"
                )

            content, list_consumed = decode_list(reader, declared_size, options, depth + 1)
            payload = NestedPayload(content)
            consumed += list_consumed
        else:
            payload = RawPayload(reader.read_amount(declared_size, f"data of block '{tag_text(block_type)}'"))
            consumed += declared_size

        if declared_size % 2 != 0:
            reader.skip_bytes(1, f"padding of block '{tag_text(block_type)}'")
            consumed += 1
    except TruncatedInputError as e:
        e.bytes_consumed = reader.tell() - start_position
        raise

    return Block(block_type, declared_size, payload), consumed
