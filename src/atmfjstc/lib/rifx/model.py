"""
Data model for a decoded RIFX file: a tree of `Block` objects grouped into `BlockList` objects.

A `Block` carries either raw data or, for blocks of type ``LIST``, a nested `BlockList`. The two cases are modeled as
the `RawPayload` and `NestedPayload` variants of `Payload`, so that code which needs to tell them apart can do so with
a simple ``isinstance`` check. The `Block.data` property offers the underlying value directly for convenience.

All objects are immutable. The query functions on `BlockList` (`filter`, `sublist_merge` etc.) always build new
lists and never modify the one they are called on.
"""

import struct
import dataclasses

from dataclasses import dataclass
from typing import Union, Tuple, List, Iterator, Callable, Any, Optional, TypeVar

from atmfjstc.lib.rifx.errors import DecodeError, NotFoundError


TagLike = Union[str, bytes]

T = TypeVar('T')

LIST_TAG = b'LIST'
ANON_TAG = b'ANON'

BLOCK_HEADER_SIZE = 8


def make_tag(tag: TagLike) -> bytes:
    """
    Converts a tag given as text or bytes to the raw 4-byte form used throughout the model.

    Text tags are encoded as Latin-1, so that every possible byte value can be expressed.
    """
    if isinstance(tag, str):
        try:
            tag = tag.encode('latin-1')
        except UnicodeEncodeError as e:
            raise ValueError(f"Tag {tag!r} contains characters that cannot be stored in a single byte") from e

    if not isinstance(tag, bytes):
        raise TypeError(f"Tag must be str or bytes, got '{type(tag).__name__}'")
    if len(tag) != 4:
        raise ValueError(f"Tag must be exactly 4 bytes long, got {tag!r}")

    return tag


def tag_text(tag: bytes) -> str:
    """
    Lossy display form of a raw tag. Non-printable bytes are shown as escapes.
    """
    return ''.join(chr(b) if 32 <= b < 127 else f'\\x{b:02x}' for b in tag)


@dataclass(frozen=True)
class Payload:
    pass


@dataclass(frozen=True)
class RawPayload(Payload):
    data: bytes


@dataclass(frozen=True)
class NestedPayload(Payload):
    content: 'BlockList'


@dataclass(frozen=True)
class Block:
    """
    A single chunk of a RIFX file.

    Attributes:
        type: The 4-byte type tag, as raw bytes.
        size: The payload size declared in the stream. For recovered blocks this is the (untrustworthy) size that
            triggered the recovery.
        payload: Either a `RawPayload` or, for ``LIST`` blocks, a `NestedPayload`.
        recovered: True if this is a synthetic ``ANON`` block produced when the declared size did not fit in the
            enclosing list. The raw data then consists of the original tag and size bytes followed by the rest of the
            enclosing list's data.
    """

    type: bytes
    size: int
    payload: Payload
    recovered: bool = False

    @property
    def type_text(self) -> str:
        return tag_text(self.type)

    @property
    def data(self) -> Union[bytes, 'BlockList']:
        if isinstance(self.payload, NestedPayload):
            return self.payload.content

        return self.payload.data

    @property
    def is_list(self) -> bool:
        return isinstance(self.payload, NestedPayload)

    @property
    def footprint(self) -> int:
        """
        The number of bytes this block occupied in the stream, including the tag, size field and any padding.
        """
        if self.recovered:
            return len(self.raw_data)

        return BLOCK_HEADER_SIZE + self.size + (self.size & 1)

    @property
    def raw_data(self) -> bytes:
        if not isinstance(self.payload, RawPayload):
            raise DecodeError(f"Block of type '{self.type_text}' contains a list, not raw data")

        return self.payload.data

    @property
    def sublist(self) -> 'BlockList':
        if not isinstance(self.payload, NestedPayload):
            raise DecodeError(f"Block of type '{self.type_text}' contains raw data, not a list")

        return self.payload.content

    def to_text(self, encoding: str = 'latin-1') -> str:
        """
        Returns the payload as text. The default Latin-1 encoding maps every byte to a character, so this never fails
        on arbitrary binary data.
        """
        return self.raw_data.decode(encoding)

    def to_struct(self, struct_format: str, into: Optional[Callable[..., T]] = None) -> Union[tuple, T]:
        """
        Deserializes the payload as a packed structure.

        Args:
            struct_format: The format of the structure, as per the Python `struct` package. Big-endian byte order is
                assumed unless the format starts with its own byte order specifier.
            into: Optionally, a class to build from the unpacked values, e.g. a `NamedTuple` or a dataclass. The
                values are passed positionally, in the order of the fields.

        Returns:
            The unpacked values as a tuple, or an instance of `into`.

        Raises:
            DecodeError: If the payload length does not match the size of the structure exactly, or if `into` is a
                `NamedTuple` or dataclass with a different number of fields than the structure.
        """
        if (struct_format == '') or (struct_format[0] not in '@=<>!'):
            struct_format = '>' + struct_format

        data = self.raw_data
        expected_size = struct.calcsize(struct_format)

        if len(data) != expected_size:
            raise DecodeError(
                f"Block of type '{self.type_text}' has {len(data)} bytes, but structure '{struct_format}' requires "
                f"{expected_size}"
            )

        values = struct.unpack(struct_format, data)

        if into is None:
            return values

        n_fields = _count_init_fields(into)

        if (n_fields is not None) and (n_fields != len(values)):
            raise DecodeError(
                f"Structure '{struct_format}' has {len(values)} fields, but {into.__name__} expects {n_fields}"
            )

        return into(*values)

    def to_int(self, n_bytes: int, signed: bool = False) -> int:
        """
        Reads a big-endian integer from the first `n_bytes` of the payload. Any further bytes are ignored.
        """
        if n_bytes < 1:
            raise ValueError("Number of bytes in int must be at least 1")

        data = self.raw_data

        if len(data) < n_bytes:
            raise DecodeError(
                f"Block of type '{self.type_text}' has {len(data)} bytes, too few for a {n_bytes * 8}-bit int"
            )

        return int.from_bytes(data[:n_bytes], byteorder='big', signed=signed)

    def to_uint8(self) -> int:
        return self.to_int(1)

    def to_uint16(self) -> int:
        return self.to_int(2)

    def to_uint32(self) -> int:
        return self.to_int(4)

    def to_uint64(self) -> int:
        return self.to_int(8)


def _count_init_fields(cls: Callable) -> Optional[int]:
    if dataclasses.is_dataclass(cls):
        return len([field for field in dataclasses.fields(cls) if field.init])
    if isinstance(cls, type) and issubclass(cls, tuple) and hasattr(cls, '_fields'):
        return len(cls._fields)

    return None


@dataclass(frozen=True)
class BlockList:
    """
    An ordered sequence of blocks sharing a 4-byte identifier.

    The root of a decoded file is a `BlockList`, as is the content of every ``LIST`` block. The order of the blocks is
    the order in which they occur in the stream.
    """

    identifier: bytes
    blocks: Tuple[Block, ...] = ()

    def __post_init__(self):
        if not isinstance(self.blocks, tuple):
            object.__setattr__(self, 'blocks', tuple(self.blocks))

    @property
    def identifier_text(self) -> str:
        return tag_text(self.identifier)

    @property
    def num_blocks(self) -> int:
        return len(self.blocks)

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self.blocks)

    def __getitem__(self, index: int) -> Block:
        return self.blocks[index]

    def for_each(self, callback: Callable[[Block], Any]):
        for block in self.blocks:
            callback(block)

    def map(self, callback: Callable[[Block], T]) -> List[T]:
        return [callback(block) for block in self.blocks]

    def filter(self, predicate: Callable[[Block], bool]) -> 'BlockList':
        """
        Returns a new list with the same identifier, containing only the blocks for which `predicate` holds.
        """
        return BlockList(self.identifier, tuple(block for block in self.blocks if predicate(block)))

    def find(self, predicate: Callable[[Block], bool]) -> Block:
        """
        Returns the first block for which `predicate` holds.

        Raises:
            NotFoundError: If there is no such block.
        """
        for block in self.blocks:
            if predicate(block):
                return block

        raise NotFoundError(f"No matching block found in list '{self.identifier_text}'")

    def find_type(self, block_type: TagLike) -> Block:
        """
        Returns the first block of a given type. Raises `NotFoundError` if there is none.
        """
        block_type = make_tag(block_type)

        try:
            return self.find(lambda block: block.type == block_type)
        except NotFoundError:
            raise NotFoundError(
                f"No block of type '{tag_text(block_type)}' found in list '{self.identifier_text}'"
            ) from None

    def sublist_filter(self, identifier: TagLike) -> List['BlockList']:
        """
        Returns the lists nested directly under this one (i.e. in its ``LIST`` blocks) that have the given identifier.

        Only direct children are considered, the search is not recursive.
        """
        identifier = make_tag(identifier)

        return [
            block.payload.content for block in self.blocks
            if (block.type == LIST_TAG)
            and isinstance(block.payload, NestedPayload)
            and (block.payload.content.identifier == identifier)
        ]

    def sublist_merge(self, identifier: TagLike) -> 'BlockList':
        """
        Concatenates the blocks of all the direct sublists with the given identifier into a single new list with that
        identifier.

        This is useful when a format scatters same-tagged groups among other blocks. If no sublists match, the result
        is an empty list.
        """
        identifier = make_tag(identifier)

        return BlockList(
            identifier,
            tuple(block for sublist in self.sublist_filter(identifier) for block in sublist.blocks)
        )

    def walk(self) -> Iterator[Tuple[int, Block]]:
        """
        Iterates depth-first through all the blocks in this list and its nested lists, yielding ``(depth, block)``
        tuples. Blocks in this list have depth 0.
        """
        for block in self.blocks:
            yield 0, block

            if isinstance(block.payload, NestedPayload):
                for depth, sub_block in block.payload.content.walk():
                    yield depth + 1, sub_block
