"""
This module contains the `ChunkReader` class, a forward-only cursor over a binary stream that offers the primitives
needed for decoding RIFX chunks: tags, big-endian sizes, payloads and padding.
"""

from typing import Union, BinaryIO, Optional
from io import BytesIO, IOBase, TextIOBase

from atmfjstc.lib.rifx.errors import FormatError, TruncatedInputError


TAG_SIZE = 4
SIZE_FIELD_SIZE = 4

READ_BUF_SIZE = 1000000


class ChunkReader:
    """
    This class wraps a binary I/O file object (or a `bytes` value) and reads from it strictly sequentially.

    The reader never seeks, so it works equally well over files, pipes and sockets. Its position is counted from the
    moment it was created, not from the start of the underlying file.
    """

    _fileobj: BinaryIO
    _position: int

    def __init__(self, data_or_fileobj: Union[bytes, BinaryIO]):
        self._fileobj = _parse_main_input_arg(data_or_fileobj)
        self._position = 0

    def tell(self) -> int:
        return self._position

    def read_at_most(self, n_bytes: int) -> bytes:
        """
        Try to read `n_bytes` of data, returning fewer only if the data is exhausted.

        Short reads, e.g. from a socket, are handled. The data is requested in pieces of at most `READ_BUF_SIZE` bytes,
        so a huge size read from a corrupt file fails on the missing data rather than on allocating a buffer for it.
        """

        if n_bytes < 0:
            raise ValueError("The number of bytes to read cannot be negative")
        if n_bytes == 0:
            return b''

        parts = []
        total_read = 0

        while total_read < n_bytes:
            new_data = self._fileobj.read(min(READ_BUF_SIZE, n_bytes - total_read))

            if not new_data:
                break

            parts.append(new_data)
            total_read += len(new_data)

        self._position += total_read

        return b''.join(parts)

    def read_amount(self, n_bytes: int, meaning: Optional[str] = None) -> bytes:
        """
        Reads exactly `n_bytes` from the underlying stream.

        Args:
            n_bytes: The amount of bytes to read.
            meaning: An indication as to the meaning of the data being read (e.g. "block size"). It is used in the
                text of any exceptions that may be thrown.

        Returns:
            The data, as a `bytes` object `n_bytes` in length.

        Raises:
            TruncatedInputError: If the data ends before the full `n_bytes` could be read.
        """

        original_pos = self._position

        data = self.read_at_most(n_bytes)

        if len(data) < n_bytes:
            raise TruncatedInputError(original_pos, n_bytes, len(data), meaning)

        return data

    def skip_bytes(self, n_bytes: int, meaning: Optional[str] = None):
        """
        Skips over a number of bytes, ignoring the data. The bytes MUST be present.
        """
        self.read_amount(n_bytes, meaning)

    def read_tag(self, meaning: Optional[str] = None) -> bytes:
        """
        Reads a 4-byte chunk tag. The tag is returned as raw bytes, as it is not guaranteed to be valid text.
        """
        return self.read_amount(TAG_SIZE, meaning or 'tag')

    def read_uint32(self, meaning: Optional[str] = None) -> int:
        """
        Reads a big-endian unsigned 32-bit integer.
        """
        return int.from_bytes(self.read_amount(SIZE_FIELD_SIZE, meaning or 'uint32'), byteorder='big', signed=False)

    def expect_magic(self, magic: bytes, meaning: Optional[str] = None):
        """
        Verifies that a specific bytes sequence ("magic") follows in the underlying stream.

        Raises:
            FormatError: If the read sequence does not match the expected one.
            TruncatedInputError: If the data ends before the full length of the magic could be read.
        """

        data = self.read_amount(len(magic), meaning or 'magic')

        if data != magic:
            raise FormatError(self._position - len(magic), magic, data, meaning)


def _parse_main_input_arg(input_: Union[bytes, BinaryIO]) -> BinaryIO:
    if isinstance(input_, (bytes, bytearray, memoryview)):
        return BytesIO(input_)

    if not isinstance(input_, IOBase):
        raise TypeError("Input to ChunkReader must be either bytes or a file object")
    if isinstance(input_, TextIOBase):
        raise TypeError("ChunkReader works on binary, not text file objects")

    return input_
