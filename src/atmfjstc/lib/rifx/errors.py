from typing import Optional


class RIFXError(Exception):
    """
    Base class for all exceptions thrown by the RIFX parser and the query functions on its results.
    """


class FormatError(RIFXError):
    """
    Raised when the data is clearly not in the RIFX format (e.g. the signature does not match).
    """
    position: int
    expected_magic: bytes
    found_magic: bytes

    def __init__(self, position: int, expected_magic: bytes, found_magic: bytes, meaning: Optional[str] = None):
        self.position = position
        self.expected_magic = expected_magic
        self.found_magic = found_magic

        what = "not a RIFX stream" if meaning is None else f"wrong {meaning}"

        super().__init__(
            f"{what}: at position {position}, expected 0x{expected_magic.hex()}, but found 0x{found_magic.hex()}"
        )


class TruncatedInputError(RIFXError):
    """
    Raised when the data ends before a fixed-size field (tag, size, payload or pad byte) could be read in full.

    The `bytes_consumed` attribute is filled in by the decoder, and holds the number of bytes the failing top-level
    decode call had consumed by the time the error occurred.
    """
    position: int
    expected_length: int
    actual_length: int
    meaning: Optional[str]
    bytes_consumed: Optional[int] = None

    def __init__(self, position: int, expected_length: int, actual_length: int, meaning: Optional[str]):
        self.position = position
        self.expected_length = expected_length
        self.actual_length = actual_length
        self.meaning = meaning

        super().__init__(
            f"At position {position}, expected {expected_length} "
            f"bytes{f' for {meaning}' if meaning is not None else ''}"
            f", but {'the data ends' if actual_length == 0 else f'only {actual_length} were found'}"
        )


class MalformedBlockError(RIFXError):
    """
    Raised in strict mode for a block whose declared size does not fit in its enclosing list, or whose nesting is too
    deep. With the default options, oversized blocks are recovered as ``ANON`` blocks instead.
    """
    position: int
    block_type: bytes
    declared_size: int
    remaining_budget: int

    def __init__(self, position: int, block_type: bytes, declared_size: int, remaining_budget: int, reason: str):
        self.position = position
        self.block_type = block_type
        self.declared_size = declared_size
        self.remaining_budget = remaining_budget

        super().__init__(f"Malformed block of type {block_type!r} at position {position}: {reason}")


class NotFoundError(RIFXError, LookupError):
    """
    Raised when a lookup in a block list finds no matching block.
    """


class DecodeError(RIFXError, ValueError):
    """
    Raised when a block's payload cannot be interpreted in the requested way (wrong length, or not raw data).
    """
