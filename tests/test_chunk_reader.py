import io
import unittest

from atmfjstc.lib.rifx.ChunkReader import ChunkReader, READ_BUF_SIZE
from atmfjstc.lib.rifx.errors import FormatError, TruncatedInputError


class TrickleStream(io.RawIOBase):
    """
    Non-seekable stream that delivers at most one byte per read, like a slow pipe.
    """

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0

    def readable(self):
        return True

    def readinto(self, buffer):
        if self._pos >= len(self._data):
            return 0

        buffer[0] = self._data[self._pos]
        self._pos += 1

        return 1


class RecordingStream(io.BytesIO):
    def __init__(self, data: bytes):
        super().__init__(data)
        self.requests = []

    def read(self, size=-1):
        self.requests.append(size)
        return super().read(size)


class ChunkReaderInputTest(unittest.TestCase):
    def test_bytes(self):
        self.assertEqual(ChunkReader(b'abcd').read_amount(4), b'abcd')

    def test_file_object(self):
        self.assertEqual(ChunkReader(io.BytesIO(b'abcd')).read_amount(2), b'ab')

    def test_text_file_object(self):
        with self.assertRaises(TypeError):
            ChunkReader(io.StringIO('abcd'))

    def test_other_input(self):
        with self.assertRaises(TypeError):
            ChunkReader('abcd')


class ChunkReaderReadTest(unittest.TestCase):
    def test_short_reads_are_joined(self):
        reader = ChunkReader(TrickleStream(b'RIFX\x00\x00\x01\x02'))

        self.assertEqual(reader.read_tag(), b'RIFX')
        self.assertEqual(reader.read_uint32(), 258)
        self.assertEqual(reader.tell(), 8)

    def test_read_at_most_at_end(self):
        reader = ChunkReader(b'abc')

        self.assertEqual(reader.read_at_most(10), b'abc')
        self.assertEqual(reader.read_at_most(10), b'')
        self.assertEqual(reader.tell(), 3)

    def test_huge_read_is_requested_in_pieces(self):
        stream = RecordingStream(b'abc')

        with self.assertRaises(TruncatedInputError) as cm:
            ChunkReader(stream).read_amount(0xfffffff0, 'block data')

        self.assertEqual(cm.exception.actual_length, 3)
        self.assertTrue(all(0 < size <= READ_BUF_SIZE for size in stream.requests))

    def test_large_read_spans_pieces(self):
        data = bytes(range(256)) * ((READ_BUF_SIZE // 256) + 3)

        self.assertEqual(ChunkReader(data).read_amount(len(data)), data)

    def test_read_negative(self):
        with self.assertRaises(ValueError):
            ChunkReader(b'abc').read_at_most(-1)

    def test_read_zero(self):
        self.assertEqual(ChunkReader(b'').read_amount(0), b'')

    def test_uint32_is_big_endian(self):
        self.assertEqual(ChunkReader(b'\x12\x34\x56\x78').read_uint32(), 0x12345678)

    def test_truncated(self):
        reader = ChunkReader(b'xxab')
        reader.read_amount(2)

        with self.assertRaises(TruncatedInputError) as cm:
            reader.read_amount(4, 'block size')

        self.assertEqual(cm.exception.position, 2)
        self.assertEqual(cm.exception.expected_length, 4)
        self.assertEqual(cm.exception.actual_length, 2)
        self.assertEqual(cm.exception.meaning, 'block size')
        self.assertIn('block size', str(cm.exception))

    def test_missing(self):
        with self.assertRaises(TruncatedInputError) as cm:
            ChunkReader(b'').read_tag()

        self.assertEqual(cm.exception.actual_length, 0)
        self.assertIn('the data ends', str(cm.exception))

    def test_skip_bytes(self):
        reader = ChunkReader(b'\x00abcd')
        reader.skip_bytes(1)

        self.assertEqual(reader.read_tag(), b'abcd')

    def test_skip_bytes_past_end(self):
        with self.assertRaises(TruncatedInputError):
            ChunkReader(b'').skip_bytes(1)


class ChunkReaderMagicTest(unittest.TestCase):
    def test_ok(self):
        reader = ChunkReader(b'RIFXrest')
        reader.expect_magic(b'RIFX')

        self.assertEqual(reader.tell(), 4)

    def test_wrong(self):
        with self.assertRaises(FormatError) as cm:
            ChunkReader(b'RIFF\x00\x00\x00\x00').expect_magic(b'RIFX')

        self.assertEqual(cm.exception.position, 0)
        self.assertEqual(cm.exception.expected_magic, b'RIFX')
        self.assertEqual(cm.exception.found_magic, b'RIFF')
        self.assertTrue(str(cm.exception).startswith('not a RIFX stream'))

    def test_too_short(self):
        with self.assertRaises(TruncatedInputError):
            ChunkReader(b'RI').expect_magic(b'RIFX')
