"""
Cell sequence serialization.

This module turns a sequence of CellIds into tokens or a compact byte blob
for handing across process or language boundaries.

Binary Format:
- 1 byte: format tag (0xC1)
- varint: number of cells
- For each cell: zigzag varint of the difference from the previous id
  (the first cell is relative to 0)

Within one level of a covering the ids are sorted and close together, so
the deltas are small. A covering spans several levels; the jump between
levels is a single negative delta, hence zigzag. The whole blob may be
zlib-compressed.
"""

from typing import Iterable, List, Sequence
import zlib

from .cellid import CellId


FORMAT_TAG = 0xC1


class CellSerializer:
    """Serializes cell sequences to the compact binary format."""

    def serialize(self, cells: Sequence[CellId]) -> bytes:
        """
        Serialize cells to bytes.

        Args:
            cells: Cells in any order; order is preserved

        Returns:
            Serialized bytes
        """
        buffer = bytearray()
        buffer.append(FORMAT_TAG)
        buffer.extend(self._encode_varint(len(cells)))

        previous = 0
        for cell in cells:
            buffer.extend(self._encode_varint(_zigzag(cell.id - previous)))
            previous = cell.id
        return bytes(buffer)

    def _encode_varint(self, value: int) -> bytes:
        """Encode a non-negative integer using variable-length encoding."""
        result = bytearray()
        while value >= 0x80:
            result.append((value & 0x7F) | 0x80)
            value >>= 7
        result.append(value)
        return bytes(result)


class CellDeserializer:
    """Deserializes cell sequences from the binary format."""

    def __init__(self):
        self._data: bytes = b""
        self._pos: int = 0

    def deserialize(self, data: bytes) -> List[CellId]:
        """
        Deserialize cells from bytes.

        Raises:
            ValueError: On a wrong format tag, truncated data, trailing
                bytes or ids outside the 64-bit range
        """
        self._data = data
        self._pos = 0

        tag = self._read_byte()
        if tag != FORMAT_TAG:
            raise ValueError(f"Unknown format tag: 0x{tag:02x}")

        count = self._read_varint()
        cells: List[CellId] = []
        previous = 0
        for _ in range(count):
            previous += _unzigzag(self._read_varint())
            cells.append(CellId(previous))

        if self._pos != len(self._data):
            raise ValueError(f"{len(self._data) - self._pos} trailing bytes after {count} cells")
        return cells

    def _read_byte(self) -> int:
        """Read a single byte."""
        if self._pos >= len(self._data):
            raise ValueError("Unexpected end of data")
        b = self._data[self._pos]
        self._pos += 1
        return b

    def _read_varint(self) -> int:
        """Read a variable-length integer."""
        result = 0
        shift = 0
        while True:
            b = self._read_byte()
            result |= (b & 0x7F) << shift
            if (b & 0x80) == 0:
                break
            shift += 7
            if shift > 70:
                raise ValueError("Varint too long")
        return result


def _zigzag(value: int) -> int:
    return value * 2 if value >= 0 else -value * 2 - 1


def _unzigzag(value: int) -> int:
    return value >> 1 if value & 1 == 0 else -((value + 1) >> 1)


def encode_cells(cells: Sequence[CellId], compress: bool = True) -> bytes:
    """
    Serialize cells to bytes, optionally with compression.

    Args:
        cells: Cells to serialize
        compress: Whether to apply zlib compression

    Returns:
        Serialized (and optionally compressed) bytes
    """
    data = CellSerializer().serialize(cells)
    if compress:
        data = zlib.compress(data, level=9)
    return data


def decode_cells(data: bytes, compressed: bool = True) -> List[CellId]:
    """
    Deserialize cells from bytes.

    Args:
        data: Serialized bytes
        compressed: Whether data is zlib compressed

    Returns:
        Cells in their original order

    Raises:
        ValueError: If the data is malformed
    """
    if compressed:
        try:
            data = zlib.decompress(data)
        except zlib.error as e:
            raise ValueError(f"Invalid compressed cell data: {e}") from e
    return CellDeserializer().deserialize(data)


def cells_to_tokens(cells: Iterable[CellId]) -> List[str]:
    """Convert cells to hex tokens."""
    return [cell.to_token() for cell in cells]


def tokens_to_cells(tokens: Iterable[str]) -> List[CellId]:
    """
    Parse hex tokens.

    Raises:
        ValueError: If a token is malformed
    """
    return [CellId.from_token(token) for token in tokens]
