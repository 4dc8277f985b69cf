"""Block devices: storage addressed in fixed-size blocks."""

from __future__ import annotations

import abc
import threading
from typing import BinaryIO

BLOCK_SZ = 512


def _check_block_data(data: bytes) -> None:
    if len(data) != BLOCK_SZ:
        raise ValueError(f"block data must be {BLOCK_SZ} bytes, got {len(data)}")


class BlockDevice(abc.ABC):
    """Storage read and written one block of BLOCK_SZ bytes at a time."""

    @abc.abstractmethod
    def read_block(self, block_id: int) -> bytes:
        """Return the contents of block ``block_id``."""

    @abc.abstractmethod
    def write_block(self, block_id: int, data: bytes) -> None:
        """Replace the contents of block ``block_id`` with ``data``."""


class FileBlockDevice(BlockDevice):
    """A block device backed by a seekable binary file opened for reading and writing."""

    def __init__(self, file: BinaryIO) -> None:
        self._file = file
        self._lock = threading.Lock()

    def read_block(self, block_id: int) -> bytes:
        if block_id < 0:
            raise IndexError(f"block {block_id} out of range")
        with self._lock:
            self._file.seek(block_id * BLOCK_SZ)
            data = self._file.read(BLOCK_SZ)
        if len(data) != BLOCK_SZ:
            raise OSError("Not a complete block!")
        return data

    def write_block(self, block_id: int, data: bytes) -> None:
        if block_id < 0:
            raise IndexError(f"block {block_id} out of range")
        _check_block_data(data)
        with self._lock:
            self._file.seek(block_id * BLOCK_SZ)
            written = self._file.write(data)
        if written != BLOCK_SZ:
            raise OSError("Not a complete block!")


class MemoryBlockDevice(BlockDevice):
    """A block device held entirely in memory, initially zero-filled."""

    def __init__(self, blocks: int) -> None:
        if blocks < 0:
            raise ValueError("number of blocks must not be negative")
        self._blocks = blocks
        self._data = bytearray(blocks * BLOCK_SZ)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._blocks

    def _span(self, block_id: int) -> slice:
        if not 0 <= block_id < self._blocks:
            raise IndexError(f"block {block_id} out of range")
        start = block_id * BLOCK_SZ
        return slice(start, start + BLOCK_SZ)

    def read_block(self, block_id: int) -> bytes:
        span = self._span(block_id)
        with self._lock:
            return bytes(self._data[span])

    def write_block(self, block_id: int, data: bytes) -> None:
        span = self._span(block_id)
        _check_block_data(data)
        with self._lock:
            self._data[span] = data