"""On-disk structures: super block, inodes and directory entries."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import Iterable

from .block_cache import BlockCache, get_block_cache
from .blockdev import BLOCK_SZ, BlockDevice

EFS_MAGIC = 0x3B800001
INODE_DIRECT_COUNT = 28
NAME_LENGTH_LIMIT = 27
INODE_INDIRECT1_COUNT = BLOCK_SZ // 4
INODE_INDIRECT2_COUNT = INODE_INDIRECT1_COUNT * INODE_INDIRECT1_COUNT
DIRECT_BOUND = INODE_DIRECT_COUNT
INDIRECT1_BOUND = DIRECT_BOUND + INODE_INDIRECT1_COUNT
INDIRECT2_BOUND = INDIRECT1_BOUND + INODE_INDIRECT2_COUNT

_SUPER = struct.Struct("<6I")
_INODE = struct.Struct(f"<I{INODE_DIRECT_COUNT}IIIB3x")
_DIRENT = struct.Struct(f"<{NAME_LENGTH_LIMIT + 1}sI")
_INDIRECT = struct.Struct(f"<{INODE_INDIRECT1_COUNT}I")
_U32 = struct.Struct("<I")

SUPER_BLOCK_SIZE = _SUPER.size
DISK_INODE_SIZE = _INODE.size
DIRENT_SZ = _DIRENT.size


@dataclass
class SuperBlock:
    """Describes where each area of the file system lies."""

    total_blocks: int = 0
    inode_bitmap_blocks: int = 0
    inode_area_blocks: int = 0
    data_bitmap_blocks: int = 0
    data_area_blocks: int = 0
    magic: int = field(default=EFS_MAGIC, repr=False)

    def is_valid(self) -> bool:
        return self.magic == EFS_MAGIC

    def to_bytes(self) -> bytes:
        return _SUPER.pack(
            self.magic,
            self.total_blocks,
            self.inode_bitmap_blocks,
            self.inode_area_blocks,
            self.data_bitmap_blocks,
            self.data_area_blocks,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> SuperBlock:
        magic, *areas = _SUPER.unpack_from(data)
        return cls(*areas, magic=magic)


class DiskInodeType(enum.IntEnum):
    FILE = 0
    DIRECTORY = 1


def _read_entry(device: BlockDevice, block_id: int, index: int) -> int:
    return _U32.unpack(get_block_cache(block_id, device).read(index * 4, 4))[0]


def _read_entries(device: BlockDevice, block_id: int) -> tuple[int, ...]:
    return _INDIRECT.unpack(get_block_cache(block_id, device).read(0, BLOCK_SZ))


def _write_entry(cache: BlockCache, index: int, value: int) -> None:
    cache.write(index * 4, _U32.pack(value))


@dataclass
class DiskInode:
    """An inode as stored on disk, with direct and indirect block pointers."""

    inode_type: DiskInodeType = DiskInodeType.FILE
    size: int = 0
    direct: list[int] = field(default_factory=lambda: [0] * INODE_DIRECT_COUNT)
    indirect1: int = 0
    indirect2: int = 0

    def is_dir(self) -> bool:
        return self.inode_type == DiskInodeType.DIRECTORY

    def is_file(self) -> bool:
        return self.inode_type == DiskInodeType.FILE

    def data_blocks(self) -> int:
        """Number of data blocks that hold the file's contents."""
        return -(-self.size // BLOCK_SZ)

    @staticmethod
    def total_blocks(size: int) -> int:
        """Number of blocks needed for ``size`` bytes, index blocks included."""
        data_blocks = -(-size // BLOCK_SZ)
        total = data_blocks
        if data_blocks > INODE_DIRECT_COUNT:
            total += 1
        if data_blocks > INDIRECT1_BOUND:
            total += 1
            total += -(-(data_blocks - INDIRECT1_BOUND) // INODE_INDIRECT1_COUNT)
        return total

    def blocks_num_needed(self, new_size: int) -> int:
        """Number of extra blocks needed to grow to ``new_size``."""
        if new_size < self.size:
            raise ValueError("new size is smaller than the current size")
        return self.total_blocks(new_size) - self.total_blocks(self.size)

    def get_block_id(self, inner_id: int, device: BlockDevice) -> int:
        """Device block holding the file's ``inner_id``-th data block."""
        if inner_id < INODE_DIRECT_COUNT:
            return self.direct[inner_id]
        if inner_id < INDIRECT1_BOUND:
            return _read_entry(device, self.indirect1, inner_id - INODE_DIRECT_COUNT)
        last = inner_id - INDIRECT1_BOUND
        indirect1 = _read_entry(device, self.indirect2, last // INODE_INDIRECT1_COUNT)
        return _read_entry(device, indirect1, last % INODE_INDIRECT1_COUNT)

    def increase_size(
        self, new_size: int, new_blocks: Iterable[int], device: BlockDevice
    ) -> None:
        """Grow to ``new_size``, wiring in the freshly allocated ``new_blocks``."""
        blocks = iter(new_blocks)

        def take() -> int:
            try:
                return next(blocks)
            except StopIteration:
                raise ValueError("not enough blocks supplied") from None

        current = self.data_blocks()
        self.size = new_size
        total = self.data_blocks()
        while current < min(total, INODE_DIRECT_COUNT):
            self.direct[current] = take()
            current += 1

        if total <= INODE_DIRECT_COUNT:
            return
        if current == INODE_DIRECT_COUNT:
            self.indirect1 = take()
        current -= INODE_DIRECT_COUNT
        total -= INODE_DIRECT_COUNT
        with get_block_cache(self.indirect1, device) as indirect1:
            while current < min(total, INODE_INDIRECT1_COUNT):
                _write_entry(indirect1, current, take())
                current += 1

        if total <= INODE_INDIRECT1_COUNT:
            return
        if current == INODE_INDIRECT1_COUNT:
            self.indirect2 = take()
        current -= INODE_INDIRECT1_COUNT
        total -= INODE_INDIRECT1_COUNT
        a0, b0 = divmod(current, INODE_INDIRECT1_COUNT)
        a1, b1 = divmod(total, INODE_INDIRECT1_COUNT)
        with get_block_cache(self.indirect2, device) as indirect2:
            while a0 < a1 or (a0 == a1 and b0 < b1):
                if b0 == 0:
                    _write_entry(indirect2, a0, take())
                child = _U32.unpack(indirect2.read(a0 * 4, 4))[0]
                with get_block_cache(child, device) as indirect1:
                    _write_entry(indirect1, b0, take())
                b0 += 1
                if b0 == INODE_INDIRECT1_COUNT:
                    b0 = 0
                    a0 += 1

    def clear_size(self, device: BlockDevice) -> list[int]:
        """Shrink to zero and return every block that should be freed."""
        freed: list[int] = []
        data_blocks = self.data_blocks()
        self.size = 0
        current = 0
        while current < min(data_blocks, INODE_DIRECT_COUNT):
            freed.append(self.direct[current])
            self.direct[current] = 0
            current += 1

        if data_blocks <= INODE_DIRECT_COUNT:
            return freed
        freed.append(self.indirect1)
        data_blocks -= INODE_DIRECT_COUNT
        entries = _read_entries(device, self.indirect1)
        freed.extend(entries[:min(data_blocks, INODE_INDIRECT1_COUNT)])
        self.indirect1 = 0

        if data_blocks <= INODE_INDIRECT1_COUNT:
            return freed
        freed.append(self.indirect2)
        data_blocks -= INODE_INDIRECT1_COUNT
        if data_blocks > INODE_INDIRECT2_COUNT:
            raise ValueError("file exceeds the largest size an inode can address")
        a1, b1 = divmod(data_blocks, INODE_INDIRECT1_COUNT)
        with get_block_cache(self.indirect2, device) as cache:
            children = _INDIRECT.unpack(cache.read(0, BLOCK_SZ))
            for child in children[:a1]:
                freed.append(child)
                freed.extend(_read_entries(device, child))
            if b1 > 0:
                freed.append(children[a1])
                freed.extend(_read_entries(device, children[a1])[:b1])
        self.indirect2 = 0
        return freed

    def _block_spans(self, start: int, end: int):
        """Yield (device block, offset in block, length) covering [start, end)."""
        while start < end:
            block_index, inner = divmod(start, BLOCK_SZ)
            chunk_end = min((block_index + 1) * BLOCK_SZ, end)
            yield block_index, inner, chunk_end - start
            start = chunk_end

    def read_at(self, offset: int, length: int, device: BlockDevice) -> bytes:
        """Read up to ``length`` bytes from ``offset``; shorter at end of file."""
        end = min(offset + length, self.size)
        return b"".join(
            get_block_cache(self.get_block_id(index, device), device).read(inner, n)
            for index, inner, n in self._block_spans(offset, end)
        )

    def write_at(self, offset: int, data: bytes, device: BlockDevice) -> int:
        """Write ``data`` at ``offset`` within the current size; return bytes written."""
        end = min(offset + len(data), self.size)
        if offset > end:
            raise ValueError("write starts beyond the end of the file")
        view = memoryview(data)
        written = 0
        for index, inner, n in self._block_spans(offset, end):
            cache = get_block_cache(self.get_block_id(index, device), device)
            cache.write(inner, view[written:written + n])
            written += n
        return written

    def to_bytes(self) -> bytes:
        return _INODE.pack(
            self.size, *self.direct, self.indirect1, self.indirect2, self.inode_type
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> DiskInode:
        size, *rest = _INODE.unpack_from(data)
        direct = list(rest[:INODE_DIRECT_COUNT])
        indirect1, indirect2, inode_type = rest[INODE_DIRECT_COUNT:]
        return cls(DiskInodeType(inode_type), size, direct, indirect1, indirect2)


@dataclass(frozen=True)
class DirEntry:
    """A directory entry: a name and the number of the inode it refers to."""

    name: str = ""
    inode_number: int = 0

    def to_bytes(self) -> bytes:
        raw = self.name.encode()
        if len(raw) > NAME_LENGTH_LIMIT:
            raise ValueError(f"name longer than {NAME_LENGTH_LIMIT} bytes")
        return _DIRENT.pack(raw, self.inode_number)

    @classmethod
    def from_bytes(cls, data: bytes) -> DirEntry:
        raw, inode_number = _DIRENT.unpack_from(data)
        end = raw.find(0)
        if end < 0:
            raise ValueError("directory entry name is not terminated")
        return cls(raw[:end].decode(), inode_number)