import random

import pytest

from easyfs.blockdev import BLOCK_SZ, MemoryBlockDevice
from easyfs.layout import (
    DIRENT_SZ,
    DISK_INODE_SIZE,
    EFS_MAGIC,
    INDIRECT1_BOUND,
    INODE_DIRECT_COUNT,
    NAME_LENGTH_LIMIT,
    DirEntry,
    DiskInode,
    DiskInodeType,
    SuperBlock,
)


def _grown(size, first=1):
    device = MemoryBlockDevice(1024)
    inode = DiskInode(DiskInodeType.FILE)
    blocks = list(range(first, first + inode.blocks_num_needed(size)))
    inode.increase_size(size, blocks, device)
    return device, inode, blocks


SIZES = [
    BLOCK_SZ * 10 + 7,
    BLOCK_SZ * 100,
    BLOCK_SZ * (INDIRECT1_BOUND + 40) + 3,
]


def test_super_block_round_trip():
    sb = SuperBlock(4096, 1, 1024, 1, 3000)
    restored = SuperBlock.from_bytes(sb.to_bytes())
    assert restored == sb
    assert restored.is_valid()
    assert sb.to_bytes()[:4] == EFS_MAGIC.to_bytes(4, "little")


def test_zeroed_super_block_is_invalid():
    assert not SuperBlock.from_bytes(bytes(BLOCK_SZ)).is_valid()


def test_super_block_repr_hides_magic():
    assert "magic" not in repr(SuperBlock(1, 2, 3, 4, 5))
    assert "total_blocks=1" in repr(SuperBlock(1, 2, 3, 4, 5))


def test_disk_inode_round_trip():
    inode = DiskInode(DiskInodeType.DIRECTORY, 1234, list(range(INODE_DIRECT_COUNT)), 7, 9)
    raw = inode.to_bytes()
    assert len(raw) == DISK_INODE_SIZE
    assert BLOCK_SZ % DISK_INODE_SIZE == 0
    assert DiskInode.from_bytes(raw) == inode


def test_zeroed_disk_inode_is_empty_file():
    inode = DiskInode.from_bytes(bytes(DISK_INODE_SIZE))
    assert inode == DiskInode()
    assert inode.is_file() and not inode.is_dir()


def test_directory_type():
    inode = DiskInode(DiskInodeType.DIRECTORY)
    assert inode.is_dir()
    assert not inode.is_file()


def test_total_blocks_counts_index_blocks():
    assert DiskInode.total_blocks(0) == 0
    assert DiskInode.total_blocks(BLOCK_SZ * INODE_DIRECT_COUNT) == INODE_DIRECT_COUNT
    assert DiskInode.total_blocks(BLOCK_SZ * INODE_DIRECT_COUNT + 1) == INODE_DIRECT_COUNT + 2
    assert DiskInode.total_blocks(BLOCK_SZ * INDIRECT1_BOUND) == INDIRECT1_BOUND + 1
    assert DiskInode.total_blocks(BLOCK_SZ * INDIRECT1_BOUND + 1) == INDIRECT1_BOUND + 4


def test_blocks_num_needed_rejects_shrinking():
    with pytest.raises(ValueError):
        DiskInode(size=10).blocks_num_needed(5)


def test_increase_size_needs_enough_blocks():
    inode = DiskInode()
    with pytest.raises(ValueError):
        inode.increase_size(BLOCK_SZ * 3, [1, 2], MemoryBlockDevice(8))


@pytest.mark.parametrize("size", SIZES)
def test_write_then_read_round_trip(size):
    device, inode, _ = _grown(size)
    payload = random.Random(size).randbytes(size)
    assert inode.write_at(0, payload, device) == size
    assert inode.read_at(0, size, device) == payload
    assert inode.read_at(BLOCK_SZ - 3, 100, device) == payload[BLOCK_SZ - 3:BLOCK_SZ + 97]


@pytest.mark.parametrize("size", SIZES)
def test_block_ids_are_distinct_and_allocated(size):
    device, inode, blocks = _grown(size)
    ids = [inode.get_block_id(i, device) for i in range(inode.data_blocks())]
    assert len(set(ids)) == len(ids)
    assert set(ids) <= set(blocks)
    assert ids[:INODE_DIRECT_COUNT] == blocks[:INODE_DIRECT_COUNT]


@pytest.mark.parametrize("size", SIZES)
def test_clear_size_returns_every_block(size):
    device, inode, blocks = _grown(size)
    freed = inode.clear_size(device)
    assert sorted(freed) == blocks
    assert len(freed) == DiskInode.total_blocks(size)
    assert inode.size == 0
    assert inode.direct == [0] * INODE_DIRECT_COUNT
    assert (inode.indirect1, inode.indirect2) == (0, 0)


def test_growing_keeps_existing_data():
    first_size = BLOCK_SZ * 20 + 11
    device, inode, blocks = _grown(first_size)
    head = random.Random(1).randbytes(first_size)
    inode.write_at(0, head, device)
    new_size = BLOCK_SZ * (INDIRECT1_BOUND + 10)
    extra = list(range(blocks[-1] + 1, blocks[-1] + 1 + inode.blocks_num_needed(new_size)))
    inode.increase_size(new_size, extra, device)
    assert inode.read_at(0, first_size, device) == head
    tail = random.Random(2).randbytes(new_size - first_size)
    assert inode.write_at(first_size, tail, device) == len(tail)
    assert inode.read_at(0, new_size, device) == head + tail
    assert sorted(inode.clear_size(device)) == blocks + extra


def test_read_past_end_is_empty():
    device, inode, _ = _grown(BLOCK_SZ + 5)
    assert inode.read_at(BLOCK_SZ + 5, 10, device) == b""
    assert len(inode.read_at(BLOCK_SZ, 100, device)) == 5


def test_write_is_limited_to_size():
    device, inode, _ = _grown(BLOCK_SZ)
    assert inode.write_at(BLOCK_SZ - 2, b"abcd", device) == 2
    with pytest.raises(ValueError):
        inode.write_at(BLOCK_SZ + 1, b"x", device)


def test_dir_entry_round_trip():
    entry = DirEntry("filea", 42)
    raw = entry.to_bytes()
    assert len(raw) == DIRENT_SZ
    assert DirEntry.from_bytes(raw) == entry


def test_dir_entry_name_limit():
    longest = DirEntry("n" * NAME_LENGTH_LIMIT, 1)
    assert DirEntry.from_bytes(longest.to_bytes()) == longest
    with pytest.raises(ValueError):
        DirEntry("n" * (NAME_LENGTH_LIMIT + 1), 1).to_bytes()


def test_dir_entry_without_terminator():
    with pytest.raises(ValueError):
        DirEntry.from_bytes(b"x" * DIRENT_SZ)


def test_empty_dir_entry():
    assert DirEntry.from_bytes(bytes(DIRENT_SZ)) == DirEntry()