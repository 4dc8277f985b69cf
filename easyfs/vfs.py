"""Inodes: the file and directory interface over the on-disk layout."""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Iterator

from .block_cache import block_cache_sync_all, get_block_cache
from .blockdev import BlockDevice
from .layout import DIRENT_SZ, DISK_INODE_SIZE, DirEntry, DiskInode, DiskInodeType

if TYPE_CHECKING:
    from .efs import EasyFileSystem


class Inode:
    """A handle on one inode of an EasyFileSystem."""

    def __init__(
        self,
        block_id: int,
        block_offset: int,
        fs: EasyFileSystem,
        device: BlockDevice,
    ) -> None:
        self.block_id = block_id
        self.block_offset = block_offset
        self.fs = fs
        self.device = device

    def __repr__(self) -> str:
        return f"Inode(block_id={self.block_id}, block_offset={self.block_offset})"

    def _read_disk_inode(self) -> DiskInode:
        cache = get_block_cache(self.block_id, self.device)
        return DiskInode.from_bytes(cache.read(self.block_offset, DISK_INODE_SIZE))

    @contextmanager
    def _modify_disk_inode(self) -> Iterator[DiskInode]:
        with get_block_cache(self.block_id, self.device) as cache:
            disk_inode = DiskInode.from_bytes(cache.read(self.block_offset, DISK_INODE_SIZE))
            yield disk_inode
            cache.write(self.block_offset, disk_inode.to_bytes())

    def _entries(self, disk_inode: DiskInode) -> Iterator[DirEntry]:
        if not disk_inode.is_dir():
            raise NotADirectoryError("inode is not a directory")
        count = disk_inode.size // DIRENT_SZ
        raw = disk_inode.read_at(0, count * DIRENT_SZ, self.device)
        if len(raw) != count * DIRENT_SZ:
            raise OSError("directory is shorter than its size")
        for start in range(0, len(raw), DIRENT_SZ):
            yield DirEntry.from_bytes(raw[start:start + DIRENT_SZ])

    def _find_inode_id(self, name: str, disk_inode: DiskInode) -> int | None:
        return next(
            (entry.inode_number for entry in self._entries(disk_inode) if entry.name == name),
            None,
        )

    def _inode_at(self, inode_id: int) -> Inode:
        block_id, block_offset = self.fs.get_disk_inode_pos(inode_id)
        return Inode(block_id, block_offset, self.fs, self.device)

    def _increase_size(self, new_size: int, disk_inode: DiskInode) -> None:
        if new_size < disk_inode.size:
            return
        needed = disk_inode.blocks_num_needed(new_size)
        blocks = [self.fs.alloc_data() for _ in range(needed)]
        disk_inode.increase_size(new_size, blocks, self.device)

    def find(self, name: str) -> Inode | None:
        """Look ``name`` up in this directory."""
        with self.fs.lock:
            inode_id = self._find_inode_id(name, self._read_disk_inode())
            return None if inode_id is None else self._inode_at(inode_id)

    def create(self, name: str) -> Inode | None:
        """Create an empty file in this directory; None if the name exists."""
        DirEntry(name).to_bytes()
        with self.fs.lock:
            if self._find_inode_id(name, self._read_disk_inode()) is not None:
                return None
            new_inode_id = self.fs.alloc_inode()
            block_id, block_offset = self.fs.get_disk_inode_pos(new_inode_id)
            get_block_cache(block_id, self.device).write(
                block_offset, DiskInode(DiskInodeType.FILE).to_bytes()
            )
            with self._modify_disk_inode() as directory:
                file_count = directory.size // DIRENT_SZ
                self._increase_size((file_count + 1) * DIRENT_SZ, directory)
                directory.write_at(
                    file_count * DIRENT_SZ,
                    DirEntry(name, new_inode_id).to_bytes(),
                    self.device,
                )
            block_cache_sync_all()
            return self._inode_at(new_inode_id)

    def ls(self) -> list[str]:
        """Names of the entries of this directory, in creation order."""
        with self.fs.lock:
            return [entry.name for entry in self._entries(self._read_disk_inode())]

    def read_at(self, offset: int, length: int) -> bytes:
        """Read up to ``length`` bytes from ``offset``; empty at end of file."""
        with self.fs.lock:
            return self._read_disk_inode().read_at(offset, length, self.device)

    def write_at(self, offset: int, data: bytes) -> int:
        """Write ``data`` at ``offset``, growing the file as needed."""
        with self.fs.lock:
            with self._modify_disk_inode() as disk_inode:
                self._increase_size(offset + len(data), disk_inode)
                written = disk_inode.write_at(offset, data, self.device)
            block_cache_sync_all()
            return written

    def clear(self) -> None:
        """Truncate the file to zero length and free its blocks."""
        with self.fs.lock:
            with self._modify_disk_inode() as disk_inode:
                size = disk_inode.size
                freed = disk_inode.clear_size(self.device)
                if len(freed) != DiskInode.total_blocks(size):
                    raise OSError("inode block count does not match its size")
                for block_id in freed:
                    self.fs.dealloc_data(block_id)
            block_cache_sync_all()