"""The file system: area layout, allocation of inodes and data blocks."""

from __future__ import annotations

import errno
import threading
from dataclasses import dataclass, field

from .bitmap import Bitmap
from .block_cache import block_cache_sync_all, get_block_cache
from .blockdev import BLOCK_SZ, BlockDevice
from .layout import DISK_INODE_SIZE, DiskInode, DiskInodeType, SuperBlock
from .vfs import Inode

_ZERO_BLOCK = bytes(BLOCK_SZ)


@dataclass(eq=False)
class EasyFileSystem:
    """An easy-fs image on a block device."""

    device: BlockDevice
    inode_bitmap: Bitmap
    data_bitmap: Bitmap
    inode_area_start_block: int
    data_area_start_block: int
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def create(
        cls, device: BlockDevice, total_blocks: int, inode_bitmap_blocks: int
    ) -> EasyFileSystem:
        """Format ``device`` with a fresh, empty file system."""
        if inode_bitmap_blocks < 1:
            raise ValueError("at least one inode bitmap block is needed")
        inode_bitmap = Bitmap(1, inode_bitmap_blocks)
        inode_num = inode_bitmap.maximum()
        inode_area_blocks = -(-(inode_num * DISK_INODE_SIZE) // BLOCK_SZ)
        inode_total_blocks = inode_bitmap_blocks + inode_area_blocks
        data_total_blocks = total_blocks - 1 - inode_total_blocks
        if data_total_blocks < 2:
            raise ValueError("too few blocks for the requested inode area")
        data_bitmap_blocks = (data_total_blocks + 4096) // 4097
        data_area_blocks = data_total_blocks - data_bitmap_blocks
        data_bitmap = Bitmap(1 + inode_total_blocks, data_bitmap_blocks)
        efs = cls(
            device,
            inode_bitmap,
            data_bitmap,
            1 + inode_bitmap_blocks,
            1 + inode_total_blocks + data_bitmap_blocks,
        )
        for block_id in range(total_blocks):
            get_block_cache(block_id, device).write(0, _ZERO_BLOCK)
        super_block = SuperBlock(
            total_blocks,
            inode_bitmap_blocks,
            inode_area_blocks,
            data_bitmap_blocks,
            data_area_blocks,
        )
        get_block_cache(0, device).write(0, super_block.to_bytes())
        if efs.alloc_inode() != 0:
            raise OSError("root inode was not allocated first")
        root_block, root_offset = efs.get_disk_inode_pos(0)
        get_block_cache(root_block, device).write(
            root_offset, DiskInode(DiskInodeType.DIRECTORY).to_bytes()
        )
        block_cache_sync_all()
        return efs

    @classmethod
    def open(cls, device: BlockDevice) -> EasyFileSystem:
        """Load an existing file system from ``device``."""
        super_block = SuperBlock.from_bytes(get_block_cache(0, device).read(0, BLOCK_SZ))
        if not super_block.is_valid():
            raise ValueError("Error loading EFS!")
        inode_total_blocks = super_block.inode_bitmap_blocks + super_block.inode_area_blocks
        return cls(
            device,
            Bitmap(1, super_block.inode_bitmap_blocks),
            Bitmap(1 + inode_total_blocks, super_block.data_bitmap_blocks),
            1 + super_block.inode_bitmap_blocks,
            1 + inode_total_blocks + super_block.data_bitmap_blocks,
        )

    def root_inode(self) -> Inode:
        """The root directory."""
        block_id, block_offset = self.get_disk_inode_pos(0)
        return Inode(block_id, block_offset, self, self.device)

    def get_disk_inode_pos(self, inode_id: int) -> tuple[int, int]:
        """Device block and byte offset of inode ``inode_id``."""
        inodes_per_block = BLOCK_SZ // DISK_INODE_SIZE
        block_index, slot = divmod(inode_id, inodes_per_block)
        return self.inode_area_start_block + block_index, slot * DISK_INODE_SIZE

    def get_data_block_id(self, data_block_id: int) -> int:
        """Device block of the data area's ``data_block_id``-th block."""
        return self.data_area_start_block + data_block_id

    def alloc_inode(self) -> int:
        inode_id = self.inode_bitmap.alloc(self.device)
        if inode_id is None:
            raise OSError(errno.ENOSPC, "no free inode")
        return inode_id

    def alloc_data(self) -> int:
        """Allocate a data block and return its device block id."""
        bit = self.data_bitmap.alloc(self.device)
        if bit is None:
            raise OSError(errno.ENOSPC, "no free data block")
        return bit + self.data_area_start_block

    def dealloc_data(self, block_id: int) -> None:
        """Zero and free the data block with device block id ``block_id``."""
        if block_id < self.data_area_start_block:
            raise ValueError(f"block {block_id} is not in the data area")
        get_block_cache(block_id, self.device).write(0, _ZERO_BLOCK)
        self.data_bitmap.dealloc(self.device, block_id - self.data_area_start_block)