"""A stack-style allocator of physical page frames."""

from __future__ import annotations

import logging

from .address import PhysPageNum

_log = logging.getLogger(__name__)


class StackFrameAllocator:
    """Hands out frames from a contiguous range, reusing freed ones first."""

    def __init__(self) -> None:
        self.current = 0
        self.end = 0
        self.recycled: list[int] = []

    def init(self, start: PhysPageNum, end: PhysPageNum) -> int:
        """Manage frames [start, end); return how many that is."""
        self.current = int(start)
        self.end = int(end)
        count = self.end - self.current
        _log.debug("last %d Physical Frames.", count)
        return count

    def alloc(self) -> PhysPageNum | None:
        """Allocate a frame, or return None when none is left."""
        if self.recycled:
            return PhysPageNum(self.recycled.pop())
        if self.current == self.end:
            return None
        self.current += 1
        return PhysPageNum(self.current - 1)

    def dealloc(self, ppn: PhysPageNum) -> None:
        """Return an allocated frame to the allocator."""
        number = int(ppn)
        if number >= self.current or number in self.recycled:
            raise ValueError(f"Frame ppn={number:#x} has not been allocated!")
        self.recycled.append(number)