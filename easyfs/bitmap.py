"""Allocation bitmaps stored in consecutive device blocks."""

from __future__ import annotations

from dataclasses import dataclass

from .block_cache import get_block_cache
from .blockdev import BLOCK_SZ, BlockDevice

BLOCK_BITS = BLOCK_SZ * 8
_ALL_SET = (1 << BLOCK_BITS) - 1


def decomposition(bit: int) -> tuple[int, int, int]:
    """Split a bit index into (block position, 64-bit word position, bit in word)."""
    block_pos, rest = divmod(bit, BLOCK_BITS)
    bits64_pos, inner_pos = divmod(rest, 64)
    return block_pos, bits64_pos, inner_pos


@dataclass(frozen=True)
class Bitmap:
    """A bitmap occupying ``blocks`` blocks starting at ``start_block_id``."""

    start_block_id: int
    blocks: int

    def alloc(self, device: BlockDevice) -> int | None:
        """Set the lowest clear bit and return its index, or None when full."""
        for block_pos in range(self.blocks):
            with get_block_cache(self.start_block_id + block_pos, device) as cache:
                free = ~int.from_bytes(cache.read(0, BLOCK_SZ), "little") & _ALL_SET
                if not free:
                    continue
                inner = (free & -free).bit_length() - 1
                byte_pos, bit_pos = divmod(inner, 8)
                byte = cache.read(byte_pos, 1)[0]
                cache.write(byte_pos, bytes([byte | (1 << bit_pos)]))
                return block_pos * BLOCK_BITS + inner
        return None

    def dealloc(self, device: BlockDevice, bit: int) -> None:
        """Clear an allocated bit."""
        if not 0 <= bit < self.maximum():
            raise ValueError(f"bit {bit} is outside the bitmap")
        block_pos, rest = divmod(bit, BLOCK_BITS)
        byte_pos, bit_pos = divmod(rest, 8)
        with get_block_cache(self.start_block_id + block_pos, device) as cache:
            byte = cache.read(byte_pos, 1)[0]
            mask = 1 << bit_pos
            if not byte & mask:
                raise ValueError(f"bit {bit} is not allocated")
            cache.write(byte_pos, bytes([byte & ~mask]))

    def maximum(self) -> int:
        """Number of bits the bitmap can hold."""
        return self.blocks * BLOCK_BITS