"""In-memory cache of device blocks with write-back on sync or eviction."""

from __future__ import annotations

import threading

from .blockdev import BLOCK_SZ, BlockDevice

BLOCK_CACHE_SIZE = 16


class BlockCache:
    """One block of a device held in memory.

    Changes reach the device on ``sync``. Using the cache as a context
    manager pins it so the manager will not evict it meanwhile.
    """

    def __init__(self, block_id: int, device: BlockDevice) -> None:
        self.block_id = block_id
        self.device = device
        self._data = bytearray(device.read_block(block_id))
        self._modified = False
        self._pins = 0
        self._lock = threading.RLock()

    @staticmethod
    def _check_range(offset: int, size: int) -> None:
        if offset < 0 or size < 0 or offset + size > BLOCK_SZ:
            raise ValueError(f"range {offset}+{size} exceeds block size {BLOCK_SZ}")

    def read(self, offset: int = 0, size: int = BLOCK_SZ) -> bytes:
        """Return ``size`` bytes starting at ``offset`` within the block."""
        self._check_range(offset, size)
        with self._lock:
            return bytes(self._data[offset:offset + size])

    def write(self, offset: int, data: bytes) -> None:
        """Overwrite bytes starting at ``offset`` within the block."""
        self._check_range(offset, len(data))
        with self._lock:
            self._data[offset:offset + len(data)] = data
            self._modified = True

    def sync(self) -> None:
        """Write the block back to the device if it was changed."""
        with self._lock:
            if self._modified:
                self._modified = False
                self.device.write_block(self.block_id, bytes(self._data))

    @property
    def _in_use(self) -> bool:
        return self._pins > 0

    def __enter__(self) -> BlockCache:
        with self._lock:
            self._pins += 1
        return self

    def __exit__(self, *exc_info) -> None:
        with self._lock:
            self._pins -= 1


class BlockCacheManager:
    """A bounded set of block caches, evicting the oldest unpinned one when full."""

    def __init__(self, capacity: int = BLOCK_CACHE_SIZE) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._queue: list[BlockCache] = []
        self._lock = threading.Lock()

    def get_block_cache(self, block_id: int, device: BlockDevice) -> BlockCache:
        """Return the cache for ``block_id`` on ``device``, loading it if needed."""
        with self._lock:
            for cache in self._queue:
                if cache.block_id == block_id and cache.device is device:
                    return cache
            if len(self._queue) >= self.capacity:
                victim = next((c for c in self._queue if not c._in_use), None)
                if victim is None:
                    raise RuntimeError("Run out of BlockCache!")
                self._queue.remove(victim)
                victim.sync()
            cache = BlockCache(block_id, device)
            self._queue.append(cache)
            return cache

    def sync_all(self) -> None:
        """Write every changed cached block back to its device."""
        with self._lock:
            caches = list(self._queue)
        for cache in caches:
            cache.sync()


_MANAGER = BlockCacheManager()


def get_block_cache(block_id: int, device: BlockDevice) -> BlockCache:
    """Return the shared cache for ``block_id`` on ``device``."""
    return _MANAGER.get_block_cache(block_id, device)


def block_cache_sync_all() -> None:
    """Write every changed block in the shared cache back to its device."""
    _MANAGER.sync_all()