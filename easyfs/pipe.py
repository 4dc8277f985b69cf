"""Pipes: a fixed-size ring buffer shared by a read end and a write end."""

from __future__ import annotations

import enum
import io
import threading
import weakref

RING_BUFFER_SIZE = 32


class _Status(enum.Enum):
    FULL = enum.auto()
    EMPTY = enum.auto()
    NORMAL = enum.auto()


class PipeRingBuffer:
    """A circular byte buffer of RING_BUFFER_SIZE bytes."""

    def __init__(self) -> None:
        self._arr = bytearray(RING_BUFFER_SIZE)
        self._head = 0
        self._tail = 0
        self._status = _Status.EMPTY

    def write_byte(self, byte: int) -> None:
        if self._status is _Status.FULL:
            raise BufferError("ring buffer is full")
        self._status = _Status.NORMAL
        self._arr[self._tail] = byte
        self._tail = (self._tail + 1) % RING_BUFFER_SIZE
        if self._tail == self._head:
            self._status = _Status.FULL

    def read_byte(self) -> int:
        if self._status is _Status.EMPTY:
            raise BufferError("ring buffer is empty")
        self._status = _Status.NORMAL
        byte = self._arr[self._head]
        self._head = (self._head + 1) % RING_BUFFER_SIZE
        if self._head == self._tail:
            self._status = _Status.EMPTY
        return byte

    def available_read(self) -> int:
        if self._status is _Status.EMPTY:
            return 0
        if self._tail > self._head:
            return self._tail - self._head
        return self._tail + RING_BUFFER_SIZE - self._head

    def available_write(self) -> int:
        if self._status is _Status.FULL:
            return 0
        return RING_BUFFER_SIZE - self.available_read()


class _Channel:
    def __init__(self) -> None:
        self.ring = PipeRingBuffer()
        self.cond = threading.Condition()
        self.writer_closed = False
        self.reader_closed = False

    def close_writer(self) -> None:
        with self.cond:
            self.writer_closed = True
            self.cond.notify_all()

    def close_reader(self) -> None:
        with self.cond:
            self.reader_closed = True
            self.cond.notify_all()


class Pipe:
    """One end of a pipe. Create pairs with make_pipe()."""

    def __init__(self, channel: _Channel, *, readable: bool, writable: bool) -> None:
        self._channel = channel
        self.readable = readable
        self.writable = writable
        self.closed = False

    def read(self, size: int) -> bytes:
        """Read ``size`` bytes, blocking; fewer once every write end is closed."""
        if not self.readable:
            raise io.UnsupportedOperation("pipe end is not readable")
        if self.closed:
            raise ValueError("read from a closed pipe end")
        channel = self._channel
        out = bytearray()
        with channel.cond:
            while len(out) < size:
                available = channel.ring.available_read()
                if available == 0:
                    if channel.writer_closed:
                        break
                    channel.cond.wait()
                    continue
                for _ in range(min(available, size - len(out))):
                    out.append(channel.ring.read_byte())
                channel.cond.notify_all()
        return bytes(out)

    def write(self, data: bytes) -> int:
        """Write all of ``data``, blocking while the buffer is full."""
        if not self.writable:
            raise io.UnsupportedOperation("pipe end is not writable")
        if self.closed:
            raise ValueError("write to a closed pipe end")
        channel = self._channel
        view = memoryview(bytes(data))
        written = 0
        with channel.cond:
            while written < len(view):
                if channel.reader_closed:
                    raise BrokenPipeError("read end of the pipe is closed")
                available = channel.ring.available_write()
                if available == 0:
                    channel.cond.wait()
                    continue
                for byte in view[written:written + available]:
                    channel.ring.write_byte(byte)
                written += min(available, len(view) - written)
                channel.cond.notify_all()
        return written

    def close(self) -> None:
        """Close this end; readers see end of file once the write end closes."""
        if self.closed:
            return
        self.closed = True
        if self.writable:
            self._channel.close_writer()
        if self.readable:
            self._channel.close_reader()

    def __enter__(self) -> Pipe:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def make_pipe() -> tuple[Pipe, Pipe]:
    """Return (read_end, write_end) of a new pipe."""
    channel = _Channel()
    read_end = Pipe(channel, readable=True, writable=False)
    write_end = Pipe(channel, readable=False, writable=True)
    weakref.finalize(write_end, channel.close_writer)
    return read_end, write_end