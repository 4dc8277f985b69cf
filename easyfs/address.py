"""Sv39 physical and virtual addresses, page numbers and page ranges."""

from __future__ import annotations

import functools
import operator
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

PAGE_SIZE = 0x1000
PAGE_SIZE_BITS = 0xC

PA_WIDTH_SV39 = 56
VA_WIDTH_SV39 = 39
PPN_WIDTH_SV39 = PA_WIDTH_SV39 - PAGE_SIZE_BITS
VPN_WIDTH_SV39 = VA_WIDTH_SV39 - PAGE_SIZE_BITS


@functools.total_ordering
class _Number:
    """An immutable integer truncated to a fixed bit width."""

    __slots__ = ("_value",)
    _WIDTH = 64
    _LABEL = ""

    def __init__(self, value: int) -> None:
        self._value = operator.index(value) & ((1 << self._WIDTH) - 1)

    @property
    def value(self) -> int:
        return self._value

    def __int__(self) -> int:
        return self._value

    def __index__(self) -> int:
        return self._value

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._value == other._value

    def __lt__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._value < other._value

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))

    def __repr__(self) -> str:
        return f"{self._LABEL}:{self._value:#x}"


class _PageNumber(_Number):
    __slots__ = ()

    def __add__(self, other: int):
        return type(self)(self._value + operator.index(other))


class PhysPageNum(_PageNumber):
    """A physical page number (44 bits)."""

    __slots__ = ()
    _WIDTH = PPN_WIDTH_SV39
    _LABEL = "PPN"

    def __init__(self, value: int) -> None:
        super().__init__(value)

    def to_addr(self) -> PhysAddr:
        """The address of the first byte of this page."""
        return PhysAddr(self._value << PAGE_SIZE_BITS)


class VirtPageNum(_PageNumber):
    """A virtual page number (27 bits)."""

    __slots__ = ()
    _WIDTH = VPN_WIDTH_SV39
    _LABEL = "VPN"

    def __init__(self, value: int) -> None:
        super().__init__(value)

    def to_addr(self) -> VirtAddr:
        """The address of the first byte of this page."""
        return VirtAddr(self._value << PAGE_SIZE_BITS)

    def indexes(self) -> tuple[int, int, int]:
        """The three 9-bit page-table indexes, most significant first."""
        vpn = self._value
        return ((vpn >> 18) & 511, (vpn >> 9) & 511, vpn & 511)


class _Address(_Number):
    __slots__ = ()
    _PAGE: type[_PageNumber]

    def floor(self):
        """The page containing this address."""
        return self._PAGE(self._value // PAGE_SIZE)

    def ceil(self):
        """The first page that starts at or after this address."""
        return self._PAGE((self._value - 1 + PAGE_SIZE) // PAGE_SIZE)

    def page_offset(self) -> int:
        return self._value & (PAGE_SIZE - 1)

    def aligned(self) -> bool:
        return self.page_offset() == 0

    def to_page_num(self):
        """The page starting at this address; the address must be page aligned."""
        if not self.aligned():
            raise ValueError(f"{self!r} is not page aligned")
        return self.floor()


class PhysAddr(_Address):
    """A physical address (56 bits)."""

    __slots__ = ()
    _WIDTH = PA_WIDTH_SV39
    _LABEL = "PA"
    _PAGE = PhysPageNum

    def __init__(self, value: int) -> None:
        super().__init__(value)

    def floor(self) -> PhysPageNum:
        return super().floor()

    def ceil(self) -> PhysPageNum:
        return super().ceil()

    def page_offset(self) -> int:
        return super().page_offset()

    def aligned(self) -> bool:
        return super().aligned()

    def to_page_num(self) -> PhysPageNum:
        return super().to_page_num()


class VirtAddr(_Address):
    """A virtual address (39 bits)."""

    __slots__ = ()
    _WIDTH = VA_WIDTH_SV39
    _LABEL = "VA"
    _PAGE = VirtPageNum

    def __init__(self, value: int) -> None:
        super().__init__(value)

    def floor(self) -> VirtPageNum:
        return super().floor()

    def ceil(self) -> VirtPageNum:
        return super().ceil()

    def page_offset(self) -> int:
        return super().page_offset()

    def aligned(self) -> bool:
        return super().aligned()

    def to_page_num(self) -> VirtPageNum:
        return super().to_page_num()


P = TypeVar("P", PhysPageNum, VirtPageNum)


@dataclass(frozen=True)
class SimpleRange(Generic[P]):
    """The half-open range of page numbers [start, end)."""

    start: P
    end: P

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"start {self.start!r} > end {self.end!r}!")

    def __iter__(self) -> Iterator[P]:
        current = self.start
        while current != self.end:
            yield current
            current = current + 1

    def __len__(self) -> int:
        return int(self.end) - int(self.start)

    def __contains__(self, item: object) -> bool:
        if type(item) is not type(self.start):
            return False
        return self.start <= item < self.end


VPNRange = SimpleRange