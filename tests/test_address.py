import pytest

from easyfs.address import (
    PAGE_SIZE,
    PhysAddr,
    PhysPageNum,
    SimpleRange,
    VirtAddr,
    VirtPageNum,
)


def test_physical_address_is_masked_to_56_bits():
    assert PhysAddr((1 << 56) | 5).value == 5


def test_virtual_address_is_masked_to_39_bits():
    assert VirtAddr((1 << 39) | 7).value == 7


def test_page_numbers_are_masked():
    assert PhysPageNum((1 << 44) | 3).value == 3
    assert VirtPageNum((1 << 27) | 9).value == 9


def test_debug_format():
    assert repr(VirtAddr(PAGE_SIZE)) == "VA:0x1000"
    assert repr(PhysPageNum(0x1F)) == "PPN:0x1f"


@pytest.mark.parametrize("page", [0, 1, 17, 0x80000])
def test_page_to_address_round_trip(page):
    addr = PhysPageNum(page).to_addr()
    assert addr.aligned()
    assert addr.to_page_num() == PhysPageNum(page)
    vaddr = VirtPageNum(page).to_addr()
    assert vaddr.to_page_num() == VirtPageNum(page)


@pytest.mark.parametrize("value", [1, 0x1234, PAGE_SIZE - 1, 5 * PAGE_SIZE + 3])
def test_floor_and_ceil_of_unaligned_address(value):
    addr = VirtAddr(value)
    assert not addr.aligned()
    assert addr.ceil() == addr.floor() + 1
    assert addr.floor().to_addr().value + addr.page_offset() == value


@pytest.mark.parametrize("page", [0, 3, 1000])
def test_floor_equals_ceil_when_aligned(page):
    addr = PhysPageNum(page).to_addr()
    assert addr.floor() == addr.ceil() == PhysPageNum(page)
    assert addr.page_offset() == 0


def test_unaligned_address_has_no_page_number():
    with pytest.raises(ValueError):
        PhysAddr(PAGE_SIZE + 1).to_page_num()


def test_indexes_split_vpn():
    vpn = VirtPageNum((5 << 18) | (300 << 9) | 511)
    assert vpn.indexes() == (5, 300, 511)


def test_ordering_and_equality():
    assert VirtPageNum(1) < VirtPageNum(2)
    assert PhysAddr(10) == PhysAddr(10)
    assert PhysPageNum(4) != VirtPageNum(4)
    assert len({PhysPageNum(4), PhysPageNum(4)}) == 1


def test_range_iterates_half_open():
    pages = list(SimpleRange(VirtPageNum(3), VirtPageNum(6)))
    assert pages == [VirtPageNum(3), VirtPageNum(4), VirtPageNum(5)]


def test_empty_range():
    assert list(SimpleRange(PhysPageNum(7), PhysPageNum(7))) == []


def test_range_length_and_membership():
    rng = SimpleRange(VirtPageNum(10), VirtPageNum(20))
    assert len(rng) == len(list(rng))
    assert VirtPageNum(10) in rng
    assert VirtPageNum(20) not in rng


def test_reversed_range_is_rejected():
    with pytest.raises(ValueError):
        SimpleRange(VirtPageNum(5), VirtPageNum(4))