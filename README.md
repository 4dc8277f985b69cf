# easyfs

A small block-based file system that lives inside a disk image made of
512-byte blocks. An image has a super block, an inode bitmap, an inode area,
a data bitmap and a data area. It holds a single root directory of flat files.

The package also has a few helpers that go with such a system: Sv39 page and
address arithmetic (`easyfs.address`), a stack-based frame allocator
(`easyfs.frame_allocator`) and a fixed-size ring-buffer pipe
(`easyfs.pipe`).

## Installing

```
pip install .
```

## Packing a directory into an image

```
easyfs-pack --source build/apps --target build/bin
```

Both options are required. The packer works in these steps:

1. It lists the entries of the source directory in sorted order and keeps
   each name up to its first dot. A name without a dot is an error.
2. For each kept name, it reads the file of that name from the target
   directory and writes it into a new image, `fs.img`, in the target
   directory.
3. It prints the source and target paths, then the names in the image's root
   directory.

The image is 16 MiB (32768 blocks). It has one inode bitmap block, so the
root directory can hold at most 4095 files. If two source entries reduce to
the same name, the packer raises `FileExistsError`.

From Python, `easyfs.packer.pack(source, target)` does the same work and
returns the list of names. `easyfs.packer.main(argv)` is the command itself.

## Using the file system from Python

```python
from easyfs.blockdev import MemoryBlockDevice
from easyfs.efs import EasyFileSystem

device = MemoryBlockDevice(8192)
efs = EasyFileSystem.create(device, 4096, 1)
root = efs.root_inode()

hello = root.create("hello")
hello.write_at(0, b"Hello, world!")
print(root.ls())               # ['hello']
print(hello.read_at(0, 233))   # b'Hello, world!'

hello.clear()                  # frees the file's blocks; size becomes 0
same = root.find("hello")
```

### Devices

To work on an image file, use `FileBlockDevice` on a file opened for binary
reading and writing, for example with mode `"r+b"`. Both device classes read
and write whole 512-byte blocks. `EasyFileSystem.open(device)` loads a file
system that already exists on a device. It raises `ValueError` if the super
block's magic number is wrong.

### Inodes

- `Inode.create(name)` returns `None` if the name is already taken. A name
  may be at most 27 bytes long in UTF-8; a longer one raises `ValueError`.
- `Inode.find(name)` returns `None` if there is no such name.
- `Inode.write_at(offset, data)` grows the file as needed and returns the
  number of bytes written.
- `Inode.read_at(offset, length)` returns fewer bytes at the end of the file,
  and `b""` past it.

### Running out of space

When no inode or data block is free, the allocation raises `OSError` with
`errno.ENOSPC`.

### The block cache

Blocks go through a shared cache of 16 blocks (`easyfs.block_cache`).
`create`, `write_at` and `clear` flush it to the device before they return.
Code that changes blocks through the cache directly can call
`block_cache_sync_all()` to write them back.

## What it does not do

The file system has only the root directory. There are no subdirectories,
and files cannot be removed or renamed; `clear` only truncates a file.
Images cannot be mounted into the host operating system. They are read and
written only through this package's classes.

## Address helpers

`PhysAddr`, `VirtAddr`, `PhysPageNum` and `VirtPageNum` truncate their value
to the Sv39 widths. Addresses provide the following methods:

- `floor()` and `ceil()` give the page containing the address, or the next
  page boundary at or after it.
- `page_offset()` gives the offset within the page, and `aligned()` says
  whether that offset is zero.
- `to_page_num()` gives the page number and raises `ValueError` for an
  unaligned address.

Page numbers give their address with `to_addr()`. `VirtPageNum.indexes()`
gives the three 9-bit page-table indexes. `SimpleRange(start, end)` iterates
over the page numbers in `[start, end)` and raises `ValueError` if
`start > end`.

## Frame allocator

`StackFrameAllocator.init(start, end)` manages the frames in `[start, end)`
and returns how many that is. `alloc()` reuses freed frames first and
returns `None` when none are left. `dealloc(ppn)` raises `ValueError` for a
frame that was never allocated or has already been freed.

## Pipes

```python
from easyfs.pipe import make_pipe

read_end, write_end = make_pipe()
write_end.write(b"abc")
write_end.close()
print(read_end.read(10))       # b'abc'
```

A pipe buffers 32 bytes. The two ends behave as follows:

- `write` blocks while the buffer is full. It raises `BrokenPipeError` once
  the read end is closed.
- `read(size)` blocks until `size` bytes have arrived, or returns fewer once
  the write end is closed.
- Both ends can be used as context managers that close them on exit.

## Running the tests

```
pip install .[test]
pytest
```