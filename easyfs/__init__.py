"""A small block-based file system with an image packer, plus address, frame-allocator and pipe helpers."""

__version__ = "0.1.0"