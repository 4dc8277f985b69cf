"""Pack a directory of executables into an easy-fs image."""

from __future__ import annotations

import argparse
from pathlib import Path

from .blockdev import BLOCK_SZ, FileBlockDevice
from .efs import EasyFileSystem

IMAGE_NAME = "fs.img"
IMAGE_BLOCKS = 16 * 2048
INODE_BITMAP_BLOCKS = 1


def _app_names(source: Path) -> list[str]:
    names = []
    for entry in sorted(source.iterdir()):
        stem, dot, _ = entry.name.partition(".")
        if not dot:
            raise ValueError(f"{entry.name!r} has no extension")
        names.append(stem)
    return names


def pack(source: str | Path, target: str | Path) -> list[str]:
    """Build ``target``/fs.img holding the apps named by files in ``source``.

    Each file ``name.ext`` in ``source`` selects the file ``name`` in
    ``target``. Returns the names listed in the image's root directory.
    """
    source, target = Path(source), Path(target)
    image = target / IMAGE_NAME
    image.touch()
    with open(image, "r+b") as image_file:
        image_file.truncate(IMAGE_BLOCKS * BLOCK_SZ)
        device = FileBlockDevice(image_file)
        efs = EasyFileSystem.create(device, IMAGE_BLOCKS, INODE_BITMAP_BLOCKS)
        root = efs.root_inode()
        for app in _app_names(source):
            data = (target / app).read_bytes()
            inode = root.create(app)
            if inode is None:
                raise FileExistsError(app)
            inode.write_at(0, data)
        return root.ls()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="EasyFileSystem packer")
    parser.add_argument("-s", "--source", required=True, help="Executable source dir")
    parser.add_argument("-t", "--target", required=True, help="Executable target dir")
    args = parser.parse_args(argv)
    print(f"src_path = {args.source}\ntarget_path = {args.target}")
    for name in pack(args.source, args.target):
        print(name)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())