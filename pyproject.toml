[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "easyfs"
version = "0.1.0"
description = "A small block-based file system with a disk-image packer, plus page-address, frame-allocator and pipe helpers"
requires-python = ">=3.10"
dependencies = []
keywords = ["filesystem", "block-device", "disk-image", "inode", "bitmap", "teaching"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
easyfs-pack = "easyfs.packer:main"

[tool.hatch.build.targets.wheel]
packages = ["easyfs"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
