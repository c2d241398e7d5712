[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tutufat"
version = "0.1.0"
description = "Read files and directories from FAT12 floppy disk images, with a small text-mode console emulator"
requires-python = ">=3.10"
dependencies = []
keywords = ["fat", "fat12", "floppy", "disk image", "filesystem", "text mode", "console"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
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
tutufat = "tutufat.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tutufat"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
