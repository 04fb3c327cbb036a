[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "efiboot"
version = "0.1.0"
description = "Parse and build EFI load options, describe Linux block devices from sysfs, and render GUID tables as C sources"
requires-python = ">=3.10"
dependencies = []
keywords = ["efi", "uefi", "boot", "load-option", "sysfs", "guid", "ucs-2"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Boot",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
efiboot-makeguids = "efiboot.guidtable:main"

[tool.hatch.build.targets.wheel]
packages = ["efiboot"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"
