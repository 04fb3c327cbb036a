"""Access to files and links below a sysfs mount point."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union


@dataclass
class Sysfs:
    """A sysfs tree rooted at ``root``; all paths are relative to it."""

    root: Path = field(default_factory=lambda: Path("/sys"))

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def _path(self, path: Union[str, os.PathLike]) -> Path:
        return self.root / str(path).lstrip("/")

    def read_file(self, path: Union[str, os.PathLike]) -> bytes:
        """Return the contents of a sysfs file."""
        return self._path(path).read_bytes()

    def readlink(self, path: Union[str, os.PathLike]) -> str:
        """Return the target of a sysfs symbolic link."""
        return os.readlink(self._path(path))

    def exists(self, path: Union[str, os.PathLike]) -> bool:
        """Tell whether a sysfs path exists, following links."""
        return self._path(path).exists()

    def listdir(self, path: Union[str, os.PathLike]) -> list[str]:
        """Return the sorted names in a sysfs directory."""
        return sorted(os.listdir(self._path(path)))

    def find_device_file(self, name: str, base: str) -> Optional[str]:
        """Find ``name`` under the deepest ``base/device[/device...]`` that has it.

        Returns the path relative to the sysfs root, or None when no
        ``device`` level holds ``name``.
        """
        found = None
        slashdev = "device"
        while True:
            for candidate in (f"{base}/{slashdev}", f"{base}/{slashdev}/{name}"):
                try:
                    os.stat(self._path(candidate))
                except FileNotFoundError:
                    return found
            found = f"{base}/{slashdev}/{name}"
            slashdev += "/device"