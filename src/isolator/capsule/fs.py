"""
Confined filesystem view of a single capsule.

Every path handed to CapsuleFS is interpreted relative to the capsule
directory. Paths are normalized and resolved before use, and anything that
lands outside the capsule raises CapsulePathEscapeError. This covers:
- ../ traversal
- Absolute paths
- Symlinks inside the capsule pointing outside of it (for reads and writes)

Symlink creation is the one place where the link target may live outside
the capsule: only the location of the link itself is confined.
"""

import json
import os
from pathlib import Path
from typing import Any

from isolator.errors import CapsulePathEscapeError


class CapsuleFS:
    """
    Filesystem operations confined to one directory.

    Attributes:
        root: The capsule directory (resolved)
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def _escape(self, path: str | Path) -> CapsulePathEscapeError:
        return CapsulePathEscapeError(capsule_path=str(self.root), path=str(path))

    def _check_relative(self, path: str | Path) -> Path:
        rel = Path(path)
        if rel.is_absolute() or "\x00" in str(path):
            raise self._escape(path)
        return rel

    def resolve(self, path: str | Path) -> Path:
        """
        Resolve a capsule-relative path to an absolute one inside the capsule.

        Raises:
            CapsulePathEscapeError: If the resolved path is outside the capsule
        """
        rel = self._check_relative(path)
        resolved = (self.root / rel).resolve()
        if not resolved.is_relative_to(self.root):
            raise self._escape(path)
        return resolved

    def _link_location(self, path: str | Path) -> Path:
        # The link itself is not followed, only its parent directory.
        rel = self._check_relative(path)
        if rel.name in ("", ".", ".."):
            raise self._escape(path)
        parent = (self.root / rel).parent.resolve()
        if not parent.is_relative_to(self.root):
            raise self._escape(path)
        return parent / rel.name

    def exists(self, path: str | Path) -> bool:
        try:
            return self.resolve(path).exists()
        except CapsulePathEscapeError:
            return False

    def read_text(self, path: str | Path, encoding: str = "utf-8") -> str:
        return self.resolve(path).read_text(encoding=encoding)

    def read_json(self, path: str | Path) -> Any:
        return json.loads(self.read_text(path))

    def write_text(self, path: str | Path, content: str, encoding: str = "utf-8") -> Path:
        """Write a file, creating parent directories. Existing files are overwritten."""
        target = self.resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding=encoding)
        return target

    def write_json(self, path: str | Path, data: Any) -> Path:
        return self.write_text(path, json.dumps(data, indent=2) + "\n")

    def symlink(self, path: str | Path, target: Path | str) -> bool:
        """
        Create a symlink at path pointing to target.

        A link that already points at target is left alone. A stale link or
        file at path is replaced. A real directory at path (installed by a
        package manager) is kept.

        Returns:
            True if a link was created, False otherwise
        """
        link = self._link_location(path)
        target = Path(target)
        if link.is_symlink():
            if Path(os.readlink(link)) == target:
                return False
            link.unlink()
        elif link.is_file():
            link.unlink()
        elif link.is_dir():
            return False
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(target, target_is_directory=target.is_dir())
        return True

    def __repr__(self) -> str:
        return f"<CapsuleFS: {self.root}>"
