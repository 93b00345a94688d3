"""
Install marker for an isolation root.

A run that is interrupted between writing manifests and finishing install
leaves capsules that look populated but are not. The marker records that
the last run against a root completed, so skip_if_exists only trusts roots
that were fully installed.
"""

from pathlib import Path

INSTALLED_MARKER_FILENAME = ".isolator_installed"


class InstallMarker:
    """
    Filesystem-backed "root is installed" flag.

    Attributes:
        path: Location of the marker file
    """

    def __init__(self, root_dir: Path | str) -> None:
        self.path = Path(root_dir) / INSTALLED_MARKER_FILENAME

    def is_installed(self) -> bool:
        return self.path.exists()

    def mark_installed(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"<InstallMarker: {self.path}>"
