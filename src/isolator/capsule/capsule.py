"""
Capsule: one isolated sandbox bound to one component.

A capsule directory is a pure function of the isolation root and the
component id (version included), so repeated runs against the same root
reuse the same directories. The always_new option breaks that on purpose by
appending a random suffix.
"""

import uuid
from pathlib import Path

from isolator.capsule.fs import CapsuleFS
from isolator.schema import PACKAGE_JSON, Component, IsolateOptions


class Capsule:
    """
    An isolated directory holding one component.

    Attributes:
        path: Absolute capsule directory
        fs: Filesystem view confined to path
        component: The component materialized in this capsule
    """

    def __init__(self, path: Path | str, component: Component) -> None:
        self.path = Path(path).resolve()
        self.fs = CapsuleFS(self.path)
        self.component = component

    @classmethod
    def get_capsule_dir_name(cls, component: Component, always_new: bool = False) -> str:
        name = component.id.capsule_dir_name
        if always_new:
            name = f"{name}_{uuid.uuid4().hex[:8]}"
        return name

    @classmethod
    def create_from_component(
        cls,
        component: Component,
        base_dir: Path | str,
        opts: IsolateOptions | None = None,
    ) -> "Capsule":
        """
        Create (or reuse) the capsule directory of a component.

        Args:
            component: Component to isolate
            base_dir: The isolation root
            opts: Only always_new is read here

        Returns:
            Capsule whose directory exists on disk
        """
        always_new = bool(opts and opts.always_new)
        capsule_path = Path(base_dir) / cls.get_capsule_dir_name(component, always_new)
        capsule_path.mkdir(parents=True, exist_ok=True)
        return cls(capsule_path, component)

    def has_manifest(self) -> bool:
        return self.fs.exists(PACKAGE_JSON)

    def __repr__(self) -> str:
        return f"<Capsule: {self.component.id} at {self.path}>"
