"""
Package manifest reconciliation.

The reconciler answers one question per capsule: did its dependencies
change since the last run? Capsules whose dependency sections are
unchanged keep valid symlinks and are left out of the linking pass, which
is the main performance lever of repeated isolation runs.

Flow within a run:
    1. snapshot(): read the manifest the previous run left (cache miss if none)
    2. (writer persists the components)
    3. update_with_current(): compute the manifest each capsule should have
    4. changed_capsules(): diff the dependency sections
    5. write_final(): merge the computed manifest into what install/link left
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from isolator.capsule import Capsule
from isolator.concurrency import CancellationToken, run_parallel
from isolator.errors import CapsuleInvariantError
from isolator.schema import DEPENDENCIES_FIELDS, PACKAGE_JSON
from isolator.writer import component_dependencies

logger = logging.getLogger(__name__)


@dataclass
class ManifestSnapshot:
    """
    Previous and current manifest of one capsule, for one run only.

    Attributes:
        capsule: The capsule the manifests belong to
        previous: Manifest found before writing (None on cache miss)
        current: Manifest computed after writing (None until computed)
    """

    capsule: Capsule
    previous: dict[str, Any] | None = None
    current: dict[str, Any] | None = None

    @property
    def changed(self) -> bool:
        return PackageJsonReconciler.diff(self.previous, self.current)


def read_manifest(capsule: Capsule) -> dict[str, Any] | None:
    """Best-effort manifest read. Missing or invalid files yield None."""
    try:
        data = capsule.fs.read_json(PACKAGE_JSON)
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


class PackageJsonReconciler:
    """Snapshots, computes and diffs capsule manifests."""

    def __init__(self, max_workers: int | None = None) -> None:
        self.max_workers = max_workers

    def snapshot(
        self,
        capsules: Sequence[Capsule],
        cancel_token: CancellationToken | None = None,
    ) -> list[ManifestSnapshot]:
        return run_parallel(
            lambda capsule: ManifestSnapshot(capsule=capsule, previous=read_manifest(capsule)),
            capsules,
            phase="snapshot",
            cancel_token=cancel_token,
            max_workers=self.max_workers,
        )

    @staticmethod
    def compute_current(capsule: Capsule) -> dict[str, Any]:
        """
        Manifest a capsule should have: the written manifest plus the
        component's internal dependencies and its version.
        """
        component = capsule.component
        manifest = read_manifest(capsule) or {}

        dependencies = dict(manifest.get("dependencies") or {})
        dependencies.update(component_dependencies(component.dependencies.components))
        dev_dependencies = dict(manifest.get("devDependencies") or {})
        dev_dependencies.update(component_dependencies(component.dev_dependencies.components))
        dev_dependencies.update(component_dependencies(component.extension_dependencies))

        manifest["dependencies"] = dependencies
        manifest["devDependencies"] = dev_dependencies
        manifest["version"] = component.version
        return manifest

    def update_with_current(
        self,
        snapshots: Sequence[ManifestSnapshot],
        capsules: Sequence[Capsule],
    ) -> None:
        """
        Set the current manifest on each capsule's snapshot.

        Raises:
            CapsuleInvariantError: If a capsule has no snapshot
        """
        by_id = {snapshot.capsule.component.id: snapshot for snapshot in snapshots}
        for capsule in capsules:
            found = by_id.get(capsule.component.id)
            if found is None:
                raise CapsuleInvariantError(
                    capsule_path=str(capsule.path),
                    component_id=str(capsule.component.id),
                )
            found.current = self.compute_current(capsule)

    @staticmethod
    def diff(previous: dict[str, Any] | None, current: dict[str, Any] | None) -> bool:
        """
        Whether the dependency sections differ.

        Only dependencies, devDependencies and peerDependencies are compared.
        A missing previous manifest always counts as changed.
        """
        if previous is None:
            return True
        current = current or {}
        return any(previous.get(name) != current.get(name) for name in DEPENDENCIES_FIELDS)

    def changed_capsules(self, snapshots: Sequence[ManifestSnapshot]) -> list[Capsule]:
        changed = [snapshot.capsule for snapshot in snapshots if snapshot.changed]
        logger.debug("%d of %d capsule manifest(s) changed", len(changed), len(snapshots))
        return changed

    @staticmethod
    def write_final(snapshot: ManifestSnapshot) -> dict[str, Any]:
        """
        Merge the current manifest into the one on disk and write it back.

        Dependency entries added by install or link are kept; the
        component's own entries win on conflict.
        """
        if snapshot.current is None:
            raise CapsuleInvariantError(
                capsule_path=str(snapshot.capsule.path),
                component_id=str(snapshot.capsule.component.id),
                message=f"Current manifest was never computed for {snapshot.capsule.component.id}",
            )
        on_disk = read_manifest(snapshot.capsule) or {}
        final = {**on_disk, **snapshot.current}
        for name in DEPENDENCIES_FIELDS:
            if name in on_disk or name in snapshot.current:
                final[name] = {**(on_disk.get(name) or {}), **(snapshot.current.get(name) or {})}
        snapshot.capsule.fs.write_json(PACKAGE_JSON, final)
        return final
