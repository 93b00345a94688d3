"""
Component writer: persist each component into its capsule.

For every component the writer writes its source files, its artifacts (when
an artifact store is given) and a package manifest. Only files the
component owns are overwritten; anything else already in the capsule, such
as what a previous install left there, is kept.

Internal dependencies without a version are written with a placeholder
version, so the installer never tries to resolve a version that does not
exist yet. The reconciler fixes the versions up after install.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from isolator.capsule import Capsule, CapsuleList
from isolator.collaborators import ArtifactStore
from isolator.concurrency import CancellationToken, run_parallel
from isolator.schema import (
    DEPENDENCIES_FIELDS,
    NEW_VERSION_PLACEHOLDER,
    PACKAGE_JSON,
    Component,
    ComponentID,
)

logger = logging.getLogger(__name__)

# Invoked once per component whose configuration is loaded into a capsule
ComponentConfigCallback = Callable[[Component, dict[str, Any]], None]


def component_dependencies(ids: Sequence[ComponentID]) -> dict[str, str]:
    """Manifest entries for internal dependencies, placeholder when unversioned."""
    return {dep.package_name: dep.version or NEW_VERSION_PLACEHOLDER for dep in ids}


def build_package_json(component: Component, existing: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Build the manifest the writer persists for a component.

    Non-dependency keys of an existing manifest are preserved. The
    "packageJson" entry of the component config is applied last.
    """
    manifest: dict[str, Any] = {
        key: value for key, value in (existing or {}).items() if key not in DEPENDENCIES_FIELDS
    }
    manifest["name"] = component.id.package_name
    manifest["version"] = component.version
    if component.main_file:
        manifest["main"] = component.main_file

    manifest["dependencies"] = {
        **component.dependencies.packages,
        **component_dependencies(component.dependencies.components),
    }
    manifest["devDependencies"] = {
        **component.dev_dependencies.packages,
        **component_dependencies(component.dev_dependencies.components),
        **component_dependencies(component.extension_dependencies),
    }
    manifest["peerDependencies"] = {
        **component.peer_dependencies.packages,
        **component_dependencies(component.peer_dependencies.components),
    }

    overrides = component.config.get("packageJson")
    if isinstance(overrides, dict):
        manifest.update(overrides)
    return manifest


@dataclass
class WriteResult:
    """
    Outcome of a write_all call.

    Attributes:
        written: Components persisted into their capsule
        skipped: Components that had no capsule
    """

    written: list[ComponentID] = field(default_factory=list)
    skipped: list[ComponentID] = field(default_factory=list)


class ComponentWriter:
    """
    Writes components into capsules, one concurrent task per component.

    Attributes:
        artifact_store: Optional source of build artifacts
        on_component_config: Optional hook receiving each component config
        max_workers: Thread pool size
    """

    def __init__(
        self,
        artifact_store: ArtifactStore | None = None,
        on_component_config: ComponentConfigCallback | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.artifact_store = artifact_store
        self.on_component_config = on_component_config
        self.max_workers = max_workers

    def write_all(
        self,
        components: Sequence[Component],
        capsules: CapsuleList,
        cancel_token: CancellationToken | None = None,
    ) -> WriteResult:
        """Write every component into its capsule. Components without a capsule are skipped."""
        result = WriteResult()

        def write_one(component: Component) -> bool:
            capsule = capsules.get_capsule(component.id)
            if capsule is None:
                return False
            self.write_component(component, capsule)
            return True

        outcomes = run_parallel(
            write_one,
            components,
            phase="write",
            cancel_token=cancel_token,
            max_workers=self.max_workers,
        )
        for component, written in zip(components, outcomes):
            if written:
                result.written.append(component.id)
            else:
                result.skipped.append(component.id)

        if result.skipped:
            logger.warning(
                "skipped %d component(s) without a capsule: %s",
                len(result.skipped),
                ", ".join(str(c) for c in result.skipped),
            )
        return result

    def write_component(self, component: Component, capsule: Capsule) -> None:
        for source_file in component.files:
            capsule.fs.write_text(source_file.relative_path, source_file.content)

        if self.artifact_store is not None:
            for artifact in self.artifact_store.get_artifacts(component):
                capsule.fs.write_text(artifact.relative_path, artifact.content)

        if self.on_component_config is not None:
            self.on_component_config(component, dict(component.config))

        existing = None
        if capsule.has_manifest():
            try:
                existing = capsule.fs.read_json(PACKAGE_JSON)
            except ValueError:
                existing = None
        if not isinstance(existing, dict):
            existing = None
        capsule.fs.write_json(PACKAGE_JSON, build_package_json(component, existing))
