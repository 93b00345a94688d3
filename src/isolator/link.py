"""
Linking: build the symlink graph between capsules after install.

Steps, in order:
    1. The external linker runs against the whole isolation root
    2. Every capsule is linked into <root>/node_modules under its package
       name, so the shared install resolves internal components to capsules
    3. Each changed capsule gets links for its dependencies:
       - internal dependencies that have a capsule -> that capsule
       - external packages present in the shared install -> the root copy
    4. The isolator runtime is linked into each changed capsule

Only changed capsules are relinked in steps 3 and 4. Re-creating a link
that is already correct is a no-op.
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from isolator.capsule import Capsule, CapsuleList
from isolator.collaborators import DependencyResolver, LinkerConfig
from isolator.errors import LinkError
from isolator.schema import MODULES_DIR, LinkingOptions, WorkspacePolicy

logger = logging.getLogger(__name__)

TOOL_RUNTIME_DIR = Path(__file__).resolve().parent


def _module_path(package_name: str) -> Path:
    return Path(MODULES_DIR, *package_name.split("/"))


def symlink_on_capsule_root(capsules: CapsuleList, root_dir: Path) -> int:
    """Link every capsule into the root modules directory. Returns links created."""
    created = 0
    for capsule in capsules:
        link = root_dir / _module_path(capsule.component.id.package_name)
        if link.is_symlink():
            if link.resolve() == capsule.path:
                continue
            link.unlink()
        elif link.exists():
            # installed as a real package; the installer owns it
            continue
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(capsule.path, target_is_directory=True)
        created += 1
    logger.debug("linked %d capsule(s) on root %s", created, root_dir)
    return created


def symlink_dependencies_to_capsules(
    changed: Sequence[Capsule],
    capsules: CapsuleList,
    root_dir: Path,
) -> int:
    """Link internal and shared external dependencies into changed capsules."""
    created = 0
    shared_modules = root_dir / MODULES_DIR
    for capsule in changed:
        component = capsule.component
        internal = [
            *component.dependencies.components,
            *component.dev_dependencies.components,
            *component.peer_dependencies.components,
            *component.extension_dependencies,
        ]
        for dep_id in internal:
            dep_capsule = capsules.get_capsule(dep_id) or capsules.get_capsule_ignore_version(dep_id)
            if dep_capsule is None:
                # not isolated; the installer resolves it as a package
                continue
            if capsule.fs.symlink(_module_path(dep_id.package_name), dep_capsule.path):
                created += 1

        external = {
            **component.dependencies.packages,
            **component.dev_dependencies.packages,
            **component.peer_dependencies.packages,
        }
        for package_name in external:
            installed = shared_modules / _module_path(package_name).relative_to(MODULES_DIR)
            if not installed.exists():
                continue
            if capsule.fs.symlink(_module_path(package_name), installed):
                created += 1
    logger.debug("created %d dependency link(s) in %d capsule(s)", created, len(changed))
    return created


def symlink_tool_runtime_to_capsules(changed: Sequence[Capsule], linking_options: LinkingOptions) -> int:
    """Link the isolator runtime into changed capsules so components can invoke it."""
    runtime_dir = linking_options.tool_runtime_dir or TOOL_RUNTIME_DIR
    created = 0
    for capsule in changed:
        if capsule.fs.symlink(_module_path(linking_options.tool_package_name), runtime_dir):
            created += 1
    return created


class CapsuleLinker:
    """
    Runs the external linker and builds the capsule symlink graph.

    Attributes:
        dependency_resolver: Provides the linker
    """

    def __init__(self, dependency_resolver: DependencyResolver) -> None:
        self.dependency_resolver = dependency_resolver

    def link(
        self,
        root_dir: Path,
        peer_only_policy: WorkspacePolicy,
        capsules: CapsuleList,
        changed: Sequence[Capsule],
        linking_options: LinkingOptions,
    ) -> None:
        """
        Link all capsules under root_dir, relinking only changed capsules.

        Raises:
            LinkError: If the external linker or symlink creation fails
        """
        linker = self.dependency_resolver.get_linker(
            LinkerConfig(root_dir=root_dir, linking_options=linking_options)
        )
        logger.info("linking %d capsule(s), %d changed", len(capsules), len(changed))
        try:
            linker.link(root_dir, peer_only_policy, capsules.to_component_map(), linking_options)
        except Exception as e:
            raise LinkError(root_dir=str(root_dir), underlying_error=str(e)) from e

        try:
            symlink_on_capsule_root(capsules, root_dir)
            symlink_dependencies_to_capsules(changed, capsules, root_dir)
            if linking_options.link_tool_runtime:
                symlink_tool_runtime_to_capsules(changed, linking_options)
        except OSError as e:
            raise LinkError(root_dir=str(root_dir), underlying_error=str(e)) from e
