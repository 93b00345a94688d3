"""
Install orchestration.

One install serves every capsule: the installer is scoped to the whole
isolation root and populates a shared dependency tree there.

The policy handed to the installer is restricted to the workspace's peer
declarations. Each capsule manifest already states its real dependencies;
the full workspace policy would pull unrelated production and dev
dependencies of the surrounding project into the isolated install.
"""

import logging
import time
from pathlib import Path

from isolator.capsule import CapsuleList
from isolator.collaborators import (
    DependencyResolver,
    InstallerConfig,
    InstallerRunOptions,
    PackageManagerInstallOptions,
)
from isolator.errors import InstallError
from isolator.schema import DependencyLifecycle, InstallOptions, WorkspacePolicy

logger = logging.getLogger(__name__)


def get_peers_only_policy(dependency_resolver: DependencyResolver) -> WorkspacePolicy:
    """Workspace policy restricted to peer entries, computed fresh on every call."""
    return dependency_resolver.get_workspace_policy().by_lifecycle_type(DependencyLifecycle.PEER)


class InstallOrchestrator:
    """
    Runs the external installer once for an isolation root.

    Attributes:
        dependency_resolver: Provides the installer
    """

    def __init__(self, dependency_resolver: DependencyResolver) -> None:
        self.dependency_resolver = dependency_resolver

    def install(
        self,
        root_dir: Path,
        peer_only_policy: WorkspacePolicy,
        capsules: CapsuleList,
        install_options: InstallOptions,
        cache_packages_on_capsules_root: bool = False,
    ) -> None:
        """
        Install dependencies of all capsules into the shared root tree.

        Raises:
            InstallError: If the installer fails (never retried)
        """
        installer = self.dependency_resolver.get_installer(
            InstallerConfig(
                root_dir=root_dir,
                cache_root_directory=root_dir if cache_packages_on_capsules_root else None,
            )
        )
        run_options = InstallerRunOptions(install_tool_runtime=install_options.install_tool_runtime)
        package_manager_options = PackageManagerInstallOptions(
            dedupe=install_options.dedupe,
            copy_peer_to_runtime_on_components=install_options.copy_peer_to_runtime_on_components,
            copy_peer_to_runtime_on_root=install_options.copy_peer_to_runtime_on_root,
        )

        logger.info("installing dependencies of %d capsule(s) in %s", len(capsules), root_dir)
        start = time.monotonic()
        try:
            installer.install(
                root_dir,
                peer_only_policy,
                capsules.to_component_map(),
                run_options,
                package_manager_options,
            )
        except Exception as e:
            raise InstallError(root_dir=str(root_dir), underlying_error=str(e)) from e
        logger.debug("install finished in %.1fms", (time.monotonic() - start) * 1000)
