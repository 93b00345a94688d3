"""
Isolation engine.

The Isolator is the coordinating layer of an isolation run. It drives the
graph resolver, capsule creation, the writer, the manifest reconciler and
the install/link orchestrators, strictly in sequence: each phase depends
on the on-disk effects of the previous one.

Execution Flow:
    1. Resolve seeds (seeders only, or the filtered dependency graph)
    2. Take the isolation root lock
    3. Wipe the root (empty_root_dir)
    4. Create capsule directories
       - get_existing_as_is: return here
       - skip_if_exists: return here when every capsule has a manifest
         and the root was fully installed before
    5. Snapshot previous manifests
    6. Write components
    7. Compute current manifests
    8. Install (install_packages), then link changed capsules
    9. Rewrite final manifests, mark the root installed
   10. Return the Network

Cancellation is checked between phases and before each batch item, never
inside install or link.
"""

import hashlib
import logging
import shutil
import time
from collections.abc import Mapping, Sequence
from contextlib import nullcontext
from pathlib import Path
from typing import Any

from isolator.capsule import Capsule, CapsuleList, InstallMarker, RootLock
from isolator.collaborators import ArtifactStore, ComponentHost, DependencyResolver, GraphBuilder
from isolator.concurrency import CancellationToken, run_parallel
from isolator.config import IsolatorConfig
from isolator.graph import GraphResolver
from isolator.install import InstallOrchestrator, get_peers_only_policy
from isolator.link import CapsuleLinker
from isolator.manifest import PackageJsonReconciler
from isolator.network import ListResults, Network
from isolator.schema import MODULES_DIR, Component, ComponentID, IsolateOptions, resolve_isolate_options
from isolator.writer import ComponentConfigCallback, ComponentWriter

logger = logging.getLogger(__name__)


def hash_base_dir(base_dir: Path | str) -> str:
    """Stable identifier of an isolation root, derived from its base dir."""
    return hashlib.sha256(str(base_dir).encode("utf-8")).hexdigest()[:16]


def get_capsules_root_dir(base_dir: Path | str, config: IsolatorConfig) -> Path:
    return config.capsules_base_dir / hash_base_dir(base_dir)


def list_capsules(workspace_path: Path | str, config: IsolatorConfig) -> ListResults:
    """
    List capsule directories of a workspace.

    A missing isolation root yields an empty result; any other filesystem
    error propagates.
    """
    root_dir = get_capsules_root_dir(workspace_path, config)
    try:
        entries = sorted(root_dir.iterdir())
    except FileNotFoundError:
        return ListResults(workspace=str(workspace_path), capsules=[])
    return ListResults(
        workspace=str(workspace_path),
        capsules=[entry for entry in entries if entry.is_dir() and entry.name != MODULES_DIR],
    )


def empty_dir(path: Path) -> None:
    """Remove everything under path, keeping (or creating) path itself."""
    if not path.exists():
        path.mkdir(parents=True)
        return
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()


class Isolator:
    """
    Materializes components and their dependencies into capsules.

    Usage:
        isolator = Isolator(host, graph_builder, dependency_resolver)
        network = isolator.isolate_components([ComponentID.parse("acme/button")])
        for capsule in network.graph_capsules:
            print(capsule.path)

    Attributes:
        host: Component host
        dependency_resolver: Provides policy, installer and linker
        config: Process-wide configuration
    """

    def __init__(
        self,
        host: ComponentHost,
        graph_builder: GraphBuilder,
        dependency_resolver: DependencyResolver,
        config: IsolatorConfig | None = None,
        on_component_config: ComponentConfigCallback | None = None,
    ) -> None:
        """
        Initialize the isolator.

        Args:
            host: Resolves component ids
            graph_builder: Builds dependency graphs
            dependency_resolver: Provides policy, installer and linker
            config: Process-wide configuration (defaults to IsolatorConfig())
            on_component_config: Hook invoked with each written component config
        """
        self.host = host
        self.dependency_resolver = dependency_resolver
        self.config = config or IsolatorConfig()
        self.on_component_config = on_component_config

        max_workers = self.config.max_workers
        self.graph_resolver = GraphResolver(host, graph_builder, max_workers=max_workers)
        self.reconciler = PackageJsonReconciler(max_workers=max_workers)
        self.install_orchestrator = InstallOrchestrator(dependency_resolver)
        self.linker = CapsuleLinker(dependency_resolver)

    def isolate_components(
        self,
        seeders: Sequence[ComponentID],
        opts: IsolateOptions | Mapping[str, Any] | None = None,
        storage_handle: ArtifactStore | None = None,
        cancel_token: CancellationToken | None = None,
        marker: InstallMarker | None = None,
    ) -> Network:
        """
        Isolate the seeds (and, unless seeders_only, their dependencies).

        Args:
            seeders: Components explicitly requested
            opts: Options, merged onto the configured defaults
            storage_handle: Optional artifact store for dists
            cancel_token: Cooperative cancellation signal
            marker: Install marker of the root (defaults to one inside the root)

        Returns:
            Network with the capsules, the seeds and the isolation root

        Raises:
            ComponentNotFoundError: Unknown seed in seeders-only mode
            InstallError / LinkError: External collaborator failure
            IsolationCancelledError: The token was cancelled
        """
        token = cancel_token or CancellationToken()
        options = resolve_isolate_options(opts, self.config.defaults)
        label = options.name or "create capsules network"
        logger.debug(
            "isolating %s, opts: %s",
            ", ".join(str(s) for s in seeders),
            options.model_dump_json(),
        )
        start = time.monotonic()

        token.raise_if_cancelled("resolve")
        components = self.graph_resolver.resolve(seeders, options.seeders_only, token)
        base_dir = options.base_dir or self.host.path
        root_dir = self.get_capsules_root_dir(base_dir)
        marker = marker or InstallMarker(root_dir)

        lock = RootLock(root_dir) if options.lock_root else nullcontext()
        with lock:
            capsule_list = self._create_capsules(components, root_dir, options, storage_handle, token, marker)

        logger.info(
            "%s: %d capsule(s) in %s (%.1fms)",
            label,
            len(capsule_list),
            root_dir,
            (time.monotonic() - start) * 1000,
        )
        return Network(capsule_list, list(seeders), root_dir)

    def create_graph(
        self,
        seeders: Sequence[ComponentID],
        cancel_token: CancellationToken | None = None,
    ) -> list[Component]:
        return self.graph_resolver.create_graph(seeders, cancel_token)

    def _create_capsules(
        self,
        components: list[Component],
        root_dir: Path,
        opts: IsolateOptions,
        storage_handle: ArtifactStore | None,
        token: CancellationToken,
        marker: InstallMarker,
    ) -> CapsuleList:
        if opts.empty_root_dir:
            token.raise_if_cancelled("empty-root-dir")
            logger.debug("emptying isolation root %s", root_dir)
            empty_dir(root_dir)
        root_dir.mkdir(parents=True, exist_ok=True)

        token.raise_if_cancelled("create-capsules")
        capsules = run_parallel(
            lambda component: Capsule.create_from_component(component, root_dir, opts),
            components,
            phase="create-capsules",
            cancel_token=token,
            max_workers=self.config.max_workers,
        )
        capsule_list = CapsuleList.from_array(capsules)
        if opts.get_existing_as_is:
            return capsule_list

        if opts.skip_if_exists and marker.is_installed():
            if all(capsule.has_manifest() for capsule in capsule_list):
                logger.debug("all %d capsule(s) exist, skipping", len(capsule_list))
                return capsule_list

        marker.clear()
        token.raise_if_cancelled("snapshot")
        snapshots = self.reconciler.snapshot(capsule_list, token)

        token.raise_if_cancelled("write")
        writer = ComponentWriter(
            artifact_store=storage_handle,
            on_component_config=self.on_component_config,
            max_workers=self.config.max_workers,
        )
        written = writer.write_all(components, capsule_list, token)
        logger.debug(
            "wrote %d component(s) into capsules, skipped %d",
            len(written.written),
            len(written.skipped),
        )

        token.raise_if_cancelled("reconcile")
        self.reconciler.update_with_current(snapshots, capsule_list)

        if opts.install_options.install_packages:
            token.raise_if_cancelled("install")
            self.install_orchestrator.install(
                root_dir,
                get_peers_only_policy(self.dependency_resolver),
                capsule_list,
                opts.install_options,
                opts.cache_packages_on_capsules_root,
            )
            token.raise_if_cancelled("link")
            self.linker.link(
                root_dir,
                get_peers_only_policy(self.dependency_resolver),
                capsule_list,
                self.reconciler.changed_capsules(snapshots),
                opts.linking_options,
            )

        # the manifests written before install carried placeholder versions
        # for untagged internal dependencies; write the reconciled ones now
        for snapshot in snapshots:
            self.reconciler.write_final(snapshot)
        marker.mark_installed()
        return capsule_list

    def list(self, workspace_path: Path | str) -> ListResults:
        return list_capsules(workspace_path, self.config)

    def get_capsules_root_dir(self, base_dir: Path | str) -> Path:
        return get_capsules_root_dir(base_dir, self.config)
