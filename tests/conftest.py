"""
Pytest configuration and fixtures for isolator tests.

This module provides shared fixtures used across unit, integration,
and security tests, including in-memory fakes of the external
collaborators (component host, graph builder, installer, linker).
"""

import json
import tempfile
from collections.abc import Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Generator

import pytest

from isolator.collaborators import (
    ComponentGraph,
    ComponentHost,
    ComponentMap,
    DependencyResolver,
    GraphBuilder,
    Installer,
    InstallerConfig,
    InstallerRunOptions,
    Linker,
    LinkerConfig,
    PackageManagerInstallOptions,
)
from isolator.config import IsolatorConfig
from isolator.engine import Isolator
from isolator.schema import (
    MODULES_DIR,
    PACKAGE_JSON,
    Component,
    ComponentID,
    DependencyLifecycle,
    DependencySet,
    LinkingOptions,
    PolicyEntry,
    SourceFile,
    WorkspacePolicy,
)


# =============================================================================
# Collaborator Fakes
# =============================================================================


class FakeHost(ComponentHost):
    """Component host backed by a dict."""

    def __init__(self, path: Path, components: Sequence[Component]) -> None:
        self._path = path
        self.components = {c.id: c for c in components}

    @property
    def path(self) -> Path:
        return self._path

    def get(self, component_id: ComponentID) -> Component | None:
        return self.components.get(component_id)

    def has_id(self, component_id: ComponentID) -> bool:
        return component_id in self.components


class FakeGraph(ComponentGraph):
    """Graph with explicit edges keyed by id string."""

    def __init__(self, nodes: Sequence[Component], edges: dict[str, list[str]] | None = None) -> None:
        self._nodes = list(nodes)
        self.edges = edges or {}

    @property
    def nodes(self) -> list[Component]:
        return list(self._nodes)

    def successors_subgraph(self, ids: Sequence[str]) -> "FakeGraph":
        reachable: set[str] = set()
        pending = list(ids)
        while pending:
            current = pending.pop()
            if current in reachable:
                continue
            reachable.add(current)
            pending.extend(self.edges.get(current, []))
        return FakeGraph([n for n in self._nodes if n.id.to_string() in reachable], self.edges)


class FakeGraphBuilder(GraphBuilder):
    def __init__(self, graph: FakeGraph) -> None:
        self.graph = graph
        self.calls: list[list[ComponentID]] = []

    def get_graph(self, ids: Sequence[ComponentID]) -> FakeGraph:
        self.calls.append(list(ids))
        return self.graph


class RecordingInstaller(Installer):
    """
    Installer that records calls and "installs" external packages.

    Every manifest dependency that is not one of the isolated components,
    plus every policy entry, is created under <root>/node_modules.
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    def install(
        self,
        root_dir: Path,
        policy: WorkspacePolicy,
        component_map: ComponentMap,
        options: InstallerRunOptions,
        package_manager_options: PackageManagerInstallOptions,
    ) -> None:
        self.calls.append({
            "root_dir": root_dir,
            "policy": policy,
            "component_map": dict(component_map),
            "options": options,
            "package_manager_options": package_manager_options,
        })
        if self.fail:
            raise RuntimeError("registry unreachable")

        internal = {component_id.package_name for component_id in component_map}
        wanted: dict[str, str] = dict(policy.to_dependencies())
        for capsule_path in component_map.values():
            manifest = json.loads((capsule_path / PACKAGE_JSON).read_text())
            for name, version in (manifest.get("dependencies") or {}).items():
                if name not in internal:
                    wanted[name] = version
        for name, version in wanted.items():
            package_dir = root_dir / MODULES_DIR / name
            package_dir.mkdir(parents=True, exist_ok=True)
            (package_dir / PACKAGE_JSON).write_text(json.dumps({"name": name, "version": version}))


class RecordingLinker(Linker):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    def link(
        self,
        root_dir: Path,
        policy: WorkspacePolicy,
        component_map: ComponentMap,
        linking_options: LinkingOptions,
    ) -> None:
        self.calls.append({
            "root_dir": root_dir,
            "policy": policy,
            "component_map": dict(component_map),
            "linking_options": linking_options,
        })
        if self.fail:
            raise RuntimeError("link failed")


class FakeDependencyResolver(DependencyResolver):
    def __init__(
        self,
        policy: WorkspacePolicy,
        installer: RecordingInstaller,
        linker: RecordingLinker,
    ) -> None:
        self.policy = policy
        self.installer = installer
        self.linker = linker
        self.installer_configs: list[InstallerConfig] = []
        self.linker_configs: list[LinkerConfig] = []

    def get_workspace_policy(self) -> WorkspacePolicy:
        return self.policy

    def get_installer(self, config: InstallerConfig) -> RecordingInstaller:
        self.installer_configs.append(config)
        return self.installer

    def get_linker(self, config: LinkerConfig) -> RecordingLinker:
        self.linker_configs.append(config)
        return self.linker


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def config(temp_dir: Path) -> IsolatorConfig:
    """Config caching capsules inside the temp dir."""
    return IsolatorConfig(cache_root=temp_dir / "cache", max_workers=4)


@pytest.fixture
def workspace(temp_dir: Path) -> Path:
    path = temp_dir / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def comp_b() -> Component:
    """Untagged internal component B."""
    return Component(
        id=ComponentID(scope="acme.ui", name="b"),
        files=[SourceFile(relative_path="index.js", content="module.exports = 'b';\n")],
        main_file="index.js",
    )


@pytest.fixture
def comp_a(comp_b: Component) -> Component:
    """Component A depending on B and on external package left-pad."""
    return Component(
        id=ComponentID(scope="acme.ui", name="a", version="1.0.0"),
        dependencies=DependencySet(components=[comp_b.id], packages={"left-pad": "^2.0.0"}),
        files=[
            SourceFile(relative_path="index.js", content="require('@acme/ui.b');\n"),
            SourceFile(relative_path="lib/util.js", content="// util\n"),
        ],
        main_file="index.js",
    )


@pytest.fixture
def workspace_policy() -> WorkspacePolicy:
    return WorkspacePolicy(
        entries=[
            PolicyEntry(name="react", version="^1.0.0", lifecycle=DependencyLifecycle.PEER),
            PolicyEntry(name="lodash", version="^4.0.0", lifecycle=DependencyLifecycle.RUNTIME),
            PolicyEntry(name="jest", version="^29.0.0", lifecycle=DependencyLifecycle.DEV),
        ]
    )


@pytest.fixture
def host(workspace: Path, comp_a: Component, comp_b: Component) -> FakeHost:
    return FakeHost(workspace, [comp_a, comp_b])


@pytest.fixture
def graph_builder(comp_a: Component, comp_b: Component) -> FakeGraphBuilder:
    graph = FakeGraph([comp_a, comp_b], {comp_a.id.to_string(): [comp_b.id.to_string()]})
    return FakeGraphBuilder(graph)


@pytest.fixture
def installer() -> RecordingInstaller:
    return RecordingInstaller()


@pytest.fixture
def linker() -> RecordingLinker:
    return RecordingLinker()


@pytest.fixture
def dependency_resolver(
    workspace_policy: WorkspacePolicy,
    installer: RecordingInstaller,
    linker: RecordingLinker,
) -> FakeDependencyResolver:
    return FakeDependencyResolver(workspace_policy, installer, linker)


@pytest.fixture
def isolator(
    host: FakeHost,
    graph_builder: FakeGraphBuilder,
    dependency_resolver: FakeDependencyResolver,
    config: IsolatorConfig,
) -> Isolator:
    return Isolator(host, graph_builder, dependency_resolver, config=config)


@pytest.fixture
def fakes() -> SimpleNamespace:
    """The collaborator fake classes, for tests that build their own scenario."""
    return SimpleNamespace(
        FakeHost=FakeHost,
        FakeGraph=FakeGraph,
        FakeGraphBuilder=FakeGraphBuilder,
        RecordingInstaller=RecordingInstaller,
        RecordingLinker=RecordingLinker,
        FakeDependencyResolver=FakeDependencyResolver,
    )
