"""
Interfaces of the external collaborators the isolator drives.

The isolator does not store components, compute dependency graphs, fetch
packages or implement linking primitives. It consumes them through the
abstract classes below:
- ComponentHost: Resolves component ids to components
- ComponentGraph / GraphBuilder: Transitive dependency graph
- DependencyResolver: Workspace policy, installer and linker factories
- Installer / Linker: The side-effecting install and link primitives
- ArtifactStore: Optional source of build artifacts written into capsules

Why ABC over Protocol?
    - Collaborators are registered explicitly by the surrounding tool
    - ABCs allow shared implementation in the base class (get_many)
    - Missing methods fail at instantiation, not mid-run
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from isolator.errors import ComponentNotFoundError
from isolator.schema import (
    Component,
    ComponentID,
    LinkingOptions,
    SourceFile,
    WorkspacePolicy,
)

# Component id -> capsule directory
ComponentMap = dict[ComponentID, Path]


# =============================================================================
# Component Host / Graph
# =============================================================================


class ComponentHost(ABC):
    """
    Resolves component identities to full components.

    Subclasses must implement:
    - path property: The workspace directory (default isolation base dir)
    - get(): Return a component or None
    - has_id(): Whether the host knows the exact id (version included)
    """

    @property
    @abstractmethod
    def path(self) -> Path:
        ...

    @abstractmethod
    def get(self, component_id: ComponentID) -> Component | None:
        ...

    @abstractmethod
    def has_id(self, component_id: ComponentID) -> bool:
        ...

    def get_many(self, ids: Sequence[ComponentID]) -> list[Component]:
        """
        Resolve every id.

        Raises:
            ComponentNotFoundError: If any id is unknown to the host
        """
        components = []
        for component_id in ids:
            component = self.get(component_id)
            if component is None:
                raise ComponentNotFoundError(component_id=str(component_id))
            components.append(component)
        return components


class ComponentGraph(ABC):
    """A dependency graph whose nodes are components."""

    @property
    @abstractmethod
    def nodes(self) -> list[Component]:
        ...

    @abstractmethod
    def successors_subgraph(self, ids: Sequence[str]) -> "ComponentGraph":
        """Subgraph of the given nodes and everything they depend on."""
        ...


class GraphBuilder(ABC):
    """Builds the dependency graph for a set of seed components."""

    @abstractmethod
    def get_graph(self, ids: Sequence[ComponentID]) -> ComponentGraph:
        ...


# =============================================================================
# Install / Link
# =============================================================================


@dataclass(frozen=True)
class InstallerConfig:
    """
    Attributes:
        root_dir: Directory the shared install is rooted at
        cache_root_directory: Package cache location (None = installer default)
    """

    root_dir: Path
    cache_root_directory: Path | None = None


@dataclass(frozen=True)
class InstallerRunOptions:
    """Attributes:
        install_tool_runtime: Include the isolator runtime as an install target
    """

    install_tool_runtime: bool = False


@dataclass(frozen=True)
class PackageManagerInstallOptions:
    dedupe: bool = True
    copy_peer_to_runtime_on_components: bool = False
    copy_peer_to_runtime_on_root: bool = True


@dataclass(frozen=True)
class LinkerConfig:
    root_dir: Path
    linking_options: LinkingOptions


class Installer(ABC):
    """Populates one shared dependency tree at root_dir for all capsules."""

    @abstractmethod
    def install(
        self,
        root_dir: Path,
        policy: WorkspacePolicy,
        component_map: ComponentMap,
        options: InstallerRunOptions,
        package_manager_options: PackageManagerInstallOptions,
    ) -> None:
        ...


class Linker(ABC):
    """Links installed packages for the capsules under root_dir."""

    @abstractmethod
    def link(
        self,
        root_dir: Path,
        policy: WorkspacePolicy,
        component_map: ComponentMap,
        linking_options: LinkingOptions,
    ) -> None:
        ...


class DependencyResolver(ABC):
    """Source of the workspace policy and of installer/linker instances."""

    @abstractmethod
    def get_workspace_policy(self) -> WorkspacePolicy:
        ...

    @abstractmethod
    def get_installer(self, config: InstallerConfig) -> Installer:
        ...

    @abstractmethod
    def get_linker(self, config: LinkerConfig) -> Linker:
        ...


# =============================================================================
# Artifacts
# =============================================================================


class ArtifactStore(ABC):
    """Storage handle able to provide build artifacts (dists) of a component."""

    @abstractmethod
    def get_artifacts(self, component: Component) -> list[SourceFile]:
        ...
