"""
Schema definitions for the isolator.

This module defines the Pydantic models used throughout the isolator:
- ComponentID/Component: What gets isolated (read-only for the core)
- WorkspacePolicy/PolicyEntry: Workspace-level dependency declarations
- InstallOptions/LinkingOptions/IsolateOptions: Per-operation configuration

Design Decisions:
    - Component is a closed structure with fixed fields, no adapter object
    - Every recognized option is declared on exactly one options model
    - Options are merged with defaults in one place (IsolateOptions.merged)
    - Models are immutable (frozen=True)
"""

import re
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Constants
# =============================================================================

PACKAGE_JSON = "package.json"
MODULES_DIR = "node_modules"

# Placeholder version for components that have not been tagged yet
NEW_VERSION_PLACEHOLDER = "0.0.1-new"

# Manifest sections that carry dependencies (the only ones compared on diff)
DEPENDENCIES_FIELDS = ("dependencies", "devDependencies", "peerDependencies")

_UNSAFE_DIR_CHARS = re.compile(r"[^A-Za-z0-9._-]")


# =============================================================================
# Component Models
# =============================================================================


class ComponentID(BaseModel):
    """
    Identity of a component.

    Attributes:
        name: Component name, may contain "/" for namespaces (e.g. "ui/button")
        scope: Optional scope the component belongs to (e.g. "acme.design")
        version: Optional version, absent for components never tagged
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Component name")
    scope: str | None = Field(default=None, description="Owning scope")
    version: str | None = Field(default=None, description="Resolved version")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Names cannot start or end with a namespace separator."""
        if v.startswith("/") or v.endswith("/") or "@" in v:
            msg = f"Invalid component name: {v}"
            raise ValueError(msg)
        return v

    @classmethod
    def parse(cls, value: str, has_scope: bool = True) -> "ComponentID":
        """
        Parse "scope/name@version" into a ComponentID.

        Args:
            value: String form of the id
            has_scope: Whether the first path segment is the scope
        """
        version = None
        if "@" in value[1:]:
            value, version = value.rsplit("@", 1)
        scope = None
        if has_scope and "/" in value:
            scope, value = value.split("/", 1)
        return cls(name=value, scope=scope, version=version or None)

    def has_version(self) -> bool:
        return bool(self.version)

    def without_version(self) -> "ComponentID":
        return self.model_copy(update={"version": None})

    def to_string(self, ignore_version: bool = False) -> str:
        """Render the id as "scope/name@version"."""
        result = f"{self.scope}/{self.name}" if self.scope else self.name
        if self.version and not ignore_version:
            result = f"{result}@{self.version}"
        return result

    def __str__(self) -> str:
        return self.to_string()

    @property
    def package_name(self) -> str:
        """
        Name under which the component appears in package manifests.

        A scope "owner.collection" maps to "@owner/collection.<name>",
        a flat scope "owner" maps to "@owner/<name>". Namespace slashes in
        the name become dots.
        """
        dotted_name = self.name.replace("/", ".")
        if not self.scope:
            return dotted_name
        owner, _, rest = self.scope.partition(".")
        if rest:
            return f"@{owner}/{rest}.{dotted_name}"
        return f"@{owner}/{dotted_name}"

    @property
    def capsule_dir_name(self) -> str:
        """Stable, filesystem-safe directory name (includes the version)."""
        return _UNSAFE_DIR_CHARS.sub("_", self.to_string())


class SourceFile(BaseModel):
    """A single file owned by a component, relative to the component root."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    relative_path: str = Field(..., min_length=1)
    content: str = Field(default="")


class DependencySet(BaseModel):
    """
    One dependency lifecycle of a component.

    Attributes:
        components: Internal dependencies (other components)
        packages: External packages, name -> version range
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    components: list[ComponentID] = Field(default_factory=list)
    packages: dict[str, str] = Field(default_factory=dict)


class Component(BaseModel):
    """
    A component as served by the component host.

    The core only reads components; it never mutates them.

    Attributes:
        id: Component identity
        dependencies: Runtime dependencies
        dev_dependencies: Development dependencies
        peer_dependencies: Peer dependencies
        extension_dependencies: Components used as extensions (dev-time)
        files: Authoritative source files
        main_file: Entry point relative to the component root
        config: Component configuration (e.g. "packageJson" overrides)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: ComponentID
    dependencies: DependencySet = Field(default_factory=DependencySet)
    dev_dependencies: DependencySet = Field(default_factory=DependencySet)
    peer_dependencies: DependencySet = Field(default_factory=DependencySet)
    extension_dependencies: list[ComponentID] = Field(default_factory=list)
    files: list[SourceFile] = Field(default_factory=list)
    main_file: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)

    @property
    def version(self) -> str:
        """The component version, or the placeholder when not yet tagged."""
        return self.id.version or NEW_VERSION_PLACEHOLDER


# =============================================================================
# Policy Models
# =============================================================================


class DependencyLifecycle(str, Enum):
    """Lifecycle a workspace dependency declaration applies to."""

    RUNTIME = "runtime"
    DEV = "dev"
    PEER = "peer"


class PolicyEntry(BaseModel):
    """A single workspace dependency declaration."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    lifecycle: DependencyLifecycle = DependencyLifecycle.RUNTIME


class WorkspacePolicy(BaseModel):
    """
    The workspace dependency policy.

    The isolator never hands the full policy to the installer, only the
    peer entries (see by_lifecycle_type).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    entries: list[PolicyEntry] = Field(default_factory=list)

    def by_lifecycle_type(self, lifecycle: DependencyLifecycle | str) -> "WorkspacePolicy":
        """Return a new policy restricted to one lifecycle."""
        lifecycle = DependencyLifecycle(lifecycle)
        return WorkspacePolicy(entries=[e for e in self.entries if e.lifecycle == lifecycle])

    def to_dependencies(self) -> dict[str, str]:
        return {entry.name: entry.version for entry in self.entries}

    def __len__(self) -> int:
        return len(self.entries)


# =============================================================================
# Options Models
# =============================================================================


class InstallOptions(BaseModel):
    """
    Options for the install phase.

    Attributes:
        install_packages: Run install and link at all
        dedupe: Hoist shared dependency versions to the isolation root
        copy_peer_to_runtime_on_components: Copy resolved peers into each
            capsule's runtime dependencies
        copy_peer_to_runtime_on_root: Copy resolved peers into the root's
            runtime dependencies
        install_tool_runtime: Force the isolator's own runtime into the install
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    install_packages: bool = True
    dedupe: bool = True
    copy_peer_to_runtime_on_components: bool = False
    copy_peer_to_runtime_on_root: bool = True
    install_tool_runtime: bool = False


class LinkingOptions(BaseModel):
    """
    Options for the link phase.

    Attributes:
        link_tool_runtime: Symlink the isolator runtime into relinked capsules
        tool_runtime_dir: Directory to link (defaults to the installed package)
        tool_package_name: Module name the runtime is linked under
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    link_tool_runtime: bool = True
    tool_runtime_dir: Path | None = None
    tool_package_name: str = Field(default="isolator", min_length=1)


class IsolateOptions(BaseModel):
    """
    Options for one isolate_components call.

    Attributes:
        name: Optional label for the run (logging only)
        base_dir: Directory whose hash names the isolation root
            (defaults to the component host path)
        always_new: Add a random suffix to every capsule directory
        install_options: Install phase options
        linking_options: Link phase options
        empty_root_dir: Wipe the isolation root before creating capsules
        skip_if_exists: Return existing capsules when all are populated
        get_existing_as_is: Return capsules right after directory creation
        cache_packages_on_capsules_root: Put the package cache on the root
        seeders_only: Isolate the seeds only, without the dependency graph
        lock_root: Serialize runs sharing an isolation root
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = None
    base_dir: Path | None = None
    always_new: bool = False
    install_options: InstallOptions = Field(default_factory=InstallOptions)
    linking_options: LinkingOptions = Field(default_factory=LinkingOptions)
    empty_root_dir: bool = False
    skip_if_exists: bool = False
    get_existing_as_is: bool = False
    cache_packages_on_capsules_root: bool = False
    seeders_only: bool = False
    lock_root: bool = True

    def merged(self, overrides: Mapping[str, Any] | None) -> "IsolateOptions":
        """Return a copy with overrides applied (nested options merged key by key)."""
        if not overrides:
            return self
        data = _deep_merge(self.model_dump(), overrides)
        return IsolateOptions.model_validate(data)


def resolve_isolate_options(
    opts: "IsolateOptions | Mapping[str, Any] | None",
    defaults: IsolateOptions | None = None,
) -> IsolateOptions:
    """
    Merge caller options with defaults.

    Only the fields the caller explicitly set override the defaults, so a
    partially filled IsolateOptions behaves like a partial dict.
    """
    base = defaults or IsolateOptions()
    if opts is None:
        return base
    if isinstance(opts, IsolateOptions):
        overrides = opts.model_dump(exclude_unset=True)
    else:
        overrides = dict(opts)
    return base.merged(overrides)


def _deep_merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in overrides.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(exclude_unset=True)
        if isinstance(value, Mapping) and isinstance(result.get(key), dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result
