"""Results returned by the isolator."""

from dataclasses import dataclass, field
from pathlib import Path

from isolator.capsule import CapsuleList
from isolator.schema import ComponentID


@dataclass(frozen=True)
class Network:
    """
    Result of one isolation run.

    Attributes:
        graph_capsules: Capsules of every isolated component
        seeders_ids: The ids originally requested
        capsules_root_dir: The isolation root
    """

    graph_capsules: CapsuleList
    seeders_ids: list[ComponentID]
    capsules_root_dir: Path

    @property
    def seeders_capsules(self) -> CapsuleList:
        """Capsules of the requested seeds only."""
        capsules = (self.graph_capsules.get_capsule_ignore_version(seed) for seed in self.seeders_ids)
        return CapsuleList.from_array(c for c in capsules if c is not None)


@dataclass(frozen=True)
class ListResults:
    """
    Capsules found under a workspace's isolation root.

    Attributes:
        workspace: The workspace path the root was derived from
        capsules: Absolute capsule directories
    """

    workspace: str
    capsules: list[Path] = field(default_factory=list)
