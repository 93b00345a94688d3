"""
CapsuleList: ordered collection of capsules, unique by component id.

The order is the traversal order of graph resolution. It carries no meaning
for correctness.
"""

from collections.abc import Iterable
from pathlib import Path

from isolator.capsule.capsule import Capsule
from isolator.schema import ComponentID


class CapsuleList(list[Capsule]):
    """A list of capsules with lookup by component id or path."""

    @classmethod
    def from_array(cls, capsules: Iterable[Capsule]) -> "CapsuleList":
        """Build a list keeping the first capsule for each component id."""
        result = cls()
        seen: set[ComponentID] = set()
        for capsule in capsules:
            if capsule.component.id in seen:
                continue
            seen.add(capsule.component.id)
            result.append(capsule)
        return result

    def get_capsule(self, component_id: ComponentID) -> Capsule | None:
        for capsule in self:
            if capsule.component.id == component_id:
                return capsule
        return None

    def get_capsule_ignore_version(self, component_id: ComponentID) -> Capsule | None:
        wanted = component_id.without_version()
        for capsule in self:
            if capsule.component.id.without_version() == wanted:
                return capsule
        return None

    def get_capsule_by_path(self, path: Path | str) -> Capsule | None:
        path = Path(path).resolve()
        for capsule in self:
            if capsule.path == path:
                return capsule
        return None

    def get_ids(self) -> list[ComponentID]:
        return [capsule.component.id for capsule in self]

    def to_component_map(self) -> dict[ComponentID, Path]:
        """Map each component id to its capsule directory."""
        return {capsule.component.id: capsule.path for capsule in self}
