"""Explicit dependency graph between entity sync steps"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence


@dataclass(frozen=True)
class SyncNode:
    name: str
    tier: int
    depends_on: Sequence[str] = field(default_factory=tuple)


class SyncGraph:
    """Validated set of sync nodes.

    Dependencies are soft: they document ordering and are checked at
    construction, but a failed node never causes its dependents to be skipped.
    """

    def __init__(self, nodes: Iterable[SyncNode]):
        self.nodes: List[SyncNode] = list(nodes)
        self._by_name: Dict[str, SyncNode] = {}
        for node in self.nodes:
            if node.name in self._by_name:
                raise ValueError(f"Duplicate sync node: {node.name}")
            self._by_name[node.name] = node

        for node in self.nodes:
            for dep in node.depends_on:
                upstream = self._by_name.get(dep)
                if upstream is None:
                    raise ValueError(f"Sync node {node.name} depends on unknown node {dep}")
                if upstream.tier >= node.tier:
                    raise ValueError(
                        f"Sync node {node.name} (tier {node.tier}) depends on {dep} "
                        f"(tier {upstream.tier}); dependencies must be in a lower tier"
                    )

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self.nodes)

    def get(self, name: str) -> SyncNode:
        if name not in self._by_name:
            raise ValueError(f"Unknown entity type: {name}")
        return self._by_name[name]

    def ordered(self) -> List[SyncNode]:
        """Tier order; declaration order within a tier."""
        return sorted(self.nodes, key=lambda n: n.tier)

    @classmethod
    def from_definitions(cls, definitions) -> "SyncGraph":
        return cls(SyncNode(d.name, d.tier, tuple(d.depends_on)) for d in definitions)
