"""Installed dependency tree snapshot."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional


@dataclass(frozen=True)
class Node:
    """One installed package inside a tree."""
    name: str
    version: str
    location: str
    resolved: Optional[str] = None
    bin: Mapping[str, str] = field(default_factory=dict)

    @property
    def pkgid(self) -> str:
        return f"{self.name}@{self.version}"


class Tree:
    """Read-only view of the packages installed under ``root``."""

    def __init__(self, root: str, nodes: Iterable[Node] = ()):
        self.root = root
        self._nodes: List[Node] = list(nodes)
        self._by_name: Dict[str, List[Node]] = defaultdict(list)
        for node in self._nodes:
            self._by_name[node.name].append(node)

    def query(self, package_name: str) -> List[Node]:
        """All nodes whose package.json name is ``package_name``."""
        return list(self._by_name.get(package_name, ()))

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Tree(root={self.root!r}, nodes={len(self._nodes)})"
