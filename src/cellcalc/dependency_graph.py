"""Bidirectional dependency graph over opaque node names.

An edge ``(s, t)`` means *t depends on s*: ``s`` is a dependee of ``t``
and ``t`` is a dependent of ``s``.  Edges form a set, so adding an
existing edge or removing a missing one is a no-op.  The graph has no
notion of cycles; self-loops are ordinary edges.
"""

from __future__ import annotations

from typing import Iterable


class DependencyGraph:
    """Directed edge set indexed in both directions.

    Invariant: ``t in dependents[s]`` iff ``s in dependees[t]``.  Nodes
    without edges are never kept as empty entries.
    """

    __slots__ = ("_dependents", "_dependees", "_size")

    def __init__(self) -> None:
        # node -> nodes that depend on it
        self._dependents: dict[str, set[str]] = {}
        # node -> nodes it depends on
        self._dependees: dict[str, set[str]] = {}
        self._size = 0

    @property
    def size(self) -> int:
        """Number of distinct edges."""
        return self._size

    def __len__(self) -> int:
        return self._size

    def has_dependents(self, node: str) -> bool:
        return node in self._dependents

    def has_dependees(self, node: str) -> bool:
        return node in self._dependees

    def get_dependents(self, node: str) -> set[str]:
        """Return a copy of the nodes that depend on *node*."""
        return set(self._dependents.get(node, ()))

    def get_dependees(self, node: str) -> set[str]:
        """Return a copy of the nodes *node* depends on."""
        return set(self._dependees.get(node, ()))

    def add_dependency(self, dependee: str, dependent: str) -> None:
        """Add the edge ``(dependee, dependent)`` if not already present."""
        targets = self._dependents.setdefault(dependee, set())
        if dependent in targets:
            return
        targets.add(dependent)
        self._dependees.setdefault(dependent, set()).add(dependee)
        self._size += 1

    def remove_dependency(self, dependee: str, dependent: str) -> None:
        """Remove the edge ``(dependee, dependent)`` if present."""
        targets = self._dependents.get(dependee)
        if not targets or dependent not in targets:
            return
        _discard(self._dependents, dependee, dependent)
        _discard(self._dependees, dependent, dependee)
        self._size -= 1

    def replace_dependents(self, node: str, new_dependents: Iterable[str]) -> None:
        """Make *new_dependents* (deduplicated) the exact dependents of *node*."""
        for old in self.get_dependents(node):
            self.remove_dependency(node, old)
        for new in new_dependents:
            self.add_dependency(node, new)

    def replace_dependees(self, node: str, new_dependees: Iterable[str]) -> None:
        """Make *new_dependees* (deduplicated) the exact dependees of *node*."""
        for old in self.get_dependees(node):
            self.remove_dependency(old, node)
        for new in new_dependees:
            self.add_dependency(new, node)

    def __repr__(self) -> str:
        return f"DependencyGraph(size={self._size})"


def _discard(index: dict[str, set[str]], key: str, member: str) -> None:
    members = index[key]
    members.discard(member)
    if not members:
        del index[key]
