"""DependencyGraph — NetworkX digraph over unit names and hard dependencies.

Rebuilt for every resolution pass, never cached across passes.
Edges point from a unit to the unit it requires. Only edges whose target is
a node are materialised; the declared dependency list is kept as a node
attribute so missing targets can still be reported.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

import networkx as nx

type _Graph = nx.DiGraph


class DependencyGraph:
    """Mutable dependency graph used by the resolver's fix-point passes."""

    def __init__(self, declared: Mapping[str, Iterable[str]]) -> None:
        g: _Graph = nx.DiGraph()
        # Add all nodes first so edge targets resolve regardless of order
        for name, deps in declared.items():
            g.add_node(name, declared=tuple(deps))
        for name in declared:
            for dep in g.nodes[name]["declared"]:
                if dep in g:
                    g.add_edge(name, dep)
        self._graph = g

    @property
    def graph(self) -> _Graph:
        return self._graph

    def names(self) -> list[str]:
        """Node names in lexicographic order."""
        return sorted(self._graph.nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._graph

    def __len__(self) -> int:
        return self._graph.number_of_nodes()

    def declared(self, name: str) -> tuple[str, ...]:
        return self._graph.nodes[name]["declared"]

    def missing_targets(self, name: str) -> list[str]:
        """Declared dependencies of *name* that are not nodes."""
        return [dep for dep in self.declared(name) if dep not in self._graph]

    def remove(self, name: str) -> None:
        """Drop *name* and every edge touching it."""
        if name in self._graph:
            self._graph.remove_node(name)

    def find_cycle_edge(self, start: str) -> tuple[str, str] | None:
        """Depth-first walk from *start* along dependency edges.

        Returns ``(closing, predecessor)`` for the first edge that leads back
        to a node on the active path: *closing* is the revisited node and
        *predecessor* the node whose edge reached it. Edges are followed in
        declared order. Returns None when no cycle is reachable.
        """
        on_path: set[str] = set()
        done: set[str] = set()

        def walk(node: str, parent: str | None) -> tuple[str, str] | None:
            if node in on_path:
                return node, parent if parent is not None else node
            if node in done:
                return None
            on_path.add(node)
            for dep in self.declared(node):
                if dep not in self._graph:
                    continue
                found = walk(dep, node)
                if found is not None:
                    return found
            on_path.discard(node)
            done.add(node)
            return None

        return walk(start, None)

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self._graph)

    def activation_order(self) -> list[str]:
        """Dependencies-first topological order, ties broken by name.

        Raises:
            networkx.NetworkXUnfeasible: If the graph still contains a cycle.
        """
        return list(nx.lexicographical_topological_sort(self._graph.reverse(copy=False)))
