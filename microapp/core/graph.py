"""
Package Graph.

This module builds a dependency graph over discovered packages.

Key features:
- Adjacency read from a configurable manifest field
- Deterministic topological order (Kahn's algorithm, ties broken by input order)
- Cycle detection that names the offending cycle
- Dependencies outside the graph and self-dependencies are ignored
"""

import heapq
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from microapp.config.package import Package
from microapp.errors import CyclicDependencyError


@dataclass
class GraphNode:
    """
    A package in the graph.

    Attributes:
        package: The package record
        index: Position in the input, used for tie-breaking
        dependencies: Names of in-graph packages this one depends on
        dependents: Names of in-graph packages depending on this one
    """

    package: Package
    index: int
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.package.name

    @property
    def version(self) -> str:
        return self.package.version


class PackageGraph:
    """
    Dependency graph keyed by package name.

    Example:
        graph = PackageGraph(packages, "dependencies")
        for name in graph.topological_order():
            ...  # dependencies always come first
    """

    def __init__(self, packages: Iterable[Package], dependency_field: str = "dependencies"):
        """
        Build the graph.

        Args:
            packages: Packages in discovery order; later duplicates are ignored
            dependency_field: Manifest key holding each package's dependencies
        """
        self.dependency_field = dependency_field
        self._nodes: dict[str, GraphNode] = {}

        for package in packages:
            if package.name not in self._nodes:
                self._nodes[package.name] = GraphNode(package, len(self._nodes))

        for node in self._nodes.values():
            for dep_name in node.package.dependency_names(dependency_field):
                if dep_name == node.name or dep_name not in self._nodes:
                    continue
                if dep_name in node.dependencies:
                    continue
                node.dependencies.append(dep_name)
                self._nodes[dep_name].dependents.append(node.name)

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[GraphNode]:
        return iter(self._nodes.values())

    def get(self, name: str) -> GraphNode | None:
        return self._nodes.get(name)

    def neighbors(self, name: str) -> list[str]:
        """Names of the packages `name` depends on."""
        node = self._nodes.get(name)
        return list(node.dependencies) if node else []

    def dependents(self, name: str) -> list[str]:
        """Names of the packages depending on `name`."""
        node = self._nodes.get(name)
        return list(node.dependents) if node else []

    def find_cycle(self) -> list[str] | None:
        """
        Find one dependency cycle.

        Returns:
            Package names forming the cycle, starting from the node reached
            first in input order, or None if the graph is acyclic
        """
        visiting: list[str] = []
        on_path: set[str] = set()
        done: set[str] = set()

        def visit(name: str) -> list[str] | None:
            visiting.append(name)
            on_path.add(name)
            for dep in self._nodes[name].dependencies:
                if dep in on_path:
                    return visiting[visiting.index(dep):]
                if dep not in done:
                    cycle = visit(dep)
                    if cycle:
                        return cycle
            visiting.pop()
            on_path.discard(name)
            done.add(name)
            return None

        for name in self._nodes:
            if name not in done:
                cycle = visit(name)
                if cycle:
                    return cycle
        return None

    def has_cycle(self) -> bool:
        return self.find_cycle() is not None

    def topological_order(self) -> list[str]:
        """
        Order packages so every dependency precedes its dependents.

        Returns:
            Package names in processing order

        Raises:
            CyclicDependencyError: If the graph contains a cycle
        """
        in_degree = {name: len(node.dependencies) for name, node in self._nodes.items()}

        # Ready nodes keyed by input position for reproducible ordering
        queue = [(node.index, name) for name, node in self._nodes.items() if in_degree[name] == 0]
        heapq.heapify(queue)
        result = []

        while queue:
            _, name = heapq.heappop(queue)
            result.append(name)

            for dependent in self._nodes[name].dependents:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(queue, (self._nodes[dependent].index, dependent))

        if len(result) != len(self._nodes):
            raise CyclicDependencyError(self.find_cycle() or [])

        return result
