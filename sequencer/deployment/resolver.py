"""Dependency resolver - order deployment units by the units they reference."""

import logging
from collections.abc import Iterable, Sequence

from ..core.exceptions import CyclicDependency, UnknownTag
from .models import DeploymentPlan, DeploymentUnit

logger = logging.getLogger(__name__)


class DependencyResolver:
    """Resolve the dependency graph of a set of deployment units.

    Edges come from reference arguments and explicit ``depends_on``
    entries. Edges to units outside the given set are ignored here; the
    sequencer resolves those from the address registry at deploy time.
    """

    def plan(
        self, units: Sequence[DeploymentUnit], tags: Iterable[str] | None = None
    ) -> DeploymentPlan:
        """Generate a deployment plan.

        Args:
            units: Declared units, in manifest order
            tags: Optional tag selection (dependencies are included)

        Returns:
            Plan with order, stages and dependency map

        Raises:
            CyclicDependency: If the selected units contain a cycle
            UnknownTag: If a tag matches no unit
        """
        selected = self.select(units, tags) if tags else list(units)
        stages = self.stages(selected)

        return DeploymentPlan(
            order=[name for stage in stages for name in stage],
            stages=stages,
            dependencies={unit.name: unit.dependencies for unit in selected},
        )

    def order(self, units: Sequence[DeploymentUnit]) -> list[str]:
        """Deterministic topological order of the units."""
        return [name for stage in self.stages(units) for name in stage]

    def check_acyclic(self, units: Sequence[DeploymentUnit]) -> None:
        """Raise CyclicDependency if the units cannot be ordered."""
        self.stages(units)

    def stages(self, units: Sequence[DeploymentUnit]) -> list[list[str]]:
        """Group units into stages via topological sort.

        Every unit's dependencies lie in earlier stages, so units within a
        stage are independent of each other. Within a stage, units keep
        their declaration order.

        Args:
            units: Units to order

        Returns:
            List of stages

        Raises:
            CyclicDependency: If no valid order exists
        """
        graph = self._build_graph(units)
        position = {unit.name: idx for idx, unit in enumerate(units)}

        in_degree = {name: len(deps) for name, deps in graph.items()}
        dependents: dict[str, list[str]] = {name: [] for name in graph}
        for name, deps in graph.items():
            for dep in deps:
                dependents[dep].append(name)

        stages: list[list[str]] = []
        remaining = set(graph)

        while remaining:
            current_stage = sorted(
                (node for node in remaining if in_degree[node] == 0),
                key=position.__getitem__,
            )

            if not current_stage:
                raise CyclicDependency(self._find_cycle(graph, remaining, position))

            stages.append(current_stage)

            for node in current_stage:
                remaining.remove(node)
                for dependent in dependents[node]:
                    in_degree[dependent] -= 1

        return stages

    def select(
        self, units: Sequence[DeploymentUnit], tags: Iterable[str]
    ) -> list[DeploymentUnit]:
        """Select tagged units plus everything they transitively depend on.

        Args:
            units: Declared units
            tags: Tags to select

        Returns:
            Selected units in declaration order

        Raises:
            UnknownTag: If a tag matches no unit
        """
        by_name = {unit.name: unit for unit in units}
        wanted: set[str] = set()

        for tag in tags:
            matched = [unit.name for unit in units if tag in unit.tags]
            if not matched:
                raise UnknownTag(tag)
            wanted.update(matched)

        pending = list(wanted)
        while pending:
            name = pending.pop()
            for dep in by_name[name].dependencies:
                if dep in by_name and dep not in wanted:
                    wanted.add(dep)
                    pending.append(dep)

        return [unit for unit in units if unit.name in wanted]

    def _build_graph(self, units: Sequence[DeploymentUnit]) -> dict[str, list[str]]:
        names = {unit.name for unit in units}
        graph: dict[str, list[str]] = {}

        for unit in units:
            external = [dep for dep in unit.dependencies if dep not in names]
            if external:
                logger.debug(
                    "Unit %s depends on units outside this set: %s",
                    unit.name,
                    ", ".join(external),
                )
            graph[unit.name] = [dep for dep in unit.dependencies if dep in names]

        return graph

    def _find_cycle(
        self,
        graph: dict[str, list[str]],
        candidates: set[str],
        position: dict[str, int],
    ) -> list[str]:
        """Find one cycle among the nodes left over by the topological sort."""
        visited: set[str] = set()
        path: list[str] = []
        on_path: set[str] = set()

        def visit(node: str) -> list[str] | None:
            visited.add(node)
            path.append(node)
            on_path.add(node)

            for dep in graph[node]:
                if dep in on_path:
                    return path[path.index(dep):] + [dep]
                if dep not in visited and dep in candidates:
                    found = visit(dep)
                    if found:
                        return found

            path.pop()
            on_path.remove(node)
            return None

        ordered = sorted(candidates, key=position.__getitem__)
        for node in ordered:
            if node not in visited:
                found = visit(node)
                if found:
                    return found

        return ordered
