"""Tests for DependencyResolver in sequencer/deployment/resolver.py.

Tests cover:
- Topological order and stages
- Independence of units without dependencies
- Cycle detection (two-node, self, longer cycles)
- Tag selection with transitive dependencies
- Deployment plans
"""

import pytest

from sequencer.core.exceptions import CyclicDependency, UnknownTag
from sequencer.deployment.models import DeploymentUnit
from sequencer.deployment.resolver import DependencyResolver


def make_unit(name: str, *refs: str, tags: list[str] | None = None, **kwargs) -> DeploymentUnit:
    """Helper to create a unit referencing other units."""
    return DeploymentUnit(name=name, args=[f"${ref}" for ref in refs], tags=tags, **kwargs)


def dibs_units() -> list[DeploymentUnit]:
    """Units shaped like the Dibs manifest."""
    return [
        make_unit("Dibs"),
        make_unit("DShare"),
        make_unit("DShareRewardPool", "DShare"),
        make_unit("BananaGenesisRewardPool", "Dibs", tags=["DibsGenesisRewardPool"]),
        make_unit("DibsRewardPool", "Dibs"),
        make_unit("Oracle"),
        make_unit("TaxOfficeV2"),
        make_unit("TaxOracle", "Dibs"),
        make_unit("Zap"),
    ]


class TestStages:
    """Test stage grouping."""

    def test_independent_units_share_first_stage(self) -> None:
        stages = DependencyResolver().stages(dibs_units())

        assert stages[0] == ["Dibs", "DShare", "Oracle", "TaxOfficeV2", "Zap"]
        assert stages[1] == [
            "DShareRewardPool",
            "BananaGenesisRewardPool",
            "DibsRewardPool",
            "TaxOracle",
        ]

    def test_chain(self) -> None:
        units = [make_unit("C", "B"), make_unit("B", "A"), make_unit("A")]
        assert DependencyResolver().stages(units) == [["A"], ["B"], ["C"]]

    def test_depends_on_edges(self) -> None:
        units = [make_unit("Late", depends_on=["Early"]), make_unit("Early")]
        assert DependencyResolver().order(units) == ["Early", "Late"]

    def test_external_dependencies_ignored(self) -> None:
        """References to units outside the set do not block ordering."""
        units = [make_unit("RewardPool", "Token")]
        assert DependencyResolver().stages(units) == [["RewardPool"]]

    def test_empty(self) -> None:
        assert DependencyResolver().stages([]) == []


class TestOrder:
    """Test topological order."""

    def test_dependencies_precede_dependents(self) -> None:
        units = dibs_units()
        order = DependencyResolver().order(units)

        assert len(order) == len(units)
        for unit in units:
            for dep in unit.dependencies:
                assert order.index(dep) < order.index(unit.name)

    def test_deterministic(self) -> None:
        resolver = DependencyResolver()
        assert resolver.order(dibs_units()) == resolver.order(dibs_units())


class TestCycles:
    """Test cycle detection."""

    def test_two_node_cycle(self) -> None:
        units = [make_unit("A", "B"), make_unit("B", "A")]

        with pytest.raises(CyclicDependency) as exc_info:
            DependencyResolver().order(units)

        assert exc_info.value.cycle == ["A", "B", "A"]

    def test_self_reference(self) -> None:
        with pytest.raises(CyclicDependency) as exc_info:
            DependencyResolver().check_acyclic([make_unit("A", "A")])

        assert exc_info.value.cycle == ["A", "A"]

    def test_cycle_behind_valid_units(self) -> None:
        units = [
            make_unit("Root"),
            make_unit("X", "Root", "Z"),
            make_unit("Y", "X"),
            make_unit("Z", "Y"),
        ]

        with pytest.raises(CyclicDependency) as exc_info:
            DependencyResolver().stages(units)

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"X", "Y", "Z"}

    def test_acyclic_passes(self) -> None:
        DependencyResolver().check_acyclic(dibs_units())


class TestSelect:
    """Test tag selection."""

    def test_includes_transitive_dependencies(self) -> None:
        units = [make_unit("A"), make_unit("B", "A"), make_unit("C", "B"), make_unit("D")]
        selected = DependencyResolver().select(units, ["C"])
        assert [u.name for u in selected] == ["A", "B", "C"]

    def test_custom_tag(self) -> None:
        selected = DependencyResolver().select(dibs_units(), ["DibsGenesisRewardPool"])
        assert [u.name for u in selected] == ["Dibs", "BananaGenesisRewardPool"]

    def test_multiple_tags(self) -> None:
        selected = DependencyResolver().select(dibs_units(), ["Zap", "DShareRewardPool"])
        assert [u.name for u in selected] == ["DShare", "DShareRewardPool", "Zap"]

    def test_unknown_tag(self) -> None:
        with pytest.raises(UnknownTag):
            DependencyResolver().select(dibs_units(), ["Nope"])


class TestPlan:
    """Test plan generation."""

    def test_full_plan(self) -> None:
        plan = DependencyResolver().plan(dibs_units())

        assert plan.order == [name for stage in plan.stages for name in stage]
        assert plan.dependencies["TaxOracle"] == ["Dibs"]
        assert plan.dependencies["Zap"] == []

    def test_tagged_plan(self) -> None:
        plan = DependencyResolver().plan(dibs_units(), ["TaxOracle"])
        assert plan.order == ["Dibs", "TaxOracle"]
        assert plan.stages == [["Dibs"], ["TaxOracle"]]
