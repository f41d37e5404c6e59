"""Unit tests for gatehouse.core.planning.scheduler — sequencing, phases, critical path."""

from __future__ import annotations

from gatehouse.core.planning.models import Feature, RiskLevel
from gatehouse.core.planning.scheduler import build_plan


def _feature(fid: str, deps: tuple[str, ...] = (), **overrides) -> Feature:
    data = {
        "id": fid,
        "title": fid.upper(),
        "business_value": 70,
        "technical_value": 70,
        "estimated_hours": 16,
        "dependencies": list(deps),
    }
    data.update(overrides)
    return Feature.model_validate(data)


def _sequence(plan) -> dict[str, int]:
    return {pf.id: pf.integration_sequence for pf in plan.features}


class TestIntegrationSequence:
    def test_prerequisites_come_first(self) -> None:
        features = [
            _feature("c", deps=("b",)),
            _feature("b", deps=("a",)),
            _feature("a"),
            _feature("d", deps=("a", "c")),
        ]
        seq = _sequence(build_plan(features))
        for f in features:
            for dep in f.dependencies:
                assert seq[f.id] > seq[dep]

    def test_sequence_is_a_permutation(self) -> None:
        features = [_feature(x) for x in "abcde"]
        seq = _sequence(build_plan(features))
        assert sorted(seq.values()) == [1, 2, 3, 4, 5]

    def test_unknown_dependency_ignored(self) -> None:
        plan = build_plan([_feature("a", deps=("ghost",))])
        pf = plan.features[0]
        assert pf.blocked_by == []
        assert pf.integration_sequence == 1

    def test_duplicate_dependency_linked_once(self) -> None:
        plan = build_plan([_feature("a"), _feature("b", deps=("a", "a"))])
        by_id = {pf.id: pf for pf in plan.features}
        assert by_id["b"].blocked_by == ["a"]
        assert by_id["a"].blocks == ["b"]

    def test_plan_features_sorted_by_sequence(self) -> None:
        plan = build_plan([_feature("b", deps=("a",)), _feature("a")])
        assert [pf.id for pf in plan.features] == ["a", "b"]


class TestPhases:
    def test_every_feature_in_exactly_one_phase(self) -> None:
        features = [
            _feature("a"),
            _feature("b", deps=("a",)),
            _feature("c", deps=("a",)),
            _feature("d", deps=("b", "c")),
            _feature("e"),
        ]
        plan = build_plan(features)
        placed = [fid for phase in plan.phases for fid in phase.features]
        assert sorted(placed) == sorted(f.id for f in features)
        assert len(placed) == len(set(placed))

    def test_phase_batches_by_satisfied_prerequisites(self) -> None:
        features = [
            _feature("a"),
            _feature("e"),
            _feature("b", deps=("a",)),
            _feature("c", deps=("a",)),
            _feature("d", deps=("b", "c")),
        ]
        phases = build_plan(features).phases
        assert [set(p.features) for p in phases] == [{"a", "e"}, {"b", "c"}, {"d"}]
        assert phases[1].dependencies == ("a",)
        assert phases[1].prerequisites == ("phase-1",)
        assert phases[2].prerequisites == ("phase-2",)
        assert phases[0].name == "Integration Phase 1"

    def test_phase_duration_is_longest_feature(self) -> None:
        features = [_feature("a", estimated_hours=4), _feature("b", estimated_hours=30)]
        phases = build_plan(features).phases
        assert len(phases) == 1
        assert phases[0].estimated_duration == 30

    def test_phase_risk_is_average(self) -> None:
        features = [
            _feature("a", risk_level="low"),
            _feature("b", risk_level="critical"),
        ]
        # (1 + 4) / 2 = 2.5 → high
        assert build_plan(features).phases[0].risk_level == RiskLevel.HIGH

    def test_two_cycle_is_force_admitted(self) -> None:
        plan = build_plan([_feature("a", deps=("b",)), _feature("b", deps=("a",))])
        placed = [fid for phase in plan.phases for fid in phase.features]
        assert sorted(placed) == ["a", "b"]
        assert len(plan.phases) in (1, 2)
        assert sorted(pf.integration_sequence for pf in plan.features) == [1, 2]

    def test_cycle_behind_acyclic_prefix(self) -> None:
        features = [
            _feature("root"),
            _feature("x", deps=("root", "y")),
            _feature("y", deps=("x",)),
        ]
        plan = build_plan(features)
        assert plan.phases[0].features == ("root",)
        placed = [fid for phase in plan.phases for fid in phase.features]
        assert sorted(placed) == ["root", "x", "y"]

    def test_empty_input(self) -> None:
        plan = build_plan([])
        assert plan.features == []
        assert plan.phases == []
        assert plan.critical_path == []


class TestCriticalPath:
    def test_longest_chain(self) -> None:
        features = [
            _feature("a"),
            _feature("b", deps=("a",)),
            _feature("c", deps=("b",)),
            _feature("x"),
            _feature("y", deps=("x",)),
        ]
        assert build_plan(features).critical_path == ["a", "b", "c"]

    def test_single_feature(self) -> None:
        assert build_plan([_feature("solo")]).critical_path == ["solo"]

    def test_pure_cycle_has_no_root(self) -> None:
        plan = build_plan([_feature("a", deps=("b",)), _feature("b", deps=("a",))])
        assert plan.critical_path == []


class TestLongChains:
    CHAIN = 2000

    def _chain(self) -> list[Feature]:
        # Dependents listed before their prerequisites
        ids = [f"f{i:04d}" for i in range(self.CHAIN)]
        return [
            _feature(fid, deps=(ids[i - 1],) if i else ())
            for i, fid in reversed(list(enumerate(ids)))
        ]

    def test_sequence_follows_the_chain(self) -> None:
        plan = build_plan(self._chain())
        seq = _sequence(plan)
        ordered = [seq[f"f{i:04d}"] for i in range(self.CHAIN)]
        assert ordered == list(range(1, self.CHAIN + 1))

    def test_critical_path_spans_the_chain(self) -> None:
        plan = build_plan(self._chain())
        assert len(plan.critical_path) == self.CHAIN
        assert plan.critical_path[0] == "f0000"
        assert plan.critical_path[-1] == f"f{self.CHAIN - 1:04d}"
        assert len(plan.phases) == self.CHAIN
