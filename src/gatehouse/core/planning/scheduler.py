"""
Dependency scheduler — sequencing, phase batching, and critical path.

Features are kept in an arena keyed by id; edges are plain id lists
(``blocked_by`` on the dependent, ``blocks`` on the prerequisite), so cyclic
graphs never produce reference cycles and never make the scheduler fail:

  * sequencing skips features already on the DFS stack
  * phase batching force-admits the first remaining feature on deadlock
  * critical-path enumeration never re-enters a feature already on the path
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

import structlog

from gatehouse.core.planning.models import (
    RISK_ORDINAL,
    Feature,
    IntegrationPhase,
    IntegrationPlan,
    PrioritizationCriteria,
    PrioritizedFeature,
    RiskLevel,
)
from gatehouse.core.planning.scoring import rank_features

logger = structlog.get_logger()


def link_dependencies(features: list[PrioritizedFeature]) -> dict[str, PrioritizedFeature]:
    """
    Populate ``blocked_by``/``blocks`` from each feature's dependency list.

    Unknown prerequisite ids are ignored.  Returns the id-indexed arena.
    """
    arena = {pf.id: pf for pf in features}
    for pf in features:
        pf.blocked_by = []
        pf.blocks = []
    for pf in features:
        for prereq_id in pf.feature.dependencies:
            prereq = arena.get(prereq_id)
            if prereq is None or prereq_id in pf.blocked_by:
                continue
            pf.blocked_by.append(prereq_id)
            prereq.blocks.append(pf.id)
    return arena


def assign_integration_sequence(
    features: list[PrioritizedFeature],
    arena: dict[str, PrioritizedFeature],
) -> None:
    """Number features in dependency order, prerequisites before dependents."""
    visited: set[str] = set()
    on_stack: set[str] = set()
    counter = 0

    def visit(start_id: str) -> None:
        # Explicit stack so long prerequisite chains never hit the recursion limit
        nonlocal counter
        if start_id in visited or start_id in on_stack or start_id not in arena:
            return
        on_stack.add(start_id)
        stack = [(start_id, iter(arena[start_id].blocked_by))]
        while stack:
            feature_id, prereqs = stack[-1]
            for prereq_id in prereqs:
                if prereq_id in visited or prereq_id in on_stack or prereq_id not in arena:
                    continue
                on_stack.add(prereq_id)
                stack.append((prereq_id, iter(arena[prereq_id].blocked_by)))
                break
            else:
                stack.pop()
                on_stack.discard(feature_id)
                visited.add(feature_id)
                counter += 1
                arena[feature_id].integration_sequence = counter

    roots = sorted(
        (pf for pf in features if not pf.blocked_by),
        key=lambda pf: (-pf.score.total, pf.position),
    )
    for pf in roots:
        visit(pf.id)

    for pf in sorted(features, key=lambda pf: pf.position):
        visit(pf.id)


def _phase_risk(members: list[PrioritizedFeature]) -> RiskLevel:
    avg = sum(RISK_ORDINAL[pf.feature.risk_level] for pf in members) / len(members)
    if avg >= 3.5:
        return RiskLevel.CRITICAL
    if avg >= 2.5:
        return RiskLevel.HIGH
    if avg >= 1.5:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def build_phases(features: list[PrioritizedFeature]) -> list[IntegrationPhase]:
    """
    Batch features into phases whose prerequisites are met by earlier phases.

    *features* should be in priority order: on a deadlock (a cycle) the first
    remaining feature is admitted on its own.
    """
    phases: list[IntegrationPhase] = []
    processed: set[str] = set()
    phase_of: dict[str, str] = {}

    while len(processed) < len(features):
        members = [
            pf
            for pf in features
            if pf.id not in processed and all(p in processed for p in pf.blocked_by)
        ]
        if not members:
            forced = next(pf for pf in features if pf.id not in processed)
            logger.warning(
                "phase_deadlock_forced",
                feature_id=forced.id,
                unresolved=[p for p in forced.blocked_by if p not in processed],
            )
            members = [forced]

        phase_id = f"phase-{len(phases) + 1}"
        satisfied: list[str] = []
        for pf in members:
            for prereq_id in pf.blocked_by:
                if prereq_id in processed and prereq_id not in satisfied:
                    satisfied.append(prereq_id)
        prior_phases: list[str] = []
        for prereq_id in satisfied:
            if phase_of[prereq_id] not in prior_phases:
                prior_phases.append(phase_of[prereq_id])

        phases.append(
            IntegrationPhase(
                id=phase_id,
                name=f"Integration Phase {len(phases) + 1}",
                features=tuple(pf.id for pf in members),
                estimated_duration=max(pf.feature.estimated_hours for pf in members),
                risk_level=_phase_risk(members),
                dependencies=tuple(satisfied),
                prerequisites=tuple(prior_phases),
            )
        )
        for pf in members:
            processed.add(pf.id)
            phase_of[pf.id] = phase_id

    return phases


def find_critical_path(
    features: list[PrioritizedFeature],
    arena: dict[str, PrioritizedFeature],
) -> list[str]:
    """Longest root-to-leaf path through ``blocks`` edges (first found wins ties)."""
    longest: list[str] = []
    path: list[str] = []
    on_path: set[str] = set()
    stack: list[Iterator[str]] = []

    def enter(feature_id: str) -> None:
        nonlocal longest
        path.append(feature_id)
        on_path.add(feature_id)
        onward = [b for b in arena[feature_id].blocks if b not in on_path and b in arena]
        if not onward and len(path) > len(longest):
            longest = list(path)
        stack.append(iter(onward))

    for pf in features:
        if pf.blocked_by or pf.id not in arena:
            continue
        enter(pf.id)
        while stack:
            blocked_id = next(stack[-1], None)
            if blocked_id is None:
                stack.pop()
                on_path.discard(path.pop())
            else:
                enter(blocked_id)
    return longest


def schedule(features: list[PrioritizedFeature]) -> IntegrationPlan:
    """Schedule already-ranked features.  Empty input gives an empty plan."""
    if not features:
        return IntegrationPlan()

    arena = link_dependencies(features)
    assign_integration_sequence(features, arena)
    phases = build_phases(features)
    critical_path = find_critical_path(features, arena)

    logger.info(
        "plan_built",
        features=len(features),
        phases=len(phases),
        critical_path_length=len(critical_path),
    )
    return IntegrationPlan(
        features=sorted(features, key=lambda pf: pf.integration_sequence),
        phases=phases,
        critical_path=critical_path,
    )


def build_plan(
    features: Iterable[Feature],
    criteria: PrioritizationCriteria | None = None,
) -> IntegrationPlan:
    """Score, rank and schedule *features* in one call."""
    return schedule(rank_features(features, criteria))
