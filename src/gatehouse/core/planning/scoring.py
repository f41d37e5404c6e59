"""
Deterministic multi-criteria priority scoring.

Every criterion is normalized to 0–100 on its own scale, then combined with
the weights from PrioritizationCriteria.  The default weights for
complexity, risk, dependency count and effort are negative even though
those sub-scores are already inverted (low effort → high number), so a
cheap, low-risk feature is penalized twice.  That arithmetic is kept as-is.

Usage::

    ranked = rank_features(features, PrioritizationCriteria())
    assert ranked[0].rank == 1
"""

from __future__ import annotations

from collections.abc import Iterable

from gatehouse.core.planning.models import (
    EffortClass,
    Feature,
    PrioritizationCriteria,
    PrioritizedFeature,
    PriorityScore,
    RiskLevel,
)

# ---------------------------------------------------------------------------
# Normalization tables
# ---------------------------------------------------------------------------

_EFFORT_SCORES: dict[EffortClass, float] = {
    EffortClass.SMALL: 90,
    EffortClass.MEDIUM: 70,
    EffortClass.LARGE: 40,
    EffortClass.EPIC: 20,
}

_RISK_SCORES: dict[RiskLevel, float] = {
    RiskLevel.LOW: 90,
    RiskLevel.MEDIUM: 70,
    RiskLevel.HIGH: 40,
    RiskLevel.CRITICAL: 20,
}

# (upper bound inclusive, score); anything above the last bound gets the fallback
_DEPENDENCY_BUCKETS: list[tuple[int, float]] = [
    (0, 100),
    (2, 80),
    (5, 60),
    (10, 40),
]
_DEPENDENCY_FALLBACK = 20.0

_HOURS_BUCKETS: list[tuple[float, float]] = [
    (8, 90),
    (24, 80),
    (40, 70),
    (80, 50),
    (160, 30),
]
_HOURS_FALLBACK = 10.0


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def _bucket(value: float, buckets: list[tuple[float, float]], fallback: float) -> float:
    for bound, score in buckets:
        if value <= bound:
            return score
    return fallback


def normalize_complexity(effort: EffortClass) -> float:
    return _EFFORT_SCORES[effort]


def normalize_risk(risk: RiskLevel) -> float:
    return _RISK_SCORES[risk]


def normalize_dependencies(count: int) -> float:
    return _bucket(count, _DEPENDENCY_BUCKETS, _DEPENDENCY_FALLBACK)


def normalize_hours(hours: float) -> float:
    return _bucket(hours, _HOURS_BUCKETS, _HOURS_FALLBACK)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score_feature(
    feature: Feature,
    criteria: PrioritizationCriteria | None = None,
) -> PriorityScore:
    """Compute the PriorityScore for one feature.  Pure: same input, same output."""
    c = criteria or PrioritizationCriteria()

    business = _clamp(feature.business_value)
    technical = _clamp(feature.technical_value)
    complexity = normalize_complexity(feature.effort)
    risk = normalize_risk(feature.risk_level)
    dependency = normalize_dependencies(len(feature.dependencies))
    effort = normalize_hours(feature.estimated_hours)

    weighted = (
        business * c.business_value_weight
        + technical * c.technical_value_weight
        + complexity * c.complexity_weight
        + risk * c.risk_weight
        + dependency * c.dependency_weight
        + effort * c.effort_weight
    )

    return PriorityScore(
        total=_clamp(weighted),
        business_value=business,
        technical_value=technical,
        complexity=complexity,
        risk=risk,
        dependency=dependency,
        effort=effort,
    )


def assign_ranks(items: list[PrioritizedFeature]) -> list[PrioritizedFeature]:
    """Sort by descending total (ties by input position) and assign 1-based ranks."""
    ordered = sorted(items, key=lambda pf: (-pf.score.total, pf.position))
    for position, pf in enumerate(ordered, start=1):
        pf.rank = position
    return ordered


def rank_features(
    features: Iterable[Feature],
    criteria: PrioritizationCriteria | None = None,
) -> list[PrioritizedFeature]:
    """Score every feature and return them ranked, ties kept in input order."""
    c = criteria or PrioritizationCriteria()
    return assign_ranks(
        [
            PrioritizedFeature(feature=f, score=score_feature(f, c), position=i)
            for i, f in enumerate(features)
        ]
    )


def rescore(
    items: Iterable[PrioritizedFeature],
    criteria: PrioritizationCriteria,
) -> list[PrioritizedFeature]:
    """
    Replace every PriorityScore under new criteria, then re-sort and re-rank.

    Scores are replaced wholesale, never patched.  Ties keep the order the
    features were originally supplied in.
    """
    refreshed = [
        PrioritizedFeature(
            feature=pf.feature,
            score=score_feature(pf.feature, criteria),
            integration_sequence=pf.integration_sequence,
            position=pf.position,
            blocked_by=list(pf.blocked_by),
            blocks=list(pf.blocks),
        )
        for pf in items
    ]
    return assign_ranks(refreshed)
