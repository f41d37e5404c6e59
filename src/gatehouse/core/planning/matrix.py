"""Priority matrix: one planning run, its band statistics, and export."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable

from gatehouse.core.exceptions import UnsupportedFormatError
from gatehouse.core.planning.models import (
    Feature,
    PrioritizationCriteria,
    PrioritizedFeature,
    PriorityMatrix,
)
from gatehouse.core.planning.scheduler import schedule
from gatehouse.core.planning.scoring import rank_features, rescore

CSV_HEADERS = [
    "Rank",
    "Feature ID",
    "Title",
    "Category",
    "Priority Score",
    "Business Value",
    "Technical Value",
    "Complexity",
    "Risk Level",
    "Estimated Hours",
    "Dependencies",
    "Integration Sequence",
]


def _with_statistics(
    features: list[PrioritizedFeature],
    matrix: PriorityMatrix,
) -> PriorityMatrix:
    c = matrix.criteria
    matrix.features = features
    matrix.total_features = len(features)
    matrix.high_priority = sum(1 for pf in features if pf.score.total >= c.high_priority_threshold)
    matrix.medium_priority = sum(
        1
        for pf in features
        if c.medium_priority_threshold <= pf.score.total < c.high_priority_threshold
    )
    matrix.low_priority = matrix.total_features - matrix.high_priority - matrix.medium_priority
    return matrix


def create_priority_matrix(
    features: Iterable[Feature],
    criteria: PrioritizationCriteria | None = None,
) -> PriorityMatrix:
    """Rank and schedule *features*; ``matrix.features`` is in rank order."""
    c = criteria or PrioritizationCriteria()
    ranked = rank_features(features, c)
    plan = schedule(ranked)
    matrix = PriorityMatrix(
        features=[],
        phases=plan.phases,
        critical_path=plan.critical_path,
        criteria=c,
    )
    return _with_statistics(ranked, matrix)


def update_priority_scores(
    matrix: PriorityMatrix,
    criteria: PrioritizationCriteria,
) -> PriorityMatrix:
    """
    Return a new matrix scored under *criteria*.

    Phases and the critical path belong to the original planning run and are
    carried over unchanged.
    """
    updated = PriorityMatrix(
        features=[],
        phases=list(matrix.phases),
        critical_path=list(matrix.critical_path),
        criteria=criteria,
    )
    return _with_statistics(rescore(matrix.features, criteria), updated)


def export_matrix(matrix: PriorityMatrix, fmt: str = "json") -> str:
    """Serialize *matrix* as ``json`` or ``csv``."""
    if fmt == "json":
        return json.dumps(matrix.to_dict(), indent=2)
    if fmt == "csv":
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(CSV_HEADERS)
        for pf in matrix.features:
            f = pf.feature
            writer.writerow(
                [
                    pf.rank,
                    f.id,
                    f.title,
                    f.category,
                    f"{pf.score.total:.2f}",
                    f"{f.business_value:.2f}",
                    f"{f.technical_value:.2f}",
                    f.effort.value,
                    f.risk_level.value,
                    f.estimated_hours,
                    ";".join(f.dependencies),
                    pf.integration_sequence,
                ]
            )
        return buf.getvalue()
    raise UnsupportedFormatError(f"Unsupported export format: {fmt!r} (expected json or csv)")
