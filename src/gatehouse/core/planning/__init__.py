"""Feature prioritization and dependency-aware integration planning."""

from gatehouse.core.planning.matrix import (
    create_priority_matrix,
    export_matrix,
    update_priority_scores,
)
from gatehouse.core.planning.models import (
    EffortClass,
    Feature,
    IntegrationPhase,
    IntegrationPlan,
    PrioritizationCriteria,
    PrioritizedFeature,
    PriorityMatrix,
    PriorityScore,
    RiskLevel,
    parse_features,
)
from gatehouse.core.planning.scheduler import build_plan, schedule
from gatehouse.core.planning.scoring import rank_features, rescore, score_feature

__all__ = [
    "EffortClass",
    "Feature",
    "IntegrationPhase",
    "IntegrationPlan",
    "PrioritizationCriteria",
    "PrioritizedFeature",
    "PriorityMatrix",
    "PriorityScore",
    "RiskLevel",
    "build_plan",
    "create_priority_matrix",
    "export_matrix",
    "parse_features",
    "rank_features",
    "rescore",
    "schedule",
    "score_feature",
]
