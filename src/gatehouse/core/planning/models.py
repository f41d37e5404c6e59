"""
Planning domain models.

A Feature is the immutable input record for one unit of proposed work.
Scoring attaches a PriorityScore to it, producing a PrioritizedFeature;
the scheduler then assigns integration sequence numbers and groups the
features into IntegrationPhases.  PriorityMatrix bundles one planning run
together with its summary statistics.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from gatehouse.core.exceptions import FeatureValidationError


class EffortClass(StrEnum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    EPIC = "epic"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# 1–4 numeric encoding used when averaging risk across a phase
RISK_ORDINAL: dict[RiskLevel, int] = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


class Feature(BaseModel):
    """A unit of proposed work.  Accepts snake_case or camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str = Field(min_length=1)
    title: str
    category: str = "general"
    effort: EffortClass = EffortClass.MEDIUM
    risk_level: RiskLevel = RiskLevel.MEDIUM
    business_value: float
    technical_value: float
    dependencies: tuple[str, ...] = ()
    estimated_hours: float = Field(ge=0)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Feature:
        """Validate a raw mapping, raising FeatureValidationError on bad input."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            fid = data.get("id", "<unknown>") if isinstance(data, Mapping) else "<unknown>"
            raise FeatureValidationError(f"Invalid feature {fid!r}: {exc}") from exc


def parse_features(raw: list[Mapping[str, Any]] | list[Feature]) -> list[Feature]:
    """Coerce a list of mappings or Features, failing before any scoring happens."""
    return [item if isinstance(item, Feature) else Feature.from_dict(item) for item in raw]


class PrioritizationCriteria(BaseModel):
    """Scoring weights plus the score bands used for matrix statistics."""

    model_config = ConfigDict(extra="forbid")

    business_value_weight: float = 0.30
    technical_value_weight: float = 0.25
    complexity_weight: float = -0.20
    risk_weight: float = -0.15
    dependency_weight: float = -0.05
    effort_weight: float = -0.05

    high_priority_threshold: float = 80
    medium_priority_threshold: float = 60
    low_priority_threshold: float = 40

    def merged(self, **overrides: Any) -> PrioritizationCriteria:
        """Return a new criteria object with *overrides* applied over these values."""
        return PrioritizationCriteria.model_validate({**self.model_dump(), **overrides})


@dataclass(frozen=True)
class PriorityScore:
    """Weighted total plus the normalized 0–100 sub-score for each criterion."""

    total: float
    business_value: float
    technical_value: float
    complexity: float
    risk: float
    dependency: float
    effort: float

    def to_dict(self) -> dict[str, float]:
        return {
            "total": self.total,
            "business_value": self.business_value,
            "technical_value": self.technical_value,
            "complexity": self.complexity,
            "risk": self.risk,
            "dependency": self.dependency,
            "effort": self.effort,
        }


@dataclass
class PrioritizedFeature:
    """Feature + score + rank, with scheduler-derived sequence and edges."""

    feature: Feature
    score: PriorityScore
    rank: int = 0
    integration_sequence: int = 0
    position: int = 0  # index in the caller's input, used to break score ties
    blocked_by: list[str] = field(default_factory=list)
    blocks: list[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.feature.id

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.feature.model_dump(mode="json"),
            "priority_score": self.score.to_dict(),
            "rank": self.rank,
            "integration_sequence": self.integration_sequence,
            "blocked_by": list(self.blocked_by),
            "blocks": list(self.blocks),
        }


@dataclass(frozen=True)
class IntegrationPhase:
    """One batch of features whose prerequisites are met by earlier phases."""

    id: str
    name: str
    features: tuple[str, ...]
    estimated_duration: float
    risk_level: RiskLevel
    dependencies: tuple[str, ...] = ()  # prerequisite feature ids
    prerequisites: tuple[str, ...] = ()  # ids of the phases holding those features

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "features": list(self.features),
            "estimated_duration": self.estimated_duration,
            "risk_level": self.risk_level.value,
            "dependencies": list(self.dependencies),
            "prerequisites": list(self.prerequisites),
        }


@dataclass
class IntegrationPlan:
    """Output of one scheduling run."""

    features: list[PrioritizedFeature] = field(default_factory=list)
    phases: list[IntegrationPhase] = field(default_factory=list)
    critical_path: list[str] = field(default_factory=list)


@dataclass
class PriorityMatrix:
    """A planning run plus priority-band statistics."""

    features: list[PrioritizedFeature]
    phases: list[IntegrationPhase]
    critical_path: list[str]
    criteria: PrioritizationCriteria
    total_features: int = 0
    high_priority: int = 0
    medium_priority: int = 0
    low_priority: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "features": [f.to_dict() for f in self.features],
            "phases": [p.to_dict() for p in self.phases],
            "critical_path": list(self.critical_path),
            "criteria": self.criteria.model_dump(),
            "statistics": {
                "total_features": self.total_features,
                "high_priority": self.high_priority,
                "medium_priority": self.medium_priority,
                "low_priority": self.low_priority,
            },
        }
