"""
Configuration Management - Data Models.

============================================================
PURPOSE
============================================================
Records persisted by the configuration version manager:

- ConfigVersion: one published RiskConfig with provenance
- ABTest: two configs competing for traffic

Records serialize to JSON-compatible dicts with camelCase keys
so the stored shape stays readable by other consumers of the
configuration store.

============================================================
VERSION STATE MACHINE
============================================================
    PROPOSED -> VALIDATED -> ACTIVE -> SUPERSEDED
                                ^          |
                                +----------+  (rollback)

============================================================
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from core.clock import from_iso8601, to_iso8601
from core.exceptions import ValidationError
from virality_scoring.config import RiskConfig


# ============================================================
# ENUMS
# ============================================================


class VersionState(str, Enum):
    """Lifecycle of a configuration version."""

    PROPOSED = "proposed"
    VALIDATED = "validated"
    ACTIVE = "active"
    SUPERSEDED = "superseded"


class ABArm(str, Enum):
    """The two arms of an A/B test."""

    A = "A"
    B = "B"

    @property
    def record_key(self) -> str:
        return "configA" if self is ABArm.A else "configB"


# ============================================================
# PERFORMANCE
# ============================================================


@dataclass(frozen=True)
class VersionPerformance:
    """Offline evaluation metrics attached to a version."""

    accuracy: float
    precision: float
    recall: float
    f1_score: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1Score": self.f1_score,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionPerformance":
        return cls(
            accuracy=float(data["accuracy"]),
            precision=float(data["precision"]),
            recall=float(data["recall"]),
            f1_score=float(data.get("f1Score", data.get("f1_score", 0.0))),
        )


# ============================================================
# CONFIG VERSION
# ============================================================


@dataclass(frozen=True)
class ConfigVersion:
    """A published configuration and its provenance."""

    version: str
    config: RiskConfig
    created_at: datetime
    created_by: str
    description: str
    performance: Optional[VersionPerformance] = None
    is_active: bool = False
    state: VersionState = VersionState.PROPOSED

    def activated(self) -> "ConfigVersion":
        return replace(self, is_active=True, state=VersionState.ACTIVE)

    def superseded(self) -> "ConfigVersion":
        return replace(self, is_active=False, state=VersionState.SUPERSEDED)

    def with_performance(self, performance: VersionPerformance) -> "ConfigVersion":
        return replace(self, performance=performance)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "version": self.version,
            "config": self.config.to_dict(),
            "createdAt": to_iso8601(self.created_at),
            "createdBy": self.created_by,
            "description": self.description,
            "performance": self.performance.to_dict() if self.performance else None,
            "isActive": self.is_active,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigVersion":
        """
        Rebuild a version from its stored record.

        Raises:
            ValidationError: if the record is malformed
        """
        try:
            performance = data.get("performance")
            is_active = bool(data.get("isActive", False))
            default_state = VersionState.ACTIVE if is_active else VersionState.SUPERSEDED
            return cls(
                version=str(data["version"]),
                config=RiskConfig.from_dict(data["config"]),
                created_at=from_iso8601(data["createdAt"]),
                created_by=str(data.get("createdBy", "system")),
                description=str(data.get("description", "")),
                performance=VersionPerformance.from_dict(performance) if performance else None,
                is_active=is_active,
                state=VersionState(data["state"]) if data.get("state") else default_state,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed configuration version record: {e}", cause=e) from e


# ============================================================
# A/B TESTS
# ============================================================


@dataclass(frozen=True)
class ArmStats:
    """Per-arm counters of an A/B test."""

    requests: int = 0
    evaluated: int = 0
    correct: int = 0

    @property
    def accuracy(self) -> float:
        if self.evaluated == 0:
            return 0.0
        return self.correct / self.evaluated

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requests": self.requests,
            "evaluated": self.evaluated,
            "correct": self.correct,
            "accuracy": self.accuracy,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ArmStats":
        data = data or {}
        return cls(
            requests=int(data.get("requests", 0)),
            evaluated=int(data.get("evaluated", 0)),
            correct=int(data.get("correct", 0)),
        )


@dataclass(frozen=True)
class ABTest:
    """
    Two configurations split by traffic fraction.

    ``traffic_split`` is the fraction of subjects routed to arm A.
    """

    test_id: str
    name: str
    config_a: RiskConfig
    config_b: RiskConfig
    traffic_split: float
    started_at: datetime
    is_active: bool = True
    closed_at: Optional[datetime] = None
    results: Dict[ABArm, ArmStats] = field(
        default_factory=lambda: {ABArm.A: ArmStats(), ABArm.B: ArmStats()}
    )

    def config_for(self, arm: ABArm) -> RiskConfig:
        return self.config_a if arm is ABArm.A else self.config_b

    def stats_for(self, arm: ABArm) -> ArmStats:
        return self.results.get(arm, ArmStats())

    def with_stats(self, arm: ABArm, stats: ArmStats) -> "ABTest":
        results = dict(self.results)
        results[arm] = stats
        return replace(self, results=results)

    def closed(self, at: datetime) -> "ABTest":
        return replace(self, is_active=False, closed_at=at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.test_id,
            "name": self.name,
            "configA": self.config_a.to_dict(),
            "configB": self.config_b.to_dict(),
            "trafficSplit": self.traffic_split,
            "startedAt": to_iso8601(self.started_at),
            "isActive": self.is_active,
            "closedAt": to_iso8601(self.closed_at) if self.closed_at else None,
            "results": {arm.record_key: self.stats_for(arm).to_dict() for arm in ABArm},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ABTest":
        try:
            results = data.get("results") or {}
            closed_at = data.get("closedAt")
            return cls(
                test_id=str(data["id"]),
                name=str(data["name"]),
                config_a=RiskConfig.from_dict(data["configA"]),
                config_b=RiskConfig.from_dict(data["configB"]),
                traffic_split=float(data["trafficSplit"]),
                started_at=from_iso8601(data["startedAt"]),
                is_active=bool(data.get("isActive", True)),
                closed_at=from_iso8601(closed_at) if closed_at else None,
                results={arm: ArmStats.from_dict(results.get(arm.record_key)) for arm in ABArm},
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Malformed A/B test record: {e}", cause=e) from e
