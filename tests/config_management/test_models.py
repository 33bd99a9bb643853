"""
Tests for configuration management records.
"""

import pytest
from datetime import datetime, timezone

from core.exceptions import ValidationError
from config_management.models import (
    ABArm,
    ABTest,
    ArmStats,
    ConfigVersion,
    VersionPerformance,
    VersionState,
)
from virality_scoring.config import get_default_config


NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)


class TestConfigVersion:

    def test_record_shape(self):
        version = ConfigVersion(
            version="1.0.0-2026-01-05T12-00-00-000000",
            config=get_default_config(),
            created_at=NOW,
            created_by="alice",
            description="initial",
            performance=VersionPerformance(0.8, 0.7, 0.6, 0.65),
        ).activated()

        record = version.to_dict()

        assert record["isActive"] is True
        assert record["state"] == "active"
        assert record["createdBy"] == "alice"
        assert record["performance"]["f1Score"] == 0.65
        assert ConfigVersion.from_dict(record) == version

    def test_state_inferred_for_legacy_record(self):
        record = {
            "version": "1.0.0-legacy",
            "config": get_default_config().to_dict(),
            "createdAt": NOW.isoformat(),
            "createdBy": "system",
            "description": "",
            "isActive": False,
        }

        assert ConfigVersion.from_dict(record).state == VersionState.SUPERSEDED

    def test_malformed_record(self):
        with pytest.raises(ValidationError):
            ConfigVersion.from_dict({"version": "x"})


class TestABTest:

    def test_arm_stats_accuracy(self):
        assert ArmStats().accuracy == 0.0
        assert ArmStats(requests=10, evaluated=4, correct=3).accuracy == 0.75

    def test_record_keys(self):
        test = ABTest(
            test_id="ab_test_1",
            name="weights",
            config_a=get_default_config(),
            config_b=get_default_config(),
            traffic_split=0.3,
            started_at=NOW,
        ).with_stats(ABArm.B, ArmStats(requests=2))

        record = test.to_dict()

        assert record["id"] == "ab_test_1"
        assert record["trafficSplit"] == 0.3
        assert record["results"]["configB"]["requests"] == 2
        assert ABTest.from_dict(record).stats_for(ABArm.B).requests == 2
