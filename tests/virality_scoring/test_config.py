"""
Tests for the Risk Configuration.

============================================================
PURPOSE
============================================================
Verify invariants, record (de)serialization, partial merges
and file loading.

============================================================
"""

import json
import pytest

from core.exceptions import ValidationError
from virality_scoring.config import (
    DEFAULT_EMOTION_WEIGHTS,
    FeatureWeights,
    RiskConfig,
    RiskThresholds,
    ensure_valid,
    get_default_config,
    load_config_file,
    validate_config,
)


# ============================================================
# VALIDATION
# ============================================================

class TestValidateConfig:
    """Tests for configuration invariants."""

    def test_default_config_is_valid(self):
        assert validate_config(get_default_config()) == []

    def test_rejects_low_weight_sum(self):
        config = RiskConfig(weights=FeatureWeights(0.1, 0.1, 0.1, 0.1, 0.05, 0.05))

        errors = validate_config(config)

        assert len(errors) == 1
        assert "total weight" in errors[0]

    def test_accepts_weight_sum_inside_tolerance(self):
        low = RiskConfig(weights=FeatureWeights(0.35, 0.25, 0.2, 0.1, 0.0, 0.0))
        high = RiskConfig(weights=FeatureWeights(0.4, 0.3, 0.2, 0.1, 0.05, 0.05))

        assert validate_config(low) == []
        assert validate_config(high) == []

    def test_rejects_unordered_thresholds(self):
        config = RiskConfig(thresholds=RiskThresholds(low=0.5, medium=0.4, high=0.7, viral_threat=0.9))

        errors = validate_config(config)

        assert any("ascending order" in e for e in errors)

    def test_rejects_thresholds_outside_unit_interval(self):
        config = RiskConfig(thresholds=RiskThresholds(low=0.3, medium=0.5, high=0.7, viral_threat=1.5))
        assert any("between 0 and 1" in e for e in validate_config(config))

    def test_rejects_out_of_range_lookups(self):
        config = RiskConfig(
            platform_multipliers={"twitter": 6.0, "reddit": 0.05},
            emotion_weights={"anger": 1.2},
        )

        errors = validate_config(config)

        assert len(errors) == 3

    def test_rejects_non_finite_weights(self):
        config = RiskConfig(weights=FeatureWeights(float("nan"), 0.25, 0.2, 0.1, 0.05, 0.05))
        assert validate_config(config)

    def test_ensure_valid_collects_all_errors(self):
        config = RiskConfig(
            weights=FeatureWeights(0.1, 0.1, 0.1, 0.1, 0.05, 0.05),
            thresholds=RiskThresholds(low=0.5, medium=0.4, high=0.7, viral_threat=0.9),
        )

        with pytest.raises(ValidationError) as exc_info:
            ensure_valid(config)

        assert len(exc_info.value.errors) == 2


# ============================================================
# IMMUTABILITY & SERIALIZATION
# ============================================================

class TestRiskConfig:
    """Tests for the immutable config value."""

    def test_lookup_tables_are_read_only(self):
        config = get_default_config()

        with pytest.raises(TypeError):
            config.platform_multipliers["twitter"] = 3.0

    def test_caller_dict_does_not_leak(self):
        weights = {"anger": 0.9}
        config = RiskConfig(emotion_weights=weights)
        weights["anger"] = 0.1

        assert config.emotion_weight_for("anger") == 0.9

    def test_record_uses_camel_case(self):
        record = get_default_config().to_dict()

        assert record["weights"]["toneSeverity"] == 0.35
        assert record["thresholds"]["viralThreat"] == 0.85
        assert record["platformMultipliers"]["twitter"] == 1.2
        assert record["emotionWeights"] == DEFAULT_EMOTION_WEIGHTS

    def test_record_round_trip(self):
        config = get_default_config().merged_with({"thresholds": {"high": 0.72}})
        restored = RiskConfig.from_dict(json.loads(config.to_json()))

        assert restored == config

    def test_from_dict_rejects_malformed_record(self):
        record = get_default_config().to_dict()
        del record["weights"]["timeDecay"]
        record["thresholds"]["low"] = "not-a-number"

        with pytest.raises(ValidationError) as exc_info:
            RiskConfig.from_dict(record)

        assert len(exc_info.value.errors) == 2


# ============================================================
# PARTIAL MERGE
# ============================================================

class TestMergedWith:
    """Tests for section-wise partial merges."""

    def test_only_supplied_keys_change(self):
        base = get_default_config()

        merged = base.merged_with({
            "weights": {"toneSeverity": 0.4, "timeDecay": 0.0},
            "emotionWeights": {"outrage": 0.95},
        })

        assert merged.weights.tone_severity == 0.4
        assert merged.weights.time_decay == 0.0
        assert merged.weights.engagement_velocity == base.weights.engagement_velocity
        assert merged.thresholds == base.thresholds
        assert merged.emotion_weights["outrage"] == 0.95
        assert merged.emotion_weights["anger"] == 0.9

    def test_source_config_unchanged(self):
        base = get_default_config()
        base.merged_with({"platformMultipliers": {"twitter": 2.0}})

        assert base.platform_multipliers["twitter"] == 1.2

    def test_snake_case_keys_accepted(self):
        merged = get_default_config().merged_with({"thresholds": {"viral_threat": 0.9}})
        assert merged.thresholds.viral_threat == 0.9

    def test_unknown_section_rejected(self):
        with pytest.raises(ValidationError):
            get_default_config().merged_with({"weightz": {}})

    def test_merge_does_not_validate(self):
        merged = get_default_config().merged_with({"thresholds": {"medium": 0.95}})
        assert validate_config(merged)


# ============================================================
# FILE LOADING
# ============================================================

class TestLoadConfigFile:

    def test_loads_partial_yaml(self, tmp_path):
        path = tmp_path / "update.yaml"
        path.write_text("thresholds:\n  high: 0.72\n")

        assert load_config_file(path, partial=True) == {"thresholds": {"high": 0.72}}

    def test_loads_full_json(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(get_default_config().to_json())

        assert load_config_file(path) == get_default_config()

    def test_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ValidationError):
            load_config_file(path, partial=True)
