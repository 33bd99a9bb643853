"""
Configuration Management - Version Manager.

============================================================
PURPOSE
============================================================
Owns the lifecycle of the scoring configuration:

1. Reads the current configuration for every scoring call
2. Publishes validated configurations as new versions
3. Rolls back to any historical version
4. Runs A/B tests between two configurations

============================================================
STORE LAYOUT
============================================================
    config:<version>   ConfigVersion record (JSON)
    config:current     RiskConfig record (JSON)
    config:history     append-only list of version ids
    abtest:<id>        ABTest record (JSON)
    abtest:<id>:requests:<arm>   append-only, one entry per counted request
    abtest:<id>:outcomes:<arm>   append-only, "1" correct / "0" incorrect

A/B counters are list appends, so concurrent recorders never
overwrite each other. Arm statistics are derived on read.

============================================================
WRITE PROTOCOL
============================================================
    read current -> merge -> validate -> new version id
        -> deactivate prior -> write version -> flip current
        -> append history

Nothing is written until validation passes. The manager does
no cross-key locking; concurrent writers race and the last one
to flip ``config:current`` wins.

============================================================
"""

import json
import logging
import random
import uuid
from datetime import timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from core.clock import ClockProtocol, SystemClock
from core.exceptions import (
    ConfigurationLoadError,
    NotFoundError,
    ValidationError,
)
from virality_scoring.config import RiskConfig, ensure_valid, get_default_config
from virality_scoring.schemas import PartialRiskConfigRecord

from .ab_testing import assign_arm
from .models import ABArm, ABTest, ArmStats, ConfigVersion, VersionPerformance, VersionState
from .store import KeyValueStore


logger = logging.getLogger(__name__)


# =============================================================
# STORE KEYS
# =============================================================

CURRENT_KEY = "config:current"
HISTORY_KEY = "config:history"
VERSION_KEY_PREFIX = "config:"
ABTEST_KEY_PREFIX = "abtest:"
REQUESTS_COUNTER = "requests"
OUTCOMES_COUNTER = "outcomes"

DEFAULT_BASE_VERSION = "1.0.0"
HISTORY_WARNING_SIZE = 50
VERSION_TIME_FORMAT = "%Y-%m-%dT%H-%M-%S-%f"


def version_key(version_id: str) -> str:
    return f"{VERSION_KEY_PREFIX}{version_id}"


def abtest_key(test_id: str) -> str:
    return f"{ABTEST_KEY_PREFIX}{test_id}"


def abtest_counter_key(test_id: str, counter: str, arm: ABArm) -> str:
    return f"{abtest_key(test_id)}:{counter}:{arm.value}"


class ConfigVersionManager:
    """
    Versioned, validated configuration with rollback and A/B tests.

    ============================================================
    USAGE
    ============================================================
        manager = ConfigVersionManager(InMemoryKeyValueStore())

        version = manager.update(
            {"thresholds": {"high": 0.72}},
            description="Raise high threshold",
            author="alice",
        )
        manager.rollback(previous_version, author="bob")

    ============================================================
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[ClockProtocol] = None,
        base_version: str = DEFAULT_BASE_VERSION,
        rng: Callable[[], float] = random.random,
    ):
        """
        Initialize the manager.

        Args:
            store: Persistent key-value store
            clock: Clock for version ids and timestamps
            base_version: Prefix of generated version ids
            rng: Uniform draw used for anonymous A/B resolution
        """
        self._store = store
        self._clock = clock or SystemClock()
        self._base_version = base_version
        self._rng = rng
        self._last_version_time = None

    @property
    def clock(self) -> ClockProtocol:
        return self._clock

    @property
    def store(self) -> KeyValueStore:
        return self._store

    # =========================================================
    # READS
    # =========================================================

    def get_current(self) -> RiskConfig:
        """
        Return the current configuration.

        Returns the default configuration if nothing was ever published.

        Raises:
            ConfigurationLoadError: if a current record exists but is corrupt
        """
        raw = self._store.get(CURRENT_KEY)
        if raw is None:
            return get_default_config()

        try:
            return RiskConfig.from_dict(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as e:
            logger.error(f"Current configuration record is corrupt: {e}")
            raise ConfigurationLoadError(
                "Current configuration record cannot be decoded",
                key=CURRENT_KEY,
                cause=e,
            ) from e

    def get_version_record(self, version_id: str) -> ConfigVersion:
        """
        Return the full stored record of ``version_id``.

        Raises:
            NotFoundError: if the version was never published
            ConfigurationLoadError: if the stored record is corrupt
        """
        raw = self._store.get(version_key(version_id))
        if raw is None:
            raise NotFoundError(
                f"Configuration version {version_id} not found",
                resource_type="config_version",
                resource_id=version_id,
            )
        return self._decode_version(version_id, raw)

    def get_version(self, version_id: str) -> RiskConfig:
        """Return the configuration stored under ``version_id``."""
        return self.get_version_record(version_id).config

    def get_history(self) -> List[str]:
        """All published version ids, oldest first."""
        return self._store.list_range(HISTORY_KEY, 0, -1)

    def list_versions(self) -> List[ConfigVersion]:
        """All published versions, newest first."""
        versions = []
        for version_id in reversed(self.get_history()):
            raw = self._store.get(version_key(version_id))
            if raw is None:
                logger.warning(f"History references missing version {version_id}")
                continue
            versions.append(self._decode_version(version_id, raw))
        return versions

    def get_active_version(self) -> Optional[ConfigVersion]:
        """The version currently marked active, if any (newest checked first)."""
        for version_id in reversed(self.get_history()):
            raw = self._store.get(version_key(version_id))
            if raw is None:
                continue
            version = self._decode_version(version_id, raw)
            if version.is_active:
                return version
        return None

    # =========================================================
    # WRITES
    # =========================================================

    def update(
        self,
        partial: Union[Mapping[str, Any], PartialRiskConfigRecord],
        description: str,
        author: str = "system",
    ) -> str:
        """
        Merge ``partial`` over the current configuration and publish it.

        Args:
            partial: Sections to override; inside a section only the
                supplied keys change
            description: Human-readable reason for the change
            author: Who made the change

        Returns:
            The new version id

        Raises:
            ValidationError: if the merged configuration is invalid;
                nothing is written
        """
        merged = self.get_current().merged_with(partial)
        return self.publish(merged, description, author)

    def publish(
        self,
        config: RiskConfig,
        description: str,
        author: str = "system",
        performance: Optional[VersionPerformance] = None,
    ) -> str:
        """
        Publish a complete configuration as the new current version.

        Raises:
            ValidationError: if ``config`` is invalid; nothing is written
        """
        ensure_valid(config)

        version_id = self._next_version_id()
        record = ConfigVersion(
            version=version_id,
            config=config,
            created_at=self.clock.now(),
            created_by=author,
            description=description,
            performance=performance,
            state=VersionState.VALIDATED,
        )

        self._deactivate_all()
        self._write_version(record.activated())
        self._store.set(CURRENT_KEY, config.to_json())
        self._store.list_append(HISTORY_KEY, version_id)

        history_size = len(self.get_history())
        if history_size > HISTORY_WARNING_SIZE:
            logger.warning(
                f"Configuration history holds {history_size} versions "
                f"(more than {HISTORY_WARNING_SIZE}); consider archiving old versions"
            )

        logger.info(f"Published configuration version {version_id} by {author}: {description}")
        return version_id

    def rollback(self, version_id: str, author: str = "system") -> None:
        """
        Make a historical version current again, unchanged.

        Raises:
            NotFoundError: if ``version_id`` does not exist
        """
        record = self.get_version_record(version_id)

        self._deactivate_all(except_version=version_id)
        self._write_version(record.activated())
        self._store.set(CURRENT_KEY, record.config.to_json())

        logger.info(f"Rolled back configuration to version {version_id} by {author}")

    def update_version_performance(
        self,
        version_id: str,
        performance: Union[VersionPerformance, Mapping[str, Any]],
    ) -> ConfigVersion:
        """Attach evaluation metrics to an existing version."""
        if not isinstance(performance, VersionPerformance):
            performance = VersionPerformance.from_dict(dict(performance))

        record = self.get_version_record(version_id).with_performance(performance)
        self._write_version(record)

        logger.info(f"Updated performance metrics for version {version_id}: f1={performance.f1_score:.3f}")
        return record

    # =========================================================
    # A/B TESTING
    # =========================================================

    def start_ab_test(
        self,
        config_a: RiskConfig,
        config_b: RiskConfig,
        name: str,
        traffic_split: float = 0.5,
    ) -> str:
        """
        Start an A/B test between two complete configurations.

        Returns:
            The new test id

        Raises:
            ValidationError: if either config is invalid or the split
                is outside [0, 1]
        """
        if not (0.0 <= traffic_split <= 1.0):
            raise ValidationError(
                f"Traffic split must be between 0 and 1, got {traffic_split}",
                field="traffic_split",
            )
        ensure_valid(config_a)
        ensure_valid(config_b)

        now = self.clock.now()
        test_id = f"ab_test_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:8]}"
        test = ABTest(
            test_id=test_id,
            name=name,
            config_a=config_a,
            config_b=config_b,
            traffic_split=traffic_split,
            started_at=now,
        )
        self._write_ab_test(test)

        logger.info(f"Started A/B test {test_id} ({name}) with split {traffic_split:.2f}")
        return test_id

    def get_ab_test(self, test_id: str) -> ABTest:
        """
        Load a test with per-arm statistics taken from its counter lists.

        Raises:
            NotFoundError: if the test does not exist
        """
        test = self._load_ab_test(test_id)
        for arm in ABArm:
            test = test.with_stats(arm, self._count_arm(test_id, arm))
        return test

    def resolve_ab_assignment(
        self,
        test_id: str,
        subject_id: Optional[str] = None,
    ) -> Tuple[ABArm, RiskConfig]:
        """
        Choose an arm for ``subject_id`` and return it with its config.

        Resolution only reads the store. Callers that want the request
        counted call ``record_ab_request`` with the returned arm.

        Raises:
            NotFoundError: if the test does not exist or is closed
        """
        test = self._load_ab_test(test_id)
        if not test.is_active:
            raise NotFoundError(
                f"A/B test {test_id} is closed",
                resource_type="ab_test",
                resource_id=test_id,
            )

        arm = assign_arm(test.traffic_split, subject_id, rng=self._rng)
        return arm, test.config_for(arm)

    def resolve_ab_test(self, test_id: str, subject_id: Optional[str] = None) -> RiskConfig:
        """Return the configuration of the arm ``subject_id`` falls into."""
        _, config = self.resolve_ab_assignment(test_id, subject_id)
        return config

    def record_ab_request(self, test_id: str, arm: Union[ABArm, str]) -> None:
        """Count one request served by ``arm``."""
        arm = ABArm(arm)
        self._load_ab_test(test_id)
        self._store.list_append(abtest_counter_key(test_id, REQUESTS_COUNTER, arm), "1")

    def record_ab_outcome(self, test_id: str, arm: Union[ABArm, str], correct: bool) -> ArmStats:
        """Record whether a prediction served by ``arm`` turned out correct."""
        arm = ABArm(arm)
        self._load_ab_test(test_id)
        self._store.list_append(
            abtest_counter_key(test_id, OUTCOMES_COUNTER, arm),
            "1" if correct else "0",
        )
        return self._count_arm(test_id, arm)

    def close_ab_test(self, test_id: str) -> ABTest:
        """Stop routing traffic through ``test_id``."""
        test = self.get_ab_test(test_id)
        if not test.is_active:
            return test

        closed = test.closed(self.clock.now())
        self._write_ab_test(closed)

        logger.info(
            f"Closed A/B test {test_id}: "
            f"A accuracy={closed.stats_for(ABArm.A).accuracy:.3f} "
            f"B accuracy={closed.stats_for(ABArm.B).accuracy:.3f}"
        )
        return closed

    # =========================================================
    # INTERNALS
    # =========================================================

    def _next_version_id(self) -> str:
        moment = self.clock.now()
        if self._last_version_time is not None and moment <= self._last_version_time:
            moment = self._last_version_time + timedelta(microseconds=1)

        version_id = f"{self._base_version}-{moment.strftime(VERSION_TIME_FORMAT)}"
        while self._store.get(version_key(version_id)) is not None:
            moment = moment + timedelta(microseconds=1)
            version_id = f"{self._base_version}-{moment.strftime(VERSION_TIME_FORMAT)}"

        self._last_version_time = moment
        return version_id

    def _deactivate_all(self, except_version: Optional[str] = None) -> None:
        for version_id in self.get_history():
            if version_id == except_version:
                continue
            raw = self._store.get(version_key(version_id))
            if raw is None:
                continue
            record = self._decode_version(version_id, raw)
            if record.is_active:
                self._write_version(record.superseded())

    def _write_version(self, record: ConfigVersion) -> None:
        self._store.set(version_key(record.version), json.dumps(record.to_dict()))

    def _write_ab_test(self, test: ABTest) -> None:
        self._store.set(abtest_key(test.test_id), json.dumps(test.to_dict()))

    def _load_ab_test(self, test_id: str) -> ABTest:
        raw = self._store.get(abtest_key(test_id))
        if raw is None:
            raise NotFoundError(
                f"A/B test {test_id} not found",
                resource_type="ab_test",
                resource_id=test_id,
            )
        try:
            return ABTest.from_dict(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as e:
            raise ConfigurationLoadError(
                f"A/B test record {test_id} cannot be decoded",
                key=abtest_key(test_id),
                cause=e,
            ) from e

    def _count_arm(self, test_id: str, arm: ABArm) -> ArmStats:
        requests = self._store.list_range(abtest_counter_key(test_id, REQUESTS_COUNTER, arm))
        outcomes = self._store.list_range(abtest_counter_key(test_id, OUTCOMES_COUNTER, arm))
        return ArmStats(
            requests=len(requests),
            evaluated=len(outcomes),
            correct=outcomes.count("1"),
        )

    def _decode_version(self, version_id: str, raw: str) -> ConfigVersion:
        try:
            data: Dict[str, Any] = json.loads(raw)
            return ConfigVersion.from_dict(data)
        except (ValueError, TypeError, ValidationError) as e:
            raise ConfigurationLoadError(
                f"Configuration version {version_id} cannot be decoded",
                key=version_key(version_id),
                cause=e,
            ) from e
