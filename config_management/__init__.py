"""
Configuration Management - Package.

============================================================
PURPOSE
============================================================
Versioning, validation, rollback and A/B testing of the
virality scoring configuration without downtime.

============================================================
COMPONENTS
============================================================
- manager:    ConfigVersionManager (the only writer of config:*)
- models:     ConfigVersion, ABTest and their JSON records
- ab_testing: deterministic arm assignment
- store:      KeyValueStore contract + in-memory implementation
- sql_store:  SQLAlchemy implementation of the store

============================================================
"""

from .ab_testing import assign_arm, java_string_hash, normalized_hash
from .manager import ConfigVersionManager
from .models import (
    ABArm,
    ABTest,
    ArmStats,
    ConfigVersion,
    VersionPerformance,
    VersionState,
)
from .sql_store import SqlKeyValueStore, create_all, create_store_engine
from .store import InMemoryKeyValueStore, KeyValueStore


__all__ = [
    "ConfigVersionManager",
    "ABArm",
    "ABTest",
    "ArmStats",
    "ConfigVersion",
    "VersionPerformance",
    "VersionState",
    "assign_arm",
    "java_string_hash",
    "normalized_hash",
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "SqlKeyValueStore",
    "create_all",
    "create_store_engine",
]
