"""
Virality Service Package.

Library-level entry point for the virality risk engine.

Components:
- service: ViralityRiskService facade and create_service factory
- settings: Environment-driven ServiceSettings
- cli: Operator command-line interface
"""

from .service import ViralityRiskService, create_service
from .settings import ServiceSettings


__all__ = [
    "ViralityRiskService",
    "create_service",
    "ServiceSettings",
]
