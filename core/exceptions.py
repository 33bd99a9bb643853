"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Typed errors raised by scoring, configuration management and
training. Each error carries a severity and a context dict so
callers can log it in one line and decide whether to retry.

============================================================
EXCEPTION HIERARCHY
============================================================
ViralityEngineError (base)
├── ValidationError
├── NotFoundError
├── InsufficientDataError
├── UpstreamProviderError
├── ConfigurationLoadError
└── StoreError

============================================================
PROPAGATION POLICY
============================================================
- Feature extraction and scoring never raise on valid input
- Configuration writes and training fail atomically
- Batch paths catch per-item errors and record them

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class Severity(Enum):
    """How loudly an error should be reported."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# ============================================================
# BASE EXCEPTION
# ============================================================

class ViralityEngineError(Exception):
    """
    Root of every error raised by the engine.

    ``recoverable`` tells callers whether retrying the same call
    can succeed (store hiccups, provider outages) or not
    (invalid configuration, too little training data).
    """

    default_severity: Severity = Severity.MEDIUM
    default_recoverable: bool = True

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        recoverable: Optional[bool] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.recoverable = self.default_recoverable if recoverable is None else recoverable
        self.cause = cause
        self.raised_at = datetime.now(timezone.utc)

        if cause is not None:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "context": self.context,
            "raised_at": self.raised_at.isoformat(),
        }

    def to_log_format(self) -> str:
        """``[SEVERITY] Type: message | key=value, ...``"""
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        line = f"[{self.severity.value.upper()}] {type(self).__name__}: {self.message}"
        return f"{line} | {details}" if details else line


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ValidationError(ViralityEngineError):
    """
    Malformed or out-of-range risk configuration.

    Raised before any write happens; the current configuration
    is never affected.
    """

    default_severity = Severity.MEDIUM
    default_recoverable = False

    def __init__(
        self,
        message: str,
        errors: Optional[List[str]] = None,
        field: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        self.errors = list(errors) if errors else [message]
        context["errors"] = self.errors
        if field:
            context["field"] = field

        super().__init__(message, context=context, **kwargs)


class ConfigurationLoadError(ViralityEngineError):
    """The active configuration exists but cannot be decoded."""

    default_severity = Severity.CRITICAL
    default_recoverable = False

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if key:
            context["key"] = key
        super().__init__(message, context=context, **kwargs)


# ============================================================
# LOOKUP ERRORS
# ============================================================

class NotFoundError(ViralityEngineError):
    """Unknown configuration version or A/B test id."""

    default_severity = Severity.LOW

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if resource_type:
            context["resource_type"] = resource_type
        if resource_id:
            context["resource_id"] = resource_id

        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(message, context=context, **kwargs)


# ============================================================
# TRAINING ERRORS
# ============================================================

class InsufficientDataError(ViralityEngineError):
    """Training invoked with fewer samples than required."""

    default_severity = Severity.MEDIUM
    default_recoverable = False

    def __init__(
        self,
        message: str,
        sample_count: Optional[int] = None,
        required: Optional[int] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if sample_count is not None:
            context["sample_count"] = sample_count
        if required is not None:
            context["required"] = required

        self.sample_count = sample_count
        self.required = required
        super().__init__(message, context=context, **kwargs)


# ============================================================
# COLLABORATOR ERRORS
# ============================================================

class UpstreamProviderError(ViralityEngineError):
    """Sentiment or emotion provider failed for a single item."""

    default_severity = Severity.MEDIUM
    default_recoverable = True

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", {})
        if provider:
            context["provider"] = provider
        self.provider = provider
        super().__init__(message, context=context, **kwargs)


class StoreError(ViralityEngineError):
    """The key-value store could not complete an operation."""

    default_severity = Severity.HIGH
    default_recoverable = True

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})

        if operation:
            context["operation"] = operation
        if key:
            context["key"] = key

        super().__init__(message, context=context, **kwargs)


# ============================================================
# EXPORTS
# ============================================================

__all__ = [
    "Severity",
    "ViralityEngineError",
    "ValidationError",
    "ConfigurationLoadError",
    "NotFoundError",
    "InsufficientDataError",
    "UpstreamProviderError",
    "StoreError",
]
