# ============================================================================
# STRUCTURED LOGGING
# ============================================================================
# STATUS: Core - Structured logging with context
# PURPOSE: Consistent, queryable logging across scheduling, verification,
#          health evaluation and provisioning
# CREATED: 19 OCT 2026
# ============================================================================
"""
Structured Logging

JSON or human-readable log output with a thread-local context stack.
Output goes to stdout, which the Functions host forwards to Application
Insights.

Features:
- Component-based loggers
- Contextual fields (job_name, instance_name, asset_name, request_id)
- JSON output for log aggregation (LOG_FORMAT=json)
- Named checkpoints marking job lifecycle milestones

Usage:
    from core.logging import get_logger, log_context

    logger = get_logger("services.job_verification", ComponentType.SERVICE)

    with log_context(job_name="job-123", instance_name="amsaccount1"):
        logger.info("Verifying job", extra={"retry_count": 1})
"""

import json
import logging
import os
import sys
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union
from enum import Enum


class ComponentType(str, Enum):
    """Component types for logging categorization."""
    FUNCTION = "function"
    SERVICE = "service"
    PROVISIONING = "provisioning"
    REPOSITORY = "repository"
    MESSAGING = "messaging"
    BACKEND = "backend"


@dataclass
class LogContext:
    """
    Context for structured logging.

    Thread-local storage for contextual fields.
    """
    request_id: Optional[str] = None
    job_name: Optional[str] = None
    instance_name: Optional[str] = None
    asset_name: Optional[str] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        result = {}
        for key, value in asdict(self).items():
            if value is not None and key != "extra":
                result[key] = value
        if self.extra:
            result.update(self.extra)
        return result


_context_stack = threading.local()


def _get_context_stack() -> list:
    if not hasattr(_context_stack, "stack"):
        _context_stack.stack = []
    return _context_stack.stack


def get_current_context() -> LogContext:
    """Get current logging context."""
    stack = _get_context_stack()
    if stack:
        return stack[-1]
    return LogContext()


@contextmanager
def log_context(**kwargs):
    """
    Push a logging context merged with the parent context.

    Example:
        with log_context(job_name="job-1", operation="verify"):
            logger.info("Loading latest status")
    """
    parent = get_current_context()
    new_context = LogContext(
        request_id=kwargs.get("request_id", parent.request_id),
        job_name=kwargs.get("job_name", parent.job_name),
        instance_name=kwargs.get("instance_name", parent.instance_name),
        asset_name=kwargs.get("asset_name", parent.asset_name),
        component=kwargs.get("component", parent.component),
        operation=kwargs.get("operation", parent.operation),
        extra={**parent.extra, **kwargs.get("extra", {})},
    )

    stack = _get_context_stack()
    stack.append(new_context)
    try:
        yield new_context
    finally:
        stack.pop()


class StructuredFormatter(logging.Formatter):
    """JSON formatter for log aggregators."""

    def __init__(self, include_context: bool = True, include_source: bool = True):
        super().__init__()
        self.include_context = include_context
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context_dict = get_current_context().to_dict()
            if context_dict:
                log_data["context"] = context_dict

        if hasattr(record, "extra") and record.extra:
            log_data["data"] = record.extra

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_source:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class HumanFormatter(logging.Formatter):
    """Human-readable formatter for local development."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname.ljust(8)

        context = get_current_context()
        context_parts = []
        if context.instance_name:
            context_parts.append(f"instance={context.instance_name}")
        if context.job_name:
            context_parts.append(f"job={context.job_name}")
        if context.asset_name:
            context_parts.append(f"asset={context.asset_name}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        extra_str = ""
        if hasattr(record, "extra") and record.extra:
            extra_str = f" {record.extra}"

        result = f"{timestamp} {level} {record.name}{context_str}: {record.getMessage()}{extra_str}"

        if record.exc_info:
            result += f"\n{self.formatException(record.exc_info)}"

        return result


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that attaches the current LogContext to every record."""

    def process(self, msg, kwargs):
        extra = dict(kwargs.get("extra", {}))
        nested = extra.pop("extra", None)
        if isinstance(nested, dict):
            extra.update(nested)
        extra.update(get_current_context().to_dict())
        if self.extra and self.extra.get("component"):
            extra.setdefault("component", self.extra["component"])

        # Stored as a single attribute so formatters can find it
        kwargs["extra"] = {"extra": extra}
        return msg, kwargs


def get_logger(
    name: str,
    component: Optional[ComponentType] = None,
) -> ContextLogger:
    """
    Get a context-aware logger.

    Args:
        name: Logger name (e.g., "services.job_verification")
        component: Optional component type for categorization
    """
    base_logger = logging.getLogger(name)
    return ContextLogger(base_logger, {"component": component.value if component else None})


def configure_logging(
    level: Union[str, int, None] = None,
    json_output: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level (defaults to LOG_LEVEL env var, then INFO)
        json_output: Use JSON format (also enabled by LOG_FORMAT=json)
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    if json_output or os.getenv("LOG_FORMAT", "").lower() == "json":
        formatter: logging.Formatter = StructuredFormatter(include_context=True)
    else:
        formatter = HumanFormatter()

    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # The Azure SDKs log every HTTP exchange at INFO
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ============================================================================
# CHECKPOINT LOGGING
# ============================================================================

def log_checkpoint(
    name: str,
    data: Optional[Dict[str, Any]] = None,
    logger: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None,
) -> None:
    """
    Log a named lifecycle milestone.

    Checkpoints ("job_submitted", "job_resubmitted", "provisioning_completed",
    ...) are queryable markers for following one job across invocations.
    """
    if logger is None:
        logger = logging.getLogger("checkpoint")

    checkpoint_data: Dict[str, Any] = {
        "checkpoint": name,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    checkpoint_data.update(get_current_context().to_dict())

    if data:
        checkpoint_data["data"] = data

    logger.info(f"CHECKPOINT: {name}", extra={"extra": checkpoint_data})


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ComponentType",
    "LogContext",
    "StructuredFormatter",
    "HumanFormatter",
    "ContextLogger",
    "get_logger",
    "configure_logging",
    "log_context",
    "get_current_context",
    "log_checkpoint",
]
