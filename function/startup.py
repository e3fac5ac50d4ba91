# ============================================================================
# STARTUP VALIDATION
# ============================================================================
# STATUS: Function App - Startup validation
# PURPOSE: Validate environment before registering blueprints
# CREATED: 19 OCT 2026
# ============================================================================
"""
Startup Validation

Validates settings and dependencies once, before registering blueprints.
Fail fast, log clearly, degrade gracefully: if validation fails, only
/livez and /readyz are available.

Checks:
    settings     load_settings() returned no errors (instances, thresholds, streaming)
    database     DATABASE_URL / POSTGRES_HOST set and SELECT 1 succeeds
    service_bus  connection string or namespace configured
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import psycopg

from core.config import load_settings, set_settings
from infrastructure.service_bus import ServiceBusConfig
from repositories.database import get_connection_string, has_database_config

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of a startup validation check."""

    name: str
    passed: bool
    error_type: Optional[str] = None
    error_message: Optional[str] = None


def _not_run(name: str) -> ValidationResult:
    return ValidationResult(name, False, "NotRun", "Validation not yet run")


@dataclass
class StartupState:
    """Track all startup validation checks."""

    settings: ValidationResult = field(default_factory=lambda: _not_run("settings"))
    database: ValidationResult = field(default_factory=lambda: _not_run("database"))
    service_bus: ValidationResult = field(default_factory=lambda: _not_run("service_bus"))

    def checks(self) -> List[ValidationResult]:
        return [self.settings, self.database, self.service_bus]

    @property
    def all_passed(self) -> bool:
        """Check if all validations passed."""
        return all(c.passed for c in self.checks())

    def failed_checks(self) -> List[ValidationResult]:
        """Get list of failed validation checks."""
        return [c for c in self.checks() if not c.passed]

    def failed_check_names(self) -> List[str]:
        """Get names of failed checks."""
        return [c.name for c in self.failed_checks()]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "all_passed": self.all_passed,
            "checks": {
                c.name: {"passed": c.passed, "error": None if c.passed else c.error_message}
                for c in self.checks()
            },
        }


# Global singleton
STARTUP_STATE = StartupState()


def validate_startup(check_connectivity: bool = True) -> bool:
    """
    Run all startup validation checks.

    Returns True if all checks pass.
    Updates global STARTUP_STATE with results.
    """
    global STARTUP_STATE

    logger.info("Starting validation checks...")

    # 1. Settings
    STARTUP_STATE.settings = _validate_settings()
    if STARTUP_STATE.settings.passed:
        logger.info("  [PASS] Settings")
    else:
        logger.error(f"  [FAIL] Settings: {STARTUP_STATE.settings.error_message}")

    # 2. Database
    STARTUP_STATE.database = _validate_database(check_connectivity)
    if STARTUP_STATE.database.passed:
        logger.info("  [PASS] Database connectivity")
    else:
        logger.error(f"  [FAIL] Database connectivity: {STARTUP_STATE.database.error_message}")

    # 3. Service Bus Configuration
    STARTUP_STATE.service_bus = _validate_service_bus()
    if STARTUP_STATE.service_bus.passed:
        logger.info("  [PASS] Service Bus configuration")
    else:
        logger.error(f"  [FAIL] Service Bus configuration: {STARTUP_STATE.service_bus.error_message}")

    if STARTUP_STATE.all_passed:
        logger.info("All validation checks PASSED")
    else:
        logger.error(f"Validation FAILED: {STARTUP_STATE.failed_check_names()}")

    return STARTUP_STATE.all_passed


def _validate_settings() -> ValidationResult:
    result = load_settings()
    if not result.ok:
        return ValidationResult(
            name="settings",
            passed=False,
            error_type="InvalidSettings",
            error_message="; ".join(result.errors),
        )
    set_settings(result.settings)
    return ValidationResult(name="settings", passed=True)


def _validate_database(check_connectivity: bool) -> ValidationResult:
    if not has_database_config():
        return ValidationResult(
            name="database",
            passed=False,
            error_type="MissingEnvVar",
            error_message="DATABASE_URL or POSTGRES_HOST required",
        )
    if not check_connectivity:
        return ValidationResult(name="database", passed=True)

    try:
        with psycopg.connect(get_connection_string(), connect_timeout=10) as conn:
            result = conn.execute("SELECT 1").fetchone()[0]
    except psycopg.Error as e:
        return ValidationResult(
            name="database",
            passed=False,
            error_type=type(e).__name__,
            error_message=str(e),
        )

    if result != 1:
        return ValidationResult(
            name="database",
            passed=False,
            error_type="UnexpectedResult",
            error_message=f"Expected 1, got {result}",
        )
    return ValidationResult(name="database", passed=True)


def _validate_service_bus() -> ValidationResult:
    """
    Validate Service Bus configuration.

    Only presence is checked; a connectivity check is too slow for cold start.
    """
    if ServiceBusConfig.from_env().is_configured:
        return ValidationResult(name="service_bus", passed=True)

    return ValidationResult(
        name="service_bus",
        passed=False,
        error_type="MissingConfig",
        error_message="SERVICE_BUS_NAMESPACE or SERVICE_BUS_CONNECTION_STRING required",
    )


__all__ = ["STARTUP_STATE", "validate_startup", "ValidationResult", "StartupState"]
