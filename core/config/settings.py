# ============================================================================
# APPLICATION SETTINGS
# ============================================================================
# STATUS: Core - Configuration loaded once at startup
# PURPOSE: Instance map, health thresholds, retry budget, streaming settings
# CREATED: 19 OCT 2026
# ============================================================================
"""
Application Settings

Immutable dataclasses populated from environment variables.

Loading never raises: load_settings() returns a SettingsLoadResult that
carries either the settings or the list of problems found. The Function App
checks it once at startup; request handlers call get_settings(), which only
raises ConfigurationError if startup was skipped and the environment is bad.

Environment:
    AMS_CONFIGURATION          JSON list of {SubscriptionId, ResourceGroup, AccountName}
    HEALTHY_SUCCESS_RATE       ratio at or above which an instance is Healthy (0.9)
    UNHEALTHY_SUCCESS_RATE     ratio at or below which an instance is Unhealthy (0.7)
    JOB_STUCK_MINUTES          in-process duration that marks a job stuck (60)
    JOB_HISTORY_WINDOW_MINUTES trailing window of status records (480)
    CALL_HISTORY_WINDOW_MINUTES trailing window of call records (480)
    VERIFY_DELAY_MINUTES       delay before a verification request fires (10)
    MAX_RETRIES                resubmission budget per job (3)
    RESYNC_MINUTES             staleness that forces a live status check (60)
    TRANSFORM_NAME             transform used for submissions (AdaptiveBitrate)
    SYNC_PAGE_SIZE             backend page size used by sync (100)
    FRONT_DOOR_HOSTNAME, TOKEN_ISSUER, TOKEN_AUDIENCE,
    CONTENT_KEY_POLICY_NAME, CLEAR_KEY_STREAMING_KEY (base64)
"""

import base64
import binascii
import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from core.errors import ConfigurationError


def _env(environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
    return os.environ if environ is None else environ


# ============================================================================
# INSTANCE CONFIGURATION
# ============================================================================

@dataclass(frozen=True)
class MediaServiceInstanceConfig:
    """Addressing data for one Media Services account."""
    subscription_id: str
    resource_group: str
    account_name: str

    @property
    def resource_path(self) -> str:
        """ARM path of the account, without leading host."""
        return (
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group}"
            f"/providers/Microsoft.Media/mediaServices/{self.account_name}"
        )


def parse_instance_configuration(raw: str) -> Dict[str, MediaServiceInstanceConfig]:
    """
    Parse AMS_CONFIGURATION into a dict keyed by account name.

    Raises:
        ValueError: malformed JSON, missing keys, duplicates or empty list
    """
    try:
        items = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"AMS_CONFIGURATION is not valid JSON: {e}") from e

    if not isinstance(items, list) or not items:
        raise ValueError("AMS_CONFIGURATION must be a non-empty JSON list")

    instances: Dict[str, MediaServiceInstanceConfig] = {}
    for item in items:
        try:
            config = MediaServiceInstanceConfig(
                subscription_id=item["SubscriptionId"],
                resource_group=item["ResourceGroup"],
                account_name=item["AccountName"],
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"AMS_CONFIGURATION entry missing field {e}: {item!r}") from e

        if config.account_name in instances:
            raise ValueError(f"AMS_CONFIGURATION lists {config.account_name} twice")
        instances[config.account_name] = config

    return instances


# ============================================================================
# THRESHOLDS
# ============================================================================

@dataclass(frozen=True)
class HealthSettings:
    """Thresholds used when re-evaluating instance health."""
    healthy_success_rate: float = 0.9
    unhealthy_success_rate: float = 0.7
    job_stuck_minutes: int = 60
    job_history_window_minutes: int = 480
    call_history_window_minutes: int = 480

    def validate(self) -> List[str]:
        errors = []
        if not 0.0 <= self.unhealthy_success_rate <= self.healthy_success_rate <= 1.0:
            errors.append(
                "success rates must satisfy 0 <= UNHEALTHY_SUCCESS_RATE <= HEALTHY_SUCCESS_RATE <= 1 "
                f"(got {self.unhealthy_success_rate}, {self.healthy_success_rate})"
            )
        if self.job_stuck_minutes <= 0:
            errors.append("JOB_STUCK_MINUTES must be positive")
        return errors

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "HealthSettings":
        env = _env(environ)
        return cls(
            healthy_success_rate=float(env.get("HEALTHY_SUCCESS_RATE", 0.9)),
            unhealthy_success_rate=float(env.get("UNHEALTHY_SUCCESS_RATE", 0.7)),
            job_stuck_minutes=int(env.get("JOB_STUCK_MINUTES", 60)),
            job_history_window_minutes=int(env.get("JOB_HISTORY_WINDOW_MINUTES", 480)),
            call_history_window_minutes=int(env.get("CALL_HISTORY_WINDOW_MINUTES", 480)),
        )


@dataclass(frozen=True)
class JobSettings:
    """Scheduling, verification and resync settings."""
    verify_delay_minutes: int = 10
    max_retries: int = 3
    resync_minutes: int = 60
    transform_name: str = "AdaptiveBitrate"
    sync_page_size: int = 100

    def validate(self) -> List[str]:
        errors = []
        if self.max_retries < 0:
            errors.append("MAX_RETRIES must not be negative")
        if self.verify_delay_minutes <= 0:
            errors.append("VERIFY_DELAY_MINUTES must be positive")
        if self.sync_page_size <= 0:
            errors.append("SYNC_PAGE_SIZE must be positive")
        return errors

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "JobSettings":
        env = _env(environ)
        return cls(
            verify_delay_minutes=int(env.get("VERIFY_DELAY_MINUTES", 10)),
            max_retries=int(env.get("MAX_RETRIES", 3)),
            resync_minutes=int(env.get("RESYNC_MINUTES", 60)),
            transform_name=env.get("TRANSFORM_NAME", "AdaptiveBitrate"),
            sync_page_size=int(env.get("SYNC_PAGE_SIZE", 100)),
        )


@dataclass(frozen=True)
class StreamingSettings:
    """Settings used by the streaming locator provisioning steps."""
    front_door_hostname: str = ""
    token_issuer: str = ""
    token_audience: str = ""
    content_key_policy_name: str = ""
    clear_key_streaming_key: bytes = b""

    REQUIRED = (
        "FRONT_DOOR_HOSTNAME",
        "TOKEN_ISSUER",
        "TOKEN_AUDIENCE",
        "CONTENT_KEY_POLICY_NAME",
        "CLEAR_KEY_STREAMING_KEY",
    )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StreamingSettings":
        env = _env(environ)
        missing = [name for name in cls.REQUIRED if not env.get(name)]
        if missing:
            raise ValueError(f"missing streaming settings: {', '.join(missing)}")
        try:
            key = base64.b64decode(env["CLEAR_KEY_STREAMING_KEY"], validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"CLEAR_KEY_STREAMING_KEY is not valid base64: {e}") from e
        return cls(
            front_door_hostname=env["FRONT_DOOR_HOSTNAME"],
            token_issuer=env["TOKEN_ISSUER"],
            token_audience=env["TOKEN_AUDIENCE"],
            content_key_policy_name=env["CONTENT_KEY_POLICY_NAME"],
            clear_key_streaming_key=key,
        )


# ============================================================================
# SETTINGS CONTAINER
# ============================================================================

@dataclass
class Settings:
    """Container for all application settings."""
    instances: Dict[str, MediaServiceInstanceConfig]
    health: HealthSettings = field(default_factory=HealthSettings)
    jobs: JobSettings = field(default_factory=JobSettings)
    streaming: StreamingSettings = field(default_factory=StreamingSettings)

    def instance(self, name: str) -> MediaServiceInstanceConfig:
        """Config for one instance; unknown names are an integrity error."""
        try:
            return self.instances[name]
        except KeyError:
            raise ConfigurationError(f"No configuration for Media Services instance '{name}'")


@dataclass
class SettingsLoadResult:
    """Outcome of load_settings(): settings or the problems that prevented them."""
    settings: Optional[Settings] = None
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.settings is not None and not self.errors


def load_settings(environ: Optional[Mapping[str, str]] = None) -> SettingsLoadResult:
    """Read every section, collecting errors instead of raising."""
    env = _env(environ)
    errors: List[str] = []

    instances: Dict[str, MediaServiceInstanceConfig] = {}
    raw = env.get("AMS_CONFIGURATION")
    if not raw:
        errors.append("AMS_CONFIGURATION is not set")
    else:
        try:
            instances = parse_instance_configuration(raw)
        except ValueError as e:
            errors.append(str(e))

    health = jobs = streaming = None
    try:
        health = HealthSettings.from_env(env)
        errors.extend(health.validate())
    except ValueError as e:
        errors.append(f"invalid health settings: {e}")
    try:
        jobs = JobSettings.from_env(env)
        errors.extend(jobs.validate())
    except ValueError as e:
        errors.append(f"invalid job settings: {e}")
    try:
        streaming = StreamingSettings.from_env(env)
    except ValueError as e:
        errors.append(str(e))

    if errors:
        return SettingsLoadResult(settings=None, errors=errors)

    return SettingsLoadResult(
        settings=Settings(instances=instances, health=health, jobs=jobs, streaming=streaming)
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings, loading from the environment on first use."""
    global _settings
    if _settings is None:
        result = load_settings()
        if not result.ok:
            raise ConfigurationError("; ".join(result.errors))
        _settings = result.settings
    return _settings


def set_settings(settings: Settings) -> None:
    """Install already-validated settings (startup validation, tests)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "MediaServiceInstanceConfig",
    "HealthSettings",
    "JobSettings",
    "StreamingSettings",
    "Settings",
    "SettingsLoadResult",
    "parse_instance_configuration",
    "load_settings",
    "get_settings",
    "set_settings",
    "reset_settings",
]
