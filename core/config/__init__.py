# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration
# PURPOSE: Centralized configuration management
# CREATED: 19 OCT 2026
# ============================================================================
"""
Configuration Module

Settings for the instance pool, health thresholds, retry budget and
streaming provisioning.
"""

from core.config.settings import (
    MediaServiceInstanceConfig,
    HealthSettings,
    JobSettings,
    StreamingSettings,
    Settings,
    SettingsLoadResult,
    parse_instance_configuration,
    load_settings,
    get_settings,
    set_settings,
    reset_settings,
)

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
