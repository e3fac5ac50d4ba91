# ============================================================================
# SETTINGS TESTS
# ============================================================================
# STATUS: Tests - Configuration loading
# PURPOSE: Verify instance parsing, defaults and error collection
# CREATED: 19 OCT 2026
# ============================================================================
"""
Settings Tests

Covers:
1. AMS_CONFIGURATION parsing (valid, malformed, duplicates)
2. Threshold defaults and overrides
3. load_settings() collects every error instead of raising
4. get_settings() raises ConfigurationError on invalid settings

Run with:
    pytest tests/test_settings.py -v
"""

import base64
import json

import pytest

from core.config import (
    HealthSettings,
    JobSettings,
    get_settings,
    load_settings,
    parse_instance_configuration,
    reset_settings,
)
from core.errors import ConfigurationError


def _instances(*names):
    return json.dumps([
        {"SubscriptionId": "sub", "ResourceGroup": "rg", "AccountName": name} for name in names
    ])


@pytest.fixture
def valid_env():
    return {
        "AMS_CONFIGURATION": _instances("amsaccount1", "amsaccount2"),
        "FRONT_DOOR_HOSTNAME": "media.contoso.net",
        "TOKEN_ISSUER": "issuer",
        "TOKEN_AUDIENCE": "audience",
        "CONTENT_KEY_POLICY_NAME": "clearkey-policy",
        "CLEAR_KEY_STREAMING_KEY": base64.b64encode(b"k" * 32).decode(),
    }


class TestInstanceConfiguration:

    def test_parses_accounts_by_name(self):
        instances = parse_instance_configuration(_instances("amsaccount1", "amsaccount2"))
        assert sorted(instances) == ["amsaccount1", "amsaccount2"]
        assert instances["amsaccount1"].resource_path == (
            "/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Media/mediaServices/amsaccount1"
        )

    def test_rejects_invalid_json(self):
        with pytest.raises(ValueError, match="not valid JSON"):
            parse_instance_configuration("[{")

    def test_rejects_empty_list(self):
        with pytest.raises(ValueError):
            parse_instance_configuration("[]")

    def test_rejects_missing_field(self):
        with pytest.raises(ValueError, match="missing field"):
            parse_instance_configuration(json.dumps([{"SubscriptionId": "s", "AccountName": "a"}]))

    def test_rejects_duplicates(self):
        with pytest.raises(ValueError, match="twice"):
            parse_instance_configuration(_instances("amsaccount1", "amsaccount1"))


class TestThresholds:

    def test_defaults(self):
        health = HealthSettings.from_env({})
        jobs = JobSettings.from_env({})
        assert health.healthy_success_rate == 0.9
        assert health.unhealthy_success_rate == 0.7
        assert health.job_stuck_minutes == 60
        assert jobs.max_retries == 3
        assert jobs.verify_delay_minutes == 10
        assert jobs.transform_name == "AdaptiveBitrate"

    def test_overrides(self):
        jobs = JobSettings.from_env({"MAX_RETRIES": "5", "TRANSFORM_NAME": "Custom"})
        assert jobs.max_retries == 5
        assert jobs.transform_name == "Custom"

    def test_inverted_rates_are_invalid(self):
        health = HealthSettings(healthy_success_rate=0.5, unhealthy_success_rate=0.8)
        assert health.validate()


class TestLoadSettings:

    def test_valid_environment(self, valid_env):
        result = load_settings(valid_env)
        assert result.ok
        assert result.settings.streaming.clear_key_streaming_key == b"k" * 32
        assert sorted(result.settings.instances) == ["amsaccount1", "amsaccount2"]

    def test_collects_all_errors(self, valid_env):
        env = dict(valid_env)
        del env["AMS_CONFIGURATION"]
        del env["TOKEN_ISSUER"]
        env["MAX_RETRIES"] = "-1"

        result = load_settings(env)

        assert not result.ok
        assert result.settings is None
        assert len(result.errors) == 3
        assert any("AMS_CONFIGURATION" in e for e in result.errors)
        assert any("TOKEN_ISSUER" in e for e in result.errors)
        assert any("MAX_RETRIES" in e for e in result.errors)

    def test_non_numeric_threshold_is_an_error(self, valid_env):
        result = load_settings({**valid_env, "HEALTHY_SUCCESS_RATE": "high"})
        assert not result.ok
        assert any("health" in e for e in result.errors)

    def test_bad_streaming_key(self, valid_env):
        result = load_settings({**valid_env, "CLEAR_KEY_STREAMING_KEY": "not base64!"})
        assert not result.ok

    def test_unknown_instance_is_configuration_error(self, valid_env):
        settings = load_settings(valid_env).settings
        with pytest.raises(ConfigurationError):
            settings.instance("amsaccount9")

    def test_get_settings_raises_when_invalid(self, monkeypatch):
        reset_settings()
        monkeypatch.delenv("AMS_CONFIGURATION", raising=False)
        try:
            with pytest.raises(ConfigurationError):
                get_settings()
        finally:
            reset_settings()
