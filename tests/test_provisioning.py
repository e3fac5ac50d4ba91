# ============================================================================
# PROVISIONING TESTS
# ============================================================================
# STATUS: Tests - Provisioning pipeline
# PURPOSE: Verify step order, replication, locators, token and abort behaviour
# CREATED: 19 OCT 2026
# ============================================================================
"""
Provisioning Tests

Covers:
1. One completed event with instances, clear and clear key locators
2. Same locator id and content keys on every instance
3. Primary URL with a token decodable with the streaming key
4. Locator bound to another asset -> ProvisioningError
5. A failing step aborts the pipeline and stores nothing

Run with:
    pytest tests/test_provisioning.py -v
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import unquote

import jwt
import pytest

from core.errors import ConfigurationError, ProvisioningError
from core.models import ProvisioningCompletedEvent, ProvisioningRequest, StreamingLocator
from infrastructure.storage import CopyResult
from services.provisioning import (
    AssetDataProvisioningStep,
    ClearKeyStreamingProvisioningStep,
    ClearStreamingProvisioningStep,
    ProvisioningOrchestrator,
)
from services.provisioning.clear_key import CONTENT_KEY_IDENTIFIER_CLAIM, create_token
from tests.fakes import STREAMING_KEY, FakeClientFactory, make_event_repo, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def factory():
    return FakeClientFactory()


@pytest.fixture
def copier():
    copier = MagicMock()
    copier.copy_container = AsyncMock(return_value=CopyResult(blobs=["video.mp4", "manifest.ism"]))
    return copier


@pytest.fixture
def event_repo():
    return make_event_repo()


@pytest.fixture
def orchestrator(settings, factory, copier, event_repo):
    return ProvisioningOrchestrator(
        MagicMock(),
        [
            AssetDataProvisioningStep(settings, factory, copier=copier),
            ClearStreamingProvisioningStep(settings, factory),
            ClearKeyStreamingProvisioningStep(settings, factory),
        ],
        event_repo=event_repo,
    )


@pytest.fixture
def request_():
    return ProvisioningRequest(
        processed_asset_name="out-1",
        instance_name="amsaccount2",
        streaming_locator_name="streaming-out-1",
    )


# ============================================================================
# PIPELINE
# ============================================================================

class TestOrchestrator:

    def test_single_event_with_all_outputs(self, orchestrator, request_, event_repo):
        event = asyncio.run(orchestrator.provision(request_))

        assert event.instance_names == ["amsaccount2", "amsaccount1", "amsaccount3"]
        assert [l.instance_name for l in event.clear_streaming_locators] == [
            "amsaccount2", "amsaccount1", "amsaccount3"
        ]
        assert len(event.clear_key_streaming_locators) == 3
        assert event.primary_url is not None
        assert event.completed_at is not None

        stored = asyncio.run(event_repo.list_for_asset("out-1"))
        assert [e.id for e in stored] == [event.id]

    def test_targets_get_source_locator_identity(self, orchestrator, request_):
        event = asyncio.run(orchestrator.provision(request_))

        clear_ids = {l.streaming_locator_id for l in event.clear_streaming_locators}
        assert len(clear_ids) == 1
        key_ids = {
            tuple(k.id for k in l.content_keys) for l in event.clear_key_streaming_locators
        }
        assert key_ids == {("11111111-2222-3333-4444-555555555555",)}
        assert all(l.name == "streaming-out-1-encrypted" for l in event.clear_key_streaming_locators)

    def test_assets_copied_to_every_target(self, orchestrator, request_, factory, copier):
        asyncio.run(orchestrator.provision(request_))

        assert copier.copy_container.await_count == 2
        for target in ("amsaccount1", "amsaccount3"):
            factory.get_client(target).create_or_update_asset.assert_awaited_once_with("out-1")
        source_sas = factory.get_client("amsaccount2").list_container_sas.await_args
        assert source_sas.kwargs["permissions"] == "Read"

    def test_existing_target_asset_is_reused(self, orchestrator, request_, factory):
        factory.get_client("amsaccount1").get_asset.return_value = {"name": "out-1"}

        asyncio.run(orchestrator.provision(request_))

        factory.get_client("amsaccount1").create_or_update_asset.assert_not_awaited()

    def test_rerun_reuses_locators(self, orchestrator, request_, event_repo):
        first = asyncio.run(orchestrator.provision(request_))
        second = asyncio.run(orchestrator.provision(request_))

        assert [l.streaming_locator_id for l in second.clear_streaming_locators] == [
            l.streaming_locator_id for l in first.clear_streaming_locators
        ]

    def test_failing_step_stores_nothing(self, orchestrator, request_, copier, event_repo):
        copier.copy_container.side_effect = ProvisioningError("copy failed")

        with pytest.raises(ProvisioningError):
            asyncio.run(orchestrator.provision(request_))

        assert asyncio.run(event_repo.list_for_asset("out-1")) == []

    def test_unknown_source_instance(self, orchestrator, event_repo):
        request = ProvisioningRequest(
            processed_asset_name="out-1",
            instance_name="amsaccount9",
            streaming_locator_name="streaming-out-1",
        )

        with pytest.raises(ConfigurationError):
            asyncio.run(orchestrator.provision(request))
        assert asyncio.run(event_repo.list_for_asset("out-1")) == []

    def test_requires_steps(self):
        with pytest.raises(ValueError):
            ProvisioningOrchestrator(MagicMock(), [], event_repo=make_event_repo())


# ============================================================================
# LOCATORS
# ============================================================================

class TestLocators:

    def test_locator_for_other_asset_is_an_error(self, settings, factory, request_):
        factory.get_client("amsaccount2").locators["streaming-out-1"] = StreamingLocator(
            name="streaming-out-1",
            asset_name="some-other-asset",
            streaming_policy_name="Predefined_ClearStreamingOnly",
        )
        step = ClearStreamingProvisioningStep(settings, factory)

        with pytest.raises(ProvisioningError):
            asyncio.run(step.provision(request_, ProvisioningCompletedEvent(asset_name="out-1")))

    def test_missing_content_keys_is_an_error(self, settings, factory, request_):
        factory.get_client("amsaccount2").content_keys = []
        step = ClearKeyStreamingProvisioningStep(settings, factory)

        with pytest.raises(ProvisioningError):
            asyncio.run(step.provision(request_, ProvisioningCompletedEvent(asset_name="out-1")))


# ============================================================================
# TOKEN AND URL
# ============================================================================

class TestToken:

    def test_token_claims(self, settings):
        token = create_token(settings.streaming, "key-1", now=1_800_000_000)

        claims = jwt.decode(
            token,
            STREAMING_KEY,
            algorithms=["HS256"],
            audience="audience",
            issuer="issuer",
            options={"verify_exp": False, "verify_nbf": False},
        )

        assert claims[CONTENT_KEY_IDENTIFIER_CLAIM] == "key-1"
        assert claims["nbf"] == 1_800_000_000 - 300
        assert claims["exp"] == 1_800_000_000 + 3600

    def test_primary_url_points_at_front_door_dash(self, orchestrator, request_):
        event = asyncio.run(orchestrator.provision(request_))

        url = unquote(event.primary_url)
        assert url.startswith("https://ampdemo.azureedge.net/?url=https://media.contoso.net/")
        assert "format=mpd-time-cmaf" in url
        token = url.split("Bearer=")[1]
        claims = jwt.decode(token, STREAMING_KEY, algorithms=["HS256"], audience="audience")
        assert claims[CONTENT_KEY_IDENTIFIER_CLAIM] == "11111111-2222-3333-4444-555555555555"
