# ============================================================================
# CLEAR KEY STREAMING PROVISIONING
# ============================================================================
# STATUS: Service - Provisioning step 3
# PURPOSE: Encrypted (clear key) locator everywhere plus the primary URL
# CREATED: 19 OCT 2026
# ============================================================================
"""
Clear Key Streaming Provisioning

- Locator "<streaming_locator_name>-encrypted" with the ClearKey policy
  and the configured content key policy on the source instance.
- The source's content keys are copied into the same locator on every
  target, so a token minted once plays against any instance.
- The primary URL is the DASH path served through Front Door, opened in
  the player with a JWT for the first content key.
"""

import logging
import time
from typing import ClassVar, List, Optional
from urllib.parse import urlunsplit

import jwt

from core.config import StreamingSettings
from core.errors import ProvisioningError
from core.models import ProvisioningCompletedEvent, ProvisioningRequest, StreamingLocator, StreamingPath
from .base import ProvisioningStep, provision_locator

logger = logging.getLogger(__name__)

CLEAR_KEY_POLICY = "Predefined_ClearKey"
ENCRYPTED_SUFFIX = "-encrypted"
CONTENT_KEY_IDENTIFIER_CLAIM = "urn:microsoft:azure:media:contentkeyidentifier"
PLAYER_URL = "https://ampdemo.azureedge.net/?url={url}&aes=true&aestoken=Bearer%3D{token}"

TOKEN_NOT_BEFORE_SKEW_SECONDS = 5 * 60
TOKEN_LIFETIME_SECONDS = 60 * 60


def create_token(streaming: StreamingSettings, key_identifier: str, now: Optional[float] = None) -> str:
    """HS256 token accepted by the content key policy for one content key."""
    now = int(now if now is not None else time.time())
    payload = {
        "iss": streaming.token_issuer,
        "aud": streaming.token_audience,
        CONTENT_KEY_IDENTIFIER_CLAIM: key_identifier,
        "nbf": now - TOKEN_NOT_BEFORE_SKEW_SECONDS,
        "exp": now + TOKEN_LIFETIME_SECONDS,
    }
    return jwt.encode(payload, streaming.clear_key_streaming_key, algorithm="HS256")


def dash_url(front_door_hostname: str, paths: List[StreamingPath]) -> Optional[str]:
    for path in paths:
        if path.streaming_protocol.lower() == "dash" and path.paths:
            return urlunsplit(("https", front_door_hostname, path.paths[0], "", ""))
    return None


class ClearKeyStreamingProvisioningStep(ProvisioningStep):
    NAME: ClassVar[str] = "clear_key_streaming"

    async def provision(self, request: ProvisioningRequest, event: ProvisioningCompletedEvent) -> None:
        self.source_instance(request)
        streaming = self.settings.streaming
        locator_name = f"{request.streaming_locator_name}{ENCRYPTED_SUFFIX}"
        source = self.client_factory.get_client(request.instance_name)

        source_locator = await provision_locator(
            source,
            request.processed_asset_name,
            StreamingLocator(
                name=locator_name,
                asset_name=request.processed_asset_name,
                streaming_policy_name=CLEAR_KEY_POLICY,
                default_content_key_policy_name=streaming.content_key_policy_name,
                instance_name=request.instance_name,
            ),
        )
        event.add_clear_key_streaming_locator(source_locator)

        content_keys = await source.list_content_keys(locator_name)
        if not content_keys:
            raise ProvisioningError(f"Locator {locator_name} on {request.instance_name} has no content keys")

        token = create_token(streaming, content_keys[0].id)
        url = dash_url(streaming.front_door_hostname, await source.list_paths(locator_name))
        if url is None:
            logger.warning(f"Locator {locator_name} has no DASH path, primary URL left empty")
        else:
            event.primary_url = PLAYER_URL.format(url=url, token=token)

        for target_name in self.target_instances(request):
            target = self.client_factory.get_client(target_name)
            target_locator = await provision_locator(
                target,
                request.processed_asset_name,
                source_locator.replica(target_name, content_keys=content_keys),
            )
            event.add_clear_key_streaming_locator(target_locator)


__all__ = [
    "ClearKeyStreamingProvisioningStep",
    "CLEAR_KEY_POLICY",
    "CONTENT_KEY_IDENTIFIER_CLAIM",
    "create_token",
    "dash_url",
]
