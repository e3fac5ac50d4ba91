# ============================================================================
# MEDIA SERVICES CLIENT
# ============================================================================
# STATUS: Infrastructure - Azure Media Services ARM REST API
# PURPOSE: Backend processing client and once-per-process client cache
# CREATED: 19 OCT 2026
# ============================================================================
"""
Media Services Client

Thin async client over the Media Services ARM REST API, one per configured
account. Every request passes through the CallHistoryRecorder.

MediaServicesClientFactory keeps one client per instance for the life of
the process (double-checked locking). reset() drops a cached client; the
recorder calls it after 5xx responses and transport failures, so the next
call builds a fresh client with a fresh token.

Usage:
    factory = MediaServicesClientFactory(settings.instances, call_history_repo)
    client = factory.get_client("amsaccount1")
    job = await client.get_job("AdaptiveBitrate", "job-1")
"""

import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx
from azure.identity.aio import DefaultAzureCredential

from core.config import MediaServiceInstanceConfig
from core.errors import ConfigurationError, MediaServicesApiError
from core.models import ContentKey, MediaJob, StreamingLocator, StreamingPath
from infrastructure.call_history import CallHistoryRecorder

logger = logging.getLogger(__name__)

ARM_ENDPOINT = "https://management.azure.com"
ARM_SCOPE = "https://management.azure.com/.default"
API_VERSION = "2022-08-01"

ADAPTIVE_STREAMING_PRESET: Dict[str, Any] = {
    "@odata.type": "#Microsoft.Media.BuiltInStandardEncoderPreset",
    "presetName": "AdaptiveStreaming",
}

# Refresh tokens when less than 5 minutes until expiry
TOKEN_REFRESH_BUFFER_SECS = 300


# ============================================================================
# CLIENT
# ============================================================================

class MediaServicesClient:
    """Async client for one Media Services account."""

    def __init__(
        self,
        config: MediaServiceInstanceConfig,
        credential,
        recorder: CallHistoryRecorder,
        http_client: httpx.AsyncClient,
    ):
        self.config = config
        self.credential = credential
        self.recorder = recorder
        self.http = http_client
        self._token: Optional[str] = None
        self._token_expires_on: float = 0.0

    @property
    def instance_name(self) -> str:
        return self.config.account_name

    # ------------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------------

    async def _get_token(self) -> str:
        if self._token and self._token_expires_on - time.time() > TOKEN_REFRESH_BUFFER_SECS:
            return self._token
        access_token = await self.credential.get_token(ARM_SCOPE)
        self._token = access_token.token
        self._token_expires_on = float(access_token.expires_on)
        return self._token

    async def _request(
        self,
        method: str,
        relative_path: str = "",
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        url: Optional[str] = None,
    ) -> httpx.Response:
        """
        Send one request. `url` (an absolute nextLink) overrides relative_path.
        """
        if url is None:
            url = f"{ARM_ENDPOINT}{self.config.resource_path}{relative_path}"
            params = {"api-version": API_VERSION, **(params or {})}

        headers = {"Authorization": f"Bearer {await self._get_token()}"}

        async def send() -> httpx.Response:
            return await self.http.request(method, url, json=body, params=params, headers=headers)

        return await self.recorder.track(self.instance_name, method, httpx.URL(url).path, send)

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        if response.is_success:
            return
        message = response.text
        try:
            message = response.json().get("error", {}).get("message", message)
        except ValueError:
            pass
        raise MediaServicesApiError(response.status_code, message, operation)

    async def _get_or_none(self, relative_path: str, operation: str) -> Optional[Dict[str, Any]]:
        response = await self._request("GET", relative_path)
        if response.status_code == 404:
            return None
        self._raise_for_status(response, operation)
        return response.json()

    # ------------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------------

    async def get_transform(self, transform_name: str) -> Optional[Dict[str, Any]]:
        return await self._get_or_none(f"/transforms/{transform_name}", "Transforms.Get")

    async def ensure_transform(
        self,
        transform_name: str,
        preset: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Create the transform with a single output if it does not exist yet."""
        transform = await self.get_transform(transform_name)
        if transform is not None:
            return transform

        logger.info(f"Creating transform {transform_name} on {self.instance_name}")
        response = await self._request(
            "PUT",
            f"/transforms/{transform_name}",
            body={"properties": {"outputs": [{"preset": preset or ADAPTIVE_STREAMING_PRESET}]}},
        )
        self._raise_for_status(response, "Transforms.CreateOrUpdate")
        return response.json()

    # ------------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------------

    async def get_asset(self, asset_name: str) -> Optional[Dict[str, Any]]:
        return await self._get_or_none(f"/assets/{asset_name}", "Assets.Get")

    async def create_or_update_asset(self, asset_name: str) -> Dict[str, Any]:
        response = await self._request("PUT", f"/assets/{asset_name}", body={"properties": {}})
        self._raise_for_status(response, "Assets.CreateOrUpdate")
        return response.json()

    async def list_container_sas(
        self,
        asset_name: str,
        permissions: str = "Read",
        expires_in: timedelta = timedelta(hours=1),
    ) -> List[str]:
        """SAS URLs for the asset's storage container."""
        expiry = datetime.now(timezone.utc) + expires_in
        response = await self._request(
            "POST",
            f"/assets/{asset_name}/listContainerSas",
            body={"permissions": permissions, "expiryTime": expiry.isoformat()},
        )
        self._raise_for_status(response, "Assets.ListContainerSas")
        return response.json().get("assetContainerSasUrls", [])

    # ------------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------------

    async def create_job(
        self,
        transform_name: str,
        job_name: str,
        output_asset_name: str,
        input_asset_name: Optional[str] = None,
        input_urls: Optional[List[str]] = None,
    ) -> MediaJob:
        if input_asset_name:
            job_input: Dict[str, Any] = {
                "@odata.type": "#Microsoft.Media.JobInputAsset",
                "assetName": input_asset_name,
            }
        else:
            job_input = {"@odata.type": "#Microsoft.Media.JobInputHttp", "files": list(input_urls or [])}

        response = await self._request(
            "PUT",
            f"/transforms/{transform_name}/jobs/{job_name}",
            body={
                "properties": {
                    "input": job_input,
                    "outputs": [
                        {"@odata.type": "#Microsoft.Media.JobOutputAsset", "assetName": output_asset_name}
                    ],
                }
            },
        )
        self._raise_for_status(response, "Jobs.Create")
        return MediaJob.from_api(response.json())

    async def get_job(self, transform_name: str, job_name: str) -> Optional[MediaJob]:
        payload = await self._get_or_none(f"/transforms/{transform_name}/jobs/{job_name}", "Jobs.Get")
        return MediaJob.from_api(payload) if payload else None

    async def list_jobs(
        self,
        transform_name: str,
        created_after: Optional[datetime] = None,
    ) -> List[MediaJob]:
        """All jobs of a transform, following nextLink pages."""
        params = {}
        if created_after is not None:
            params["$filter"] = f"properties/created gt {created_after.astimezone(timezone.utc).isoformat()}"

        jobs: List[MediaJob] = []
        response = await self._request("GET", f"/transforms/{transform_name}/jobs", params=params)
        while True:
            self._raise_for_status(response, "Jobs.List")
            page = response.json()
            jobs.extend(MediaJob.from_api(item) for item in page.get("value", []))
            next_link = page.get("@odata.nextLink")
            if not next_link:
                return jobs
            response = await self._request("GET", url=next_link)

    async def cancel_job(self, transform_name: str, job_name: str) -> None:
        response = await self._request("POST", f"/transforms/{transform_name}/jobs/{job_name}/cancelJob")
        if response.status_code == 404:
            return
        self._raise_for_status(response, "Jobs.CancelJob")

    async def delete_job(self, transform_name: str, job_name: str) -> bool:
        """Delete a job. Returns False when it did not exist."""
        response = await self._request("DELETE", f"/transforms/{transform_name}/jobs/{job_name}")
        if response.status_code in (204, 404):
            return response.status_code == 204
        self._raise_for_status(response, "Jobs.Delete")
        return True

    # ------------------------------------------------------------------------
    # Streaming locators
    # ------------------------------------------------------------------------

    async def get_streaming_locator(self, locator_name: str) -> Optional[StreamingLocator]:
        payload = await self._get_or_none(f"/streamingLocators/{locator_name}", "StreamingLocators.Get")
        return StreamingLocator.from_api(payload, self.instance_name) if payload else None

    async def create_streaming_locator(self, locator: StreamingLocator) -> StreamingLocator:
        response = await self._request("PUT", f"/streamingLocators/{locator.name}", body=locator.to_api())
        self._raise_for_status(response, "StreamingLocators.Create")
        return StreamingLocator.from_api(response.json(), self.instance_name)

    async def list_content_keys(self, locator_name: str) -> List[ContentKey]:
        response = await self._request("POST", f"/streamingLocators/{locator_name}/listContentKeys")
        self._raise_for_status(response, "StreamingLocators.ListContentKeys")
        return [ContentKey.from_api(k) for k in response.json().get("contentKeys", [])]

    async def list_paths(self, locator_name: str) -> List[StreamingPath]:
        response = await self._request("POST", f"/streamingLocators/{locator_name}/listPaths")
        self._raise_for_status(response, "StreamingLocators.ListPaths")
        return [StreamingPath.from_api(p) for p in response.json().get("streamingPaths", [])]


# ============================================================================
# CLIENT FACTORY (once per process)
# ============================================================================

class MediaServicesClientFactory:
    """
    Lazily-built, lock-guarded cache of one MediaServicesClient per instance.

    Thread-safe with double-checked locking. The HTTP connection pool and the
    credential are shared; a client holds only its token.
    """

    def __init__(
        self,
        instances: Dict[str, MediaServiceInstanceConfig],
        call_history_repository,
        credential=None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout_seconds: float = 60.0,
    ):
        if not instances:
            raise ConfigurationError("MediaServicesClientFactory requires at least one instance")
        self.instances = dict(instances)
        self.recorder = CallHistoryRecorder(call_history_repository, on_failure=self.reset)
        self._credential = credential
        self._http = http_client
        self._timeout_seconds = timeout_seconds
        self._clients: Dict[str, MediaServicesClient] = {}
        self._lock = threading.Lock()

    def _get_credential(self):
        if self._credential is None:
            self._credential = DefaultAzureCredential()
        return self._credential

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout_seconds)
        return self._http

    def get_client(self, instance_name: str) -> MediaServicesClient:
        """Client for a configured instance; unknown names are a configuration error."""
        # Fast path
        client = self._clients.get(instance_name)
        if client is not None:
            return client

        with self._lock:
            client = self._clients.get(instance_name)
            if client is not None:
                return client

            config = self.instances.get(instance_name)
            if config is None:
                raise ConfigurationError(f"No configuration for Media Services instance '{instance_name}'")

            client = MediaServicesClient(
                config=config,
                credential=self._get_credential(),
                recorder=self.recorder,
                http_client=self._get_http(),
            )
            self._clients[instance_name] = client
            logger.debug(f"Created Media Services client for {instance_name}")
            return client

    def reset(self, instance_name: Optional[str] = None) -> None:
        """Drop one cached client, or all of them."""
        with self._lock:
            if instance_name is None:
                self._clients.clear()
            else:
                self._clients.pop(instance_name, None)

    async def aclose(self) -> None:
        self.reset()
        if self._http is not None:
            await self._http.aclose()
            self._http = None
        if self._credential is not None and hasattr(self._credential, "close"):
            await self._credential.close()
            self._credential = None


__all__ = [
    "ARM_ENDPOINT",
    "API_VERSION",
    "ADAPTIVE_STREAMING_PRESET",
    "MediaServicesClient",
    "MediaServicesClientFactory",
]
