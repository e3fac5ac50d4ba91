# ============================================================================
# SERVICE BUS INFRASTRUCTURE
# ============================================================================
# STATUS: Infrastructure - Azure Service Bus messaging
# PURPOSE: Send job, verification and provisioning requests (optionally delayed)
# CREATED: 19 OCT 2026
# ============================================================================
"""
Service Bus Infrastructure

Async publisher for the three work queues. Messages are Pydantic models
serialized to JSON. A delay schedules the message with
scheduled_enqueue_time_utc, which is how verification is deferred.

Key Design Decisions:
    - One publisher per process (get_publisher), senders cached per queue
    - Dual auth: connection string OR managed identity
    - Error categorization: permanent vs transient
    - Pydantic model serialization

Usage:
    publisher = get_publisher()
    await publisher.send_message(
        QueueName.JOB_VERIFICATION_REQUESTS,
        verification_request,
        delay=timedelta(minutes=10),
    )
"""

import asyncio
import logging
import os
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Union

from azure.identity.aio import DefaultAzureCredential
from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient, ServiceBusSender
from azure.servicebus.exceptions import (
    MessageSizeExceededError,
    MessagingEntityNotFoundError,
    OperationTimeoutError,
    ServiceBusAuthenticationError,
    ServiceBusAuthorizationError,
    ServiceBusConnectionError,
    ServiceBusCommunicationError,
    ServiceBusError,
    ServiceBusQuotaExceededError,
    ServiceBusServerBusyError,
)
from pydantic import BaseModel

from core.contracts import QueueName

logger = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class ServiceBusConfig:
    """Service Bus configuration from environment."""

    fully_qualified_namespace: str = ""
    connection_string: Optional[str] = None
    retry_count: int = 3
    retry_delay_seconds: float = 1.0
    ttl_hours: int = 24

    @classmethod
    def from_env(cls) -> "ServiceBusConfig":
        """Load configuration from environment variables."""
        return cls(
            fully_qualified_namespace=os.environ.get(
                "SERVICE_BUS_NAMESPACE",
                os.environ.get("ServiceBusConnection__fullyQualifiedNamespace", "")
            ),
            connection_string=os.environ.get("SERVICE_BUS_CONNECTION_STRING"),
            retry_count=int(os.environ.get("SERVICE_BUS_RETRY_COUNT", "3")),
            retry_delay_seconds=float(os.environ.get("SERVICE_BUS_RETRY_DELAY", "1.0")),
            ttl_hours=int(os.environ.get("SERVICE_BUS_TTL_HOURS", "24")),
        )

    @property
    def use_connection_string(self) -> bool:
        """Check if connection string auth should be used."""
        return bool(self.connection_string)

    @property
    def is_configured(self) -> bool:
        return bool(self.connection_string or self.fully_qualified_namespace)


class MessagePublishError(RuntimeError):
    """A message could not be sent. `permanent` is False for exhausted transient retries."""

    def __init__(self, message: str, permanent: bool):
        super().__init__(message)
        self.permanent = permanent


# ============================================================================
# SERVICE BUS PUBLISHER
# ============================================================================

class ServiceBusPublisher:
    """
    Async message publisher with sender caching.

    Transient failures are retried with exponential backoff; permanent
    ones (auth, size, missing queue, quota) fail immediately.
    """

    def __init__(
        self,
        config: Optional[ServiceBusConfig] = None,
        client: Optional[ServiceBusClient] = None,
    ):
        self.config = config or ServiceBusConfig.from_env()
        self._client = client
        self._credential = None
        self._senders: Dict[str, ServiceBusSender] = {}
        self._sender_lock = asyncio.Lock()

    def _connect(self) -> ServiceBusClient:
        """Create the async client on first use."""
        if self._client is not None:
            return self._client

        if self.config.use_connection_string:
            logger.info("Using connection string authentication")
            self._client = ServiceBusClient.from_connection_string(
                self.config.connection_string,
                retry_total=5,
                retry_backoff_factor=0.5,
                retry_backoff_max=60,
                retry_mode="exponential",
            )
        else:
            if not self.config.fully_qualified_namespace:
                raise ValueError(
                    "SERVICE_BUS_NAMESPACE environment variable not set. "
                    "Required for managed identity authentication."
                )
            logger.info(f"Using managed identity for namespace: {self.config.fully_qualified_namespace}")
            self._credential = DefaultAzureCredential()
            self._client = ServiceBusClient(
                fully_qualified_namespace=self.config.fully_qualified_namespace,
                credential=self._credential,
                retry_total=5,
                retry_backoff_factor=0.5,
                retry_backoff_max=60,
                retry_mode="exponential",
            )
        return self._client

    async def _get_sender(self, queue_name: str) -> ServiceBusSender:
        sender = self._senders.get(queue_name)
        if sender is not None:
            return sender

        async with self._sender_lock:
            sender = self._senders.get(queue_name)
            if sender is None:
                logger.debug(f"Creating new sender for queue: {queue_name}")
                sender = self._connect().get_queue_sender(queue_name)
                self._senders[queue_name] = sender
            return sender

    async def _drop_sender(self, queue_name: str) -> None:
        sender = self._senders.pop(queue_name, None)
        if sender is None:
            return
        try:
            await sender.close()
        except ServiceBusError as e:
            logger.warning(f"Error closing sender for {queue_name}: {e}")

    def build_message(
        self,
        message: BaseModel,
        delay: Optional[timedelta] = None,
    ) -> ServiceBusMessage:
        sb_message = ServiceBusMessage(
            body=message.model_dump_json(),
            content_type="application/json",
            time_to_live=timedelta(hours=self.config.ttl_hours),
        )
        if getattr(message, "id", None):
            sb_message.message_id = str(message.id)

        # Tracing properties
        sb_message.application_properties = {"message_type": type(message).__name__}
        for attr in ("job_name", "instance_name", "processed_asset_name"):
            value = getattr(message, attr, None)
            if value:
                sb_message.application_properties[attr] = value

        if delay is not None and delay > timedelta(0):
            sb_message.scheduled_enqueue_time_utc = datetime.now(timezone.utc) + delay
        return sb_message

    async def send_message(
        self,
        queue_name: Union[QueueName, str],
        message: BaseModel,
        delay: Optional[timedelta] = None,
    ) -> str:
        """
        Send a single message, optionally scheduled `delay` in the future.

        Returns:
            Message ID

        Raises:
            MessagePublishError: permanent failure, or transient retries exhausted
        """
        queue = queue_name.value if isinstance(queue_name, QueueName) else queue_name
        sb_message = self.build_message(message, delay)

        for attempt in range(self.config.retry_count):
            try:
                sender = await self._get_sender(queue)
                await sender.send_messages(sb_message)
                logger.info(
                    f"Message sent to {queue}: {sb_message.message_id}"
                    + (f" (delay {delay})" if delay else ""),
                    extra={
                        "queue": queue,
                        "message_id": sb_message.message_id,
                        "message_type": type(message).__name__,
                    },
                )
                return sb_message.message_id

            except (ServiceBusAuthenticationError, ServiceBusAuthorizationError) as e:
                logger.error(f"Auth failed for {queue}: {e}")
                raise MessagePublishError(f"Service Bus auth failed: {e}", permanent=True) from e

            except MessageSizeExceededError as e:
                logger.error(f"Message too large for {queue}: {e}")
                raise MessagePublishError(f"Message exceeds size limit: {e}", permanent=True) from e

            except MessagingEntityNotFoundError as e:
                logger.error(f"Queue '{queue}' not found: {e}")
                raise MessagePublishError(f"Queue '{queue}' does not exist: {e}", permanent=True) from e

            except ServiceBusQuotaExceededError as e:
                logger.error(f"Service Bus quota exceeded: {e}")
                raise MessagePublishError(f"Service Bus quota exceeded: {e}", permanent=True) from e

            except (OperationTimeoutError, ServiceBusServerBusyError,
                    ServiceBusConnectionError, ServiceBusCommunicationError, ServiceBusError) as e:
                logger.warning(
                    f"Transient error on attempt {attempt + 1}/{self.config.retry_count} "
                    f"sending to {queue}: {type(e).__name__}"
                )
                await self._drop_sender(queue)
                if attempt == self.config.retry_count - 1:
                    raise MessagePublishError(
                        f"Failed to send to {queue} after {self.config.retry_count} attempts: {e}",
                        permanent=False,
                    ) from e
                await asyncio.sleep(self.config.retry_delay_seconds * (2 ** attempt))

        raise MessagePublishError(f"Failed to send to {queue}: no attempts configured", permanent=True)

    async def close(self) -> None:
        """Close all connections."""
        for queue_name in list(self._senders):
            await self._drop_sender(queue_name)
        if self._client is not None:
            await self._client.close()
            self._client = None
        if self._credential is not None:
            await self._credential.close()
            self._credential = None


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

_publisher: Optional[ServiceBusPublisher] = None
_publisher_lock = threading.Lock()


def get_publisher() -> ServiceBusPublisher:
    """Get the process-wide ServiceBusPublisher."""
    global _publisher
    if _publisher is None:
        with _publisher_lock:
            if _publisher is None:
                _publisher = ServiceBusPublisher()
    return _publisher


def reset_publisher() -> None:
    """Forget the process-wide publisher (testing)."""
    global _publisher
    with _publisher_lock:
        _publisher = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ServiceBusConfig",
    "ServiceBusPublisher",
    "MessagePublishError",
    "get_publisher",
    "reset_publisher",
]
