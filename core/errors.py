# ============================================================================
# ERROR TAXONOMY
# ============================================================================
# STATUS: Foundation - Exceptions raised across components
# PURPOSE: Named failures so dispatchers can tell retriable from fatal
# CREATED: 19 OCT 2026
# ============================================================================
"""
Error taxonomy.

- Transient backend failures (MediaServicesApiError with 5xx, transport
  errors) propagate to the dispatcher, which redelivers the message.
- Scheduling failures (SchedulingUnavailableError) are retriable: the
  triggering message is redelivered later.
- ConfigurationError is raised at startup / construction, never deep in
  request handling.
- ProvisioningError aborts the provisioning pipeline.
"""

from typing import Optional


class EncodingHAError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(EncodingHAError):
    """Required configuration is missing or malformed."""


class NoAvailableInstanceError(EncodingHAError):
    """No enabled backend instance exists."""


class SchedulingUnavailableError(EncodingHAError):
    """A job could not be scheduled right now; the request should be redelivered."""


class ProvisioningError(EncodingHAError):
    """A provisioning step could not complete."""


class MediaServicesApiError(EncodingHAError):
    """Non-success response from the Media Services API."""

    def __init__(self, status_code: int, message: str, operation: Optional[str] = None):
        super().__init__(f"{operation or 'request'} failed with {status_code}: {message}")
        self.status_code = status_code
        self.operation = operation
        self.message = message

    @property
    def is_transient(self) -> bool:
        """5xx and throttling responses are worth retrying on redelivery."""
        return self.status_code >= 500 or self.status_code == 429


__all__ = [
    "EncodingHAError",
    "ConfigurationError",
    "NoAvailableInstanceError",
    "SchedulingUnavailableError",
    "ProvisioningError",
    "MediaServicesApiError",
]
