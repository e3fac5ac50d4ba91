# ============================================================================
# PROVISIONING MODULE
# ============================================================================
# STATUS: Service - Post-processing provisioning pipeline
# PURPOSE: Replicate processed assets and publish streaming locators
# CREATED: 19 OCT 2026
# ============================================================================
"""
Provisioning Module

Usage:
    from services.provisioning import ProvisioningOrchestrator, default_steps

    orchestrator = ProvisioningOrchestrator(pool, default_steps(settings, factory))
    event = await orchestrator.provision(request)
"""

from .base import ProvisioningStep, provision_locator
from .asset_data import AssetDataProvisioningStep
from .clear_streaming import ClearStreamingProvisioningStep
from .clear_key import ClearKeyStreamingProvisioningStep, create_token
from .orchestrator import ProvisioningOrchestrator, default_steps

__all__ = [
    "ProvisioningStep",
    "provision_locator",
    "AssetDataProvisioningStep",
    "ClearStreamingProvisioningStep",
    "ClearKeyStreamingProvisioningStep",
    "create_token",
    "ProvisioningOrchestrator",
    "default_steps",
]
