# ============================================================================
# FUNCTION APP BLUEPRINTS
# ============================================================================
# STATUS: Function App - Trigger blueprints
# PURPOSE: Azure Functions V2 blueprints for queues, events, timers and HTTP
# CREATED: 19 OCT 2026
# ============================================================================
"""
Function App Blueprints

Each blueprint is conditionally registered based on startup validation.
"""

from function.blueprints.jobs_bp import jobs_bp
from function.blueprints.provisioning_bp import provisioning_bp
from function.blueprints.health_bp import health_bp

__all__ = [
    "jobs_bp",
    "provisioning_bp",
    "health_bp",
]
