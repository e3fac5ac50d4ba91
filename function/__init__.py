# ============================================================================
# FUNCTION APP MODULE
# ============================================================================
# STATUS: Function App - Azure Function App components
# PURPOSE: Triggers that dispatch queue messages, events and timers to services
# CREATED: 19 OCT 2026
# ============================================================================
"""
Function App Module

Contains all components specific to the Azure Function App deployment:
- Blueprints (queue, Event Grid, timer and HTTP triggers)
- Models (response schemas)
- Dependencies (service wiring)
- Startup validation
"""

__all__ = []
