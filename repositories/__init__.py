# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# STATUS: Core - Data access layer
# PURPOSE: Database access for health, status, call history and provisioning
# CREATED: 19 OCT 2026
# ============================================================================
"""
Repositories Module

Data access layer over PostgreSQL (psycopg3 async). Every repository is a
typed view over one KeyedStore table.
"""

from .database import (
    get_pool,
    init_pool,
    close_pool,
    get_connection_string,
    has_database_config,
)
from .keyed_store import KeyedStore
from .schema import ensure_schema
from .instance_health_repo import InstanceHealthRepository
from .job_output_status_repo import JobOutputStatusRepository
from .call_history_repo import CallHistoryRepository
from .provisioning_event_repo import ProvisioningEventRepository

__all__ = [
    # Database
    "get_pool",
    "init_pool",
    "close_pool",
    "get_connection_string",
    "has_database_config",
    "ensure_schema",
    # Repositories
    "KeyedStore",
    "InstanceHealthRepository",
    "JobOutputStatusRepository",
    "CallHistoryRepository",
    "ProvisioningEventRepository",
]
