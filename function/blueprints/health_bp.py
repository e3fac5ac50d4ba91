# ============================================================================
# HEALTH BLUEPRINT
# ============================================================================
# STATUS: Function App - Instance health
# PURPOSE: Periodic re-evaluation and operator endpoints
# CREATED: 19 OCT 2026
# ============================================================================
"""
Health Blueprint

- Timer, every 10 minutes                 InstanceHealthService.re_evaluate_health
- GET  /api/instances                     health records of all instances
- POST /api/instances/{name}/enable       operator override
- POST /api/instances/{name}/disable      operator override
"""

import json

import azure.functions as func

from core.contracts import utc_now
from core.logging import ComponentType, get_logger
from function.dependencies import get_services
from function.models.responses import ErrorResponse, InstanceListResponse

logger = get_logger(__name__, ComponentType.FUNCTION)
health_bp = func.Blueprint()


def _json_response(data: dict, status_code: int = 200) -> func.HttpResponse:
    """Create JSON HTTP response."""
    return func.HttpResponse(
        json.dumps(data, default=str),
        status_code=status_code,
        headers={"Content-Type": "application/json"},
    )


@health_bp.timer_trigger(schedule="0 */10 * * * *", arg_name="timer", run_on_startup=False)
async def instance_health(timer: func.TimerRequest) -> None:
    if timer.past_due:
        logger.warning("Instance health timer is past due")
    services = await get_services()
    updated = await services.health.re_evaluate_health(utc_now())
    logger.info(f"Instance health re-evaluated, {len(updated)} changed")


@health_bp.route(route="instances", methods=["GET"])
async def list_instances(req: func.HttpRequest) -> func.HttpResponse:
    services = await get_services()
    records = await services.health.list_instances()
    return _json_response(InstanceListResponse(instances=records).model_dump(mode="json"))


@health_bp.route(route="instances/{instance_name}/{action}", methods=["POST"])
async def set_instance_enabled(req: func.HttpRequest) -> func.HttpResponse:
    """
    Enable or disable an instance.

    POST /api/instances/{instance_name}/enable
    POST /api/instances/{instance_name}/disable
    """
    instance_name = req.route_params.get("instance_name")
    action = req.route_params.get("action")
    if action not in ("enable", "disable"):
        return _json_response(
            ErrorResponse(error="Unknown action", details=action, code="INVALID").model_dump(),
            status_code=400,
        )

    services = await get_services()
    if instance_name not in services.settings.instances:
        return _json_response(
            ErrorResponse(
                error="Instance not found",
                details=f"No instance named '{instance_name}' is configured",
                code="NOT_FOUND",
            ).model_dump(),
            status_code=404,
        )

    record = await services.health.set_enabled(instance_name, action == "enable")
    return _json_response(record.model_dump(mode="json"))


__all__ = ["health_bp"]
