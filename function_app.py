# ============================================================================
# ENCODING HA - Azure Function App
# ============================================================================
# STATUS: Function App - Entry point
# PURPOSE: Dispatcher for job, verification, provisioning and health work
# CREATED: 19 OCT 2026
# ============================================================================
"""
Encoding HA Function App

Azure Functions V2 entry point providing:
- Service Bus triggers: job-requests, job-verification-requests,
  provisioning-requests
- Event Grid trigger for Media Services job events
- Timers: instance health (10 min), job status sync (15 min)
- HTTP: job submission, job status, instance enable/disable

Endpoints:
- /api/livez - Liveness probe (always available)
- /api/readyz - Readiness probe (checks startup validation)
- /api/jobs, /api/jobs/{job_name}/status
- /api/instances, /api/instances/{name}/enable|disable
"""

import azure.functions as func
import json

from core.logging import ComponentType, configure_logging, get_logger

# ============================================================================
# CREATE APP FIRST (before any imports that might fail)
# ============================================================================

app = func.FunctionApp(http_auth_level=func.AuthLevel.FUNCTION)

configure_logging()
logger = get_logger(__name__, ComponentType.FUNCTION)
logger.info("=" * 60)
logger.info("Encoding HA Function App Starting")
logger.info("=" * 60)

SERVICE_NAME = "encoding-ha"

# ============================================================================
# EARLY PROBES (Before validation - always available)
# ============================================================================


@app.route(route="livez", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def liveness_probe(req: func.HttpRequest) -> func.HttpResponse:
    """
    Liveness probe - always returns 200 if function is running.

    GET /api/livez
    """
    return func.HttpResponse(
        json.dumps({"alive": True, "service": SERVICE_NAME}),
        status_code=200,
        headers={"Content-Type": "application/json"},
    )


@app.route(route="readyz", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def readiness_probe(req: func.HttpRequest) -> func.HttpResponse:
    """
    Readiness probe - returns 200 if startup validation passed.

    GET /api/readyz
    """
    from function.startup import STARTUP_STATE

    if STARTUP_STATE.all_passed:
        return func.HttpResponse(
            json.dumps({"ready": True, "service": SERVICE_NAME}),
            status_code=200,
            headers={"Content-Type": "application/json"},
        )

    return func.HttpResponse(
        json.dumps({
            "ready": False,
            "service": SERVICE_NAME,
            "failed_checks": STARTUP_STATE.failed_check_names(),
            "details": STARTUP_STATE.to_dict(),
        }),
        status_code=503,
        headers={"Content-Type": "application/json"},
    )


# ============================================================================
# STARTUP VALIDATION
# ============================================================================
# If validation fails, only /livez and /readyz are available.

logger.info("Running startup validation...")

from function.startup import validate_startup, STARTUP_STATE

_startup_result = validate_startup()

if not STARTUP_STATE.all_passed:
    logger.error("=" * 60)
    logger.error("STARTUP VALIDATION FAILED")
    logger.error("=" * 60)
    logger.error("Only /api/livez and /api/readyz endpoints available")
    for check in STARTUP_STATE.failed_checks():
        logger.error(f"  FAILED: {check.name} - {check.error_message}")
    logger.error("=" * 60)
else:
    logger.info("Startup validation PASSED")


# ============================================================================
# BLUEPRINT REGISTRATION (Conditional on startup success)
# ============================================================================

if STARTUP_STATE.all_passed:
    logger.info("Registering blueprints...")

    from function.blueprints.jobs_bp import jobs_bp
    app.register_functions(jobs_bp)
    logger.info("  Registered: jobs_bp (scheduling, verification, events, sync)")

    from function.blueprints.provisioning_bp import provisioning_bp
    app.register_functions(provisioning_bp)
    logger.info("  Registered: provisioning_bp (provisioning pipeline)")

    from function.blueprints.health_bp import health_bp
    app.register_functions(health_bp)
    logger.info("  Registered: health_bp (instance health)")

    logger.info("=" * 60)
    logger.info("Encoding HA Function App Ready")
    logger.info("=" * 60)
else:
    logger.warning("=" * 60)
    logger.warning("SKIPPING blueprint registration - startup validation failed")
    logger.warning("=" * 60)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = ["app"]
