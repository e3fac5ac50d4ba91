# ============================================================================
# PROVISIONING BLUEPRINT
# ============================================================================
# STATUS: Function App - Provisioning trigger
# PURPOSE: Run the provisioning pipeline for each provisioning request
# CREATED: 19 OCT 2026
# ============================================================================
"""
Provisioning Blueprint

- Service Bus provisioning-requests -> ProvisioningOrchestrator.provision
"""


import azure.functions as func

from core.contracts import QueueName
from core.logging import ComponentType, get_logger, log_context
from core.models import ProvisioningCompletedEvent, ProvisioningRequest
from function.dependencies import Services, get_services
from function.blueprints.jobs_bp import SERVICE_BUS_CONNECTION

logger = get_logger(__name__, ComponentType.FUNCTION)
provisioning_bp = func.Blueprint()


async def handle_provisioning_request(services: Services, body: str) -> ProvisioningCompletedEvent:
    request = ProvisioningRequest.model_validate_json(body)
    with log_context(request_id=request.id):
        return await services.provisioning.provision(request)


@provisioning_bp.service_bus_queue_trigger(
    arg_name="msg",
    queue_name=QueueName.PROVISIONING_REQUESTS.value,
    connection=SERVICE_BUS_CONNECTION,
)
async def provisioning(msg: func.ServiceBusMessage) -> None:
    await handle_provisioning_request(await get_services(), msg.get_body().decode("utf-8"))


__all__ = ["provisioning_bp", "handle_provisioning_request"]
