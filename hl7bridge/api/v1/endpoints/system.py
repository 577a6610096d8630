from fastapi import APIRouter, Depends

from hl7bridge import __version__
from hl7bridge.di import BridgeContainer, get_container
from hl7bridge.models import HealthCheckResponse

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(container: BridgeContainer = Depends(get_container)):
    """
    Report bridge status and the non-secret parts of its configuration.
    """
    settings = container.settings
    translator = container.translator
    return HealthCheckResponse(
        status="healthy" if container.receiving_application is not None else "starting",
        service="HL7 to FHIR bridge",
        version=__version__,
        endpoint_url=settings.endpoint_url,
        auth_scheme=container.auth_scheme.kind if container.auth_scheme else "none",
        failure_policy=settings.failure_policy.value,
        accepted_message_types=list(settings.accepted_message_types),
        supported_message_types=translator.supported_message_types() if translator else [],
    )
