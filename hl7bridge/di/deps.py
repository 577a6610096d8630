from fastapi import Depends, Request

from hl7bridge.receiver import BridgeReceivingApplication
from .container import BridgeContainer


def get_container(request: Request) -> BridgeContainer:
    container = getattr(request.app.state, "container", None)
    if not container:
        raise RuntimeError("Service container not initialized")
    return container


def get_receiving_application(
    container: BridgeContainer = Depends(get_container),
) -> BridgeReceivingApplication:
    application = container.receiving_application
    if application is None:
        raise RuntimeError("Receiving application not initialized")
    return application
