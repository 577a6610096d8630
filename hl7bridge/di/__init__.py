from .container import BridgeContainer
from .deps import get_container, get_receiving_application

__all__ = [
    "BridgeContainer",
    "get_container",
    "get_receiving_application",
]
