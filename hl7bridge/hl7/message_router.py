"""
HL7 v2.x message router.

Routes messages by type to appropriate handlers.
"""

import logging
from typing import Any, Callable, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


def wildcard_for(message_type: str) -> str:
    """Return the category wildcard for a message type ("ORU^R01" -> "ORU^*")."""
    message_category = message_type.split("^")[0]
    return f"{message_category}^*"


def message_type_matches(message_type: str, patterns: Iterable[str]) -> bool:
    """Check a message type against exact ("ADT^A01") or wildcard ("ADT^*") patterns."""
    patterns = set(patterns)
    trigger = "^".join(message_type.split("^")[:2])
    return (
        message_type in patterns
        or trigger in patterns
        or wildcard_for(message_type) in patterns
    )


class HL7MessageRouter:
    """Router for HL7 v2.x messages by type."""

    def __init__(self):
        """Initialize message router."""
        self.handlers: Dict[str, Callable] = {}

    def register_handler(self, message_type: str, handler: Callable) -> None:
        """
        Register a handler for a specific message type.

        Args:
            message_type: Message type pattern (e.g., "ADT^A01", "ORU^R01", or "ADT^*" for all ADT)
            handler: Callable that processes the message
        """
        self.handlers[message_type] = handler
        logger.debug("Registered handler for message type: %s", message_type)

    def find_handler(self, message_type: Optional[str]) -> Optional[Callable]:
        """Return the handler for a message type, preferring an exact match over a wildcard."""
        if not message_type:
            return None
        # MSH-9 may carry a message structure component (ORU^R01^ORU_R01)
        trigger = "^".join(message_type.split("^")[:2])
        handler = self.handlers.get(message_type) or self.handlers.get(trigger)
        if handler:
            return handler
        return self.handlers.get(wildcard_for(message_type))

    def route(self, parsed_message: Dict[str, Any]) -> Optional[Any]:
        """
        Route a parsed message to the appropriate handler.

        Args:
            parsed_message: Parsed HL7 message from HL7MessageParser

        Returns:
            Result from handler, or None if no handler found
        """
        message_type = parsed_message.get("message_type")
        if not message_type:
            logger.warning("Message has no message_type, cannot route")
            return None

        handler = self.find_handler(message_type)
        if handler:
            logger.debug("Routing message type %s to handler", message_type)
            return handler(parsed_message)

        logger.warning("No handler found for message type: %s", message_type)
        return None

    def supports(self, message_type: Optional[str]) -> bool:
        return self.find_handler(message_type) is not None

    def get_supported_types(self) -> list[str]:
        """Get list of supported message types."""
        return list(self.handlers.keys())
