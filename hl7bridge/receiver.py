"""
Receiving application invoked by the HL7 transport for each inbound message.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from hl7bridge.delivery import DeliveryCoordinator
from hl7bridge.hl7.ack_builder import AckReply, AcknowledgmentBuilder, EscalatedError
from hl7bridge.hl7.message_parser import HL7MessageParser, InboundMessage
from hl7bridge.hl7.message_router import message_type_matches
from hl7bridge.utils.logging_utils import log_error, log_with_correlation

logger = logging.getLogger(__name__)


class BridgeReceivingApplication:
    """Accepts HL7 messages, forwards them downstream and produces the ACK."""

    def __init__(
        self,
        coordinator: DeliveryCoordinator,
        ack_builder: AcknowledgmentBuilder,
        accepted_message_types: Iterable[str] = (),
        parser: Optional[HL7MessageParser] = None,
    ) -> None:
        self.coordinator = coordinator
        self.ack_builder = ack_builder
        self.accepted_message_types = tuple(accepted_message_types)
        self.parser = parser or HL7MessageParser()

    def can_accept(self, message: InboundMessage) -> bool:
        """Every message is accepted unless a message type allow-list is configured."""
        if not self.accepted_message_types:
            return True
        return message_type_matches(message.message_type, self.accepted_message_types)

    async def handle(self, message: InboundMessage, metadata: Mapping[str, Any]) -> AckReply:
        """
        Process one accepted message.

        Args:
            message: The inbound message
            metadata: Transport context (origin, receive time); not interpreted here

        Returns:
            ACK reply for the sender

        Raises:
            EscalatedError: When the failure must surface as a transport error
        """
        log_with_correlation(
            "info",
            f"Received message:\n{message.encode()}",
            message.control_id,
            target=logger,
            message_type=message.message_type,
            version=message.version,
            origin=metadata.get("remote_addr"),
        )

        try:
            outcome = await self.coordinator.deliver(message)
            reply = self.ack_builder.build(message, outcome)
        except EscalatedError:
            raise
        except Exception as exc:
            log_error("Failed to build acknowledgment", message.control_id, exc_info=True)
            raise EscalatedError(f"Unexpected processing error: {exc}", message.control_id) from exc

        log_with_correlation(
            "info",
            "Replying to message",
            message.control_id,
            target=logger,
            ack_code=reply.code,
            delivered=outcome.delivered,
        )
        return reply

    async def on_message_received(
        self,
        raw: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AckReply:
        """
        Parse a raw message and run it through the bridge.

        Raises:
            HL7ParseError: If the raw text is not an HL7 message
            EscalatedError: When the failure must surface as a transport error
        """
        message = self.parser.parse_inbound(raw)
        if not self.can_accept(message):
            log_with_correlation(
                "warning",
                "Rejecting message of unaccepted type",
                message.control_id,
                target=logger,
                message_type=message.message_type,
            )
            return self.ack_builder.reject(
                message, f"Message type {message.message_type} is not accepted"
            )
        return await self.handle(message, metadata or {})
