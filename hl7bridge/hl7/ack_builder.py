"""
HL7 acknowledgment construction.

Turns the aggregate delivery outcome for an inbound message into an ACK
correlated to the message's control id, or escalates the failure to the
transport when the bridge is configured to do so.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import hl7

from hl7bridge.config.settings import FailurePolicy
from hl7bridge.outcomes import AggregateOutcome
from hl7bridge.hl7.message_parser import InboundMessage

logger = logging.getLogger(__name__)


class AckStatus(Enum):
    """Abstract acknowledgment categories and their HL7 codes (original, enhanced)."""

    ACCEPT = ("AA", "CA")
    APPLICATION_ERROR = ("AE", "CE")
    REJECT = ("AR", "CR")

    def code(self, enhanced: bool = False) -> str:
        return self.value[1] if enhanced else self.value[0]


class EscalatedError(Exception):
    """A delivery failure surfaced to the transport as a hard error."""

    def __init__(self, cause: str, control_id: str = "", reply: Optional["AckReply"] = None):
        super().__init__(cause)
        self.cause = cause
        self.control_id = control_id
        # AE reply returned with the transport error when one could be built
        self.reply = reply

    def __str__(self) -> str:
        if self.control_id:
            return f"{self.cause} (control_id={self.control_id})"
        return self.cause


@dataclass(frozen=True)
class AckReply:
    control_id: str
    status: AckStatus
    code: str
    text: Optional[str] = None
    message: Any = field(default=None, compare=False, repr=False)

    def encode(self) -> str:
        return str(self.message)


class AcknowledgmentBuilder:
    """Build ACK replies for inbound messages."""

    def __init__(self, policy: FailurePolicy = FailurePolicy.ESCALATE, max_text_length: int = 80):
        self.policy = policy
        self.max_text_length = max_text_length

    def build(self, message: InboundMessage, outcome: AggregateOutcome) -> AckReply:
        """
        Build the reply for a processed message.

        Args:
            message: The inbound message being acknowledged
            outcome: Aggregate delivery outcome for the message

        Returns:
            ACCEPT reply on success, APPLICATION_ERROR reply on failure under
            the degrade policy

        Raises:
            EscalatedError: On failure under the escalate policy
        """
        if outcome.succeeded:
            return self._reply(message, AckStatus.ACCEPT)

        if self.policy is FailurePolicy.ESCALATE:
            logger.warning(
                "Escalating delivery failure for message %s: %s",
                message.control_id,
                outcome.cause,
            )
            cause = outcome.cause or "Delivery failed"
            raise EscalatedError(cause, message.control_id, reply=self.nak(message, cause))

        return self.nak(message, outcome.cause)

    def nak(self, message: InboundMessage, cause: Optional[str]) -> AckReply:
        return self._reply(message, AckStatus.APPLICATION_ERROR, cause)

    def reject(self, message: InboundMessage, reason: str) -> AckReply:
        return self._reply(message, AckStatus.REJECT, reason)

    def _reply(self, message: InboundMessage, status: AckStatus, text: Optional[str] = None) -> AckReply:
        source = message.hl7_message
        if source is None:
            source = hl7.parse(message.raw)

        code = status.code(message.enhanced_ack_mode)
        ack = source.create_ack(ack_code=code)
        if text:
            text = text[: self.max_text_length]
            ack.assign_field(ack.escape(text), "MSA", 1, 3)

        return AckReply(
            control_id=message.control_id,
            status=status,
            code=code,
            text=text or None,
            message=ack,
        )
