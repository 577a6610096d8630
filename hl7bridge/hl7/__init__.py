"""
HL7 v2.x message processing module.

Provides parsing, routing, FHIR translation and acknowledgment building for
HL7 v2.x messages.
"""

from .message_parser import HL7MessageParser, HL7ParseError, InboundMessage
from .message_router import HL7MessageRouter, message_type_matches
from .fhir_converter import HL7ToFHIRConverter, Payload, TranslationError
from .ack_builder import AckReply, AckStatus, AcknowledgmentBuilder, EscalatedError

__all__ = [
    "HL7MessageParser",
    "HL7ParseError",
    "InboundMessage",
    "HL7MessageRouter",
    "message_type_matches",
    "HL7ToFHIRConverter",
    "Payload",
    "TranslationError",
    "AckReply",
    "AckStatus",
    "AcknowledgmentBuilder",
    "EscalatedError",
]
