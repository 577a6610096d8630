# Test Fixtures Package
# Provides sample HL7 messages and FHIR response bodies

from .hl7_messages import (
    ADT_ADMIT,
    ENHANCED_ACK_ORU,
    ORM_NEW_ORDER,
    ORU_SINGLE_ORDER,
    ORU_TWO_ORDERS,
    ORU_WITHOUT_RESULTS,
    UNSUPPORTED_QUERY,
)
from .fhir_bundles import create_message_response, create_operation_outcome

__all__ = [
    # HL7 messages
    "ADT_ADMIT",
    "ENHANCED_ACK_ORU",
    "ORM_NEW_ORDER",
    "ORU_SINGLE_ORDER",
    "ORU_TWO_ORDERS",
    "ORU_WITHOUT_RESULTS",
    "UNSUPPORTED_QUERY",
    # FHIR response fixtures
    "create_message_response",
    "create_operation_outcome",
]
