"""HL7 v2 to FHIR bridge package.

Receives HL7 v2 messages over HTTP, forwards them to a FHIR server's
``$process-message`` operation and answers with an HL7 acknowledgment.
"""

__version__ = "1.0.0"
