# Mock Services Package
# Provides mock implementations of external services for testing

from .fhir_server import MockFHIRServer

__all__ = [
    "MockFHIRServer",
]
