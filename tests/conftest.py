import pytest

from hl7bridge.config import BridgeSettings
from hl7bridge.hl7 import HL7MessageParser
from tests.mocks import MockFHIRServer


@pytest.fixture(scope="session")
def anyio_backend():
    """Restrict anyio tests to the asyncio backend."""

    yield "asyncio"


@pytest.fixture
def parser():
    """Create HL7 message parser instance."""
    return HL7MessageParser()


@pytest.fixture
def settings():
    """Settings pointing at a fake downstream server with bearer auth."""
    return BridgeSettings(
        endpoint_url="http://fhir.test/fhir",
        auth_bearer="test-token",
        delivery_deadline_seconds=5.0,
    )


@pytest.fixture
def fhir_server():
    return MockFHIRServer()
