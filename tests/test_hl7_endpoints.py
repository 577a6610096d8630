"""
Tests for the HL7 over HTTP endpoints.
"""

import dataclasses
import logging

import hl7
import httpx
import pytest
from fastapi.testclient import TestClient

from hl7bridge.config import FailurePolicy
from hl7bridge.main import create_app
from tests.fixtures import ORU_TWO_ORDERS, create_operation_outcome

HL7_HEADERS = {"Content-Type": "application/hl7-v2"}


@pytest.fixture
def make_client(settings, fhir_server):
    def _make(**overrides):
        app = create_app(dataclasses.replace(settings, **overrides), session=fhir_server.client())
        return TestClient(app)

    return _make


def ack_code(response):
    return str(hl7.parse(response.text).segment("MSA")[1])


@pytest.mark.parametrize("path", ["/hl7", "/api/v1/hl7"])
def test_message_acknowledged(make_client, fhir_server, path):
    with make_client() as client:
        response = client.post(path, content=ORU_TWO_ORDERS, headers=HL7_HEADERS)

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/hl7-v2")
    assert ack_code(response) == "AA"
    assert len(fhir_server.bundles) == 2


def test_unparseable_body_is_bad_request(make_client, fhir_server):
    with make_client() as client:
        response = client.post("/hl7", content="hello", headers=HL7_HEADERS)

    assert response.status_code == 400
    assert response.text.startswith("Invalid HL7 message")
    assert fhir_server.requests == []


def test_undecodable_body_is_bad_request(make_client):
    with make_client() as client:
        response = client.post(
            "/hl7",
            content=b"MSH|\xff\xfe",
            headers={"Content-Type": "application/hl7-v2; charset=utf-8"},
        )

    assert response.status_code == 400


def test_downstream_rejection_escalated(make_client, fhir_server):
    fhir_server.queue_response(422, create_operation_outcome("invalid bundle"))

    with make_client() as client:
        response = client.post("/hl7", content=ORU_TWO_ORDERS, headers=HL7_HEADERS)

    assert response.status_code == 500
    assert "invalid bundle" in response.text
    assert len(fhir_server.requests) == 1


def test_unreachable_endpoint_escalated(make_client, fhir_server):
    """Escalation keeps the 500 status but still answers with an AE acknowledgment."""
    fhir_server.queue_error(httpx.ConnectError("endpoint unreachable"))

    with make_client() as client:
        response = client.post("/hl7", content=ORU_TWO_ORDERS, headers=HL7_HEADERS)

    assert response.status_code == 500
    assert response.headers["content-type"].startswith("application/hl7-v2")
    msa = hl7.parse(response.text).segment("MSA")
    assert str(msa[1]) == "AE"
    assert str(msa[2]) == "MSG00001"
    assert "endpoint unreachable" in str(msa[3])


def test_unreachable_endpoint_degraded(make_client, fhir_server):
    fhir_server.queue_error(httpx.ConnectError("Connection refused"))

    with make_client(failure_policy=FailurePolicy.DEGRADE) as client:
        response = client.post("/hl7", content=ORU_TWO_ORDERS, headers=HL7_HEADERS)

    assert response.status_code == 200
    assert ack_code(response) == "AE"


def test_unaccepted_type_rejected(make_client, fhir_server):
    with make_client(accepted_message_types=("ADT^*",)) as client:
        response = client.post("/hl7", content=ORU_TWO_ORDERS, headers=HL7_HEADERS)

    assert response.status_code == 200
    assert ack_code(response) == "AR"
    assert fhir_server.requests == []


def test_health_check(make_client):
    with make_client(failure_policy=FailurePolicy.DEGRADE) as client:
        response = client.get("/api/v1/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["endpoint_url"] == "http://fhir.test/fhir"
    assert data["auth_scheme"] == "bearer"
    assert data["failure_policy"] == "degrade"
    assert "ORU^*" in data["supported_message_types"]
    assert "test-token" not in response.text


def test_health_check_does_not_log_credential_fallback(make_client, caplog):
    with make_client(auth_bearer=None) as client:
        caplog.clear()
        caplog.set_level(logging.INFO)
        response = client.get("/api/v1/health")
        client.get("/api/v1/health")

    assert response.json()["auth_scheme"] == "basic"
    assert not [r for r in caplog.records if "No downstream credentials" in r.getMessage()]
