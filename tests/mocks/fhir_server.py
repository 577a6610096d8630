"""
Mock FHIR Server
Answers $process-message calls through an httpx mock transport and records
every request it receives.
"""

import json
from typing import Any, Dict, List, Optional, Union

import httpx

from tests.fixtures.fhir_bundles import create_message_response


class MockFHIRServer:
    """
    Mock FHIR server for the downstream side of the bridge.

    Usage:
        server = MockFHIRServer()
        server.queue_response(500, {"resourceType": "OperationOutcome"})
        client = FhirMessageClient(session=server.client())
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self._responses: List[Union[httpx.Response, Exception]] = []

    def queue_response(self, status_code: int = 200, json_body: Optional[Dict[str, Any]] = None):
        """Queue the response for the next unanswered request."""
        if json_body is None:
            self._responses.append(httpx.Response(status_code))
        else:
            self._responses.append(httpx.Response(status_code, json=json_body))
        return self

    def queue_error(self, error: Exception):
        """Raise ``error`` from the transport for the next request."""
        self._responses.append(error)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._responses:
            item = self._responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        bundle = json.loads(request.content)
        return httpx.Response(200, json=create_message_response(request_id=bundle.get("id")))

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def bundles(self) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]
