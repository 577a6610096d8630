"""FHIR HTTP client that submits message Bundles to ``$process-message``."""

import logging
from typing import Any, Dict, Optional

import httpx

from hl7bridge.config.auth import AuthScheme, NoAuth
from hl7bridge.outcomes import DeliveryFailure, DeliveryOutcome, DeliverySuccess

logger = logging.getLogger(__name__)

FHIR_JSON = "application/fhir+json"


class FHIRConnectorError(Exception):
    """Custom error type for unrecoverable FHIR connector failures."""

    def __init__(
        self,
        message: str,
        *,
        error_type: str = "fhir_connector_error",
        status_code: Optional[int] = None,
        correlation_id: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code
        self.correlation_id = correlation_id

    def __str__(self) -> str:  # pragma: no cover - simple representation
        parts = [f"{self.error_type}: {self.message}"]
        if self.status_code is not None:
            parts.append(f"status={self.status_code}")
        if self.correlation_id:
            parts.append(f"correlation_id={self.correlation_id}")
        return "; ".join(parts)


class FhirMessageClient:
    """
    Executes the FHIR ``$process-message`` operation, one Bundle per call.

    Requests are never retried: a message Bundle may already have been
    applied downstream when a response is lost.
    """

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        use_proxies: bool = True,
        session: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.timeout = timeout
        self.use_proxies = use_proxies
        self.default_headers = {"Accept": FHIR_JSON, "Content-Type": FHIR_JSON}
        self.session: Optional[httpx.AsyncClient] = session or self._initialize_session()

    def _initialize_session(self) -> httpx.AsyncClient:
        """Initialize the shared HTTP session for downstream calls."""

        logger.info("FHIR message client initialized (timeout=%.1fs)", self.timeout)
        return httpx.AsyncClient(timeout=self.timeout, trust_env=self.use_proxies)

    async def close(self) -> None:
        if self.session is not None:
            await self.session.aclose()
            self.session = None

    @staticmethod
    def process_message_url(base_url: str) -> str:
        return f"{base_url.rstrip('/')}/$process-message"

    async def process_message(
        self,
        base_url: str,
        bundle: Dict[str, Any],
        auth: AuthScheme = NoAuth(),
    ) -> DeliveryOutcome:
        """
        Submit one message Bundle.

        Args:
            base_url: FHIR server base URL
            bundle: Bundle of type ``message``
            auth: Authentication scheme applied to this request

        Returns:
            DeliverySuccess with the response Bundle, or DeliveryFailure with a cause
        """
        if self.session is None:
            raise FHIRConnectorError("FHIR message client is closed", error_type="client_closed")

        url = self.process_message_url(base_url)
        try:
            response = await self.session.request(
                "POST",
                url,
                json=bundle,
                headers=self.default_headers,
                auth=auth.to_httpx_auth(),
            )
        except (httpx.TimeoutException, httpx.RequestError) as exc:
            logger.warning("Request to %s failed: %s", url, exc)
            return DeliveryFailure(f"Request to {url} failed: {str(exc) or type(exc).__name__}")

        return self._interpret_response(url, response)

    def _interpret_response(self, url: str, response: httpx.Response) -> DeliveryOutcome:
        status_code = response.status_code
        body = self._json_body(response)

        if status_code >= 400:
            detail = _operation_outcome_text(body) if isinstance(body, dict) else None
            cause = f"{url} returned HTTP {status_code}"
            if detail:
                cause = f"{cause}: {detail}"
            logger.warning("Downstream rejected message bundle: %s", cause)
            return DeliveryFailure(cause, status_code=status_code)

        if not isinstance(body, dict) or not set(body) - {"resourceType"}:
            return DeliveryFailure(f"Empty or invalid response from {url}", status_code=status_code)

        resource_type = body.get("resourceType")
        if resource_type == "OperationOutcome":
            detail = _operation_outcome_text(body) or "OperationOutcome without diagnostics"
            return DeliveryFailure(detail, status_code=status_code)
        if resource_type != "Bundle":
            return DeliveryFailure(
                f"Unexpected {resource_type or 'untyped'} response from {url}",
                status_code=status_code,
            )

        response_code = _message_response_code(body)
        if response_code in {"transient-error", "fatal-error"}:
            return DeliveryFailure(
                f"Downstream reported {response_code} for message bundle",
                status_code=status_code,
            )

        return DeliverySuccess(body)

    @staticmethod
    def _json_body(response: httpx.Response) -> Optional[Any]:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None


def _operation_outcome_text(resource: Dict[str, Any]) -> Optional[str]:
    """Join the diagnostics of an OperationOutcome, if the resource is one."""
    if resource.get("resourceType") != "OperationOutcome":
        return None
    messages = []
    for issue in resource.get("issue", []):
        text = issue.get("diagnostics") or issue.get("details", {}).get("text")
        if text:
            messages.append(text)
    return "; ".join(messages) or None


def _message_response_code(bundle: Dict[str, Any]) -> Optional[str]:
    """Return MessageHeader.response.code from a response message Bundle."""
    for entry in bundle.get("entry", []):
        resource = entry.get("resource") or {}
        if resource.get("resourceType") == "MessageHeader":
            return (resource.get("response") or {}).get("code")
    return None
