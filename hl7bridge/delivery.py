"""
Delivery coordination for bridged HL7 messages.

One inbound message is translated into message Bundles which are sent to the
downstream ``$process-message`` endpoint strictly in order. The first failed
Bundle stops delivery of the rest. Bundles already accepted downstream are
not rolled back and no Bundle is retried, so delivery is at-most-once per
Bundle and not transactional across the Bundles of one message.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Protocol, Sequence

from hl7bridge.config.auth import AuthScheme, resolve_auth_scheme
from hl7bridge.config.settings import DEFAULT_ENDPOINT_URL, BridgeSettings
from hl7bridge.hl7.fhir_converter import Payload, TranslationError
from hl7bridge.hl7.message_parser import InboundMessage
from hl7bridge.outcomes import AggregateOutcome, DeliveryOutcome
from hl7bridge.utils.logging_utils import log_error, log_with_correlation

logger = logging.getLogger(__name__)


class Translator(Protocol):
    def translate(self, message: InboundMessage) -> Sequence[Payload]:
        ...


class DownstreamClient(Protocol):
    async def process_message(
        self,
        base_url: str,
        bundle: Dict[str, Any],
        auth: AuthScheme,
    ) -> DeliveryOutcome:
        ...


class DeliveryCoordinator:
    """Drive translate -> deliver -> aggregate for one message at a time."""

    def __init__(
        self,
        settings: BridgeSettings,
        translator: Translator,
        client: DownstreamClient,
    ) -> None:
        self.settings = settings
        self.translator = translator
        self.client = client

    def resolve_endpoint(self) -> str:
        return self.settings.endpoint_url or DEFAULT_ENDPOINT_URL

    def resolve_auth(self) -> AuthScheme:
        return resolve_auth_scheme(self.settings)

    async def deliver(self, message: InboundMessage) -> AggregateOutcome:
        """
        Deliver every payload produced from ``message``.

        Never raises for translation, delivery or unexpected errors; they are
        all reported as a failed ``AggregateOutcome``.
        """
        progress: List[int] = [0]
        deadline = self.settings.delivery_deadline_seconds
        try:
            if deadline > 0:
                return await asyncio.wait_for(self._deliver(message, progress), timeout=deadline)
            return await self._deliver(message, progress)
        except asyncio.TimeoutError:
            cause = f"Delivery deadline of {deadline:g}s exceeded"
            log_with_correlation(
                "warning", cause, message.control_id, target=logger, delivered=progress[0]
            )
            return AggregateOutcome.failed(cause, AggregateOutcome.DEADLINE, delivered=progress[0])
        except Exception as exc:
            log_error(
                "Unexpected error while delivering message",
                message.control_id,
                exc_info=True,
                error=type(exc).__name__,
            )
            return AggregateOutcome.failed(
                f"Unexpected delivery error: {exc}",
                AggregateOutcome.UNEXPECTED,
                delivered=progress[0],
            )

    async def _deliver(self, message: InboundMessage, progress: List[int]) -> AggregateOutcome:
        correlation_id = message.control_id
        endpoint = self.resolve_endpoint()
        auth = self.resolve_auth()

        try:
            payloads = list(self.translator.translate(message))
        except TranslationError as exc:
            log_with_correlation(
                "warning", "Message could not be translated", correlation_id, target=logger, error=exc
            )
            return AggregateOutcome.failed(str(exc), AggregateOutcome.TRANSLATION)

        log_with_correlation(
            "info",
            "Delivering message bundles",
            correlation_id,
            target=logger,
            bundles=len(payloads),
            endpoint=endpoint,
            auth=auth.kind,
        )

        responses = []
        for position, payload in enumerate(payloads, start=1):
            log_with_correlation(
                "info",
                f"Sending bundle {position}/{len(payloads)}:\n{json.dumps(payload, indent=2)}",
                correlation_id,
                target=logger,
            )
            outcome = await self.client.process_message(endpoint, payload, auth)
            if not outcome.succeeded:
                log_with_correlation(
                    "warning",
                    "Bundle delivery failed; remaining bundles skipped",
                    correlation_id,
                    target=logger,
                    position=position,
                    remaining=len(payloads) - position,
                    status=outcome.status_code,
                    cause=outcome.cause,
                )
                return AggregateOutcome.failed(
                    outcome.cause, AggregateOutcome.DELIVERY, delivered=position - 1
                )
            responses.append(outcome.response_body)
            progress[0] = position

        return AggregateOutcome.all_succeeded(responses)
