import logging
from typing import Optional

import httpx

from hl7bridge.config.auth import AuthScheme, resolve_auth_scheme
from hl7bridge.config.settings import BridgeSettings
from hl7bridge.delivery import DeliveryCoordinator
from hl7bridge.fhir_http_client import FhirMessageClient
from hl7bridge.hl7.ack_builder import AcknowledgmentBuilder
from hl7bridge.hl7.fhir_converter import HL7ToFHIRConverter
from hl7bridge.receiver import BridgeReceivingApplication

logger = logging.getLogger(__name__)


class BridgeContainer:
    """Centralized application service container for shared singletons."""

    def __init__(
        self,
        settings: BridgeSettings,
        *,
        session: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings
        self._session = session

        self.fhir_client: Optional[FhirMessageClient] = None
        self.translator: Optional[HL7ToFHIRConverter] = None
        self.coordinator: Optional[DeliveryCoordinator] = None
        self.ack_builder: Optional[AcknowledgmentBuilder] = None
        self.receiving_application: Optional[BridgeReceivingApplication] = None
        self.auth_scheme: Optional[AuthScheme] = None

    async def startup(self) -> None:
        logger.info("Loading FHIR message client for %s...", self.settings.endpoint_url)
        self.fhir_client = FhirMessageClient(
            timeout=self.settings.request_timeout_seconds,
            session=self._session,
        )

        self.auth_scheme = resolve_auth_scheme(self.settings)

        logger.info("Loading HL7 translator and delivery pipeline...")
        self.translator = HL7ToFHIRConverter()
        self.coordinator = DeliveryCoordinator(self.settings, self.translator, self.fhir_client)
        self.ack_builder = AcknowledgmentBuilder(self.settings.failure_policy)
        self.receiving_application = BridgeReceivingApplication(
            self.coordinator,
            self.ack_builder,
            accepted_message_types=self.settings.accepted_message_types,
        )
        logger.info(
            "Bridge ready (failure policy: %s, accepted types: %s)",
            self.settings.failure_policy.value,
            ", ".join(self.settings.accepted_message_types) or "all",
        )

    async def shutdown(self) -> None:
        if self.fhir_client is not None:
            await self.fhir_client.close()
            self.fhir_client = None
