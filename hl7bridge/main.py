"""
HL7 to FHIR Bridge - Main Application Entry Point
Terminates HL7 v2 over HTTP and forwards each message to a FHIR $process-message endpoint
"""

# Load environment variables
import os
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI

from hl7bridge import __version__
from hl7bridge.api.v1.api import api_router as v1_router
from hl7bridge.api.v1.endpoints import hl7 as hl7_endpoints
from hl7bridge.config import BridgeSettings
from hl7bridge.di import BridgeContainer
from hl7bridge.utils.logging_utils import configure_logging

import logging

# Configure logging
configure_logging(os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[BridgeSettings] = None,
    *,
    session: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """
    Build the bridge application.

    Args:
        settings: Explicit settings; read from the environment at startup when omitted
        session: HTTP client for downstream calls (tests inject a mock transport)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifecycle management - startup and shutdown
        """
        logger.info("Initializing HL7 to FHIR bridge...")
        container = BridgeContainer(settings or BridgeSettings.from_env(), session=session)
        await container.startup()
        app.state.container = container
        try:
            yield
        finally:
            logger.info("Shutting down HL7 to FHIR bridge...")
            await container.shutdown()

    app = FastAPI(
        title="HL7 to FHIR Bridge",
        description="Bridges HL7 v2 messages to FHIR $process-message",
        version=__version__,
        lifespan=lifespan,
    )
    # HL7 over HTTP senders usually post to the server root path
    app.include_router(hl7_endpoints.router, tags=["HL7 over HTTP"])
    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()


def run() -> None:
    settings = BridgeSettings.from_env()
    uvicorn.run(
        "hl7bridge.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
