"""
Authentication schemes for the downstream FHIR endpoint.
"""

import logging
from dataclasses import dataclass, field
from typing import Generator, Optional, Union

import httpx

from hl7bridge.config.settings import BridgeSettings

logger = logging.getLogger(__name__)


class BearerTokenAuth(httpx.Auth):
    """httpx auth flow that attaches a static bearer token."""

    def __init__(self, token: str) -> None:
        self.token = token

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = f"Bearer {self.token}"
        yield request


@dataclass(frozen=True)
class NoAuth:
    kind: str = field(default="none", init=False)

    def to_httpx_auth(self) -> Optional[httpx.Auth]:
        return None


@dataclass(frozen=True)
class BasicAuthScheme:
    username: str
    password: str = field(repr=False)
    kind: str = field(default="basic", init=False)

    def to_httpx_auth(self) -> Optional[httpx.Auth]:
        return httpx.BasicAuth(self.username, self.password)


@dataclass(frozen=True)
class BearerAuthScheme:
    token: str = field(repr=False)
    kind: str = field(default="bearer", init=False)

    def to_httpx_auth(self) -> Optional[httpx.Auth]:
        return BearerTokenAuth(self.token)


AuthScheme = Union[NoAuth, BasicAuthScheme, BearerAuthScheme]


def resolve_auth_scheme(settings: BridgeSettings) -> AuthScheme:
    """
    Select the single authentication scheme used for a delivery.

    Precedence is Basic, then Bearer, then the configured default Basic
    credential. A Basic value that is not exactly ``user:pass`` disables
    authentication entirely instead of falling through to Bearer.
    """
    if settings.auth_basic:
        # Trailing empty parts are dropped: "user:" is malformed, "user:pass:" is user/pass
        parts = settings.auth_basic.rstrip(":").split(":")
        if len(parts) == 2:
            return BasicAuthScheme(parts[0], parts[1])
        logger.warning("AUTH_BASIC is not in user:pass form; sending requests without credentials")
        return NoAuth()

    if settings.auth_bearer:
        return BearerAuthScheme(settings.auth_bearer)

    logger.info(
        "No downstream credentials configured; using default basic credential for user %s",
        settings.default_basic_username,
    )
    return BasicAuthScheme(settings.default_basic_username, settings.default_basic_password)
