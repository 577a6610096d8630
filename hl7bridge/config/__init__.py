"""
Configuration module for bridge settings.
"""

from hl7bridge.config.settings import (
    BridgeSettings,
    ConfigurationError,
    FailurePolicy,
    DEFAULT_ENDPOINT_URL,
)
from hl7bridge.config.auth import (
    AuthScheme,
    BasicAuthScheme,
    BearerAuthScheme,
    NoAuth,
    resolve_auth_scheme,
)

__all__ = [
    "BridgeSettings",
    "ConfigurationError",
    "FailurePolicy",
    "DEFAULT_ENDPOINT_URL",
    "AuthScheme",
    "BasicAuthScheme",
    "BearerAuthScheme",
    "NoAuth",
    "resolve_auth_scheme",
]
