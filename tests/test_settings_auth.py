"""
Tests for bridge configuration and downstream authentication selection.
"""

import httpx
import pytest

from hl7bridge.config import (
    DEFAULT_ENDPOINT_URL,
    BasicAuthScheme,
    BearerAuthScheme,
    BridgeSettings,
    ConfigurationError,
    FailurePolicy,
    NoAuth,
    resolve_auth_scheme,
)


def test_defaults_from_empty_environment():
    settings = BridgeSettings.from_env({})

    assert settings.endpoint_url == DEFAULT_ENDPOINT_URL
    assert settings.failure_policy is FailurePolicy.ESCALATE
    assert settings.delivery_deadline_seconds == 60.0
    assert settings.request_timeout_seconds == 30.0
    assert settings.accepted_message_types == ()
    assert settings.auth_basic is None
    assert settings.auth_bearer is None


def test_settings_from_environment():
    settings = BridgeSettings.from_env(
        {
            "DOWNSTREAM_ENDPOINT_URL": "https://fhir.example.org/r4 ",
            "AUTH_BEARER": "abc",
            "FAILURE_POLICY": "Degrade",
            "DELIVERY_DEADLINE_SECONDS": "15",
            "REQUEST_TIMEOUT_SECONDS": "2.5",
            "ACCEPTED_MESSAGE_TYPES": "ORU^R01, ADT^* ,",
            "LOG_LEVEL": "debug",
            "PORT": "9000",
        }
    )

    assert settings.endpoint_url == "https://fhir.example.org/r4"
    assert settings.auth_bearer == "abc"
    assert settings.failure_policy is FailurePolicy.DEGRADE
    assert settings.delivery_deadline_seconds == 15.0
    assert settings.request_timeout_seconds == 2.5
    assert settings.accepted_message_types == ("ORU^R01", "ADT^*")
    assert settings.log_level == "DEBUG"
    assert settings.port == 9000


def test_endpoint_alias_variable():
    settings = BridgeSettings.from_env({"FHIR_PROCESS_MESSAGE_URL": "http://alias/fhir"})

    assert settings.endpoint_url == "http://alias/fhir"


def test_invalid_failure_policy():
    with pytest.raises(ConfigurationError) as exc_info:
        BridgeSettings.from_env({"FAILURE_POLICY": "ignore"})

    assert exc_info.value.variable == "FAILURE_POLICY"


@pytest.mark.parametrize("value", ["soon", "-1"])
def test_invalid_deadline(value):
    with pytest.raises(ConfigurationError) as exc_info:
        BridgeSettings.from_env({"DELIVERY_DEADLINE_SECONDS": value})

    assert exc_info.value.variable == "DELIVERY_DEADLINE_SECONDS"


def test_settings_are_frozen():
    settings = BridgeSettings()

    with pytest.raises(Exception):
        settings.endpoint_url = "http://elsewhere"


def test_basic_auth_selected():
    scheme = resolve_auth_scheme(BridgeSettings(auth_basic="user:pass"))

    assert scheme == BasicAuthScheme("user", "pass")
    assert scheme.kind == "basic"
    assert isinstance(scheme.to_httpx_auth(), httpx.BasicAuth)


def test_basic_auth_takes_precedence_over_bearer():
    scheme = resolve_auth_scheme(BridgeSettings(auth_basic="alice:pw1", auth_bearer="tok"))

    assert scheme == BasicAuthScheme("alice", "pw1")


@pytest.mark.parametrize("value", ["useronly", "a:b:c", "alice:", ":"])
def test_malformed_basic_auth_disables_auth(value):
    """A malformed basic credential does not fall back to the bearer token."""
    scheme = resolve_auth_scheme(BridgeSettings(auth_basic=value, auth_bearer="token"))

    assert scheme == NoAuth()
    assert scheme.to_httpx_auth() is None


def test_basic_auth_ignores_trailing_separator():
    scheme = resolve_auth_scheme(BridgeSettings(auth_basic="alice:pw1:"))

    assert scheme == BasicAuthScheme("alice", "pw1")


def test_bearer_auth_selected():
    scheme = resolve_auth_scheme(BridgeSettings(auth_bearer="token"))

    assert scheme == BearerAuthScheme("token")
    assert scheme.kind == "bearer"


def test_default_basic_credential():
    scheme = resolve_auth_scheme(BridgeSettings())

    assert scheme == BasicAuthScheme("client", "secret")


def test_credentials_hidden_from_repr():
    assert "pass" not in repr(BasicAuthScheme("user", "pass"))
    assert "token" not in repr(BearerAuthScheme("token"))
