"""
Bridge configuration.

All settings are read from the environment once at process start and frozen
into a ``BridgeSettings`` instance that is handed to the delivery pipeline.
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "http://localhost:8080/fhir"
DEFAULT_BASIC_USERNAME = "client"
DEFAULT_BASIC_PASSWORD = "secret"


class ConfigurationError(Exception):
    """Raised when bridge configuration is missing or invalid."""

    def __init__(self, message: str, variable: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.variable = variable


class FailurePolicy(str, Enum):
    """How a failed delivery is reported back to the sender."""

    ESCALATE = "escalate"
    DEGRADE = "degrade"


@dataclass(frozen=True)
class BridgeSettings:
    endpoint_url: str = DEFAULT_ENDPOINT_URL
    auth_basic: Optional[str] = None
    auth_bearer: Optional[str] = None
    # Development-mode credential used when no AUTH_* variable is set
    default_basic_username: str = DEFAULT_BASIC_USERNAME
    default_basic_password: str = DEFAULT_BASIC_PASSWORD
    failure_policy: FailurePolicy = FailurePolicy.ESCALATE
    delivery_deadline_seconds: float = 60.0
    request_timeout_seconds: float = 30.0
    accepted_message_types: Tuple[str, ...] = ()
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeSettings":
        """
        Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            Frozen settings instance

        Raises:
            ConfigurationError: If a value cannot be interpreted
        """
        env = os.environ if environ is None else environ

        endpoint_url = (
            env.get("DOWNSTREAM_ENDPOINT_URL")
            or env.get("FHIR_PROCESS_MESSAGE_URL")
            or DEFAULT_ENDPOINT_URL
        )

        policy_value = env.get("FAILURE_POLICY", FailurePolicy.ESCALATE.value).strip().lower()
        try:
            failure_policy = FailurePolicy(policy_value)
        except ValueError:
            raise ConfigurationError(
                f"FAILURE_POLICY must be one of "
                f"{', '.join(p.value for p in FailurePolicy)} (got {policy_value!r})",
                variable="FAILURE_POLICY",
            )

        accepted = tuple(
            item.strip()
            for item in env.get("ACCEPTED_MESSAGE_TYPES", "").split(",")
            if item.strip()
        )

        return cls(
            endpoint_url=endpoint_url.strip(),
            auth_basic=env.get("AUTH_BASIC") or None,
            auth_bearer=env.get("AUTH_BEARER") or None,
            failure_policy=failure_policy,
            delivery_deadline_seconds=_read_float(env, "DELIVERY_DEADLINE_SECONDS", 60.0),
            request_timeout_seconds=_read_float(env, "REQUEST_TIMEOUT_SECONDS", 30.0),
            accepted_message_types=accepted,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
            host=env.get("HOST", "0.0.0.0"),
            port=int(_read_float(env, "PORT", 8000)),
        )


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be numeric (got {raw!r})", variable=name)
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative", variable=name)
    return value
