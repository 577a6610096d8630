"""Result values produced while delivering one inbound message."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class DeliverySuccess:
    response_body: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class DeliveryFailure:
    cause: str
    status_code: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return False


DeliveryOutcome = Union[DeliverySuccess, DeliveryFailure]


@dataclass(frozen=True)
class AggregateOutcome:
    """Outcome of delivering every payload produced from one message."""

    succeeded: bool
    cause: Optional[str] = None
    stage: Optional[str] = None
    delivered: int = 0
    responses: Tuple[Dict[str, Any], ...] = ()

    TRANSLATION = "translation"
    DELIVERY = "delivery"
    DEADLINE = "deadline"
    UNEXPECTED = "unexpected"

    @classmethod
    def all_succeeded(cls, responses=()) -> "AggregateOutcome":
        responses = tuple(responses)
        return cls(succeeded=True, delivered=len(responses), responses=responses)

    @classmethod
    def failed(cls, cause: str, stage: str, delivered: int = 0) -> "AggregateOutcome":
        return cls(succeeded=False, cause=cause, stage=stage, delivered=delivered)
