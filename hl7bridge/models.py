from typing import List

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    version: str
    endpoint_url: str
    auth_scheme: str
    failure_policy: str
    accepted_message_types: List[str] = []
    supported_message_types: List[str] = []
