import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field

from .exceptions import TransmissionError

logger = logging.getLogger(__name__)


class WebhookPayload(BaseModel):
    """Body posted to the destination, serialised with Discord-style keys."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    display_name: str = Field(alias="username")
    display_icon: Optional[str] = Field(default=None, alias="avatar_url")
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass(frozen=True)
class TransportResponse:
    ok: bool
    status: Optional[int] = None
    reason: str = ""


class WebhookTransport(ABC):
    """Delivers a single payload to a destination endpoint."""

    @abstractmethod
    def post(self, endpoint: str, payload: WebhookPayload) -> TransportResponse:
        """
        Post a payload.

        Returns a TransportResponse describing the outcome. Implementations raise
        TransmissionError when the request could not be made at all.
        """

    def close(self):
        """Release any resources held by the transport."""


class RequestsWebhookTransport(WebhookTransport):
    """Default transport posting JSON over HTTP with a requests Session."""

    def __init__(
        self, session: Optional[requests.Session] = None, timeout: float = 10.0
    ):
        self.session = session or requests.Session()
        self.timeout = timeout

    def post(self, endpoint: str, payload: WebhookPayload) -> TransportResponse:
        try:
            response = self.session.post(
                endpoint,
                data=payload.to_json(),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransmissionError(str(e)) from e

        ok = 200 <= response.status_code < 300
        logger.debug(f"POST to webhook returned {response.status_code}")
        return TransportResponse(
            ok=ok, status=response.status_code, reason=response.reason or ""
        )

    def close(self):
        self.session.close()
