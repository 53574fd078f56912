"""
Puppy Webhook - rate-limited, batching message sender for webhook endpoints.

Callers enqueue many small log-like messages; the dispatcher packs them into
size-bounded chunks and delivers one chunk per cycle on an adaptive timer so
the destination's throughput and message-size limits are respected.
"""

from .config import WebhookConfig
from .core.delay import next_delay
from .core.packing import pack_pending, split_text
from .dispatcher import WebhookDispatcher
from .exceptions import ConfigurationError, PuppyWebhookError, TransmissionError
from .transport import (
    RequestsWebhookTransport,
    TransportResponse,
    WebhookPayload,
    WebhookTransport,
)

__version__ = "0.1.0"
__all__ = [
    "WebhookDispatcher",
    "WebhookConfig",
    "WebhookTransport",
    "RequestsWebhookTransport",
    "WebhookPayload",
    "TransportResponse",
    "PuppyWebhookError",
    "ConfigurationError",
    "TransmissionError",
    "next_delay",
    "pack_pending",
    "split_text",
]
