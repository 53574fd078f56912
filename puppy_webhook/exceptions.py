from typing import Optional


class PuppyWebhookError(Exception):
    """Base class for all puppy_webhook errors."""


class ConfigurationError(PuppyWebhookError, ValueError):
    """Raised when a dispatcher is built from an unusable configuration."""


class TransmissionError(PuppyWebhookError):
    """A chunk could not be delivered to the destination."""

    def __init__(self, reason: str, status: Optional[int] = None):
        self.reason = reason
        self.status = status
        if status is not None:
            super().__init__(f"{status} {reason}")
        else:
            super().__init__(reason)
