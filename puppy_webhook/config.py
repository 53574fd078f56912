from typing import Any, Dict, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WebhookConfig(BaseSettings):
    """Configuration for a WebhookDispatcher.

    Delays are in milliseconds. Values can also come from environment
    variables using the PUPPY_WEBHOOK_ prefix (e.g. PUPPY_WEBHOOK_DESTINATION).
    """

    model_config = SettingsConfigDict(env_prefix="PUPPY_WEBHOOK_", frozen=True)

    destination: Optional[str] = None
    display_name: str = "puppywebhook"
    display_icon: Optional[str] = None
    max_message_length: int = Field(default=1900, gt=0)
    min_delay: int = Field(default=5000, ge=0)
    max_delay: int = Field(default=15000, ge=0)
    log_sends: bool = False
    log_errors: bool = True
    # Hard cap the destination accepts for a single message body
    max_payload_length: int = Field(default=2000, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _check_delays(self) -> "WebhookConfig":
        if self.min_delay > self.max_delay:
            raise ValueError(
                f"min_delay ({self.min_delay}) must not exceed max_delay ({self.max_delay})"
            )
        return self

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> "WebhookConfig":
        """Create configuration from a dictionary."""
        return cls.model_validate(config_dict)
