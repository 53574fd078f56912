import random
import pytest
from unittest.mock import Mock, patch

from puppy_webhook.config import WebhookConfig
from puppy_webhook.dispatcher import WebhookDispatcher
from puppy_webhook.transport import TransportResponse, WebhookTransport


class RecordingTransport(WebhookTransport):
    """Transport stub that records payloads and replays scripted outcomes.

    Each outcome is either a TransportResponse to return or an exception to
    raise. Once the script runs out every post succeeds.
    """

    def __init__(self, outcomes=None):
        self.calls = []
        self.outcomes = list(outcomes or [])
        self.closed = False

    def post(self, endpoint, payload):
        self.calls.append((endpoint, payload))
        outcome = (
            self.outcomes.pop(0)
            if self.outcomes
            else TransportResponse(ok=True, status=204, reason="No Content")
        )
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def close(self):
        self.closed = True

    @property
    def contents(self):
        return [payload.content for _, payload in self.calls]


class FailingTransport(RecordingTransport):
    """Transport stub that rejects every post."""

    def post(self, endpoint, payload):
        self.calls.append((endpoint, payload))
        return TransportResponse(ok=False, status=429, reason="Too Many Requests")


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep PUPPY_WEBHOOK_* variables from the host out of the tests."""
    for name in (
        "PUPPY_WEBHOOK_DESTINATION",
        "PUPPY_WEBHOOK_DISPLAY_NAME",
        "PUPPY_WEBHOOK_MAX_MESSAGE_LENGTH",
        "PUPPY_WEBHOOK_MIN_DELAY",
        "PUPPY_WEBHOOK_MAX_DELAY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def webhook_config():
    """Provide a WebhookConfig pointing at a dummy destination."""
    return WebhookConfig(destination="https://example.invalid/api/webhooks/1/token")


@pytest.fixture
def transport():
    """Provide a transport stub where every post succeeds."""
    return RecordingTransport()


@pytest.fixture
def failing_transport():
    """Provide a transport stub where every post fails."""
    return FailingTransport()


@pytest.fixture
def timer_cls():
    """Replace threading.Timer so no real timers fire during tests."""
    with patch("puppy_webhook.dispatcher.threading.Timer") as mock_timer_cls:
        yield mock_timer_cls


@pytest.fixture
def fixed_rng():
    """Random source whose jitter bucket is always the zero-jitter one."""
    rng = Mock(spec=random.Random)
    rng.randint.return_value = 4
    return rng


@pytest.fixture
def make_dispatcher(webhook_config, transport, timer_cls, fixed_rng):
    """Factory building dispatchers with stubbed timers; stops them on teardown."""
    created = []

    def _make(**kwargs):
        kwargs.setdefault("config", webhook_config)
        kwargs.setdefault("transport", transport)
        kwargs.setdefault("rng", fixed_rng)
        dispatcher = WebhookDispatcher(**kwargs)
        created.append(dispatcher)
        return dispatcher

    yield _make

    for dispatcher in created:
        dispatcher.stop()


@pytest.fixture
def dispatcher(make_dispatcher):
    """Provide a WebhookDispatcher with default settings."""
    return make_dispatcher()
