import logging
import random
import threading
from collections import deque
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from .config import WebhookConfig
from .core.delay import next_delay
from .core.packing import pack_pending
from .exceptions import ConfigurationError, TransmissionError
from .transport import RequestsWebhookTransport, WebhookPayload, WebhookTransport

logger = logging.getLogger(__name__)

SendHook = Callable[[str, int], Any]
ErrorHook = Callable[[Exception, str], Any]

# The rolling tag appended to each message wraps at this value
SEQUENCE_MODULO = 1000


class WebhookDispatcher:
    """
    Rate-limited batching sender for a single webhook destination.

    Messages passed to enqueue() are buffered, packed into chunks no longer
    than max_message_length and sent one chunk per cycle. Cycles run on a
    timer whose delay is recomputed after every cycle from the current
    backlog, or immediately through flush().
    """

    def __init__(
        self,
        config: Optional[WebhookConfig] = None,
        transport: Optional[WebhookTransport] = None,
        on_send: Optional[SendHook] = None,
        on_error: Optional[ErrorHook] = None,
        rng: Optional[random.Random] = None,
        **kwargs,
    ):
        """
        Initialize the dispatcher and start its periodic loop.

        Configuration is resolved in this order of precedence:
        1. **kwargs override any config object settings
        2. Explicit config object
        3. Environment variables (using PUPPY_WEBHOOK_ prefix)
        4. Default values

        Args:
            config: Configuration object. If None, loads from environment variables and defaults.
            transport: Transport used to deliver chunks. Defaults to RequestsWebhookTransport.
            on_send: Called with (content, sequence) after each successful send.
            on_error: Called with (error, chunk) after each failed send.
                Hooks run after the cycle has released its lock.
            rng: Random source for delay jitter.
            **kwargs: Configuration overrides, e.g. destination="https://...", max_delay=30000

        Raises:
            ConfigurationError: If the configuration is invalid or has no destination.
        """
        try:
            if config is None:
                config = WebhookConfig()

            if kwargs:
                config_dict = config.model_dump()
                config_dict.update(kwargs)
                config = WebhookConfig.from_dict(config_dict)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid webhook configuration: {e}") from e

        if not config.destination:
            raise ConfigurationError("destination is required")

        self.config = config
        self.transport = transport or RequestsWebhookTransport(
            timeout=config.request_timeout
        )
        self.on_send = on_send
        self.on_error = on_error
        self._rng = rng or random.Random()

        self._pending = deque()
        self._chunks = deque()
        self.messages_sent = 0

        self._timer: Optional[threading.Timer] = None
        # Bumped each time a timer is armed; ticks from older timers are ignored
        self._generation = 0
        self._running = False
        # Guards the queues, the counter and the timer handle
        self._lock = threading.Lock()
        # Serialises whole cycles; held across the network call
        self._cycle_lock = threading.Lock()

        self.start()

    def __enter__(self) -> "WebhookDispatcher":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending_count(self) -> int:
        """Number of text units waiting to be packed."""
        return len(self._pending)

    @property
    def chunk_count(self) -> int:
        """Number of packed chunks waiting to be sent."""
        return len(self._chunks)

    @property
    def pending(self) -> List[str]:
        """Snapshot of pending text, front (next to be packed) first."""
        with self._lock:
            return list(self._pending)

    @property
    def chunks(self) -> List[str]:
        """Snapshot of packed chunks, newest first; the last item is sent next."""
        with self._lock:
            return list(self._chunks)

    def enqueue(self, message: Any):
        """Queue a message for sending. Non-string values are converted with str()."""
        if not isinstance(message, str):
            message = str(message)

        with self._lock:
            self._pending.append(message)

    def send(self, message: Any):
        """Alias of enqueue()."""
        self.enqueue(message)

    def start(self):
        """Start the periodic send loop. Does nothing if already running."""
        with self._lock:
            if self._running:
                return
            self._running = True
            self._arm_timer()
        logger.debug("Webhook dispatcher started")

    def stop(self):
        """Stop scheduling further cycles. Queued text and chunks are kept."""
        with self._lock:
            if not self._running:
                return
            self._running = False
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        logger.debug("Webhook dispatcher stopped")

    def flush(self):
        """Run one cycle now, sending the oldest chunk if there is one.

        Blocks until the cycle, including any network attempt, has finished.
        Delivery failures are reported through on_error and logging only.
        """
        self._process(force=True)

    def close(self):
        """Stop the loop, attempt one final send and release the transport."""
        self.stop()
        self.flush()
        self.transport.close()

    def _process(self, force: bool = False, generation: Optional[int] = None):
        # A timer tick carries the generation it was armed with; ticks that
        # fired before stop() or a reschedule are dropped once they get the lock
        with self._cycle_lock:
            if generation is not None:
                with self._lock:
                    current = self._running and generation == self._generation
                if not current:
                    logger.debug(f"Skipping stale webhook cycle {generation}")
                    return
            try:
                notification = self._run_cycle(force)
            finally:
                self._reschedule()

        # Hooks run outside the cycle lock so they may call flush() or close()
        if notification is not None:
            self._notify(*notification)

    def _run_cycle(self, force: bool):
        with self._lock:
            packed = pack_pending(
                self._pending, self._chunks, self.config.max_message_length
            )
            if packed:
                logger.debug(f"Packed {packed} messages, {len(self._chunks)} chunks queued")

            if not self._chunks and not force:
                return None

            chunk = self._chunks[-1] if self._chunks else None
            sequence = self.messages_sent % SEQUENCE_MODULO

        if not chunk:
            logger.debug("Nothing to send")
            return None

        content = f"{chunk[: self.config.max_payload_length]} ({sequence})"
        payload = WebhookPayload(
            display_name=self.config.display_name,
            display_icon=self.config.display_icon,
            content=content,
        )

        try:
            response = self.transport.post(self.config.destination, payload)
            if not response.ok:
                raise TransmissionError(response.reason, status=response.status)
        except Exception as e:
            self._requeue_failed()
            if self.config.log_errors:
                logger.error(f"Error sending webhook: {e}")
            return self.on_error, e, chunk

        with self._lock:
            self._chunks.pop()
            self.messages_sent += 1

        if self.config.log_sends:
            logger.info(f"Sent webhook message: {content}")
        return self.on_send, content, sequence

    def _requeue_failed(self):
        # Put the failed chunk back at the front of the pending text, followed
        # by the remaining chunks oldest first, so order is kept on repack.
        with self._lock:
            failed = self._chunks.pop()
            self._pending.extendleft(self._chunks)
            self._pending.appendleft(failed)
            self._chunks.clear()

    def _notify(self, hook: Optional[Callable], *args):
        if hook is None:
            return
        try:
            hook(*args)
        except Exception:
            logger.exception("Webhook observation hook raised")

    def _reschedule(self):
        with self._lock:
            if not self._running:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._arm_timer()

    def _arm_timer(self):
        backlog = len(self._chunks) + len(self._pending)
        delay = next_delay(
            backlog, self.config.min_delay, self.config.max_delay, self._rng
        )
        self._generation += 1
        self._timer = threading.Timer(
            delay / 1000, self._process, kwargs={"generation": self._generation}
        )
        self._timer.daemon = True
        self._timer.start()
        logger.debug(f"Next webhook cycle in {delay}ms")
