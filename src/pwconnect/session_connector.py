import asyncio
import enum
import logging
import time

from pwconnect.connector.base import AttemptTimeoutError, ConnectionCancelledError, ConnectionFailedError, \
    Connector, InvalidArgumentError
from pwconnect.policy import ConnectionPolicy
from pwconnect.support.events import EventSource
from pwconnect.support.mixins import CommonEqualityMixin, StringerMixin
from pwconnect.telemetry import TelemetryEmitter

logger = logging.getLogger(__name__)

CONNECT_SPAN = 'playwright.connect_to_playwright_service'

SUCCESS = 'success'
FAILURE = 'failure'


class ConnectionState(enum.Enum):
    IDLE = 'idle'
    ATTEMPTING = 'attempting'
    ATTEMPT_FAILED = 'attempt_failed'
    WAITING = 'waiting'
    SUCCEEDED = 'succeeded'
    EXHAUSTED = 'exhausted'
    CANCELLED = 'cancelled'


class AttemptRecord(CommonEqualityMixin, StringerMixin):
    """
    The outcome of a single connection attempt.
    :param attempt: the 1-based attempt index
    :param elapsed: seconds since the connection started. None for an attempt that has just started.
    :param outcome: SUCCESS, FAILURE or None while the attempt is in progress
    """
    def __init__(self, resource_name, attempt, elapsed=None, outcome=None, error=None):
        self.resource_name = resource_name
        self.attempt = attempt
        self.elapsed = elapsed
        self.outcome = outcome
        self.error = error


class AttemptEvent:
    """ base class for connection attempt events. """
    def __init__(self, connector, record: AttemptRecord):
        self.connector = connector
        self.record = record


class AttemptStartedEvent(AttemptEvent):
    """ A connection attempt has started. """


class AttemptFailedEvent(AttemptEvent):
    """ A connection attempt failed and will be retried. """


class ConnectedEvent(AttemptEvent):
    """ A connection attempt succeeded. """


async def wait_or_cancel(delay, cancel: asyncio.Event = None):
    """
    Waits for the delay to pass or the cancel event to be set, whichever comes first.
    :return: True if the wait was cancelled
    """
    if cancel is None:
        await asyncio.sleep(delay)
        return False
    if cancel.is_set():
        return True
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
        return True
    except asyncio.TimeoutError:
        return False


class SessionConnector:
    """
    Connects to a remote server, retrying failed attempts with exponential backoff.

    Each call to connect() runs its attempts strictly one after another. Independent calls may run
    concurrently; each keeps its own attempt count and delay. `state` follows the most recent call.

    Fires AttemptStartedEvent, AttemptFailedEvent and ConnectedEvent to the handlers in `events`.

    :param connector: the capability that opens a session to an endpoint
    :param telemetry: records the attempt and failure counts and the connection duration
    :param sleep: an awaitable `sleep(delay, cancel)` that returns True if cancelled during the wait
    :param clock: the time source for measuring the connection duration
    """

    def __init__(self, connector: Connector, telemetry: TelemetryEmitter = None, sleep=wait_or_cancel,
                 clock=time.monotonic):
        self.connector = connector
        self.telemetry = telemetry if telemetry is not None else TelemetryEmitter()
        self.events = EventSource()
        self.state = ConnectionState.IDLE
        self._sleep = sleep
        self._clock = clock

    async def connect(self, policy: ConnectionPolicy, cancel: asyncio.Event = None):
        """
        Connects to `policy.target_uri`, making up to `policy.max_attempts` attempts.
        :param policy: the connection policy. Must have a target uri.
        :param cancel: an event that aborts the connection when set
        :return: the session from the connector. The caller owns it and must close it.
        Raises ConnectionFailedError when all attempts fail, and ConnectionCancelledError if the cancel
        event is set before a session is established.
        """
        if policy.target_uri is None:
            raise InvalidArgumentError("policy for '%s' has no target uri" % policy.resource_name)

        resource_name = policy.resource_name
        attributes = {'resource.name': resource_name,
                      'max.retries': policy.max_attempts,
                      'playwright.url': policy.target_uri}
        with self.telemetry.span(CONNECT_SPAN, attributes) as span:
            logger.info("connecting to playwright service '%s' at %s" % (resource_name, policy.target_uri))
            start = self._clock()
            attempt = 0
            last_error = None
            delays = policy.retry_strategy().delays(policy.max_attempts)
            for delay in delays:
                attempt += 1
                self._transition(ConnectionState.ATTEMPTING)
                self.telemetry.attempt_started(resource_name)
                self.events.fire(AttemptStartedEvent(self, AttemptRecord(resource_name, attempt)))
                logger.debug("attempting to connect to '%s' (attempt %d/%d)" %
                             (resource_name, attempt, policy.max_attempts))
                try:
                    session = await self._attempt(policy, attempt, delay, cancel)
                except ConnectionCancelledError:
                    self._transition(ConnectionState.CANCELLED)
                    raise
                except Exception as e:
                    last_error = e
                    self._transition(ConnectionState.ATTEMPT_FAILED)
                    if attempt >= policy.max_attempts or self._cancelled(cancel):
                        break
                    self._retry(resource_name, attempt, delay, e, start)
                    self._transition(ConnectionState.WAITING)
                    if await self._sleep(delay, cancel):
                        self._transition(ConnectionState.CANCELLED)
                        logger.info("connection to '%s' cancelled while waiting to retry" % resource_name)
                        raise ConnectionCancelledError(resource_name, attempt) from e
                else:
                    elapsed = self._clock() - start
                    self._transition(ConnectionState.SUCCEEDED)
                    logger.info("connected to playwright service '%s' on attempt %d" % (resource_name, attempt))
                    span.set_attribute('connection.attempt', attempt)
                    self.telemetry.record_duration(resource_name, elapsed * 1000)
                    span.set_ok()
                    self.events.fire(ConnectedEvent(self, AttemptRecord(resource_name, attempt, elapsed, SUCCESS)))
                    return session

            self.telemetry.attempt_failed(resource_name)
            if self._cancelled(cancel):
                self._transition(ConnectionState.CANCELLED)
                logger.info("connection to '%s' cancelled after attempt %d" % (resource_name, attempt))
                raise ConnectionCancelledError(resource_name, attempt) from last_error
            self._transition(ConnectionState.EXHAUSTED)
            error = ConnectionFailedError(resource_name, attempt, last_error)
            logger.error("playwright connection failed: %s" % error)
            raise error from last_error

    async def _attempt(self, policy, attempt, timeout, cancel):
        """
        Makes a single connection attempt, allowing it `timeout` seconds.
        The attempt is abandoned if the cancel event is set before it completes.
        """
        connecting = asyncio.ensure_future(self.connector.connect(policy.target_uri, timeout))
        waiting = {connecting}
        cancelled = None
        if cancel is not None:
            cancelled = asyncio.ensure_future(cancel.wait())
            waiting.add(cancelled)
        try:
            done, _ = await asyncio.wait(waiting, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in waiting:
                if not task.done():
                    task.cancel()

        if connecting in done:
            return connecting.result()
        if cancelled is not None and cancelled in done:
            logger.debug("attempt %d to '%s' cancelled" % (attempt, policy.resource_name))
            raise ConnectionCancelledError(policy.resource_name, attempt)
        raise AttemptTimeoutError("attempt %d to connect to %s timed out after %ss" %
                                  (attempt, policy.target_uri, timeout))

    def _retry(self, resource_name, attempt, delay, error, start):
        self.telemetry.attempt_failed(resource_name)
        record = AttemptRecord(resource_name, attempt, self._clock() - start, FAILURE, error)
        self.events.fire(AttemptFailedEvent(self, record))
        logger.warning("failed to connect to playwright service '%s' on attempt %d: %s. Retrying in %ss..." %
                       (resource_name, attempt, error, delay))

    def _transition(self, state):
        logger.debug("connection state %s -> %s" % (self.state.value, state.value))
        self.state = state

    @staticmethod
    def _cancelled(cancel):
        return cancel is not None and cancel.is_set()
