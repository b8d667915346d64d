"""
Connection telemetry: attempt and failure counters, a duration histogram and trace spans,
all tagged with the resource name.

Instruments are created through the OpenTelemetry API. When no SDK is configured the API
does nothing. Telemetry is observation only: an error raised while recording is logged
and never reaches the caller.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from opentelemetry import metrics, trace
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)

INSTRUMENTATION_NAME = 'pwconnect'
RESOURCE_NAME_ATTRIBUTE = 'resource.name'

ATTEMPTS_METRIC = 'playwright.connection.attempts'
FAILURES_METRIC = 'playwright.connection.failures'
DURATION_METRIC = 'playwright.connection.duration'


def _recorded(action, *args, **kwargs):
    try:
        return action(*args, **kwargs)
    except Exception as e:
        logger.debug("telemetry recording failed: %s" % e, exc_info=True)


def _attribute_value(value):
    return value if isinstance(value, (int, float, bool, str)) else str(value)


class SpanRecorder:
    """ Records attributes and status on a span. Does nothing when there is no span. """

    def __init__(self, span=None):
        self.span = span

    def set_attribute(self, key, value):
        if self.span is not None and value is not None:
            _recorded(self.span.set_attribute, key, _attribute_value(value))

    def set_ok(self):
        if self.span is not None:
            _recorded(self.span.set_status, Status(StatusCode.OK))

    def set_error(self, description, exception=None):
        if self.span is not None:
            _recorded(self.span.set_status, Status(StatusCode.ERROR, str(description)))
            if exception is not None:
                _recorded(self.span.record_exception, exception)


class TelemetryEmitter:
    """
    Counters, histogram and spans for connection attempts.

    :param meter: the OpenTelemetry meter to create instruments from. Defaults to the global meter provider's.
    :param tracer: the OpenTelemetry tracer for spans. Defaults to the global tracer provider's.
    """

    def __init__(self, meter: Optional[Any] = None, tracer: Optional[Any] = None):
        self.meter = meter if meter is not None else metrics.get_meter(INSTRUMENTATION_NAME)
        self.tracer = tracer if tracer is not None else trace.get_tracer(INSTRUMENTATION_NAME)
        self.attempts = self._instrument('create_counter', ATTEMPTS_METRIC, '1',
                                         'Connection attempts to the playwright server')
        self.failures = self._instrument('create_counter', FAILURES_METRIC, '1',
                                         'Failed connections to the playwright server')
        self.duration = self._instrument('create_histogram', DURATION_METRIC, 'ms',
                                         'Time taken to connect to the playwright server')

    def _instrument(self, kind, name, unit, description):
        instrument = _recorded(getattr(self.meter, kind), name, unit=unit, description=description)
        if instrument is None:
            logger.warning("instrument %s is unavailable, its measurements are dropped" % name)
        return instrument

    @staticmethod
    def _tags(resource_name) -> Dict[str, str]:
        return {RESOURCE_NAME_ATTRIBUTE: str(resource_name)}

    def attempt_started(self, resource_name):
        if self.attempts is not None:
            _recorded(self.attempts.add, 1, self._tags(resource_name))

    def attempt_failed(self, resource_name):
        if self.failures is not None:
            _recorded(self.failures.add, 1, self._tags(resource_name))

    def record_duration(self, resource_name, elapsed_ms):
        if self.duration is not None:
            _recorded(self.duration.record, elapsed_ms, self._tags(resource_name))

    @contextmanager
    def span(self, name, attributes: Optional[Dict[str, Any]] = None) -> Iterator[SpanRecorder]:
        """
        Runs the body in a span. Exceptions raised by the body mark the span as errored
        and are re-raised.
        """
        try:
            span_context = self.tracer.start_as_current_span(name, record_exception=False,
                                                             set_status_on_exception=False)
            span = span_context.__enter__()
        except Exception as e:
            logger.debug("could not start span %s: %s" % (name, e), exc_info=True)
            span_context = span = None

        recorder = SpanRecorder(span)
        for key, value in (attributes or {}).items():
            recorder.set_attribute(key, value)
        try:
            yield recorder
        except BaseException as e:
            recorder.set_error(e, e)
            raise
        finally:
            if span_context is not None:
                _recorded(span_context.__exit__, None, None, None)


class NullTelemetry(TelemetryEmitter):
    """ Telemetry that records nothing, whatever providers are configured. Used when telemetry is disabled. """

    def __init__(self):
        super().__init__(metrics.NoOpMeter(INSTRUMENTATION_NAME), trace.NoOpTracer())
