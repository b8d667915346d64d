import logging

logger = logging.getLogger(__name__)


class EventSource(object):
    """
    A list of handlers that are each called with the events fired.

    Handlers are observers only: an exception from one handler is logged and the remaining
    handlers are still called.
    """

    def __init__(self):
        self._handlers = []

    def __iadd__(self, handler):
        return self.add(handler)

    def __isub__(self, handler):
        return self.remove(handler)

    def add(self, handler):
        self._handlers.append(handler)
        return self

    def remove(self, handler):
        if handler in self._handlers:
            self._handlers.remove(handler)
        return self

    def handlers(self):
        return tuple(self._handlers)

    def fire(self, *args, **kwargs):
        for handler in self.handlers():
            try:
                handler(*args, **kwargs)
            except Exception as e:
                logger.warning("event handler %s failed: %s" % (handler, e), exc_info=True)
