from pwconnect.connector.base import InvalidArgumentError
from pwconnect.support.mixins import CommonEqualityMixin, StringerMixin
from pwconnect.support.retry_strategy import BACKOFF_MULTIPLIER, BackoffRetryStrategy

DEFAULT_RESOURCE_NAME = 'playwright'
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INITIAL_DELAY = 2.0


class ConnectionPolicy(CommonEqualityMixin, StringerMixin):
    """
    Describes how to connect to a playwright server resource: which resource, where it is,
    how many times to try and how long to wait between tries.

    Policies are immutable. The target uri is bound once the resource address is known,
    which produces a new policy.

    :param max_attempts: the number of connection attempts, at least 1.
    :param initial_delay: the delay in seconds after the first failed attempt. Each later delay is
        1.5 times the one before. The delay is also the timeout of the attempt it follows.
    :param resource_name: the logical name of the playwright server resource.
    :param target_uri: the resolved address of the server, if known.
    """

    def __init__(self, max_attempts=DEFAULT_MAX_ATTEMPTS, initial_delay=DEFAULT_INITIAL_DELAY,
                 resource_name=DEFAULT_RESOURCE_NAME, target_uri=None):
        if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 1:
            raise InvalidArgumentError("max_attempts must be a positive integer, was %r" % (max_attempts,))
        if isinstance(initial_delay, bool) or not isinstance(initial_delay, (int, float)) or initial_delay <= 0:
            raise InvalidArgumentError("initial_delay must be a positive number of seconds, was %r" % (initial_delay,))
        if not resource_name or not str(resource_name).strip():
            raise InvalidArgumentError("resource_name cannot be empty")
        self.__dict__.update(_max_attempts=max_attempts, _initial_delay=initial_delay,
                             _resource_name=resource_name, _target_uri=target_uri)

    def __setattr__(self, key, value):
        raise AttributeError("ConnectionPolicy is immutable")

    @classmethod
    def from_config(cls, conf):
        """
        Creates a policy from the `connection` section of the settings.
        :param conf: a mapping with max_attempts, initial_delay and resource_name. Missing values take
            the defaults.
        """
        return cls(max_attempts=int(conf.get('max_attempts', DEFAULT_MAX_ATTEMPTS)),
                   initial_delay=float(conf.get('initial_delay', DEFAULT_INITIAL_DELAY)),
                   resource_name=conf.get('resource_name', DEFAULT_RESOURCE_NAME))

    @property
    def max_attempts(self):
        return self._max_attempts

    @property
    def initial_delay(self):
        return self._initial_delay

    @property
    def backoff_multiplier(self):
        return BACKOFF_MULTIPLIER

    @property
    def resource_name(self):
        return self._resource_name

    @property
    def target_uri(self):
        return self._target_uri

    def retry_strategy(self):
        return BackoffRetryStrategy(self.initial_delay, self.backoff_multiplier)

    def with_target_uri(self, target_uri):
        """
        Binds the resolved address of the server.
        :return: a new policy with the same settings and the given target uri.
        Raises InvalidArgumentError if the uri is empty or this policy is already bound.
        """
        if not target_uri or not str(target_uri).strip():
            raise InvalidArgumentError("target uri for '%s' cannot be empty" % self.resource_name)
        if self.target_uri is not None:
            raise InvalidArgumentError("policy for '%s' is already bound to %s" %
                                       (self.resource_name, self.target_uri))
        return ConnectionPolicy(self.max_attempts, self.initial_delay, self.resource_name, str(target_uri))

    def with_resource_name(self, resource_name):
        """ A copy of this unbound policy for a different resource. """
        if self.target_uri is not None:
            raise InvalidArgumentError("policy for '%s' is already bound to %s" %
                                       (self.resource_name, self.target_uri))
        return ConnectionPolicy(self.max_attempts, self.initial_delay, resource_name)
