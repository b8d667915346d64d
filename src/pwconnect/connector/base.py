from abc import abstractmethod


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class InvalidArgumentError(ConnectorError, ValueError):
    """ Malformed input, such as an empty resource name or an unsafe relative url. Never retried. """


class ResourceNotFoundError(ConnectorError, LookupError):
    """ The resource has no configured address. Never retried. """


class AttemptTimeoutError(ConnectorError):
    """ A single connection attempt did not complete within its timeout. """


class ConnectionFailedError(ConnectorError):
    """
    All permitted connection attempts failed.

    :param resource_name: the resource that could not be reached
    :param attempts: the number of attempts made
    :param last_error: the error from the final attempt
    """
    def __init__(self, resource_name, attempts, last_error=None):
        self.resource_name = resource_name
        self.attempts = attempts
        self.last_error = last_error
        super().__init__("Failed to connect to '%s' after %d attempts. Last error: %s" %
                         (resource_name, attempts, last_error))


class ConnectionCancelledError(ConnectorError):
    """ The caller cancelled the connection while it was in progress. """
    def __init__(self, resource_name, attempts):
        self.resource_name = resource_name
        self.attempts = attempts
        super().__init__("Connection to '%s' cancelled after %d attempts" % (resource_name, attempts))


class NavigationError(ConnectorError):
    """ Navigating a page to a resource failed. """


class Connector:
    """
    The capability to open a session to a remote endpoint.
    """

    @abstractmethod
    async def connect(self, endpoint, timeout):
        """
        Opens a session to the endpoint.
        :param endpoint: the address to connect to.
        :param timeout: the time allowed for the connection, in seconds.
        :return: the session. The caller owns the session and is responsible for closing it.
        Raises an exception if the session cannot be established.
        """
        raise NotImplementedError
