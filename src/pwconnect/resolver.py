"""
Resolves the logical name of a resource to an address that can be reached from this process.

The orchestrator publishes the endpoints of referenced services in the configuration store.
Those endpoints are correct for the host. When the process that uses them runs in a container,
`localhost` refers to the container itself, so it is rewritten to the docker host gateway alias.
Development certificates are not trusted across that boundary, so secure endpoints are downgraded
to plain http when running in an isolated network namespace.
"""
import logging
from urllib.parse import urlsplit, urlunsplit

from pwconnect.connector.base import InvalidArgumentError, ResourceNotFoundError

logger = logging.getLogger(__name__)

LOOPBACK_HOST = 'localhost'
HOST_GATEWAY_ALIAS = 'host.docker.internal'
SECURE_SCHEME = 'https'
PLAIN_SCHEME = 'http'


class AddressCache:
    """
    Resolved resource addresses, keyed by resource name.

    Entries are inserted at most once and never replaced or expired. Two callers resolving the
    same resource concurrently may both compute the address; whichever stores it first wins, and
    both receive the stored value.
    """

    def __init__(self):
        self._addresses = dict()

    def get(self, resource_name):
        return self._addresses.get(resource_name)

    def put_if_absent(self, resource_name, address):
        """
        Stores the address unless one is already stored for the resource.
        :return: the address stored for the resource
        """
        return self._addresses.setdefault(resource_name, address)

    def __contains__(self, resource_name):
        return resource_name in self._addresses

    def __len__(self):
        return len(self._addresses)

    def clear(self):
        self._addresses.clear()


_process_cache = AddressCache()


def process_cache() -> AddressCache:
    """ The address cache shared by all resolvers in this process that are not given their own. """
    return _process_cache


def replace_host(url, host):
    """
    Replaces the host of a url, keeping the userinfo and port.
    >>> replace_host('https://user@localhost:7001/app?x=1', 'host.docker.internal')
    'https://user@host.docker.internal:7001/app?x=1'
    """
    parts = urlsplit(url)
    netloc = host
    if parts.port is not None:
        netloc += ':%d' % parts.port
    userinfo, sep, _ = parts.netloc.rpartition('@')
    if sep:
        netloc = userinfo + '@' + netloc
    return urlunsplit(parts._replace(netloc=netloc))


def rewrite_loopback(url):
    """
    Rewrites the loopback host alias to the host gateway alias, whatever the scheme.
    >>> rewrite_loopback('http://localhost:5000')
    'http://host.docker.internal:5000'
    >>> rewrite_loopback('http://localhost.example.com:5000')
    'http://localhost.example.com:5000'
    """
    hostname = urlsplit(url).hostname
    if hostname is not None and hostname.lower() == LOOPBACK_HOST:
        return replace_host(url, HOST_GATEWAY_ALIAS)
    return url


def downgrade_scheme(url):
    """
    >>> downgrade_scheme('https://host.docker.internal:7001')
    'http://host.docker.internal:7001'
    """
    parts = urlsplit(url)
    if parts.scheme.lower() == SECURE_SCHEME:
        return urlunsplit(parts._replace(scheme=PLAIN_SCHEME))
    return url


def _present(url):
    return url is not None and bool(str(url).strip())


class AddressResolver:
    """
    Resolves resource names to urls via the configuration store.

    :param configuration: the configuration store with the `services:<name>:<scheme>:0` endpoints
    :param cache: where resolved addresses are kept. Defaults to the process-wide cache.
    :param isolated_network: True if this process runs in an isolated network namespace, such as a
        container. Secure urls are then downgraded to plain http.
    """

    def __init__(self, configuration, cache: AddressCache = None, isolated_network=False):
        self.configuration = configuration
        self.cache = process_cache() if cache is None else cache
        self.isolated_network = isolated_network

    def resolve(self, resource_name, use_cache=True):
        """
        Resolves the url of a resource.
        :param resource_name: the logical name of the resource
        :param use_cache: when False, the cache is neither consulted nor updated.
        :return: the url as a string
        Raises InvalidArgumentError if the name is empty, and ResourceNotFoundError if the resource
        has no configured endpoint.
        """
        if resource_name is None or not str(resource_name).strip():
            raise InvalidArgumentError("Resource name cannot be empty.")

        logger.debug("resolving url for resource %s" % resource_name)
        if use_cache:
            cached = self.cache.get(resource_name)
            if cached is not None:
                logger.debug("found cached url for %s: %s" % (resource_name, cached))
                return cached

        url = self._lookup(resource_name)
        url = self._rewrite(resource_name, url)
        logger.info("resolved url for resource %s: %s" % (resource_name, url))

        if use_cache:
            url = self.cache.put_if_absent(resource_name, url)
        return url

    def _lookup(self, resource_name):
        secure = self.configuration.service_endpoint(resource_name, SECURE_SCHEME)
        logger.debug("https lookup for %s: %s" % (resource_name, secure))
        url = secure if _present(secure) else self.configuration.service_endpoint(resource_name, PLAIN_SCHEME)
        logger.debug("after https/http lookup for %s: %s" % (resource_name, url))
        if not _present(url):
            logger.error("no endpoint configured for resource %s" % resource_name)
            raise ResourceNotFoundError("Resource connection string for '%s' not found. "
                                        "Make sure the service is referenced." % resource_name)
        return str(url).strip().rstrip('/')

    def _rewrite(self, resource_name, url):
        rewritten = rewrite_loopback(url)
        if rewritten != url:
            logger.debug("replaced %s with %s for %s: %s -> %s" %
                         (LOOPBACK_HOST, HOST_GATEWAY_ALIAS, resource_name, url, rewritten))
        url = rewritten
        if self.isolated_network:
            downgraded = downgrade_scheme(url)
            if downgraded != url:
                logger.debug("downgraded https to http in isolated network for %s: %s -> %s" %
                             (resource_name, url, downgraded))
            url = downgraded
        return url
