"""
Declares a playwright server container as a resource of a distributed application.

The declaration is static: the image, the endpoint, the container arguments, the environment and the
readiness probe. It can be rendered as a `docker run` command line, and as the environment variables
that give processes referencing the resource its connection string.
"""
from pwconnect.config.config import environ_separator
from pwconnect.connector.base import InvalidArgumentError
from pwconnect.support.mixins import CommonEqualityMixin, StringerMixin

DEFAULT_PORT = 3000
DEFAULT_PUBLISHED_PORT = 30003
DEFAULT_IMAGE_REGISTRY = 'mcr.microsoft.com'
DEFAULT_IMAGE_NAME = 'playwright'
DEFAULT_IMAGE_TAG = 'v1.53.0-noble'
PLAYWRIGHT_VERSION = '1.53.0'
ENDPOINT_NAME = 'ws'
HEALTH_CHECK_PATH = '/json/list'
DATA_VOLUME_TARGET = '/home/pwuser/.cache/playwright'
HOST_GATEWAY_ALIAS = 'host.docker.internal'


class ContainerImage(CommonEqualityMixin, StringerMixin):
    def __init__(self, registry, image, tag):
        self.registry = registry
        self.image = image
        self.tag = tag

    def reference(self):
        """
        >>> ContainerImage('mcr.microsoft.com', 'playwright', 'v1.53.0-noble').reference()
        'mcr.microsoft.com/playwright:v1.53.0-noble'
        """
        return '%s/%s:%s' % (self.registry, self.image, self.tag)


class Endpoint(CommonEqualityMixin, StringerMixin):
    """
    A network endpoint of the container.
    :param port: the port published on the host
    :param target_port: the port the server listens on inside the container
    """
    def __init__(self, name, port, target_port, scheme='http'):
        self.name = name
        self.port = port
        self.target_port = target_port
        self.scheme = scheme

    def host_and_port(self, host='localhost'):
        return '%s:%d' % (host, self.port)


class Volume(CommonEqualityMixin, StringerMixin):
    def __init__(self, name, target, read_only=False):
        self.name = name
        self.target = target
        self.read_only = read_only

    def mount(self):
        """
        >>> Volume('pw-data', '/cache', True).mount()
        'pw-data:/cache:ro'
        """
        return '%s:%s%s' % (self.name, self.target, ':ro' if self.read_only else '')


class HealthCheck(CommonEqualityMixin, StringerMixin):
    """ An HTTP readiness probe against one of the resource endpoints. """
    def __init__(self, path, endpoint_name):
        self.path = path
        self.endpoint_name = endpoint_name


class PlaywrightResource(CommonEqualityMixin, StringerMixin):
    """
    A playwright server container. The resource name is also the name of its connection string.
    """

    def __init__(self, name):
        if name is None or not str(name).strip():
            raise InvalidArgumentError("Resource name cannot be empty.")
        self.name = name
        self.image = ContainerImage(DEFAULT_IMAGE_REGISTRY, DEFAULT_IMAGE_NAME, DEFAULT_IMAGE_TAG)
        self.endpoints = []
        self.args = []
        self.runtime_args = []
        self.environment = {}
        self.volumes = []
        self.health_checks = []

    @property
    def primary_endpoint(self) -> Endpoint:
        return self._endpoint(ENDPOINT_NAME)

    def connection_string(self, host='localhost'):
        """ The websocket address of the server, as seen from the host. """
        return 'ws://%s' % self.primary_endpoint.host_and_port(host)

    def health_check_urls(self, host='localhost'):
        urls = []
        for check in self.health_checks:
            endpoint = self._endpoint(check.endpoint_name)
            urls.append('%s://%s%s' % (endpoint.scheme, endpoint.host_and_port(host), check.path))
        return urls

    def _endpoint(self, name):
        for endpoint in self.endpoints:
            if endpoint.name == name:
                return endpoint
        raise LookupError("resource %s has no %s endpoint" % (self.name, name))


class PlaywrightResourceBuilder:
    """ Fluent configuration of a PlaywrightResource. """

    def __init__(self, resource: PlaywrightResource):
        self.resource = resource

    def with_endpoint(self, name, port, target_port, scheme='http'):
        self.resource.endpoints.append(Endpoint(name, port, target_port, scheme))
        return self

    def with_http_health_check(self, path, endpoint_name=ENDPOINT_NAME):
        self.resource.health_checks.append(HealthCheck(path, endpoint_name))
        return self

    def with_args(self, *args):
        self.resource.args.extend(str(a) for a in args)
        return self

    def with_container_runtime_args(self, *args):
        self.resource.runtime_args.extend(str(a) for a in args)
        return self

    def with_environment(self, key, value):
        self.resource.environment[key] = str(value)
        return self

    def with_volume(self, name, target, read_only=False):
        self.resource.volumes.append(Volume(name, target, read_only))
        return self

    def with_data_volume(self, name=None, read_only=False):
        """
        Adds a volume for the browser data and cache.
        :param name: the volume name. Defaults to `<resource name>-data`.
        """
        return self.with_volume(name or '%s-data' % self.resource.name, DATA_VOLUME_TARGET, read_only)

    def with_development_mode(self):
        """
        Adds the SYS_ADMIN capability, which some chromium features need. Only for development.
        """
        return self.with_container_runtime_args('--cap-add=SYS_ADMIN')

    def with_host_network_access(self, host_alias=HOST_GATEWAY_ALIAS):
        """ Lets the container reach services on the host machine via `host_alias`. """
        return self.with_container_runtime_args('--add-host=%s:host-gateway' % host_alias)

    def docker_run_args(self, docker='docker'):
        """
        The command line that runs the resource container.
        """
        resource = self.resource
        argv = [docker, 'run', '--rm', '--name', resource.name]
        argv.extend(resource.runtime_args)
        for endpoint in resource.endpoints:
            argv.extend(['-p', '%d:%d' % (endpoint.port, endpoint.target_port)])
        for key, value in sorted(resource.environment.items()):
            argv.extend(['-e', '%s=%s' % (key, value)])
        for volume in resource.volumes:
            argv.extend(['-v', volume.mount()])
        argv.append(resource.image.reference())
        argv.extend(resource.args)
        return argv

    def connection_string(self, host='localhost'):
        return self.resource.connection_string(host)

    def health_check_url(self, host='localhost'):
        """ The url of the first readiness probe. """
        return self.resource.health_check_urls(host)[0]

    def reference_environment(self, host='localhost'):
        """
        The environment variables that give a referencing process the connection string of this resource.
        """
        key = environ_separator.join(('ConnectionStrings', self.resource.name))
        return {key: self.connection_string(host)}


def add_playwright(name, port=None) -> PlaywrightResourceBuilder:
    """
    Declares a playwright server container.
    :param name: the resource name, also used as the connection string name by referencing processes.
    :param port: the port published on the host. Defaults to 30003.

    >>> add_playwright('playwright').connection_string()
    'ws://localhost:30003'
    """
    resource = PlaywrightResource(name)
    port = DEFAULT_PUBLISHED_PORT if port is None else port
    return PlaywrightResourceBuilder(resource) \
        .with_endpoint(ENDPOINT_NAME, port, DEFAULT_PORT) \
        .with_http_health_check(HEALTH_CHECK_PATH, ENDPOINT_NAME) \
        .with_args('npx', '-y', 'playwright@%s' % PLAYWRIGHT_VERSION, 'run-server',
                   '--port', DEFAULT_PORT, '--host', '0.0.0.0') \
        .with_container_runtime_args('--add-host', '%s:host-gateway' % HOST_GATEWAY_ALIAS, '--init', '--ipc=host') \
        .with_environment('PLAYWRIGHT_BROWSERS_PATH', '/ms-playwright') \
        .with_environment('PLAYWRIGHT_SKIP_BROWSER_DOWNLOAD', '1')
