"""
Client side of a playwright server resource.

A process that references the playwright resource receives its connection string, and the endpoints of
the other resources it references, from the orchestrator. `PlaywrightService.configure` is called once at
startup to read them, and the resulting service is passed to whatever needs to connect or navigate.
"""
import logging
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright

from pwconnect.config.config import ConfigurationStore, load_settings, running_in_container, truthy
from pwconnect.connector.base import InvalidArgumentError, ResourceNotFoundError
from pwconnect.connector.playwrightconn import PlaywrightConnector
from pwconnect.navigation import goto_resource_page
from pwconnect.policy import ConnectionPolicy
from pwconnect.resolver import AddressCache, AddressResolver
from pwconnect.session_connector import SessionConnector
from pwconnect.telemetry import NullTelemetry, TelemetryEmitter

logger = logging.getLogger(__name__)


def isolated_network_setting(value, environ=None):
    """
    Interprets the resolver `isolated_network` setting.
    >>> isolated_network_setting('true')
    True
    >>> isolated_network_setting('auto', {'PWCONNECT_ISOLATED_NETWORK': '0'})
    False
    """
    value = str(value).strip().lower()
    if value == 'auto':
        return running_in_container(environ)
    return value == 'true'


def telemetry_enabled(settings):
    """
    Interprets the `telemetry` settings. Telemetry is enabled unless switched off.
    >>> telemetry_enabled({'telemetry': {'enabled': 'off'}})
    False
    >>> telemetry_enabled({})
    True
    """
    value = settings.get('telemetry', {}).get('enabled', True)
    return value if isinstance(value, bool) else str(value).strip().lower() in truthy

class PlaywrightService:
    """
    Connects to the playwright server resource and navigates pages to other resources.

    :param policy: the connection policy, bound to the address of the playwright server
    :param resolver: resolves the urls of the other resources
    :param telemetry: records the connection attempts
    :param connector_factory: creates the connector for a playwright BrowserType
    """

    def __init__(self, policy: ConnectionPolicy, resolver: AddressResolver, telemetry: TelemetryEmitter = None,
                 connector_factory=PlaywrightConnector):
        self.policy = policy
        self.resolver = resolver
        self.telemetry = telemetry if telemetry is not None else TelemetryEmitter()
        self.connector_factory = connector_factory

    @classmethod
    def configure(cls, resource_name=None, configuration: ConfigurationStore = None, policy: ConnectionPolicy = None,
                  isolated_network=None, telemetry: TelemetryEmitter = None, cache: AddressCache = None,
                  settings=None, **kwargs):
        """
        Reads the configuration of the playwright resource.
        :param resource_name: the name of the playwright resource. Defaults to the configured name.
        :param configuration: the configuration store. Defaults to the environment variables.
        :param policy: the connection policy. Defaults to the `connection` settings.
        :param isolated_network: whether this process runs in an isolated network namespace. Defaults to
            the `resolver` settings, which by default inspect the environment.
        :param settings: the pwconnect settings. Defaults to the bundled and user settings files.
        Raises InvalidArgumentError if `resource_name` is given but blank, and ResourceNotFoundError if the
        playwright resource has no connection string.
        """
        if resource_name is not None and not str(resource_name).strip():
            raise InvalidArgumentError("Playwright resource name cannot be empty.")
        if settings is None and (policy is None or isolated_network is None):
            settings = load_settings()
        if policy is None:
            policy = ConnectionPolicy.from_config(settings['connection'])
        if resource_name and resource_name != policy.resource_name:
            policy = policy.with_resource_name(resource_name)
        if configuration is None:
            configuration = ConfigurationStore.from_environ()
        if isolated_network is None:
            isolated_network = isolated_network_setting(settings['resolver']['isolated_network'])
        if telemetry is None and settings is not None and not telemetry_enabled(settings):
            logger.info("telemetry disabled for playwright service '%s'" % policy.resource_name)
            telemetry = NullTelemetry()

        if policy.target_uri is None:
            uri = configuration.get_connection_string(policy.resource_name)
            if not uri:
                raise ResourceNotFoundError("Playwright connection string '%s' not found. "
                                            "Make sure the Playwright service is registered." % policy.resource_name)
            policy = policy.with_target_uri(uri)

        logger.info("configured playwright service '%s' at %s (isolated network: %s)" %
                    (policy.resource_name, policy.target_uri, isolated_network))
        resolver = AddressResolver(configuration, cache, isolated_network)
        return cls(policy, resolver, telemetry, **kwargs)

    def session_connector(self, browser_type) -> SessionConnector:
        return SessionConnector(self.connector_factory(browser_type), self.telemetry)

    async def connect(self, browser_type, cancel=None):
        """
        Connects a browser of the given type to the playwright server.
        :param browser_type: a playwright BrowserType, such as `playwright.chromium`
        :param cancel: an asyncio.Event that aborts the connection when set
        :return: the connected Browser. The caller must close it.
        """
        return await self.session_connector(browser_type).connect(self.policy, cancel)

    def resolve(self, resource_name):
        return self.resolver.resolve(resource_name)

    async def goto_resource_page(self, page, resource_name, relative_url='', **goto_options):
        return await goto_resource_page(page, self.resolver, resource_name, relative_url, **goto_options)

    async def new_page(self, browser, **options):
        """
        Opens a page that ignores https errors, which is needed to reach resources on the host
        with development certificates.
        """
        options.setdefault('ignore_https_errors', True)
        return await browser.new_page(**options)


@asynccontextmanager
async def remote_browser(service: PlaywrightService, browser_name='chromium', cancel=None):
    """
    Starts playwright, connects a browser to the playwright server and closes both on exit.
    """
    async with async_playwright() as playwright:
        browser = await service.connect(getattr(playwright, browser_name), cancel)
        try:
            yield browser
        finally:
            logger.debug("closing %s browser for '%s'" % (browser_name, service.policy.resource_name))
            await browser.close()
