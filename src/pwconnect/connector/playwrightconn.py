import logging

from playwright.async_api import BrowserType

from pwconnect.connector.base import Connector

logger = logging.getLogger(__name__)


class PlaywrightConnector(Connector):
    """
    A connector that opens a Browser on a remote playwright server via its websocket endpoint.
    """
    def __init__(self, browser_type: BrowserType, connect_args=None):
        """
        :param browser_type: The playwright browser type to connect with, such as `playwright.chromium`.
        :param connect_args: additional keyword arguments for the BrowserType.connect() call.
        """
        self.browser_type = browser_type
        self._connect_args = connect_args or {}

    @property
    def name(self):
        return self.browser_type.name

    async def connect(self, endpoint, timeout):
        """
        Connects to the playwright server at `endpoint`.
        :param timeout: the connection timeout in seconds. Playwright takes milliseconds.
        :return: the connected Browser
        """
        logger.debug("connecting %s browser to %s (timeout %ss)" % (self.name, endpoint, timeout))
        browser = await self.browser_type.connect(str(endpoint), timeout=timeout * 1000, **self._connect_args)
        logger.debug("connected %s browser to %s, version %s" % (self.name, endpoint, browser.version))
        return browser
