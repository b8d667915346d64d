import unittest
from unittest.mock import AsyncMock, Mock

from hamcrest import assert_that, is_, same_instance

from pwconnect.connector.base import Connector
from pwconnect.connector.playwrightconn import PlaywrightConnector


class PlaywrightConnectorTest(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.browser = Mock()
        self.browser.version = '138.0'
        self.browser_type = Mock()
        self.browser_type.name = 'firefox'
        self.browser_type.connect = AsyncMock(return_value=self.browser)

    def test_is_connector(self):
        sut = PlaywrightConnector(self.browser_type)
        assert_that(isinstance(sut, Connector), is_(True))
        assert_that(sut.name, is_('firefox'))

    async def test_timeout_in_milliseconds(self):
        sut = PlaywrightConnector(self.browser_type)
        browser = await sut.connect('ws://playwright:3000', 4)
        assert_that(browser, is_(same_instance(self.browser)))
        self.browser_type.connect.assert_awaited_once_with('ws://playwright:3000', timeout=4000)

    async def test_connect_args_passed_through(self):
        sut = PlaywrightConnector(self.browser_type, {'slow_mo': 50, 'headers': {'x-run': '1'}})
        await sut.connect('ws://playwright:3000', 1)
        self.browser_type.connect.assert_awaited_once_with('ws://playwright:3000', timeout=1000, slow_mo=50,
                                                           headers={'x-run': '1'})

    async def test_failure_propagates(self):
        error = OSError("connect ECONNREFUSED")
        self.browser_type.connect.side_effect = error
        sut = PlaywrightConnector(self.browser_type)
        with self.assertRaises(OSError) as raised:
            await sut.connect('ws://playwright:3000', 1)
        assert_that(raised.exception, is_(same_instance(error)))
