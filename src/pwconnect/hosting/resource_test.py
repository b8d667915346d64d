from unittest import TestCase

from hamcrest import assert_that, calling, contains_exactly, has_entries, has_item, has_length, is_, raises

from pwconnect.config.config import ConfigurationStore
from pwconnect.connector.base import InvalidArgumentError
from pwconnect.hosting.resource import DATA_VOLUME_TARGET, PlaywrightResource, add_playwright


class AddPlaywrightTest(TestCase):

    def setUp(self):
        self.builder = add_playwright('playwright')
        self.resource = self.builder.resource

    def test_empty_name(self):
        assert_that(calling(add_playwright).with_args(' '), raises(InvalidArgumentError))
        assert_that(calling(PlaywrightResource).with_args(None), raises(InvalidArgumentError))

    def test_image(self):
        assert_that(self.resource.image.reference(), is_('mcr.microsoft.com/playwright:v1.53.0-noble'))

    def test_endpoint(self):
        endpoint = self.resource.primary_endpoint
        assert_that(endpoint.name, is_('ws'))
        assert_that(endpoint.port, is_(30003))
        assert_that(endpoint.target_port, is_(3000))

    def test_published_port(self):
        assert_that(add_playwright('playwright', port=4444).connection_string(), is_('ws://localhost:4444'))

    def test_connection_string(self):
        assert_that(self.builder.connection_string(), is_('ws://localhost:30003'))
        assert_that(self.builder.connection_string('10.0.0.5'), is_('ws://10.0.0.5:30003'))

    def test_health_check(self):
        assert_that(self.builder.health_check_url(), is_('http://localhost:30003/json/list'))

    def test_server_args(self):
        assert_that(self.resource.args, contains_exactly('npx', '-y', 'playwright@1.53.0', 'run-server',
                                                         '--port', '3000', '--host', '0.0.0.0'))

    def test_runtime_args(self):
        assert_that(self.resource.runtime_args, contains_exactly('--add-host', 'host.docker.internal:host-gateway',
                                                                 '--init', '--ipc=host'))

    def test_environment(self):
        assert_that(self.resource.environment, has_entries({'PLAYWRIGHT_BROWSERS_PATH': '/ms-playwright',
                                                            'PLAYWRIGHT_SKIP_BROWSER_DOWNLOAD': '1'}))

    def test_data_volume(self):
        self.builder.with_data_volume()
        volume = self.resource.volumes[0]
        assert_that(volume.name, is_('playwright-data'))
        assert_that(volume.target, is_(DATA_VOLUME_TARGET))
        assert_that(volume.read_only, is_(False))

    def test_named_read_only_volume(self):
        self.builder.with_data_volume('cache', read_only=True)
        assert_that(self.resource.volumes[0].mount(), is_('cache:%s:ro' % DATA_VOLUME_TARGET))

    def test_development_mode(self):
        self.builder.with_development_mode()
        assert_that(self.resource.runtime_args, has_item('--cap-add=SYS_ADMIN'))

    def test_host_network_access(self):
        self.builder.with_host_network_access('gateway.local')
        assert_that(self.resource.runtime_args, has_item('--add-host=gateway.local:host-gateway'))

    def test_docker_run_args(self):
        argv = self.builder.with_data_volume().docker_run_args()
        assert_that(argv[:5], contains_exactly('docker', 'run', '--rm', '--name', 'playwright'))
        assert_that(argv, has_item('30003:3000'))
        assert_that(argv, has_item('PLAYWRIGHT_SKIP_BROWSER_DOWNLOAD=1'))
        assert_that(argv, has_item('playwright-data:%s' % DATA_VOLUME_TARGET))
        image = argv.index('mcr.microsoft.com/playwright:v1.53.0-noble')
        assert_that(argv[image + 1:], has_length(8))
        assert_that(argv.index('--init'), is_(argv.index('--ipc=host') - 1))

    def test_reference_environment_feeds_configuration_store(self):
        environ = self.builder.reference_environment()
        assert_that(environ, is_({'ConnectionStrings__playwright': 'ws://localhost:30003'}))
        store = ConfigurationStore.from_environ(environ)
        assert_that(store.get_connection_string('playwright'), is_('ws://localhost:30003'))
