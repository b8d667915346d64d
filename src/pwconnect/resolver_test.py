from unittest import TestCase

from hamcrest import assert_that, calling, is_, none, raises, starts_with

from pwconnect.config.config import ConfigurationStore
from pwconnect.connector.base import InvalidArgumentError, ResourceNotFoundError
from pwconnect.resolver import AddressCache, AddressResolver, downgrade_scheme, process_cache, replace_host, \
    rewrite_loopback


class AddressCacheTest(TestCase):

    def test_insert_once(self):
        cache = AddressCache()
        assert_that(cache.get('web'), is_(none()))
        assert_that(cache.put_if_absent('web', 'http://a'), is_('http://a'))
        assert_that(cache.put_if_absent('web', 'http://b'), is_('http://a'))
        assert_that(cache.get('web'), is_('http://a'))
        assert_that('web' in cache, is_(True))
        assert_that(len(cache), is_(1))

    def test_clear(self):
        cache = AddressCache()
        cache.put_if_absent('web', 'http://a')
        cache.clear()
        assert_that(len(cache), is_(0))

    def test_process_cache_is_shared(self):
        assert_that(process_cache(), is_(process_cache()))
        assert_that(AddressResolver(ConfigurationStore()).cache, is_(process_cache()))


class UrlRewriteTest(TestCase):

    def test_rewrite_loopback_any_scheme(self):
        for scheme in ('http', 'https', 'ws', 'wss'):
            url = rewrite_loopback('%s://localhost:5000/path' % scheme)
            assert_that(url, is_('%s://host.docker.internal:5000/path' % scheme))

    def test_rewrite_loopback_case_insensitive(self):
        assert_that(rewrite_loopback('http://LocalHost:80'), is_('http://host.docker.internal:80'))

    def test_other_hosts_untouched(self):
        assert_that(rewrite_loopback('http://example.com/localhost'), is_('http://example.com/localhost'))
        assert_that(rewrite_loopback('http://127.0.0.1:80'), is_('http://127.0.0.1:80'))

    def test_replace_host_without_port(self):
        assert_that(replace_host('http://localhost/a', 'h'), is_('http://h/a'))

    def test_downgrade_only_secure(self):
        assert_that(downgrade_scheme('https://h:1/a'), is_('http://h:1/a'))
        assert_that(downgrade_scheme('http://h:1/a'), is_('http://h:1/a'))


class AddressResolverTest(TestCase):

    def setUp(self):
        self.values = {
            'services:webfrontend:https:0': 'https://localhost:7001/',
            'services:webfrontend:http:0': 'http://localhost:5001',
            'services:apiservice:http:0': 'http://localhost:5100',
            'services:remote:https:0': 'https://example.com:8443',
            'services:blank:https:0': '',
            'services:blank:http:0': '  ',
            'services:halfset:https:0': '  ',
            'services:halfset:http:0': 'http://localhost:5002',
        }
        self.cache = AddressCache()

    def resolver(self, isolated_network=False):
        return AddressResolver(ConfigurationStore(self.values), self.cache, isolated_network)

    def test_empty_name(self):
        for name in ('', '   ', None):
            assert_that(calling(self.resolver().resolve).with_args(name), raises(InvalidArgumentError))

    def test_unregistered_service(self):
        assert_that(calling(self.resolver().resolve).with_args('unregistered-service'),
                    raises(ResourceNotFoundError, "Make sure the service is referenced"))

    def test_blank_entries_not_found(self):
        assert_that(calling(self.resolver().resolve).with_args('blank'), raises(ResourceNotFoundError))

    def test_not_found_is_not_cached(self):
        resolver = self.resolver()
        assert_that(calling(resolver.resolve).with_args('later'), raises(ResourceNotFoundError))
        self.values['services:later:http:0'] = 'http://localhost:1'
        resolver.configuration = ConfigurationStore(self.values)
        assert_that(resolver.resolve('later'), is_('http://host.docker.internal:1'))

    def test_prefers_secure_entry(self):
        url = self.resolver(isolated_network=False).resolve('webfrontend')
        assert_that(url, is_('https://host.docker.internal:7001'))

    def test_falls_back_to_plain_entry(self):
        assert_that(self.resolver().resolve('apiservice'), is_('http://host.docker.internal:5100'))

    def test_blank_secure_entry_falls_back_to_plain_entry(self):
        assert_that(self.resolver().resolve('halfset'), is_('http://host.docker.internal:5002'))

    def test_loopback_host_never_survives(self):
        for name in ('webfrontend', 'apiservice'):
            for isolated in (True, False):
                self.cache.clear()
                url = self.resolver(isolated).resolve(name)
                assert_that(url, starts_with('http'))
                assert_that('localhost' in url, is_(False))

    def test_secure_downgraded_in_isolated_network(self):
        assert_that(self.resolver(isolated_network=True).resolve('webfrontend'),
                    is_('http://host.docker.internal:7001'))

    def test_downgrade_applies_to_remote_hosts(self):
        assert_that(self.resolver(isolated_network=True).resolve('remote'), is_('http://example.com:8443'))

    def test_secure_kept_outside_isolated_network(self):
        assert_that(self.resolver(isolated_network=False).resolve('remote'), is_('https://example.com:8443'))

    def test_cached_result_is_stable(self):
        resolver = self.resolver()
        first = resolver.resolve('apiservice')
        self.values['services:apiservice:http:0'] = 'http://elsewhere:9999'
        resolver.configuration = ConfigurationStore(self.values)
        assert_that(resolver.resolve('apiservice'), is_(first))

    def test_cache_hit_skips_rewrites(self):
        self.cache.put_if_absent('apiservice', 'https://localhost:1')
        assert_that(self.resolver(isolated_network=True).resolve('apiservice'), is_('https://localhost:1'))

    def test_bypass_cache(self):
        resolver = self.resolver()
        first = resolver.resolve('apiservice')
        self.values['services:apiservice:http:0'] = 'http://elsewhere:9999'
        resolver.configuration = ConfigurationStore(self.values)
        assert_that(resolver.resolve('apiservice', use_cache=False), is_('http://elsewhere:9999'))
        assert_that(resolver.resolve('apiservice'), is_(first))

    def test_racing_resolvers_agree(self):
        first = self.resolver().resolve('apiservice')
        self.values['services:apiservice:http:0'] = 'http://elsewhere:9999'
        second = AddressResolver(ConfigurationStore(self.values), self.cache).resolve('apiservice')
        assert_that(second, is_(first))
