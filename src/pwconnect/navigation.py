import logging
from urllib.parse import urljoin

from pwconnect.connector.base import ConnectorError, InvalidArgumentError, NavigationError

logger = logging.getLogger(__name__)


def normalize_relative_url(relative_url):
    """
    Normalizes a path relative to a resource so that it starts with a forward slash.
    Urls with a protocol or authority are rejected, since they could navigate to a different host.

    >>> normalize_relative_url('  ')
    '/'
    >>> normalize_relative_url(' counter ')
    '/counter'
    >>> normalize_relative_url('/weather?days=3')
    '/weather?days=3'
    """
    if relative_url is None or not relative_url.strip():
        return '/'
    relative_url = relative_url.strip()
    if '://' in relative_url or relative_url.startswith('//'):
        raise InvalidArgumentError("Relative URL cannot contain protocol or authority components: %s" % relative_url)
    if not relative_url.startswith('/'):
        relative_url = '/' + relative_url
    return relative_url


def build_url(base_uri, relative_path):
    """
    Combines the url of a resource with a path relative to it. The path replaces the path of the base url.

    >>> build_url('http://host:8080', 'counter')
    'http://host:8080/counter'
    >>> build_url('http://host:8080/app/', '/weather#today')
    'http://host:8080/weather#today'
    """
    return urljoin(str(base_uri), normalize_relative_url(relative_path))


async def goto_resource_page(page, resolver, resource_name, relative_url='', **goto_options):
    """
    Navigates a page to a url of a resource.
    :param page: the playwright Page to navigate
    :param resolver: resolves the resource name to its url
    :param resource_name: the logical name of the resource
    :param relative_url: the path within the resource
    :param goto_options: further keyword arguments for `page.goto`, such as `timeout`
    :return: the response from `page.goto`
    """
    url = build_url(resolver.resolve(resource_name), relative_url)
    logger.debug("navigating to %s for resource %s" % (url, resource_name))
    try:
        return await page.goto(url, **goto_options)
    except ConnectorError:
        raise
    except Exception as e:
        raise NavigationError("Failed to navigate to resource '%s' at %s: %s" % (resource_name, url, e)) from e
