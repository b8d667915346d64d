"""
Configuration sources for resolving resources.

Two kinds of configuration are handled here:

- settings files, in configobj format, that describe the connection policy and resolver options.
  These are layered from a default file, a platform-specific file, a user file and a local file,
  and validated against a schema file.
- the configuration store, a flat, read-only mapping of colon-separated keys such as
  `services:webfrontend:http:0` and `ConnectionStrings:playwright`. The orchestrator
  provides these as environment variables, using `__` in place of `:`.
"""
import os
import platform

from configobj import ConfigObj, ConfigObjError, Section
from validate import Validator

# The default extension for configuration files
config_extension = '.cfg'

# the settings name of this package, used to find the bundled settings files
settings_name = 'pwconnect'

# the separator between the parts of a configuration store key
key_separator = ':'

# the separator used in place of key_separator in environment variable names
environ_separator = '__'

truthy = ('1', 'true', 'yes', 'on')


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    return os.path.join(directory, name + config_extension)


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    file = config_filename(config_flavor(name, subpart), directory)
    return load_config_file_base(file, False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def load_config(name, directory, user_directory='~', base_directory=None):
    """
    Loads all the configuration files that relate to the given name.
    Configurations are merged in this order, later ones overriding earlier ones:
    - the default specialization
    - the platform specialization
    - the user override, in the user's home directory
    - the local configuration
    The merged configuration is validated against the schema specialization, which also
    supplies default values for anything not configured.

    :param directory: the location of the configuration files
    :param user_directory: the directory holding the user override
    :param base_directory: the location of the default and schema files. Defaults to `directory`.
    :return: the validated ConfigObj
    """
    base_directory = base_directory or directory
    local_config = config_flavor_file(name, directory)
    default_config = config_flavor_file(name, base_directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_config = load_config_file_base(os.path.join(os.path.expanduser(user_directory),
                                                     name + config_extension), must_exist=False)
    config = ConfigObj(configspec=config_filename(config_flavor(name, 'schema'), base_directory))
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)

    result = config.validate(Validator())
    if result is not True:
        raise ConfigObjError("the config file %s failed validation %s" % (name, result))
    return config


def settings_directory():
    """ The directory containing the settings files bundled with this package. """
    return os.path.dirname(os.path.abspath(__file__))


def load_settings(directory=None, user_directory='~'):
    """
    Loads the pwconnect settings.
    :param directory: a directory containing `pwconnect.cfg` and its platform flavors. The bundled defaults
        and schema are always used.
    :return: the validated settings, with `connection` and `resolver` sections.
    """
    bundled = settings_directory()
    return load_config(settings_name, directory or bundled, user_directory=user_directory, base_directory=bundled)


def flatten_conf(conf: Section, prefix=()):
    """
    Flattens nested configuration sections into a dictionary of colon-separated keys.

    >>> flatten_conf({'services': {'web': {'http': {'0': 'http://localhost:80'}}}})
    {'services:web:http:0': 'http://localhost:80'}
    """
    flat = {}
    for k, v in conf.items():
        path = prefix + (str(k),)
        if isinstance(v, dict):
            flat.update(flatten_conf(v, path))
        else:
            flat[key_separator.join(path)] = v
    return flat


def environ_key(name):
    """
    Converts an environment variable name to a configuration store key.
    >>> environ_key('services__webfrontend__https__0')
    'services:webfrontend:https:0'
    """
    return name.replace(environ_separator, key_separator)


class ConfigurationStore:
    """
    A read-only lookup of colon-separated configuration keys. Keys are matched case-insensitively,
    as the orchestrator does.
    """

    def __init__(self, values=None):
        self._values = {k.lower(): (k, v) for k, v in (values or {}).items()}

    @classmethod
    def from_environ(cls, environ=None):
        """ Builds a store from environment variables, mapping `__` in names to `:`. """
        environ = os.environ if environ is None else environ
        return cls({environ_key(k): v for k, v in environ.items()})

    @classmethod
    def from_config(cls, conf: Section):
        """ Builds a store from a configobj configuration, flattening nested sections. """
        return cls(flatten_conf(conf))

    @classmethod
    def merged(cls, *stores):
        """ Combines several stores. Values in later stores replace values from earlier ones. """
        values = {}
        for store in stores:
            values.update(store.items())
        return cls(values)

    def get(self, key, default=None):
        entry = self._values.get(key.lower())
        return default if entry is None else entry[1]

    def __getitem__(self, key):
        entry = self._values.get(key.lower())
        if entry is None:
            raise KeyError(key)
        return entry[1]

    def __contains__(self, key):
        return key.lower() in self._values

    def __len__(self):
        return len(self._values)

    def items(self):
        return [entry for entry in self._values.values()]

    def service_endpoint(self, resource_name, scheme, index=0):
        """
        Retrieves the endpoint the orchestrator published for a service.
        >>> ConfigurationStore({'services:web:http:0': 'http://localhost:80'}).service_endpoint('web', 'http')
        'http://localhost:80'
        """
        return self.get(key_separator.join(('services', resource_name, scheme, str(index))))

    def get_connection_string(self, resource_name):
        return self.get(key_separator.join(('ConnectionStrings', resource_name)))


def running_in_container(environ=None, marker='/.dockerenv'):
    """
    Determines if this process runs in an isolated network namespace, such as a container.

    An explicit `PWCONNECT_ISOLATED_NETWORK` setting decides. Otherwise the environment
    variables the container runtimes and orchestrator set are checked, and then the docker marker file.

    >>> running_in_container({'PWCONNECT_ISOLATED_NETWORK': 'no', 'DOTNET_RUNNING_IN_CONTAINER': 'true'}, None)
    False
    >>> running_in_container({'ASPIRE_ALLOW_UNSECURED_TRANSPORT': 'true'}, None)
    True
    """
    environ = os.environ if environ is None else environ
    explicit = environ.get('PWCONNECT_ISOLATED_NETWORK')
    if explicit is not None and explicit.strip():
        return explicit.strip().lower() in truthy
    if environ.get('DOTNET_RUNNING_IN_CONTAINER') or environ.get('ASPIRE_ALLOW_UNSECURED_TRANSPORT'):
        return True
    return bool(marker) and os.path.exists(marker)
