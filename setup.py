"""
Provides project-level commands. Commands are run via `python setup.py <command> [args]`

Commands available:

- server: runs a local playwright server container, published on the default port.
"""

from setuptools import setup, Command

import os


class RunInRootCommand(Command):
    user_options = []

    def initialize_options(self):
        self.cwd = None

    def finalize_options(self):
        self.cwd = os.getcwd()

    def run(self):
        assert os.getcwd() == self.cwd, 'Must be in package root: %s' % self.cwd
        self.runcmd()

    def runcmd(self):
        pass


class ServerCommand(RunInRootCommand):
    description = "runs a playwright server container for the integration tests"

    def runcmd(self):
        from pwconnect.hosting.resource import add_playwright
        os.execvp('docker', add_playwright('playwright').docker_run_args())


setup(
    name='pwconnect',
    version='0.1.0',
    description='Connects to a playwright server resource and navigates to the resources it references.',
    url='',
    author='',
    author_email='',
    license='LGPL',
    package_dir={'': 'src'},
    packages=['pwconnect', 'pwconnect.config', 'pwconnect.connector', 'pwconnect.hosting', 'pwconnect.support'],
    package_data={'pwconnect.config': ['*.cfg']},
    python_requires='>=3.8',
    install_requires=[
        'configobj>=5.0.8,<5.1',
        'opentelemetry-api>=1.20',
        'playwright>=1.53',
    ],
    extras_require={
        'test': ['pytest', 'PyHamcrest>=2.0', 'timeout-decorator'],
    },
    zip_safe=False,
    cmdclass={
        'server': ServerCommand,
    }
)
