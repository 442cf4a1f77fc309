"""
Shared fixtures for the Opal loader tests.
"""
import os
import subprocess
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
sys.path.insert(0, ROOT)

from opal_loader.config import LoaderConfig  # noqa: E402
from transpiler import Transpiler  # noqa: E402

FIXTURES = os.path.join(ROOT, 'tests', 'fixtures')
LOAD_PATH = ['./tests/fixtures', './tests/fixtures/load_path']
ALTERNATE_COMPILER = os.path.join(FIXTURES, 'alternate_compiler', 'tweaked_compiler.py')
ALTERNATE_RUNTIME = os.path.join(FIXTURES, 'alternate_compiler', 'tweaked_opal.js')
LOADER_PATH = 'the_loader_path'


class FakeRunner:
    """Stands in for subprocess.run; replies with canned output and records calls."""

    def __init__(self, stdout="", stderr="", returncode=0):
        self.stdout = stdout
        self.stderr = stderr
        self.returncode = returncode
        self.calls = []

    def __call__(self, command, **kwargs):
        self.calls.append((list(command), kwargs))
        return subprocess.CompletedProcess(command, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def config():
    """Loader config pointing at the test fixtures."""
    return LoaderConfig(load_path=LOAD_PATH)


@pytest.fixture
def context():
    return {'path': LOADER_PATH}


@pytest.fixture
def do_transpile(config, context):
    """Transpile Ruby code the way the bundler would, returning the code."""
    def run(code, options=None, filename=None, relative_file_name=None, loader_config=None, runner=None):
        target_options = {
            'sourceRoot': ROOT,
            'filename': filename or 'foo.rb',
            'relativeFileName': relative_file_name or 'foo.rb',
        }
        target_options.update(options or {})
        kwargs = {'runner': runner} if runner is not None else {}
        transpiler = Transpiler(loader_config or config, **kwargs)
        return transpiler.transpile(code, target_options, context).code
    return run
