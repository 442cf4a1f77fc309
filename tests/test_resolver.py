"""
Unit tests for opal_loader/resolver.py - PathResolver.
"""
import os

import pytest

from conftest import FIXTURES, LOAD_PATH, ROOT
from opal_loader.errors import NotFoundError
from opal_loader.resolver import PathResolver


@pytest.fixture
def resolver():
    return PathResolver(LOAD_PATH, root=ROOT)


def write(path, content=''):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w') as f:
        f.write(content)


class TestResolve:
    """Tests for resolving module names on the load path."""

    def test_resolves_a_test_fixture(self, resolver):
        """The .rb extension is appended and the relative path follows the requester."""
        requester = os.path.join(FIXTURES, 'nested', 'deep', 'main.rb')
        result = resolver.resolve('arity_1', requester)

        assert result.absolute == os.path.join(FIXTURES, 'arity_1.rb')
        assert result.relative == os.path.join('..', '..', 'arity_1.rb')

    def test_relative_to_root_without_requester(self, resolver):
        result = resolver.resolve('arity_1')

        assert result.relative == os.path.join('tests', 'fixtures', 'arity_1.rb')

    def test_relative_path_reaches_absolute_path(self, resolver):
        """Joining the requester's directory with `relative` lands on `absolute`."""
        for requester in [os.path.join(ROOT, 'app', 'main.rb'), os.path.join(FIXTURES, 'x.rb'), '/elsewhere/y.rb']:
            result = resolver.resolve('another_dependency', requester)
            joined = os.path.normpath(os.path.join(os.path.dirname(requester), result.relative))
            assert joined == result.absolute
            assert os.path.isfile(result.absolute)

    def test_same_module_from_different_requesters(self, resolver):
        a = resolver.resolve('arity_1', os.path.join(FIXTURES, 'a.rb'))
        b = resolver.resolve('arity_1', os.path.join(FIXTURES, 'sub', 'b.rb'))

        assert a.absolute == b.absolute
        assert a.relative != b.relative

    def test_explicit_extension(self, resolver):
        result = resolver.resolve('arity_1.rb')
        assert result.absolute == os.path.join(FIXTURES, 'arity_1.rb')

    def test_javascript_module(self, resolver):
        """Modules that only exist as .js resolve to the .js file."""
        result = resolver.resolve('pure_js')

        assert result.absolute == os.path.join(FIXTURES, 'pure_js.js')
        assert not result.is_ruby

    def test_later_load_path_entry(self, resolver):
        result = resolver.resolve('from_load_path')
        assert result.absolute == os.path.join(FIXTURES, 'load_path', 'from_load_path.rb')
        assert result.is_ruby

    def test_throws_error_if_not_found(self, resolver):
        with pytest.raises(NotFoundError) as excinfo:
            resolver.resolve('not_found.rb')

        assert str(excinfo.value) == (
            'Cannot find file - not_found.rb in load path ./tests/fixtures,./tests/fixtures/load_path'
        )
        assert excinfo.value.module_name == 'not_found.rb'
        assert excinfo.value.load_path == LOAD_PATH

    def test_error_lists_every_directory_in_order(self, tmp_path):
        dirs = [str(tmp_path / name) for name in ('zeta', 'alpha', 'mid', 'alpha')]
        with pytest.raises(NotFoundError) as excinfo:
            PathResolver(dirs).resolve('missing')

        assert ','.join(dirs) in str(excinfo.value)


class TestSearchOrder:
    """First directory with a match wins; nothing is merged."""

    def test_first_match_wins(self, tmp_path):
        first, second = str(tmp_path / 'first'), str(tmp_path / 'second')
        write(os.path.join(first, 'shared.rb'))
        write(os.path.join(second, 'shared.rb'))

        assert PathResolver([first, second]).resolve('shared').absolute == os.path.join(first, 'shared.rb')
        assert PathResolver([second, first]).resolve('shared').absolute == os.path.join(second, 'shared.rb')

    def test_ruby_preferred_over_javascript(self, tmp_path):
        write(str(tmp_path / 'both.rb'))
        write(str(tmp_path / 'both.js'))

        assert PathResolver([str(tmp_path)]).resolve('both').absolute == str(tmp_path / 'both.rb')

    def test_earlier_directory_javascript_beats_later_ruby(self, tmp_path):
        write(str(tmp_path / 'a' / 'lib.js'))
        write(str(tmp_path / 'b' / 'lib.rb'))

        resolved = PathResolver([str(tmp_path / 'a'), str(tmp_path / 'b')]).resolve('lib')
        assert resolved.absolute == str(tmp_path / 'a' / 'lib.js')

    def test_nested_module_names(self, tmp_path):
        write(str(tmp_path / 'opal' / 'browser' / 'dom.rb'))

        resolved = PathResolver([str(tmp_path)]).resolve('opal/browser/dom')
        assert resolved.absolute == str(tmp_path / 'opal' / 'browser' / 'dom.rb')

    def test_directories_are_not_files(self, tmp_path):
        os.makedirs(str(tmp_path / 'pkg.rb'))
        with pytest.raises(NotFoundError):
            PathResolver([str(tmp_path)]).resolve('pkg')

    def test_search_path_is_not_mutated(self, tmp_path):
        write(str(tmp_path / 'mod.rb'))
        paths = [str(tmp_path)]
        resolver = PathResolver(paths)
        paths.append('/somewhere/else')
        paths.reverse()

        assert resolver.search_paths == (str(tmp_path),)
        resolver.resolve('mod')
        assert resolver.search_paths == (str(tmp_path),)

    def test_resolved_module_is_immutable(self, resolver):
        result = resolver.resolve('arity_1')
        with pytest.raises(Exception):
            result.absolute = '/tmp/other.rb'
