"""
Unit tests for opal_loader/config.py.
"""
import os

import pytest
from pydantic import ValidationError

from opal_loader.config import BundlerContext, LoaderConfig, TranspileOptions


class TestLoaderConfigFromEnv:
    """Tests for building the loader config from environment variables."""

    def test_defaults(self):
        config = LoaderConfig.from_env({})

        assert config.compiler_path is None
        assert config.use_bundler is False
        assert config.granular_assets is False
        assert config.rails_env is None
        assert config.load_path == ['.']
        assert config.bundle_command == ['bundle', 'exec']
        assert config.verbose is False

    @pytest.mark.parametrize('value', ['1', 'true', 'TRUE', 'yes', 'on'])
    def test_use_bundler_flag(self, value):
        assert LoaderConfig.from_env({'OPAL_USE_BUNDLER': value}).use_bundler is True

    @pytest.mark.parametrize('value', ['', '0', 'false', 'nope'])
    def test_use_bundler_flag_off(self, value):
        assert LoaderConfig.from_env({'OPAL_USE_BUNDLER': value}).use_bundler is False

    def test_rails_env_implies_bundler(self):
        config = LoaderConfig.from_env({'RAILS_ENV': 'foobar'})

        assert config.use_bundler is True
        assert config.rails_env == 'foobar'

    def test_compiler_path(self):
        config = LoaderConfig.from_env({'OPAL_COMPILER_PATH': '/opt/opal/compiler.py'})
        assert config.compiler_path == '/opt/opal/compiler.py'

    def test_granular_assets(self):
        config = LoaderConfig.from_env({'OPAL_USE_BUNDLER': 'true', 'OPAL_GRANULAR_ASSETS': '1'})

        assert config.use_bundler is True
        assert config.granular_assets is True

    def test_load_path_is_comma_separated(self):
        config = LoaderConfig.from_env({'OPAL_LOAD_PATH': './app/opal, ./vendor/opal,,'})
        assert config.load_path == ['./app/opal', './vendor/opal']

    def test_verbose(self):
        assert LoaderConfig.from_env({'OPAL_LOADER_VERBOSE': 'yes'}).verbose is True

    def test_overrides_win(self):
        config = LoaderConfig.from_env({'OPAL_USE_BUNDLER': '1'}, use_bundler=False, load_path=['lib'])

        assert config.use_bundler is False
        assert config.load_path == ['lib']

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv('OPAL_COMPILER_PATH', '/from/environ.py')
        assert LoaderConfig.from_env().compiler_path == '/from/environ.py'

    def test_config_is_frozen(self):
        config = LoaderConfig()
        with pytest.raises(ValidationError):
            config.use_bundler = True


class TestTranspileOptions:
    """Tests for per-asset options."""

    def test_camel_case_keys(self):
        options = TranspileOptions.model_validate({
            'filename': '/app/foo.rb',
            'relativeFileName': 'foo.rb',
            'sourceRoot': '/app',
            'externalOpal': True,
            'arity_check': True,
            'requirable': True,
            'stubs': ['stubbed', 'stubbed'],
        })

        assert options.relative_file_name == 'foo.rb'
        assert options.source_root == '/app'
        assert options.external_opal is True
        assert options.arity_check is True
        assert options.requirable is True
        assert options.stubs == frozenset({'stubbed'})

    def test_relative_filename_spelling(self):
        options = TranspileOptions.model_validate({'relativeFilename': 'bar.rb'})
        assert options.relative_file_name == 'bar.rb'

    def test_snake_case_names(self):
        options = TranspileOptions(relative_file_name='baz.rb', external_opal=True, source_root='/x')

        assert options.relative_file_name == 'baz.rb'
        assert options.external_opal is True
        assert options.source_root == '/x'

    def test_unknown_keys_are_ignored(self):
        options = TranspileOptions.model_validate({'cacheDirectory': '/tmp', 'requirable': True})
        assert options.requirable is True

    def test_defaults(self):
        options = TranspileOptions()

        assert options.requirable is False
        assert options.arity_check is False
        assert options.external_opal is False
        assert options.stubs == frozenset()
        assert options.root == os.getcwd()


class TestModuleKey:
    """The key a requirable module registers itself under."""

    def test_extension_is_stripped(self):
        assert TranspileOptions(relative_file_name='foo.rb').module_key() == 'foo'

    def test_directories_are_kept(self):
        assert TranspileOptions(relative_file_name='lib/opal/thing.rb').module_key() == 'lib/opal/thing'

    def test_derived_from_filename(self):
        options = TranspileOptions(filename='/app/lib/widget.rb', source_root='/app')
        assert options.module_key() == 'lib/widget'

    def test_empty_without_names(self):
        assert TranspileOptions().module_key() == ''


class TestBundlerContext:
    def test_requires_path(self):
        assert BundlerContext.model_validate({'path': 'loader'}).path == 'loader'
        with pytest.raises(ValidationError):
            BundlerContext.model_validate({})
