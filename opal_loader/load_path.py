"""
Search path providers.

The static load path comes from configuration. When Bundler is active, the
gems in the bundle contribute their Opal load paths too; those are obtained by
asking Ruby, since only Bundler knows where the gems live.
"""
import os
import subprocess

from opal_loader.errors import LoadPathError
from opal_loader.log import debug_log

# Prints one load path entry per line. Under Rails the app environment is
# loaded first so engines can register their paths.
BUNDLER_LOAD_PATH_SCRIPT = (
    'require "bundler/setup"; '
    'Bundler.require(*Bundler.groups); '
    'require File.expand_path("config/environment") if ENV["RAILS_ENV"] && File.exist?("config/environment.rb"); '
    'require "opal"; '
    'puts Opal.paths'
)


class BundlerLoadPath:
    """Asks `bundle exec ruby` for Opal's load path. Runs at most once per instance."""

    def __init__(self, config, runner=subprocess.run):
        self.config = config
        self.runner = runner
        self._paths = None

    @property
    def command(self):
        return list(self.config.bundle_command) + ["ruby", "-e", BUNDLER_LOAD_PATH_SCRIPT]

    def _environment(self):
        env = dict(os.environ)
        if self.config.rails_env:
            env["RAILS_ENV"] = self.config.rails_env
        return env

    def paths(self):
        if self._paths is not None:
            return self._paths

        command = self.command
        debug_log(f"Discovering load path: {' '.join(command[:-1])} <script>")
        try:
            result = self.runner(
                command,
                capture_output=True,
                text=True,
                env=self._environment(),
            )
        except OSError as e:
            raise LoadPathError(command, str(e))

        if result.returncode != 0:
            raise LoadPathError(command, result.stderr)

        self._paths = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        debug_log(f"Bundler load path has {len(self._paths)} entries")
        return self._paths


def search_path_for(config, bundler=None):
    """
    The effective search path: configured entries first, then Bundler's.

    Args:
        config: LoaderConfig
        bundler: Optional provider with a `paths()` method, used when
            Bundler mode is on (defaults to BundlerLoadPath)
    """
    paths = list(config.load_path)
    if config.use_bundler:
        provider = bundler if bundler is not None else BundlerLoadPath(config)
        paths.extend(provider.paths())
    return tuple(paths)
