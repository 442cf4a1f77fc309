"""
Transpile stage of the Opal loader: Ruby asset in, bundler-ready JavaScript out.
"""
import os
import subprocess

from opal_loader.compilers import CompilerCache, CompilerProvider
from opal_loader.config import BundlerContext, LoaderConfig, TranspileOptions, TranspileResult
from opal_loader.load_path import BundlerLoadPath, search_path_for
from opal_loader.log import debug_log, set_verbose
from opal_loader.resolver import PathResolver
from opal_loader.rewriter import RequireRewriter

# Opal's runtime looks for node's `process` while booting
PASSTHROUGH_GUARD = "process = undefined;\n"


class Transpiler:
    """
    Compiles Ruby assets for one bundler run.

    The Transpiler owns its compiler cache, so separate runs (and tests) never
    share loaded compilers. Generated code is never cached here.

    Args:
        config: LoaderConfig, defaults to one read from the environment
        cache: CompilerCache to share between Transpilers
        load_path_provider: Bundler load path provider (see load_path.py)
        runner: subprocess.run compatible callable for Bundler commands
    """

    def __init__(self, config=None, cache=None, load_path_provider=None, runner=subprocess.run):
        self.config = config if config is not None else LoaderConfig.from_env()
        if self.config.verbose:
            set_verbose(True)
        self.cache = cache if cache is not None else CompilerCache()
        self.provider = CompilerProvider(self.config, self.cache, runner=runner)
        self.load_path_provider = load_path_provider or BundlerLoadPath(self.config, runner=runner)
        self._search_path = None

    @property
    def search_path(self):
        if self._search_path is None:
            self._search_path = search_path_for(self.config, self.load_path_provider)
        return self._search_path

    def resolver_for(self, options):
        return PathResolver(self.search_path, root=options.root)

    def transpile(self, source, options, context):
        """
        Compile `source` and rewrite its requires.

        Args:
            source: Ruby source text
            options: TranspileOptions or a dict of loader options
            context: BundlerContext or a dict with the loader `path`

        Returns:
            TranspileResult with the generated `code`

        Raises:
            CompileError: Passed through from the compiler untouched
        """
        if not isinstance(options, TranspileOptions):
            options = TranspileOptions.model_validate(options or {})
        if not isinstance(context, BundlerContext):
            context = BundlerContext.model_validate(context)

        if options.filename and os.path.abspath(options.filename) in self.provider.own_files():
            debug_log(f"Passing compiler file through: {options.filename}")
            return TranspileResult(code=PASSTHROUGH_GUARD + source)

        compiler = self.provider.get_compiler()
        debug_log(f"Compiling {options.filename or '<source>'} with Opal {compiler.origin}")
        code = compiler.compile(source, {
            "file": options.module_key(),
            "requirable": options.requirable,
            "arity_check": options.arity_check,
        })

        rewriter = RequireRewriter(self.resolver_for(options), compiler, self.config)
        return TranspileResult(code=rewriter.rewrite(code, options, context))


def transpile(source, options, context, config=None):
    """One-off transpile using a config from the environment."""
    return Transpiler(config).transpile(source, options, context)
