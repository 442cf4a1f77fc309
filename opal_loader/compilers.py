"""
Compiler selection.

Three interchangeable Opal compilers are supported:

- the compiler bundled with this package (opal_loader.opal)
- a Python file named by `compiler_path`, which must export `compile`
- the Opal gem from the Ruby bundle, reached through `bundle exec opal`
  (the "runtime redirect": nothing is loaded in process, each asset is
  compiled by the gem and `opal` itself resolves through the load path)

CompilerProvider picks one according to the LoaderConfig and keeps loaded
compilers in a CompilerCache.
"""
import importlib.util
import os
import re
import subprocess
import threading
from abc import ABC, abstractmethod

from opal_loader import opal as bundled_opal
from opal_loader.errors import CompileError, CompilerLoadError
from opal_loader.log import debug_log

# self.$require("x") / self.$require_relative("x") as emitted by the Opal gem
_GEM_REQUIRE = re.compile(r'self\.\$require(_relative)?\("((?:[^"\\]|\\.)*)"\)')


class Compiler(ABC):
    """An Opal compiler: Ruby source in, JavaScript out."""

    origin = "unknown"
    # Runtime file that bundles include for `require "opal"` (None if not bundled)
    filename = None

    @abstractmethod
    def compile(self, source, options):
        """Compile `source` with options {file, requirable, arity_check}."""

    @abstractmethod
    def version(self):
        pass

    def __repr__(self):
        return f"<{type(self).__name__} {self.origin} {self.filename}>"


class ModuleCompiler(Compiler):
    """A compiler implemented by a Python module exporting `compile`."""

    def __init__(self, module, filename, origin):
        self.module = module
        self.filename = filename
        self.origin = origin

    def compile(self, source, options):
        return self.module.compile(source, options)

    def version(self):
        return str(getattr(self.module, "VERSION", "unknown"))


class BundledCompiler(ModuleCompiler):
    def __init__(self):
        super().__init__(bundled_opal, bundled_opal.RUNTIME_FILENAME, "bundled")


class PathCompiler(ModuleCompiler):
    """
    Loads a compiler from a Python file.

    The file must define `compile(source, options)`. It may define `VERSION`
    and `RUNTIME_FILENAME` (relative to the file); without the latter the file
    itself is what gets bundled for `require "opal"`.
    """

    def __init__(self, path):
        path = os.path.abspath(path)
        module = self._load(path)
        runtime = getattr(module, "RUNTIME_FILENAME", None)
        filename = os.path.join(os.path.dirname(path), runtime) if runtime else path
        super().__init__(module, filename, "path")
        self.path = path

    @staticmethod
    def _load(path):
        if not os.path.isfile(path):
            raise CompilerLoadError(path, "file does not exist")

        module_name = "opal_loader_custom_" + re.sub(r"\W", "_", os.path.splitext(os.path.basename(path))[0])
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise CompilerLoadError(path, "not an importable Python file")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise CompilerLoadError(path, f"import failed: {e}") from e

        if not callable(getattr(module, "compile", None)):
            raise CompilerLoadError(path, "does not export a compile(source, options) function")
        return module


class RuntimeRedirect(Compiler):
    """
    Defers to the Opal gem in the Ruby bundle, one process per asset.

    The gem leaves `self.$require(...)` calls in its output; they are hoisted
    into `require("x");` prologue lines so the rewriter sees them like any
    other compiler's dependencies.
    """

    origin = "bundler"
    filename = None

    def __init__(self, config, runner=subprocess.run):
        self.config = config
        self.runner = runner
        self._version = None

    def _environment(self):
        env = dict(os.environ)
        if self.config.rails_env:
            env["RAILS_ENV"] = self.config.rails_env
        return env

    def _run(self, arguments, stdin=None):
        command = list(self.config.bundle_command) + ["opal"] + arguments
        try:
            return self.runner(
                command,
                input=stdin,
                capture_output=True,
                text=True,
                env=self._environment(),
            )
        except OSError as e:
            raise CompileError(message=f"Unable to run {' '.join(command)}: {e}")

    def compile(self, source, options):
        arguments = ["--compile", "--no-opal", "--no-exit"]
        if options.get("arity_check"):
            arguments.append("--arity-check")
        if options.get("requirable"):
            arguments.extend(["--library", "--file", options.get("file") or ""])
        arguments.append("-")

        result = self._run(arguments, stdin=source)
        if result.returncode != 0:
            raise CompileError(message=result.stderr.strip(), filename=options.get("file"))
        return self._hoist_requires(result.stdout)

    @staticmethod
    def _hoist_requires(code):
        names = []
        for match in _GEM_REQUIRE.finditer(code):
            name = match.group(2)
            if match.group(1):
                name = "./" + name
            if name not in names:
                names.append(name)
        if not names:
            return code
        prologue = "".join(f'require("{name}");\n' for name in names)
        return prologue + code

    def version(self):
        if self._version is None:
            result = self._run(["--version"])
            if result.returncode != 0:
                raise CompileError(message=result.stderr.strip())
            # "Opal v0.10.0"
            self._version = result.stdout.strip().split()[-1].lstrip("v")
        return self._version


class CompilerCache:
    """
    Loaded compilers, keyed by how they were selected.

    Loading is serialised per key so concurrent transforms never load the
    same compiler twice.
    """

    def __init__(self):
        self._compilers = {}
        self._locks = {}
        self._guard = threading.Lock()

    def _lock_for(self, key):
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def get(self, key, factory):
        compiler = self._compilers.get(key)
        if compiler is not None:
            debug_log(f"Compiler cache hit: {key}")
            return compiler
        with self._lock_for(key):
            compiler = self._compilers.get(key)
            if compiler is None:
                debug_log(f"Compiler cache miss: {key}")
                compiler = factory()
                self._compilers[key] = compiler
            return compiler

    def __contains__(self, key):
        return key in self._compilers

    def __len__(self):
        return len(self._compilers)

    def clear(self):
        with self._guard:
            self._compilers.clear()
            self._locks.clear()


class CompilerProvider:
    """
    Picks the compiler for a LoaderConfig.

    Precedence:
        1. `compiler_path` - always wins, errors are not recovered from
        2. Bundler active and granular assets off - RuntimeRedirect
        3. the bundled compiler
    """

    def __init__(self, config, cache=None, runner=subprocess.run):
        self.config = config
        self.cache = cache if cache is not None else CompilerCache()
        self.runner = runner

    def get_compiler(self):
        config = self.config
        if config.compiler_path:
            path = os.path.abspath(config.compiler_path)
            debug_log(f"Using Opal compiler from {path}")
            return self.cache.get(("path", path), lambda: PathCompiler(path))

        if config.use_bundler and not config.granular_assets:
            debug_log("Using Opal from the Ruby bundle")
            key = ("bundler", config.rails_env, tuple(config.bundle_command))
            return self.cache.get(key, lambda: RuntimeRedirect(config, runner=self.runner))

        debug_log("Using bundled Opal compiler")
        return self.cache.get(("bundled",), BundledCompiler)

    def own_files(self):
        """Compiler source files that are passed through instead of compiled."""
        files = {os.path.abspath(bundled_opal.RUNTIME_FILENAME)}
        if self.config.compiler_path:
            files.add(os.path.abspath(self.config.compiler_path))
            compiler = self.get_compiler()
            if compiler.filename:
                files.add(os.path.abspath(compiler.filename))
        return files
