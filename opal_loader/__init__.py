# opalpack - Opal loader components
"""
Core modules for the Opal loader:
- errors: Error types
- config: Loader configuration and per-asset options
- load_path: Search path providers (static and Bundler)
- resolver: Module name to file resolution
- compilers: Compiler selection and caching
- rewriter: Require rewriting for the bundler
- opal: The bundled Opal compiler
"""

from .errors import (
    OpalLoaderError,
    NotFoundError,
    CompilerLoadError,
    LoadPathError,
    CompileError,
)
from .config import LoaderConfig, TranspileOptions, BundlerContext, TranspileResult
from .resolver import PathResolver, ResolvedModule
from .compilers import CompilerProvider, CompilerCache
from .rewriter import RequireRewriter

__all__ = [
    'OpalLoaderError',
    'NotFoundError',
    'CompilerLoadError',
    'LoadPathError',
    'CompileError',
    'LoaderConfig',
    'TranspileOptions',
    'BundlerContext',
    'TranspileResult',
    'PathResolver',
    'ResolvedModule',
    'CompilerProvider',
    'CompilerCache',
    'RequireRewriter',
]
