"""
Configuration models for the Opal loader.

LoaderConfig is assembled once at startup (usually from the environment) and
handed down to every component. TranspileOptions mirrors the per-asset loader
options the bundler passes in, accepting both its camelCase keys and the
snake_case field names.
"""
import os
from typing import FrozenSet, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_LOAD_PATH = ["."]
DEFAULT_BUNDLE_COMMAND = ["bundle", "exec"]

TRUTHY = {"1", "true", "yes", "on"}


def _flag(value):
    return value is not None and value.strip().lower() in TRUTHY


def _split_paths(value):
    return [p.strip() for p in value.split(",") if p.strip()]


class LoaderConfig(BaseModel):
    """Process-level settings: which compiler to use and where modules live."""
    model_config = ConfigDict(frozen=True)

    compiler_path: Optional[str] = None
    use_bundler: bool = False
    granular_assets: bool = False
    rails_env: Optional[str] = None
    load_path: List[str] = Field(default_factory=lambda: list(DEFAULT_LOAD_PATH))
    bundle_command: List[str] = Field(default_factory=lambda: list(DEFAULT_BUNDLE_COMMAND))
    verbose: bool = False

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """
        Build a config from environment variables.

        Recognised variables:
            OPAL_COMPILER_PATH    alternate compiler file
            OPAL_USE_BUNDLER      use Bundler-provided Opal and load paths
            RAILS_ENV             running under Rails, implies OPAL_USE_BUNDLER
            OPAL_GRANULAR_ASSETS  compile in process even when Bundler is active
            OPAL_LOAD_PATH        comma separated search path
            OPAL_LOADER_VERBOSE   debug logging
        """
        env = os.environ if environ is None else environ
        rails_env = env.get("RAILS_ENV") or None
        values = {
            "compiler_path": env.get("OPAL_COMPILER_PATH") or None,
            "use_bundler": _flag(env.get("OPAL_USE_BUNDLER")) or rails_env is not None,
            "granular_assets": _flag(env.get("OPAL_GRANULAR_ASSETS")),
            "rails_env": rails_env,
            "verbose": _flag(env.get("OPAL_LOADER_VERBOSE")),
        }
        if env.get("OPAL_LOAD_PATH"):
            values["load_path"] = _split_paths(env["OPAL_LOAD_PATH"])
        values.update(overrides)
        return cls(**values)


class TranspileOptions(BaseModel):
    """Options for a single asset transform."""
    model_config = ConfigDict(extra="ignore")

    filename: Optional[str] = None
    relative_file_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("relativeFileName", "relativeFilename", "relative_file_name"),
    )
    source_root: Optional[str] = Field(
        None, validation_alias=AliasChoices("sourceRoot", "source_root")
    )
    requirable: bool = False
    arity_check: bool = Field(
        False, validation_alias=AliasChoices("arity_check", "arityCheck")
    )
    external_opal: bool = Field(
        False, validation_alias=AliasChoices("externalOpal", "external_opal")
    )
    stubs: FrozenSet[str] = frozenset()

    @property
    def root(self):
        return self.source_root or os.getcwd()

    def module_key(self):
        """The name the compiled module registers itself under (extension stripped)."""
        name = self.relative_file_name
        if not name and self.filename:
            name = os.path.relpath(self.filename, self.root)
        if not name:
            return ""
        name = name.replace(os.sep, "/")
        return os.path.splitext(name)[0]


class BundlerContext(BaseModel):
    """What the bundler tells us about itself: the loader's own module path."""
    path: str


class TranspileResult(BaseModel):
    code: str
