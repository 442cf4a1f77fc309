"""
Resolves Ruby module names (as passed to `require`) to files on the load path.
"""
import os

from pydantic import BaseModel, ConfigDict

from opal_loader.errors import NotFoundError
from opal_loader.log import debug_log

RUBY_EXTENSION = ".rb"
KNOWN_EXTENSIONS = (RUBY_EXTENSION, ".js")


class ResolvedModule(BaseModel):
    """A module found on disk.

    `relative` is relative to the directory of the file that asked for the
    module, so the same module can have different relative paths.
    """
    model_config = ConfigDict(frozen=True)

    absolute: str
    relative: str

    @property
    def is_ruby(self):
        return self.absolute.endswith(RUBY_EXTENSION)


class PathResolver:
    """
    Looks a module name up in an ordered list of directories.

    The first directory holding a matching file wins; directories are never
    merged. The search path is copied into a tuple and never modified.
    """

    def __init__(self, search_paths, root=None):
        self.search_paths = tuple(search_paths)
        self.root = os.path.abspath(root or os.getcwd())

    def candidates(self, module_name):
        """File names to try for a module, in priority order."""
        if module_name.endswith(KNOWN_EXTENSIONS):
            return [module_name]
        return [module_name + ext for ext in KNOWN_EXTENSIONS]

    def resolve(self, module_name, requesting_file=None):
        """
        Resolve `module_name` to a ResolvedModule.

        Args:
            module_name: Name as written in the require, e.g. "opal/browser"
            requesting_file: File issuing the require; `relative` is computed
                against its directory (or against the root when omitted)

        Raises:
            NotFoundError: If no directory on the search path has the file
        """
        names = self.candidates(module_name)
        for directory in self.search_paths:
            base = os.path.join(self.root, directory)
            for name in names:
                path = os.path.join(base, name)
                if os.path.isfile(path):
                    absolute = os.path.abspath(path)
                    origin = os.path.dirname(os.path.abspath(requesting_file)) if requesting_file else self.root
                    debug_log(f"Resolved {module_name} -> {absolute}")
                    return ResolvedModule(
                        absolute=absolute,
                        relative=os.path.relpath(absolute, origin),
                    )
        raise NotFoundError(module_name, self.search_paths)
