"""
Error types raised by the Opal loader.
"""


class OpalLoaderError(Exception):
    """Base class for every error raised by the loader."""


class NotFoundError(OpalLoaderError):
    """A module name could not be resolved against the load path."""
    def __init__(self, module_name, load_path):
        self.module_name = module_name
        self.load_path = list(load_path)
        super().__init__(
            f"Cannot find file - {module_name} in load path {','.join(self.load_path)}"
        )


class CompilerLoadError(OpalLoaderError):
    """A configured compiler file is missing or does not look like a compiler."""
    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to load Opal compiler from {path}: {reason}")


class LoadPathError(OpalLoaderError):
    """The package manager could not report its load path."""
    def __init__(self, command, stderr):
        self.command = list(command)
        self.stderr = stderr
        detail = stderr.strip() if stderr else "no output"
        super().__init__(f"Load path discovery failed ({' '.join(self.command)}): {detail}")


class CompileError(OpalLoaderError):
    """The compiler rejected the Ruby source. Carries line numbers and hints."""
    def __init__(self, message, line_number=None, column=None, context=None, filename=None, suggestion=None):
        self.message = message
        self.line_number = line_number
        self.column = column
        self.context = context  # The offending line
        self.filename = filename
        self.suggestion = suggestion
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with location, context and suggestion."""
        lines = ["\n❌ Compilation Error"]
        if self.filename:
            lines.append(f" in {self.filename}")
        if self.line_number:
            lines.append(f" at line {self.line_number}")
            if self.column:
                lines.append(f", column {self.column}")
        lines.append(":\n")

        lines.append(f"   {self.message}\n")

        if self.context:
            lines.append(f"   > {self.context}\n")

        if self.suggestion:
            lines.append(f"   💡 {self.suggestion}\n")

        return "".join(lines)


def get_line_context(source_code, line_number):
    """Extract the line of code from source by line number (1-based)."""
    if not source_code or line_number is None:
        return None
    source_lines = source_code.split('\n')
    if 0 < line_number <= len(source_lines):
        return source_lines[line_number - 1].strip()
    return None
