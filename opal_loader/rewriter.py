"""
Rewrites the dependency prologue of compiled Opal code into bundler requests.

Compilers announce dependencies with top-level `require("name");` calls. Each
one is replaced according to the first matching rule:

1. `opal`, `opal/full`, `opal/mini`: left alone with externalOpal, otherwise
   pointed at the compiler's runtime file (requirable=false)
2. stubbed module: an empty `Opal.modules[...]` registration
3. resolves to a non-Ruby file: a raw `imports!` request
4. anything else: a loader request for the resolved Ruby file (requirable=true)

Only code is scanned; string literals, template literals and comments are
skipped, and `require` must not be a property or part of a longer name, so
`self.$require("x")` is never touched.
"""
import json
import re
from urllib.parse import quote

from opal_loader.errors import CompileError
from opal_loader.log import debug_log

OPAL_REQUIRES = ("opal", "opal/full", "opal/mini")

_REQUIRE_CALL = re.compile(
    r"""require\s*\(\s*("(?:[^"\\\r\n]|\\.)*"|'(?:[^'\\\r\n]|\\.)*')\s*\)[ \t]*;?"""
)
_IDENTIFIER_CHAR = re.compile(r"[\w$.]")
_SINGLE_QUOTED_ESCAPE = re.compile(r'\\(.)|"')


def js_string_value(literal):
    """
    Decode a quoted JS string literal as found in compiled code.

    Raises:
        CompileError: If the literal uses an escape JSON cannot express
    """
    body = literal[1:-1]
    if literal[0] == "'":
        # re-quote for JSON: \' becomes ', bare " becomes \"
        body = _SINGLE_QUOTED_ESCAPE.sub(
            lambda m: '\\"' if m.group(1) is None else ("'" if m.group(1) == "'" else m.group(0)),
            body,
        )
    try:
        return json.loads(f'"{body}"')
    except ValueError as e:
        raise CompileError(f"Cannot read required module name {literal}: {e}") from e


def _skip_quoted(code, i, quote_char):
    """Index just past the literal starting at code[i]."""
    i += 1
    length = len(code)
    while i < length:
        c = code[i]
        if c == "\\":
            i += 2
            continue
        if c == quote_char:
            return i + 1
        i += 1
    return length


def find_require_calls(code):
    """
    Yield (start, end, name) for each `require("name")` call in code.

    Contents of strings, template literals and comments never match.
    """
    i = 0
    length = len(code)
    while i < length:
        c = code[i]
        if c in "'\"`":
            i = _skip_quoted(code, i, c)
            continue
        if code.startswith("//", i):
            newline = code.find("\n", i)
            i = length if newline == -1 else newline
            continue
        if code.startswith("/*", i):
            close = code.find("*/", i + 2)
            i = length if close == -1 else close + 2
            continue
        if c == "r" and (i == 0 or not _IDENTIFIER_CHAR.match(code[i - 1])):
            match = _REQUIRE_CALL.match(code, i)
            if match:
                yield match.start(), match.end(), js_string_value(match.group(1))
                i = match.end()
                continue
        i += 1


def strip_relative(name):
    return name[2:] if name.startswith("./") else name


def loader_request(loader_path, name, requirable, absolute):
    flag = "true" if requirable else "false"
    return f"require('!!{loader_path}?file={quote(name, safe='')}&requirable={flag}!{absolute}');"


def imports_request(absolute):
    return f"require('imports!{absolute}');"


def stub_registration(name):
    key = json.dumps(name, ensure_ascii=False)
    return f"Opal.modules[{key}] = Opal.modules[{key}] || function(Opal) {{}};"


class RequireRewriter:
    """
    Turns compiler dependency requires into bundler requests.

    Args:
        resolver: PathResolver for the current search path
        compiler: Compiler that produced the code (its `filename` is the
            target for requires of opal itself)
        config: LoaderConfig
    """

    def __init__(self, resolver, compiler, config):
        self.resolver = resolver
        self.compiler = compiler
        self.config = config

    def rewrite(self, code, options, context):
        """Return `code` with every dependency require rewritten."""
        pieces = []
        position = 0
        stubbed = set()
        for start, end, name in find_require_calls(code):
            pieces.append(code[position:start])
            pieces.append(self._rewrite_one(code[start:end], name, options, context, stubbed))
            position = end
        if position == 0:
            return code
        pieces.append(code[position:])
        return "".join(pieces)

    def _rewrite_one(self, original, name, options, context, stubbed):
        bare = strip_relative(name)

        if name in OPAL_REQUIRES:
            if options.external_opal:
                debug_log(f"{name}: provided externally, left as is")
                return original
            return loader_request(context.path, name, False, self._opal_target(name, options))

        if bare in options.stubs:
            debug_log(f"{name}: stubbed")
            if bare in stubbed:
                return ""
            stubbed.add(bare)
            return stub_registration(bare)

        resolved = self.resolver.resolve(bare, options.filename)
        if not resolved.is_ruby:
            debug_log(f"{name}: JavaScript, imported raw")
            return imports_request(resolved.absolute)

        debug_log(f"{name}: {resolved.absolute}")
        return loader_request(context.path, name, True, resolved.absolute)

    def _opal_target(self, name, options):
        # Bundler mode uses the gem's granular assets rather than one runtime file
        if self.compiler.filename and not self.config.use_bundler:
            return self.compiler.filename
        return self.resolver.resolve(name, options.filename).absolute
