"""
Bundled Opal compiler.

Compiles the supported Ruby subset to Opal JavaScript. `RUNTIME_FILENAME` is
the runtime (opal.js) that ships with this compiler; bundles include it when a
module requires "opal".
"""
import os

from lark import Lark
from lark.exceptions import UnexpectedInput, VisitError

from opal_loader.errors import CompileError, get_line_context
from opal_loader.opal.grammar import opal_grammar
from opal_loader.opal.transformer import OpalTransformer

VERSION = "0.10.0"
RUNTIME_FILENAME = os.path.join(os.path.dirname(os.path.abspath(__file__)), "opal.js")

_parser = None


def get_parser():
    global _parser
    if _parser is None:
        _parser = Lark(opal_grammar, parser='earley')
    return _parser


def compile(source, options=None):
    """
    Compile Ruby source to JavaScript.

    Args:
        source: Ruby source text
        options: dict with optional keys `file` (module key), `requirable`
            and `arity_check`

    Raises:
        CompileError: If the source does not parse
    """
    options = options or {}
    filename = options.get("file") or None

    try:
        tree = get_parser().parse(source)
    except UnexpectedInput as e:
        line_number = getattr(e, "line", None)
        column = getattr(e, "column", None)
        if line_number is not None and line_number < 1:
            line_number = None
        raise CompileError(
            message="Syntax error",
            line_number=line_number,
            column=column,
            context=get_line_context(source, line_number),
            filename=filename,
            suggestion="Check syntax around this line",
        )

    transformer = OpalTransformer(
        file=filename or "",
        requirable=bool(options.get("requirable")),
        arity_check=bool(options.get("arity_check")),
        version=VERSION,
    )
    try:
        return transformer.transform(tree)
    except VisitError as e:
        raise CompileError(
            message=f"Transformation error: {e.orig_exc}",
            filename=filename,
            suggestion="Check syntax and types",
        )
