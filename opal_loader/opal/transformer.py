"""
Opal AST Transformer - turns a parsed Ruby tree into Opal-flavoured JavaScript.

The generated module starts with a `/* Generated by Opal x.y.z */` header,
followed by one `require("name");` line per dependency (the prologue the
loader's require rewriter looks for), followed by the module body.
"""

import json
import re

from lark import Transformer

BASE_VARS = "self = Opal.top, $scope = Opal, nil = Opal.nil, $breaker = Opal.breaker, $slice = Opal.slice"

# operator -> runtime helper; both operands numeric takes the fast path
OPERATOR_HELPERS = {
    "+": "$rb_plus",
    "-": "$rb_minus",
    "*": "$rb_times",
    "/": "$rb_divide",
    "<": "$rb_lt",
    ">": "$rb_gt",
    "<=": "$rb_le",
    ">=": "$rb_ge",
}

_RUBY_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "s": " ",
    "r": "\r",
    "0": "\0",
    "e": "\x1b",
}

_JS_IDENTIFIER = re.compile(r"^[A-Za-z_$][\w$]*$")


def ruby_string_value(token):
    """Turn a Ruby string literal (with quotes) into its Python value."""
    quote, body = token[0], token[1:-1]
    if quote == "'":
        return re.sub(r"\\([\\'])", r"\1", body)
    return re.sub(r"\\(.)", lambda m: _RUBY_ESCAPES.get(m.group(1), m.group(1)), body)


def js_string(value):
    return json.dumps(value, ensure_ascii=False)


def method_id(name):
    """Opal's JS property for a Ruby method: `.$name` or `['$name?']`."""
    mid = "$" + name
    if _JS_IDENTIFIER.match(mid):
        return "." + mid
    return "[" + js_string(mid) + "]"


def function_name(name):
    """Name for the JS function implementing a Ruby method."""
    return "$$" + name.replace("?", "$q").replace("!", "$B")


def helper_source(helper, op):
    return (
        f"function {helper}(lhs, rhs) {{\n"
        f"  return (typeof(lhs) === 'number' && typeof(rhs) === 'number') ? lhs {op} rhs : lhs['${op}'](rhs);\n"
        f"}}"
    )


def indent(text, spaces=2):
    pad = " " * spaces
    return "\n".join(pad + line if line else line for line in text.split("\n"))


class Fragment(str):
    """Compiled JavaScript for one statement, plus what we know about it."""
    local = None
    returns = False

    @classmethod
    def of(cls, code, local=None, returns=False):
        fragment = cls(code)
        fragment.local = local
        fragment.returns = returns
        return fragment


def with_return(statements):
    """Terminate statements, returning the value of the last one."""
    if not statements:
        return ["return nil;"]
    lines = [f"{s};" for s in statements[:-1]]
    last = statements[-1]
    lines.append(f"{last};" if getattr(last, "returns", False) else f"return {last};")
    return lines


class OpalTransformer(Transformer):
    """
    Transforms a parsed Ruby tree into Opal JavaScript.

    Args:
        file: Module key the output registers under when requirable
        requirable: Wrap the body in `Opal.modules[file] = function(Opal) {...}`
        arity_check: Emit `Opal.ac` argument count assertions in methods
        version: Compiler version for the header comment
    """

    def __init__(self, file="", requirable=False, arity_check=False, version=""):
        super().__init__()
        self.file = file
        self.requirable = requirable
        self.arity_check = arity_check
        self.version = version
        self.requires = []
        self._stubs = []
        self._helpers = []
        self._locals = set()
        self._outer_locals = []
        self._tmps = []

    # --- bookkeeping ---

    def _stub(self, name):
        mid = "$" + name
        if mid not in self._stubs:
            self._stubs.append(mid)

    def _require(self, name):
        if name not in self.requires:
            self.requires.append(name)

    def _next_tmp(self):
        tmp = f"TMP_{len(self._tmps) + 1}"
        self._tmps.append(tmp)
        return tmp

    def _call(self, receiver, name, args):
        self._stub(name)
        return f"{receiver}{method_id(name)}({', '.join(args)})"

    def _binary(self, args):
        result = args[0]
        for op, rhs in zip(args[1::2], args[2::2]):
            op = str(op)
            helper = OPERATOR_HELPERS.get(op)
            if helper:
                if helper not in self._helpers:
                    self._helpers.append(helper)
                result = f"{helper}({result}, {rhs})"
            else:
                self._stub(op)
                result = f"{result}['${op}']({rhs})"
        return result

    # --- module ---

    def start(self, statements):
        body = []
        for helper in self._helpers:
            op = next(o for o, h in OPERATOR_HELPERS.items() if h == helper)
            body.append(helper_source(helper, op))

        top_locals = [s.local for s in statements if getattr(s, "local", None)]
        var_names = [BASE_VARS] + [f"{name} = nil" for name in dict.fromkeys(top_locals)] + self._tmps
        body.append(f"var {', '.join(var_names)};")
        body.append("")
        if self._stubs:
            stubs = ", ".join(f"'{s}'" for s in self._stubs)
            body.append(f"Opal.add_stubs([{stubs}]);")
        body.extend(with_return(list(statements)))

        inner = indent("\n".join(body))
        if self.requirable:
            module = f"Opal.modules[{js_string(self.file)}] = function(Opal) {{\n{inner}\n}};"
        else:
            module = f"(function(Opal) {{\n{inner}\n}})(Opal);"

        lines = [f"/* Generated by Opal {self.version} */"]
        lines.extend(f"require({js_string(name)});" for name in self.requires)
        lines.append(module)
        return "\n".join(lines) + "\n"

    # --- statements ---

    def require_stmt(self, args):
        name = ruby_string_value(args[0])
        self._require(name)
        return self._call("self", "require", [js_string(name)])

    def require_relative_stmt(self, args):
        name = ruby_string_value(args[0])
        self._require("./" + name)
        return self._call("self", "require_relative", [js_string(name)])

    def def_head(self, args):
        # children are transformed in order, so this runs before params and body
        self._outer_locals.append(self._locals)
        self._locals = set()
        return str(args[0])

    def params(self, args):
        names = [str(a) for a in args]
        self._locals.update(names)
        return names

    def body(self, args):
        return list(args)

    def def_stmt(self, args):
        name = args[0]
        if len(args) == 3:
            params, statements = args[1], args[2]
        else:
            params, statements = [], args[1]

        tmp = self._next_tmp()
        arity = len(params)
        method_locals = [s.local for s in statements if getattr(s, "local", None) and s.local not in params]

        lines = [f"var {', '.join(['self = this'] + [f'{n} = nil' for n in dict.fromkeys(method_locals)])};"]
        if self.arity_check:
            lines.append("var $arity = arguments.length;")
            lines.append(f"if ($arity !== {arity}) {{ Opal.ac($arity, {arity}, this, {tmp}.$$def); }}")
        lines.extend(with_return(statements))

        # method scope ends here
        self._locals = self._outer_locals.pop()

        code = (
            f"Opal.defn(self, '${name}', {tmp} = function {function_name(name)}({', '.join(params)}) {{\n"
            f"{indent(chr(10).join(lines), 4)}\n"
            f"  }}, {tmp}.$$arity = {arity})"
        )
        return Fragment.of(code)

    def const_assign(self, args):
        return f"Opal.cdecl($scope, '{args[0]}', {args[1]})"

    def local_assign(self, args):
        name = str(args[0])
        self._locals.add(name)
        return Fragment.of(f"{name} = {args[1]}", local=name)

    def return_stmt(self, args):
        value = args[0] if args else "nil"
        return Fragment.of(f"return {value}", returns=True)

    # --- expressions ---

    def comparison(self, args):
        return self._binary(args)

    def sum(self, args):
        return self._binary(args)

    def product(self, args):
        return self._binary(args)

    def call_args(self, args):
        return list(args)

    def command_args(self, args):
        return list(args)

    def method_call(self, args):
        receiver, name = args[0], str(args[1])
        call_args = args[2] if len(args) > 2 else []
        if " " in receiver and not receiver.startswith("("):
            receiver = f"({receiver})"
        return self._call(receiver, name, call_args)

    def self_call(self, args):
        return self._call("self", str(args[0]), args[1])

    def command_call(self, args):
        return self._call("self", str(args[0]), args[1])

    def identifier(self, args):
        name = str(args[0])
        if name in self._locals:
            return name
        return self._call("self", name, [])

    def array(self, args):
        return f"[{', '.join(args)}]"

    def integer(self, args):
        return str(args[0])

    def float(self, args):
        return str(args[0])

    def string(self, args):
        return js_string(ruby_string_value(args[0]))

    def symbol(self, args):
        return js_string(str(args[0])[1:])

    def const_ref(self, args):
        return f"$scope.get('{args[0]}')"

    def nil(self, args):
        return "nil"

    def true(self, args):
        return "true"

    def false(self, args):
        return "false"

    def self_ref(self, args):
        return "self"
