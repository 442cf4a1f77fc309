"""
Ruby grammar for the bundled Opal compiler.

Covers the subset of Ruby the bundled compiler understands: requires,
constant and local assignment, method definitions, method calls (with and
without parentheses), literals, arithmetic and comparisons.
"""

opal_grammar = r"""
    start: _sep* (statement (_sep+ statement)* _sep*)?

    _sep: _NL | ";"

    // --- Statements ---
    ?statement: require_stmt
              | require_relative_stmt
              | def_stmt
              | const_assign
              | local_assign
              | return_stmt
              | expr

    require_stmt: "require" _require_arg
    require_relative_stmt: "require_relative" _require_arg
    _require_arg: STRING | "(" STRING ")"

    def_stmt: def_head params? _sep+ body "end"
    def_head: "def" METHOD_NAME
    params: "(" (NAME ("," NAME)*)? ")"
    body: (statement _sep+)*

    const_assign: CONST "=" expr
    local_assign: NAME "=" expr
    return_stmt: "return" expr?

    // --- Expressions ---
    ?expr: comparison
    ?comparison: sum (COMP_OP sum)?
    ?sum: product (ADD_OP product)*
    ?product: postfix (MUL_OP postfix)*

    ?postfix: primary
            | method_call
            | self_call
            | command_call

    method_call: postfix "." METHOD_NAME call_args?
    self_call.2: METHOD_NAME call_args
    command_call: METHOD_NAME command_args

    call_args: "(" (expr ("," expr)*)? ")"
    command_args: expr ("," expr)*

    ?primary: INT -> integer
            | FLOAT -> float
            | STRING -> string
            | SYMBOL -> symbol
            | "nil" -> nil
            | "true" -> true
            | "false" -> false
            | "self" -> self_ref
            | CONST -> const_ref
            | NAME -> identifier
            | "[" (expr ("," expr)*)? "]" -> array
            | "(" expr ")"

    // --- Terminals ---
    CONST: /[A-Z]\w*/
    NAME: /(?!(?:def|end|return|require_relative|require|nil|true|false|self)\b)[a-z_]\w*/
    METHOD_NAME: /(?!(?:def|end|return|require_relative|require|nil|true|false|self)\b)[a-z_]\w*[?!]?/
    SYMBOL: /:[a-zA-Z_]\w*[?!]?/
    STRING: /"(?:[^"\\\n]|\\.)*"/ | /'(?:[^'\\\n]|\\.)*'/
    FLOAT: /\d+\.\d+/
    INT: /\d+/

    COMP_OP: "==" | "!=" | "<=" | ">=" | "<" | ">"
    ADD_OP: "+" | "-"
    MUL_OP: "*" | "/" | "%"

    _NL: /\n/
    COMMENT: /#[^\n]*/
    LINE_CONTINUATION: /\\\n/

    %ignore /[ \t\f\r]+/
    %ignore COMMENT
    %ignore LINE_CONTINUATION
"""
