"""Pigeon parser: indentation-sensitive recursive descent over filtered tokens."""

from __future__ import annotations

from .ast import (
    Assignment,
    BoolLit,
    Break,
    Case,
    Continue,
    Definition,
    ElseifClause,
    Expr,
    ExprStmt,
    Foreach,
    Forinc,
    FuncDef,
    FunctionCall,
    GlobalDef,
    Go,
    Identifier,
    If,
    ImportDef,
    ImportedName,
    InterfaceDef,
    LocalFunc,
    Locals,
    MethodCall,
    MethodDef,
    NativeImportDef,
    NilLit,
    NumberLit,
    Operation,
    ParsedDataType,
    Pos,
    RcvClause,
    Return,
    Select,
    SendClause,
    Signature,
    Stmt,
    StringLit,
    StructDef,
    TypeExpression,
    TypeRef,
    Typeswitch,
    Variable,
    While,
)
from .errors import PigeonError
from .tokens import (
    INDENT_WIDTH,
    TK_BOOL,
    TK_COLON,
    TK_DOT,
    TK_EOF,
    TK_IDENT,
    TK_INDENT,
    TK_LANGLE,
    TK_LPAREN,
    TK_LSQUARE,
    TK_MULTILINE,
    TK_NEWLINE,
    TK_NIL,
    TK_NUMBER,
    TK_OPERATOR,
    TK_RANGLE,
    TK_RESERVED,
    TK_RPAREN,
    TK_RSQUARE,
    TK_SPACE,
    TK_STRING,
    TK_TYPE,
    Token,
)

BUILTIN_TYPES: set[str] = {
    "I",
    "F",
    "Byte",
    "Bool",
    "Str",
    "Err",
    "Any",
    "L",
    "S",
    "Ch",
    "M",
    "P",
    "Fn",
    "A",
    "Type",
}

ESCAPE_MAP: dict[str, str] = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "\\": "\\",
    '"': '"',
    "'": "'",
    "0": "\0",
}

STATIC_ONLY_TOP: set[str] = {
    "import",
    "nativeimport",
    "struct",
    "nativestruct",
    "interface",
    "method",
    "nativefunc",
}

STATIC_ONLY_STMT: set[str] = {"localfunc", "typeswitch", "select", "go"}


class ParseError(PigeonError):
    """Parse error with location info."""


def decode_string(raw: str, line: int, col: int) -> str:
    """Resolve backslash escapes in a quoted string literal."""
    body = raw[1 : len(raw) - 1]
    result: list[str] = []
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\":
            esc = body[i + 1]
            if esc not in ESCAPE_MAP:
                raise ParseError("invalid escape: \\" + esc, line, col + i + 1)
            result.append(ESCAPE_MAP[esc])
            i += 2
        else:
            result.append(c)
            i += 1
    return "".join(result)


class Parser:
    """Recursive descent parser for Pigeon."""

    def __init__(self, tokens: list[Token], dynamic: bool = False):
        self.tokens: list[Token] = list(tokens)
        if len(tokens) > 0:
            last = tokens[len(tokens) - 1]
            self.tokens.append(Token(TK_EOF, "", last.line + 1, 1))
        else:
            self.tokens.append(Token(TK_EOF, "", 1, 1))
        self.pos: int = 0
        self.dynamic: bool = dynamic

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        return self.current().value == value

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def expect_type(self, type_: str, what: str) -> Token:
        tok = self.current()
        if tok.type != type_:
            raise self.error("expected " + what + ", got " + _describe(tok))
        return self.advance()

    def expect_space(self) -> None:
        if not self.at_type(TK_SPACE):
            raise self.error("expected space, got " + _describe(self.current()))
        self.advance()

    def expect_newline(self) -> None:
        if not self.at_type(TK_NEWLINE) and not self.at_type(TK_EOF):
            raise self.error("expected end of line, got " + _describe(self.current()))
        self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    def _tok_pos(self, tok: Token) -> Pos:
        return Pos(tok.line, tok.col)

    def line_indent(self) -> int:
        """Indentation width of the line starting at the current token."""
        if self.at_type(TK_INDENT):
            return len(self.current().value)
        return 0

    def at_line(self, indent: int) -> bool:
        """True if the next line sits at exactly this indentation."""
        if self.at_type(TK_EOF):
            return False
        width = self.line_indent()
        if width > indent:
            raise self.error("improper indentation")
        return width == indent

    def start_line(self, indent: int) -> None:
        if indent > 0:
            self.advance()

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> list[Definition]:
        defs: list[Definition] = []
        while not self.at_type(TK_EOF):
            if self.at_type(TK_INDENT):
                raise self.error("improper indentation")
            defs.append(self.parse_definition())
        return defs

    def parse_definition(self) -> Definition:
        tok = self.current()
        if tok.type != TK_RESERVED:
            raise self.error("expected top-level definition, got " + _describe(tok))
        word = tok.value
        if self.dynamic and word in STATIC_ONLY_TOP:
            raise self.error("'" + word + "' is not available in the dynamic dialect")
        if word == "func":
            return self.parse_func()
        if word == "nativefunc":
            return self.parse_func()
        if word == "global":
            return self.parse_global()
        if word == "struct" or word == "nativestruct":
            return self.parse_struct()
        if word == "interface":
            return self.parse_interface()
        if word == "method":
            return self.parse_method()
        if word == "import":
            return self.parse_import()
        if word == "nativeimport":
            return self.parse_native_import()
        raise self.error("'" + word + "' is not allowed at top level")

    def parse_func(self) -> FuncDef:
        pos = self._pos()
        native = self.advance().value == "nativefunc"
        self.expect_space()
        name = self.expect_type(TK_IDENT, "function name").value
        params, returns = self.parse_header()
        if native:
            code = self.parse_native_body(INDENT_WIDTH)
            return FuncDef(pos, name, params, returns, [], code)
        body = self.parse_body(INDENT_WIDTH)
        return FuncDef(pos, name, params, returns, body)

    def parse_method(self) -> MethodDef:
        pos = self._pos()
        self.advance()
        self.expect_space()
        name = self.expect_type(TK_IDENT, "method name").value
        params, returns = self.parse_header()
        if len(params) == 0:
            raise ParseError("method must have a receiver", pos.line, pos.col)
        body = self.parse_body(INDENT_WIDTH)
        return MethodDef(pos, name, params[0], params[1:], returns, body)

    def parse_header(self) -> tuple[list[Variable], list[ParsedDataType]]:
        """(SPACE name Type)* (SPACE : (SPACE Type)+)? NEWLINE"""
        params: list[Variable] = []
        returns: list[ParsedDataType] = []
        while self.at_type(TK_SPACE):
            self.advance()
            if self.at_type(TK_COLON):
                self.advance()
                returns = self.parse_return_types()
                break
            params.append(self.parse_variable())
        self.expect_newline()
        return params, returns

    def parse_return_types(self) -> list[ParsedDataType]:
        returns: list[ParsedDataType] = []
        while self.at_type(TK_SPACE):
            self.advance()
            returns.append(self.parse_type())
        if len(returns) == 0:
            raise self.error("expected return type after ':'")
        return returns

    def parse_variable(self) -> Variable:
        """name Type, with the type optional in the dynamic dialect."""
        tok = self.expect_type(TK_IDENT, "variable name")
        pos = self._tok_pos(tok)
        if self.dynamic:
            if self.at_type(TK_SPACE) and self.peek(1).type == TK_TYPE:
                self.advance()
                return Variable(pos, tok.value, self.parse_type())
            return Variable(pos, tok.value, None)
        self.expect_space()
        return Variable(pos, tok.value, self.parse_type())

    def parse_native_body(self, indent: int) -> str:
        if not self.at_line(indent):
            raise self.error("expected indented native code block")
        self.start_line(indent)
        tok = self.expect_type(TK_MULTILINE, "native code block")
        self.expect_newline()
        if self.at_line(indent):
            raise self.error("native code must be a single block")
        return tok.value[3 : len(tok.value) - 3]

    def parse_global(self) -> GlobalDef:
        pos = self._pos()
        self.advance()
        self.expect_space()
        name = self.expect_type(TK_IDENT, "global name").value
        self.expect_space()
        typ: ParsedDataType | None = None
        if not self.dynamic or self.at_type(TK_TYPE) and self.peek(1).type == TK_SPACE:
            typ = self.parse_type()
            self.expect_space()
        value = self.parse_expr()
        self.expect_newline()
        return GlobalDef(pos, name, typ, value)

    def parse_struct(self) -> StructDef:
        pos = self._pos()
        native = self.advance().value == "nativestruct"
        self.expect_space()
        name_tok = self.expect_type(TK_TYPE, "struct name")
        if name_tok.value in BUILTIN_TYPES:
            raise ParseError(
                "struct name cannot be a built-in type: " + name_tok.value,
                name_tok.line,
                name_tok.col,
            )
        self.expect_newline()
        members: list[Variable] = []
        code = ""
        while self.at_line(INDENT_WIDTH):
            self.start_line(INDENT_WIDTH)
            if native and self.at_type(TK_MULTILINE):
                raw = self.advance().value
                code = raw[3 : len(raw) - 3]
                self.expect_newline()
                continue
            members.append(self.parse_variable())
            self.expect_newline()
        if len(members) == 0 and code == "":
            raise ParseError("struct must have at least one member", pos.line, pos.col)
        return StructDef(pos, name_tok.value, members, code)

    def parse_interface(self) -> InterfaceDef:
        pos = self._pos()
        self.advance()
        self.expect_space()
        name_tok = self.expect_type(TK_TYPE, "interface name")
        if name_tok.value in BUILTIN_TYPES:
            raise ParseError(
                "interface name cannot be a built-in type: " + name_tok.value,
                name_tok.line,
                name_tok.col,
            )
        self.expect_newline()
        methods: list[Signature] = []
        while self.at_line(INDENT_WIDTH):
            self.start_line(INDENT_WIDTH)
            sig_pos = self._pos()
            mname = self.expect_type(TK_IDENT, "method name").value
            param_types: list[ParsedDataType] = []
            returns: list[ParsedDataType] = []
            while self.at_type(TK_SPACE):
                self.advance()
                if self.at_type(TK_COLON):
                    self.advance()
                    returns = self.parse_return_types()
                    break
                param_types.append(self.parse_type())
            self.expect_newline()
            methods.append(Signature(sig_pos, mname, param_types, returns))
        if len(methods) == 0:
            raise ParseError("interface must have at least one method", pos.line, pos.col)
        return InterfaceDef(pos, name_tok.value, methods)

    def parse_import(self) -> ImportDef:
        pos = self._pos()
        self.advance()
        self.expect_space()
        path_tok = self.expect_type(TK_STRING, "import path")
        path = decode_string(path_tok.value, path_tok.line, path_tok.col)
        self.expect_newline()
        names: list[ImportedName] = []
        while self.at_line(INDENT_WIDTH):
            self.start_line(INDENT_WIDTH)
            tok = self.current()
            if tok.type != TK_IDENT and tok.type != TK_TYPE:
                raise self.error("expected imported name, got " + _describe(tok))
            self.advance()
            alias = tok.value
            if self.at_type(TK_SPACE):
                self.advance()
                alias_tok = self.current()
                if alias_tok.type != tok.type:
                    raise self.error("alias must have the same capitalization as '" + tok.value + "'")
                alias = self.advance().value
            self.expect_newline()
            names.append(ImportedName(self._tok_pos(tok), tok.value, alias))
        if len(names) == 0:
            raise ParseError("import must name at least one definition", pos.line, pos.col)
        return ImportDef(pos, path, names)

    def parse_native_import(self) -> NativeImportDef:
        pos = self._pos()
        self.advance()
        self.expect_space()
        path_tok = self.expect_type(TK_STRING, "import path")
        path = decode_string(path_tok.value, path_tok.line, path_tok.col)
        self.expect_space()
        alias = self.expect_type(TK_IDENT, "import alias").value
        self.expect_newline()
        return NativeImportDef(pos, path, alias)

    # ── Types ────────────────────────────────────────────────

    def parse_type(self) -> ParsedDataType:
        """Name ( '<' Param (SPACE Param)* (SPACE? ':' (SPACE Type)+)? '>' )?"""
        tok = self.expect_type(TK_TYPE, "type")
        pos = self._tok_pos(tok)
        params: list[ParsedDataType] = []
        returns: list[ParsedDataType] = []
        if not self.at_type(TK_LANGLE):
            return ParsedDataType(pos, tok.value, params, returns)
        self.advance()
        in_returns = False
        while True:
            if self.at_type(TK_COLON):
                if in_returns:
                    raise self.error("unexpected ':' in type")
                in_returns = True
                self.advance()
            elif self.at_type(TK_NUMBER) and not in_returns:
                num = self.advance()
                params.append(ParsedDataType(self._tok_pos(num), num.value, [], []))
            elif in_returns:
                returns.append(self.parse_type())
            else:
                params.append(self.parse_type())
            if self.at_type(TK_RANGLE):
                self.advance()
                break
            self.expect_space()
        if in_returns and len(returns) == 0:
            raise ParseError("expected return type after ':'", pos.line, pos.col)
        return ParsedDataType(pos, tok.value, params, returns)

    # ── Bodies ───────────────────────────────────────────────

    def parse_body(self, indent: int) -> list[Stmt]:
        stmts: list[Stmt] = []
        while self.at_line(indent):
            self.start_line(indent)
            stmts.append(self.parse_statement(indent))
        return stmts

    def parse_block(self, indent: int, what: str) -> list[Stmt]:
        pos = self._pos()
        body = self.parse_body(indent)
        if len(body) == 0:
            raise ParseError(what + " must have an indented body", pos.line, pos.col)
        return body

    def parse_statement(self, indent: int) -> Stmt:
        tok = self.current()
        if tok.type == TK_LPAREN:
            pos = self._pos()
            expr = self.parse_expr()
            self.expect_newline()
            return ExprStmt(pos, expr)
        if tok.type != TK_RESERVED:
            raise self.error("expected statement, got " + _describe(tok))
        word = tok.value
        if self.dynamic and word in STATIC_ONLY_STMT:
            raise self.error("'" + word + "' is not available in the dynamic dialect")
        if word == "as":
            return self.parse_assignment()
        if word == "if":
            return self.parse_if(indent)
        if word == "while":
            return self.parse_while(indent)
        if word == "foreach":
            return self.parse_foreach(indent)
        if word == "forinc" or word == "fordec":
            return self.parse_forinc(indent)
        if word == "return":
            return self.parse_return()
        if word == "break":
            pos = self._pos()
            self.advance()
            self.expect_newline()
            return Break(pos)
        if word == "continue":
            pos = self._pos()
            self.advance()
            self.expect_newline()
            return Continue(pos)
        if word == "locals":
            return self.parse_locals()
        if word == "localfunc":
            return self.parse_localfunc(indent)
        if word == "typeswitch":
            return self.parse_typeswitch(indent)
        if word == "select":
            return self.parse_select(indent)
        if word == "go":
            return self.parse_go()
        if word == "elseif" or word == "else":
            raise self.error("'" + word + "' without preceding 'if'")
        raise self.error("'" + word + "' is not allowed in a body")

    def parse_assignment(self) -> Assignment:
        pos = self._pos()
        self.advance()
        exprs: list[Expr] = []
        while self.at_type(TK_SPACE):
            self.advance()
            exprs.append(self.parse_expr())
        if len(exprs) < 2:
            raise ParseError(
                "assignment needs at least one target and a value", pos.line, pos.col
            )
        self.expect_newline()
        return Assignment(pos, exprs[: len(exprs) - 1], exprs[len(exprs) - 1])

    def parse_condition(self) -> Expr:
        self.expect_space()
        cond = self.parse_expr()
        self.expect_newline()
        return cond

    def parse_if(self, indent: int) -> If:
        pos = self._pos()
        self.advance()
        cond = self.parse_condition()
        body = self.parse_block(indent + INDENT_WIDTH, "if")
        elseifs: list[ElseifClause] = []
        else_body: list[Stmt] | None = None
        while self.at_line(indent) and self.peek(_lead(indent)).value == "elseif":
            self.start_line(indent)
            clause_pos = self._pos()
            self.advance()
            clause_cond = self.parse_condition()
            clause_body = self.parse_block(indent + INDENT_WIDTH, "elseif")
            elseifs.append(ElseifClause(clause_pos, clause_cond, clause_body))
        if self.at_line(indent) and self.peek(_lead(indent)).value == "else":
            self.start_line(indent)
            self.advance()
            self.expect_newline()
            else_body = self.parse_block(indent + INDENT_WIDTH, "else")
        return If(pos, cond, body, elseifs, else_body)

    def parse_while(self, indent: int) -> While:
        pos = self._pos()
        self.advance()
        cond = self.parse_condition()
        body = self.parse_block(indent + INDENT_WIDTH, "while")
        return While(pos, cond, body)

    def parse_foreach(self, indent: int) -> Foreach:
        pos = self._pos()
        self.advance()
        self.expect_space()
        index = self.parse_variable()
        self.expect_space()
        val = self.parse_variable()
        self.expect_space()
        collection = self.parse_expr()
        self.expect_newline()
        body = self.parse_block(indent + INDENT_WIDTH, "foreach")
        return Foreach(pos, index, val, collection, body)

    def parse_forinc(self, indent: int) -> Forinc:
        pos = self._pos()
        dec = self.advance().value == "fordec"
        self.expect_space()
        index = self.parse_variable()
        self.expect_space()
        start = self.parse_expr()
        self.expect_space()
        end = self.parse_expr()
        self.expect_newline()
        body = self.parse_block(indent + INDENT_WIDTH, "fordec" if dec else "forinc")
        return Forinc(pos, index, start, end, dec, body)

    def parse_return(self) -> Return:
        pos = self._pos()
        self.advance()
        values: list[Expr] = []
        while self.at_type(TK_SPACE):
            self.advance()
            values.append(self.parse_expr())
        self.expect_newline()
        return Return(pos, values)

    def parse_locals(self) -> Locals:
        pos = self._pos()
        self.advance()
        variables: list[Variable] = []
        while self.at_type(TK_SPACE):
            self.advance()
            variables.append(self.parse_variable())
        if len(variables) == 0:
            raise ParseError("locals must declare at least one variable", pos.line, pos.col)
        self.expect_newline()
        return Locals(pos, variables)

    def parse_localfunc(self, indent: int) -> LocalFunc:
        pos = self._pos()
        self.advance()
        self.expect_space()
        name = self.expect_type(TK_IDENT, "function name").value
        params, returns = self.parse_header()
        body = self.parse_block(indent + INDENT_WIDTH, "localfunc")
        return LocalFunc(pos, name, params, returns, body)

    def parse_typeswitch(self, indent: int) -> Typeswitch:
        pos = self._pos()
        self.advance()
        value = self.parse_condition()
        inner = indent + INDENT_WIDTH
        cases: list[Case] = []
        default_name: str | None = None
        default_body: list[Stmt] | None = None
        while self.at_line(inner):
            self.start_line(inner)
            tok = self.current()
            if default_body is not None:
                raise self.error("default must be the last clause of typeswitch")
            if tok.value == "case" and tok.type == TK_RESERVED:
                self.advance()
                self.expect_space()
                var = self.parse_variable()
                self.expect_newline()
                body = self.parse_block(inner + INDENT_WIDTH, "case")
                cases.append(Case(self._tok_pos(tok), var, body))
            elif tok.value == "default" and tok.type == TK_RESERVED:
                self.advance()
                if self.at_type(TK_SPACE):
                    self.advance()
                    default_name = self.expect_type(TK_IDENT, "variable name").value
                self.expect_newline()
                default_body = self.parse_block(inner + INDENT_WIDTH, "default")
            else:
                raise self.error("expected 'case' or 'default' in typeswitch")
        if len(cases) == 0:
            raise ParseError("typeswitch must have at least one case", pos.line, pos.col)
        return Typeswitch(pos, value, cases, default_name, default_body)

    def parse_select(self, indent: int) -> Select:
        pos = self._pos()
        self.advance()
        self.expect_newline()
        inner = indent + INDENT_WIDTH
        clauses: list[SendClause | RcvClause] = []
        default_body: list[Stmt] | None = None
        while self.at_line(inner):
            self.start_line(inner)
            tok = self.current()
            clause_pos = self._tok_pos(tok)
            if default_body is not None:
                raise self.error("default must be the last clause of select")
            if tok.value == "sending" and tok.type == TK_RESERVED:
                self.advance()
                self.expect_space()
                channel = self.parse_expr()
                self.expect_space()
                value = self.parse_expr()
                self.expect_newline()
                body = self.parse_body(inner + INDENT_WIDTH)
                clauses.append(SendClause(clause_pos, channel, value, body))
            elif tok.value == "rcving" and tok.type == TK_RESERVED:
                self.advance()
                self.expect_space()
                var = self.parse_variable()
                self.expect_space()
                channel = self.parse_expr()
                self.expect_newline()
                body = self.parse_body(inner + INDENT_WIDTH)
                clauses.append(RcvClause(clause_pos, var, channel, body))
            elif tok.value == "default" and tok.type == TK_RESERVED:
                self.advance()
                self.expect_newline()
                default_body = self.parse_body(inner + INDENT_WIDTH)
            else:
                raise self.error("expected 'sending', 'rcving' or 'default' in select")
        if len(clauses) == 0:
            raise ParseError("select must have at least one clause", pos.line, pos.col)
        return Select(pos, clauses, default_body)

    def parse_go(self) -> Go:
        pos = self._pos()
        self.advance()
        self.expect_space()
        call = self.parse_expr()
        if not isinstance(call, (FunctionCall, MethodCall)):
            raise ParseError("go statement requires a function or method call", pos.line, pos.col)
        self.expect_newline()
        return Go(pos, call)

    # ── Expressions ──────────────────────────────────────────

    def parse_expr(self) -> Expr:
        tok = self.current()
        pos = self._tok_pos(tok)
        expr: Expr
        if tok.type == TK_NUMBER:
            self.advance()
            expr = NumberLit(pos, tok.value, "." in tok.value)
        elif tok.type == TK_STRING:
            self.advance()
            expr = StringLit(pos, tok.value, decode_string(tok.value, tok.line, tok.col), False)
        elif tok.type == TK_MULTILINE:
            self.advance()
            expr = StringLit(pos, tok.value, tok.value[3 : len(tok.value) - 3], True)
        elif tok.type == TK_BOOL:
            self.advance()
            expr = BoolLit(pos, tok.value == "true")
        elif tok.type == TK_NIL:
            self.advance()
            expr = NilLit(pos)
        elif tok.type == TK_IDENT:
            self.advance()
            expr = Identifier(pos, tok.value)
        elif tok.type == TK_TYPE:
            expr = TypeRef(pos, self.parse_type())
        elif tok.type == TK_LPAREN:
            expr = self.parse_paren()
        else:
            raise self.error("expected expression, got " + _describe(tok))
        return self.parse_postfix(expr)

    def parse_postfix(self, expr: Expr) -> Expr:
        while True:
            if self.at_type(TK_DOT):
                self.advance()
                name_tok = self.expect_type(TK_IDENT, "member name")
                member = self.member_name(name_tok)
                expr = Operation(expr.pos, "get", [expr, member])
            elif self.at_type(TK_LSQUARE):
                self.advance()
                index = self.parse_expr()
                self.expect_type(TK_RSQUARE, "']'")
                expr = Operation(expr.pos, "get", [expr, index])
            else:
                return expr

    def member_name(self, tok: Token) -> Expr:
        """Member names are identifiers in static code and string keys in dynamic code."""
        pos = self._tok_pos(tok)
        if self.dynamic:
            return StringLit(pos, "\"" + tok.value + "\"", tok.value, False)
        return Identifier(pos, tok.value)

    def member_name_expr(self, member: Identifier) -> Expr:
        if self.dynamic:
            return StringLit(member.pos, "\"" + member.name + "\"", member.name, False)
        return member

    def parse_operands(self) -> list[Expr]:
        operands: list[Expr] = []
        while self.at_type(TK_SPACE):
            self.advance()
            if self.at_type(TK_RPAREN):
                break
            operands.append(self.parse_expr())
        return operands

    def parse_paren(self) -> Expr:
        pos = self._pos()
        self.advance()
        tok = self.current()
        expr: Expr
        if tok.type == TK_DOT:
            self.advance()
            if self.at_type(TK_IDENT):
                name = self.advance().value
                operands = self.parse_operands()
                if len(operands) == 0:
                    raise ParseError("method call requires a receiver", pos.line, pos.col)
                expr = MethodCall(pos, name, operands[0], operands[1:])
            else:
                operands = self.parse_operands()
                if len(operands) < 2:
                    raise ParseError(
                        "member access requires a value and at least one member name",
                        pos.line,
                        pos.col,
                    )
                expr = operands[0]
                for member in operands[1:]:
                    if not isinstance(member, Identifier):
                        raise ParseError(
                            "member name must be an identifier", member.pos.line, member.pos.col
                        )
                    expr = Operation(pos, "get", [expr, self.member_name_expr(member)])
        elif tok.type == TK_OPERATOR:
            op = self.advance().value
            expr = Operation(pos, op, self.parse_operands())
        elif tok.type == TK_IDENT or tok.type == TK_LPAREN:
            callee = self.parse_expr()
            expr = FunctionCall(pos, callee, self.parse_operands())
        elif tok.type == TK_TYPE:
            typ = self.parse_type()
            expr = TypeExpression(pos, typ, self.parse_operands())
        else:
            raise self.error("expected operator, function, method or type after '('")
        self.expect_type(TK_RPAREN, "')'")
        return expr


def _lead(indent: int) -> int:
    """Offset of the first real token on a line at this indentation."""
    if indent > 0:
        return 1
    return 0


def _describe(tok: Token) -> str:
    if tok.type == TK_NEWLINE:
        return "end of line"
    if tok.type == TK_EOF:
        return "end of file"
    if tok.type == TK_SPACE:
        return "space"
    if tok.type == TK_INDENT:
        return "indentation"
    return "'" + tok.value + "'"


def parse_tokens(tokens: list[Token], dynamic: bool = False) -> list[Definition]:
    """Parse a filtered token list into top-level definitions."""
    return Parser(tokens, dynamic).parse_program()
