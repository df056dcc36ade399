"""Pigeon tokenizer: lexes source into a flat, filtered token list."""

from __future__ import annotations

from .errors import PigeonError


# Token type constants
TK_RESERVED = "RESERVED"
TK_OPERATOR = "OPERATOR"
TK_IDENT = "IDENT"
TK_TYPE = "TYPE"
TK_NUMBER = "NUMBER"
TK_STRING = "STRING"
TK_MULTILINE = "MULTILINE"
TK_BOOL = "BOOL"
TK_NIL = "NIL"
TK_NEWLINE = "NEWLINE"
TK_INDENT = "INDENT"
TK_SPACE = "SPACE"
TK_LPAREN = "LPAREN"
TK_RPAREN = "RPAREN"
TK_LSQUARE = "LSQUARE"
TK_RSQUARE = "RSQUARE"
TK_LANGLE = "LANGLE"
TK_RANGLE = "RANGLE"
TK_DOT = "DOT"
TK_COLON = "COLON"
TK_COMMA = "COMMA"
TK_EOF = "EOF"

INDENT_WIDTH = 4

RESERVED_WORDS: set[str] = {
    "func",
    "global",
    "struct",
    "interface",
    "import",
    "nativeimport",
    "nativefunc",
    "nativestruct",
    "method",
    "foreach",
    "go",
    "typeswitch",
    "case",
    "default",
    "break",
    "continue",
    "forinc",
    "fordec",
    "if",
    "else",
    "elseif",
    "while",
    "return",
    "as",
    "locals",
    "localfunc",
    "select",
    "sending",
    "rcving",
}

OPERATORS: set[str] = {
    # arithmetic
    "add",
    "sub",
    "mul",
    "div",
    "mod",
    "inc",
    "dec",
    # comparison and logic
    "eq",
    "neq",
    "not",
    "lt",
    "gt",
    "lte",
    "gte",
    "and",
    "or",
    # containers
    "get",
    "set",
    "push",
    "append",
    "slice",
    "make",
    "len",
    # references
    "ref",
    "dr",
    # bitwise
    "band",
    "bor",
    "bxor",
    "bnot",
    # i/o
    "print",
    "println",
    "prompt",
    # strings
    "concat",
    "getchar",
    "getrune",
    "charlist",
    "runelist",
    "charslice",
    "runeslice",
    "byteslice",
    "istype",
    # math and rng
    "randInt",
    "randIntN",
    "randFloat",
    "floor",
    "ceil",
    # parsing and formatting
    "parseInt",
    "parseFloat",
    "formatInt",
    "formatFloat",
    # time
    "timeNow",
    "formatTime",
    "parseTime",
    # files
    "createFile",
    "openFile",
    "closeFile",
    "readFile",
    "writeFile",
    "seekFile",
    "seekFileStart",
    "seekFileEnd",
    # channels
    "send",
    "rcv",
    "sr",
}

PUNCTUATION: dict[str, str] = {
    "(": TK_LPAREN,
    ")": TK_RPAREN,
    "[": TK_LSQUARE,
    "]": TK_RSQUARE,
    "<": TK_LANGLE,
    ">": TK_RANGLE,
    ".": TK_DOT,
    ":": TK_COLON,
    ",": TK_COMMA,
}

NUMBER_TERMINATORS: set[str] = {" ", "\n", "\r", ")", "]", ">"}

WORD_TERMINATORS: set[str] = {" ", "\n", "\r", ")", "]", "<", ">", ".", "["}


class LexError(PigeonError):
    """Error during tokenization."""


class Token:
    """A token with type, value, and position."""

    def __init__(self, type_: str, value: str, line: int, col: int):
        self.type: str = type_
        self.value: str = value
        self.line: int = line
        self.col: int = col

    def __repr__(self) -> str:
        return (
            "Token("
            + self.type
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ")"
        )


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z")


def _is_alnum(c: str) -> bool:
    return _is_alpha(c) or _is_digit(c)


def _check_char(c: str, line: int, col: int) -> None:
    if c == "\t":
        raise LexError("tab character", line, col)
    if ord(c) > 127:
        raise LexError("non-ASCII character", line, col)


def _classify_word(word: str) -> str:
    if word in RESERVED_WORDS:
        return TK_RESERVED
    if word in OPERATORS:
        return TK_OPERATOR
    if word[0] >= "A" and word[0] <= "Z":
        return TK_TYPE
    if word == "true" or word == "false":
        return TK_BOOL
    if word == "nil":
        return TK_NIL
    return TK_IDENT


class Lexer:
    """Single pass over the source text producing raw tokens."""

    def __init__(self, source: str):
        self.src: str = source + "\n"
        self.pos: int = 0
        self.line: int = 1
        self.col: int = 1
        self.tokens: list[Token] = []

    def emit(self, type_: str, value: str, line: int, col: int) -> None:
        self.tokens.append(Token(type_, value, line, col))

    def run(self) -> list[Token]:
        src = self.src
        while self.pos < len(src):
            c = src[self.pos]
            _check_char(c, self.line, self.col)
            if c == "\n" or c == "\r":
                self.lex_newline()
            elif c == "/":
                self.lex_comment()
            elif c == " ":
                self.lex_spaces()
            elif c == '"':
                self.lex_string()
            elif src.startswith("'''", self.pos):
                self.lex_multiline()
            elif c in PUNCTUATION:
                self.emit(PUNCTUATION[c], c, self.line, self.col)
                self.pos += 1
                self.col += 1
            elif _is_digit(c) or (c == "-" and _is_digit(src[self.pos + 1])):
                self.lex_number()
            elif _is_alpha(c):
                self.lex_word()
            elif c == "_":
                raise LexError("identifier cannot begin with underscore", self.line, self.col)
            else:
                raise LexError("unexpected character '" + c + "'", self.line, self.col)
        return self.tokens

    def lex_newline(self) -> None:
        if self.src[self.pos] == "\r":
            if self.src[self.pos + 1] != "\n":
                raise LexError(
                    "carriage return must be followed by newline", self.line, self.col
                )
            self.pos += 1
        self.emit(TK_NEWLINE, "\n", self.line, self.col)
        self.pos += 1
        self.line += 1
        self.col = 1

    def lex_comment(self) -> None:
        src = self.src
        if src[self.pos + 1] != "/":
            raise LexError("expected second slash to begin comment", self.line, self.col)
        self.pos += 2
        self.col += 2
        while src[self.pos] != "\n" and src[self.pos] != "\r":
            _check_char(src[self.pos], self.line, self.col)
            self.pos += 1
            self.col += 1
        if src[self.pos] == "\r":
            if src[self.pos + 1] != "\n":
                raise LexError(
                    "carriage return must be followed by newline", self.line, self.col
                )
            self.pos += 1
        if len(self.tokens) > 0 and self.tokens[-1].type != TK_NEWLINE:
            self.emit(TK_NEWLINE, "\n", self.line, self.col)
        self.pos += 1
        self.line += 1
        self.col = 1

    def lex_spaces(self) -> None:
        start = self.pos
        while self.src[self.pos] == " ":
            self.pos += 1
        text = self.src[start : self.pos]
        if start == 0 or self.src[start - 1] == "\n":
            self.emit(TK_INDENT, text, self.line, self.col)
        else:
            self.emit(TK_SPACE, text, self.line, self.col)
        self.col += len(text)

    def lex_string(self) -> None:
        src = self.src
        start = self.pos
        col = self.col + 1
        i = start + 1
        while True:
            c = src[i]
            if c == "\n" or c == "\r":
                raise LexError("unterminated string literal", self.line, self.col)
            _check_char(c, self.line, col)
            if c == "\\":
                i += 1
                col += 1
                c = src[i]
                if c == "\n" or c == "\r":
                    raise LexError("unterminated string literal", self.line, self.col)
                _check_char(c, self.line, col)
            elif c == '"':
                i += 1
                col += 1
                break
            i += 1
            col += 1
        self.emit(TK_STRING, src[start:i], self.line, self.col)
        self.pos = i
        self.col = col

    def lex_multiline(self) -> None:
        src = self.src
        start = self.pos
        line = self.line
        col = self.col + 3
        i = start + 3
        while not src.startswith("'''", i):
            if i >= len(src):
                raise LexError("unterminated multiline string", self.line, self.col)
            c = src[i]
            _check_char(c, line, col)
            if c == "\n":
                line += 1
                col = 1
            else:
                col += 1
            i += 1
        i += 3
        self.emit(TK_MULTILINE, src[start:i], self.line, self.col)
        self.pos = i
        self.line = line
        self.col = col + 3

    def lex_number(self) -> None:
        src = self.src
        start = self.pos
        i = start + 1
        while src[i] not in NUMBER_TERMINATORS:
            _check_char(src[i], self.line, self.col + i - start)
            i += 1
        text = src[start:i]
        digits = text
        if digits[0] == "-":
            digits = digits[1:]
        if digits.count(".") > 1:
            raise LexError("number literal has more than one decimal point", self.line, self.col)
        if digits.endswith("."):
            raise LexError("number literal should not end with decimal point", self.line, self.col)
        for c in digits:
            if not _is_digit(c) and c != ".":
                raise LexError("number literal is not properly formed", self.line, self.col)
        self.emit(TK_NUMBER, text, self.line, self.col)
        self.pos = i
        self.col += len(text)

    def lex_word(self) -> None:
        src = self.src
        start = self.pos
        i = start
        while src[i] not in WORD_TERMINATORS:
            _check_char(src[i], self.line, self.col + i - start)
            i += 1
        word = src[start:i]
        for c in word:
            if not _is_alnum(c):
                raise LexError("word is not properly formed: " + word, self.line, self.col)
        self.emit(_classify_word(word), word, self.line, self.col)
        self.pos = i
        self.col += len(word)


def filter_tokens(tokens: list[Token]) -> list[Token]:
    """Drop blank-line noise and fold indented leading commas into spaces."""
    out: list[Token] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        nxt = tokens[i + 1] if i + 1 < len(tokens) else None
        if tok.type in (TK_INDENT, TK_SPACE) and nxt is not None and nxt.type == TK_NEWLINE:
            i += 1
            continue
        if tok.type == TK_NEWLINE:
            after = tokens[i + 2] if i + 2 < len(tokens) else None
            if (
                nxt is not None
                and nxt.type == TK_INDENT
                and after is not None
                and after.type == TK_COMMA
            ):
                out.append(Token(TK_SPACE, " ", after.line, after.col))
                i += 3
                if i < len(tokens) and tokens[i].type == TK_SPACE:
                    i += 1
                continue
            if len(out) == 0 or out[-1].type == TK_NEWLINE:
                i += 1
                continue
        if tok.type == TK_COMMA:
            raise LexError("improperly placed comma", tok.line, tok.col)
        out.append(tok)
        i += 1
    return out


def lex(source: str) -> list[Token]:
    """Tokenize Pigeon source. The result ends with a newline unless empty."""
    return filter_tokens(Lexer(source).run())
