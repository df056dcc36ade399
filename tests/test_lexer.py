"""Lexer round trip: token values spell the source back, minus layout noise."""

import pytest

from pigeon.tokens import TK_MULTILINE, lex

SOURCES = {
    "plain": """\
func main
    (println 1)
""",
    "comments": """\
// header comment
func add a I b I : I // trailing
    // indented comment line
    return (add a b)
func main
    (println (add 1 -2))// no space before
""",
    "blank indented lines": """\

func main
    locals x I

        \n    as x 3
    \n    (println x)


""",
    "multiline strings": """\
global banner Str '''first line

  // kept: inside the string
"quoted" and 'single'
last'''
func main
    (println banner '''a''' '''''')
""",
    "strings with slashes": """\
func main
    (println "http://example.com" "esc \\" // still string" "a//b") // gone
""",
    "comma continuation": """\
func main
    locals m M<Str I>
    as m (M<Str I> "a" 1
        , "b" 2 // comment after continuation
        ,   "c" 3)
""",
    "members and types": """\
struct Pt
    x I
func main
    locals ps L<P<Pt>> p Pt
    as p.x ps[0].x
    (println (. p x) (.size ps) 3.25)
""",
    "no trailing newline": "func main\n    (println)   ",
    "only comments": "// nothing\n    // here\n\n",
}


def expected_text(source: str) -> str:
    """Source with comments and trailing spaces dropped, blank lines removed,
    and leading-comma lines folded onto the line above."""
    lines: list[str] = []
    current = ""
    i = 0
    in_multiline = False

    def finish(line: str) -> None:
        line = line.rstrip(" ")
        stripped = line.lstrip(" ")
        if stripped == "":
            return
        if stripped.startswith(",") and len(lines) > 0:
            lines[-1] += " " + stripped[1:].lstrip(" ")
            return
        lines.append(line)

    while i < len(source):
        if in_multiline:
            if source.startswith("'''", i):
                in_multiline = False
                current += "'''"
                i += 3
            else:
                current += source[i]
                i += 1
            continue
        c = source[i]
        if source.startswith("'''", i):
            in_multiline = True
            current += "'''"
            i += 3
        elif c == '"':
            j = i + 1
            while source[j] != '"':
                if source[j] == "\\":
                    j += 1
                j += 1
            current += source[i : j + 1]
            i = j + 1
        elif source.startswith("//", i):
            while i < len(source) and source[i] != "\n":
                i += 1
        elif c == "\n":
            finish(current)
            current = ""
            i += 1
        else:
            current += c
            i += 1
    finish(current)
    return "".join(line + "\n" for line in lines)


@pytest.mark.parametrize("name", sorted(SOURCES))
def test_token_values_rebuild_source(name):
    source = SOURCES[name]
    tokens = lex(source)
    assert "".join(tok.value for tok in tokens) == expected_text(source)


def test_only_comments_lex_to_nothing():
    assert lex(SOURCES["only comments"]) == []


def test_multiline_token_keeps_blank_lines_and_slashes():
    tokens = lex(SOURCES["multiline strings"])
    multiline = [tok for tok in tokens if tok.type == TK_MULTILINE]
    assert len(multiline) == 3
    assert "\n\n  // kept: inside the string\n" in multiline[0].value
    assert multiline[2].value == "''''''"
