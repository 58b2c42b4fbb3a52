"""Text DSL for metadata filters.

Parses strings such as::

    author in ['john', 'jill'] && article_type == 'blog'
    (year >= 2020 || featured == true) && !(status == 'draft')

into the expression AST. AND (`&&` / `and`) binds tighter than OR
(`||` / `or`), negation (`!` / `not`) binds tightest and parentheses override
precedence. String literals use single (or double) quotes with backslash
escapes; numbers are unquoted; `true` / `false` are booleans. Keywords are
case-insensitive.

Empty input yields None. Malformed input raises `ParseError` with the byte
offset of the offending token and the set of tokens expected there.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from vectorfilter.exceptions import InvalidFilterError, ParseError

from .builder import and_, not_, or_
from .expression import FIELD_PATTERN, KEYWORDS, Comparison, Expression, Operator, Scalar

__all__ = ("FilterParser", "parse_filter")


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


_TOKEN_RE = re.compile(
    rf"""
    (?P<WS>\s+)
    |(?P<STRING>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
    |(?P<NUMBER>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)
    |(?P<WORD>{FIELD_PATTERN})
    |(?P<CMP>==|!=|>=|<=|>|<)
    |(?P<AND>&&)
    |(?P<OR>\|\|)
    |(?P<BANG>!)
    |(?P<LPAREN>\()
    |(?P<RPAREN>\))
    |(?P<LBRACKET>\[)
    |(?P<RBRACKET>\])
    |(?P<COMMA>,)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)

_CMP_OPERATORS = {
    "==": Operator.EQ,
    "!=": Operator.NEQ,
    ">": Operator.GT,
    ">=": Operator.GTE,
    "<": Operator.LT,
    "<=": Operator.LTE,
}

# Descriptions reported in ParseError.expected
FIELD = "field name"
VALUE = "value"
EOF = "end of input"
COMPARISON_OPS = ("'=='", "'!='", "'>'", "'>='", "'<'", "'<='", "'in'", "'nin'", "'not in'")
CONNECTIVES = ("'&&'", "'||'")


def _tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            char = text[pos]
            if char in "'\"":
                raise _error(text, pos, "Unterminated string literal", char, [f"closing {char}"])
            raise _error(text, pos, f"Unexpected character {char!r}", char, [])
        kind = match.lastgroup
        if kind == "WORD" and match.group().lower() in KEYWORDS:
            kind = match.group().lower().upper()
        if kind != "WS":
            tokens.append(Token(kind, match.group(), pos))
        pos = match.end()
    tokens.append(Token("EOF", "", len(text)))
    return tokens


def _error(text: str, position: int, message: str, found: str, expected: Iterable[str]) -> ParseError:
    offset = len(text[:position].encode("utf-8"))
    expected = tuple(expected)
    detail = f"{message} at offset {offset}"
    if expected:
        detail += f"; expected one of: {', '.join(sorted(set(expected)))}"
    return ParseError(detail, text=text, offset=offset, position=position, found=found, expected=expected)


class _Parser:
    """Recursive-descent parser over one token stream."""

    def __init__(self, text: str, max_depth: int) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0
        self.depth = 0
        self.max_depth = max_depth

    # -- token helpers -----------------------------------------------------

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _peek(self, offset: int = 1) -> Token:
        return self.tokens[min(self.index + offset, len(self.tokens) - 1)]

    def _advance(self) -> Token:
        token = self.current
        if token.kind != "EOF":
            self.index += 1
        return token

    def _fail(self, expected: Iterable[str], message: str = "Unexpected token") -> ParseError:
        token = self.current
        found = token.text if token.kind != "EOF" else EOF
        return _error(self.text, token.position, f"{message} {found!r}", found, expected)

    def _expect(self, kind: str, description: str) -> Token:
        if self.current.kind != kind:
            raise self._fail([description])
        return self._advance()

    # -- grammar -----------------------------------------------------------

    def parse(self) -> Optional[Expression]:
        if self.current.kind == "EOF":
            return None
        expression = self._or_expr()
        if self.current.kind != "EOF":
            raise self._fail(CONNECTIVES + (EOF,))
        return expression

    def _or_expr(self) -> Expression:
        operands = [self._and_expr()]
        while self.current.kind in ("OR",):
            self._advance()
            operands.append(self._and_expr())
        return or_(*operands)

    def _and_expr(self) -> Expression:
        operands = [self._unary()]
        while self.current.kind in ("AND",):
            self._advance()
            operands.append(self._unary())
        return and_(*operands)

    def _unary(self) -> Expression:
        if self.current.kind in ("BANG", "NOT"):
            self._advance()
            with _Nesting(self):
                return not_(self._unary())
        return self._primary()

    def _primary(self) -> Expression:
        if self.current.kind == "LPAREN":
            self._advance()
            with _Nesting(self):
                expression = self._or_expr()
            if self.current.kind != "RPAREN":
                raise self._fail(CONNECTIVES + ("')'",))
            self._advance()
            return expression
        if self.current.kind == "WORD":
            return self._comparison()
        raise self._fail([FIELD, "'('", "'!'", "'not'"])

    def _comparison(self) -> Comparison:
        field_token = self._advance()
        token = self.current
        if token.kind == "CMP":
            self._advance()
            value = self._value()
            return self._build(field_token, _CMP_OPERATORS[token.text], value)
        if token.kind == "IN":
            self._advance()
            return self._build(field_token, Operator.IN, self._value_list())
        if token.kind == "NIN":
            self._advance()
            return self._build(field_token, Operator.NOT_IN, self._value_list())
        if token.kind == "NOT" and self._peek().kind == "IN":
            self._advance()
            self._advance()
            return self._build(field_token, Operator.NOT_IN, self._value_list())
        raise self._fail(COMPARISON_OPS)

    def _value_list(self) -> tuple:
        self._expect("LBRACKET", "'['")
        if self.current.kind == "RBRACKET":
            raise self._fail([VALUE], "Empty value list before")
        values = [self._value()]
        while self.current.kind == "COMMA":
            self._advance()
            values.append(self._value())
        if self.current.kind != "RBRACKET":
            raise self._fail(["','", "']'"])
        self._advance()
        return tuple(values)

    def _value(self) -> Scalar:
        token = self.current
        if token.kind == "STRING":
            self._advance()
            return _ESCAPE_RE.sub(r"\1", token.text[1:-1])
        if token.kind == "NUMBER":
            self._advance()
            if any(c in token.text for c in ".eE"):
                return float(token.text)
            return int(token.text)
        if token.kind in ("TRUE", "FALSE"):
            self._advance()
            return token.kind == "TRUE"
        raise self._fail([VALUE])

    def _build(self, field_token: Token, operator: Operator, value) -> Comparison:
        try:
            return Comparison(field_token.text, operator, value)
        except InvalidFilterError as e:
            raise _error(self.text, field_token.position, e.message, field_token.text, [VALUE]) from e


class _Nesting:
    """Tracks nesting depth so hostile input fails with ParseError, not RecursionError."""

    def __init__(self, parser: _Parser) -> None:
        self.parser = parser

    def __enter__(self) -> None:
        self.parser.depth += 1
        if self.parser.depth > self.parser.max_depth:
            raise self.parser._fail([], f"Filter nesting exceeds maximum depth of {self.parser.max_depth} near")

    def __exit__(self, *exc) -> None:
        self.parser.depth -= 1


class FilterParser:
    """Parser for the filter DSL.

    Instances hold only configuration and may be shared between threads.
    """

    def __init__(self, max_depth: int = 64) -> None:
        self.max_depth = max_depth

    def parse(self, text: str) -> Optional[Expression]:
        """Parse `text` into an expression; empty text yields None.

        Raises:
            ParseError: If `text` is not a well-formed filter
        """
        if not isinstance(text, str):
            raise TypeError(f"filter text must be a string, got {type(text).__name__}")
        return _Parser(text, self.max_depth).parse()


_default_parser = FilterParser()


def parse_filter(text: str) -> Optional[Expression]:
    """Parse filter DSL text with the default parser."""
    return _default_parser.parse(text)
