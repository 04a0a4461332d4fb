"""Extraction of referenced datasets from view SQL.

Only enough of the SQL grammar is understood to find the relations named
after FROM and JOIN (including comma-separated FROM lists). Names bound by a
WITH clause are not dataset references and are dropped. Identifiers may be
plain, double-quoted or backtick-quoted, and dotted into multi-segment paths.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_TOKEN_RE = re.compile(
    r"""
      (?P<ws>\s+)
    | (?P<line_comment>--[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<string>'(?:[^']|'')*')
    | (?P<dquoted>"(?:[^"]|"")*")
    | (?P<bquoted>`(?:[^`]|``)*`)
    | (?P<word>[A-Za-z_@$][A-Za-z0-9_@$]*)
    | (?P<number>\d+(?:\.\d+)?)
    | (?P<punct>.)
    """,
    re.VERBOSE | re.DOTALL,
)

# Words that end a FROM item and therefore cannot be an alias.
_CLAUSE_WORDS = frozenset(
    {
        "where", "group", "order", "having", "limit", "offset", "fetch",
        "union", "intersect", "except", "minus", "join", "inner", "left",
        "right", "full", "outer", "cross", "natural", "on", "using",
        "window", "qualify", "lateral", "select", "from", "as", "with",
        "values", "table", "at",
    }
)

# Functions whose argument syntax uses the FROM keyword.
_FROM_FUNCTIONS = frozenset({"extract", "substring", "trim", "overlay", "position"})


@dataclass(frozen=True)
class _Token:
    kind: str
    text: str

    @property
    def lower(self) -> str:
        return self.text.lower()

    @property
    def is_identifier(self) -> bool:
        return self.kind in ("word", "dquoted", "bquoted")

    def is_word(self, *words: str) -> bool:
        return self.kind == "word" and self.lower in words

    def identifier(self) -> str:
        if self.kind == "dquoted":
            return self.text[1:-1].replace('""', '"')
        if self.kind == "bquoted":
            return self.text[1:-1].replace("``", "`")
        return self.text


def _tokenize(sql: str) -> list[_Token]:
    tokens: list[_Token] = []
    for m in _TOKEN_RE.finditer(sql):
        kind = m.lastgroup or "punct"
        if kind in ("ws", "line_comment", "block_comment"):
            continue
        tokens.append(_Token(kind, m.group()))
    return tokens


def _skip_parens(tokens: list[_Token], i: int) -> int:
    """Given `tokens[i] == "("`, return the index after the matching `)`."""
    depth = 0
    while i < len(tokens):
        if tokens[i].text == "(":
            depth += 1
        elif tokens[i].text == ")":
            depth -= 1
            if depth == 0:
                return i + 1
        i += 1
    return i


def _read_path(tokens: list[_Token], i: int) -> tuple[list[str], int]:
    """Read a dotted identifier starting at `i`; returns (segments, next index)."""
    segments: list[str] = []
    while i < len(tokens) and tokens[i].is_identifier:
        segments.append(tokens[i].identifier())
        i += 1
        if i < len(tokens) and tokens[i].text == ".":
            i += 1
            continue
        break
    return segments, i


def _skip_alias(tokens: list[_Token], i: int) -> int:
    if i < len(tokens) and tokens[i].is_word("as"):
        i += 1
    if (
        i < len(tokens)
        and tokens[i].is_identifier
        and not tokens[i].is_word(*_CLAUSE_WORDS)
    ):
        i += 1
        if i < len(tokens) and tokens[i].text == "(":
            i = _skip_parens(tokens, i)
    return i


def _cte_names(tokens: list[_Token]) -> set[str]:
    """Collect names introduced by `WITH [RECURSIVE] name [(cols)] AS (...)`."""
    names: set[str] = set()
    for start, tok in enumerate(tokens):
        if not tok.is_word("with"):
            continue
        i = start + 1
        if i < len(tokens) and tokens[i].is_word("recursive"):
            i += 1
        while i < len(tokens) and tokens[i].is_identifier:
            name = tokens[i].identifier()
            i += 1
            if i < len(tokens) and tokens[i].text == "(":
                i = _skip_parens(tokens, i)
            if not (i + 1 < len(tokens) and tokens[i].is_word("as") and tokens[i + 1].text == "("):
                break
            names.add(name.lower())
            i = _skip_parens(tokens, i + 1)
            if i < len(tokens) and tokens[i].text == ",":
                i += 1
                continue
            break
    return names


def extract_dependencies(sql: str) -> list[list[str]]:
    """
    Return the dataset paths referenced by a SQL statement.

    Paths are returned in order of first appearance, without duplicates
    (compared case-insensitively). References inside subqueries are
    included.
    """
    tokens = _tokenize(sql)
    ctes = _cte_names(tokens)
    found: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()

    def add(path: list[str]) -> None:
        if not path:
            return
        if len(path) == 1 and path[0].lower() in ctes:
            return
        key = tuple(p.lower() for p in path)
        if key not in seen:
            seen.add(key)
            found.append(path)

    # name of the function owning each open parenthesis (None for plain parens)
    paren_owner: list[str | None] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.text == "(":
            prev = tokens[i - 1] if i > 0 else None
            paren_owner.append(prev.lower if prev is not None and prev.kind == "word" else None)
            i += 1
            continue
        if tok.text == ")":
            if paren_owner:
                paren_owner.pop()
            i += 1
            continue
        if not tok.is_word("from", "join"):
            i += 1
            continue
        if tok.is_word("from") and paren_owner and paren_owner[-1] in _FROM_FUNCTIONS:
            i += 1
            continue

        in_from_list = tok.is_word("from")
        i += 1
        while i < len(tokens):
            if not tokens[i].is_identifier or tokens[i].is_word(*_CLAUSE_WORDS):
                # subquery, VALUES, LATERAL, ...: the outer loop keeps scanning
                break
            path, j = _read_path(tokens, i)
            if j < len(tokens) and tokens[j].text == "(":
                # table function call, its arguments are scanned by the outer loop
                i = j
                break
            add(path)
            i = _skip_alias(tokens, j)
            if in_from_list and i < len(tokens) and tokens[i].text == ",":
                i += 1
                continue
            break
    return found
