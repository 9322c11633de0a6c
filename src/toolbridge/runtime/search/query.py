"""Structured query (CQL-style) validation, normalization and decomposition.

Quoted literals are never modified or inspected for syntax; every rule
below applies only to text outside double quotes.
"""

from __future__ import annotations

import re

from toolbridge.foundation.errors import ErrorCode

_QUOTED = re.compile(r'("(?:[^"\\]|\\.)*")')
_OPERATOR = re.compile(r"\s*(!=|!~|>=|<=|=|~|>|<)\s*")
_BOOLEAN = re.compile(r"\s*\b(AND|OR)\b\s*", re.IGNORECASE)
_SPACES = re.compile(r"\s+")
_UNESCAPED_QUOTE = re.compile(r'(?<!\\)"')

_DUPLICATE_EQUALITY = re.compile(r'\b(\w+)\s*=\s*(?:"_"|[^\s()"]+)\s+AND\s+\1\s*=', re.IGNORECASE)
_EMPTY_GROUP = re.compile(r"\(\s*\)")
_DOUBLED_BOOLEAN = re.compile(r"\b(?:AND|OR)\s+(?:AND|OR)\b", re.IGNORECASE)

_VALUE = r'(?:"((?:[^"\\]|\\.)*)"|([\w.\-]+))'
_EQ_THEN_FUZZY = re.compile(rf"^(\w+) = {_VALUE} AND (\w+) ~ {_VALUE}$", re.IGNORECASE)
_FUZZY_THEN_EQ = re.compile(rf"^(\w+) ~ {_VALUE} AND (\w+) = {_VALUE}$", re.IGNORECASE)
_FUZZY_CONDITION = re.compile(r'\b(title|text)\s*~\s*"((?:[^"\\]|\\.)*)"', re.IGNORECASE)
_KEYWORDS = frozenset({"and", "or", "not", "order", "by", "asc", "desc", "in"})


class QuerySyntaxError(ValueError):
    """Query rejected before reaching the backend."""

    code = ErrorCode.INVALID_PARAMS


def _segments(query: str) -> list[str]:
    """Alternating [outside, quoted, outside, ...] segments."""
    return _QUOTED.split(query)


def _masked(query: str) -> str:
    """Query with every quoted literal replaced by a fixed placeholder."""
    return "".join('"_"' if i % 2 else part for i, part in enumerate(_segments(query)))


def validate_query(query: str) -> str:
    """Reject duplicate equality conditions on one field, empty groups and doubled boolean operators."""
    query = query.strip()
    if not query:
        raise QuerySyntaxError("Query is empty")
    if len(_UNESCAPED_QUOTE.findall(query)) % 2:
        raise QuerySyntaxError(f"Unbalanced quotes in query: {query}")
    masked = _masked(query)
    if m := _DUPLICATE_EQUALITY.search(masked):
        raise QuerySyntaxError(f"Duplicate '{m.group(1)}' condition in query: {query}")
    if _EMPTY_GROUP.search(masked):
        raise QuerySyntaxError(f"Empty grouping in query: {query}")
    if m := _DOUBLED_BOOLEAN.search(masked):
        raise QuerySyntaxError(f"Doubled boolean operator '{m.group(0)}' in query: {query}")
    return query


def normalize_query(query: str) -> str:
    """Single spaces around comparison operators and AND/OR (uppercased), collapsed whitespace."""
    parts = []
    for i, part in enumerate(_segments(query)):
        if i % 2:
            parts.append(part)
            continue
        part = _SPACES.sub(" ", part)
        part = _OPERATOR.sub(lambda m: f" {m.group(1)} ", part)
        part = _BOOLEAN.sub(lambda m: f" {m.group(1).upper()} ", part)
        parts.append(re.sub(r" {2,}", " ", part))
    return "".join(parts).strip()


def prepare_query(query: str) -> str:
    """validate_query then normalize_query."""
    return normalize_query(validate_query(query))


def split_equality_fuzzy(query: str) -> tuple[tuple[str, str], tuple[str, str]] | None:
    """Decompose ``a = "x" AND b ~ "y"`` (either order) into ((a, x), (b, y)).

    Returns None for any other query shape.
    """
    normalized = normalize_query(query)
    if m := _EQ_THEN_FUZZY.match(normalized):
        eq_field, eq_q, eq_bare, fz_field, fz_q, fz_bare = m.groups()
    elif m := _FUZZY_THEN_EQ.match(normalized):
        fz_field, fz_q, fz_bare, eq_field, eq_q, eq_bare = m.groups()
    else:
        return None
    return (eq_field.lower(), _unescape(eq_q if eq_q is not None else eq_bare)), \
           (fz_field.lower(), _unescape(fz_q if fz_q is not None else fz_bare))


def literal_terms(query: str) -> str:
    """Search terms with all structured syntax removed.

    Quoted literals win when present; otherwise the bare words of the query
    minus operators, punctuation and boolean keywords.
    """
    segments = _segments(query)
    literals = [_unescape(s[1:-1]).strip() for s in segments[1::2]]
    if any(literals):
        return " ".join(lit for lit in literals if lit)
    words = re.sub(r"[^\w\s]", " ", query).split()
    return " ".join(w for w in words if w.lower() not in _KEYWORDS)


def fuzzy_text_query(query: str) -> str | None:
    """Degraded query: keep an existing title/text fuzzy condition, else ``text ~ "<terms>"``.

    Returns None when the query holds no usable terms.
    """
    if m := _FUZZY_CONDITION.search(query):
        return f'{m.group(1).lower()} ~ "{m.group(2)}"'
    terms = literal_terms(query)
    return f'text ~ "{_escape(terms)}"' if terms else None


def quote(value: str) -> str:
    """Quoted CQL literal."""
    return f'"{_escape(value)}"'


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)
