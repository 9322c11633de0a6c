"""Search strategy chain and structured-query helpers."""

from .chain import (
    DEFAULT_FALLBACK_CODES,
    FunctionStrategy,
    SearchFailedError,
    SearchOutcome,
    SearchStrategy,
    SearchStrategyChain,
    StrategyFailure,
    StrategyNotApplicable,
    strategy,
)
from .query import (
    QuerySyntaxError,
    fuzzy_text_query,
    literal_terms,
    normalize_query,
    prepare_query,
    quote,
    split_equality_fuzzy,
    validate_query,
)

__all__ = [
    "SearchStrategyChain", "SearchStrategy", "FunctionStrategy", "strategy",
    "SearchOutcome", "StrategyFailure", "StrategyNotApplicable", "SearchFailedError", "DEFAULT_FALLBACK_CODES",
    "QuerySyntaxError", "validate_query", "normalize_query", "prepare_query",
    "split_equality_fuzzy", "literal_terms", "fuzzy_text_query", "quote",
]
