"""Markup normalization."""

from .normalizer import (
    DEFAULT_MARKER,
    DocumentNormalizer,
    NormalizedDocument,
    extract_macros,
    normalize_whitespace,
    parse,
    remove_noise,
    render,
    strip_tags,
    summarize,
)

__all__ = [
    "DocumentNormalizer", "NormalizedDocument", "DEFAULT_MARKER",
    "parse", "extract_macros", "remove_noise", "render", "normalize_whitespace", "summarize", "strip_tags",
]
