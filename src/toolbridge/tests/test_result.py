"""Tests for Result and ErrorTrace as produced by the search chain.

Validates:
- Ok/Err accessors and wrong-variant unwrapping
- Chain runs return Ok(SearchOutcome) or Err(ErrorTrace), never raise
- Trace context and codes on aborted and exhausted chains
"""

from __future__ import annotations

import pytest

from toolbridge.foundation.errors import BackendError, Err, ErrorTrace, Ok, Result, trace, trace_from_exc
from toolbridge.runtime.search import SearchOutcome, SearchStrategyChain, strategy


async def answer(query: str, limit: int) -> dict[str, object]:
    return {"results": [query], "limit": limit}


async def unavailable(query: str, limit: int) -> dict[str, object]:
    raise BackendError.from_response("Confluence", 503, "down")


async def forbidden(query: str, limit: int) -> dict[str, object]:
    raise BackendError.from_response("Confluence", 403, "no access")


# ═════════════════════════════════════════════════════════════════════════════
# Variants
# ═════════════════════════════════════════════════════════════════════════════


def test_ok_accessors() -> None:
    result: Result[int, str] = Ok(42)
    assert result.is_ok() and not result.is_err()
    assert result.unwrap() == 42


def test_err_accessors() -> None:
    result: Result[int, str] = Err("failed")
    assert result.is_err() and not result.is_ok()
    assert result.unwrap_err() == "failed"


def test_unwrap_wrong_variant_raises() -> None:
    with pytest.raises(RuntimeError, match="unwrap\\(\\) on Err"):
        Err("x").unwrap()
    with pytest.raises(RuntimeError, match="unwrap_err\\(\\) on Ok"):
        Ok(1).unwrap_err()


def test_equality_and_repr() -> None:
    assert Ok(1) == Ok(1)
    assert Ok(1) != Err(1)
    assert repr(Ok(1)) == "Ok(1)"
    assert repr(Err("x")) == "Err('x')"


# ═════════════════════════════════════════════════════════════════════════════
# Chain Results
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_chain_success_is_ok_outcome() -> None:
    chain = SearchStrategyChain([strategy("cql", answer)])
    result = await chain.run("q", 5)

    assert result.is_ok()
    outcome = result.unwrap()
    assert isinstance(outcome, SearchOutcome)
    assert outcome.results == {"results": ["q"], "limit": 5}
    assert outcome.exact


@pytest.mark.asyncio
async def test_degraded_outcome_keeps_earlier_failures() -> None:
    chain = SearchStrategyChain([strategy("cql", unavailable), strategy("fuzzy_text", answer)])
    outcome = (await chain.run("q", 5)).unwrap()

    assert outcome.degraded
    assert [f.strategy for f in outcome.failures] == ["cql"]
    assert outcome.failures[0].code == "SERVER_ERROR"


@pytest.mark.asyncio
async def test_aborted_chain_is_err_with_context() -> None:
    chain = SearchStrategyChain([strategy("cql", forbidden), strategy("fuzzy_text", answer)], name="confluence")
    result = await chain.run("q", 5)

    assert result.is_err()
    err = result.unwrap_err()
    assert isinstance(err, ErrorTrace)
    assert err.error_code == "PERMISSION_DENIED"
    assert not err.recoverable
    assert err.contexts[0].operation == "search:confluence"
    assert err.contexts[0].metadata == {"strategy": "cql"}
    assert str(err).startswith("Confluence API Error: 403 - no access [PERMISSION_DENIED] in search:confluence")


@pytest.mark.asyncio
async def test_exhausted_chain_details_every_strategy() -> None:
    chain = SearchStrategyChain([strategy("cql", unavailable), strategy("split_filters", unavailable)])
    err = (await chain.run("q", 5)).unwrap_err()

    assert err.message == "All 2 search strategies failed"
    assert err.error_code == "SERVER_ERROR"
    assert err.details.splitlines() == [
        "- cql: Confluence API Error: 503 - down",
        "- split_filters: Confluence API Error: 503 - down",
    ]


# ═════════════════════════════════════════════════════════════════════════════
# Trace Construction
# ═════════════════════════════════════════════════════════════════════════════


def test_trace_from_exception() -> None:
    t = trace_from_exc(ValueError("bad query"), operation="validate", code="INVALID_PARAMS").as_unrecoverable()
    assert t.message == "bad query"
    assert t.error_code == "INVALID_PARAMS"
    assert not t.recoverable
    assert t.contexts[0].operation == "validate"


def test_trace_str_without_context() -> None:
    assert str(trace("backend failed")) == "backend failed"
    assert str(trace("backend failed", code="TIMEOUT")) == "backend failed [TIMEOUT]"
