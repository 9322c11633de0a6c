"""Ordered fallback chain for search strategies.

Tries strategies in priority order until one succeeds. Only server-side
failures (and strategies that do not apply to the query's shape) move the
chain forward; any other failure stops it immediately. Every successful
outcome names the strategy that produced it, so a degraded match is never
mistaken for an exact one.

Example:
    >>> chain = SearchStrategyChain([
    ...     strategy("cql", cql_search),
    ...     strategy("split_filters", filter_search),
    ...     strategy("fuzzy_text", text_search),
    ... ])
    >>> result = await chain.run('space = "DEV" AND title ~ "roadmap"', limit=10)
    >>> result.unwrap().strategy
    'cql'
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from toolbridge.foundation.errors import (
    Err,
    ErrorCode,
    ErrorTrace,
    Ok,
    Result,
    classify_exception,
    trace_from_exc,
)
from toolbridge.runtime.observability import get_logger

log = get_logger("search")

# Failures that let the chain advance to the next strategy
DEFAULT_FALLBACK_CODES: frozenset[ErrorCode] = frozenset({ErrorCode.SERVER_ERROR})

NOT_APPLICABLE = "NOT_APPLICABLE"


class StrategyNotApplicable(Exception):
    """Raised by a strategy whose preconditions the query does not meet."""


@runtime_checkable
class SearchStrategy(Protocol):
    """One way of answering a query."""

    name: str

    async def search(self, query: str, limit: int) -> Any: ...


@dataclass(slots=True, frozen=True)
class FunctionStrategy:
    """SearchStrategy backed by a coroutine function."""

    name: str
    fn: Callable[[str, int], Awaitable[Any]]

    async def search(self, query: str, limit: int) -> Any:
        return await self.fn(query, limit)


def strategy(name: str, fn: Callable[[str, int], Awaitable[Any]]) -> FunctionStrategy:
    return FunctionStrategy(name, fn)


class StrategyFailure(BaseModel):
    """Why one strategy did not produce a result."""

    model_config = ConfigDict(frozen=True)

    strategy: str
    reason: str
    code: str

    def __str__(self) -> str:
        return f"{self.strategy}: {self.reason}"


class SearchOutcome(BaseModel):
    """Successful chain result tagged with its producing strategy."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    strategy: str
    degraded: bool = False
    results: Any = None
    failures: tuple[StrategyFailure, ...] = Field(default=())

    @property
    def exact(self) -> bool:
        return not self.degraded


class SearchFailedError(Exception):
    """Raised by SearchStrategyChain.search when the chain yields no result."""

    __slots__ = ("trace",)

    def __init__(self, trace: ErrorTrace) -> None:
        self.trace = trace
        super().__init__(f"{trace.message}: {trace.details}" if trace.details else trace.message)

    @property
    def code(self) -> ErrorCode:
        try:
            return ErrorCode(self.trace.error_code)
        except ValueError:
            return ErrorCode.UNKNOWN


class SearchStrategyChain:
    """Fallback chain over search strategies.

    Args:
        strategies: In priority order; the first is the exact strategy
        fallback_on: ErrorCodes that advance the chain (default: server errors)
        name: Label used in traces and logs
    """

    __slots__ = ("_strategies", "_fallback_codes", "_name")

    def __init__(
        self,
        strategies: Sequence[SearchStrategy],
        *,
        fallback_on: frozenset[ErrorCode] | None = None,
        name: str = "search",
    ) -> None:
        if not strategies:
            raise ValueError("Search chain requires at least one strategy")
        self._strategies = tuple(strategies)
        self._fallback_codes = fallback_on or DEFAULT_FALLBACK_CODES
        self._name = name

    @property
    def strategies(self) -> tuple[SearchStrategy, ...]:
        return self._strategies

    async def run(self, query: str, limit: int) -> Result[SearchOutcome, ErrorTrace]:
        failures: list[StrategyFailure] = []
        last_code = ErrorCode.UNKNOWN

        for i, s in enumerate(self._strategies):
            try:
                payload = await s.search(query, limit)
            except StrategyNotApplicable as e:
                failures.append(StrategyFailure(strategy=s.name, reason=str(e) or "not applicable", code=NOT_APPLICABLE))
                log.debug("strategy skipped", chain=self._name, strategy=s.name, reason=str(e))
                continue
            except Exception as e:  # noqa: BLE001
                code = classify_exception(e)
                failures.append(StrategyFailure(strategy=s.name, reason=str(e) or type(e).__name__, code=code.value))
                if code not in self._fallback_codes:
                    log.info("search aborted", chain=self._name, strategy=s.name, code=code.value)
                    return Err(
                        trace_from_exc(e, code=code.value).as_unrecoverable()
                        .with_operation(f"search:{self._name}", strategy=s.name)
                    )
                last_code = code
                log.warning("strategy failed, falling back", chain=self._name, strategy=s.name, error=str(e))
                continue

            if i:
                log.info("degraded search result", chain=self._name, strategy=s.name)
            return Ok(SearchOutcome(strategy=s.name, degraded=i > 0, results=payload, failures=tuple(failures)))

        return Err(ErrorTrace(
            message=f"All {len(self._strategies)} search strategies failed",
            error_code=last_code.value,
            recoverable=False,
            details="\n".join(f"- {f}" for f in failures),
        ).with_operation(f"search:{self._name}"))

    async def search(self, query: str, limit: int) -> SearchOutcome:
        """Like run(), raising SearchFailedError instead of returning Err."""
        result = await self.run(query, limit)
        if result.is_err():
            raise SearchFailedError(result.unwrap_err())
        return result.unwrap()
