"""Async REST client for JSON backends.

Wraps httpx.AsyncClient with bearer auth, a fixed API root, response-cache
integration for GET, and failure classification into BackendError.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import httpx
import orjson

from toolbridge.foundation.errors import BackendError, ErrorCode
from toolbridge.io.cache import ResponseCache, cached_call, make_key
from toolbridge.runtime.observability import get_logger

if TYPE_CHECKING:
    from toolbridge.foundation.config import HttpSettings

QueryParams = dict[str, Any]


class RestClient:
    """JSON-over-HTTP client bound to one backend.

    Only GET responses are cached. POST/PUT/DELETE always reach the backend
    and leave cached reads untouched, so a read may be stale for up to one TTL
    after a write.

    Args:
        api_root: Absolute URL every endpoint is appended to (e.g. ``https://wiki/rest/api``)
        token: Bearer token
        service: Name used in error messages and logs
        cache: Shared response cache, or None to disable caching
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Example:
        >>> client = RestClient("https://jira.example.com/rest/api/2", token, service="Jira")
        >>> await client.get("/myself")
    """

    __slots__ = ("_api_root", "_token", "_service", "_cache", "_timeout", "_verify", "_user_agent",
                 "_transport", "_client", "_log")

    def __init__(
        self,
        api_root: str,
        token: str,
        *,
        service: str = "backend",
        cache: ResponseCache | None = None,
        timeout: float = 30.0,
        verify_ssl: bool = True,
        user_agent: str = "toolbridge/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_root = api_root.rstrip("/")
        self._token = token
        self._service = service
        self._cache = cache
        self._timeout = timeout
        self._verify = verify_ssl
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._log = get_logger("http", service=service)

    @classmethod
    def from_settings(
        cls,
        api_root: str,
        token: str,
        http: HttpSettings,
        *,
        service: str,
        cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> RestClient:
        return cls(
            api_root, token, service=service, cache=cache, timeout=http.timeout,
            verify_ssl=http.verify_ssl, user_agent=http.user_agent, transport=transport,
        )

    @property
    def cache(self) -> ResponseCache | None:
        return self._cache

    @property
    def service(self) -> str:
        return self._service

    # ─────────────────────────────────────────────────────────────────
    # HTTP Client
    # ─────────────────────────────────────────────────────────────────

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._api_root,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                    "User-Agent": self._user_agent,
                },
                timeout=self._timeout,
                verify=self._verify,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> RestClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Requests
    # ─────────────────────────────────────────────────────────────────

    async def get(self, endpoint: str, params: QueryParams | None = None) -> Any:
        """Cached read."""
        params = _clean(params)
        if self._cache is None:
            return await self._send("GET", endpoint, params=params)

        key = make_key(endpoint, "GET", params)

        async def fetch() -> Any:
            self._log.debug("cache miss", endpoint=endpoint)
            return await self._send("GET", endpoint, params=params)

        return await cached_call(self._cache, key, fetch)

    async def post(self, endpoint: str, body: Any = None, params: QueryParams | None = None) -> Any:
        return await self._send("POST", endpoint, params=_clean(params), body=body)

    async def put(self, endpoint: str, body: Any = None, params: QueryParams | None = None) -> Any:
        return await self._send("PUT", endpoint, params=_clean(params), body=body)

    async def delete(self, endpoint: str, params: QueryParams | None = None) -> Any:
        return await self._send("DELETE", endpoint, params=_clean(params))

    async def _send(self, method: str, endpoint: str, *, params: QueryParams | None = None, body: Any = None) -> Any:
        content = orjson.dumps(body) if body is not None else None
        start = time.perf_counter()
        try:
            response = await self._get_client().request(method, endpoint, params=params, content=content)
        except httpx.TimeoutException as e:
            raise BackendError(
                f"{self._service} request timed out after {self._timeout}s", service=self._service,
                code=ErrorCode.TIMEOUT,
            ) from e
        except httpx.NetworkError as e:
            raise BackendError(
                f"Request failed: {e}", service=self._service, code=ErrorCode.NETWORK_ERROR,
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(
                f"Request failed: {e}", service=self._service, code=ErrorCode.EXTERNAL_SERVICE_ERROR,
            ) from e

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        self._log.debug("backend call", method=method, endpoint=endpoint, status=response.status_code,
                        duration_ms=elapsed_ms)
        return self._parse(response)

    def _parse(self, response: httpx.Response) -> Any:
        if response.status_code >= 400:
            raise BackendError.from_response(self._service, response.status_code, response.text)
        if not response.content.strip():
            return {"statusCode": response.status_code, "success": True}
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise BackendError(
                f"Failed to parse response: {e}", service=self._service, status_code=response.status_code,
                body=response.text[:500], code=ErrorCode.PARSE_ERROR,
            ) from e


def _clean(params: QueryParams | None) -> QueryParams | None:
    """Drop unset query parameters so they neither reach the backend nor split cache keys."""
    if not params:
        return None
    return {k: v for k, v in params.items() if v is not None}
