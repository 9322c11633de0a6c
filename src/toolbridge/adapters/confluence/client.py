"""Confluence REST operations.

Every read goes through the shared RestClient (and so through the response
cache). Results are compacted to the fields a tool client actually needs;
page and comment bodies are normalized to bounded plain text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from toolbridge.foundation.errors import JsonDict
from toolbridge.io.cache import ResponseCache
from toolbridge.io.http import RestClient
from toolbridge.runtime.observability import get_logger
from toolbridge.runtime.search import (
    SearchStrategyChain,
    StrategyNotApplicable,
    fuzzy_text_query,
    prepare_query,
    quote,
    split_equality_fuzzy,
    strategy,
)
from toolbridge.text import DocumentNormalizer

if TYPE_CHECKING:
    import httpx

    from toolbridge.foundation.config import BridgeSettings, ConfluenceSettings

SERVICE = "Confluence"
PAGE_FIELDS = ("id", "title", "type", "status")

log = get_logger("confluence")


# ─────────────────────────────────────────────────────────────────────────────
# Compaction
# ─────────────────────────────────────────────────────────────────────────────


def compact_user(user: JsonDict | None) -> JsonDict | None:
    if not user:
        return None
    return {"displayName": user.get("displayName"), "username": user.get("username") or user.get("userKey")}


def compact_content(item: JsonDict, normalizer: DocumentNormalizer | None = None) -> JsonDict:
    """Keep id/title/type/status, version author and time, the web link, and (optionally) the body as text."""
    out: JsonDict = {k: item[k] for k in PAGE_FIELDS if k in item}

    if normalizer is not None and (markup := ((item.get("body") or {}).get("storage") or {}).get("value")):
        doc = normalizer.normalize(markup)
        out["body"] = {"content": doc.plain_text, "originalLength": doc.original_length, "truncated": doc.truncated}

    if version := item.get("version"):
        v: JsonDict = {"number": version.get("number")}
        if by := compact_user(version.get("by")):
            v["by"] = by
        if when := version.get("when"):
            v["when"] = when
        out["version"] = v

    if webui := (item.get("_links") or {}).get("webui"):
        out["webui"] = webui
    if space := item.get("space"):
        out["space"] = {"key": space.get("key"), "name": space.get("name")}
    return out


def page_listing(result: Any, limit: int, item: Any = compact_content, **extra: Any) -> JsonDict:
    """``{results, size, limit}`` envelope shared by every list operation."""
    result = result if isinstance(result, dict) else {}
    return {
        "results": [item(r) for r in result.get("results") or []],
        "size": result.get("size", 0),
        "limit": result.get("limit", limit),
        **extra,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────


class ConfluenceClient:
    """Confluence operations over one RestClient.

    Args:
        rest: REST client rooted at ``{base_url}/rest/api``
        normalizer: Converts storage-format bodies to plain text

    Example:
        >>> client = ConfluenceClient.from_settings(ConfluenceSettings(), get_settings())
        >>> await client.search_pages('space = "DOC" AND title ~ "release"')
    """

    __slots__ = ("_rest", "_normalizer", "_search")

    def __init__(self, rest: RestClient, normalizer: DocumentNormalizer | None = None) -> None:
        self._rest = rest
        self._normalizer = normalizer or DocumentNormalizer()
        self._search = SearchStrategyChain(
            [
                strategy("cql", self._search_cql),
                strategy("split_filters", self._search_split_filters),
                strategy("fuzzy_text", self._search_fuzzy_text),
            ],
            name="confluence",
        )

    @classmethod
    def from_settings(
        cls,
        confluence: ConfluenceSettings,
        bridge: BridgeSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> ConfluenceClient:
        cache = ResponseCache(bridge.cache.ttl) if bridge.cache.enabled else None
        rest = RestClient.from_settings(
            confluence.api_root, confluence.api_token.get_secret_value(), bridge.http,
            service=SERVICE, cache=cache, transport=transport,
        )
        norm = bridge.normalizer
        max_chars = confluence.max_chars or norm.max_chars
        if max_chars <= len(norm.marker):
            raise ValueError(f"CONFLUENCE_MAX_CHARS must be greater than the marker length ({len(norm.marker)})")
        summary_chars = min(norm.summary_chars, max_chars - len(norm.marker))
        return cls(rest, DocumentNormalizer(max_chars, summary_chars, norm.marker))

    @property
    def rest(self) -> RestClient:
        return self._rest

    @property
    def search_chain(self) -> SearchStrategyChain:
        return self._search

    async def aclose(self) -> None:
        await self._rest.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Spaces
    # ─────────────────────────────────────────────────────────────────

    async def get_spaces(self, limit: int = 25) -> JsonDict:
        result = await self._rest.get("/space", {"limit": limit})
        return page_listing(result, limit, _compact_space)

    async def get_space_details(self, space_key: str) -> JsonDict:
        result = await self._rest.get(f"/space/{space_key}", {"expand": "description.plain,homepage"})
        return {
            "key": result.get("key"),
            "name": result.get("name"),
            "type": result.get("type"),
            "status": result.get("status"),
            "description": ((result.get("description") or {}).get("plain") or {}).get("value", ""),
            "homepage": (result.get("homepage") or {}).get("id"),
            "webui": (result.get("_links") or {}).get("webui"),
        }

    async def get_space_pages(self, space_key: str, limit: int = 50, start: int = 0) -> JsonDict:
        result = await self._rest.get(
            "/content", {"spaceKey": space_key, "limit": limit, "start": start, "type": "page"},
        )
        return page_listing(result, limit, start=start)

    async def get_page_templates(self, space_key: str) -> JsonDict:
        result = await self._rest.get("/content", {"spaceKey": space_key, "type": "template"})
        return page_listing(result, 0)

    # ─────────────────────────────────────────────────────────────────
    # Pages
    # ─────────────────────────────────────────────────────────────────

    async def get_page(self, page_id: str) -> JsonDict:
        result = await self._rest.get(f"/content/{page_id}", {"expand": "body.storage,version"})
        return compact_content(result, self._normalizer)

    async def get_child_pages(self, page_id: str, limit: int = 25) -> JsonDict:
        result = await self._rest.get(f"/content/{page_id}/child/page", {"limit": limit})
        return page_listing(result, limit)

    async def get_page_history(self, page_id: str, limit: int = 10) -> JsonDict:
        result = await self._rest.get(f"/content/{page_id}/history", {"limit": limit})
        if isinstance(result, dict) and "results" not in result:
            # Single-history form: latest version plus creation info
            return {
                "latest": (result.get("lastUpdated") or {}).get("number"),
                "createdBy": compact_user(result.get("createdBy")),
                "createdDate": result.get("createdDate"),
                "lastUpdated": _compact_version(result.get("lastUpdated") or {}),
            }
        return page_listing(result, limit, _compact_version)

    async def get_recent_pages(self, limit: int = 25, space_key: str | None = None) -> JsonDict:
        result = await self._rest.get(
            "/content", {"limit": limit, "orderby": "lastmodified", "type": "page", "spaceKey": space_key},
        )
        return page_listing(result, limit)

    async def create_page(self, space_key: str, title: str, content: str, parent_id: str | None = None) -> Any:
        body: JsonDict = {
            "type": "page",
            "title": title,
            "space": {"key": space_key},
            "body": {"storage": {"value": content, "representation": "storage"}},
        }
        if parent_id:
            body["ancestors"] = [{"id": parent_id}]
        result = await self._rest.post("/content", body)
        log.info("page created", space=space_key, page_id=_field(result, "id"))
        return compact_content(result) if isinstance(result, dict) and "id" in result else result

    async def update_page(self, page_id: str, title: str, content: str, version: int) -> Any:
        body: JsonDict = {
            "version": {"number": version},
            "title": title,
            "type": "page",
            "body": {"storage": {"value": content, "representation": "storage"}},
        }
        result = await self._rest.put(f"/content/{page_id}", body)
        return compact_content(result) if isinstance(result, dict) and "id" in result else result

    async def delete_page(self, page_id: str) -> Any:
        result = await self._rest.delete(f"/content/{page_id}")
        log.info("page deleted", page_id=page_id)
        return result

    # ─────────────────────────────────────────────────────────────────
    # Comments, Labels, Attachments
    # ─────────────────────────────────────────────────────────────────

    async def get_page_comments(self, page_id: str, limit: int = 25) -> JsonDict:
        result = await self._rest.get(
            f"/content/{page_id}/child/comment", {"limit": limit, "expand": "body.storage,history"},
        )
        return page_listing(result, limit, self._compact_comment)

    def _compact_comment(self, comment: JsonDict) -> JsonDict:
        history = comment.get("history") or {}
        storage = (comment.get("body") or {}).get("storage") or {}
        return {
            "id": comment.get("id"),
            "title": comment.get("title"),
            "body": self._normalizer.normalize(storage.get("value")).plain_text,
            "author": compact_user(history.get("createdBy")),
            "created": history.get("createdDate"),
        }

    async def add_page_comment(self, page_id: str, comment: str) -> Any:
        body = {
            "type": "comment",
            "container": {"id": page_id, "type": "page"},
            "body": {"storage": {"value": comment, "representation": "storage"}},
        }
        return await self._rest.post("/content", body)

    async def get_page_labels(self, page_id: str) -> JsonDict:
        result = await self._rest.get(f"/content/{page_id}/label")
        return page_listing(result, 0, _compact_label)

    async def add_page_label(self, page_id: str, labels: list[str]) -> Any:
        return await self._rest.post(
            f"/content/{page_id}/label", [{"prefix": "global", "name": name} for name in labels],
        )

    async def get_page_attachments(self, page_id: str, limit: int = 25) -> JsonDict:
        result = await self._rest.get(f"/content/{page_id}/child/attachment", {"limit": limit})
        return page_listing(result, limit, _compact_attachment)

    # ─────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────

    async def get_current_user(self) -> JsonDict:
        result = await self._rest.get("/user/current")
        return {
            "accountId": result.get("accountId"),
            "displayName": result.get("displayName"),
            "email": result.get("email") or "N/A",
            "username": result.get("username") or result.get("accountId"),
            "type": result.get("type") or "user",
            "accountType": result.get("accountType") or "atlassian",
        }

    # ─────────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────────

    async def search_pages(self, query: str, limit: int = 10) -> JsonDict:
        """Run the strategy chain; the result names the strategy that answered."""
        outcome = await self._search.search(query, limit)
        return {**outcome.results, "strategy": outcome.strategy, "exact": outcome.exact}

    async def get_my_pages(self, limit: int = 25, space_key: str | None = None) -> JsonDict:
        user = await self.get_current_user()
        cql = f"creator = {quote(str(user['username']))} AND type = page"
        if space_key:
            cql += f" AND space = {quote(space_key)}"
        return await self._cql(cql, limit)

    async def get_pages_by_label(self, label: str, limit: int = 25, space_key: str | None = None) -> JsonDict:
        cql = f"label = {quote(label)} AND type = page"
        if space_key:
            cql += f" AND space = {quote(space_key)}"
        return await self._cql(cql, limit)

    async def _cql(self, cql: str, limit: int) -> JsonDict:
        result = await self._rest.get("/content/search", {"cql": cql, "limit": limit, "expand": "space"})
        return page_listing(result, limit)

    async def _search_cql(self, query: str, limit: int) -> JsonDict:
        # QuerySyntaxError carries INVALID_PARAMS, which aborts the chain
        return await self._cql(prepare_query(query), limit)

    async def _search_split_filters(self, query: str, limit: int) -> JsonDict:
        parts = split_equality_fuzzy(query)
        if parts is None or parts[0][0] != "space" or parts[1][0] != "title":
            raise StrategyNotApplicable("query is not a space = X AND title ~ Y pair")
        (_, space_key), (_, title) = parts
        result = await self._rest.get(
            "/content", {"spaceKey": space_key, "title": title, "limit": limit, "type": "page"},
        )
        return page_listing(result, limit)

    async def _search_fuzzy_text(self, query: str, limit: int) -> JsonDict:
        cql = fuzzy_text_query(query)
        if cql is None:
            raise StrategyNotApplicable("query has no searchable terms")
        return await self._cql(cql, limit)


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def _compact_space(space: JsonDict) -> JsonDict:
    return {
        "key": space.get("key"),
        "name": space.get("name"),
        "type": space.get("type"),
        "status": space.get("status"),
        "webui": (space.get("_links") or {}).get("webui"),
    }


def _compact_version(version: JsonDict) -> JsonDict:
    return {
        "number": version.get("number"),
        "when": version.get("when"),
        "by": compact_user(version.get("by")),
        "message": version.get("message") or "",
    }


def _compact_label(label: JsonDict) -> JsonDict:
    return {"id": label.get("id"), "name": label.get("name"), "prefix": label.get("prefix")}


def _compact_attachment(attachment: JsonDict) -> JsonDict:
    return {
        "id": attachment.get("id"),
        "title": attachment.get("title"),
        "mediaType": (attachment.get("metadata") or {}).get("mediaType"),
        "fileSize": (attachment.get("extensions") or {}).get("fileSize"),
        "downloadUrl": (attachment.get("_links") or {}).get("download"),
    }


def _field(result: Any, key: str) -> Any:
    return result.get(key) if isinstance(result, dict) else None
