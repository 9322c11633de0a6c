"""Jira REST operations.

Issue payloads are reduced to a fixed set of fields, and HTML descriptions
are normalized and summarized to a small budget.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Literal

from toolbridge.foundation.errors import JsonDict
from toolbridge.io.cache import ResponseCache
from toolbridge.io.http import RestClient
from toolbridge.runtime.observability import get_logger
from toolbridge.text import DocumentNormalizer

if TYPE_CHECKING:
    import httpx

    from toolbridge.foundation.config import BridgeSettings, JiraSettings

SERVICE = "Jira"

Mode = Literal["summary", "standard", "full"]

STANDARD_FIELDS = (
    "key", "summary", "status", "assignee", "reporter", "priority", "issuetype", "created", "updated",
    "description", "resolution", "labels", "fixVersions", "components", "issuelinks",
)
SUMMARY_FIELDS = ("key", "summary", "status", "assignee", "priority", "issuetype", "updated")

MAX_LABELS = 5
MAX_LINKED_ISSUES = 3
PROJECT_LABEL_SCAN = 1000

log = get_logger("jira")


def fields_for_mode(mode: Mode) -> str | None:
    """Comma-joined field selection; None requests every field."""
    match mode:
        case "summary": return ",".join(SUMMARY_FIELDS)
        case "full": return None
        case _: return ",".join(STANDARD_FIELDS)


def _name(value: Any) -> str | None:
    return value.get("name") if isinstance(value, dict) else None


def _date(value: str | None) -> str:
    """ISO timestamp reduced to its date part."""
    return value[:10] if value else ""


class JiraClient:
    """Jira operations over one RestClient.

    Args:
        rest: REST client rooted at ``{base_url}/rest/api/2``
        normalizer: Converts HTML descriptions to bounded plain text
        browse_url: Base for issue links, ``{browse_url}/{KEY}``
    """

    __slots__ = ("_rest", "_normalizer", "_browse_url")

    def __init__(self, rest: RestClient, normalizer: DocumentNormalizer, browse_url: str) -> None:
        self._rest = rest
        self._normalizer = normalizer
        self._browse_url = browse_url.rstrip("/")

    @classmethod
    def from_settings(
        cls,
        jira: JiraSettings,
        bridge: BridgeSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> JiraClient:
        cache = ResponseCache(bridge.cache.ttl) if bridge.cache.enabled else None
        rest = RestClient.from_settings(
            jira.api_root, jira.api_token.get_secret_value(), bridge.http,
            service=SERVICE, cache=cache, transport=transport,
        )
        normalizer = DocumentNormalizer(jira.max_chars, jira.summary_chars, bridge.normalizer.marker)
        return cls(rest, normalizer, jira.browse_root)

    @property
    def rest(self) -> RestClient:
        return self._rest

    def issue_link(self, key: str) -> str:
        return f"{self._browse_url}/{key}"

    async def aclose(self) -> None:
        await self._rest.aclose()

    # ─────────────────────────────────────────────────────────────────
    # Issues
    # ─────────────────────────────────────────────────────────────────

    def simplify_issue(self, issue: JsonDict) -> JsonDict:
        key = issue.get("key", "")
        fields = issue.get("fields") or {}
        out: JsonDict = {
            "key": key,
            "summary": fields.get("summary") or "",
            "description": self._normalizer.normalize(fields.get("description")).plain_text or "No description",
            "status": _name(fields.get("status")) or "Unknown",
            "priority": _name(fields.get("priority")) or "None",
            "issueType": _name(fields.get("issuetype")) or "Unknown",
            "assignee": (fields.get("assignee") or {}).get("displayName") or "Unassigned",
            "reporter": (fields.get("reporter") or {}).get("displayName") or "Unknown",
            "created": _date(fields.get("created")),
            "updated": _date(fields.get("updated")),
            "link": self.issue_link(key),
        }
        if resolution := _name(fields.get("resolution")):
            out["resolution"] = resolution
        if labels := fields.get("labels"):
            out["labels"] = labels[:MAX_LABELS]

        linked = []
        for link in fields.get("issuelinks") or []:
            other = link.get("inwardIssue") or link.get("outwardIssue") or {}
            if other.get("key"):
                linked.append({
                    "key": other["key"],
                    "summary": (other.get("fields") or {}).get("summary"),
                    "relationship": _name(link.get("type")),
                })
        if linked:
            out["linkedIssues"] = linked[:MAX_LINKED_ISSUES]
        return out

    async def get_issue(self, issue_key: str, mode: Mode = "standard") -> JsonDict:
        result = await self._rest.get(f"/issue/{issue_key}", {"fields": fields_for_mode(mode)})
        return self.simplify_issue(result)

    async def search_issues(self, jql: str, max_results: int = 25, mode: Mode = "summary") -> JsonDict:
        result = await self._rest.get(
            "/search", {"jql": jql, "maxResults": max_results, "fields": fields_for_mode(mode)},
        )
        issues = result.get("issues") or []
        total = result.get("total", len(issues))
        start = result.get("startAt", 0)
        shown = min(start + result.get("maxResults", max_results), total)
        return {
            "summary": f"Showing {start + 1}-{shown} of {total} issues" if total else "No issues found",
            "total": total,
            "issues": [self.simplify_issue(i) for i in issues],
        }

    async def create_issue(
        self,
        project_key: str,
        issue_type: str,
        summary: str,
        description: str = "",
        assignee: str | None = None,
    ) -> JsonDict:
        fields: JsonDict = {
            "project": {"key": project_key},
            "issuetype": {"name": issue_type},
            "summary": summary,
            "description": description,
        }
        if assignee:
            fields["assignee"] = {"name": assignee}
        result = await self._rest.post("/issue", {"fields": fields})
        key = result.get("key")
        log.info("issue created", issue=key, project=project_key)
        return {"issueKey": key, "issueId": result.get("id"), "link": self.issue_link(key) if key else None}

    async def update_issue(self, issue_key: str, fields: JsonDict) -> JsonDict:
        result = await self._rest.put(f"/issue/{issue_key}", {"fields": fields})
        return {
            "success": True,
            "issueKey": issue_key,
            "statusCode": result.get("statusCode", 204) if isinstance(result, dict) else 204,
        }

    async def add_comment(self, issue_key: str, comment: str) -> JsonDict:
        result = await self._rest.post(f"/issue/{issue_key}/comment", {"body": comment})
        return {
            "issueKey": issue_key,
            "commentId": result.get("id"),
            "author": (result.get("author") or {}).get("displayName") or "",
            "created": result.get("created") or "",
        }

    # ─────────────────────────────────────────────────────────────────
    # Projects & Metadata
    # ─────────────────────────────────────────────────────────────────

    async def get_projects(self) -> JsonDict:
        result = await self._rest.get("/project")
        projects = result if isinstance(result, list) else (result.get("values") or [])
        simplified = [
            {
                "key": p.get("key"),
                "name": p.get("name"),
                "projectType": p.get("projectTypeKey"),
                "category": _name(p.get("projectCategory")) or "None",
            }
            for p in projects
        ]
        return {"total": len(simplified), "projects": simplified}

    async def get_issue_types(self, project_key: str | None = None) -> JsonDict:
        endpoint = f"/project/{project_key}/statuses" if project_key else "/issuetype"
        result = await self._rest.get(endpoint)
        types = [
            {
                "id": t.get("id"),
                "name": t.get("name"),
                "description": t.get("description") or "",
                "subtask": bool(t.get("subtask", False)),
            }
            for t in (result if isinstance(result, list) else [])
        ]
        return {"projectKey": project_key, "issueTypes": types}

    async def get_current_user(self) -> JsonDict:
        result = await self._rest.get("/myself")
        return {
            "accountId": result.get("accountId"),
            "displayName": result.get("displayName"),
            "email": result.get("emailAddress") or "N/A",
            "username": result.get("name") or result.get("accountId"),
            "active": result.get("active") is not False,
            "timeZone": result.get("timeZone") or "N/A",
        }

    async def get_labels(self, project_key: str | None = None, max_results: int = 50) -> JsonDict:
        if project_key:
            result = await self._rest.get(
                "/search",
                {"jql": f'project = "{project_key}"', "fields": "labels", "maxResults": PROJECT_LABEL_SCAN},
            )
            labels = sorted({
                label
                for issue in result.get("issues") or []
                for label in (issue.get("fields") or {}).get("labels") or []
            })
        else:
            result = await self._rest.get("/label", {"maxResults": max_results})
            labels = list(result.get("values") or [])
        return {"labels": labels, "total": len(labels), "projectKey": project_key}

    async def get_fix_versions(self, project_key: str) -> JsonDict:
        result = await self._rest.get(f"/project/{project_key}/versions")
        versions = sorted(
            (
                {
                    "id": v.get("id"),
                    "name": v.get("name") or "",
                    "description": v.get("description") or "",
                    "released": bool(v.get("released", False)),
                    "archived": bool(v.get("archived", False)),
                    "releaseDate": v.get("releaseDate"),
                    "startDate": v.get("startDate"),
                }
                for v in result or []
            ),
            key=lambda v: v["name"],
        )
        return {"versions": versions, "total": len(versions), "projectKey": project_key}

    async def get_components(self, project_key: str) -> JsonDict:
        result = await self._rest.get(f"/project/{project_key}/components")
        components = sorted(
            (
                {
                    "id": c.get("id"),
                    "name": c.get("name") or "",
                    "description": c.get("description") or "",
                    "lead": _lead(c.get("lead")),
                    "assigneeType": c.get("assigneeType") or "PROJECT_DEFAULT",
                }
                for c in result or []
            ),
            key=lambda c: c["name"],
        )
        return {"components": components, "total": len(components), "projectKey": project_key}


def _lead(lead: JsonDict | None) -> JsonDict | None:
    if not lead:
        return None
    return {"displayName": lead.get("displayName"), "username": lead.get("name") or lead.get("accountId")}
