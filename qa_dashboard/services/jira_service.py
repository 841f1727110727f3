"""
Jira Cloud adapter.

Each method performs one REST call and returns ``{"success": True, ...}``
or ``{"success": False, "error": ...}``; nothing is raised and nothing is
retried.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class JiraService:
    """Thin client for the Jira REST, Agile and Greenhopper APIs."""

    def __init__(
        self,
        domain: str,
        email: str,
        api_token: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = f"https://{domain}.atlassian.net"
        self._auth = httpx.BasicAuth(email, api_token)
        self._timeout = timeout
        self._transport = transport

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=self._auth,
            timeout=self._timeout,
            transport=self._transport,
            headers={"Accept": "application/json"},
        ) as client:
            response = await client.get(path, params=params)
            response.raise_for_status()
            return response.json()

    async def _call(self, action: str, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            return {"success": True, "data": await self._get(path, params)}
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response) or f"{e.response.status_code} {e.response.reason_phrase}"
            logger.error(f"Jira {action} failed: {message}")
            return {"success": False, "error": message}
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Jira {action} failed: {e}")
            return {"success": False, "error": str(e) or f"Failed to {action}"}

    async def test_connection(self) -> Dict[str, Any]:
        result = await self._call("connect to Jira", "/rest/api/3/myself")
        if not result["success"]:
            return result
        return {"success": True, "user": result["data"]}

    async def get_projects(self) -> Dict[str, Any]:
        result = await self._call("fetch projects", "/rest/api/3/project")
        if not result["success"]:
            return result
        return {"success": True, "projects": result["data"]}

    async def get_issues(self, project_key: str, start_at: int = 0, max_results: int = 50) -> Dict[str, Any]:
        params = {
            "jql": f"project = {project_key} ORDER BY created DESC",
            "startAt": start_at,
            "maxResults": max_results,
        }
        result = await self._call("fetch issues", "/rest/api/3/search", params)
        if not result["success"]:
            return result
        data = result["data"]
        if not isinstance(data, dict):
            return {"success": False, "error": "Unexpected search response from Jira"}
        return {"success": True, **data}

    async def get_sprints(self, board_id: str) -> Dict[str, Any]:
        result = await self._call("fetch sprints", f"/rest/agile/1.0/board/{board_id}/sprint")
        if not result["success"]:
            return result
        data = result["data"]
        sprints = data.get("values", []) if isinstance(data, dict) else data
        return {"success": True, "sprints": sprints}

    async def get_sprint_report(self, board_id: str, sprint_id: str) -> Dict[str, Any]:
        params = {"rapidViewId": board_id, "sprintId": sprint_id}
        result = await self._call(
            "fetch sprint report", "/rest/greenhopper/1.0/rapid/charts/sprintreport", params
        )
        if not result["success"]:
            return result
        return {"success": True, "report": result["data"]}


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull Jira's errorMessages/message out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    messages = body.get("errorMessages") or []
    if messages:
        return "; ".join(str(m) for m in messages)
    return body.get("message")
