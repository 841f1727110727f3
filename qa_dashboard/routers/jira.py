"""Jira integration endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from qa_dashboard.models.behavior import JiraCredentials
from qa_dashboard.routers.deps import get_settings
from qa_dashboard.services.jira_service import JiraService
from qa_dashboard.utils.errors import ApiError, bad_request

logger = logging.getLogger(__name__)
router = APIRouter()


def get_jira_service(request: Request, credentials: JiraCredentials) -> JiraService:
    """Build a JiraService for the caller's credentials."""
    return JiraService(
        credentials.domain,
        credentials.email,
        credentials.api_token,
        timeout=get_settings(request).JIRA_TIMEOUT_SECONDS,
        transport=getattr(request.app.state, "jira_transport", None),
    )


def query_credentials(
    domain: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    api_token: Optional[str] = Query(None, alias="apiToken"),
) -> JiraCredentials:
    if not domain or not email or not api_token:
        raise bad_request("Missing required query parameters: domain, email, or apiToken")
    return JiraCredentials(domain=domain, email=email, api_token=api_token)


def _unwrap(result: dict) -> dict:
    if not result["success"]:
        raise ApiError(400, result["error"])
    return result


@router.post("/test-connection")
async def test_connection(request: Request, credentials: JiraCredentials):
    """Check the credentials against /myself."""
    result = await get_jira_service(request, credentials).test_connection()
    if not result["success"]:
        raise ApiError(401, result["error"])
    logger.info(f"Connected to Jira {credentials.domain} as {credentials.email}")
    return {
        "success": True,
        "message": "Successfully connected to Jira",
        "user": result["user"],
    }


@router.get("/projects")
async def get_projects(request: Request, credentials: JiraCredentials = Depends(query_credentials)):
    result = _unwrap(await get_jira_service(request, credentials).get_projects())
    return {"success": True, "projects": result["projects"]}


@router.get("/projects/{project_key}/issues")
async def get_issues(
    request: Request,
    project_key: str,
    start_at: int = Query(0, alias="startAt", ge=0),
    max_results: int = Query(50, alias="maxResults", ge=1, le=100),
    credentials: JiraCredentials = Depends(query_credentials),
):
    return _unwrap(
        await get_jira_service(request, credentials).get_issues(project_key, start_at, max_results)
    )


@router.get("/boards/{board_id}/sprints")
async def get_sprints(request: Request, board_id: str, credentials: JiraCredentials = Depends(query_credentials)):
    result = _unwrap(await get_jira_service(request, credentials).get_sprints(board_id))
    return {"success": True, "sprints": result["sprints"]}


@router.get("/boards/{board_id}/sprints/{sprint_id}/report")
async def get_sprint_report(
    request: Request,
    board_id: str,
    sprint_id: str,
    credentials: JiraCredentials = Depends(query_credentials),
):
    result = _unwrap(
        await get_jira_service(request, credentials).get_sprint_report(board_id, sprint_id)
    )
    return {"success": True, "report": result["report"]}
