"""Flow document CRUD endpoints."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Request, Response

from qa_dashboard.routers.deps import get_settings
from qa_dashboard.services.flow_store import FlowStore
from qa_dashboard.utils.errors import not_found

logger = logging.getLogger(__name__)
router = APIRouter()


def get_flow_store(request: Request) -> FlowStore:
    """Get or create FlowStore instance, loading the snapshot on first use."""
    if not hasattr(request.app.state, "flow_store"):
        store = FlowStore(get_settings(request).flows_file)
        store.load()
        request.app.state.flow_store = store
    return request.app.state.flow_store


@router.get("")
async def list_flows(request: Request):
    return get_flow_store(request).list()


@router.get("/{flow_id}")
async def get_flow(request: Request, flow_id: str):
    flow = get_flow_store(request).get(flow_id)
    if flow is None:
        raise not_found("Flow not found")
    return flow


@router.post("", status_code=201)
async def create_flow(request: Request, data: Dict[str, Any] = Body(...)):
    return get_flow_store(request).create(data)


@router.put("/{flow_id}")
async def update_flow(request: Request, flow_id: str, data: Dict[str, Any] = Body(...)):
    flow = get_flow_store(request).update(flow_id, data)
    if flow is None:
        raise not_found("Flow not found")
    return flow


@router.delete("/{flow_id}", status_code=204)
async def delete_flow(request: Request, flow_id: str):
    if not get_flow_store(request).delete(flow_id):
        raise not_found("Flow not found")
    return Response(status_code=204)
