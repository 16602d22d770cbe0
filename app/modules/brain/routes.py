from fastapi import APIRouter, Depends, Request
from app.config import Settings, get_settings
from app.core.dependencies import require_proxy_user
from app.modules.brain.schemas import (
    HealthResponse, RecordsQueryRequest, RecordsCreateRequest, WorkflowExecuteRequest
)
from app.modules.brain.service import BrainService, health_payload, parse_body
from typing import Any, Dict
import httpx
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["brain"])


def get_http_client(request: Request) -> httpx.AsyncClient:
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        client = httpx.AsyncClient()
        request.app.state.http_client = client
    return client


def get_brain_service(
    settings: Settings = Depends(get_settings),
    http: httpx.AsyncClient = Depends(get_http_client)
) -> BrainService:
    return BrainService(settings, http)


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return {}


@router.get("/health", response_model=HealthResponse)
async def brain_health():
    return health_payload()


@router.post("/airtable/query")
@router.post("/records/query")
async def records_query(
    request: Request,
    user_data: Dict = Depends(require_proxy_user),
    service: BrainService = Depends(get_brain_service)
):
    """Query a records table on behalf of an authenticated app user"""
    body = parse_body(RecordsQueryRequest, await _json_body(request))
    return await service.records_query(body)


@router.post("/airtable/create")
@router.post("/records/create")
async def records_create(
    request: Request,
    user_data: Dict = Depends(require_proxy_user),
    service: BrainService = Depends(get_brain_service)
):
    """Create records; not idempotent"""
    body = parse_body(RecordsCreateRequest, await _json_body(request))
    return await service.records_create(body)


@router.post("/n8n/execute")
@router.post("/workflow/execute")
async def workflow_execute(
    request: Request,
    user_data: Dict = Depends(require_proxy_user),
    service: BrainService = Depends(get_brain_service)
):
    """Trigger a workflow webhook"""
    body = parse_body(WorkflowExecuteRequest, await _json_body(request))
    logger.info(f"Workflow triggered by user {user_data['id']}")
    return await service.workflow_execute(body)
