"""
Server-side proxy for the records vendor (Airtable) and the workflow vendor (n8n).

Vendor credentials live only in server settings. Every call is a single
round-trip: no retries, no idempotency keys, so a client retrying a create can
duplicate a row.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from app.config import Settings
from app.core.errors import ProxyError
from app.modules.brain.schemas import (
    RecordsQueryRequest,
    RecordsCreateRequest,
    WorkflowExecuteRequest,
)

logger = logging.getLogger(__name__)


def parse_body(model: type, body: Any) -> BaseModel:
    """Validate a JSON body, turning pydantic errors into a 400 naming the field."""
    if not isinstance(body, dict):
        raise ProxyError(400, "Request body must be a JSON object")
    try:
        return model.model_validate(body)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "body"
        raise ProxyError(400, f"Invalid {field}: {first.get('msg', 'invalid value')}")


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError:
        return {"raw": response.text}


class BrainService:
    def __init__(self, settings: Settings, http: httpx.AsyncClient):
        self.settings = settings
        self.http = http

    async def records_query(self, request: RecordsQueryRequest) -> Any:
        self._require_airtable()
        if not request.table:
            raise ProxyError(400, "Missing table")
        logger.info(f"Airtable query: {request.table}")
        return await self._send(
            "Airtable",
            "GET",
            self._airtable_url(request.table),
            headers=self._airtable_headers(),
            params=request.vendor_params(),
        )

    async def records_create(self, request: RecordsCreateRequest) -> Any:
        self._require_airtable()
        if not request.table:
            raise ProxyError(400, "Missing table")
        records = request.vendor_records()
        if not records:
            raise ProxyError(400, "Missing records")
        logger.info(f"Airtable create: {request.table} records: {len(records)}")
        return await self._send(
            "Airtable",
            "POST",
            self._airtable_url(request.table),
            headers=self._airtable_headers(),
            json={"records": records},
        )

    async def workflow_execute(self, request: WorkflowExecuteRequest) -> Any:
        if not self.settings.n8n_configured:
            logger.error("n8n not configured")
            raise ProxyError(500, "n8n not configured on server")
        if not request.workflow_id or not request.workflow_id.strip("/"):
            raise ProxyError(400, "Missing workflowId")
        url = f"{self.settings.n8n_base_url.rstrip('/')}/{request.workflow_id.lstrip('/')}"
        headers = {"Content-Type": "application/json"}
        if self.settings.n8n_webhook_token:
            headers["Authorization"] = f"Bearer {self.settings.n8n_webhook_token}"
        logger.info(f"n8n execute: {request.workflow_id}")
        return await self._send("n8n", "POST", url, headers=headers, json=request.data or {})

    def _require_airtable(self) -> None:
        if not self.settings.airtable_configured:
            logger.error("Airtable credentials not configured")
            raise ProxyError(500, "Airtable not configured on server")

    def _airtable_url(self, table: str) -> str:
        return (
            f"{self.settings.airtable_api_url.rstrip('/')}/"
            f"{self.settings.airtable_base_id}/{quote(table, safe='')}"
        )

    def _airtable_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.airtable_api_key}",
            "Content-Type": "application/json",
        }

    async def _send(self, vendor: str, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self.http.request(
                method, url, timeout=self.settings.vendor_timeout_sec, **kwargs
            )
        except httpx.HTTPError as e:
            logger.error(f"{vendor} unreachable: {e}")
            raise ProxyError(502, f"{vendor} request failed", {"reason": str(e)})
        body = _response_body(response)
        if not response.is_success:
            logger.error(f"{vendor} error {response.status_code}: {body}")
            raise ProxyError(
                502,
                f"{vendor} request failed",
                {"status": response.status_code, "body": body},
            )
        return body


def health_payload(now: Optional[str] = None) -> Dict[str, str]:
    return {
        "status": "ok",
        "service": "brain",
        "timestamp": now or datetime.now(timezone.utc).isoformat(),
    }
