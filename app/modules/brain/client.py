"""
Caller side of the brain proxy.

Attaches the signed-in user's access token and unwraps the proxy's error
envelope into BrainClientError. Vendor keys never pass through here.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class BrainClientError(Exception):
    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.details = details


class BrainClient:
    def __init__(
        self,
        base_url: str,
        token_provider: Callable[[], Optional[str]],
        http: Optional[httpx.AsyncClient] = None,
        prefix: str = "/api/brain",
    ):
        self.base_url = base_url.rstrip("/")
        self.prefix = prefix
        self.token_provider = token_provider
        self.http = http or httpx.AsyncClient()

    async def aclose(self) -> None:
        await self.http.aclose()

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}{self.prefix}{endpoint}"

    def _auth_header(self) -> Dict[str, str]:
        token = self.token_provider()
        if not token:
            logger.warning("No access token available for brain request")
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _post(self, endpoint: str, body: Dict[str, Any]) -> Any:
        response = await self.http.post(
            self._url(endpoint),
            json=body,
            headers={"Content-Type": "application/json", **self._auth_header()},
        )
        if not response.is_success:
            try:
                data = response.json()
            except ValueError:
                data = {}
            message = data.get("error") if isinstance(data, dict) else None
            raise BrainClientError(
                response.status_code,
                message or f"Request failed with status {response.status_code}",
                data.get("details") if isinstance(data, dict) else None,
            )
        return response.json()

    async def query_records(
        self,
        table: str,
        filter_by_formula: Optional[str] = None,
        max_records: Optional[int] = None,
        view: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"table": table}
        if filter_by_formula:
            body["filterByFormula"] = filter_by_formula
        if max_records:
            body["maxRecords"] = max_records
        if view:
            body["view"] = view
        return await self._post("/airtable/query", body)

    async def create_records(self, table: str, records: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self._post("/airtable/create", {"table": table, "records": records})

    async def create_record(self, table: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self.create_records(table, [{"fields": fields}])

    async def execute_workflow(self, workflow_id: str, payload: Optional[Dict[str, Any]] = None) -> Any:
        return await self._post("/n8n/execute", {"workflowId": workflow_id, "data": payload or {}})

    async def check_health(self) -> Dict[str, Any]:
        response = await self.http.get(self._url("/health"))
        if not response.is_success:
            raise BrainClientError(response.status_code, "Brain health check failed")
        return response.json()
