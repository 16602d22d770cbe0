from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class RecordsQueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    table: Optional[str] = Field(None, validation_alias=AliasChoices("table", "tableName"))
    filter_by_formula: Optional[str] = Field(
        None, validation_alias=AliasChoices("filterByFormula", "filter_by_formula")
    )
    max_records: Optional[int] = Field(
        None, ge=1, validation_alias=AliasChoices("maxRecords", "max_records")
    )
    view: Optional[str] = None

    def vendor_params(self) -> Dict[str, str]:
        params = {}
        if self.filter_by_formula:
            params["filterByFormula"] = self.filter_by_formula
        if self.max_records:
            params["maxRecords"] = str(self.max_records)
        if self.view:
            params["view"] = self.view
        return params


class RecordsCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    table: Optional[str] = Field(None, validation_alias=AliasChoices("table", "tableName"))
    records: Optional[List[Dict[str, Any]]] = None
    fields: Optional[Dict[str, Any]] = None  # shorthand for a single record

    def vendor_records(self) -> List[Dict[str, Any]]:
        if self.records:
            return self.records
        if self.fields:
            return [{"fields": self.fields}]
        return []


class WorkflowExecuteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    workflow_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("workflowId", "webhookPath", "workflow_id")
    )
    data: Optional[Dict[str, Any]] = Field(None, validation_alias=AliasChoices("data", "payload"))


class HealthResponse(BaseModel):
    status: str = "ok"
    service: str = "brain"
    timestamp: str
