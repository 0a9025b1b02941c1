"""
Schemas for the ESG pipeline endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MappingRunRequest(BaseModel):
    profile_id: UUID


class MappingRunResponse(BaseModel):
    success: bool
    profile_id: UUID
    metrics_processed: int
    metric_codes: list[str] = Field(default_factory=list)
    rows_consumed: int
    rows_skipped: int
    lineage_edges: int
    skipped_fields: list[dict[str, Any]] = Field(default_factory=list)


class EvaluationRunResponse(BaseModel):
    success: bool
    rules_loaded: int
    rules_evaluated: int
    results_written: int
    metric_codes: list[str] = Field(default_factory=list)
    evaluation_order: list[str] = Field(default_factory=list)
    failed_rules: list[dict[str, str]] = Field(default_factory=list)


class KPIResultResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    metric_code: str
    period: str
    value: float
    unit: str | None = None
    quality_score: float | None = None
    lineage: dict[str, Any] | None = None
    source_profile_id: UUID | None = None
    computed_at: datetime | None = None


class KPIResultListResponse(BaseModel):
    results: list[KPIResultResponse] = Field(default_factory=list)


class ValidationSummary(BaseModel):
    total_checks: int
    passed: int
    warnings: int
    failed: int


class ValidationCheckResponse(BaseModel):
    check_type: str
    status: str
    severity: str
    message: str
    affected_kpis: list[str] = Field(default_factory=list)
    details: dict[str, Any] = Field(default_factory=dict)


class ValidationRunResponse(BaseModel):
    success: bool
    run_id: UUID
    summary: ValidationSummary
    results: list[ValidationCheckResponse] = Field(default_factory=list)


class LineageEdgeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_ref: str
    to_ref: str
    relation_type: str
    row_count: int
    periods: list[str] = Field(default_factory=list)
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")
    recorded_at: datetime | None = None


class LineageListResponse(BaseModel):
    edges: list[LineageEdgeResponse] = Field(default_factory=list)


class AuditVerifyRequest(BaseModel):
    start_date: datetime | None = None
    end_date: datetime | None = None
    strict: bool = False

    @model_validator(mode="after")
    def _check_window(self) -> "AuditVerifyRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class BrokenLinkResponse(BaseModel):
    entry_id: str
    expected_hash: str
    actual_hash: str | None = None
    occurred_at: datetime | None = None


class AuditVerifyResponse(BaseModel):
    is_valid: bool
    total_entries: int
    broken_links: list[BrokenLinkResponse] = Field(default_factory=list)
    first_entry_timestamp: datetime | None = None
    last_entry_timestamp: datetime | None = None


class WorkflowRunRequest(BaseModel):
    profile_id: UUID | None = None


class WorkflowStepResponse(BaseModel):
    step: int
    name: str
    status: str
    duration_ms: int
    result: Any = None
    error: str | None = None


class WorkflowTrace(BaseModel):
    workflow_id: UUID
    organization_id: UUID
    started_at: datetime
    completed_at: datetime
    total_duration_ms: int
    status: str
    steps: list[WorkflowStepResponse] = Field(default_factory=list)


class WorkflowRunResponse(BaseModel):
    success: bool
    workflow: WorkflowTrace
