"""Pydantic models for API requests and responses."""

from typing import Dict, List, Optional
from pydantic import BaseModel, Field
from enum import Enum
from datetime import datetime


class MigrationStatusEnum(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Request Models
class RunRequest(BaseModel):
    offset: int = Field(default=0, ge=0)
    limit: Optional[int] = Field(default=None, ge=0)
    label: Optional[str] = None
    dedupe_keys: List[str] = Field(default_factory=list)


# Response Models
class MigrationInfo(BaseModel):
    kind: str
    source: str
    target: str
    label: Optional[str] = None
    dedupe_keys: List[str] = Field(default_factory=list)
    custom_helper: bool = False


class MigrationListResponse(BaseModel):
    migrations: List[MigrationInfo]
    total: int


class RecordFailureResponse(BaseModel):
    record_id: str
    error_type: str
    message: str


class ReportResponse(BaseModel):
    kind: str
    label: str
    status: MigrationStatusEnum
    dry_run: bool = False
    created: int = 0
    skipped: int = 0
    failed: int = 0
    total_visited: int = 0
    skip_reasons: Dict[str, int] = Field(default_factory=dict)
    failures: List[RecordFailureResponse] = Field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    summary: str

