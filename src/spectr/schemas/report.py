"""Report-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ReportCreate(BaseModel):
    """Schema for filing an abuse report."""

    reported_user_id: str
    chat_id: int | None = None
    reason: str = Field(..., min_length=1, max_length=2000)


class ReportStatusUpdate(BaseModel):
    """Admin decision on a report."""

    status: Literal["pending", "reviewed", "dismissed"]


class ReportResponse(BaseModel):
    """Stored report."""

    id: int
    reporter_id: str
    reported_user_id: str
    chat_id: int | None
    reason: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
