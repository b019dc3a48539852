"""
Pydantic schemas for weekly working hours
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from uuid import UUID

from app.utils.time_utils import HHMM_PATTERN


class WorkingHoursBase(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: str = Field(..., description="HH:MM")
    end_time: str = Field(..., description="HH:MM")
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: str) -> str:
        if not HHMM_PATTERN.match(v):
            raise ValueError("Time must be HH:MM (00:00 - 23:59)")
        return v


class WorkingHoursCreate(WorkingHoursBase):
    pass


class WorkingHoursUpdate(BaseModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_hhmm(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not HHMM_PATTERN.match(v):
            raise ValueError("Time must be HH:MM (00:00 - 23:59)")
        return v


class WorkingHoursBulkUpdate(BaseModel):
    schedules: List[WorkingHoursCreate]


class WorkingHoursResponse(WorkingHoursBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    business_id: UUID
