"""Pydantic schemas for activity-related API operations."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ActivityBase(BaseModel):
    """Base schema for activity data."""

    name: str = Field(..., description="Activity name")
    activity_type: str = Field(..., description="Activity type (e.g., Run, Walk, Hike)")
    date: datetime = Field(..., description="Activity start time (UTC)")
    distance: float = Field(..., ge=0, description="Distance in miles")
    duration: float = Field(..., ge=0, description="Moving time in minutes")
    pace: Optional[float] = Field(None, ge=0, description="Pace in minutes per mile")
    elevation: Optional[float] = Field(None, description="Elevation gain in feet")
    calories: Optional[float] = Field(None, ge=0, description="Calories burned")


class ActivityUpdate(BaseModel):
    """Schema for editing an activity. Only the provided fields are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Activity name")
    activity_type: Optional[str] = Field(None, description="Activity type")
    distance: Optional[float] = Field(None, ge=0, description="Distance in miles")
    duration: Optional[float] = Field(None, ge=0, description="Moving time in minutes")
    pace: Optional[float] = Field(None, ge=0, description="Pace in minutes per mile")
    elevation: Optional[float] = Field(None, description="Elevation gain in feet")
    calories: Optional[float] = Field(None, ge=0, description="Calories burned")


class ActivityResponse(ActivityBase):
    """Schema for activity API responses."""

    id: int = Field(..., description="Source-assigned activity ID")
    user_id: int = Field(..., description="User ID")
    route: Optional[str] = Field(None, description="Summary polyline")
    synced_at: datetime = Field(..., description="Import timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last manual edit")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 12345678,
                "user_id": 42,
                "name": "Morning Run",
                "activity_type": "Run",
                "date": "2024-06-01T07:30:00",
                "distance": 5.0,
                "duration": 45.0,
                "pace": 9.0,
                "elevation": 120.5,
                "calories": 480,
                "route": None,
                "synced_at": "2024-06-01T09:00:00",
                "updated_at": None
            }
        }


class ActivitySyncResponse(BaseModel):
    """Schema for activity sync response."""

    synced: int = Field(..., ge=0, description="Number of new activities stored")
    total: int = Field(..., ge=0, description="Number of activities returned by Strava")

    class Config:
        json_schema_extra = {
            "example": {
                "synced": 5,
                "total": 30
            }
        }
