"""Pydantic schemas for goal and progress API operations."""

from datetime import date as date_type
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class GoalResponse(BaseModel):
    """Schema for a monthly or seasonal mileage goal."""

    id: int = Field(..., description="Goal ID")
    user_id: int = Field(..., description="User ID")
    goal_key: str = Field(..., description="Period key, e.g. monthly_2024_6 or seasonal_2024_Summer")
    goal_type: str = Field(..., description="monthly or seasonal")
    target: float = Field(..., gt=0, description="Target mileage")
    current: float = Field(..., ge=0, description="Mileage recorded when the goal was created")
    start_date: date_type = Field(..., description="First day of the period")
    end_date: date_type = Field(..., description="Last day of the period")
    is_completed: bool = Field(..., description="Completion flag")
    year: int = Field(..., description="Year the period is named after")
    month: Optional[int] = Field(None, ge=1, le=12, description="Month (monthly goals)")
    season: Optional[str] = Field(None, description="Season (seasonal goals)")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 7,
                "user_id": 42,
                "goal_key": "seasonal_2024_Winter",
                "goal_type": "seasonal",
                "target": 78.6,
                "current": 0.0,
                "start_date": "2024-12-01",
                "end_date": "2025-02-28",
                "is_completed": False,
                "year": 2024,
                "month": None,
                "season": "Winter",
                "created_at": "2024-12-01T02:00:00",
                "updated_at": "2024-12-01T02:00:00"
            }
        }


class CurrentGoalsResponse(BaseModel):
    """The goals for the periods containing today."""

    monthly: GoalResponse
    seasonal: GoalResponse


class ProgressResponse(BaseModel):
    """Schema for a user's progress snapshot."""

    user_id: int = Field(..., description="User ID")
    monthly_mileage: float = Field(..., ge=0, description="Miles this calendar month")
    seasonal_mileage: float = Field(..., ge=0, description="Miles this season")
    monthly_goal: float = Field(..., description="Monthly target in miles")
    seasonal_goal: float = Field(..., description="Seasonal target in miles")
    monthly_progress: float = Field(..., ge=0, description="Percent of monthly target (may exceed 100)")
    seasonal_progress: float = Field(..., ge=0, description="Percent of seasonal target (may exceed 100)")
    last_updated: datetime = Field(..., description="Reference time of the computation")
    total_activities: int = Field(..., ge=0, description="All-time activity count")
    average_pace: float = Field(..., ge=0, description="All-time mean pace in minutes per mile")
    longest_run: float = Field(..., ge=0, description="All-time longest activity in miles")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "user_id": 42,
                "monthly_mileage": 8.0,
                "seasonal_mileage": 8.0,
                "monthly_goal": 26.2,
                "seasonal_goal": 78.6,
                "monthly_progress": 30.53,
                "seasonal_progress": 10.18,
                "last_updated": "2024-06-20T00:00:00",
                "total_activities": 2,
                "average_pace": 7.0,
                "longest_run": 5.0
            }
        }
