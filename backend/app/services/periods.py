"""
Calendar periods used to scope mileage aggregation.

Seasons follow a fixed meteorological calendar:
- Spring: March - May
- Summer: June - August
- Fall: September - November
- Winter: December - February, spanning the year boundary

A Winter season is named after the year of its December, so January and
February of 2025 belong to "Winter 2024".
"""

import calendar
import enum
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Union


class Season(str, enum.Enum):
    """Fixed seasons of the goal calendar."""
    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"
    WINTER = "Winter"


# (start month, end month) per season; Winter wraps into the next year
SEASON_MONTHS = {
    Season.SPRING: (3, 5),
    Season.SUMMER: (6, 8),
    Season.FALL: (9, 11),
    Season.WINTER: (12, 2),
}


@dataclass(frozen=True)
class Period:
    """Inclusive calendar date range."""

    start: date
    end: date

    def contains(self, value: Union[date, datetime]) -> bool:
        if isinstance(value, datetime):
            value = to_utc_naive(value).date()
        return self.start <= value <= self.end


def to_utc_naive(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC; naive values are assumed to be UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string (including a trailing ``Z``) into naive UTC."""
    return to_utc_naive(datetime.fromisoformat(value.replace("Z", "+00:00")))


def season_for_month(month: int) -> Season:
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    if 3 <= month <= 5:
        return Season.SPRING
    if 6 <= month <= 8:
        return Season.SUMMER
    if 9 <= month <= 11:
        return Season.FALL
    return Season.WINTER


def season_for_date(value: Union[date, datetime]) -> tuple[Season, int]:
    """
    Determine the season a date falls in and the year the season is named after.

    Args:
        value: Date or datetime (aware datetimes are converted to UTC first)

    Returns:
        (season, season_year) - January and February return the previous year
    """
    if isinstance(value, datetime):
        value = to_utc_naive(value)
    season = season_for_month(value.month)
    season_year = value.year - 1 if value.month <= 2 else value.year
    return season, season_year


def _last_day(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def month_range(year: int, month: int) -> Period:
    """First and last day of a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be between 1 and 12, got {month}")
    return Period(start=date(year, month, 1), end=_last_day(year, month))


def season_range(season: Union[Season, str], year: int) -> Period:
    """
    First and last day of a season.

    Winter starts on December 1 of ``year`` and ends on the last day of
    February of ``year + 1``.
    """
    season = Season(season)
    start_month, end_month = SEASON_MONTHS[season]
    end_year = year + 1 if season == Season.WINTER else year
    return Period(start=date(year, start_month, 1), end=_last_day(end_year, end_month))


def monthly_goal_key(year: int, month: int) -> str:
    return f"monthly_{year}_{month}"


def seasonal_goal_key(year: int, season: Union[Season, str]) -> str:
    return f"seasonal_{year}_{Season(season).value}"
