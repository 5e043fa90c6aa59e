"""Owner working-hours configuration and profile models."""

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from booking_gate.config import settings


class Weekday(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, day: dt.date) -> "Weekday":
        return list(cls)[day.weekday()]


class BreakInterval(BaseModel):
    """A blocked sub-interval of a working day, e.g. lunch."""
    start: dt.time
    end: dt.time
    label: str = "Break"

    @model_validator(mode="after")
    def _check_order(self) -> "BreakInterval":
        if self.start >= self.end:
            raise ValueError(f"break start {self.start} must be before end {self.end}")
        return self


class ScheduleDay(BaseModel):
    """Working hours for one weekday."""
    enabled: bool = True
    start: dt.time
    end: dt.time
    breaks: list[BreakInterval] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ScheduleDay":
        if self.start >= self.end:
            raise ValueError(f"day start {self.start} must be before end {self.end}")
        for brk in self.breaks:
            if brk.start < self.start or brk.end > self.end:
                raise ValueError(
                    f"break {brk.start}-{brk.end} lies outside working hours "
                    f"{self.start}-{self.end}"
                )
        return self


class OwnerProfile(BaseModel):
    """Per-owner scheduling settings consumed by the engine."""
    owner_id: str = Field(min_length=1)
    timezone: str = settings.schedule.default_timezone
    schedule: dict[Weekday, ScheduleDay] = Field(default_factory=dict)
    home_base_address: Optional[str] = None
    travel_enabled: bool = False
    grace_minutes: int = Field(default=settings.travel.grace_buffer_minutes, ge=0)
    default_travel_minutes: int = Field(
        default=settings.travel.default_travel_minutes, ge=0
    )
