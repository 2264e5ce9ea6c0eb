# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Self

from pydantic import BaseModel, Field, model_validator

from approvalflow.models.enums import CalendarEventKind


class BusinessDaysResponse(BaseModel):
    """Breakdown of an inclusive date range into business, weekend and holiday days."""

    start_date: date
    end_date: date
    business_days: int
    weekend_days: int
    holidays: list[date]


class CreateCalendarEventRequest(BaseModel):
    """Request body for registering a holiday or blackout period."""

    kind: CalendarEventKind
    name: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    description: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _validate_dates(self) -> Self:
        if self.end_date < self.start_date:
            msg = "end_date must not be before start_date"
            raise ValueError(msg)
        return self


class CalendarEventResponse(BaseModel):
    id: uuid.UUID
    kind: CalendarEventKind
    name: str
    start_date: date
    end_date: date
    description: str | None


class CalendarEventListResponse(BaseModel):
    """Paginated list of calendar events."""

    items: list[CalendarEventResponse]
    total: int
