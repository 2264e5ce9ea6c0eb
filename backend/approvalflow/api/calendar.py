# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Query, status

from approvalflow.api.deps import AdminDep, ContextDep
from approvalflow.db import SessionDep
from approvalflow.models.enums import CalendarEventKind
from approvalflow.schemas.calendar import (
    BusinessDaysResponse,
    CalendarEventListResponse,
    CalendarEventResponse,
    CreateCalendarEventRequest,
)
from approvalflow.services import calendar as calendar_service

calendar_router = APIRouter(
    prefix="/calendar",
    tags=["calendar"],
)


@calendar_router.get("/business-days", response_model=BusinessDaysResponse)
async def compute_business_days(
    session: SessionDep,
    ctx: ContextDep,
    start_date: date = Query(),
    end_date: date = Query(),
) -> BusinessDaysResponse:
    """Count business days in an inclusive range, excluding weekends and holidays."""
    breakdown = await calendar_service.calculate_business_days(session, start_date, end_date)
    return BusinessDaysResponse(
        start_date=start_date,
        end_date=end_date,
        business_days=breakdown.business_days,
        weekend_days=breakdown.weekend_days,
        holidays=breakdown.holidays,
    )


@calendar_router.post("/events", response_model=CalendarEventResponse, status_code=status.HTTP_201_CREATED)
async def create_calendar_event(
    payload: CreateCalendarEventRequest,
    session: SessionDep,
    ctx: AdminDep,
) -> CalendarEventResponse:
    """Register a holiday or blackout period (admin only)."""
    return await calendar_service.create_calendar_event(session, ctx, payload)


@calendar_router.get("/events", response_model=CalendarEventListResponse)
async def list_calendar_events(
    session: SessionDep,
    ctx: ContextDep,
    kind: CalendarEventKind | None = Query(default=None),
    year: int | None = Query(default=None, ge=2000, le=2100),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
) -> CalendarEventListResponse:
    return await calendar_service.list_calendar_events(session, kind, year, offset, limit)


@calendar_router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_calendar_event(
    event_id: uuid.UUID,
    session: SessionDep,
    ctx: AdminDep,
) -> None:
    """Remove a calendar event (admin only)."""
    await calendar_service.delete_calendar_event(session, ctx, event_id)
