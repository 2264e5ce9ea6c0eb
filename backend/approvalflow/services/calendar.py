# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from approvalflow.db import commit_or_raise, storage_guard
from approvalflow.exceptions import InvalidRangeError, NotFoundError
from approvalflow.models.calendar import CalendarEvent
from approvalflow.models.enums import AuditAction, AuditEntityType, CalendarEventKind
from approvalflow.schemas.calendar import CalendarEventListResponse, CalendarEventResponse
from approvalflow.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from approvalflow.schemas.auth import RequestContext
    from approvalflow.schemas.calendar import CreateCalendarEventRequest

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)
_SATURDAY = 5


@dataclass(frozen=True)
class BusinessDayBreakdown:
    """How an inclusive date range splits into business, weekend and holiday days.

    ``holidays`` lists every holiday date met in the range, including those that fall
    on a weekend (which are counted as weekend days, not holidays).
    """

    business_days: int
    weekend_days: int
    holidays: list[date] = field(default_factory=list)

    @property
    def weekday_holidays(self) -> list[date]:
        return [d for d in self.holidays if d.weekday() < _SATURDAY]


def _iter_dates(start: date, end: date) -> Iterable[date]:
    current = start
    while current <= end:
        yield current
        current += _ONE_DAY


def compute_business_days(start: date, end: date, holiday_dates: Iterable[date] = ()) -> BusinessDayBreakdown:
    """Split the inclusive range start..end into business, weekend and holiday days.

    A weekend day is never counted as a holiday, and no day lands in two buckets.
    """
    if start > end:
        msg = f"start_date {start.isoformat()} is after end_date {end.isoformat()}"
        raise InvalidRangeError(msg)

    holiday_set = set(holiday_dates)
    business_days = 0
    weekend_days = 0
    encountered: set[date] = set()

    for day in _iter_dates(start, end):
        if day in holiday_set:
            encountered.add(day)
        if day.weekday() >= _SATURDAY:
            weekend_days += 1
        elif day not in holiday_set:
            business_days += 1

    return BusinessDayBreakdown(
        business_days=business_days,
        weekend_days=weekend_days,
        holidays=sorted(encountered),
    )


# ---------------------------------------------------------------------------
# Calendar reads
# ---------------------------------------------------------------------------


async def get_calendar_events(
    session: AsyncSession,
    start: date,
    end: date,
    kind: CalendarEventKind | None = None,
) -> list[CalendarEvent]:
    """Return events overlapping start..end (inclusive on both ends)."""
    query = select(CalendarEvent).where(
        col(CalendarEvent.start_date) <= end,
        col(CalendarEvent.end_date) >= start,
    )
    if kind is not None:
        query = query.where(col(CalendarEvent.kind) == kind.value)
    result = await session.execute(query.order_by(col(CalendarEvent.start_date)))
    return list(result.scalars().all())


async def fetch_holiday_dates(session: AsyncSession, start: date, end: date) -> set[date]:
    """Expand holiday events overlapping the range into individual in-range dates."""
    events = await get_calendar_events(session, start, end, CalendarEventKind.HOLIDAY)
    dates: set[date] = set()
    for event in events:
        dates.update(_iter_dates(max(event.start_date, start), min(event.end_date, end)))
    return dates


async def calculate_business_days(session: AsyncSession, start: date, end: date) -> BusinessDayBreakdown:
    """Business-day breakdown of a range using the stored holiday calendar."""
    if start > end:
        msg = f"start_date {start.isoformat()} is after end_date {end.isoformat()}"
        raise InvalidRangeError(msg)
    holiday_dates = await fetch_holiday_dates(session, start, end)
    breakdown = compute_business_days(start, end, holiday_dates)
    logger.debug(
        "Business days %s..%s: business=%d weekend=%d holidays=%d",
        start,
        end,
        breakdown.business_days,
        breakdown.weekend_days,
        len(breakdown.holidays),
    )
    return breakdown


async def find_blackout_conflicts(session: AsyncSession, start: date, end: date) -> list[CalendarEvent]:
    """Blackout events overlapping start..end, inclusive on both ends."""
    return await get_calendar_events(session, start, end, CalendarEventKind.BLACKOUT)


async def list_events_in_range(
    session: AsyncSession,
    start: date,
    end: date,
    kind: CalendarEventKind | None = None,
) -> CalendarEventListResponse:
    """Events overlapping start..end, optionally narrowed to holidays or blackouts."""
    if start > end:
        msg = f"start_date {start.isoformat()} is after end_date {end.isoformat()}"
        raise InvalidRangeError(msg)
    events = await get_calendar_events(session, start, end, kind)
    return CalendarEventListResponse(items=[_build_event_response(e) for e in events], total=len(events))


# ---------------------------------------------------------------------------
# Calendar administration
# ---------------------------------------------------------------------------


def _build_event_response(event: CalendarEvent) -> CalendarEventResponse:
    return CalendarEventResponse(
        id=event.id,
        kind=CalendarEventKind(event.kind),
        name=event.name,
        start_date=event.start_date,
        end_date=event.end_date,
        description=event.description,
    )


async def create_calendar_event(
    session: AsyncSession,
    ctx: RequestContext,
    payload: CreateCalendarEventRequest,
) -> CalendarEventResponse:
    """Register a holiday or blackout period."""
    event = CalendarEvent(
        kind=payload.kind.value,
        name=payload.name,
        start_date=payload.start_date,
        end_date=payload.end_date,
        description=payload.description,
    )
    async with storage_guard(session):
        session.add(event)
        await session.flush()

        await write_audit_log(
            session,
            ctx,
            entity_type=AuditEntityType.CALENDAR_EVENT,
            entity_id=event.id,
            action=AuditAction.CREATED,
            details=model_to_audit_dict(event),
        )

        await commit_or_raise(session)
    logger.info("Calendar %s %r registered for %s..%s", event.kind, event.name, event.start_date, event.end_date)
    return _build_event_response(event)


async def list_calendar_events(
    session: AsyncSession,
    kind: CalendarEventKind | None = None,
    year: int | None = None,
    offset: int = 0,
    limit: int = 50,
) -> CalendarEventListResponse:
    """List calendar events with optional kind and year filters."""
    filters = []
    if kind is not None:
        filters.append(col(CalendarEvent.kind) == kind.value)
    if year is not None:
        filters.append(col(CalendarEvent.start_date) <= date(year, 12, 31))
        filters.append(col(CalendarEvent.end_date) >= date(year, 1, 1))

    count_result = await session.execute(select(func.count()).select_from(CalendarEvent).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(CalendarEvent).where(*filters).order_by(col(CalendarEvent.start_date)).offset(offset).limit(limit)
    )
    return CalendarEventListResponse(
        items=[_build_event_response(e) for e in result.scalars().all()],
        total=total,
    )


async def delete_calendar_event(session: AsyncSession, ctx: RequestContext, event_id: uuid.UUID) -> None:
    """Remove a calendar event."""
    event = await session.get(CalendarEvent, event_id)
    if event is None:
        raise NotFoundError("Calendar event not found")

    async with storage_guard(session):
        await write_audit_log(
            session,
            ctx,
            entity_type=AuditEntityType.CALENDAR_EVENT,
            entity_id=event.id,
            action=AuditAction.DELETED,
            details=model_to_audit_dict(event),
        )

        await session.delete(event)
        await commit_or_raise(session)
