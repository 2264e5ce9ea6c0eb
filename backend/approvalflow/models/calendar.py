# ruff: noqa: TC003
from __future__ import annotations

from datetime import date

import sqlalchemy as sa
from sqlmodel import Field

from approvalflow.models.base import UUIDBase


class CalendarEvent(UUIDBase, table=True):
    """A company holiday or blackout period spanning start_date..end_date inclusive."""

    __tablename__ = "company_calendar"
    __table_args__ = (sa.Index("ix_calendar_kind_dates", "kind", "start_date", "end_date"),)

    kind: str = Field(max_length=20)
    name: str = Field(max_length=255)
    start_date: date
    end_date: date
    description: str | None = None
