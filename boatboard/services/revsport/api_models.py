"""
Pydantic models that mirror the RevSport calendar JSON.

These are *internal* – only the booking service reads them and turns
them into boatboard.models.Booking.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


# ── /bookings/retrieve-calendar/{id} ──────────────────────────────────────

class RawBooking(BaseModel):
    """One FullCalendar event as returned by RevSport."""

    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    title: str
    start: datetime
    end: datetime
    url: str | None = None
