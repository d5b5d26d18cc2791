"""
Roomly Backend - Booking Schemas
=================================

Dates are ISO-8601 calendar dates ("2025-07-01"). The nightly price and the
total are computed server-side from the listing; clients cannot set them.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from roomly.schemas.common import CamelModel
from roomly.schemas.listing import ListingResponse
from roomly.validator import MAX_INT64


class BookingCreate(CamelModel):
    listing_id: int = Field(default=0, le=MAX_INT64)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class BookingResponse(CamelModel):
    id: int
    created_at: datetime
    listing_id: int
    guest_id: int
    check_in: date
    check_out: date
    price: int
    total: int
    listing: ListingResponse
    guest_name: Optional[str] = None


class BookingEnvelope(CamelModel):
    booking: BookingResponse


class BookingListResponse(CamelModel):
    bookings: List[BookingResponse]
