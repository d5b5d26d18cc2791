"""
Roomly Backend - Booking Routes
================================

What:  /v1/bookings: reserve, view and cancel stays, and list bookings per
       guest or per property.
How:   Static paths (/user-bookings, /property-bookings/...) are declared
       before /{booking_id} so they are never captured as an id.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.database import get_db_session
from roomly.dependencies import RecordID, require_activated_user
from roomly.models.user import User
from roomly.schemas.booking import BookingCreate, BookingEnvelope, BookingListResponse
from roomly.schemas.common import ErrorResponse, MessageResponse
from roomly.services.booking_service import booking_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/v1/bookings",
    tags=["Bookings"],
    responses={404: {"description": "Not found", "model": ErrorResponse}},
)


@router.post(
    "/",
    status_code=201,
    response_model=BookingEnvelope,
    responses={
        409: {"description": "Dates overlap an existing booking", "model": ErrorResponse},
        422: {"description": "Invalid dates or own listing", "model": ErrorResponse},
    },
    summary="Book a listing",
)
async def create_booking(
    body: BookingCreate,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> BookingEnvelope:
    booking = await booking_service.create(db, user, body)
    return BookingEnvelope(booking=booking)


@router.get("/user-bookings", response_model=BookingListResponse, summary="My bookings")
async def user_bookings(
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> BookingListResponse:
    return BookingListResponse(bookings=await booking_service.get_for_guest(db, user.id))


@router.get(
    "/property-bookings/{listing_id}",
    response_model=BookingListResponse,
    responses={403: {"description": "Not the listing owner", "model": ErrorResponse}},
    summary="Bookings of one of my listings",
)
async def property_bookings(
    listing_id: RecordID,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> BookingListResponse:
    bookings = await booking_service.get_for_property(db, user.id, listing_id)
    return BookingListResponse(bookings=bookings)


@router.get("/{booking_id}", response_model=BookingEnvelope, summary="Get a booking")
async def get_booking(
    booking_id: RecordID,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> BookingEnvelope:
    booking = await booking_service.get(db, user.id, booking_id)
    return BookingEnvelope(booking=booking)


@router.delete("/{booking_id}", response_model=MessageResponse, summary="Cancel a booking")
async def delete_booking(
    booking_id: RecordID,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await booking_service.delete(db, user.id, booking_id)
    return MessageResponse(message="booking successfully cancelled")
