"""
Roomly Backend - Booking Service
=================================

What:  Reserve a listing for a date range, fetch and cancel bookings, and list
       bookings per guest or per property.
How:   Pricing is server-side: the nightly price is copied from the listing
       at booking time and total = price × nights. Stays are half-open
       [check_in, check_out), so back-to-back bookings do not overlap.

Visibility:
    - A booking is visible to, and cancellable by, its guest and the owner of
      the booked listing. Everyone else gets 404.
    - Property bookings are listed for the listing owner only (403 otherwise).
"""

import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import delete, desc, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from roomly.exceptions import ConflictError, DatabaseError, ForbiddenError, NotFoundError
from roomly.models.booking import Booking
from roomly.models.listing import Listing
from roomly.models.user import User
from roomly.schemas.booking import BookingCreate, BookingResponse
from roomly.schemas.listing import ListingResponse
from roomly.validator import MAX_INT64, Validator

logger = logging.getLogger(__name__)

Owner = aliased(User, name="owner")
Guest = aliased(User, name="guest")


def validate_booking_dates(v: Validator, start: Optional[date], end: Optional[date]) -> None:
    v.check(start is not None, "startDate", "must be provided")
    v.check(end is not None, "endDate", "must be provided")
    if start is not None and end is not None:
        v.check(end > start, "endDate", "must be after the start date")


def _booking_query():
    return (
        select(Booking, Listing, Owner.name, Owner.image, Guest.name)
        .join(Listing, Listing.id == Booking.listing_id)
        .join(Owner, Owner.id == Listing.owner_id)
        .join(Guest, Guest.id == Booking.guest_id)
    )


def _to_response(row) -> BookingResponse:
    booking, listing, owner_name, owner_photo, guest_name = row
    return BookingResponse(
        id=booking.id,
        created_at=booking.created_at,
        listing_id=booking.listing_id,
        guest_id=booking.guest_id,
        check_in=booking.check_in,
        check_out=booking.check_out,
        price=booking.price,
        total=booking.total,
        listing=ListingResponse.from_row(listing, owner_name, owner_photo),
        guest_name=guest_name,
    )


class BookingService:
    async def create(self, db: AsyncSession, guest: User, data: BookingCreate) -> BookingResponse:
        """
        Book `data.listing_id` for the guest.

        Raises:
            ValidationError: missing/invalid dates, or the guest owns the listing
            NotFoundError: listing does not exist
            ConflictError: dates overlap an existing booking of the listing
        """
        v = Validator()
        v.check(data.listing_id > 0, "listingId", "must be greater than zero")
        validate_booking_dates(v, data.start_date, data.end_date)
        v.raise_if_invalid()

        listing = await db.get(Listing, data.listing_id)
        if listing is None:
            raise NotFoundError(resource="listing", resource_id=str(data.listing_id))

        v.check(listing.owner_id != guest.id, "listingId", "you cannot book your own listing")
        nights = (data.end_date - data.start_date).days
        total = listing.price * nights
        v.check(total <= MAX_INT64, "endDate", "stay is too long for this listing's price")
        v.raise_if_invalid()

        try:
            overlap = await db.execute(
                select(Booking.id).where(
                    Booking.listing_id == listing.id,
                    Booking.check_in < data.end_date,
                    Booking.check_out > data.start_date,
                )
            )
            if overlap.first() is not None:
                raise ConflictError(
                    message="the listing is already booked for some of the requested dates",
                    context={"listing_id": listing.id},
                )

            booking = Booking(
                listing_id=listing.id,
                guest_id=guest.id,
                check_in=data.start_date,
                check_out=data.end_date,
                price=listing.price,
                total=total,
            )
            db.add(booking)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create booking on listing %s: %s", listing.id, e)
            raise DatabaseError(context={"listing_id": listing.id}) from e

        logger.info(
            "User %s booked listing %s for %d nights (booking %s)",
            guest.id, listing.id, nights, booking.id,
        )
        return await self.get(db, guest.id, booking.id)

    async def get(self, db: AsyncSession, user_id: int, booking_id: int) -> BookingResponse:
        try:
            result = await db.execute(
                _booking_query().where(
                    Booking.id == booking_id,
                    or_(Booking.guest_id == user_id, Listing.owner_id == user_id),
                )
            )
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching booking %s: %s", booking_id, e)
            raise DatabaseError(context={"booking_id": booking_id}) from e

        if row is None:
            raise NotFoundError(resource="booking", resource_id=str(booking_id))
        return _to_response(row)

    async def delete(self, db: AsyncSession, user_id: int, booking_id: int) -> None:
        """Cancel a booking as its guest or as the host of the listing."""
        hosted = select(Listing.id).where(Listing.owner_id == user_id)
        try:
            result = await db.execute(
                delete(Booking)
                .where(
                    Booking.id == booking_id,
                    or_(Booking.guest_id == user_id, Booking.listing_id.in_(hosted)),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete booking %s: %s", booking_id, e)
            raise DatabaseError(context={"booking_id": booking_id}) from e

        if result.rowcount == 0:
            raise NotFoundError(resource="booking", resource_id=str(booking_id))
        logger.info("Booking %s cancelled by user %s", booking_id, user_id)

    async def get_for_guest(self, db: AsyncSession, guest_id: int) -> List[BookingResponse]:
        try:
            result = await db.execute(
                _booking_query()
                .where(Booking.guest_id == guest_id)
                .order_by(desc(Booking.created_at), desc(Booking.id))
            )
            return [_to_response(row) for row in result.all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing bookings of user %s: %s", guest_id, e)
            raise DatabaseError(context={"guest_id": guest_id}) from e

    async def get_for_property(
        self,
        db: AsyncSession,
        owner_id: int,
        listing_id: int,
    ) -> List[BookingResponse]:
        listing = await db.get(Listing, listing_id)
        if listing is None:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))
        if listing.owner_id != owner_id:
            raise ForbiddenError(message="only the owner of this listing can view its bookings")

        try:
            result = await db.execute(
                _booking_query()
                .where(Booking.listing_id == listing_id)
                .order_by(desc(Booking.created_at), desc(Booking.id))
            )
            return [_to_response(row) for row in result.all()]
        except SQLAlchemyError as e:
            logger.error("Database error listing bookings of listing %s: %s", listing_id, e)
            raise DatabaseError(context={"listing_id": listing_id}) from e


booking_service = BookingService()
