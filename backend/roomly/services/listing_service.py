"""
Roomly Backend - Listing Service
=================================

What:  Create, fetch, browse, update and delete rental listings.
How:   Listings are joined to their owner for name/photo; gallery images are
       fetched per page with a single IN query. Owner-scoped writes filter
       on (id, owner_id) so another user's listing behaves as not found.

Browse query (GET /v1/listings):
    SELECT l.*, u.name, u.image FROM listings l JOIN users u ON u.id = l.owner_id
    WHERE title/category/location_region/location_label ILIKE %search%
    ORDER BY <safelisted column> <dir>, l.id ASC
    LIMIT :page_size OFFSET (:page - 1) * :page_size
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import asc, delete, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.exceptions import DatabaseError, NotFoundError
from roomly.filters import Filters, calculate_metadata, validate_filters
from roomly.models.listing import Listing
from roomly.models.user import User
from roomly.schemas.listing import (
    ImageResponse,
    ListingCreate,
    ListingResponse,
    ListingUpdate,
)
from roomly.services.image_service import image_service, validate_image_url
from roomly.validator import Validator, byte_length

logger = logging.getLogger(__name__)

SORT_SAFELIST = [
    "id", "title", "price", "created_at", "category", "bedrooms", "guests",
    "-id", "-title", "-price", "-created_at", "-category", "-bedrooms", "-guests",
]


def validate_listing(v: Validator, listing: Listing) -> None:
    v.check(listing.title != "", "title", "must be provided")
    v.check(byte_length(listing.title) <= 500, "title", "must not be more than 500 characters long")

    v.check(listing.description != "", "description", "must be provided")
    v.check(
        byte_length(listing.description) <= 5000,
        "description",
        "must not be more than 5000 characters long",
    )

    v.check(listing.category != "", "category", "must be provided")
    v.check(byte_length(listing.category) <= 255, "category", "must not be more than 255 characters long")

    v.check(listing.bedrooms > 0, "bedrooms", "must be greater than zero")
    v.check(listing.bathrooms > 0, "bathrooms", "must be greater than zero")
    v.check(listing.guests > 0, "guests", "must be greater than zero")

    v.check(listing.location_flag != "", "location.flag", "must be provided")
    v.check(
        byte_length(listing.location_flag) <= 255,
        "location.flag",
        "must not be more than 255 characters long",
    )
    v.check(
        byte_length(listing.location_label) <= 255,
        "location.label",
        "must not be more than 255 characters long",
    )
    v.check(
        byte_length(listing.location_region) <= 255,
        "location.region",
        "must not be more than 255 characters long",
    )
    v.check(listing.location_lat != 0, "location.lat", "must be provided")
    v.check(listing.location_lng != 0, "location.lng", "must be provided")

    v.check(listing.price > 0, "price", "must be greater than zero")
    v.check(listing.owner_id is not None and listing.owner_id > 0, "owner_id", "must be greater than zero")


def _with_owner():
    return select(Listing, User.name, User.image).join(User, User.id == Listing.owner_id)


class ListingService:
    """
    Listing CRUD. Methods that return listings return `ListingResponse`
    schemas with owner details and images already attached.
    """

    async def create(self, db: AsyncSession, owner: User, data: ListingCreate) -> int:
        listing = Listing(
            title=data.title.strip(),
            description=data.description.strip(),
            category=data.category.strip(),
            bedrooms=data.bedrooms,
            bathrooms=data.bathrooms,
            guests=data.guests,
            location_flag=data.location.flag,
            location_label=data.location.label,
            location_lat=data.location.lat,
            location_lng=data.location.lng,
            location_region=data.location.region,
            location_value=data.location.value,
            price=data.price,
            owner_id=owner.id,
        )
        urls = [url.strip() for url in data.images]

        v = Validator()
        validate_listing(v, listing)
        for url in urls:
            validate_image_url(v, url, key="images")
        v.raise_if_invalid()

        try:
            db.add(listing)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create listing for user %s: %s", owner.id, e)
            raise DatabaseError(context={"owner_id": owner.id}) from e

        await image_service.insert_many(db, listing.id, urls)
        logger.info("Created listing %s (%d images) for user %s", listing.id, len(urls), owner.id)
        return listing.id

    async def get(self, db: AsyncSession, listing_id: int) -> Tuple[ListingResponse, List[ImageResponse]]:
        """Single listing with owner details, plus its gallery."""
        if listing_id < 1:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))

        try:
            result = await db.execute(_with_owner().where(Listing.id == listing_id))
            row = result.first()
        except SQLAlchemyError as e:
            logger.error("Database error fetching listing %s: %s", listing_id, e)
            raise DatabaseError(context={"listing_id": listing_id}) from e

        if row is None:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))

        listing, owner_name, owner_photo = row
        images = await image_service.get_for_listing(db, listing.id)
        response = ListingResponse.from_row(listing, owner_name, owner_photo, images)
        return response, response.images

    async def get_all(
        self,
        db: AsyncSession,
        search: str,
        filters: Filters,
    ) -> Tuple[List[ListingResponse], Dict[str, int]]:
        """
        Paginated, searchable, sortable browse.

        Raises:
            ValidationError: page/page_size out of range or sort not safelisted
        """
        filters.sort_safelist = SORT_SAFELIST
        v = Validator()
        validate_filters(v, filters)
        v.raise_if_invalid()

        search = search.strip()
        conditions = []
        if search:
            conditions.append(
                or_(
                    Listing.title.icontains(search, autoescape=True),
                    Listing.category.icontains(search, autoescape=True),
                    Listing.location_region.icontains(search, autoescape=True),
                    Listing.location_label.icontains(search, autoescape=True),
                )
            )

        column = getattr(Listing, filters.sort_column())
        order = desc(column) if filters.sort_descending() else asc(column)

        try:
            count_result = await db.execute(
                select(func.count(Listing.id)).where(*conditions)
            )
            total_records = count_result.scalar() or 0

            result = await db.execute(
                _with_owner()
                .where(*conditions)
                .order_by(order, asc(Listing.id))
                .limit(filters.limit())
                .offset(filters.offset())
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing listings: %s", e, exc_info=True)
            raise DatabaseError() from e

        images = await image_service.get_for_listings(db, [row[0].id for row in rows])
        listings = [
            ListingResponse.from_row(listing, owner_name, owner_photo, images.get(listing.id))
            for listing, owner_name, owner_photo in rows
        ]
        return listings, calculate_metadata(total_records, filters.page, filters.page_size)

    async def get_for_owner(self, db: AsyncSession, owner_id: int) -> List[ListingResponse]:
        try:
            result = await db.execute(
                _with_owner().where(Listing.owner_id == owner_id).order_by(asc(Listing.id))
            )
            rows = result.all()
        except SQLAlchemyError as e:
            logger.error("Database error listing listings of user %s: %s", owner_id, e)
            raise DatabaseError(context={"owner_id": owner_id}) from e

        images = await image_service.get_for_listings(db, [row[0].id for row in rows])
        return [
            ListingResponse.from_row(listing, owner_name, owner_photo, images.get(listing.id))
            for listing, owner_name, owner_photo in rows
        ]

    async def get_owned(self, db: AsyncSession, owner_id: int, listing_id: int) -> Optional[Listing]:
        result = await db.execute(
            select(Listing).where(Listing.id == listing_id, Listing.owner_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def update(
        self,
        db: AsyncSession,
        owner: User,
        listing_id: int,
        patch: ListingUpdate,
    ) -> ListingResponse:
        """Apply a partial update, then validate the merged listing."""
        listing = await self.get_owned(db, owner.id, listing_id)
        if listing is None:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))

        changes = patch.model_dump(exclude_unset=True, exclude={"location"})
        for field, value in changes.items():
            if value is not None:
                setattr(listing, field, value.strip() if isinstance(value, str) else value)
        if patch.location is not None:
            for field, value in patch.location.model_dump(exclude_unset=True).items():
                if value is not None:
                    setattr(listing, f"location_{field}", value)

        v = Validator()
        validate_listing(v, listing)
        v.raise_if_invalid()

        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to update listing %s: %s", listing_id, e)
            raise DatabaseError(context={"listing_id": listing_id}) from e

        images = await image_service.get_for_listing(db, listing.id)
        logger.info("Updated listing %s", listing_id)
        return ListingResponse.from_row(listing, owner.name, owner.image, images)

    async def delete(self, db: AsyncSession, owner_id: int, listing_id: int) -> None:
        try:
            result = await db.execute(
                delete(Listing)
                .where(Listing.id == listing_id, Listing.owner_id == owner_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete listing %s: %s", listing_id, e)
            raise DatabaseError(context={"listing_id": listing_id}) from e

        if result.rowcount == 0:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))
        logger.info("Deleted listing %s", listing_id)


listing_service = ListingService()
