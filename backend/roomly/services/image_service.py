"""
Roomly Backend - Listing Gallery Service
=========================================

What:  Adds, lists and removes gallery image URLs for listings.
How:   Ownership is enforced in SQL: writes only touch images whose parent
       listing belongs to the caller, and a miss is reported as 404 so
       other users' listings are not revealed.
       Uploaded files go through FileService first; their served URL
       (/v1/files/...) is then stored like any external URL.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.exceptions import DatabaseError, NotFoundError
from roomly.models.image import Image
from roomly.models.listing import Listing
from roomly.schemas.listing import ImageResponse
from roomly.services.file_service import file_service
from roomly.validator import Validator

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048


def validate_image_url(v: Validator, url: str, key: str = "url") -> None:
    v.check(url != "", key, "must be provided")
    v.check(len(url) <= MAX_URL_LENGTH, key, "must not be more than 2048 characters long")


class ImageService:
    async def _require_owned_listing(self, db: AsyncSession, owner_id: int, listing_id: int) -> None:
        result = await db.execute(
            select(Listing.id).where(Listing.id == listing_id, Listing.owner_id == owner_id)
        )
        if result.first() is None:
            raise NotFoundError(resource="listing", resource_id=str(listing_id))

    async def insert_many(self, db: AsyncSession, listing_id: int, urls: Iterable[str]) -> List[Image]:
        images = [Image(listing_id=listing_id, url=url) for url in urls]
        if not images:
            return []
        try:
            db.add_all(images)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to store images for listing %s: %s", listing_id, e)
            raise DatabaseError(context={"listing_id": listing_id}) from e
        return images

    async def get_for_listing(self, db: AsyncSession, listing_id: int) -> List[Image]:
        result = await db.execute(
            select(Image).where(Image.listing_id == listing_id).order_by(Image.id)
        )
        return list(result.scalars().all())

    async def get_for_listings(
        self,
        db: AsyncSession,
        listing_ids: Sequence[int],
    ) -> Dict[int, List[Image]]:
        """One IN query for a whole page of listings, grouped by listing id."""
        grouped: Dict[int, List[Image]] = {listing_id: [] for listing_id in listing_ids}
        if not listing_ids:
            return grouped
        result = await db.execute(
            select(Image).where(Image.listing_id.in_(listing_ids)).order_by(Image.id)
        )
        for image in result.scalars().all():
            grouped.setdefault(image.listing_id, []).append(image)
        return grouped

    async def add(self, db: AsyncSession, owner_id: int, listing_id: int, url: str) -> ImageResponse:
        url = url.strip()
        v = Validator()
        validate_image_url(v, url)
        v.raise_if_invalid()

        await self._require_owned_listing(db, owner_id, listing_id)
        images = await self.insert_many(db, listing_id, [url])
        logger.info("Added image %s to listing %s", images[0].id, listing_id)
        return ImageResponse.model_validate(images[0])

    async def remove(self, db: AsyncSession, owner_id: int, image_id: int) -> None:
        owned_listings = select(Listing.id).where(Listing.owner_id == owner_id)
        try:
            result = await db.execute(
                delete(Image).where(
                    Image.id == image_id,
                    Image.listing_id.in_(owned_listings),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete image %s: %s", image_id, e)
            raise DatabaseError(context={"image_id": image_id}) from e

        if result.rowcount == 0:
            raise NotFoundError(resource="image", resource_id=str(image_id))
        logger.info("Removed image %s", image_id)

    async def upload_to_gallery(
        self,
        db: AsyncSession,
        owner_id: int,
        listing_id: int,
        uploads: Sequence[Tuple[str, bytes, Optional[int]]],
    ) -> List[ImageResponse]:
        """
        Store each (filename, content, content_length) upload and register it
        as a gallery image. Files already written are removed if a later file
        or the database insert fails.
        """
        await self._require_owned_listing(db, owner_id, listing_id)

        stored: List[Tuple[str, str]] = []
        try:
            for filename, content, content_length in uploads:
                absolute_path, relative_path = await file_service.validate_and_store(
                    filename=filename,
                    content=content,
                    content_length=content_length,
                )
                stored.append((absolute_path, relative_path))
                logger.info("Stored gallery upload %s for listing %s", relative_path, listing_id)

            urls = [file_service.public_url(relative) for _, relative in stored]
            images = await self.insert_many(db, listing_id, urls)
        except Exception:
            for absolute, _ in stored:
                await file_service.cleanup_file(absolute)
            raise

        return [ImageResponse.model_validate(image) for image in images]


image_service = ImageService()
