"""
Roomly Backend - Listing & Gallery Routes
==========================================

What:  /v1/listings: browse, read, create, update and delete listings, and
       manage their image galleries.
How:   Path ids are typed as int, so a non-numeric id is a 400 from the
       request-validation handler before any query runs.

Route Inventory:
    GET    /v1/listings/                    browse (search, sort, pagination)
    GET    /v1/listings/user-listings       caller's listings with images
    GET    /v1/listings/{id}                listing + gallery
    POST   /v1/listings/                    create (with gallery URLs)
    PATCH  /v1/listings/{id}                partial update (owner)
    DELETE /v1/listings/delete/{id}         delete (owner)
    POST   /v1/listings/{id}/images         add gallery URL (owner)
    DELETE /v1/listings/images/{imageId}    remove gallery image (owner)
    POST   /v1/listings/images/{id}         upload gallery photos (owner)
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.database import get_db_session
from roomly.dependencies import RecordID, require_activated_user
from roomly.filters import Filters
from roomly.models.user import User
from roomly.schemas.common import ErrorResponse, MessageResponse
from roomly.schemas.listing import (
    ImageCreate,
    ImageEnvelope,
    ImageListResponse,
    ListingCreate,
    ListingCreatedResponse,
    ListingDetailResponse,
    ListingEnvelope,
    ListingListResponse,
    ListingUpdate,
    UserListingsResponse,
)
from roomly.services.image_service import image_service
from roomly.services.listing_service import listing_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/listings", tags=["Listings"])


@router.get(
    "/",
    response_model=ListingListResponse,
    responses={422: {"description": "Invalid page, page_size or sort", "model": ErrorResponse}},
    summary="Browse listings",
    description=(
        "Case-insensitive search over title, category, region and label. "
        "Sort by id, title, price, created_at, category, bedrooms or guests; "
        "prefix with '-' for descending order."
    ),
)
async def list_listings(
    search: str = Query(default="", description="Substring to search for"),
    page: int = Query(default=1, description="1-based page number"),
    page_size: int = Query(default=20, description="Items per page (max 100)"),
    sort: str = Query(default="id", description="Sort column, '-' prefix for DESC"),
    db: AsyncSession = Depends(get_db_session),
) -> ListingListResponse:
    listings, metadata = await listing_service.get_all(
        db,
        search=search,
        filters=Filters(page=page, page_size=page_size, sort=sort),
    )
    return ListingListResponse(listings=listings, metadata=metadata)


@router.get(
    "/user-listings",
    response_model=UserListingsResponse,
    summary="Listings owned by the current user",
)
async def user_listings(
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> UserListingsResponse:
    listings = await listing_service.get_for_owner(db, user.id)
    return UserListingsResponse(listings=listings)


@router.get(
    "/{listing_id}",
    response_model=ListingDetailResponse,
    responses={
        400: {"description": "Malformed id", "model": ErrorResponse},
        404: {"description": "Listing not found", "model": ErrorResponse},
    },
    summary="Get a listing and its gallery",
)
async def get_listing(
    listing_id: RecordID,
    db: AsyncSession = Depends(get_db_session),
) -> ListingDetailResponse:
    listing, images = await listing_service.get(db, listing_id)
    return ListingDetailResponse(listing=listing, listing_images=images)


@router.post(
    "/",
    status_code=201,
    response_model=ListingCreatedResponse,
    responses={422: {"description": "Invalid listing", "model": ErrorResponse}},
    summary="Create a listing",
)
async def create_listing(
    body: ListingCreate,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> ListingCreatedResponse:
    listing_id = await listing_service.create(db, user, body)
    return ListingCreatedResponse(listing_id=listing_id)


@router.patch(
    "/{listing_id}",
    response_model=ListingEnvelope,
    responses={
        404: {"description": "Not found or not owned", "model": ErrorResponse},
        422: {"description": "Invalid listing", "model": ErrorResponse},
    },
    summary="Update a listing",
)
async def update_listing(
    listing_id: RecordID,
    body: ListingUpdate,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> ListingEnvelope:
    listing = await listing_service.update(db, user, listing_id, body)
    return ListingEnvelope(listing=listing)


@router.delete(
    "/delete/{listing_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not found or not owned", "model": ErrorResponse}},
    summary="Delete a listing",
)
async def delete_listing(
    listing_id: RecordID,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await listing_service.delete(db, user.id, listing_id)
    return MessageResponse(message="listing successfully deleted")


# ── Gallery ───────────────────────────────────────────────────────────────
@router.post(
    "/{listing_id}/images",
    status_code=201,
    response_model=ImageEnvelope,
    responses={404: {"description": "Not found or not owned", "model": ErrorResponse}},
    summary="Add an image URL to a listing's gallery",
)
async def add_gallery_image(
    listing_id: RecordID,
    body: ImageCreate,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> ImageEnvelope:
    image = await image_service.add(db, user.id, listing_id, body.url)
    return ImageEnvelope(image=image)


@router.delete(
    "/images/{image_id}",
    response_model=MessageResponse,
    responses={404: {"description": "Not found or not owned", "model": ErrorResponse}},
    summary="Remove an image from a listing's gallery",
)
async def remove_gallery_image(
    image_id: RecordID,
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await image_service.remove(db, user.id, image_id)
    return MessageResponse(message="image successfully removed")


@router.post(
    "/images/{listing_id}",
    status_code=201,
    response_model=ImageListResponse,
    responses={
        404: {"description": "Not found or not owned", "model": ErrorResponse},
        422: {"description": "Invalid file type or size", "model": ErrorResponse},
    },
    summary="Upload photos to a listing's gallery",
)
async def upload_gallery_images(
    listing_id: RecordID,
    files: List[UploadFile] = File(..., description="PNG, JPG or WEBP images"),
    user: User = Depends(require_activated_user),
    db: AsyncSession = Depends(get_db_session),
) -> ImageListResponse:
    uploads = []
    try:
        for upload in files:
            uploads.append((upload.filename or "", await upload.read(), upload.size))
    finally:
        for upload in files:
            await upload.close()

    logger.info("Received %d gallery uploads for listing %s", len(uploads), listing_id)
    images = await image_service.upload_to_gallery(db, user.id, listing_id, uploads)
    return ImageListResponse(images=images)
