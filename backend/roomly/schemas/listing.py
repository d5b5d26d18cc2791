"""
Roomly Backend - Listing & Gallery Schemas
===========================================

What:  API contract for listings, their location object and gallery images.
How:   The nested `location` object maps onto the flat `location_*` columns
       of the listings table; `ListingResponse.from_row` does the reverse.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from roomly.models.image import Image
from roomly.models.listing import Listing
from roomly.schemas.common import CamelModel
from roomly.validator import MAX_INT32, MAX_INT64


class Location(CamelModel):
    flag: str = ""
    label: str = ""
    lat: float = 0
    lng: float = 0
    region: str = ""
    value: str = ""


class LocationPatch(CamelModel):
    flag: Optional[str] = None
    label: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    region: Optional[str] = None
    value: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ListingCreate(CamelModel):
    title: str = ""
    description: str = ""
    category: str = ""
    bedrooms: int = Field(default=0, le=MAX_INT32)
    bathrooms: int = Field(default=0, le=MAX_INT32)
    guests: int = Field(default=0, le=MAX_INT32)
    location: Location = Field(default_factory=Location)
    price: int = Field(default=0, le=MAX_INT64)
    images: List[str] = Field(default_factory=list, description="Gallery image URLs")


class ListingUpdate(CamelModel):
    """Partial update; omitted fields keep their stored value."""
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    bedrooms: Optional[int] = Field(default=None, le=MAX_INT32)
    bathrooms: Optional[int] = Field(default=None, le=MAX_INT32)
    guests: Optional[int] = Field(default=None, le=MAX_INT32)
    location: Optional[LocationPatch] = None
    price: Optional[int] = Field(default=None, le=MAX_INT64)


class ImageCreate(CamelModel):
    url: str = ""


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ImageResponse(CamelModel):
    id: int
    listing_id: int
    url: str


class ListingResponse(CamelModel):
    id: int
    created_at: datetime
    title: str
    description: str
    category: str
    bedrooms: int
    bathrooms: int
    guests: int
    location: Location
    price: int
    owner_id: int
    owner_name: Optional[str] = None
    owner_photo: Optional[str] = None
    images: List[ImageResponse] = Field(default_factory=list)

    @classmethod
    def from_row(
        cls,
        listing: Listing,
        owner_name: Optional[str] = None,
        owner_photo: Optional[str] = None,
        images: Optional[List[Image]] = None,
    ) -> "ListingResponse":
        return cls(
            id=listing.id,
            created_at=listing.created_at,
            title=listing.title,
            description=listing.description,
            category=listing.category,
            bedrooms=listing.bedrooms,
            bathrooms=listing.bathrooms,
            guests=listing.guests,
            location=Location(
                flag=listing.location_flag,
                label=listing.location_label,
                lat=listing.location_lat,
                lng=listing.location_lng,
                region=listing.location_region,
                value=listing.location_value,
            ),
            price=listing.price,
            owner_id=listing.owner_id,
            owner_name=owner_name,
            owner_photo=owner_photo or None,
            images=[ImageResponse.model_validate(image) for image in images or []],
        )


class ListingCreatedResponse(CamelModel):
    listing_id: int


class ListingDetailResponse(CamelModel):
    listing: ListingResponse
    listing_images: List[ImageResponse]


class ListingEnvelope(CamelModel):
    listing: ListingResponse


class ListingListResponse(CamelModel):
    """
    Page of listings plus pagination metadata.

    metadata is `{}` when nothing matched, otherwise current_page, page_size,
    first_page, last_page and total_records.
    """
    listings: List[ListingResponse]
    metadata: Dict[str, int] = Field(default_factory=dict)


class UserListingsResponse(CamelModel):
    listings: List[ListingResponse]


class ImageEnvelope(CamelModel):
    image: ImageResponse


class ImageListResponse(CamelModel):
    images: List[ImageResponse]


class UploadResponse(CamelModel):
    url: str
