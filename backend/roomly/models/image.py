"""
Roomly Backend - Listing Image Model
=====================================

What:  One gallery image URL belonging to a listing. URLs are either external
       or point at /v1/files/... for images uploaded through the file service.
"""

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from roomly.database import Base, BigIntPK


class Image(Base):
    __tablename__ = "images"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    listing_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)

    __table_args__ = (
        Index("idx_images_listing_id", "listing_id"),
    )

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, listing_id={self.listing_id})>"
