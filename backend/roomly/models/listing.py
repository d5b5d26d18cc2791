"""
Roomly Backend - Listing SQLAlchemy Model
==========================================

What:  ORM model for the `listings` table (a rentable property).
How:   The location object of the API is flattened into `location_*` columns.
       Owner name/photo are joined from `users` at query time rather than
       stored here.

Query Patterns:
    - Browse: ILIKE search over title, category, location_region and
      location_label, ordered by a safelisted column, LIMIT/OFFSET
    - Owner dashboard: WHERE owner_id = :id ORDER BY id
      → uses idx_listings_owner_id
"""

from datetime import datetime, timezone

from sqlalchemy import BigInteger, DateTime, Float, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from roomly.database import Base, BigIntPK


class Listing(Base):
    __tablename__ = "listings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    guests: Mapped[int] = mapped_column(Integer, nullable=False)

    # ── Location ──────────────────────────────────────────────────────────
    location_flag: Mapped[str] = mapped_column(String(255), nullable=False)
    location_label: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    location_lat: Mapped[float] = mapped_column(Float, nullable=False)
    location_lng: Mapped[float] = mapped_column(Float, nullable=False)
    location_region: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    location_value: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    owner_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_listings_owner_id", "owner_id"),
    )

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, title='{self.title}', owner_id={self.owner_id})>"
