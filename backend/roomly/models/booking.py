"""
Roomly Backend - Booking SQLAlchemy Model
==========================================

What:  ORM model for the `bookings` table: a guest's stay at a listing.
How:   check_in/check_out are calendar dates; check_out is exclusive, so a
       stay from the 1st to the 3rd is two nights and a new stay may start
       on the 3rd. price is the nightly rate captured at booking time and
       total = price × nights.
"""

from datetime import date, datetime, timezone

from sqlalchemy import BigInteger, CheckConstraint, Date, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column

from roomly.database import Base, BigIntPK


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    listing_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
    )
    guest_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date] = mapped_column(Date, nullable=False)
    price: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total: Mapped[int] = mapped_column(BigInteger, nullable=False)

    __table_args__ = (
        CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
        Index("idx_bookings_listing_dates", "listing_id", "check_in", "check_out"),
        Index("idx_bookings_guest_id", "guest_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, listing_id={self.listing_id}, guest_id={self.guest_id}, "
            f"check_in='{self.check_in}', check_out='{self.check_out}')>"
        )
