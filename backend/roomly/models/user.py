"""
Roomly Backend - User SQLAlchemy Model
=======================================

What:  ORM model for the `users` table.
Who:   Used by UserService, TokenService (join on session lookup) and the
       listing/booking queries that surface owner and guest names.

Column notes:
    - password_hash is NULL for accounts created through GitHub/Google login;
      password login is refused for those rows.
    - verification_token, reset_token and update_email_token hold the short
      one-time codes mailed to the user. They are cleared once consumed.
    - email is stored lowercased and is unique.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from roomly.database import Base, BigIntPK


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )
    name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    activated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    image: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── One-time Codes ────────────────────────────────────────────────────
    verification_token: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    reset_token: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    update_email_token: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', activated={self.activated})>"
