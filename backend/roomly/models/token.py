"""
Roomly Backend - Session Token Model
=====================================

What:  ORM model for the `tokens` table.
How:   The primary key is the SHA-256 digest of the plaintext token; the
       plaintext only ever exists in the client's cookie or header.
       Rows cascade away with their user.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, LargeBinary, String
from sqlalchemy.orm import Mapped, mapped_column

from roomly.database import Base, BigIntPK


class Token(Base):
    __tablename__ = "tokens"

    hash: Mapped[bytes] = mapped_column(LargeBinary, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigIntPK,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    expiry: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    scope: Mapped[str] = mapped_column(String(64), nullable=False)

    __table_args__ = (
        Index("idx_tokens_user_id_scope", "user_id", "scope"),
    )

    def __repr__(self) -> str:
        return f"<Token(user_id={self.user_id}, scope='{self.scope}', expiry='{self.expiry}')>"
