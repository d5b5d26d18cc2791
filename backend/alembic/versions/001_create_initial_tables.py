"""Create users, tokens, listings, images and bookings tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates the full marketplace schema.
How:   Every child table cascades on delete of its parent: deleting a user
       removes their sessions, listings (with images and bookings) and their
       own bookings; deleting a listing removes its images and bookings.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("name", sa.Text(), nullable=True),
        sa.Column("email", sa.String(320), nullable=False),
        # NULL for GitHub/Google accounts
        sa.Column("password_hash", sa.String(60), nullable=True),
        sa.Column("activated", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("verification_token", sa.String(16), nullable=True),
        sa.Column("reset_token", sa.String(16), nullable=True),
        sa.Column("update_email_token", sa.String(16), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )

    op.create_table(
        "tokens",
        # SHA-256 of the plaintext session token
        sa.Column("hash", sa.LargeBinary(), nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("expiry", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("scope", sa.String(64), nullable=False),
        sa.PrimaryKeyConstraint("hash"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_tokens_user_id_scope", "tokens", ["user_id", "scope"])

    op.create_table(
        "listings",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
        sa.Column("bedrooms", sa.Integer(), nullable=False),
        sa.Column("bathrooms", sa.Integer(), nullable=False),
        sa.Column("guests", sa.Integer(), nullable=False),
        sa.Column("location_flag", sa.String(255), nullable=False),
        sa.Column("location_label", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("location_lat", sa.Float(), nullable=False),
        sa.Column("location_lng", sa.Float(), nullable=False),
        sa.Column("location_region", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("location_value", sa.String(255), nullable=False, server_default=sa.text("''")),
        sa.Column("price", sa.BigInteger(), nullable=False),
        sa.Column("owner_id", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_listings_owner_id", "listings", ["owner_id"])

    op.create_table(
        "images",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("listing_id", sa.BigInteger(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_images_listing_id", "images", ["listing_id"])

    op.create_table(
        "bookings",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        _created_at(),
        sa.Column("listing_id", sa.BigInteger(), nullable=False),
        sa.Column("guest_id", sa.BigInteger(), nullable=False),
        sa.Column("check_in", sa.Date(), nullable=False),
        sa.Column("check_out", sa.Date(), nullable=False),
        # Nightly rate at booking time; total = price * nights
        sa.Column("price", sa.BigInteger(), nullable=False),
        sa.Column("total", sa.BigInteger(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["listing_id"], ["listings.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["guest_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
    )
    # Overlap checks scan a listing's bookings by date range
    op.create_index(
        "idx_bookings_listing_dates", "bookings", ["listing_id", "check_in", "check_out"]
    )
    op.create_index("idx_bookings_guest_id", "bookings", ["guest_id"])


def downgrade() -> None:
    op.drop_index("idx_bookings_guest_id", table_name="bookings")
    op.drop_index("idx_bookings_listing_dates", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index("idx_images_listing_id", table_name="images")
    op.drop_table("images")
    op.drop_index("idx_listings_owner_id", table_name="listings")
    op.drop_table("listings")
    op.drop_index("idx_tokens_user_id_scope", table_name="tokens")
    op.drop_table("tokens")
    op.drop_table("users")
