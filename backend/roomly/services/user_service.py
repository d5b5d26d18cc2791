"""
Roomly Backend - User Service (Accounts & Credentials)
=======================================================

What:  Registration, activation, login, profile and credential changes.
How:   Every write validates input with `Validator`, mutates the ORM row
       and flushes; the request-scoped session commits in get_db_session.
       One-time codes are generated here; mailing them is the caller's job
       (routes schedule MailerService sends as background tasks).
Who:   Auth and user routes, and the OAuth callback (upsert_oauth_user).

Error mapping:
    unknown user            → NotFoundError (404)
    bad input / dup email   → ValidationError (422)
    wrong password or code  → InvalidCredentialsError (401)
    login while inactive    → InactiveAccountError (403)
"""

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.exceptions import (
    DatabaseError,
    InactiveAccountError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from roomly.models.user import User
from roomly.security import (
    codes_match,
    generate_code,
    hash_password,
    validate_password_plaintext,
    verify_password,
)
from roomly.validator import EMAIL_RX, Validator, byte_length, matches

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "user with this email address already exists"


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ── Validation ────────────────────────────────────────────────────────────
def validate_email(v: Validator, email: str, key: str = "email") -> None:
    v.check(email != "", key, "must be provided")
    v.check(matches(email, EMAIL_RX), key, "must be a valid email address")


def validate_user(v: Validator, name: str, email: str, password: Optional[str] = None) -> None:
    v.check(name != "", "name", "must be provided")
    v.check(byte_length(name) <= 500, "name", "must not be more than 500 bytes long")
    validate_email(v, email)
    if password is not None:
        validate_password_plaintext(v, password)


class UserService:
    """
    Stateless account operations; each method receives the request session.
    """

    # ── Lookup ────────────────────────────────────────────────────────────
    async def get(
        self,
        db: AsyncSession,
        user_id: Optional[int] = None,
        email: Optional[str] = None,
    ) -> User:
        """Fetch by id or by (normalized) email. Raises NotFoundError."""
        query = select(User)
        if user_id is not None:
            query = query.where(User.id == user_id)
        elif email is not None:
            query = query.where(User.email == normalize_email(email))
        else:
            raise NotFoundError(resource="user")

        try:
            result = await db.execute(query)
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching user: %s", e)
            raise DatabaseError() from e

        if user is None:
            raise NotFoundError(
                resource="user",
                resource_id=str(user_id) if user_id is not None else None,
            )
        return user

    async def _email_taken(self, db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
        query = select(User.id).where(User.email == email)
        if exclude_id is not None:
            query = query.where(User.id != exclude_id)
        result = await db.execute(query)
        return result.first() is not None

    # ── Persistence ───────────────────────────────────────────────────────
    async def update(self, db: AsyncSession, user: User) -> User:
        """Flush pending changes on `user`; a unique-email clash becomes a 422."""
        try:
            await db.flush()
        except IntegrityError as e:
            logger.info("Email conflict while saving user %s", user.id)
            raise ValidationError(errors={"email": DUPLICATE_EMAIL}) from e
        except SQLAlchemyError as e:
            logger.error("Database error saving user %s: %s", user.id, e)
            raise DatabaseError(context={"user_id": user.id}) from e
        return user

    async def delete(self, db: AsyncSession, user: User) -> None:
        """Remove the account; tokens, listings, images and bookings cascade."""
        try:
            await db.execute(delete(User).where(User.id == user.id))
        except SQLAlchemyError as e:
            logger.error("Database error deleting user %s: %s", user.id, e)
            raise DatabaseError(context={"user_id": user.id}) from e
        logger.info("Deleted user %s", user.id)

    # ── Registration & Activation ─────────────────────────────────────────
    async def register(self, db: AsyncSession, email: str, name: str, password: str) -> User:
        """
        Create an inactive account with a fresh verification code.

        Returns the new user; `user.verification_token` holds the code to mail.
        """
        email = normalize_email(email)
        name = name.strip()

        v = Validator()
        validate_user(v, name, email, password)
        v.raise_if_invalid()

        if await self._email_taken(db, email):
            raise ValidationError(errors={"email": DUPLICATE_EMAIL})

        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            activated=False,
            verification_token=generate_code(),
        )
        db.add(user)
        await self.update(db, user)
        logger.info("Registered user %s", user.id)
        return user

    async def verify(self, db: AsyncSession, user_id: int, code: str) -> User:
        user = await self.get(db, user_id=user_id)

        if user.activated:
            raise ValidationError(errors={"code": "user already activated"})
        if not codes_match(user.verification_token, code.strip()):
            raise ValidationError(errors={"code": "invalid verification code"})

        user.activated = True
        user.verification_token = None
        await self.update(db, user)
        logger.info("Activated user %s", user.id)
        return user

    async def authenticate(self, db: AsyncSession, email: str, password: str) -> User:
        """Password login: unknown email 404, inactive 403, bad password 401."""
        user = await self.get(db, email=email)

        if not user.activated:
            raise InactiveAccountError()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        return user

    # ── Password Reset (anonymous) ────────────────────────────────────────
    async def request_password_reset(self, db: AsyncSession, email: str) -> User:
        user = await self.get(db, email=email)
        user.reset_token = generate_code()
        await self.update(db, user)
        return user

    async def confirm_password_reset(
        self,
        db: AsyncSession,
        email: str,
        code: str,
        new_password: str,
    ) -> User:
        user = await self.get(db, email=email)

        if not codes_match(user.reset_token, code.strip()):
            raise InvalidCredentialsError(message="invalid or expired reset code")

        v = Validator()
        validate_password_plaintext(v, new_password, key="newPassword")
        v.raise_if_invalid()

        user.password_hash = hash_password(new_password)
        user.reset_token = None
        await self.update(db, user)
        logger.info("Password reset completed for user %s", user.id)
        return user

    # ── Profile & Credentials (authenticated) ─────────────────────────────
    async def update_profile(
        self,
        db: AsyncSession,
        user: User,
        name: str,
        image: Optional[str],
    ) -> User:
        name = name.strip()
        v = Validator()
        v.check(name != "", "name", "must be provided")
        v.check(byte_length(name) >= 3, "name", "must be at least 3 bytes long")
        v.check(byte_length(name) <= 500, "name", "must not be more than 500 bytes long")
        v.raise_if_invalid()

        user.name = name
        if image is not None:
            user.image = image or None
        return await self.update(db, user)

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        old_password: str,
        new_password: str,
    ) -> User:
        if not verify_password(old_password, user.password_hash):
            raise InvalidCredentialsError()

        v = Validator()
        validate_password_plaintext(v, new_password, key="newPassword")
        v.raise_if_invalid()

        user.password_hash = hash_password(new_password)
        return await self.update(db, user)

    async def request_email_change(self, db: AsyncSession, user: User) -> str:
        """Store and return a fresh email-change code for the current address."""
        user.update_email_token = generate_code()
        await self.update(db, user)
        return user.update_email_token

    async def change_email(
        self,
        db: AsyncSession,
        user: User,
        code: str,
        new_email: str,
    ) -> User:
        if not codes_match(user.update_email_token, code.strip()):
            raise InvalidCredentialsError(message="invalid or expired email change code")

        new_email = normalize_email(new_email)
        v = Validator()
        validate_email(v, new_email, key="newEmail")
        v.raise_if_invalid()

        if await self._email_taken(db, new_email, exclude_id=user.id):
            raise ValidationError(errors={"newEmail": DUPLICATE_EMAIL})

        user.email = new_email
        user.update_email_token = None
        await self.update(db, user)
        logger.info("User %s changed email address", user.id)
        return user

    # ── OAuth ─────────────────────────────────────────────────────────────
    async def upsert_oauth_user(
        self,
        db: AsyncSession,
        name: Optional[str],
        email: str,
        image: Optional[str],
    ) -> User:
        """
        Find the account for a provider-verified email, or create an
        activated one without a password.
        """
        email = normalize_email(email)
        result = await db.execute(select(User).where(User.email == email))
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

        user = User(
            name=name or email.split("@", 1)[0],
            email=email,
            password_hash=None,
            activated=True,
            image=image or None,
        )
        db.add(user)
        await self.update(db, user)
        logger.info("Created user %s from OAuth login", user.id)
        return user


user_service = UserService()
