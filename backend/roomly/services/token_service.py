"""
Roomly Backend - Session Token Service
=======================================

What:  Persists and resolves opaque session tokens.
How:   `new_token` stores only the SHA-256 digest of the plaintext;
       `get_user_for_token` hashes the presented plaintext and joins
       users ↔ tokens on (hash, scope, expiry > now).
Who:   Auth routes (issue/revoke) and the authentication dependency (resolve).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roomly.exceptions import DatabaseError
from roomly.models.token import Token
from roomly.models.user import User
from roomly.security import SCOPE_AUTHENTICATION, generate_token, hash_token

logger = logging.getLogger(__name__)


class TokenService:
    async def new_token(
        self,
        db: AsyncSession,
        user_id: int,
        ttl: timedelta,
        scope: str = SCOPE_AUTHENTICATION,
    ) -> Tuple[str, datetime]:
        """Create a token for `user_id`; returns the plaintext and its expiry."""
        generated = generate_token(ttl, scope)
        try:
            db.add(
                Token(
                    hash=generated.hash,
                    user_id=user_id,
                    expiry=generated.expiry,
                    scope=generated.scope,
                )
            )
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to store %s token for user %s: %s", scope, user_id, e)
            raise DatabaseError(context={"user_id": user_id}) from e

        logger.info("Issued %s token for user %s (expires %s)", scope, user_id, generated.expiry.isoformat())
        return generated.plaintext, generated.expiry

    async def delete_all_for_user(self, db: AsyncSession, scope: str, user_id: int) -> None:
        try:
            await db.execute(
                delete(Token).where(Token.scope == scope, Token.user_id == user_id)
            )
        except SQLAlchemyError as e:
            logger.error("Failed to delete %s tokens for user %s: %s", scope, user_id, e)
            raise DatabaseError(context={"user_id": user_id}) from e

    async def get_user_for_token(
        self,
        db: AsyncSession,
        scope: str,
        plaintext: str,
    ) -> Optional[User]:
        """Returns None when the token is unknown, expired or of another scope."""
        try:
            result = await db.execute(
                select(User)
                .join(Token, Token.user_id == User.id)
                .where(
                    Token.hash == hash_token(plaintext),
                    Token.scope == scope,
                    Token.expiry > datetime.now(timezone.utc),
                )
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Token lookup failed: %s", e)
            raise DatabaseError() from e


token_service = TokenService()
