"""API-key based user store."""

from datetime import UTC, datetime
import hashlib
import secrets

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from ..models import APIKey

logger = structlog.get_logger()

KEY_PREFIX = "er_"


def hash_key(key: str) -> str:
    return hashlib.sha256(key.encode()).hexdigest()


def generate_key() -> str:
    return KEY_PREFIX + secrets.token_urlsafe(32)


class UserStore:
    """Maps presented API keys to user ids. Keys are stored hashed."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def authenticate(self, token: str) -> str | None:
        if not token:
            return None

        now = datetime.now(UTC)
        async with self._session_maker() as session:
            query = select(APIKey).where(
                APIKey.key_hash == hash_key(token),
                APIKey.is_revoked.is_(False),
                or_(APIKey.expires_at.is_(None), APIKey.expires_at > now),
            )
            api_key = (await session.execute(query)).scalar_one_or_none()
            if api_key is None:
                return None

            api_key.last_used_at = now
            await session.commit()
            return api_key.user_id

    async def issue(
        self,
        user_id: str,
        description: str = "",
        expires_at: datetime | None = None,
    ) -> str:
        """Create a key for ``user_id``. The plaintext is returned only here."""
        key = generate_key()
        async with self._session_maker() as session:
            session.add(
                APIKey(
                    user_id=user_id,
                    key_hash=hash_key(key),
                    prefix=key[:8],
                    description=description,
                    expires_at=expires_at,
                )
            )
            await session.commit()

        logger.info("api_key_issued", user_id=user_id, prefix=key[:8])
        return key

    async def revoke(self, prefix: str, user_id: str) -> bool:
        async with self._session_maker() as session:
            query = select(APIKey).where(APIKey.prefix == prefix, APIKey.user_id == user_id)
            keys = (await session.execute(query)).scalars().all()
            for api_key in keys:
                api_key.is_revoked = True
            await session.commit()
        return bool(keys)
