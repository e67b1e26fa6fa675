"""
Token blacklist for logout.

Revoked access tokens are remembered until their own expiry; after that
the signature check rejects them anyway, so entries are dropped.

Two backends share one interface:
- ``SqlTokenBlacklist`` stores rows in ``blacklisted_tokens`` and purges
  expired rows on every insert (and once at startup).
- ``RedisTokenBlacklist`` stores one key per token with a TTL equal to the
  token's remaining lifetime.
"""

from datetime import datetime
from typing import Optional
import logging

from redis import Redis
from sqlalchemy import Column, Integer, String, DateTime

from .database import Base, Database
from .mixins import utcnow

logger = logging.getLogger(__name__)


class BlacklistedToken(Base):
    __tablename__ = "blacklisted_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(2048), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<BlacklistedToken(id={self.id}, expires_at={self.expires_at})>"


class TokenBlacklist:
    """Interface shared by the blacklist backends."""

    def add(self, token: str, expires_at: datetime) -> None:
        raise NotImplementedError

    def contains(self, token: str) -> bool:
        raise NotImplementedError

    def purge_expired(self) -> int:
        return 0


class SqlTokenBlacklist(TokenBlacklist):
    def __init__(self, database: Database):
        self.database = database

    def add(self, token: str, expires_at: datetime) -> None:
        with self.database.session() as db:
            self._purge(db)
            exists = db.query(BlacklistedToken.id).filter(
                BlacklistedToken.token == token
            ).first()
            if not exists:
                db.add(BlacklistedToken(token=token, expires_at=expires_at))
            db.commit()

    def contains(self, token: str) -> bool:
        with self.database.session() as db:
            entry = (
                db.query(BlacklistedToken.id)
                .filter(
                    BlacklistedToken.token == token,
                    BlacklistedToken.expires_at > utcnow(),
                )
                .first()
            )
            return entry is not None

    def purge_expired(self) -> int:
        with self.database.session() as db:
            removed = self._purge(db)
            db.commit()
        if removed:
            logger.info(f"Purged {removed} expired blacklisted tokens")
        return removed

    @staticmethod
    def _purge(db) -> int:
        return (
            db.query(BlacklistedToken)
            .filter(BlacklistedToken.expires_at <= utcnow())
            .delete(synchronize_session=False)
        )


class RedisTokenBlacklist(TokenBlacklist):
    KEY_PREFIX = "blacklist:"

    def __init__(self, client: Redis):
        self.redis = client

    def _get_blacklist_key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    def add(self, token: str, expires_at: datetime) -> None:
        ttl = int((expires_at - utcnow()).total_seconds())
        if ttl <= 0:
            return
        self.redis.setex(self._get_blacklist_key(token), ttl, "1")

    def contains(self, token: str) -> bool:
        return self.redis.exists(self._get_blacklist_key(token)) > 0


def build_token_blacklist(
    database: Database, redis_url: Optional[str] = None
) -> TokenBlacklist:
    """Redis when a URL is configured, otherwise the database table."""
    if redis_url:
        logger.info("Using Redis token blacklist")
        return RedisTokenBlacklist(Redis.from_url(redis_url, decode_responses=True))
    return SqlTokenBlacklist(database)
