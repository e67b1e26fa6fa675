"""
Tests for the token blacklist backends.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from core.database import Database
from core.mixins import utcnow
from core.token_blacklist import (
    BlacklistedToken,
    RedisTokenBlacklist,
    SqlTokenBlacklist,
    build_token_blacklist,
)


@pytest.fixture
def database():
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def blacklist(database):
    return SqlTokenBlacklist(database)


class TestSqlTokenBlacklist:
    def test_added_token_is_contained(self, blacklist):
        blacklist.add("token-a", utcnow() + timedelta(hours=1))

        assert blacklist.contains("token-a")
        assert not blacklist.contains("token-b")

    def test_expired_entry_is_not_contained(self, blacklist):
        blacklist.add("token-a", utcnow() - timedelta(seconds=1))

        assert not blacklist.contains("token-a")

    def test_adding_twice_keeps_one_row(self, blacklist, database):
        expires_at = utcnow() + timedelta(hours=1)
        blacklist.add("token-a", expires_at)
        blacklist.add("token-a", expires_at)

        with database.session() as db:
            assert db.query(BlacklistedToken).count() == 1

    def test_add_purges_expired_entries(self, blacklist, database):
        blacklist.add("old", utcnow() - timedelta(minutes=1))
        blacklist.add("new", utcnow() + timedelta(hours=1))

        with database.session() as db:
            tokens = [row.token for row in db.query(BlacklistedToken).all()]
        assert tokens == ["new"]

    def test_purge_expired(self, blacklist, database):
        with database.session() as db:
            db.add(BlacklistedToken(token="old", expires_at=utcnow() - timedelta(minutes=1)))
            db.add(BlacklistedToken(token="live", expires_at=utcnow() + timedelta(minutes=1)))
            db.commit()

        assert blacklist.purge_expired() == 1
        assert blacklist.contains("live")


class TestRedisTokenBlacklist:
    def test_add_sets_key_with_remaining_lifetime(self):
        client = MagicMock()
        blacklist = RedisTokenBlacklist(client)

        blacklist.add("token-a", utcnow() + timedelta(hours=1))

        key, ttl, value = client.setex.call_args[0]
        assert key == "blacklist:token-a"
        assert 3590 <= ttl <= 3600
        assert value == "1"

    def test_expired_token_is_not_stored(self):
        client = MagicMock()

        RedisTokenBlacklist(client).add("token-a", utcnow() - timedelta(seconds=5))

        client.setex.assert_not_called()

    def test_contains_checks_key(self):
        client = MagicMock()
        client.exists.return_value = 1

        assert RedisTokenBlacklist(client).contains("token-a")
        client.exists.assert_called_once_with("blacklist:token-a")


def test_build_uses_database_without_redis_url(database):
    assert isinstance(build_token_blacklist(database), SqlTokenBlacklist)


def test_build_uses_redis_with_url(database):
    blacklist = build_token_blacklist(database, "redis://localhost:6379/0")

    assert isinstance(blacklist, RedisTokenBlacklist)
