"""
Tests for the database engine manager.
"""

import pytest

from uschika.config.models import DatabaseConfig
from uschika.exceptions import ConfigurationError
from uschika.persistence.database import DatabaseManager, to_async_url


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("postgresql://u:p@db/chat", "postgresql+asyncpg://u:p@db/chat"),
        ("postgresql+asyncpg://u:p@db/chat", "postgresql+asyncpg://u:p@db/chat"),
    ],
)
def test_to_async_url(url, expected):
    assert to_async_url(url) == expected


def test_requires_url():
    with pytest.raises(ConfigurationError):
        DatabaseManager(DatabaseConfig(url=None))


@pytest.mark.asyncio
async def test_engine_is_lazy():
    manager = DatabaseManager(DatabaseConfig(url="postgresql://u:p@localhost/uschika_test"))
    assert manager.engine is None

    engine = manager.get_engine()

    assert engine.url.drivername == "postgresql+asyncpg"
    assert manager.get_session_maker() is manager.session_maker

    await manager.close()
    assert manager.engine is None
