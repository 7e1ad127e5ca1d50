import os

import pytest
from django.db import connection

from config import base


@pytest.mark.skipif("CACHE_URL" in os.environ, reason="cache configured from the environment")
def test_default_cache_is_local_memory(settings):
    assert settings.CACHES["default"]["BACKEND"] == "django.core.cache.backends.locmem.LocMemCache"
    assert settings.CACHES["default"]["LOCATION"] == "dentline-default"


@pytest.mark.skipif(connection.vendor != "sqlite", reason="SQLite-only connection options")
def test_sqlite_writers_take_the_lock_at_begin(settings):
    db = settings.DATABASES["default"]
    assert db["OPTIONS"]["transaction_mode"] == "IMMEDIATE"
    assert db["OPTIONS"]["timeout"] > 0
    # threads must share one test database, so it cannot be in-memory
    assert db["TEST"]["NAME"] == base.SQLITE_OPTIONS["TEST"]["NAME"]
