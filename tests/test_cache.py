"""Tests for the MusicBrainz response cache"""

import pytest

from ytplaylist.core.cache import SECONDS_PER_DAY, ResponseCache
from ytplaylist.core.exceptions import CacheError


class TestResponseCache:
    """Test storage and expiry"""

    def test_miss(self, temp_dir):
        cache = ResponseCache(temp_dir / "cache.db")
        assert cache.get("https://example.org/a") is None
        cache.close()

    def test_put_and_get(self, temp_dir):
        cache = ResponseCache(temp_dir / "cache.db")
        cache.put("https://example.org/a", b"{}", "application/json", now=1000.0)

        cached = cache.get("https://example.org/a", now=1001.0)
        assert cached.body == b"{}"
        assert cached.content_type == "application/json"
        assert cached.fetched_at == 1000.0
        cache.close()

    def test_put_replaces(self, temp_dir):
        cache = ResponseCache(temp_dir / "cache.db")
        cache.put("https://example.org/a", b"old", now=1000.0)
        cache.put("https://example.org/a", b"new", now=1000.0)
        assert cache.get("https://example.org/a", now=1000.0).body == b"new"
        cache.close()

    def test_expired_entry_is_a_miss(self, temp_dir):
        cache = ResponseCache(temp_dir / "cache.db", ttl_days=30)
        cache.put("https://example.org/a", b"{}", now=0.0)

        assert cache.get("https://example.org/a", now=29 * SECONDS_PER_DAY) is not None
        assert cache.get("https://example.org/a", now=31 * SECONDS_PER_DAY) is None
        cache.close()

    def test_purge_expired(self, temp_dir):
        cache = ResponseCache(temp_dir / "cache.db", ttl_days=1)
        cache.put("https://example.org/old", b"1", now=0.0)
        cache.put("https://example.org/new", b"2", now=2 * SECONDS_PER_DAY)

        assert cache.purge_expired(now=2 * SECONDS_PER_DAY) == 1
        assert cache.get("https://example.org/new", now=2 * SECONDS_PER_DAY) is not None
        cache.close()

    def test_persists_across_instances(self, temp_dir):
        path = temp_dir / "nested" / "cache.db"
        cache = ResponseCache(path)
        cache.put("https://example.org/a", b"data")
        cache.close()

        reopened = ResponseCache(path)
        assert reopened.get("https://example.org/a").body == b"data"
        reopened.close()

    def test_unusable_path(self, temp_dir):
        blocker = temp_dir / "file"
        blocker.write_text("not a directory")

        with pytest.raises(CacheError):
            ResponseCache(blocker / "cache.db")
