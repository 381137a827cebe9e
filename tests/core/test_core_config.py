"""核心配置与时间戳编码测试"""

from datetime import UTC, datetime, timedelta, timezone

from hotelops.core.config import get_db_path
from hotelops.core.store.codec import to_db_ts


class TestDbPath:
    def test_explicit_path(self, monkeypatch):
        monkeypatch.setenv("HOTELOPS_DB_PATH", "/tmp/x/hotel.db")
        assert get_db_path() == "/tmp/x/hotel.db"

    def test_data_dir_fallback(self, monkeypatch):
        monkeypatch.delenv("HOTELOPS_DB_PATH", raising=False)
        monkeypatch.setenv("HOTELOPS_DATA_DIR", "/srv/hotelops")
        assert get_db_path() == "/srv/hotelops/sqlite/hotelops.db"


class TestTimestampEncoding:
    def test_fixed_width_utc(self):
        value = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)
        assert to_db_ts(value) == "2025-01-01T09:00:00.000000+00:00"

    def test_other_offsets_normalized(self):
        """非 UTC 时区先换算成 UTC，字符串比较仍按时间先后"""
        shanghai = timezone(timedelta(hours=8))
        later = datetime(2025, 1, 1, 17, 30, tzinfo=shanghai)
        earlier = datetime(2025, 1, 1, 9, 0, tzinfo=UTC)
        assert to_db_ts(later) == "2025-01-01T09:30:00.000000+00:00"
        assert to_db_ts(earlier) < to_db_ts(later)

    def test_none(self):
        assert to_db_ts(None) is None
