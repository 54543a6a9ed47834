"""
Unit tests for date utilities
"""

from datetime import datetime, timedelta, timezone

import pytest

from utils.date_utils import get_utc_time, ensure_utc, to_isoformat


@pytest.mark.unit
class TestDateUtils:
    """Test date utility functions"""

    def test_get_utc_time_is_aware(self):
        now = get_utc_time()
        assert now.tzinfo is not None
        assert now.utcoffset() == timedelta(0)

    def test_ensure_utc(self):
        naive = datetime(2024, 1, 1, 12, 0)
        assert ensure_utc(naive) == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

        plus_eight = datetime(2024, 1, 1, 20, 0, tzinfo=timezone(timedelta(hours=8)))
        assert ensure_utc(plus_eight).hour == 12
        assert ensure_utc(None) is None

    def test_to_isoformat(self):
        assert to_isoformat(datetime(2024, 1, 1, 12, 0)) == "2024-01-01T12:00:00+00:00"
        assert to_isoformat(None) is None
