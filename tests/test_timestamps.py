"""Unit tests for timestamp conversions."""
import re

import pytest

from limit_modified.timestamps import from_rfc3339, gmt_from_local, now_local, to_rfc3339


@pytest.mark.unit
class TestTimestamps:
    """Tests for native <-> ISO-8601 conversions."""

    def test_to_rfc3339(self):
        assert to_rfc3339("2024-01-31 14:05:00") == "2024-01-31T14:05:00"

    def test_to_rfc3339_rejects_garbage(self):
        with pytest.raises(ValueError):
            to_rfc3339("yesterday")

    def test_from_rfc3339_naive_is_site_local(self, env):
        assert from_rfc3339("2024-01-31T14:05:00") == "2024-01-31 14:05:00"

    def test_from_rfc3339_drops_fraction(self, env):
        assert from_rfc3339("2024-01-31T14:05:00.123456") == "2024-01-31 14:05:00"

    def test_from_rfc3339_shifts_offsets_into_site_timezone(self, env, monkeypatch):
        monkeypatch.setenv("SITE_TIMEZONE", "Europe/Berlin")
        assert from_rfc3339("2024-01-31T14:05:00Z") == "2024-01-31 15:05:00"
        assert from_rfc3339("2024-01-31T14:05:00+01:00") == "2024-01-31 14:05:00"

    def test_gmt_from_local(self, env, monkeypatch):
        assert gmt_from_local("2024-07-01 12:00:00") == "2024-07-01 12:00:00"
        monkeypatch.setenv("SITE_TIMEZONE", "America/New_York")
        assert gmt_from_local("2024-07-01 12:00:00") == "2024-07-01 16:00:00"
        assert gmt_from_local("2024-01-01 12:00:00") == "2024-01-01 17:00:00"

    def test_now_local_format(self, env):
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", now_local())
