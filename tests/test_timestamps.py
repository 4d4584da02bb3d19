"""Tests del saneamiento de timestamps."""

import pytest

from aggregator_api.core.timestamps import (
    FUTURE_BOUND,
    STALE_THRESHOLD_SECONDS,
    sanitize_timestamp,
)

from conftest import NOW


class TestSanitizeTimestamp:

    def test_recent_value_passes_through(self):
        assert sanitize_timestamp(NOW - 5, NOW) == NOW - 5

    def test_exactly_now_passes_through(self):
        assert sanitize_timestamp(NOW, NOW) == NOW

    def test_far_future_uptime_counter_is_replaced(self):
        """millis() de un dispositivo: valor enorme → now."""
        assert sanitize_timestamp(FUTURE_BOUND + 1, NOW) == NOW
        assert sanitize_timestamp(123_456_789_000, NOW) == NOW

    def test_future_bound_itself_is_kept(self):
        # Solo valores estrictamente mayores se consideran contador de uptime
        now = FUTURE_BOUND + 10
        assert sanitize_timestamp(FUTURE_BOUND, now) == FUTURE_BOUND

    def test_older_than_one_hour_is_clamped(self):
        assert sanitize_timestamp(NOW - 7200, NOW) == NOW

    def test_stale_boundary(self):
        assert sanitize_timestamp(NOW - STALE_THRESHOLD_SECONDS, NOW) == NOW - STALE_THRESHOLD_SECONDS
        assert sanitize_timestamp(NOW - STALE_THRESHOLD_SECONDS - 1, NOW) == NOW

    def test_small_uptime_value_is_clamped_as_stale(self):
        """Un uptime pequeño (segundos desde boot) cae en la regla de antigüedad."""
        assert sanitize_timestamp(3_600, NOW) == NOW

    def test_slightly_future_value_passes_through(self):
        # Reloj del dispositivo adelantado unos segundos: se respeta
        assert sanitize_timestamp(NOW + 3, NOW) == NOW + 3

    @pytest.mark.parametrize(
        "reported",
        [None, "1760000000", "abc", True, False, float("nan"), float("inf"), 1.5e9 + 0.5, [], {}],
    )
    def test_unusable_values_return_now(self, reported):
        assert sanitize_timestamp(reported, NOW) == NOW

    def test_integral_float_is_accepted(self):
        assert sanitize_timestamp(float(NOW - 2), NOW) == NOW - 2
        assert isinstance(sanitize_timestamp(float(NOW - 2), NOW), int)
