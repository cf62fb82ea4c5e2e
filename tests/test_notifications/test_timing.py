import datetime as dt

from kdt_pipeline.modules.notifications.timing import as_utc, compute_delay, to_delivery_zone

from tests.conftest import MSK, NOW


class TestToDeliveryZone:

    def test_reinterprets_civil_time(self):
        """Wall clock fields are kept, only the zone is replaced"""
        value = dt.datetime(2024, 1, 1, 10, 0, 30, 123456, tzinfo=dt.timezone.utc)

        result = to_delivery_zone(value, MSK)

        assert (result.year, result.month, result.day) == (2024, 1, 1)
        assert (result.hour, result.minute, result.second, result.microsecond) == (10, 0, 30, 123456)
        assert result.utcoffset() == dt.timedelta(hours=3)
        assert as_utc(result) == dt.datetime(2024, 1, 1, 7, 0, 30, 123456, tzinfo=dt.timezone.utc)

    def test_naive_time_gets_zone(self):
        result = to_delivery_zone(dt.datetime(2024, 1, 1, 10), MSK)

        assert as_utc(result) == dt.datetime(2024, 1, 1, 7, tzinfo=dt.timezone.utc)

    def test_respect_offset_keeps_instant(self):
        value = dt.datetime(2024, 1, 1, 10, tzinfo=dt.timezone.utc)

        assert to_delivery_zone(value, MSK, respect_offset=True) == value

    def test_respect_offset_still_zones_naive_time(self):
        result = to_delivery_zone(dt.datetime(2024, 1, 1, 10), MSK, respect_offset=True)

        assert result.utcoffset() == dt.timedelta(hours=3)


class TestComputeDelay:

    def test_future(self):
        assert compute_delay(NOW + dt.timedelta(minutes=5), NOW) == dt.timedelta(minutes=5)

    def test_past_is_clamped(self):
        assert compute_delay(NOW - dt.timedelta(hours=1), NOW) == dt.timedelta(0)


def test_as_utc_treats_naive_as_utc():
    assert as_utc(dt.datetime(2024, 1, 1)) == dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
