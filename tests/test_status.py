from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from services.status import derive_spot_status
from services.timeutil import format_duration, local_date, parse_timestamp, to_utc

NOW = datetime(2030, 5, 1, 9, 0)


def rent(status, start_hour, end_hour, actual_end=None):
    return SimpleNamespace(status=status, start_time=NOW.replace(hour=start_hour),
                           end_time=NOW.replace(hour=end_hour), actual_end_time=actual_end)


def test_no_rents_and_offered_is_available():
    assert derive_spot_status([], True, NOW) == 'available'


def test_no_rents_and_not_offered_is_occupied():
    assert derive_spot_status([], False, NOW) == 'occupied'


def test_started_pending_rent_occupies():
    assert derive_spot_status([rent('pending', 8, 10)], True, NOW) == 'occupied'


def test_overrunning_pending_rent_still_occupies():
    assert derive_spot_status([rent('pending', 6, 8)], True, NOW) == 'occupied'


def test_future_rent_reserves():
    assert derive_spot_status([rent('reserved', 11, 13)], True, NOW) == 'reserved'
    assert derive_spot_status([rent('pending', 11, 13)], False, NOW) == 'reserved'


def test_terminal_and_settled_rents_are_ignored():
    rents = [rent('canceled', 8, 10), rent('completed', 8, 10, actual_end=NOW)]
    assert derive_spot_status(rents, True, NOW) == 'available'


def test_to_utc_interprets_naive_values_in_local_offset():
    assert to_utc(datetime(2030, 5, 1, 8, 0), 8) == datetime(2030, 5, 1, 0, 0)


def test_to_utc_converts_aware_values():
    aware = datetime(2030, 5, 1, 8, 0, tzinfo=timezone(timedelta(hours=8)))
    assert to_utc(aware, 0) == datetime(2030, 5, 1, 0, 0)


def test_local_date_crosses_midnight():
    assert local_date(datetime(2030, 4, 30, 20, 0), 8).isoformat() == '2030-05-01'


def test_parse_timestamp_accepts_z_suffix_and_naive_text():
    assert parse_timestamp('2030-05-01T08:00:00Z', 8) == datetime(2030, 5, 1, 8, 0)
    assert parse_timestamp('2030-05-01T08:00:00', 8) == datetime(2030, 5, 1, 0, 0)


def test_format_duration():
    assert format_duration(timedelta(minutes=50)) == '50m'
    assert format_duration(timedelta(hours=2, minutes=5)) == '2h 5m'
