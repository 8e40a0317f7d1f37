from datetime import datetime, timedelta

import pytest

from kamleen.core.hold_window import BOOKING_HOLD, BOOKING_HOLD_MS, hold_deadline, hold_expired


@pytest.mark.unit
class TestHoldWindow:
    def test_window_is_twenty_minutes(self):
        assert BOOKING_HOLD_MS == 1_200_000
        assert BOOKING_HOLD == timedelta(minutes=20)

    def test_deadline_is_anchored_to_creation(self):
        created = datetime(2026, 3, 1, 10, 0, 0)
        assert hold_deadline(created) == datetime(2026, 3, 1, 10, 20, 0)

    def test_unset_deadline_never_expires(self):
        assert hold_expired(None) is False

    @pytest.mark.parametrize(
        "offset,expected",
        [
            (timedelta(minutes=-1), True),
            (timedelta(0), True),
            (timedelta(seconds=1), False),
        ],
    )
    def test_expiry_is_inclusive_of_the_deadline(self, offset, expected):
        now = datetime(2026, 3, 1, 10, 20, 0)
        assert hold_expired(now + offset, now=now) is expected
