# pyright: standard

import time
from datetime import timedelta

from convstore.deadline import Deadline


def test_after_accepts_seconds_and_timedelta() -> None:
    a = Deadline.after(1.0)
    b = Deadline.after(timedelta(seconds=1))

    assert abs(a.expires_at - b.expires_at) < 0.05
    assert 0.9 < a.remaining() <= 1.0
    assert not a.expired


def test_expired_deadline_has_no_time_left() -> None:
    d = Deadline.after(-0.5)

    assert d.expired
    assert d.remaining() == 0.0


def test_earliest() -> None:
    soon = Deadline(expires_at=time.monotonic() + 1)
    later = Deadline(expires_at=time.monotonic() + 10)

    assert soon.earliest(later) is soon
    assert later.earliest(soon) is soon
    assert later.earliest(None) is later
