from datetime import datetime, timedelta, timezone

import pytest

from notemesh.organization.weight import compute_weight, days_since


@pytest.mark.parametrize(
    "link_count, days, expected",
    [
        (0, 0.0, 1.0),
        (3, 0.0, 1.6),
        (2, 4.0, 1.2),
        (0, 10.0, 0.5),
        (0, 100.0, 0.2),
        (1, 30.0, 0.2),
    ],
)
def test_compute_weight(link_count: int, days: float, expected: float) -> None:
    assert compute_weight(link_count, days) == pytest.approx(expected)


def test_weight_never_drops_below_floor() -> None:
    assert compute_weight(0, 10_000.0) == 0.2


def test_days_since_is_fractional() -> None:
    now = datetime(2024, 1, 3, 12, 0, tzinfo=timezone.utc)

    assert days_since(now - timedelta(hours=36), now) == pytest.approx(1.5)
