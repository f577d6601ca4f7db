from datetime import datetime, timezone

import pytest

from story_analytics.analytics.projector import Projector
from story_analytics.domain.exceptions import InvalidParameterError


def test_change_percent_rounds():
    assert Projector.change_percent(127.45, 112.80) == 13


def test_change_percent_negative():
    assert Projector.change_percent(50, 100) == -50


def test_change_percent_is_zero_when_previous_is_zero():
    assert Projector.change_percent(50, 0) == 0
    assert Projector.change_percent(0, 0) == 0


def test_daily_average_and_projection():
    projector = Projector()
    average = projector.daily_average(127.45, 5)
    assert average == pytest.approx(25.49)
    assert projector.project_month_end(average, 28) == pytest.approx(713.72)


def test_daily_average_requires_elapsed_days():
    with pytest.raises(InvalidParameterError):
        Projector.daily_average(10.0, 0)


@pytest.mark.parametrize(
    "year, month, expected",
    [(2026, 2, 28), (2024, 2, 29), (2026, 4, 30), (2026, 12, 31)],
)
def test_days_in_month(year, month, expected):
    assert Projector.days_in_month(year, month) == expected


def test_previous_month_window_rolls_back_a_year():
    start, end = Projector().previous_month_window(
        datetime(2026, 1, 10, 8, tzinfo=timezone.utc)
    )
    assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)


def test_current_month_window_rolls_forward_a_year():
    start, end = Projector().current_month_window(
        datetime(2025, 12, 31, 23, tzinfo=timezone.utc)
    )
    assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
    assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)
