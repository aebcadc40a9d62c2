import datetime as dt

import pytest

from weight_tracker import analytics
from weight_tracker.models import Entry, Profile


def series(weights, start=dt.date(2024, 1, 31)):
    """Entries most recent first, one per day counting back from ``start``."""
    return [
        Entry(profile_id="default", date=start - dt.timedelta(days=i), weight=w)
        for i, w in enumerate(weights)
    ]


def test_moving_average_constant_series():
    assert analytics.moving_average([70] * 7, window=7) == [70.0] * 7


def test_moving_average_window_shrinks_at_start():
    assert analytics.moving_average([70, 72], window=7) == [70.0, 71.0]


def test_moving_average_trailing_window():
    values = [1, 2, 3, 4, 5]
    assert analytics.moving_average(values, window=3) == pytest.approx([1, 1.5, 2, 3, 4])


def test_moving_average_empty_and_bad_window():
    assert analytics.moving_average([]) == []
    with pytest.raises(ValueError):
        analytics.moving_average([1, 2], window=0)


def test_rolling_average():
    assert analytics.rolling_average([]) is None
    assert analytics.rolling_average(series([80, 82])) == 81.0
    assert analytics.rolling_average(series([70] * 7 + [100] * 5)) == 70.0


def test_trend_needs_fourteen_entries():
    assert analytics.trend7(series([80] * 13)) is None


def test_trend_compares_latest_week_with_prior_week():
    entries = series([80] * 7 + [82] * 7)
    assert analytics.trend7(entries) == pytest.approx(-2.0)


def test_trend_uses_logged_entries_not_calendar_days():
    # Two entries a week apart still count as neighbours.
    entries = [
        Entry(profile_id="default", date=dt.date(2024, 1, 1) - dt.timedelta(weeks=i), weight=w)
        for i, w in enumerate([80] * 7 + [82] * 7)
    ]
    assert analytics.trend7(entries) == pytest.approx(-2.0)


def test_bmi():
    assert analytics.bmi(70, 175) == pytest.approx(22.86, abs=0.01)
    assert analytics.bmi(70, 0) is None
    assert analytics.bmi(70, None) is None
    assert analytics.bmi(None, 175) is None


def test_bmr_mifflin_st_jeor():
    assert analytics.bmr("M", 30, 180, 80) == 1780
    assert analytics.bmr("F", 30, 180, 80) == 1780 - 5 - 161
    assert analytics.bmr("unspecified", 30, 180, 80) == 1780 - 5 - 78
    assert analytics.bmr("M", None, 180, 80) is None


def test_tdee():
    assert analytics.tdee(1780, 1.55) == pytest.approx(2759.0)
    assert analytics.tdee(None, 1.55) is None
    assert analytics.tdee(1780, 0) is None


def test_calorie_bands():
    bands = analytics.calorie_bands(2500)
    assert bands.cut_aggressive == pytest.approx(1950)
    assert bands.cut == pytest.approx(2225)
    assert bands.maintain == 2500
    assert bands.bulk == pytest.approx(2775)
    assert bands.bulk_aggressive == pytest.approx(3050)
    assert analytics.calorie_bands(None) is None


def test_aggressive_cut_is_floored():
    assert analytics.calorie_bands(1500).cut_aggressive == 1200


def test_activity_multiplier():
    assert analytics.activity_multiplier("active") == 1.725
    assert analytics.activity_multiplier("unknown") == 1.55


def test_summarize_accepts_either_order():
    profile = Profile(name="Ana", sex="M", age=30, height_cm=180, goal_kg=75)
    entries = series([80, 81, 82])
    entries[0].waist_cm = 90.0

    newest_first = analytics.summarize(entries, profile)
    oldest_first = analytics.summarize(list(reversed(entries)), profile)

    assert newest_first == oldest_first
    assert newest_first.last_weight == 80
    assert newest_first.delta == -1
    assert newest_first.avg7 == 81
    assert newest_first.trend7 is None
    assert newest_first.to_goal == 5
    assert newest_first.last_waist_cm == 90.0
    assert newest_first.last_bodyfat_pct is None
    assert newest_first.bmr == 1780
    assert newest_first.tdee == pytest.approx(1780 * 1.55)
    assert newest_first.bands.maintain == pytest.approx(1780 * 1.55)


def test_summarize_without_entries():
    summary = analytics.summarize([], Profile(name="Ana", goal_kg=70))
    assert summary.last_weight is None
    assert summary.goal_kg == 70
    assert summary.bands is None


def test_weight_series_is_chronological():
    result = analytics.weight_series(series([74, 72, 70]))
    assert result.weights == [70, 72, 74]
    assert result.dates == sorted(result.dates)
    assert result.average == [70.0, 71.0, 72.0]
