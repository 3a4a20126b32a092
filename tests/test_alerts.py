from datetime import date, timedelta

from libs.py.alerts import compute_stats, detect_alert_ranges
from libs.py.series import AlertRange, Series
from tests.fakes import obs, series


def test_consecutive_alert_days_collapse_to_one_range():
    s = series(
        "X",
        obs("2024-01-01", 1, "alert"),
        obs("2024-01-02", 2, "alert"),
        obs("2024-01-03", 3, "alert"),
        obs("2024-01-04", 4, "alert"),
        obs("2024-01-05", 5, "normal"),
    )
    assert detect_alert_ranges(s) == [AlertRange(start=date(2024, 1, 1), end=date(2024, 1, 4))]


def test_single_normal_day_splits_ranges():
    s = series("X", obs("2024-01-01", 1, "alert"), obs("2024-01-02", 1, "normal"), obs("2024-01-03", 1, "alert"))
    assert detect_alert_ranges(s) == [
        AlertRange(start=date(2024, 1, 1), end=date(2024, 1, 1)),
        AlertRange(start=date(2024, 1, 3), end=date(2024, 1, 3)),
    ]


def test_calendar_gap_splits_range_even_without_normal_point():
    # Friday alert, Monday alert: the weekend gap breaks the run
    s = series("X", obs("2024-01-05", 1, "alert"), obs("2024-01-08", 1, "alert"), obs("2024-01-09", 1, "alert"))
    assert detect_alert_ranges(s) == [
        AlertRange(start=date(2024, 1, 5), end=date(2024, 1, 5)),
        AlertRange(start=date(2024, 1, 8), end=date(2024, 1, 9)),
    ]


def test_open_range_is_closed_at_end_and_absent_status_closes_range():
    s = series(
        "X",
        obs("2024-01-01", 1, "alert"),
        obs("2024-01-02", 1, None),
        obs("2024-01-03", 1, "alert"),
        obs("2024-01-04", 1, "alert"),
    )
    assert detect_alert_ranges(s) == [
        AlertRange(start=date(2024, 1, 1), end=date(2024, 1, 1)),
        AlertRange(start=date(2024, 1, 3), end=date(2024, 1, 4)),
    ]


def test_no_alerts_no_ranges():
    assert detect_alert_ranges(series("X", obs("2024-01-01", 1), obs("2024-01-02", 1))) == []
    assert detect_alert_ranges(Series.empty("X")) == []


def test_stats_end_to_end_example():
    s = series("X", obs("2024-01-01", 10, "normal"), obs("2024-01-02", 12, "alert"), obs("2024-01-03", 11, "alert"))
    st = compute_stats(s)
    assert st.total_days == 3
    assert st.alert_days == 2
    assert st.alert_rate == 66.7
    assert st.latest_value == 11
    assert st.latest_status == "alert"
    assert detect_alert_ranges(s) == [AlertRange(start=date(2024, 1, 2), end=date(2024, 1, 3))]


def test_stats_empty_series():
    st = compute_stats(Series.empty("X"))
    assert (st.total_days, st.alert_days, st.alert_rate, st.latest_value, st.latest_status) == (0, 0, 0.0, 0.0, None)


def test_stats_latest_taken_from_last_date_not_input_order():
    s = series("X", obs("2024-01-03", 3, "normal"), obs("2024-01-01", 1, "alert"))
    st = compute_stats(s)
    assert st.latest_value == 3
    assert st.latest_status == "normal"


def test_stats_bounds_and_idempotence():
    s = series("X", *[obs(f"2024-01-{d:02d}", d, "alert" if d % 3 == 0 else "normal") for d in range(1, 31)])
    first = compute_stats(s)
    assert 0 <= first.alert_days <= first.total_days
    assert 0 <= first.alert_rate <= 100
    assert first.alert_rate == 33.3
    assert compute_stats(s) == first


def test_alert_rate_rounds_exact_ties_up():
    # 1 of 80 is exactly 1.25%
    start = date(2024, 1, 1)
    s = Series(
        indicator_id="X",
        points=tuple(obs(str(start + timedelta(days=i)), 1, "alert" if i == 0 else "normal") for i in range(80)),
    )
    assert compute_stats(s).alert_rate == 1.3


def test_null_value_rows_still_count():
    s = series("X", obs("2024-01-01", 1, "normal"), obs("2024-01-02", None, "alert"))
    st = compute_stats(s)
    assert st.total_days == 2
    assert st.alert_days == 1
    assert st.latest_value == 0.0
    assert st.latest_status == "alert"


def test_ranges_from_comparison_rows():
    from libs.py.alignment import align_series

    spread = series("S", obs("2024-01-02", 1, "alert"), obs("2024-01-03", 1, "alert"), obs("2024-01-04", 1, "alert"))
    base = series("B", obs("2024-01-02", 10), obs("2024-01-04", 10))
    main = series("M", obs("2024-01-02", 11), obs("2024-01-03", 11), obs("2024-01-04", 11))
    rows = align_series(base, main, status_source=spread)
    assert detect_alert_ranges(spread) == [AlertRange(start=date(2024, 1, 2), end=date(2024, 1, 4))]
    assert detect_alert_ranges(rows) == [
        AlertRange(start=date(2024, 1, 2), end=date(2024, 1, 2)),
        AlertRange(start=date(2024, 1, 4), end=date(2024, 1, 4)),
    ]
