# -*- coding: utf-8 -*-
import sqlite3
from datetime import timedelta

import pytest

from src.congestion import CongestionReading
from src.history import HistoryStore
from src.prediction import PredictionPoint
from tests.conftest import WEEKDAY_8AM


def _reading(level, moment, station_id="221", source="simulated"):
    return CongestionReading(station_id, level, round(level / 100 * 150), moment.isoformat(), source)


def test_record_and_fetch_with_hourly_average(tmp_path):
    store = HistoryStore(tmp_path / "history.db")
    assert store.record_reading(_reading(80, WEEKDAY_8AM))
    assert store.record_reading(_reading(60, WEEKDAY_8AM + timedelta(minutes=20)))
    assert store.record_reading(_reading(40, WEEKDAY_8AM + timedelta(hours=1)))
    store.record_reading(_reading(10, WEEKDAY_8AM, station_id="220"))

    result = store.fetch_history("221", 24, WEEKDAY_8AM + timedelta(hours=2))

    assert [r["congestion_level"] for r in result["history"]] == [40, 60, 80]
    assert result["hourly_average"] == [
        {"time": "08:00", "avg_congestion": 70, "data_points": 2},
        {"time": "09:00", "avg_congestion": 40, "data_points": 1},
    ]


def test_fetch_respects_time_window(tmp_path):
    store = HistoryStore(tmp_path / "history.db")
    store.record_reading(_reading(50, WEEKDAY_8AM - timedelta(hours=30)))
    store.record_reading(_reading(55, WEEKDAY_8AM))

    result = store.fetch_history("221", 24, WEEKDAY_8AM + timedelta(minutes=1))

    assert [r["congestion_level"] for r in result["history"]] == [55]


def test_fetch_empty(tmp_path):
    store = HistoryStore(tmp_path / "history.db")
    assert store.fetch_history("221", 24, WEEKDAY_8AM) == {"history": [], "hourly_average": []}


def test_record_predictions(tmp_path):
    db_path = tmp_path / "history.db"
    store = HistoryStore(db_path)
    points = [
        PredictionPoint((WEEKDAY_8AM + timedelta(minutes=30)).isoformat(), 90, 0.9, "none", "none"),
        PredictionPoint((WEEKDAY_8AM + timedelta(minutes=60)).isoformat(), 80, 0.85, "low", "none"),
    ]

    assert store.record_predictions("221", points, WEEKDAY_8AM)

    conn = sqlite3.connect(str(db_path))
    try:
        rows = conn.execute("SELECT created_at FROM prediction_cache").fetchall()
        assert [r[0] for r in rows] == [WEEKDAY_8AM.isoformat()] * 2
    finally:
        conn.close()


def test_write_failure_is_swallowed(tmp_path, caplog):
    """저장 실패는 로그만 남기고 예외를 올리지 않는다."""
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    store = HistoryStore(blocker / "history.db")

    assert store.record_reading(_reading(50, WEEKDAY_8AM)) is False
    assert "Error saving congestion data" in caplog.text


def test_disabled_store_skips_writes(tmp_path):
    db_path = tmp_path / "history.db"
    store = HistoryStore(db_path, enabled=False)

    assert store.record_reading(_reading(50, WEEKDAY_8AM)) is False
    assert not db_path.exists()


def test_user_pattern_frequency_and_days(tmp_path):
    store = HistoryStore(tmp_path / "history.db")
    saturday = WEEKDAY_8AM + timedelta(days=5, hours=10)

    assert store.record_user_pattern("u1", "221", "239", WEEKDAY_8AM, WEEKDAY_8AM)
    assert store.record_user_pattern("u1", "221", "239", saturday, saturday)
    assert store.record_user_pattern("u1", "216", "221", WEEKDAY_8AM, WEEKDAY_8AM)
    store.record_user_pattern("u2", "221", "239", WEEKDAY_8AM, WEEKDAY_8AM)

    patterns = store.fetch_user_patterns("u1")

    assert [(p["origin_station_id"], p["frequency"]) for p in patterns] == [("221", 2), ("216", 1)]
    top = patterns[0]
    assert top["origin_name"] == "강남역"
    assert top["destination_name"] == "홍대입구역"
    assert top["typical_departure_time"] == "08:00"
    # 월=1, 토=6 (일=0 기준)
    assert top["day_of_week"] == [1, 6]
    assert top["updated_at"] == saturday.isoformat()


def test_user_patterns_tie_broken_by_recent_update(tmp_path):
    store = HistoryStore(tmp_path / "history.db")
    later = WEEKDAY_8AM + timedelta(hours=1)
    store.record_user_pattern("u1", "221", "239", WEEKDAY_8AM, WEEKDAY_8AM)
    store.record_user_pattern("u1", "216", "221", later, later)

    patterns = store.fetch_user_patterns("u1")

    assert [p["origin_station_id"] for p in patterns] == ["216", "221"]


def test_fetch_user_patterns_unknown_user(tmp_path):
    assert HistoryStore(tmp_path / "history.db").fetch_user_patterns("nobody") == []


def test_user_pattern_failure_is_swallowed(tmp_path, caplog):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x")
    store = HistoryStore(blocker / "history.db")

    assert store.record_user_pattern("u1", "221", "239", WEEKDAY_8AM, WEEKDAY_8AM) is False
    assert "Error saving user pattern" in caplog.text


def test_record_feedback(tmp_path):
    db_path = tmp_path / "history.db"
    store = HistoryStore(db_path)

    feedback_id = store.record_feedback(
        "u1", "route_2", 4, WEEKDAY_8AM, feedback_type="positive", actual_congestion=70,
    )

    conn = sqlite3.connect(str(db_path))
    try:
        row = conn.execute(
            "SELECT id, route_id, rating, feedback_type, actual_congestion, created_at FROM route_feedback"
        ).fetchone()
    finally:
        conn.close()
    assert row == (feedback_id, "route_2", 4, "positive", 70, WEEKDAY_8AM.isoformat())


def test_record_feedback_failure_propagates(tmp_path):
    store = HistoryStore(tmp_path / "history.db")
    with pytest.raises(sqlite3.IntegrityError):
        store.record_feedback("u1", "route_1", 9, WEEKDAY_8AM)
