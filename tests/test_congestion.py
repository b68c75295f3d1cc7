# -*- coding: utf-8 -*-
"""실시간 혼잡도 / 열차·칸 시뮬레이터 테스트"""
import random
from datetime import timedelta

import pytest

from src.congestion import (
    CongestionGenerator, CongestionReading, congestion_label, passenger_count,
)
from src.patterns import STATIONS
from tests.conftest import WEEKDAY_8AM, WEEKEND_2PM, FixedRandom, ScriptedRandom


def test_gangnam_weekday_rush_hour_saturates():
    """강남(221, ×1.3) 평일 8시: 90 × 1.3 = 117 -> 상한 100"""
    generator = CongestionGenerator(rng=FixedRandom())
    reading = generator.generate("221", WEEKDAY_8AM)

    assert reading.congestion_level == 100
    assert reading.passenger_count == 150
    assert reading.data_source == "simulated"
    assert reading.timestamp == WEEKDAY_8AM.isoformat()


def test_unknown_station_uses_default_multiplier():
    """목록에 없는 역(999)은 0.85 적용: 주말 14시 80 × 0.85 = 68"""
    generator = CongestionGenerator(rng=FixedRandom())
    reading = generator.generate("999", WEEKEND_2PM)

    assert reading.congestion_level == 68
    assert reading.passenger_count == round(68 / 100 * 150)


def test_jitter_is_clamped_to_range():
    """변동값이 범위를 넘겨도 0~100으로 잘린다."""
    low = CongestionGenerator(rng=ScriptedRandom([-15]))
    reading = low.generate("999", WEEKDAY_8AM.replace(hour=3))  # 5 × 0.85 - 15 < 0
    assert reading.congestion_level == 0

    high = CongestionGenerator(rng=ScriptedRandom([15]))
    assert high.generate("221", WEEKDAY_8AM).congestion_level == 100


def test_all_stations_all_hours_within_bounds():
    generator = CongestionGenerator(rng=random.Random(7))
    station_ids = [s.station_id for s in STATIONS] + ["999"]
    for day in range(7):
        for hour in range(24):
            moment = WEEKDAY_8AM.replace(hour=hour) + timedelta(days=day)
            for station_id in station_ids:
                reading = generator.generate(station_id, moment)
                assert 0 <= reading.congestion_level <= 100
                assert reading.passenger_count == round(reading.congestion_level / 100 * 150)


def test_same_seed_same_reading():
    """clock과 seed가 같으면 결과도 같다."""
    first = CongestionGenerator(rng=random.Random(42)).generate("221", WEEKEND_2PM)
    second = CongestionGenerator(rng=random.Random(42)).generate("221", WEEKEND_2PM)
    assert first.congestion_level == second.congestion_level


def test_injected_clock_used_when_time_omitted(weekday_clock):
    generator = CongestionGenerator(rng=FixedRandom(), clock=weekday_clock)
    assert generator.generate("221").timestamp == WEEKDAY_8AM.isoformat()


def test_generate_vehicles_shape_and_countdown():
    generator = CongestionGenerator(rng=random.Random(3))
    base = generator.generate("220", WEEKDAY_8AM)
    vehicles = generator.generate_vehicles("220", base)

    assert len(vehicles) == 3
    assert [v.arrival_time for v in vehicles] == ["2분 후", "4분 후", "6분 후"]
    assert [v.vehicle_id for v in vehicles] == ["220_train_1", "220_train_2", "220_train_3"]
    for v in vehicles:
        assert 0 <= v.congestion <= 100
        assert abs(v.congestion - base.congestion_level) <= 10
        assert len(v.car_positions) == 10
        assert all(0 <= c <= 100 for c in v.car_positions)


def test_car_values_may_diverge_up_to_twenty_points():
    """칸 혼잡도는 열차 값 ± 20 범위에서 독립적으로 변하며 평균을 다시 맞추지 않는다."""
    base = CongestionReading("219", 50, passenger_count(50), WEEKDAY_8AM.isoformat())
    uniforms = [0] + [20, -20] * 5 + [0] * 22
    generator = CongestionGenerator(rng=ScriptedRandom(uniforms))

    first = generator.generate_vehicles("219", base)[0]

    assert first.congestion == 50
    assert first.car_positions == [70, 30] * 5


def test_car_values_clamped_independently():
    base = CongestionReading("221", 95, passenger_count(95), WEEKDAY_8AM.isoformat())
    generator = CongestionGenerator(rng=ScriptedRandom([10] + [20] * 10 + [0] * 22))

    first = generator.generate_vehicles("221", base)[0]

    assert first.congestion == 100
    assert first.car_positions == [100] * 10


@pytest.mark.parametrize("level,label", [(0, "low"), (30, "low"), (31, "medium"), (70, "medium"), (71, "heavy")])
def test_congestion_label_thresholds(level, label):
    assert congestion_label(level) == label


def test_overview_line_statistics(weekday_clock):
    generator = CongestionGenerator(rng=FixedRandom(), clock=weekday_clock)
    result = generator.overview(STATIONS)

    assert len(result["stations"]) == len(STATIONS)
    by_line = {s["line_id"]: s for s in result["line_statistics"]}
    assert set(by_line) == {"1", "2"}
    assert by_line["1"]["station_count"] == 1
    assert by_line["1"]["max_congestion"] == 100      # 서울역 90 × 1.25
    line2 = by_line["2"]
    assert line2["min_congestion"] <= line2["avg_congestion"] <= line2["max_congestion"]


def test_overview_empty():
    assert CongestionGenerator().overview([]) == {"stations": [], "line_statistics": []}
