# -*- coding: utf-8 -*-
"""
실시간 혼잡도 시뮬레이터
========================
패턴 테이블과 역 가중치, 무작위 변동으로 역 단위 혼잡도를 만들고,
이를 열차 3대 × 10량 단위 혼잡도로 확장한다.

    level(s, t) = clamp( min(100, P[daytype(t)][hour(t)] × m(s)) + U(-15, 15), 0, 100 )
    passengers  = round(level / 100 × 150)

열차 혼잡도는 역 혼잡도 ± 10, 각 칸은 열차 혼잡도 ± 20 범위에서 독립적으로 흔들며
칸 평균을 열차 값에 다시 맞추지 않는다 (칸별 불균등 탑승).

Clock과 random source는 생성자에서 주입한다. 같은 시각과 같은 seed면 같은 결과.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from src.patterns import StationProfile, adjusted_level
from src.utils import clamp

KST = timezone(timedelta(hours=9))

MAX_PASSENGERS = 150      # 100% 혼잡 시 칸당 승객 수
TRAINS_PER_STATION = 3
CARS_PER_TRAIN = 10
STATION_JITTER = 15
TRAIN_JITTER = 10
CAR_JITTER = 20

DATA_SOURCE_SIMULATED = "simulated"
DATA_SOURCE_LIVE = "external_live"
DATA_SOURCE_FALLBACK = "external_fallback"


def kst_now() -> datetime:
    return datetime.now(KST)


@dataclass
class CongestionReading:
    station_id: str
    congestion_level: int
    passenger_count: int
    timestamp: str
    data_source: str = DATA_SOURCE_SIMULATED


@dataclass
class VehicleArrival:
    vehicle_id: str
    congestion: int
    arrival_time: str
    car_positions: List[int] = field(default_factory=list)
    direction: Optional[str] = None
    destination: Optional[str] = None
    train_type: Optional[str] = None


def passenger_count(level: float) -> int:
    return round(level / 100 * MAX_PASSENGERS)


def congestion_label(level: int) -> str:
    """혼잡도 수치를 low / medium / heavy 등급으로 변환한다."""
    if level <= 30:
        return "low"
    if level <= 70:
        return "medium"
    return "heavy"


def jitter_cars(rng: random.Random, congestion: int) -> List[int]:
    """열차 혼잡도를 기준으로 10량 각각의 혼잡도를 만든다."""
    return [
        round(clamp(congestion + rng.uniform(-CAR_JITTER, CAR_JITTER)))
        for _ in range(CARS_PER_TRAIN)
    ]


class CongestionGenerator:
    """역/열차/칸 단위 혼잡도 시뮬레이터"""

    def __init__(self, rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = kst_now):
        self.rng = rng or random.Random()
        self.clock = clock

    def generate(self, station_id: str, current_time: Optional[datetime] = None) -> CongestionReading:
        moment = current_time or self.clock()
        adjusted = adjusted_level(station_id, moment)
        level = round(clamp(adjusted + self.rng.uniform(-STATION_JITTER, STATION_JITTER)))
        return CongestionReading(
            station_id=station_id,
            congestion_level=level,
            passenger_count=passenger_count(level),
            timestamp=moment.isoformat(),
        )

    def generate_vehicles(self, station_id: str, base_reading: CongestionReading) -> List[VehicleArrival]:
        vehicles = []
        for i in range(TRAINS_PER_STATION):
            congestion = round(clamp(
                base_reading.congestion_level + self.rng.uniform(-TRAIN_JITTER, TRAIN_JITTER)
            ))
            vehicles.append(VehicleArrival(
                vehicle_id=f"{station_id}_train_{i + 1}",
                congestion=congestion,
                arrival_time=f"{(i + 1) * 2}분 후",
                car_positions=jitter_cars(self.rng, congestion),
            ))
        return vehicles

    def overview(self, stations: Iterable[StationProfile]) -> Dict[str, list]:
        """
        전체 역 현재 혼잡도와 노선별 통계.

        Returns:
            {"stations": [...], "line_statistics": [...]}
        """
        now = self.clock()
        rows = []
        for station in stations:
            reading = self.generate(station.station_id, now)
            rows.append({
                "station_id": station.station_id,
                "station_name": station.name,
                "line_id": station.line_id,
                "current_congestion": reading.congestion_level,
                "congestion_level": congestion_label(reading.congestion_level),
                "updated_at": reading.timestamp,
            })

        if not rows:
            return {"stations": [], "line_statistics": []}

        df = pd.DataFrame(rows)
        stats = (
            df.groupby("line_id")["current_congestion"]
            .agg(station_count="count", avg_congestion="mean",
                 max_congestion="max", min_congestion="min")
            .reset_index()
        )
        line_statistics = [
            {
                "line_id": str(r.line_id),
                "station_count": int(r.station_count),
                "avg_congestion": int(round(r.avg_congestion)),
                "max_congestion": int(r.max_congestion),
                "min_congestion": int(r.min_congestion),
            }
            for r in stats.itertuples(index=False)
        ]
        return {"stations": rows, "line_statistics": line_statistics}
