# -*- coding: utf-8 -*-
"""
혼잡도 패턴 테이블 및 역 카탈로그
==================================
- HOURLY_PATTERNS: 평일/주말 시간대별 기본 혼잡도 (0-100)
- STATIONS: 역별 고정 프로필 (혼잡도 가중치 포함)

모든 값은 설계 상수이며 프로세스 시작 시 한 번 로드된 뒤 변경되지 않는다.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from src.utils import haversine

DEFAULT_BASE_LEVEL = 30
DEFAULT_MULTIPLIER = 0.85

HOURLY_PATTERNS: Dict[str, Dict[int, int]] = {
    # 평일: 출근(8시), 퇴근(18시) 피크
    "weekday": {
        0: 15, 1: 10, 2: 8, 3: 5, 4: 8, 5: 12,
        6: 25, 7: 65, 8: 90, 9: 75, 10: 45, 11: 50,
        12: 60, 13: 55, 14: 50, 15: 55, 16: 65, 17: 85,
        18: 95, 19: 80, 20: 65, 21: 55, 22: 40, 23: 25,
    },
    # 주말: 오후(14시) 단일 피크
    "weekend": {
        0: 12, 1: 8, 2: 5, 3: 3, 4: 5, 5: 8,
        6: 15, 7: 20, 8: 30, 9: 40, 10: 55, 11: 65,
        12: 70, 13: 75, 14: 80, 15: 75, 16: 70, 17: 65,
        18: 60, 19: 55, 20: 50, 21: 45, 22: 35, 23: 20,
    },
}


@dataclass(frozen=True)
class StationProfile:
    station_id: str
    name: str
    line_id: str
    congestion_multiplier: float = DEFAULT_MULTIPLIER
    station_type: str = "subway"
    latitude: float = 0.0
    longitude: float = 0.0
    address: str = ""
    tags: FrozenSet[str] = field(default_factory=frozenset)


STATIONS: List[StationProfile] = [
    StationProfile("221", "강남역", "2", 1.3, "subway", 37.4979, 127.0276,
                   "서울특별시 강남구 강남대로 지하396",
                   frozenset({"business_district", "transfer"})),
    StationProfile("220", "역삼역", "2", 1.1, "subway", 37.5000, 127.0364,
                   "서울특별시 강남구 역삼동", frozenset({"business_district"})),
    StationProfile("219", "선릉역", "2", 1.0, "subway", 37.5045, 127.0493,
                   "서울특별시 강남구 선릉로", frozenset({"business_district"})),
    StationProfile("218", "삼성역", "2", 1.05, "subway", 37.5081, 127.0634,
                   "서울특별시 강남구 삼성동", frozenset({"business_district"})),
    StationProfile("101", "서울역", "1", 1.25, "subway", 37.5546, 126.9706,
                   "서울특별시 중구 세종대로", frozenset({"main_station", "transfer"})),
    StationProfile("239", "홍대입구역", "2", 1.2, "subway", 37.5571, 126.9245,
                   "서울특별시 마포구 양화로", frozenset({"entertainment_district"})),
    StationProfile("212", "건대입구역", "2", 1.1, "subway", 37.5401, 127.0695,
                   "서울특별시 광진구 아차산로", frozenset({"university_area"})),
    StationProfile("216", "잠실역", "2", 1.15, "subway", 37.5133, 127.1000,
                   "서울특별시 송파구 올림픽로", frozenset({"shopping_area"})),
    StationProfile("224", "서초역", "2", 0.9, "subway", 37.4916, 127.0078,
                   "서울특별시 서초구 서초대로", frozenset({"residential"})),
]

STATIONS_BY_ID: Dict[str, StationProfile] = {s.station_id: s for s in STATIONS}


def get_station(station_id: str) -> Optional[StationProfile]:
    return STATIONS_BY_ID.get(station_id)


def station_multiplier(station_id: str) -> float:
    """역별 혼잡도 가중치. 목록에 없는 역은 주거지역 기본값(0.85)."""
    station = STATIONS_BY_ID.get(station_id)
    return station.congestion_multiplier if station else DEFAULT_MULTIPLIER


def is_weekend(moment: datetime) -> bool:
    return moment.weekday() >= 5  # 토(5), 일(6)


def base_level(moment: datetime) -> int:
    """시각의 요일 유형과 시(hour)로 기본 혼잡도를 조회한다."""
    pattern = HOURLY_PATTERNS["weekend" if is_weekend(moment) else "weekday"]
    return pattern.get(moment.hour, DEFAULT_BASE_LEVEL)


def adjusted_level(station_id: str, moment: datetime) -> float:
    """기본 혼잡도 × 역 가중치 (상한 100)."""
    return min(100.0, base_level(moment) * station_multiplier(station_id))


def nearest_station(lat: float, lng: float) -> Optional[StationProfile]:
    """좌표에서 가장 가까운 역 (반경 제한 없음)."""
    if not STATIONS:
        return None
    return min(STATIONS, key=lambda s: haversine(lat, lng, s.latitude, s.longitude))
