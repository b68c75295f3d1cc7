# -*- coding: utf-8 -*-
"""
개인화 경로 추천
================
실제 지리 정보 없이 세 가지 고정 유형(archetype)의 경로를 만들고,
사용자 선호도 기준으로 점수를 매겨 정렬한다.

    0: 직통       walk -> subway(2호선) -> walk
    1: 1회 환승   walk -> subway(2호선) -> transfer -> subway(9호선) -> walk
    2: 버스+지하철 walk -> bus(간선버스) -> transfer -> subway(2호선) -> walk

Score:
    100 - 0.5·T - 0.8·max(0, C - C_max) - 1.2·max(0, W - W_max) - 5·transfers   (>= 0)

정렬: 혼잡도 기준 충족 > 도보 기준 충족 > 총 소요시간 오름차순.
정렬 결과의 첫 번째 경로에는 시간 비교 없이 "가장 빠른 경로" 태그가 붙는다.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from src.congestion import kst_now
from src.utils import clamp

BASE_TRIP_MINUTES = 45
BASE_FARE = 1500                 # 기본 요금 (원)
CO2_KG_PER_KM = 0.04             # 대중교통 km당 탄소 배출 (추정)
KM_PER_MINUTE = 0.5              # 평균 30km/h

DEFAULT_PREFERENCES: Dict[str, Any] = {
    "max_congestion": 80,
    "max_walking_time": 15,
    "max_transfers": 2,
    "prefer_speed": True,
    "avoid_stairs": False,
}

REASON_CONGESTION = "선호하는 혼잡도 수준 이내"
REASON_WALKING = "도보 시간이 적음"
REASON_TRANSFERS = "환승 횟수가 적음"
REASON_FASTEST = "가장 빠른 경로"


@dataclass
class RouteStep:
    type: str
    duration: int
    line: Optional[str] = None
    congestion: Optional[int] = None
    description: Optional[str] = None


@dataclass
class RouteCandidate:
    route_id: str
    total_time: int
    walking_time: int
    transfers: int
    avg_congestion: int
    departure_time: str
    arrival_time: str
    steps: List[RouteStep]
    recommendation_score: float = 0.0
    reasons: List[str] = field(default_factory=list)
    estimated_cost: int = BASE_FARE
    carbon_footprint: float = 0.0


def merge_preferences(preferences: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    merged = dict(DEFAULT_PREFERENCES)
    if preferences:
        merged.update({k: v for k, v in preferences.items() if v is not None})
    return merged


def recommendation_score(route: RouteCandidate, preferences: Dict[str, Any]) -> float:
    score = 100.0
    score -= route.total_time * 0.5
    score -= max(0, route.avg_congestion - preferences["max_congestion"]) * 0.8
    score -= max(0, route.walking_time - preferences["max_walking_time"]) * 1.2
    score -= route.transfers * 5
    return round(max(0.0, score), 1)


def carbon_footprint(total_time: int) -> float:
    return round(total_time * KM_PER_MINUTE * CO2_KG_PER_KM, 2)


class RouteRecommender:
    def __init__(self, rng: Optional[random.Random] = None,
                 clock: Callable[[], datetime] = kst_now):
        self.rng = rng or random.Random()
        self.clock = clock

    def recommend(self, origin: Dict[str, Any], destination: Dict[str, Any],
                  preferences: Optional[Dict[str, Any]] = None) -> List[RouteCandidate]:
        """origin/destination 좌표 검증은 호출 측(API) 책임이다."""
        prefs = merge_preferences(preferences)
        now = self.clock()

        routes = [self._build_route(i, now) for i in range(3)]
        for route in routes:
            route.recommendation_score = recommendation_score(route, prefs)

        routes.sort(key=lambda r: (
            r.avg_congestion > prefs["max_congestion"],
            r.walking_time > prefs["max_walking_time"],
            r.total_time,
        ))

        for index, route in enumerate(routes):
            route.reasons = self._reasons(route, prefs, index)
        return routes

    def _build_route(self, index: int, now: datetime) -> RouteCandidate:
        variation = index * 5
        steps = self._steps(index)
        departure = now + timedelta(minutes=5 + index * 10)
        arrival = now + timedelta(minutes=BASE_TRIP_MINUTES + variation + 5 + index * 10)
        total_time = BASE_TRIP_MINUTES + variation + self.rng.randint(0, 9)
        return RouteCandidate(
            route_id=f"route_{index + 1}",
            total_time=total_time,
            walking_time=sum(s.duration for s in steps if s.type == "walk"),
            transfers=index,
            avg_congestion=round(clamp(50 + self.rng.uniform(-20, 20), 20, 90)),
            departure_time=departure.strftime("%H:%M"),
            arrival_time=arrival.strftime("%H:%M"),
            steps=steps,
            carbon_footprint=carbon_footprint(total_time),
        )

    def _steps(self, index: int) -> List[RouteStep]:
        rng = self.rng
        steps = [RouteStep("walk", 3 + rng.randint(0, 4), description="출발지에서 지하철역까지 도보")]

        if index == 0:
            steps.append(RouteStep("subway", 35 + rng.randint(0, 9), "2호선", 50 + rng.randint(0, 29)))
        elif index == 1:
            steps += [
                RouteStep("subway", 20 + rng.randint(0, 4), "2호선", 45 + rng.randint(0, 19)),
                RouteStep("transfer", 3, description="9호선으로 환승"),
                RouteStep("subway", 15 + rng.randint(0, 4), "9호선", 60 + rng.randint(0, 24)),
            ]
        else:
            steps += [
                RouteStep("bus", 25 + rng.randint(0, 9), "간선버스", 40 + rng.randint(0, 29)),
                RouteStep("transfer", 2, description="지하철로 환승"),
                RouteStep("subway", 20 + rng.randint(0, 7), "2호선", 55 + rng.randint(0, 24)),
            ]

        steps.append(RouteStep("walk", 2 + rng.randint(0, 2), description="지하철역에서 목적지까지 도보"))
        return steps

    @staticmethod
    def _reasons(route: RouteCandidate, prefs: Dict[str, Any], index: int) -> List[str]:
        reasons = []
        if route.avg_congestion <= prefs["max_congestion"]:
            reasons.append(REASON_CONGESTION)
        if route.walking_time <= prefs["max_walking_time"]:
            reasons.append(REASON_WALKING)
        if route.transfers <= prefs["max_transfers"]:
            reasons.append(REASON_TRANSFERS)
        # TODO: 실제 total_time 최솟값 비교로 바꿀지 기획 확인 필요 (현재는 정렬 1순위 고정)
        if index == 0:
            reasons.append(REASON_FASTEST)
        return reasons


REGULAR_COMMUTER_TRIPS = 20

# 인기 경로 (집계 파이프라인 도입 전까지 고정 목록)
POPULAR_ROUTES: List[Dict[str, Any]] = [
    {
        "origin_name": "강남역",
        "destination_name": "홍대입구역",
        "usage_count": 1250,
        "avg_rating": 4.3,
        "avg_time": 48,
        "avg_congestion": 65,
        "recommended_times": ["07:30", "08:00", "18:30"],
    },
    {
        "origin_name": "잠실역",
        "destination_name": "강남역",
        "usage_count": 980,
        "avg_rating": 4.1,
        "avg_time": 35,
        "avg_congestion": 70,
        "recommended_times": ["08:15", "18:00", "18:45"],
    },
    {
        "origin_name": "건대입구역",
        "destination_name": "삼성역",
        "usage_count": 756,
        "avg_rating": 4.0,
        "avg_time": 42,
        "avg_congestion": 58,
        "recommended_times": ["07:45", "08:30", "18:15"],
    },
]


def popular_routes(limit: int = 10) -> List[Dict[str, Any]]:
    return [dict(r) for r in POPULAR_ROUTES[:limit]]


def analyze_user_patterns(patterns: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    사용자 패턴 요약.

    patterns는 빈도 내림차순이어야 한다 (첫 항목을 최다 이용 경로로 본다).
    출발 시(hour)별 빈도 합이 가장 큰 시간이 peak_departure_hour이며,
    동률이면 이른 시간이 우선한다.
    """
    if not patterns:
        return {"message": "No patterns found"}

    df = pd.DataFrame(patterns)
    total_trips = int(df["frequency"].sum())
    top = patterns[0]

    peak_hour = None
    timed = df.dropna(subset=["typical_departure_time"])
    if not timed.empty:
        hours = timed["typical_departure_time"].str.slice(0, 2).astype(int)
        peak_hour = int(timed.groupby(hours)["frequency"].sum().idxmax())

    return {
        "total_trips": total_trips,
        "unique_routes": len(patterns),
        "most_frequent_route": {
            "origin": top.get("origin_name"),
            "destination": top.get("destination_name"),
            "frequency": top["frequency"],
        },
        "peak_departure_hour": peak_hour,
        "commute_type": "regular_commuter" if total_trips > REGULAR_COMMUTER_TRIPS else "occasional_user",
    }
