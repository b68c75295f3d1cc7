# -*- coding: utf-8 -*-
"""
Congestion API Router
=====================
실시간 혼잡도, 이력, 전체 노선 개요.
"""
import asyncio
import logging
import sqlite3
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.dependencies import registry
from api.routers.stations import require_station
from api.schemas import (
    CongestionHistory, CongestionOverview, Envelope, RealtimeCongestion, VehicleItem,
)
from src.congestion import congestion_label
from src.metro_api import RealtimeSnapshot
from src.patterns import STATIONS

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/congestion/realtime",
    response_model=Envelope[RealtimeCongestion],
    summary="실시간 혼잡도 조회",
    description="역의 현재 혼잡도와 도착 예정 열차 3대(10량별 혼잡도 포함)를 반환합니다. "
    "use_real_api=true이면 서울시 실시간 도착정보 API를 먼저 조회하고, "
    "실패 시 시뮬레이션 데이터(data_source=external_fallback)로 대체합니다.",
)
async def realtime_congestion(
    station_id: Optional[str] = Query(None, description="역 ID (예: 221)"),
    use_real_api: bool = Query(False, description="실시간 API 사용 여부"),
):
    station = require_station(station_id)

    if use_real_api:
        client = registry.get_metro_client()
        snapshot = await asyncio.to_thread(client.get_realtime, station)
    else:
        generator = registry.get_congestion()
        reading = generator.generate(station.station_id)
        snapshot = RealtimeSnapshot(
            reading=reading,
            vehicles=generator.generate_vehicles(station.station_id, reading),
            line_id=station.line_id,
        )

    reading = snapshot.reading
    await asyncio.to_thread(registry.get_history().record_reading, reading)

    return Envelope(data=RealtimeCongestion(
        station_id=station.station_id,
        station_name=station.name,
        line_id=snapshot.line_id or station.line_id,
        current_congestion=reading.congestion_level,
        congestion_level=congestion_label(reading.congestion_level),
        passenger_count=reading.passenger_count,
        vehicles=[VehicleItem.model_validate(v, from_attributes=True) for v in snapshot.vehicles],
        updated_at=reading.timestamp,
        data_source=reading.data_source,
    ))


@router.get(
    "/congestion/history",
    response_model=Envelope[CongestionHistory],
    summary="혼잡도 이력 조회",
    description="최근 hours 시간 동안 저장된 혼잡도 기록(최대 100건)과 시간대별 평균을 반환합니다.",
)
async def congestion_history(
    station_id: Optional[str] = Query(None, description="역 ID"),
    hours: int = Query(24, ge=1, le=168, description="조회 기간 (시간)"),
):
    if not station_id:
        raise HTTPException(status_code=400, detail="station_id is required")

    now = registry.get_congestion().clock()
    try:
        result = await asyncio.to_thread(registry.get_history().fetch_history, station_id, hours, now)
    except sqlite3.Error as e:
        logger.error("Error fetching congestion history: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    return Envelope(data=CongestionHistory(
        station_id=station_id,
        history=result["history"],
        hourly_average=result["hourly_average"],
        query_params={"hours": hours},
    ))


@router.get(
    "/congestion/overview",
    response_model=Envelope[CongestionOverview],
    summary="전체 노선 혼잡도 개요",
)
async def congestion_overview(line_id: Optional[str] = Query(None, description="노선 ID")):
    generator = registry.get_congestion()
    stations = sorted(
        (s for s in STATIONS if not line_id or s.line_id == line_id),
        key=lambda s: s.name,
    )
    overview = generator.overview(stations)
    return Envelope(data=CongestionOverview(
        stations=overview["stations"],
        line_statistics=overview["line_statistics"],
        updated_at=generator.clock().isoformat(),
    ))
