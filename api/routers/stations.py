# -*- coding: utf-8 -*-
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.schemas import (
    Envelope, NearbyStationItem, NearbyStations, StationDetail, StationItem, StationList,
)
from src.patterns import STATIONS, StationProfile, get_station
from src.utils import haversine

router = APIRouter()

NEARBY_LIMIT = 10


def to_station_item(station: StationProfile) -> StationItem:
    return StationItem(
        id=station.station_id,
        name=station.name,
        line_id=station.line_id,
        station_type=station.station_type,
        latitude=station.latitude,
        longitude=station.longitude,
        address=station.address,
        congestion_multiplier=station.congestion_multiplier,
    )


def require_station(station_id: Optional[str]) -> StationProfile:
    """station_id 누락은 400, 존재하지 않으면 404."""
    if not station_id:
        raise HTTPException(status_code=400, detail="station_id is required")
    station = get_station(station_id)
    if station is None:
        raise HTTPException(status_code=404, detail="Station not found")
    return station


@router.get(
    "/stations",
    response_model=Envelope[StationList],
    summary="역 목록 조회",
    description="고정 역 카탈로그를 노선(line_id), 유형(station_type)으로 필터링해 역명 순으로 반환합니다.",
)
async def list_stations(
    line_id: Optional[str] = Query(None, description="노선 ID (예: 2)"),
    station_type: Optional[str] = Query(None, description="subway | bus"),
):
    stations = [
        s for s in STATIONS
        if (not line_id or s.line_id == line_id)
        and (not station_type or s.station_type == station_type)
    ]
    stations.sort(key=lambda s: s.name)
    items = [to_station_item(s) for s in stations]
    return Envelope(data=StationList(stations=items, total=len(items)))


@router.get(
    "/stations/nearby",
    response_model=Envelope[NearbyStations],
    summary="좌표 기반 근처 역 조회",
    description="주어진 좌표에서 반경(radius, m) 안의 역을 가까운 순으로 최대 10개 반환합니다.",
)
async def nearby_stations(
    lat: Optional[float] = Query(None, description="위도 (예: 37.4979)"),
    lng: Optional[float] = Query(None, description="경도 (예: 127.0276)"),
    radius: int = Query(1000, ge=1, description="검색 반경 (m)"),
):
    if lat is None or lng is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude are required")

    nearby = []
    for station in STATIONS:
        dist = haversine(lat, lng, station.latitude, station.longitude)
        if dist <= radius:
            nearby.append((dist, station))
    nearby.sort(key=lambda x: x[0])

    items = [
        NearbyStationItem(**to_station_item(s).model_dump(), distance_m=round(d, 1))
        for d, s in nearby[:NEARBY_LIMIT]
    ]
    return Envelope(data=NearbyStations(
        stations=items,
        center={"lat": lat, "lng": lng},
        radius=radius,
    ))


@router.get(
    "/stations/{station_id}",
    response_model=Envelope[StationDetail],
    summary="역 상세 조회",
)
async def get_station_detail(station_id: str):
    station = require_station(station_id)
    return Envelope(data=StationDetail(station=to_station_item(station)))
