# -*- coding: utf-8 -*-
import asyncio
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.dependencies import registry
from api.routers.stations import require_station
from api.schemas import (
    Envelope, PredictionAccuracy, PredictionItem, PredictionResult, PredictionTrends,
)
from src.prediction import MODEL_INFO

router = APIRouter()

MAX_DURATION_HOURS = 24


@router.get(
    "/prediction",
    response_model=Envelope[PredictionResult],
    summary="혼잡도 예측",
    description="현재 시각 이후 30분 간격으로 duration_hours × 2개의 예측값을 반환합니다. "
    "첫 예측은 30분 후이며, 신뢰도는 0.95에서 step마다 0.05씩 낮아져 0.6에서 멈춥니다.",
)
async def predict_congestion(
    station_id: Optional[str] = Query(None, description="역 ID"),
    duration_hours: Optional[int] = Query(3, description="예측 기간 (시간, 1~24)"),
):
    station = require_station(station_id)
    if duration_hours is None or not (1 <= duration_hours <= MAX_DURATION_HOURS):
        raise HTTPException(
            status_code=400,
            detail=f"duration_hours must be between 1 and {MAX_DURATION_HOURS}",
        )

    generator = registry.get_prediction()
    now = generator.clock()
    predictions = generator.predict(station.station_id, duration_hours, now)
    await asyncio.to_thread(
        registry.get_history().record_predictions, station.station_id, predictions, now
    )

    return Envelope(data=PredictionResult(
        station_id=station.station_id,
        station_name=station.name,
        predictions=[PredictionItem.model_validate(p, from_attributes=True) for p in predictions],
        model_accuracy=generator.model_accuracy(),
        prediction_params={
            "duration_hours": duration_hours,
            "generated_at": now.isoformat(),
        },
    ))


@router.get(
    "/prediction/trends",
    response_model=Envelope[PredictionTrends],
    summary="요일별 혼잡도 패턴",
    description="요일(0=일요일)별 24시간 혼잡도 패턴과 피크 시간을 반환합니다.",
)
async def prediction_trends(station_id: Optional[str] = Query(None, description="역 ID")):
    station = require_station(station_id)
    weekly = registry.get_prediction().weekly_trend(station.station_id)
    return Envelope(data=PredictionTrends(station_id=station.station_id, weekly_pattern=weekly))


@router.get(
    "/prediction/accuracy",
    response_model=Envelope[PredictionAccuracy],
    summary="예측 정확도 통계",
    description="예측 구간, 혼잡 등급, 요일 유형별 정확도를 반환합니다. station_id를 생략하면 전체(all) 기준입니다.",
)
async def prediction_accuracy(
    station_id: Optional[str] = Query(None, description="역 ID (생략 시 all)"),
    period: str = Query("30d", description="평가 기간 (예: 30d)"),
):
    generator = registry.get_prediction()
    return Envelope(data=PredictionAccuracy(
        station_id=station_id or "all",
        accuracy_stats=generator.accuracy_stats(),
        model_info=dict(MODEL_INFO),
        evaluation_period=period,
    ))
