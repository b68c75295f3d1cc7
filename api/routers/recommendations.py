import asyncio
import logging
import sqlite3
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from api.dependencies import registry
from api.schemas import (
    Envelope, FeedbackReceipt, FeedbackRequest, MessageEnvelope, PopularRoutes,
    RecommendationRequest, RecommendationResult, RouteItem, UserPatterns,
)
from src.congestion import KST
from src.patterns import nearest_station
from src.recommendation import analyze_user_patterns, merge_preferences, popular_routes

logger = logging.getLogger(__name__)

router = APIRouter()

ANONYMOUS_USER = "anonymous"
FEEDBACK_POINTS = 10


def parse_departure_time(value: Optional[str], now: datetime) -> datetime:
    """ISO 8601 출발 시각. 없으면 now, 시간대가 없으면 KST로 본다."""
    if not value:
        return now
    try:
        moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail="departure_time must be an ISO 8601 datetime")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=KST)
    return moment.astimezone(KST)


@router.post(
    "/recommendations",
    response_model=Envelope[RecommendationResult],
    summary="개인화 경로 추천",
    description="출발지/도착지 좌표와 선호도(최대 혼잡도, 최대 도보 시간, 최대 환승 횟수)를 기준으로 "
    "직통·1회 환승·버스+지하철 3가지 경로를 점수화하고 정렬해 반환합니다. "
    "익명이 아닌 사용자는 가장 가까운 출발/도착역 기준으로 이동 패턴이 저장됩니다.",
)
async def recommend_routes(req: RecommendationRequest):
    if req.origin is None or req.destination is None:
        raise HTTPException(status_code=400, detail="Origin and destination are required")

    for point in (req.origin, req.destination):
        if point.lat is None or point.lng is None:
            raise HTTPException(
                status_code=400,
                detail="Origin and destination must include lat and lng coordinates",
            )

    recommender = registry.get_recommender()
    now = recommender.clock()
    departure = parse_departure_time(req.departure_time, now)

    raw_preferences = req.preferences.model_dump(exclude_none=True) if req.preferences else {}
    preferences = merge_preferences(raw_preferences)

    routes = recommender.recommend(
        req.origin.model_dump(), req.destination.model_dump(), preferences
    )

    if req.user_id != ANONYMOUS_USER:
        origin_station = nearest_station(req.origin.lat, req.origin.lng)
        destination_station = nearest_station(req.destination.lat, req.destination.lng)
        if origin_station and destination_station:
            await asyncio.to_thread(
                registry.get_history().record_user_pattern,
                req.user_id,
                origin_station.station_id,
                destination_station.station_id,
                departure,
                now,
            )

    return Envelope(data=RecommendationResult(
        user_id=req.user_id,
        recommended_routes=[RouteItem.model_validate(r, from_attributes=True) for r in routes],
        search_params={
            "origin": req.origin.model_dump(exclude_none=True),
            "destination": req.destination.model_dump(exclude_none=True),
            "departure_time": req.departure_time or now.isoformat(),
            "preferences": preferences,
        },
        generated_at=now.isoformat(),
    ))


@router.get(
    "/recommendations/user-patterns",
    response_model=Envelope[UserPatterns],
    summary="사용자 이동 패턴 조회",
    description="자주 이용한 출발/도착역 조합(최대 10개)과 이용 빈도, 주 출발 시간 분석을 반환합니다.",
)
async def user_patterns(user_id: Optional[str] = Query(None, description="사용자 ID")):
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")

    try:
        patterns = await asyncio.to_thread(registry.get_history().fetch_user_patterns, user_id)
    except (sqlite3.Error, OSError) as e:
        logger.error("Error fetching user patterns: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    return Envelope(data=UserPatterns(
        user_id=user_id,
        patterns=patterns,
        analysis=analyze_user_patterns(patterns),
    ))


@router.post(
    "/recommendations/feedback",
    response_model=MessageEnvelope[FeedbackReceipt],
    summary="추천 피드백 제출",
    description="추천 경로에 대한 평점(1~5)과 실제 혼잡도/소요 시간을 저장합니다.",
)
async def submit_feedback(req: FeedbackRequest):
    if not req.route_id or req.rating is None:
        raise HTTPException(status_code=400, detail="route_id and rating are required")

    now = registry.get_recommender().clock()
    try:
        feedback_id = await asyncio.to_thread(
            registry.get_history().record_feedback,
            req.user_id or ANONYMOUS_USER,
            req.route_id,
            req.rating,
            now,
            feedback_type=req.feedback_type,
            comments=req.comments,
            actual_congestion=req.actual_congestion,
            actual_time=req.actual_time,
        )
    except (sqlite3.Error, OSError) as e:
        logger.error("Error saving feedback: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Internal server error")

    return MessageEnvelope(
        message="Feedback received successfully",
        data=FeedbackReceipt(feedback_id=feedback_id, thank_you_points=FEEDBACK_POINTS),
    )


@router.get(
    "/recommendations/popular-routes",
    response_model=Envelope[PopularRoutes],
    summary="인기 경로 조회",
)
async def get_popular_routes(
    time_period: str = Query("7d", description="집계 기간 (예: 7d)"),
    limit: int = Query(10, ge=1, le=50, description="최대 개수"),
):
    now = registry.get_recommender().clock()
    return Envelope(data=PopularRoutes(
        popular_routes=popular_routes(limit),
        analysis_period=time_period,
        updated_at=now.isoformat(),
    ))
