from typing import Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

IMPACT = Literal["none", "low", "medium", "high"]
DATA_SOURCE = Literal["simulated", "external_live", "external_fallback"]


class Envelope(BaseModel, Generic[T]):
    status: Literal["success"] = "success"
    data: T


class MessageEnvelope(Envelope[T], Generic[T]):
    message: str


class ErrorResponse(BaseModel):
    status: Literal["error"] = "error"
    message: str


# --- Stations ---

class StationItem(BaseModel):
    id: str
    name: str
    line_id: str
    station_type: str
    latitude: float
    longitude: float
    address: str
    congestion_multiplier: float


class StationList(BaseModel):
    stations: List[StationItem]
    total: int


class StationDetail(BaseModel):
    station: StationItem


class NearbyStationItem(StationItem):
    distance_m: float


class NearbyStations(BaseModel):
    stations: List[NearbyStationItem]
    center: dict
    radius: int


# --- Congestion ---

class VehicleItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    vehicle_id: str
    congestion: int = Field(ge=0, le=100)
    arrival_time: str
    car_positions: List[int]  # 1~10호차
    direction: Optional[str] = None
    destination: Optional[str] = None
    train_type: Optional[str] = None


class RealtimeCongestion(BaseModel):
    station_id: str
    station_name: str
    line_id: str
    current_congestion: int = Field(ge=0, le=100)
    congestion_level: Literal["low", "medium", "heavy"]
    passenger_count: int
    vehicles: List[VehicleItem]
    updated_at: str
    data_source: DATA_SOURCE


class HistoryRow(BaseModel):
    congestion_level: int
    passenger_count: Optional[int] = None
    timestamp: str
    data_source: str


class HourlyAverage(BaseModel):
    time: str
    avg_congestion: int
    data_points: int


class CongestionHistory(BaseModel):
    station_id: str
    history: List[HistoryRow]
    hourly_average: List[HourlyAverage]
    query_params: dict


class StationOverview(BaseModel):
    station_id: str
    station_name: str
    line_id: str
    current_congestion: int
    congestion_level: str
    updated_at: str


class LineStatistics(BaseModel):
    line_id: str
    station_count: int
    avg_congestion: int
    max_congestion: int
    min_congestion: int


class CongestionOverview(BaseModel):
    stations: List[StationOverview]
    line_statistics: List[LineStatistics]
    updated_at: str


# --- Prediction ---

class PredictionItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    time: str
    congestion: int = Field(ge=0, le=100)
    confidence: float = Field(ge=0.6, le=0.95)
    weather_impact: IMPACT
    event_impact: IMPACT


class PredictionResult(BaseModel):
    station_id: str
    station_name: str
    predictions: List[PredictionItem]
    model_accuracy: float
    prediction_params: dict


class HourlyTrend(BaseModel):
    hour: int
    avg_congestion: int


class DailyTrend(BaseModel):
    day_of_week: int  # 0=일요일
    day_name: str
    hourly_pattern: List[HourlyTrend]
    peak_hour: int


class PredictionTrends(BaseModel):
    station_id: str
    weekly_pattern: List[DailyTrend]


class AccuracyStats(BaseModel):
    overall_accuracy: float
    by_time_range: Dict[str, float]
    by_congestion_level: Dict[str, float]
    by_day_type: Dict[str, float]


class PredictionAccuracy(BaseModel):
    station_id: str
    accuracy_stats: AccuracyStats
    model_info: dict
    evaluation_period: str


# --- Recommendations ---

class Location(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    name: Optional[str] = None


class Preferences(BaseModel):
    max_congestion: Optional[int] = Field(None, ge=0, le=100)
    max_walking_time: Optional[int] = Field(None, ge=0)
    max_transfers: Optional[int] = Field(None, ge=0)
    prefer_speed: Optional[bool] = None
    avoid_stairs: Optional[bool] = None


class RecommendationRequest(BaseModel):
    user_id: str = "anonymous"
    origin: Optional[Location] = None
    destination: Optional[Location] = None
    departure_time: Optional[str] = None
    preferences: Optional[Preferences] = None


class RouteStepItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: Literal["walk", "subway", "bus", "transfer"]
    duration: int
    line: Optional[str] = None
    congestion: Optional[int] = None
    description: Optional[str] = None


class RouteItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    route_id: str
    total_time: int
    walking_time: int
    transfers: int
    avg_congestion: int
    departure_time: str
    arrival_time: str
    steps: List[RouteStepItem]
    recommendation_score: float
    reasons: List[str]
    estimated_cost: int
    carbon_footprint: float


class RecommendationResult(BaseModel):
    user_id: str
    recommended_routes: List[RouteItem]
    search_params: dict
    generated_at: str


class UserPatternItem(BaseModel):
    origin_station_id: str
    destination_station_id: str
    origin_name: Optional[str] = None
    destination_name: Optional[str] = None
    typical_departure_time: Optional[str] = None
    frequency: int
    day_of_week: List[int]  # 0=일요일
    created_at: str
    updated_at: str


class UserPatterns(BaseModel):
    user_id: str
    patterns: List[UserPatternItem]
    analysis: dict


class FeedbackRequest(BaseModel):
    user_id: str = "anonymous"
    route_id: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    feedback_type: Optional[Literal["positive", "negative", "suggestion"]] = None
    comments: Optional[str] = None
    actual_congestion: Optional[int] = Field(None, ge=0, le=100)
    actual_time: Optional[int] = Field(None, ge=0)


class FeedbackReceipt(BaseModel):
    feedback_id: str
    thank_you_points: int


class PopularRoute(BaseModel):
    origin_name: str
    destination_name: str
    usage_count: int
    avg_rating: float
    avg_time: int
    avg_congestion: int
    recommended_times: List[str]


class PopularRoutes(BaseModel):
    popular_routes: List[PopularRoute]
    analysis_period: str
    updated_at: str


class HealthStatus(BaseModel):
    status: str
    timestamp: str
    version: str
    services_loaded: bool
