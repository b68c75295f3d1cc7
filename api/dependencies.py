"""
서비스 싱글턴 관리.
앱 시작 시 한 번 구성하고, 모든 요청에서 재사용한다.
"""
import random
import sys
from pathlib import Path
from typing import Optional

# 프로젝트 루트를 sys.path에 추가
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.cache import TTLCache
from src.config import Settings
from src.congestion import CongestionGenerator
from src.history import HistoryStore
from src.metro_api import SeoulMetroClient
from src.prediction import PredictionGenerator
from src.recommendation import RouteRecommender


class ServiceRegistry:
    def __init__(self):
        self.settings: Optional[Settings] = None
        self.congestion: Optional[CongestionGenerator] = None
        self.prediction: Optional[PredictionGenerator] = None
        self.recommender: Optional[RouteRecommender] = None
        self.metro_client: Optional[SeoulMetroClient] = None
        self.history: Optional[HistoryStore] = None

    def load(self, settings: Optional[Settings] = None, rng: Optional[random.Random] = None):
        self.settings = settings or Settings.from_env()
        rng = rng or random.Random()
        self.congestion = CongestionGenerator(rng=rng)
        self.prediction = PredictionGenerator(rng=rng)
        self.recommender = RouteRecommender(rng=rng)
        self.metro_client = SeoulMetroClient(
            generator=self.congestion,
            cache=TTLCache(ttl_seconds=self.settings.realtime_cache_ttl_seconds),
            api_key=self.settings.metro_api_key,
            base_url=self.settings.metro_base_url,
            timeout_seconds=self.settings.metro_timeout_seconds,
        )
        self.history = HistoryStore(self.settings.db_path, enabled=self.settings.history_enabled)

    @property
    def loaded(self) -> bool:
        return self.congestion is not None

    def _require(self, service):
        if service is None:
            raise RuntimeError("Services not loaded")
        return service

    def get_congestion(self) -> CongestionGenerator:
        return self._require(self.congestion)

    def get_prediction(self) -> PredictionGenerator:
        return self._require(self.prediction)

    def get_recommender(self) -> RouteRecommender:
        return self._require(self.recommender)

    def get_metro_client(self) -> SeoulMetroClient:
        return self._require(self.metro_client)

    def get_history(self) -> HistoryStore:
        return self._require(self.history)


registry = ServiceRegistry()
