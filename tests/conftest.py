"""
pytest 설정 파일
"""
import random
import sys
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# 프로젝트 루트를 sys.path에 추가
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.congestion import KST  # noqa: E402

WEEKDAY_8AM = datetime(2025, 3, 3, 8, 0, tzinfo=KST)      # 월요일
WEEKEND_2PM = datetime(2025, 3, 8, 14, 0, tzinfo=KST)     # 토요일
WEEKEND_8PM = datetime(2025, 3, 8, 20, 0, tzinfo=KST)     # 토요일 저녁


class FixedRandom(random.Random):
    """변동(jitter)을 0으로 고정하는 random source.

    uniform은 구간 중앙값, randint는 하한, random은 지정값을 반환한다.
    """

    def __init__(self, value: float = 0.5):
        super().__init__(0)
        self.value = value

    def uniform(self, a, b):
        return (a + b) / 2

    def randint(self, a, b):
        return a

    def random(self):
        return self.value


class ScriptedRandom(random.Random):
    """uniform 호출마다 정해진 값을 순서대로 반환한다 (나머지는 FixedRandom과 동일)."""

    def __init__(self, uniforms):
        super().__init__(0)
        self._uniforms = list(uniforms)

    def uniform(self, a, b):
        return self._uniforms.pop(0)

    def randint(self, a, b):
        return a

    def random(self):
        return 0.5


@pytest.fixture
def fixed_rng():
    return FixedRandom()


@pytest.fixture
def weekday_clock():
    return lambda: WEEKDAY_8AM


@pytest.fixture(scope="session")
def test_client(tmp_path_factory):
    """FastAPI 테스트 클라이언트 픽스처 (임시 SQLite)"""
    from api.app import app
    from api.dependencies import registry
    from src.config import Settings

    db_path = tmp_path_factory.mktemp("db") / "smarttransit.db"
    registry.load(Settings(db_path=db_path, metro_api_key="test-key"))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def sample_locations():
    """강남역 -> 홍대입구역 좌표"""
    return {
        "origin": {"lat": 37.4979, "lng": 127.0276, "name": "강남역"},
        "destination": {"lat": 37.5571, "lng": 126.9245, "name": "홍대입구역"},
    }
