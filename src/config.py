"""환경 변수 기반 서비스 설정."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).parent.parent


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class Settings:
    metro_api_key: str = "sample"
    metro_base_url: str = "http://swopenapi.seoul.go.kr/api/subway"
    metro_timeout_seconds: float = 10.0
    realtime_cache_ttl_seconds: float = 30.0
    db_path: Path = PROJECT_ROOT / "data" / "smarttransit.db"
    history_enabled: bool = True
    allowed_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:8000",
    ])

    @classmethod
    def from_env(cls) -> "Settings":
        db_path = Path(os.getenv("SMARTTRANSIT_DB_PATH", str(cls.db_path)))
        if not db_path.is_absolute():
            db_path = PROJECT_ROOT / db_path
        origins = os.getenv("ALLOWED_ORIGINS")
        return cls(
            metro_api_key=os.getenv("SEOUL_METRO_API_KEY", cls.metro_api_key),
            metro_base_url=os.getenv("SEOUL_METRO_BASE_URL", cls.metro_base_url).rstrip("/"),
            metro_timeout_seconds=float(os.getenv("SEOUL_METRO_TIMEOUT", cls.metro_timeout_seconds)),
            realtime_cache_ttl_seconds=float(os.getenv("REALTIME_CACHE_TTL", cls.realtime_cache_ttl_seconds)),
            db_path=db_path,
            history_enabled=_env_bool("HISTORY_ENABLED", "true"),
            allowed_origins=origins.split(",") if origins else cls().allowed_origins,
        )
