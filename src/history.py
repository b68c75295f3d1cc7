# -*- coding: utf-8 -*-
"""
혼잡도/예측 이력 저장소 (SQLite)
================================
조회 결과의 감사(audit) 기록, 사용자 이동 패턴, 경로 추천 피드백을 저장한다.
감사 기록과 패턴 저장 실패는 로그만 남기고 호출자에게 전파하지 않는다.
"""
import json
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from src.congestion import CongestionReading
from src.patterns import get_station
from src.prediction import PredictionPoint

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
USER_PATTERN_LIMIT = 10


class HistoryStore:
    def __init__(self, db_path, enabled: bool = True):
        self.db_path = Path(db_path)
        self.enabled = enabled
        self._initialized = False

    def _init_db(self):
        """Initialize database and create tables/indexes once."""
        if self._initialized:
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS congestion_data (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    station_id TEXT NOT NULL,
                    congestion_level INTEGER NOT NULL CHECK (congestion_level BETWEEN 0 AND 100),
                    passenger_count INTEGER,
                    timestamp TEXT NOT NULL,
                    data_source TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS prediction_cache (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    station_id TEXT NOT NULL,
                    prediction_time TEXT NOT NULL,
                    predicted_congestion INTEGER NOT NULL,
                    confidence REAL NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS user_patterns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    origin_station_id TEXT NOT NULL,
                    destination_station_id TEXT NOT NULL,
                    typical_departure_time TEXT,
                    frequency INTEGER NOT NULL DEFAULT 1,
                    day_of_week TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, origin_station_id, destination_station_id)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS route_feedback (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    route_id TEXT NOT NULL,
                    rating INTEGER NOT NULL CHECK (rating BETWEEN 1 AND 5),
                    feedback_type TEXT,
                    comments TEXT,
                    actual_congestion INTEGER,
                    actual_time INTEGER,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_congestion_station_ts "
                "ON congestion_data(station_id, timestamp)"
            )
            conn.commit()
        finally:
            conn.close()
        self._initialized = True

    def _get_connection(self) -> sqlite3.Connection:
        self._init_db()
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def record_reading(self, reading: CongestionReading) -> bool:
        """조회된 혼잡도를 기록한다. 실패해도 False만 반환한다."""
        if not self.enabled:
            return False
        try:
            conn = self._get_connection()
            try:
                conn.execute(
                    "INSERT INTO congestion_data "
                    "(station_id, congestion_level, passenger_count, timestamp, data_source) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (
                        reading.station_id,
                        reading.congestion_level,
                        reading.passenger_count,
                        reading.timestamp,
                        reading.data_source,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.error("Error saving congestion data: %s", e, exc_info=True)
            return False
        return True

    def record_predictions(self, station_id: str, predictions: Iterable[PredictionPoint],
                           created_at: datetime) -> bool:
        if not self.enabled:
            return False
        try:
            conn = self._get_connection()
            try:
                conn.executemany(
                    "INSERT INTO prediction_cache "
                    "(station_id, prediction_time, predicted_congestion, confidence, created_at) "
                    "VALUES (?, ?, ?, ?, ?)",
                    [(station_id, p.time, p.congestion, p.confidence, created_at.isoformat())
                     for p in predictions],
                )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.error("Error caching predictions: %s", e, exc_info=True)
            return False
        return True

    def fetch_history(self, station_id: str, hours: int, now: datetime) -> Dict[str, List[Dict]]:
        """
        최근 hours 시간의 기록(최대 100건, 최신순)과 시간대별 평균.

        Returns:
            {"history": [...], "hourly_average": [{"time": "HH:00", "avg_congestion", "data_points"}]}
        """
        since = (now - timedelta(hours=hours)).isoformat()
        conn = self._get_connection()
        try:
            rows = conn.execute(
                """
                SELECT congestion_level, passenger_count, timestamp, data_source
                FROM congestion_data
                WHERE station_id = ? AND timestamp >= ?
                ORDER BY timestamp DESC
                LIMIT ?
                """,
                (station_id, since, HISTORY_LIMIT),
            ).fetchall()
        finally:
            conn.close()

        history = [dict(r) for r in rows]
        if not history:
            return {"history": [], "hourly_average": []}

        df = pd.DataFrame(history)
        df["time"] = df["timestamp"].str.slice(11, 13) + ":00"
        hourly = (
            df.groupby("time")["congestion_level"]
            .agg(avg_congestion="mean", data_points="count")
            .reset_index()
            .sort_values("time")
        )
        hourly_average = [
            {
                "time": r.time,
                "avg_congestion": int(round(r.avg_congestion)),
                "data_points": int(r.data_points),
            }
            for r in hourly.itertuples(index=False)
        ]
        return {"history": history, "hourly_average": hourly_average}

    def record_user_pattern(self, user_id: str, origin_station_id: str,
                            destination_station_id: str, departure: datetime,
                            now: datetime) -> bool:
        """
        사용자 이동 패턴 저장. 같은 (사용자, 출발역, 도착역)이면 빈도를 1 올리고
        출발 요일을 누적한다.
        """
        if not self.enabled:
            return False
        typical_time = departure.strftime("%H:%M")
        day = (departure.weekday() + 1) % 7  # 일=0
        try:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT id, day_of_week FROM user_patterns "
                    "WHERE user_id = ? AND origin_station_id = ? AND destination_station_id = ?",
                    (user_id, origin_station_id, destination_station_id),
                ).fetchone()
                if row:
                    days = set(json.loads(row["day_of_week"] or "[]"))
                    days.add(day)
                    conn.execute(
                        "UPDATE user_patterns SET frequency = frequency + 1, "
                        "day_of_week = ?, updated_at = ? WHERE id = ?",
                        (json.dumps(sorted(days)), now.isoformat(), row["id"]),
                    )
                else:
                    conn.execute(
                        "INSERT INTO user_patterns "
                        "(user_id, origin_station_id, destination_station_id, typical_departure_time, "
                        "day_of_week, created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
                        (user_id, origin_station_id, destination_station_id, typical_time,
                         json.dumps([day]), now.isoformat(), now.isoformat()),
                    )
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            logger.error("Error saving user pattern: %s", e, exc_info=True)
            return False
        return True

    def fetch_user_patterns(self, user_id: str, limit: int = USER_PATTERN_LIMIT) -> List[Dict]:
        """빈도 높은 순(동률이면 최근 갱신 순)으로 사용자 패턴을 반환한다."""
        conn = self._get_connection()
        try:
            rows = conn.execute(
                """
                SELECT origin_station_id, destination_station_id, typical_departure_time,
                       frequency, day_of_week, created_at, updated_at
                FROM user_patterns
                WHERE user_id = ?
                ORDER BY frequency DESC, updated_at DESC
                LIMIT ?
                """,
                (user_id, limit),
            ).fetchall()
        finally:
            conn.close()

        patterns = []
        for r in rows:
            pattern = dict(r)
            origin = get_station(pattern["origin_station_id"])
            destination = get_station(pattern["destination_station_id"])
            pattern["origin_name"] = origin.name if origin else None
            pattern["destination_name"] = destination.name if destination else None
            pattern["day_of_week"] = json.loads(pattern["day_of_week"] or "[]")
            patterns.append(pattern)
        return patterns

    def record_feedback(self, user_id: str, route_id: str, rating: int, now: datetime,
                        feedback_type: Optional[str] = None, comments: Optional[str] = None,
                        actual_congestion: Optional[int] = None,
                        actual_time: Optional[int] = None) -> str:
        """
        경로 추천 피드백 저장. 피드백 자체가 요청의 목적이므로 실패는 호출자에게 전파한다.

        Returns:
            feedback_id (uuid4)
        """
        feedback_id = str(uuid.uuid4())
        conn = self._get_connection()
        try:
            conn.execute(
                """
                INSERT INTO route_feedback
                    (id, user_id, route_id, rating, feedback_type, comments,
                     actual_congestion, actual_time, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (feedback_id, user_id, route_id, rating, feedback_type, comments,
                 actual_congestion, actual_time, now.isoformat()),
            )
            conn.commit()
        finally:
            conn.close()
        logger.info("Feedback received: route=%s rating=%s user=%s", route_id, rating, user_id)
        return feedback_id
