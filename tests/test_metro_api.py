# -*- coding: utf-8 -*-
import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from src.cache import TTLCache
from src.congestion import CongestionGenerator
from src.metro_api import SeoulMetroClient, arrival_base_congestion, imminent_bonus
from src.patterns import get_station
from tests.conftest import FixedRandom

GANGNAM = get_station("221")


def _mock_http_response(payload, status_code=200):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    else:
        resp.raise_for_status.return_value = None
    return resp


def _arrival_payload(trains=None, code="INFO-000"):
    if trains is None:
        trains = [
            {"subwayId": "1002", "btrainNo": "2211", "trainLineNm": "성수행 - 역삼방면",
             "bstatnNm": "성수", "barvlDt": "0", "arvlMsg2": "전역 도착", "btrainSttus": "0"},
            {"subwayId": "1002", "btrainNo": "2213", "trainLineNm": "내선순환",
             "bstatnNm": "성수", "barvlDt": "60", "arvlMsg2": "1분 후", "btrainSttus": "1"},
            {"subwayId": "1002", "btrainNo": "2215", "trainLineNm": "외선순환",
             "bstatnNm": "시청", "barvlDt": "600", "arvlMsg2": "10분 후", "btrainSttus": "9"},
        ]
    return {
        "errorMessage": {"status": 200, "code": code, "message": "정상 처리되었습니다."},
        "realtimeArrivalList": trains,
    }


@pytest.fixture
def client(weekday_clock):
    generator = CongestionGenerator(rng=FixedRandom(), clock=weekday_clock)
    return SeoulMetroClient(generator=generator, cache=TTLCache(ttl_seconds=30), api_key="dummy")


def test_live_response_reshaped(client):
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(_arrival_payload())) as mocked_get:
        snapshot = client.get_realtime(GANGNAM)

    url = mocked_get.call_args.args[0]
    assert "/dummy/json/realtimeStationArrival/0/10/" in url
    assert url.endswith(requests.utils.quote("강남"))
    assert mocked_get.call_args.kwargs["timeout"] == 10.0

    assert snapshot.reading.data_source == "external_live"
    assert snapshot.line_id == "1002"
    assert [v.vehicle_id for v in snapshot.vehicles] == ["2211", "2213", "2215"]
    assert [v.train_type for v in snapshot.vehicles] == ["일반", "급행", "일반"]
    assert snapshot.vehicles[0].arrival_time == "전역 도착"
    assert snapshot.vehicles[1].direction == "내선순환"
    assert all(len(v.car_positions) == 10 for v in snapshot.vehicles)


def test_imminent_trains_estimated_more_crowded(client):
    """8시 기본 75 + 임박 보너스: 0초(미제공→180초) 83, 60초 91, 600초 75"""
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(_arrival_payload())):
        snapshot = client.get_realtime(GANGNAM)

    assert [v.congestion for v in snapshot.vehicles] == [83, 91, 75]
    assert snapshot.reading.congestion_level == round((83 + 91 + 75) / 3)
    assert snapshot.reading.passenger_count == round(snapshot.reading.congestion_level / 100 * 150)


def test_at_most_four_trains(client):
    trains = [{"btrainNo": str(n), "barvlDt": "120", "arvlMsg2": "2분 후"} for n in range(8)]
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(_arrival_payload(trains))):
        snapshot = client.get_realtime(GANGNAM)
    assert len(snapshot.vehicles) == 4


def test_timeout_falls_back_to_simulation(client):
    with patch("src.metro_api.requests.get", side_effect=requests.Timeout("read timed out")):
        snapshot = client.get_realtime(GANGNAM)

    assert snapshot.reading.data_source == "external_fallback"
    assert snapshot.reading.station_id == "221"
    assert snapshot.reading.congestion_level == 100
    assert len(snapshot.vehicles) == 3
    assert len(client.cache) == 0


@pytest.mark.parametrize("response", [
    _mock_http_response({}, status_code=500),
    _mock_http_response(_arrival_payload(code="ERROR-337")),
    _mock_http_response(_arrival_payload(trains=[])),
    _mock_http_response(["not", "a", "dict"]),
    _mock_http_response({"errorMessage": "service key invalid"}),
    _mock_http_response(_arrival_payload(trains=["garbage"])),
    _mock_http_response(_arrival_payload(trains={"a": 1})),
])
def test_unusable_upstream_responses_fall_back(client, response):
    with patch("src.metro_api.requests.get", return_value=response):
        snapshot = client.get_realtime(GANGNAM)
    assert snapshot.reading.data_source == "external_fallback"


def test_malformed_json_falls_back(client):
    resp = _mock_http_response({})
    resp.json.side_effect = json.JSONDecodeError("Expecting value", "", 0)
    with patch("src.metro_api.requests.get", return_value=resp):
        assert client.get_realtime(GANGNAM).reading.data_source == "external_fallback"


def test_legacy_result_block_accepted(client):
    payload = _arrival_payload()
    payload["RESULT"] = {"CODE": "INFO-000", "MESSAGE": "정상"}
    del payload["errorMessage"]
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(payload)):
        assert client.get_realtime(GANGNAM).reading.data_source == "external_live"


def test_cache_hit_within_ttl_skips_upstream(client):
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(_arrival_payload())) as mocked_get:
        with patch("src.cache.time.time", side_effect=[1000.0, 1010.0]):
            first = client.get_realtime(GANGNAM)
            second = client.get_realtime(GANGNAM)

    assert first is second
    assert mocked_get.call_count == 1


def test_cache_expires_after_ttl(client):
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(_arrival_payload())) as mocked_get:
        with patch("src.cache.time.time", side_effect=[1000.0, 1031.0, 1031.0]):
            client.get_realtime(GANGNAM)
            client.get_realtime(GANGNAM)

    assert mocked_get.call_count == 2


def test_clear_cache(client):
    with patch("src.metro_api.requests.get", return_value=_mock_http_response(_arrival_payload())):
        client.get_realtime(GANGNAM)
    assert len(client.cache) == 1
    client.clear_cache()
    assert len(client.cache) == 0


@pytest.mark.parametrize("hour,base", [(8, 75), (18, 75), (12, 45), (21, 55), (2, 30), (23, 30)])
def test_arrival_base_congestion(hour, base):
    assert arrival_base_congestion(hour) == base


def test_imminent_bonus_linear():
    assert imminent_bonus(0) == 20
    assert imminent_bonus(150) == 10
    assert imminent_bonus(300) == 0
    assert imminent_bonus(900) == 0
