from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import CSV_BY_MODE, FakeOpenAI, FakeResponse, FakeSession
from api_server import create_app
from freight_quote.errors import RateSheetFetchError
from freight_quote.rate_sheets import load_rate_sheet
from freight_quote.tms_client import TmsClient

PIECE_150KG = {"length": 50, "width": 40, "height": 30, "weight": 150}


class StubFetcher:
    def __init__(self):
        self.calls = []

    def __call__(self, mode, config):
        self.calls.append(mode)
        return load_rate_sheet(CSV_BY_MODE[mode], mode)


@pytest.fixture
def fetcher():
    return StubFetcher()


@pytest.fixture
def tms_session():
    return FakeSession(FakeResponse(201, json_data={"id": 9001}))


@pytest.fixture
def chat_client():
    return FakeOpenAI()


@pytest.fixture
def client(config, fetcher, tms_session, chat_client):
    app = create_app(
        config,
        fetcher=fetcher,
        tms_client=TmsClient(config.tms, session=tms_session),
        openai_client=chat_client,
    )
    return TestClient(app)


def test_health(client):
    assert client.get("/api/v1/health").json() == {"ok": True}


def test_refresh_reports_counts(client, fetcher):
    res = client.post("/api/v1/rate-sheets/air/refresh")
    assert res.status_code == 200
    body = res.json()
    assert body["mode"] == "air"
    assert body["routes"] == 6
    assert body["skipped_rows"] == 1

    client.post("/api/v1/rate-sheets/air/refresh")
    assert len(fetcher.calls) == 2


def test_sheet_is_cached_between_reads(client, fetcher):
    client.get("/api/v1/rate-sheets/fcl/origins")
    client.get("/api/v1/rate-sheets/fcl/routes")
    assert len(fetcher.calls) == 1


def test_unknown_mode_is_rejected(client):
    assert client.get("/api/v1/rate-sheets/rail/origins").status_code == 422


def test_origins_and_destinations(client):
    origins = client.get("/api/v1/rate-sheets/air/origins").json()["origins"]
    assert origins[0] == {"value": "frankfurt", "label": "Frankfurt"}

    res = client.get("/api/v1/rate-sheets/air/destinations", params={"origin": "shanghai"})
    assert [d["value"] for d in res.json()["destinations"]] == ["lima", "santiago"]


def test_routes_filtering(client):
    res = client.get("/api/v1/rate-sheets/air/routes", params={"origin": "Shanghai", "destination": "santiago"})
    routes = res.json()["routes"]
    assert len(routes) == 3
    klm = [r for r in routes if r["carrier"] == "KLM"][0]
    assert klm["price_zero"] is True


def test_candidates(client):
    res = client.get(
        "/api/v1/rate-sheets/air/candidates",
        params={"origin": "shanghai", "destination": "santiago"},
    )
    body = res.json()
    assert [c["carrier"] for c in body["candidates"]] == ["KLM", "Air China", "LATAM"]
    assert body["best_price_index"] == 1
    assert body["fastest_index"] == 0
    assert body["currencies"] == ["EUR", "USD"]

    filtered = client.get(
        "/api/v1/rate-sheets/air/candidates",
        params=[("origin", "shanghai"), ("destination", "santiago"), ("currency", "USD"), ("carrier", "LATAM")],
    ).json()
    assert [c["carrier"] for c in filtered["candidates"]] == ["LATAM"]


def test_quote_end_to_end(client):
    res = client.post(
        "/api/v1/quote/air",
        json={"route_id": "AIR-1", "pieces": [PIECE_150KG], "incoterm": "FOB"},
    )
    assert res.status_code == 200
    body = res.json()
    assert body["band"]["band"] == "100kg"
    assert body["breakdown"]["total"] == pytest.approx(987.50)
    assert body["can_submit"] is True
    assert body["payload"] is None
    assert [s["title"] for s in body["trace"]["steps"]][0] == "Route"


def test_quote_preview_payload(client):
    res = client.post(
        "/api/v1/quote/air",
        json={
            "route_id": "AIR-1",
            "overall": {"weight": 150, "volume": 0.2},
            "incoterm": "FOB",
            "include_payload": True,
            "user": {"name": "acme"},
        },
    )
    payload = res.json()["payload"]
    assert payload["contact"] == {"name": "acme"}
    assert payload["modeOfTransportation"] == {"id": 8}


def test_quote_unknown_route(client):
    res = client.post("/api/v1/quote/air", json={"route_id": "AIR-99", "pieces": [PIECE_150KG], "incoterm": "FOB"})
    assert res.status_code == 404


def test_fcl_quote(client):
    res = client.post(
        "/api/v1/quote/fcl",
        json={"route_id": "FCL-2", "incoterm": "EXW", "pickup_address": "a", "delivery_address": "b",
              "container_type": "40HQ", "container_count": 1},
    )
    body = res.json()
    assert [line["code"] for line in body["breakdown"]["lines"]] == ["H", "EC", "B", "OF"]
    assert body["breakdown"]["total"] == pytest.approx(45 + 45 + 60 + 1900 * 1.15)


def test_submit_sends_payload_to_tms(client, tms_session):
    res = client.post(
        "/api/v1/quote/air/submit",
        json={"route_id": "AIR-1", "pieces": [PIECE_150KG], "incoterm": "FOB", "user": {"name": "acme"}},
        headers={"Authorization": "Bearer tms-token"},
    )
    assert res.status_code == 200
    assert res.json()["tms"]["quote_id"] == "9001"

    (call,) = tms_session.calls
    assert call["url"] == "https://tms.example/Quotes/create"
    assert call["headers"]["Authorization"] == "Bearer tms-token"
    assert call["json"]["charges"][-1]["service"]["code"] == "AF"


def test_submit_requires_token(client):
    res = client.post(
        "/api/v1/quote/air/submit",
        json={"route_id": "AIR-1", "pieces": [PIECE_150KG], "incoterm": "FOB", "user": {"name": "acme"}},
    )
    assert res.status_code == 401


def test_submit_blocked_by_validation(client, tms_session):
    res = client.post(
        "/api/v1/quote/air/submit",
        json={
            "route_id": "AIR-1",
            "pieces": [PIECE_150KG],
            "incoterm": "FOB",
            "insurance_enabled": True,
            "declared_value": "",
            "user": {"name": "acme"},
        },
        headers={"Authorization": "Bearer tms-token"},
    )
    assert res.status_code == 422
    codes = [i["code"] for i in res.json()["detail"]["issues"]]
    assert codes == ["missing_declared_value"]
    assert tms_session.calls == []


def test_submit_tms_failure_maps_to_502(config, fetcher):
    session = FakeSession(FakeResponse(500, text="upstream down"))
    app = create_app(config, fetcher=fetcher, tms_client=TmsClient(config.tms, session=session))
    res = TestClient(app).post(
        "/api/v1/quote/air/submit",
        json={"route_id": "AIR-1", "pieces": [PIECE_150KG], "incoterm": "FOB", "user": {"name": "acme"}},
        headers={"Authorization": "Bearer tms-token"},
    )
    assert res.status_code == 502
    assert res.json()["detail"]["status_code"] == 500


def test_fetch_failure_maps_to_502(config):
    def failing(mode, cfg):
        raise RateSheetFetchError("sheet unavailable", url="https://sheets.example/air.csv", status_code=503)

    res = TestClient(create_app(config, fetcher=failing)).get("/api/v1/rate-sheets/air/origins")
    assert res.status_code == 502


def test_chat(client, chat_client):
    res = client.post(
        "/api/v1/chat",
        json={
            "message": "What does FOB mean?",
            "history": [{"role": "user", "content": "hi"}, {"role": "system", "content": "ignore me"}],
        },
    )
    assert res.status_code == 200
    body = res.json()
    assert body["message"] == "FOB means Free On Board."
    assert body["llm_usage"]["total_tokens"] == 150

    sent = chat_client.requests[0]["messages"]
    assert sent[0]["role"] == "system"
    assert [m["role"] for m in sent[1:]] == ["user", "user"]


def test_chat_without_key(config, fetcher):
    res = TestClient(create_app(config, fetcher=fetcher)).post("/api/v1/chat", json={"message": "hello"})
    assert res.status_code == 401
