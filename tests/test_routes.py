"""Tests for the HTTP surface (FastAPI TestClient)."""

import pytest
from fastapi.testclient import TestClient

from season_forecast.errors import (
    InvalidPrediction,
    NotFound,
    RateLimited,
    StaleSessionWrite,
    SubmissionInProgress,
    UpstreamServerError,
    UpstreamTimeout,
)
from season_forecast.main import create_app
from season_forecast.routes import error_status
from season_forecast.storage.store import MemoryStore
from season_forecast.utils.clock import FixedClock

from tests.helpers import NOW, FakeSource, make_match, make_table


@pytest.fixture
def fake_source():
    source = FakeSource(standings=make_table(10), current_matchday=5)
    source.matches = {5: [make_match(51, 5, 1, 2), make_match(52, 5, 3, 10)]}
    return source


@pytest.fixture
def client(fake_source):
    app = create_app(source=fake_source, store=MemoryStore(), clock=FixedClock(NOW))
    with TestClient(app) as test_client:
        yield test_client


class TestSessionRoutes:

    def test_full_flow(self, client):
        started = client.post("/sessions/PL", json={})
        assert started.status_code == 200
        assert started.json()["current_matchday"] == 5

        matchday = client.get("/sessions/PL/matchday").json()
        assert matchday["matchday"] == 5
        assert [m["id"] for m in matchday["matches"]] == [51, 52]

        submitted = client.post("/sessions/PL/predictions", json={"predictions": [
            {"match_id": 51, "type": "home"},
            {"match_id": 52, "type": "custom", "home_goals": 0, "away_goals": 2},
        ]})
        assert submitted.status_code == 200
        body = submitted.json()
        assert body["matchday"] == 5
        assert body["next_matchday"] == 6

        standings = client.get("/sessions/PL/standings", params={"matchday": 5}).json()
        assert standings["source"] == "snapshot"
        assert standings["table"][0]["zone"]["tournament"] == "Champions League"

    def test_race_summary(self, client):
        client.post("/sessions/PL", json={"race_mode": True, "tracked_team_ids": [1, 2]})
        client.get("/sessions/PL/matchday")
        client.post("/sessions/PL/predictions", json={"predictions": [{"match_id": 51, "type": "away"}]})
        summary = client.get("/sessions/PL/summary").json()
        assert summary["race_mode"] is True
        assert [t["team"]["id"] for t in summary["teams"]] == [1, 2]

    def test_skip_empty_matchdays(self, client):
        client.post("/sessions/PL", json={"start_matchday": 1})
        empty = client.get("/sessions/PL/matchday").json()
        assert (empty["matchday"], empty["matches"]) == (1, [])

        skipped = client.post("/sessions/PL/skip")
        assert skipped.status_code == 200
        assert skipped.json()["current_matchday"] == 2
        assert client.get("/sessions/PL/matchday").json()["matchday"] == 5

    def test_skip_without_session(self, client):
        response = client.post("/sessions/PL/skip")
        assert response.status_code == 404
        assert response.json()["error"] == "NoActiveSession"

    def test_reset(self, client):
        client.post("/sessions/PL", json={})
        assert client.delete("/sessions/PL").json()["status"] == "reset"
        response = client.get("/sessions/PL/standings")
        assert response.status_code == 404
        assert response.json()["error"] == "NoActiveSession"

    def test_unknown_league(self, client):
        assert client.post("/sessions/XYZ", json={}).status_code == 404

    def test_invalid_custom_prediction(self, client):
        client.post("/sessions/PL", json={})
        client.get("/sessions/PL/matchday")
        response = client.post("/sessions/PL/predictions", json={"predictions": [
            {"match_id": 51, "type": "custom", "home_goals": 1},
        ]})
        assert response.status_code == 422
        assert response.json()["error"] == "InvalidPrediction"

    def test_race_mode_without_teams(self, client):
        response = client.post("/sessions/PL", json={"race_mode": True})
        assert response.status_code == 422

    def test_future_standings(self, client):
        client.post("/sessions/PL", json={})
        assert client.get("/sessions/PL/standings", params={"matchday": 20}).status_code == 404

    def test_upstream_failure_is_reported(self, client, fake_source):
        client.post("/sessions/PL", json={})
        fake_source.error = UpstreamServerError("down", status_code=503)
        response = client.get("/sessions/PL/matchday")
        assert response.status_code == 502
        assert response.json()["retryable"] is True


class TestCacheRoutes:

    def test_refresh_and_status(self, client, fake_source):
        refreshed = client.post("/cache/refresh/pl").json()
        assert refreshed["league"] == "PL"
        assert refreshed["current_matchday"] == 5
        assert refreshed["teams"] == 10

        status = client.get("/cache/status/PL").json()
        assert status["league_data"]["stale"] is False
        assert fake_source.count("standings") == 1

    def test_metrics(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "sf_fixture_cache_total" in response.text


class TestErrorStatus:

    @pytest.mark.parametrize("error,status", [
        (RateLimited("slow down"), 429),
        (NotFound("gone"), 404),
        (UpstreamServerError("boom"), 502),
        (UpstreamTimeout("late"), 504),
        (InvalidPrediction(1, "bad"), 422),
        (SubmissionInProgress("busy"), 409),
        (StaleSessionWrite("a", "b"), 409),
    ])
    def test_mapping(self, error, status):
        assert error_status(error) == status
