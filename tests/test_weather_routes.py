"""HTTP tests for the weather, quota and health endpoints."""

from datetime import datetime, timedelta, timezone

import pytest

from conftest import forecast_payload
from weather_gateway.core.errors import UpstreamError, UpstreamTimeout


def _dates(days: int) -> list[str]:
    today = datetime.now(timezone.utc).date()
    return [(today + timedelta(days=offset)).isoformat() for offset in range(days)]


@pytest.fixture
def seeded_client(fake_client):
    today, tomorrow, *rest = _dates(6)
    fake_client.responses.update(
        {
            "2618425": forecast_payload(
                {today: 14.0, tomorrow: 26.0, **{d: 20.0 for d in rest}},
                city_id=2618425,
                city_name="Copenhagen",
            ),
            "2643743": forecast_payload({tomorrow: 12.0}, city_id=2643743, city_name="London"),
        }
    )
    return fake_client


def test_health(make_test_client):
    resp = make_test_client().get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_readiness_reports_cache_stats(make_test_client):
    resp = make_test_client().get("/health/ready")

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ready"
    assert body["cache"]["hits"] == 0


def test_location_forecast(make_test_client, seeded_client):
    client = make_test_client()

    resp = client.get("/v1/weather/locations/2618425")

    assert resp.status_code == 200
    body = resp.json()
    assert body["location_id"] == "2618425"
    assert body["location_name"] == "Copenhagen"
    assert body["unit"] == "celsius"
    assert len(body["forecast"]) == 5
    assert body["forecast"][1]["temperature"] == 26.0


def test_location_forecast_in_fahrenheit(make_test_client, seeded_client):
    resp = make_test_client().get("/v1/weather/locations/2618425", params={"unit": "fahrenheit"})

    assert resp.status_code == 200
    assert resp.json()["forecast"][1]["temperature"] == 78.8


def test_repeated_requests_are_served_from_cache(make_test_client, seeded_client):
    client = make_test_client()

    for _ in range(3):
        assert client.get("/v1/weather/locations/2618425").status_code == 200

    assert seeded_client.calls == ["2618425"]
    windows = {w["name"]: w for w in client.get("/v1/quota").json()["windows"]}
    assert windows["hourly"]["used"] == 1


@pytest.mark.parametrize(
    "url",
    [
        "/v1/weather/locations/abc",
        "/v1/weather/locations/2618425?unit=kelvin",
        "/v1/weather/summary?locations=1&temperature=500",
        "/v1/weather/summary?locations=1",
    ],
)
def test_request_validation(make_test_client, url):
    resp = make_test_client().get(url)

    assert resp.status_code == 422


def test_unknown_location_returns_404(make_test_client):
    resp = make_test_client().get("/v1/weather/locations/404404")

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "location_not_found"


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (UpstreamTimeout(code="upstream_timeout", message="slow"), 504),
        (UpstreamError(code="upstream_error", message="boom"), 502),
    ],
)
def test_upstream_failures_are_mapped(make_test_client, fake_client, error, status):
    fake_client.responses["1"] = error

    resp = make_test_client().get("/v1/weather/locations/1")

    assert resp.status_code == status
    assert resp.json()["error"]["code"] == error.code


def test_weather_summary(make_test_client, seeded_client):
    resp = make_test_client().get(
        "/v1/weather/summary",
        params={"locations": "2618425,2643743,404404", "temperature": 24},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["temperature_threshold"] == 24
    assert body["unit"] == "celsius"
    assert [loc["location_name"] for loc in body["locations"]] == ["Copenhagen"]
    assert body["locations"][0]["tomorrow_temperature"] == 26.0


@pytest.mark.parametrize("locations", ["abc,123", " , "])
def test_weather_summary_rejects_bad_locations(make_test_client, locations):
    resp = make_test_client().get(
        "/v1/weather/summary",
        params={"locations": locations, "temperature": 20},
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_locations"


def test_quota_exhaustion_returns_429_with_retry_after(make_test_client, seeded_client):
    client = make_test_client(requests_per_hour=1)

    assert client.get("/v1/weather/locations/2618425").status_code == 200
    resp = client.get("/v1/weather/locations/2643743")

    assert resp.status_code == 429
    error = resp.json()["error"]
    assert error["code"] == "rate_limit_exceeded"
    assert error["details"]["window"] == "hourly"
    assert 0 < int(resp.headers["Retry-After"]) <= 3600
    # the cached location is still served
    assert client.get("/v1/weather/locations/2618425").status_code == 200


def test_quota_endpoint_reports_windows(make_test_client):
    resp = make_test_client(requests_per_hour=7, requests_per_day=70).get("/v1/quota")

    assert resp.status_code == 200
    windows = resp.json()["windows"]
    assert [(w["name"], w["limit"], w["used"], w["remaining"]) for w in windows] == [
        ("hourly", 7, 0, 7),
        ("daily", 70, 0, 70),
    ]
