from __future__ import annotations

from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

RECTANGLE = [
    {"quadrant": "NE", "degrees": 0, "distance_feet": 100},
    {"quadrant": "SE", "degrees": 90, "distance_feet": 50},
    {"quadrant": "SE", "degrees": 0, "distance_feet": 100},
    {"quadrant": "NW", "degrees": 90, "distance_feet": 50},
]


def test_health() -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_analyze_rectangle() -> None:
    response = client.post("/api/traverse/analyze", json={"parcels": [{"parcel_id": "A", "calls": RECTANGLE}]})
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["parcels"][0]["closure"]["closes"] is True
    assert body["parcels"][0]["calculated_area_sqft"] == 5000.0


def test_analyze_accepts_messy_extractor_values() -> None:
    calls = [dict(c) for c in RECTANGLE]
    calls[0]["distance_feet"] = "100.00 feet"
    calls[1]["minutes"] = "null"
    response = client.post("/api/traverse/analyze", json={"parcels": [{"parcel_id": 7, "calls": calls}]})
    assert response.status_code == 200
    assert response.json()["parcels"][0]["parcel_id"] == "7"


def test_analyze_without_parcels_is_bad_request() -> None:
    assert client.post("/api/traverse/analyze", json={"parcels": []}).status_code == 400


def test_analyze_parcel_without_calls_is_bad_request() -> None:
    response = client.post("/api/traverse/analyze", json={"parcels": [{"parcel_id": "A"}]})
    assert response.status_code == 400
    assert "no call list" in response.json()["detail"]


def test_export_dxf_attachment() -> None:
    response = client.post("/api/traverse/export-dxf", json={
        "filename": "lot 4/block 2",
        "parcels": [{"parcel_id": "A", "calls": RECTANGLE}],
        "annotations": [{"text": "Bearings are assumed", "northing": -20, "easting": 0}],
    })
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/dxf")
    assert 'filename="lot_4_block_2.dxf"' in response.headers["content-disposition"]
    assert "\nENTITIES\n" in response.text
    assert "Bearings are assumed" in response.text


def test_options() -> None:
    response = client.get("/api/traverse/options")
    assert response.status_code == 200
    assert "closes_max_error_feet" in response.json()["options"]


def test_recent_logs_endpoint() -> None:
    client.post("/api/traverse/analyze", json={"parcels": [{"parcel_id": "A", "calls": RECTANGLE}]})
    response = client.get("/logs/recent", params={"logger": "pipelines.traverse"})
    assert response.status_code == 200
    logs = response.json()["logs"]
    assert all(entry["name"].startswith("pipelines.traverse") for entry in logs)
