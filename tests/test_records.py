# tests/test_records.py
from datetime import datetime, timedelta, timezone

from conftest import create_point

RECORDS_URL = "/api/monitoring-records"


def iso_hours_ago(hours):
    return (datetime.now(timezone.utc) - timedelta(hours=hours)).isoformat()

def post_record(client, headers, point_id, **readings):
    body = {"monitoringPointId": point_id}
    body.update(readings)
    return client.post(RECORDS_URL, json=body, headers=headers)

def test_create_and_get_record(client, user_headers):
    point = create_point("Klang River Station 1", type="river")
    res = post_record(client, user_headers, point.id, ph=7.2, dissolvedOxygen=6.4,
                      turbidity=12.5, recordedAt="2025-08-26T10:00:00+08:00", notes="routine")
    assert res.status_code == 201, res.get_json()
    created = res.get_json()
    assert created["dissolved_oxygen"] == 6.4
    assert created["notes"] == "routine"
    # stored as UTC
    assert created["recorded_at"].startswith("2025-08-26T02:00:00")

    res = client.get(f"{RECORDS_URL}/{created['id']}", headers=user_headers)
    assert res.status_code == 200
    assert res.get_json()["ph"] == 7.2

def test_recorded_at_defaults_to_now(client, user_headers):
    point = create_point()
    created = post_record(client, user_headers, point.id, aqi=30).get_json()
    assert created["recorded_at"].startswith(datetime.now(timezone.utc).strftime("%Y-%m-%d"))

def test_create_record_for_missing_point(client, user_headers):
    res = post_record(client, user_headers, 999, aqi=30)
    assert res.status_code == 404
    assert res.get_json()["message"] == "Monitoring point not found"

def test_create_record_validation(client, user_headers):
    point = create_point()
    assert post_record(client, user_headers, point.id, ph=15).status_code == 400
    assert post_record(client, user_headers, point.id, humidity=101).status_code == 400
    assert post_record(client, user_headers, point.id, pm25=-1).status_code == 400
    assert post_record(client, user_headers, point.id, aqi=12.5).status_code == 400
    assert post_record(client, user_headers, point.id, recordedAt="yesterday").status_code == 400
    assert client.post(RECORDS_URL, json={"aqi": 30}, headers=user_headers).status_code == 400

def test_get_missing_record(client, user_headers):
    assert client.get(f"{RECORDS_URL}/999", headers=user_headers).status_code == 404

def test_list_records_newest_first_with_point_details(client, user_headers):
    air = create_point("KLCC", type="air")
    river = create_point("Klang River", type="river")
    post_record(client, user_headers, air.id, aqi=40, recordedAt="2025-01-01T00:00:00Z")
    post_record(client, user_headers, river.id, ph=7.0, recordedAt="2025-01-03T00:00:00Z")
    post_record(client, user_headers, air.id, aqi=60, recordedAt="2025-01-02T00:00:00Z")

    res = client.get(RECORDS_URL, headers=user_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["count"] == 3
    assert payload["pagination"] == {"limit": 100, "offset": 0}
    assert [r["point_name"] for r in payload["records"]] == ["Klang River", "KLCC", "KLCC"]
    assert payload["records"][0]["point_type"] == "river"

    res = client.get(f"{RECORDS_URL}?monitoringPointId={air.id}&limit=1&offset=1", headers=user_headers)
    records = res.get_json()["records"]
    assert [r["aqi"] for r in records] == [40]

    res = client.get(f"{RECORDS_URL}?startDate=2025-01-02&endDate=2025-01-02T12:00:00Z", headers=user_headers)
    assert [r["aqi"] for r in res.get_json()["records"]] == [60]

def test_list_records_validation(client, user_headers):
    assert client.get(f"{RECORDS_URL}?limit=0", headers=user_headers).status_code == 400
    assert client.get(f"{RECORDS_URL}?limit=1001", headers=user_headers).status_code == 400
    assert client.get(f"{RECORDS_URL}?offset=-1", headers=user_headers).status_code == 400

def test_latest_per_active_point(client, user_headers):
    air = create_point("KLCC", type="air")
    river = create_point("Klang River", type="river")
    create_point("Gombak", type="river", status="maintenance")
    post_record(client, user_headers, air.id, aqi=40, recordedAt="2025-01-01T00:00:00Z")
    post_record(client, user_headers, air.id, aqi=70, recordedAt="2025-01-02T00:00:00Z")

    res = client.get(f"{RECORDS_URL}/latest", headers=user_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["count"] == 2
    first, second = payload["records"]
    assert first["monitoring_point_id"] == air.id
    assert first["point_name"] == "KLCC"
    assert first["aqi"] == 70
    assert first["recorded_at"].startswith("2025-01-02T00:00:00")
    assert second["monitoring_point_id"] == river.id
    assert second["recorded_at"] is None
    assert second["ph"] is None

def test_point_stats(client, user_headers):
    point = create_point()
    post_record(client, user_headers, point.id, aqi=40, pm25=10, recordedAt=iso_hours_ago(2))
    post_record(client, user_headers, point.id, aqi=60, pm25=20, recordedAt=iso_hours_ago(30))
    post_record(client, user_headers, point.id, aqi=200, pm25=90, recordedAt=iso_hours_ago(24 * 10))

    res = client.get(f"{RECORDS_URL}/stats/{point.id}", headers=user_headers)
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["days"] == 7
    stats = payload["stats"]
    assert stats["total_records"] == 2
    assert stats["avg_aqi"] == 50
    assert stats["max_aqi"] == 60
    assert stats["min_pm25"] == 10
    assert stats["avg_ph"] is None

    stats = client.get(f"{RECORDS_URL}/stats/{point.id}?days=30", headers=user_headers).get_json()["stats"]
    assert stats["total_records"] == 3

    assert client.get(f"{RECORDS_URL}/stats/{point.id}?days=366", headers=user_headers).status_code == 400

def test_timeseries(client, user_headers):
    point = create_point("Klang River", type="river")
    post_record(client, user_headers, point.id, ph=7.4, recordedAt="2025-01-02T00:00:00Z")
    post_record(client, user_headers, point.id, ph=7.1, recordedAt="2025-01-01T00:00:00Z")
    post_record(client, user_headers, point.id, turbidity=9.0, recordedAt="2025-01-01T12:00:00Z")
    post_record(client, user_headers, point.id, ph=6.9, recordedAt="2025-02-01T00:00:00Z")

    res = client.get(
        f"{RECORDS_URL}/timeseries?monitoringPointId={point.id}&parameter=ph"
        "&startDate=2025-01-01T00:00:00Z&endDate=2025-01-31T00:00:00Z",
        headers=user_headers,
    )
    assert res.status_code == 200
    payload = res.get_json()
    assert payload["parameter"] == "ph"
    assert payload["count"] == 2
    assert [p["value"] for p in payload["timeseries"]] == [7.1, 7.4]

def test_timeseries_validation(client, user_headers):
    point = create_point()
    base = f"{RECORDS_URL}/timeseries?monitoringPointId={point.id}&startDate=2025-01-01&endDate=2025-01-31"
    assert client.get(f"{base}&parameter=id", headers=user_headers).status_code == 400
    assert client.get(f"{base}&parameter=notes", headers=user_headers).status_code == 400
    res = client.get(f"{RECORDS_URL}/timeseries?parameter=aqi", headers=user_headers)
    assert res.status_code == 400
    assert res.get_json()["message"] == "Validation error"

def test_dashboard_stats_use_latest_reading_per_point(client, user_headers):
    klcc = create_point("KLCC", type="air")
    shah_alam = create_point("Shah Alam", type="air")
    petaling_jaya = create_point("Petaling Jaya", type="air")
    post_record(client, user_headers, klcc.id, aqi=40, pm25=10, recordedAt=iso_hours_ago(2))
    post_record(client, user_headers, klcc.id, aqi=160, pm25=70, recordedAt=iso_hours_ago(1))
    post_record(client, user_headers, shah_alam.id, aqi=300, pm25=200, recordedAt=iso_hours_ago(48))
    post_record(client, user_headers, shah_alam.id, aqi=20, pm25=5, recordedAt=iso_hours_ago(5))
    post_record(client, user_headers, shah_alam.id, aqi=60, pm25=20, recordedAt=iso_hours_ago(3))
    # outside the window: not a reporting station
    post_record(client, user_headers, petaling_jaya.id, aqi=10, pm25=2, recordedAt=iso_hours_ago(30))

    res = client.get(f"{RECORDS_URL}/stats/dashboard", headers=user_headers)
    assert res.status_code == 200
    # every in-window row carries its point's latest reading: 160, 160, 60, 60
    assert res.get_json()["stats"] == {
        "active_stations": 2,
        "total_records": 4,
        "avg_aqi": 110.0,
        "avg_pm25": 45.0,
        "good_air_count": 0,
        "unhealthy_air_count": 2,
    }

def test_dashboard_stats_ignore_earlier_readings_of_a_point(client, user_headers):
    point = create_point("KLCC", type="air")
    post_record(client, user_headers, point.id, aqi=40, recordedAt=iso_hours_ago(2))
    post_record(client, user_headers, point.id, aqi=160, recordedAt=iso_hours_ago(1))

    stats = client.get(f"{RECORDS_URL}/stats/dashboard", headers=user_headers).get_json()["stats"]
    assert stats["avg_aqi"] == 160
    assert stats["good_air_count"] == 0
    assert stats["unhealthy_air_count"] == 2
    assert stats["avg_pm25"] is None

def test_dashboard_stats_without_recent_readings(client, user_headers):
    point = create_point()
    post_record(client, user_headers, point.id, aqi=40, recordedAt=iso_hours_ago(30))

    stats = client.get(f"{RECORDS_URL}/stats/dashboard", headers=user_headers).get_json()["stats"]
    assert stats == {
        "active_stations": 0,
        "total_records": 0,
        "avg_aqi": None,
        "avg_pm25": None,
        "good_air_count": 0,
        "unhealthy_air_count": 0,
    }
