from fastapi.testclient import TestClient

from conftest import RecordingNotifier, local_time, make_settings, reading_payload
from plant_monitor.core.exceptions import PersistenceError
from plant_monitor.crud.memory import InMemoryReadingStore
from plant_monitor.main import create_app


def test_root_reports_counters(client):
    client.post("/api/readings", json=reading_payload())

    body = client.get("/").json()

    assert body["totalReadings"] == 1
    assert body["devices"] == 1
    assert body["alertsDispatched"] == 0


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


def test_submit_reading_returns_stored_reading_and_totals(client, clock):
    response = client.post(
        "/api/readings",
        json=reading_payload(wifiRSSI=-58, freeHeap=201000, sendAttempt=1),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["totalReadings"] == 1
    assert body["deviceReadingCount"] == 1
    assert body["data"]["deviceId"] == "D1"
    assert body["data"]["wifiRSSI"] == -58
    assert body["data"]["freeHeap"] == 201000
    assert body["data"]["soilCondition"] == "Good"
    assert body["alert"] == {"dispatched": False, "reason": "no_bad_condition", "trigger": None}


def test_conditions_default_to_unknown_and_ignore_case(client):
    body = client.post(
        "/api/readings",
        json={"deviceId": "D1", "soilValue": 1200, "ldrValue": 800, "lightCondition": "bad"},
    ).json()

    assert body["data"]["soilCondition"] == "Unknown"
    assert body["data"]["lightCondition"] == "Bad"


def test_missing_required_fields_rejected_before_storage(client, store):
    for missing in ("deviceId", "soilValue", "ldrValue"):
        payload = reading_payload()
        del payload[missing]

        response = client.post("/api/readings", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Missing required fields"
        assert any(error["field"] == missing for error in body["errors"])

    assert store.count() == 0


def test_blank_device_id_and_bad_condition_rejected(client, store):
    assert client.post("/api/readings", json=reading_payload(deviceId="   ")).status_code == 400
    assert client.post("/api/readings", json=reading_payload(soilCondition="Terrible")).status_code == 400
    assert client.post("/api/readings", json=reading_payload(soilValue="wet")).status_code == 400
    assert store.count() == 0


def test_soil_alert_then_cooldown_scenario(client, clock, notifier, app):
    payload = reading_payload(soilCondition="Bad", lightCondition="Good")

    first = client.post("/api/readings", json=payload).json()
    first_at = clock.now
    clock.advance(minutes=2)
    second = client.post("/api/readings", json=payload).json()

    assert first["alert"] == {"dispatched": True, "reason": "dispatched", "trigger": "soil"}
    assert second["alert"]["dispatched"] is False
    assert second["alert"]["reason"] == "cooldown"
    assert second["totalReadings"] == 2
    assert len(notifier.sent) == 1
    assert notifier.sent[0].recipient == "grower@example.com"
    assert app.state.services.policy.last_alert_at == first_at


def test_light_alert_suppressed_at_night(client, clock, notifier):
    clock.set(local_time(22, 0))

    body = client.post("/api/readings", json=reading_payload(lightCondition="Bad")).json()

    assert body["alert"]["reason"] == "night_suppressed"
    assert notifier.sent == []


def test_light_alert_sent_by_day(client, clock, notifier):
    clock.set(local_time(7, 30))

    body = client.post("/api/readings", json=reading_payload(lightCondition="Bad")).json()

    assert body["alert"]["trigger"] == "light"
    assert len(notifier.sent) == 1
    assert "light" in notifier.sent[0].body


def test_dispatcher_failure_does_not_fail_ingestion(settings, store, clock):
    failing = RecordingNotifier(fail=True)
    app = create_app(settings, store=store, notifier=failing, clock=clock)

    with TestClient(app) as failing_client:
        response = failing_client.post("/api/readings", json=reading_payload(soilCondition="Bad"))

    assert response.status_code == 201
    assert response.json()["alert"]["dispatched"] is True
    assert len(failing.sent) == 1
    assert store.count() == 1
    assert app.state.services.policy.last_alert_at == clock.now


def test_list_readings_paginates_newest_first(client, clock):
    for soil in (100, 200, 300):
        client.post("/api/readings", json=reading_payload(soilValue=soil))
        clock.advance(seconds=30)
    client.post("/api/readings", json=reading_payload(deviceId="D2", soilValue=999))

    body = client.get("/api/readings", params={"limit": 2, "skip": 1, "deviceId": "D1"}).json()

    assert body["total"] == 3
    assert body["count"] == 2
    assert [item["soilValue"] for item in body["items"]] == [200, 100]


def test_list_readings_hours_window(client, clock):
    client.post("/api/readings", json=reading_payload(soilValue=1))
    clock.advance(hours=3)
    client.post("/api/readings", json=reading_payload(soilValue=2))

    body = client.get("/api/readings", params={"hours": 1}).json()

    assert [item["soilValue"] for item in body["items"]] == [2]


def test_list_readings_rejects_bad_limit(client):
    response = client.get("/api/readings", params={"limit": 0})

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_latest_reading(client, clock):
    assert client.get("/api/readings/latest").status_code == 404

    client.post("/api/readings", json=reading_payload(deviceId="A", soilValue=1))
    clock.advance(seconds=5)
    client.post("/api/readings", json=reading_payload(deviceId="B", soilValue=2))

    assert client.get("/api/readings/latest").json()["data"]["soilValue"] == 2
    assert client.get("/api/readings/latest", params={"deviceId": "A"}).json()["data"]["soilValue"] == 1

    missing = client.get("/api/readings/latest", params={"deviceId": "Z"})
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "message": "No data found"}


def test_devices_report_presence(client, clock):
    client.post("/api/readings", json=reading_payload())
    clock.advance(seconds=179)

    devices = client.get("/api/devices").json()
    assert devices["count"] == 1
    assert devices["items"][0]["status"] == "connected"
    assert devices["items"][0]["totalReadingCount"] == 1
    assert devices["items"][0]["latestReading"]["soilValue"] == 2800

    clock.advance(seconds=2)
    device = client.get("/api/devices/D1").json()["data"]
    assert device["status"] == "disconnected"
    assert device["secondsSinceLastSeen"] == 181


def test_unknown_device_is_404(client):
    assert client.get("/api/devices/nope").status_code == 404


def test_alert_state_endpoint(client, clock):
    client.post("/api/readings", json=reading_payload(soilCondition="Bad"))
    clock.advance(minutes=10)

    state = client.get("/api/alerts/state").json()

    assert state["alertsDispatched"] == 1
    assert state["cooldownRemainingSeconds"] == 1200
    assert state["isNight"] is False


def test_stats(client):
    client.post("/api/readings", json=reading_payload(soilCondition="Bad"))

    data = client.get("/api/stats").json()["data"]

    assert data["totalReadings"] == 1
    assert data["deviceCount"] == 1
    assert data["connectedDevices"] == 1
    assert data["alertsDispatched"] == 1
    assert data["latestReading"]["deviceId"] == "D1"


def test_delete_clears_readings_and_presence(client):
    client.post("/api/readings", json=reading_payload())
    client.post("/api/readings", json=reading_payload(deviceId="D2"))

    body = client.delete("/api/readings").json()

    assert body == {"success": True, "message": "All readings deleted", "deletedCount": 2}
    assert client.get("/api/readings").json()["total"] == 0
    assert client.get("/api/devices").json()["count"] == 0


def test_retention_evicts_oldest(store, notifier, clock):
    app = create_app(make_settings(max_readings=2), store=store, notifier=notifier, clock=clock)

    with TestClient(app) as small_client:
        for soil in (1, 2, 3):
            clock.advance(seconds=1)
            small_client.post("/api/readings", json=reading_payload(soilValue=soil))
        items = small_client.get("/api/readings").json()["items"]
        device = small_client.get("/api/devices/D1").json()["data"]

    assert [item["soilValue"] for item in items] == [3, 2]
    assert device["totalReadingCount"] == 3


def test_persistence_failure_is_server_error(settings, notifier, clock):
    class UnavailableStore(InMemoryReadingStore):
        def create(self, obj_in, received_at):
            raise PersistenceError()

    app = create_app(settings, store=UnavailableStore(), notifier=notifier, clock=clock)

    with TestClient(app) as failing_client:
        response = failing_client.post("/api/readings", json=reading_payload(soilCondition="Bad"))

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Storage unavailable"}
    assert notifier.sent == []
    assert app.state.services.policy.last_alert_at is None


def test_presence_write_failure_keeps_no_reading(settings, notifier, clock):
    class PresenceUnavailable(InMemoryReadingStore):
        def save_presence(self, record):
            raise PersistenceError()

    store = PresenceUnavailable()
    app = create_app(settings, store=store, notifier=notifier, clock=clock)

    with TestClient(app) as failing_client:
        response = failing_client.post("/api/readings", json=reading_payload(soilCondition="Bad"))
        listed = failing_client.get("/api/readings").json()

    assert response.status_code == 500
    assert store.count() == 0
    assert store.list_presence() == []
    assert listed["total"] == 0
    assert notifier.sent == []
    assert app.state.services.policy.last_alert_at is None


def test_sql_presence_failure_rolls_back_reading(tmp_path, notifier, clock):
    settings = make_settings(storage_backend="sql", database_url=f"sqlite:///{tmp_path / 'api.db'}")
    app = create_app(settings, notifier=notifier, clock=clock)

    with TestClient(app) as sql_client:
        sql_client.post("/api/readings", json=reading_payload())
        with app.state.services.store.engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE device_presence")

        response = sql_client.post("/api/readings", json=reading_payload(soilValue=1))

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Storage unavailable"}
        assert app.state.services.store.count() == 1


def test_sql_backend_end_to_end(tmp_path, notifier, clock):
    settings = make_settings(storage_backend="sql", database_url=f"sqlite:///{tmp_path / 'api.db'}")
    app = create_app(settings, notifier=notifier, clock=clock)

    with TestClient(app) as sql_client:
        created = sql_client.post("/api/readings", json=reading_payload(soilCondition="Bad"))
        clock.advance(seconds=10)
        latest = sql_client.get("/api/readings/latest", params={"deviceId": "D1"}).json()["data"]
        devices = sql_client.get("/api/devices").json()["items"]

    assert created.status_code == 201
    assert latest["soilCondition"] == "Bad"
    assert devices[0]["status"] == "connected"
    assert devices[0]["secondsSinceLastSeen"] == 10
    assert len(notifier.sent) == 1


def test_cors_allows_configured_origin(client):
    response = client.options(
        "/api/readings",
        headers={"Origin": "http://localhost:8501", "Access-Control-Request-Method": "POST"},
    )

    assert response.headers["access-control-allow-origin"] == "http://localhost:8501"


def test_timestamp_passthrough(client):
    sent_at = local_time(9, 59).isoformat()

    body = client.post("/api/readings", json=reading_payload(timestamp=sent_at)).json()

    assert body["data"]["deviceTimestamp"].startswith("2026-05-01T04:14")


def test_delete_keeps_alert_cooldown(client, notifier):
    client.post("/api/readings", json=reading_payload(soilCondition="Bad"))
    client.delete("/api/readings")

    body = client.post("/api/readings", json=reading_payload(soilCondition="Bad")).json()

    assert body["alert"]["reason"] == "cooldown"
    assert len(notifier.sent) == 1
    assert client.get("/api/alerts/state").json()["alertsDispatched"] == 1
