# test_files/test_api.py

# python -m pytest test_files/test_api.py

import asyncio
import json
from datetime import datetime, timedelta

from starlette.requests import Request

from routes.streaming import stream_power_output
from services.pagination import normalize_query_params, pagination_meta, validate_pagination
from services.stream_manager import StreamManager
from services.time_utils import utc_now


def create_turbine(client, name, **fields):
    response = client.post("/api/1/windturbines", json={"name": name, **fields})
    assert response.status_code == 201
    return response.json()


def create_work_order(client, turbine_id, **fields):
    body = {"windTurbineId": turbine_id, "title": "Blade inspection", **fields}
    response = client.post("/api/1/workorders", json=body)
    assert response.status_code == 201
    return response.json()


# --- utilities ---

def test_validate_pagination_clamps_values():
    assert validate_pagination(None, None) == (1, 25, 0)
    assert validate_pagination("3", "10") == (3, 10, 20)
    assert validate_pagination("0", "500") == (1, 100, 0)
    assert validate_pagination("abc", "-5") == (1, 1, 0)


def test_pagination_meta():
    assert pagination_meta(2, 10, 25) == {
        "page": 2, "limit": 10, "total": 25, "totalPages": 3, "hasNext": True, "hasPrev": True,
    }
    assert pagination_meta(1, 25, 0)["totalPages"] == 0


def test_normalize_query_params_is_case_insensitive():
    params = normalize_query_params({"WINDTURBINEIDS": "a,b", "Interval": "5", "other": "x"},
                                    ["windTurbineIds", "interval"])
    assert params == {"windTurbineIds": "a,b", "interval": "5", "other": "x"}


# --- service endpoints ---

def test_health_and_index(client):
    assert client.get("/health").json()["status"] == "OK"
    index = client.get("/api/1").json()
    assert index["endpoints"]["websocket"] == "/api/1/ws/power-output"


def test_unknown_route_is_404_json(client):
    response = client.get("/api/1/nothing-here")
    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"


def test_cors_headers_for_browser_clients(client):
    origin = "http://dashboard.example"
    response = client.get("/health", headers={"Origin": origin})
    assert response.headers["access-control-allow-origin"] == "*"

    preflight = client.options("/api/1/windturbines", headers={
        "Origin": origin,
        "Access-Control-Request-Method": "POST",
    })
    assert preflight.status_code == 200
    assert "POST" in preflight.headers["access-control-allow-methods"]


# --- wind turbines ---

def test_create_single_turbine_returns_object(client):
    turbine = create_turbine(client, "Swift-Eagle-001",
                             manufacturer={"name": "Vestas", "country": "Denmark"},
                             ratedCapacityKW=3000)
    assert turbine["name"] == "Swift-Eagle-001"
    assert turbine["manufacturer"] == {"name": "Vestas", "country": "Denmark"}
    assert turbine["ratedCapacityKW"] == 3000
    assert turbine["active"] is True


def test_create_turbine_array_returns_list(client):
    response = client.post("/api/1/windturbines", json=[{"name": "A-1"}, {"name": "B-2"}])
    assert response.status_code == 201
    assert [t["name"] for t in response.json()] == ["A-1", "B-2"]


def test_create_turbine_requires_name(client):
    response = client.post("/api/1/windturbines", json={"latitude": 30})
    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"


def test_create_turbine_rejects_non_finite_numbers(client):
    for body in ({"name": "A-1", "ratedCapacityKW": float("inf")},
                 {"name": "A-1", "latitude": float("nan")}):
        response = client.post("/api/1/windturbines", content=json.dumps(body),
                               headers={"Content-Type": "application/json"})
        assert response.status_code == 400
    assert client.get("/api/1/windturbines").json()["data"] == []


def test_duplicate_turbine_name_conflicts(client):
    create_turbine(client, "Swift-Eagle-001")
    response = client.post("/api/1/windturbines", json={"name": "Swift-Eagle-001"})
    assert response.status_code == 409


def test_list_turbines_filters_and_paginates(client):
    for i in range(3):
        create_turbine(client, f"Storm-{i}", manufacturer={"name": "Nordex", "country": "Germany"})
    create_turbine(client, "Calm-9", active=False)

    body = client.get("/api/1/windturbines", params={"ACTIVE": "true", "limit": 2}).json()
    assert body["pagination"] == {
        "page": 1, "limit": 2, "total": 3, "totalPages": 2, "hasNext": True, "hasPrev": False,
    }
    assert [t["name"] for t in body["data"]] == ["Storm-0", "Storm-1"]

    body = client.get("/api/1/windturbines", params={"manufacturer": "nord"}).json()
    assert body["pagination"]["total"] == 3


def test_get_turbine_includes_recent_activity(client, repository, turbine):
    create_work_order(client, turbine["id"])
    client.post(f"/api/1/windturbines/{turbine['id']}/power-output", json={"powerKW": 800})

    body = client.get(f"/api/1/windturbines/{turbine['id']}").json()
    assert len(body["recentWorkOrders"]) == 1
    assert body["recentPowerOutputs"][0]["powerKW"] == 800


def test_get_missing_turbine_is_404(client):
    response = client.get("/api/1/windturbines/missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found", "message": "Wind turbine not found"}


def test_update_and_delete_turbine(client, turbine):
    response = client.patch(f"/api/1/windturbines/{turbine['id']}",
                            json={"active": False, "manufacturer": {"name": "Enercon", "country": "Germany"}})
    assert response.status_code == 200
    assert response.json()["active"] is False
    assert response.json()["manufacturer"]["name"] == "Enercon"

    assert client.delete(f"/api/1/windturbines/{turbine['id']}").status_code == 204
    assert client.get(f"/api/1/windturbines/{turbine['id']}").status_code == 404
    assert client.delete(f"/api/1/windturbines/{turbine['id']}").status_code == 404


def test_bulk_delete_turbines(client):
    ids = [create_turbine(client, name)["id"] for name in ("A", "B", "C")]
    response = client.request("DELETE", "/api/1/windturbines", json={"ids": ids[:2]})
    assert response.status_code == 204
    assert client.get("/api/1/windturbines").json()["pagination"]["total"] == 1

    response = client.request("DELETE", "/api/1/windturbines", json={"ids": []})
    assert response.status_code == 400


# --- power output ---

def test_power_output_create_and_list(client, turbine):
    url = f"/api/1/windturbines/{turbine['id']}/power-output"
    assert client.post(url, json={"powerKW": "lots"}).status_code == 400
    assert client.post("/api/1/windturbines/missing/power-output", json={"powerKW": 5}).status_code == 404

    now = utc_now()
    for minutes, power in ((10, 100), (20, 300), (60 * 30, 999)):
        timestamp = (now - timedelta(minutes=minutes)).isoformat() + "Z"
        assert client.post(url, json={"powerKW": power, "timestamp": timestamp}).status_code == 201

    body = client.get(url).json()
    assert body["turbineName"] == turbine["name"]
    assert body["aggregation"] == "none"
    assert [r["powerKW"] for r in body["data"]] == [100, 300]


def test_power_output_rejects_non_finite_power(client, turbine):
    response = client.post(f"/api/1/windturbines/{turbine['id']}/power-output",
                           content='{"powerKW": NaN}',
                           headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert client.get("/api/1/summary").status_code == 200


def test_power_output_aggregation(client, repository, turbine):
    repository.create_readings([
        {"windTurbineId": turbine["id"], "powerKW": 100.0, "timestamp": datetime(2024, 6, 1, 10, 5)},
        {"windTurbineId": turbine["id"], "powerKW": 300.0, "timestamp": datetime(2024, 6, 1, 10, 45)},
        {"windTurbineId": turbine["id"], "powerKW": 50.0, "timestamp": datetime(2024, 6, 1, 11, 15)},
    ])
    url = f"/api/1/windturbines/{turbine['id']}/power-output"
    params = {"from": "2024-06-01T00:00:00Z", "to": "2024-06-02T00:00:00Z", "aggregation": "hour"}

    body = client.get(url, params=params).json()
    assert body["totalRecords"] == 2
    assert body["data"][0] == {
        "period": "2024-06-01 11", "avgPowerKW": 50.0, "minPowerKW": 50.0, "maxPowerKW": 50.0, "readingCount": 1,
    }
    assert body["data"][1]["avgPowerKW"] == 200.0
    assert body["data"][1]["readingCount"] == 2

    assert client.get(url, params={"aggregation": "week"}).status_code == 400


# --- work orders ---

def test_create_work_order_validation(client, turbine):
    assert client.post("/api/1/workorders", json={"title": "x"}).status_code == 400
    assert client.post("/api/1/workorders",
                       json={"windTurbineId": "missing", "title": "x"}).status_code == 400
    assert client.post("/api/1/workorders",
                       json={"windTurbineId": turbine["id"], "title": "x", "status": "done"}).status_code == 400


def test_work_order_lifecycle(client, turbine):
    order = create_work_order(client, turbine["id"], description="Check pitch bearings")
    assert order["status"] == "open"
    assert order["windTurbine"]["name"] == turbine["name"]

    closed = client.patch(f"/api/1/workorders/{order['id']}", json={"status": "closed"}).json()
    assert closed["status"] == "closed"
    assert closed["resolutionDate"] is not None

    reopened = client.patch(f"/api/1/workorders/{order['id']}", json={"status": "in_progress"}).json()
    assert reopened["resolutionDate"] is None

    assert client.delete(f"/api/1/workorders/{order['id']}").status_code == 204
    assert client.delete(f"/api/1/workorders/{order['id']}").status_code == 404

    listed = client.get("/api/1/workorders").json()
    assert listed["pagination"]["total"] == 0
    listed = client.get("/api/1/workorders", params={"includeDeleted": "true"}).json()
    assert listed["pagination"]["total"] == 1

    details = client.get(f"/api/1/workorders/{order['id']}").json()
    assert details["deletedAt"] is not None


def test_work_order_array_and_filters(client, turbine):
    response = client.post("/api/1/workorders", json=[
        {"windTurbineId": turbine["id"], "title": "One"},
        {"windTurbineId": turbine["id"], "title": "Two", "status": "in_progress"},
    ])
    assert response.status_code == 201
    assert len(response.json()) == 2

    body = client.get("/api/1/workorders", params={"status": "in_progress"}).json()
    assert [o["title"] for o in body["data"]] == ["Two"]


def test_work_order_comments(client, turbine):
    order = create_work_order(client, turbine["id"])
    url = f"/api/1/workorders/{order['id']}/comments"

    assert client.post(url, json={"userId": "Ada"}).status_code == 400
    assert client.post("/api/1/workorders/missing/comments",
                       json={"userId": "Ada", "content": "Hi"}).status_code == 404

    for text in ("Crew dispatched.", "Parts ordered."):
        assert client.post(url, json={"userId": "Ada", "content": text}).status_code == 201

    body = client.get(url, params={"limit": 1}).json()
    assert body["pagination"]["total"] == 2
    assert body["data"][0]["content"] == "Crew dispatched."

    details = client.get(f"/api/1/workorders/{order['id']}").json()
    assert [c["content"] for c in details["comments"]] == ["Crew dispatched.", "Parts ordered."]
    assert "latitude" in details["windTurbine"]


def test_work_order_statistics(client, turbine):
    created = datetime(2024, 1, 1).isoformat()
    create_work_order(client, turbine["id"], status="closed", creationDate=created,
                      resolutionDate=datetime(2024, 1, 3).isoformat())
    create_work_order(client, turbine["id"])

    stats = client.get("/api/1/workorders/statistics").json()
    assert stats["statusDistribution"] == [{"status": "closed", "count": 1}, {"status": "open", "count": 1}]
    assert stats["averageResolutionDays"] == 2.0
    assert sum(day["count"] for day in stats["creationTrends"]) == 1


# --- summary ---

def test_summary(client, repository, turbine):
    create_work_order(client, turbine["id"])
    create_work_order(client, turbine["id"], status="in_progress")
    repository.create_readings([
        {"windTurbineId": turbine["id"], "powerKW": 100.0, "timestamp": utc_now() - timedelta(hours=1)},
        {"windTurbineId": turbine["id"], "powerKW": 201.0, "timestamp": utc_now() - timedelta(hours=2)},
    ])

    summary = client.get("/api/1/summary").json()
    assert summary == {
        "totalTurbines": 1,
        "activeTurbines": 1,
        "totalWorkOrders": 2,
        "openWorkOrders": 1,
        "inProgressWorkOrders": 1,
        "avgPowerOutput": 150.5,
    }

    per_turbine = client.get(f"/api/1/summary/windturbines/{turbine['id']}/workorders").json()
    assert per_turbine["totalWorkOrders"] == 2
    assert per_turbine["averageResolutionDays"] == 0.0

    first = client.get("/api/1/summary/debug/first-turbine").json()
    assert first["id"] == turbine["id"]
    assert first["testUrls"]["getTurbine"] == f"/api/1/windturbines/{turbine['id']}"


def test_summary_for_missing_turbine(client):
    assert client.get("/api/1/summary/windturbines/missing/workorders").status_code == 404
    assert client.get("/api/1/summary/debug/first-turbine").status_code == 404


# --- streaming ---

def test_stream_requires_turbine_ids(client):
    response = client.get("/api/1/stream/power-output")
    assert response.status_code == 400
    assert response.json()["error"] == "Validation Error"

    response = client.get("/api/1/stream/power-output", params={"windTurbineIds": "T1", "interval": "0"})
    assert response.status_code == 400


def test_stream_status_when_idle(client):
    assert client.get("/api/1/stream/status").json() == {
        "activeConnections": 0, "connections": [], "weather": None,
    }


def test_sse_stream_frames_events_and_unsubscribes_on_close(repository, calm_weather, turbine):
    manager = StreamManager(repository, calm_weather)
    request = Request({
        "type": "http",
        "method": "GET",
        "path": "/api/1/stream/power-output",
        "query_string": f"windTurbineIds={turbine['id']}&interval=60".encode(),
        "headers": [],
    })

    def parse(chunk):
        assert chunk.endswith("\n\n")
        event_line, data_line = chunk.rstrip("\n").split("\n")
        assert data_line.startswith("data: ")
        return event_line[len("event: "):], json.loads(data_line[len("data: "):])

    async def scenario():
        response = await stream_power_output(request, manager)
        first = await response.body_iterator.__anext__()
        second = await response.body_iterator.__anext__()
        open_count = manager.status()["activeConnections"]
        await response.body_iterator.aclose()
        return response, first, second, open_count

    response, first, second, open_count = asyncio.run(scenario())

    assert response.media_type == "text/event-stream"
    assert response.headers["cache-control"] == "no-cache"

    event, connected = parse(first)
    assert event == "connected"
    assert connected["turbineIds"] == [turbine["id"]]
    assert connected["intervalSeconds"] == 60

    event, batch = parse(second)
    assert event == "power-output"
    assert batch["turbineCount"] == 1
    assert batch["readings"][0]["turbineId"] == turbine["id"]

    assert open_count == 1
    assert manager.status()["activeConnections"] == 0
    assert len(repository.list_readings(turbine["id"])) == 1


def test_websocket_stream(client, turbine):
    with client.websocket_connect(f"/api/1/ws/power-output?windTurbineIds={turbine['id']}&interval=60") as ws:
        connected = ws.receive_json()
        assert connected["type"] == "connected"
        assert connected["turbineIds"] == [turbine["id"]]

        batch = ws.receive_json()
        assert batch["type"] == "power-output"
        assert batch["turbineCount"] == 1
        assert batch["readings"][0]["turbineName"] == turbine["name"]

        ws.send_text("not json")
        ws.send_json({"type": "ping"})
        assert ws.receive_json()["type"] == "pong"


def test_websocket_defaults_to_active_fleet(client, turbine):
    with client.websocket_connect("/api/1/ws/power-output") as ws:
        connected = ws.receive_json()
        assert connected["turbineIds"] == [turbine["id"]]


def test_websocket_rejects_bad_interval(client, turbine):
    with client.websocket_connect(f"/api/1/ws/power-output?windTurbineIds={turbine['id']}&interval=999") as ws:
        message = ws.receive_json()
        assert message["type"] == "error"
