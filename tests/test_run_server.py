import json

import pytest

from strategy_map.core.state import MapState
from strategy_map.jobs import entries, run_server
from strategy_map.models import Client, StrategicInsight


class DummySettings:
    gemini_api_key = "key"
    map_center_lat = 27.273
    map_center_lng = -80.3582
    map_zoom = 12
    port = 8080


@pytest.fixture(autouse=True)
def fresh_state(monkeypatch):
    state = MapState()
    monkeypatch.setattr(run_server, "_state", state)
    monkeypatch.setattr(run_server, "get_settings", lambda: DummySettings())
    return state


@pytest.fixture
def client():
    return run_server.app.test_client()


def _geo(lat, lng, address):
    return {"latitude": lat, "longitude": lng, "confidence": 1, "formattedAddress": address}


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["clients"] == 3


def test_index_renders_page(client):
    response = client.get("/")
    assert response.status_code == 200
    assert b"Slater Strategies" in response.data
    assert b"Entry Hub" in response.data


def test_index_select_param(client, fresh_state):
    client.get("/?select=oakwood-1")
    assert fresh_state.selected_id == "oakwood-1"


def test_map_view_renders_markers(client):
    response = client.get("/map")
    assert response.status_code == 200
    assert b"White Pines Learning" in response.data
    assert b"/?select=white-pines-1" in response.data


def test_list_clients_filters(client, fresh_state):
    response = client.get("/api/clients?q=charter")
    body = response.get_json()
    assert [row["id"] for row in body["data"]] == ["white-pines-1"]
    assert body["total"] == 3
    assert body["visible"] == 1
    assert fresh_state.search_term == "charter"


def test_add_client_validates_payload(client):
    assert client.post("/api/clients", json={}).status_code == 400
    assert client.post("/api/clients", json={"name": "A"}).status_code == 400
    assert client.post("/api/clients", json={"name": "A", "address": "B", "industry": "Bakery"}).status_code == 400


def test_add_client_success(client, fresh_state, monkeypatch):
    monkeypatch.setattr(entries.gemini, "geocode_address", lambda address: _geo(27.1, -80.1, "1 Main St, FL"))

    response = client.post(
        "/api/clients", json={"name": "Lincoln High", "address": "1 Main St", "industry": "Public School"}
    )

    assert response.status_code == 201
    assert response.get_json()["data"]["address"] == "1 Main St, FL"
    assert fresh_state.clients[0].name == "Lincoln High"


def test_add_client_geocode_failure(client, fresh_state, monkeypatch):
    def boom(address):
        raise entries.gemini.GeminiError("nope")

    monkeypatch.setattr(entries.gemini, "geocode_address", boom)

    response = client.post("/api/clients", json={"name": "Ghost", "address": "Nowhere"})

    assert response.status_code == 422
    assert response.get_json()["error"] == "Could not find location."
    assert len(fresh_state.clients) == 3


def test_add_client_busy(client, fresh_state):
    fresh_state.loading = True
    assert client.post("/api/clients", json={"name": "A", "address": "B"}).status_code == 409


def test_edit_client(client, fresh_state, monkeypatch):
    monkeypatch.setattr(entries.gemini, "geocode_address", lambda address: pytest.fail("address unchanged"))

    response = client.put("/api/clients/oakwood-1", json={"name": "Oakwood Academy", "address": "Port St. Lucie, FL"})

    assert response.status_code == 200
    assert response.get_json()["data"]["latitude"] == 27.25
    assert fresh_state.clients[2].name == "Oakwood Academy"
    assert client.put("/api/clients/ghost", json={"name": "x"}).status_code == 404


def _add_imported_client(state):
    state.add_client(
        Client(id="g1", name="Acme Gutters", address="1 Roof Way", industry="Gutters", latitude=27.0, longitude=-80.0)
    )


def test_edit_form_preselects_category_outside_list(client, fresh_state):
    _add_imported_client(fresh_state)
    fresh_state.set_mode("edit", "g1")

    html = client.get("/").get_data(as_text=True)

    form = html[html.index('<select name="industry">'):]
    form = form[: form.index("</select>")]
    assert "<option selected>Gutters</option>" in form
    assert form.count("selected") == 1


def test_edit_keeps_category_outside_list(client, fresh_state):
    _add_imported_client(fresh_state)

    response = client.put("/api/clients/g1", json={"name": "Acme Gutters LLC", "industry": "Gutters"})

    assert response.status_code == 200
    assert response.get_json()["data"]["industry"] == "Gutters"
    assert fresh_state.clients[0].name == "Acme Gutters LLC"
    assert client.put("/api/clients/g1", json={"industry": "Siding"}).status_code == 400


def test_delete_client_requires_confirm(client, fresh_state):
    response = client.delete("/api/clients/slater-1")
    assert response.get_json()["data"]["deleted"] is False
    assert len(fresh_state.clients) == 3

    response = client.delete("/api/clients/slater-1?confirm=true")
    assert response.get_json()["data"]["deleted"] is True

    response = client.delete("/api/clients/slater-1?confirm=true")
    assert response.status_code == 200
    assert response.get_json()["data"]["deleted"] is False


def test_clear_and_restore(client, fresh_state):
    client.delete("/api/clients?confirm=true")
    assert fresh_state.clients == []

    response = client.post("/api/clients/restore")
    assert response.get_json()["data"]["total"] == 3


def test_bulk_import_endpoint(client, fresh_state, monkeypatch):
    monkeypatch.setattr(
        entries.gemini,
        "extract_entries",
        lambda text: [
            {"name": "A", "address": "a", "industry": "Charter"},
            {"name": "B", "address": "b", "industry": "Roofing"},
        ],
    )
    monkeypatch.setattr(entries.gemini, "geocode_address", lambda address: _geo(1, 1, address.upper()))

    response = client.post("/api/clients/import", json={"text": "A: a\nB: b"})

    assert response.status_code == 201
    assert [row["address"] for row in response.get_json()["data"]] == ["A", "B"]
    assert len(fresh_state.clients) == 5


def test_bulk_import_endpoint_failures(client, fresh_state, monkeypatch):
    assert client.post("/api/clients/import", json={"text": "  "}).status_code == 400

    monkeypatch.setattr(entries.gemini, "extract_entries", lambda text: [])
    response = client.post("/api/clients/import", json={"text": "junk"})
    assert response.status_code == 422
    assert "School Name: Address" in response.get_json()["error"]
    assert len(fresh_state.clients) == 3


def test_panel_toggle(client, fresh_state):
    assert client.post("/api/panel", json={"mode": "bogus"}).status_code == 400
    assert client.post("/api/panel", json={"mode": "edit", "client_id": "ghost"}).status_code == 400

    assert client.post("/api/panel", json={"mode": "bulk"}).get_json()["data"]["mode"] == "bulk"
    assert client.post("/api/panel", json={"mode": "bulk"}).get_json()["data"]["mode"] == "none"

    data = client.post("/api/panel", json={"mode": "edit", "client_id": "slater-1"}).get_json()["data"]
    assert data == {"mode": "edit", "editing_id": "slater-1"}
    assert b"Save Changes" in client.get("/").data


def test_select_client(client):
    assert client.post("/api/clients/oakwood-1/select").status_code == 200
    assert client.post("/api/clients/ghost/select").status_code == 404
    assert client.get("/api/state").get_json()["data"]["selected"]["id"] == "oakwood-1"


def test_insight_lifecycle(client, fresh_state, monkeypatch):
    monkeypatch.setattr(
        entries.gemini,
        "analyze_distribution",
        lambda clients: {"summary": "Clustered", "recommendations": ["A"], "hotspots": ["B"], "riskAreas": ["C"]},
    )

    response = client.post("/api/insight")
    assert response.get_json()["data"]["summary"] == "Clustered"
    assert client.get("/api/state").get_json()["data"]["insight"]["riskAreas"] == ["C"]

    client.delete("/api/insight")
    assert client.get("/api/state").get_json()["data"]["insight"] is None
    assert fresh_state.insight is not None


def test_insight_cleared_by_mutation(client, fresh_state):
    fresh_state.set_insight(StrategicInsight(summary="old"))
    client.delete("/api/clients/oakwood-1?confirm=true")
    assert client.get("/api/state").get_json()["data"]["insight"] is None


def test_assistant(client, fresh_state, monkeypatch):
    monkeypatch.setattr(entries.gemini, "ask_assistant", lambda query, context: f"{query}|{context}")

    response = client.post("/api/assistant", json={"query": "charter"})

    assert response.get_json()["data"]["response"] == "charter|White Pines Learning (Charter) at Port St. Lucie, FL"
    client.delete("/api/assistant")
    assert fresh_state.assistant_response is None


def test_export(client):
    response = client.get("/api/export")

    assert response.status_code == 200
    assert "attachment" in response.headers["Content-Disposition"]
    body = json.loads(response.data)
    assert [row["id"] for row in body["clients"]] == ["slater-1", "white-pines-1", "oakwood-1"]
