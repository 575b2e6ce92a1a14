"""HTTP entrypoint serving the strategy map page and its JSON API."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict

from flask import Flask, Response, jsonify, render_template, request, url_for

from strategy_map.core.config import get_settings
from strategy_map.core.map_view import render_map_html
from strategy_map.core.state import PANEL_MODES, MapState
from strategy_map.etl.transform import to_client_row, to_insight_row
from strategy_map.jobs import entries
from strategy_map.models import INDUSTRIES

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & state ----------
app = Flask(__name__)
_state = MapState()

_TRUTHY = {"1", "true", "yes"}


def _confirmed() -> bool:
    return request.args.get("confirm", "").lower() in _TRUTHY


def _state_payload() -> Dict[str, Any]:
    selected = _state.selected_client
    return {
        "total": len(_state.clients),
        "visible": len(_state.visible_clients),
        "search_term": _state.search_term,
        "mode": _state.mode,
        "editing_id": _state.editing_id,
        "progress": _state.progress,
        "loading": _state.loading,
        "analyzing": _state.analyzing,
        "selected": to_client_row(selected) if selected else None,
        "insight": to_insight_row(_state.insight) if _state.show_insight else None,
        "assistant_response": _state.assistant_response,
    }


def _entry_error(exc: entries.EntryError):
    if isinstance(exc, entries.ClientNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, entries.BusyError):
        return jsonify({"error": str(exc)}), 409
    return jsonify({"error": str(exc)}), 422


# ---------- Routes ----------


@app.get("/")
def index() -> Any:
    settings = get_settings()
    select_id = request.args.get("select")
    if select_id:
        _state.select(select_id)
    return render_template(
        "index.html",
        state=_state,
        industries=INDUSTRIES,
        clients=[to_client_row(c) for c in _state.visible_clients],
        insight=to_insight_row(_state.insight) if _state.show_insight else None,
        center=(settings.map_center_lat, settings.map_center_lng),
    )


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "gemini_configured": bool(settings.gemini_api_key),
                "clients": len(_state.clients),
            }
        ),
        200,
    )


@app.get("/map")
def map_view() -> Any:
    settings = get_settings()
    html = render_map_html(
        _state.visible_clients,
        (settings.map_center_lat, settings.map_center_lng),
        settings.map_zoom,
        select_url_template=url_for("index") + "?select={id}",
    )
    return Response(html, mimetype="text/html")


@app.get("/api/state")
def get_state() -> Any:
    return jsonify({"data": _state_payload()}), 200


@app.get("/api/clients")
def list_clients() -> Any:
    if "q" in request.args:
        _state.search_term = request.args.get("q", "")
    rows = [to_client_row(c) for c in _state.visible_clients]
    return jsonify({"data": rows, "total": len(_state.clients), "visible": len(rows)}), 200


@app.post("/api/clients")
def add_client() -> Any:
    """
    Geocode and add a single entry.
    Required JSON fields: name, address
    Optional: industry (one of INDUSTRIES), revenue, notes
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    required = ("name", "address")
    missing = [f for f in required if not str(payload.get(f) or "").strip()]
    if missing:
        return jsonify({"error": f"missing fields: {', '.join(missing)}"}), 400

    industry = payload.get("industry")
    if industry and industry not in INDUSTRIES:
        return jsonify({"error": f"industry must be one of: {', '.join(INDUSTRIES)}"}), 400

    try:
        client = entries.add_single_entry(_state, payload)
    except entries.EntryError as exc:
        return _entry_error(exc)
    return jsonify({"data": to_client_row(client)}), 201


@app.put("/api/clients/<client_id>")
def edit_client(client_id: str) -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    # Imported clients may carry a category outside the list; resending it is not a change.
    existing = _state.get_client(client_id)
    industry = payload.get("industry")
    unchanged = existing is not None and industry == existing.industry
    if industry and industry not in INDUSTRIES and not unchanged:
        return jsonify({"error": f"industry must be one of: {', '.join(INDUSTRIES)}"}), 400

    try:
        client = entries.edit_entry(_state, client_id, payload)
    except entries.EntryError as exc:
        return _entry_error(exc)
    return jsonify({"data": to_client_row(client)}), 200


@app.delete("/api/clients/<client_id>")
def delete_client(client_id: str) -> Any:
    deleted = _state.delete_client(client_id, confirmed=_confirmed())
    return jsonify({"data": {"deleted": deleted}}), 200


@app.delete("/api/clients")
def clear_clients() -> Any:
    cleared = _state.clear(confirmed=_confirmed())
    return jsonify({"data": {"cleared": cleared}}), 200


@app.post("/api/clients/import")
def bulk_import() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    text = str(payload.get("text") or "")
    if not text.strip():
        return jsonify({"error": "text is required"}), 400

    _state.bulk_text = text
    try:
        added = entries.run_bulk_import(_state, text)
    except entries.EntryError as exc:
        return _entry_error(exc)
    return jsonify({"data": [to_client_row(c) for c in added]}), 201


@app.post("/api/clients/restore")
def restore_defaults() -> Any:
    _state.restore_defaults()
    return jsonify({"data": _state_payload()}), 200


@app.post("/api/clients/<client_id>/select")
def select_client(client_id: str) -> Any:
    if not _state.select(client_id):
        return jsonify({"error": f"Client {client_id} not found."}), 404
    return jsonify({"data": to_client_row(_state.selected_client)}), 200


@app.post("/api/panel")
def toggle_panel() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    mode = payload.get("mode")
    if mode not in PANEL_MODES:
        return jsonify({"error": f"mode must be one of: {', '.join(PANEL_MODES)}"}), 400

    editing_id = payload.get("client_id")
    if mode == "edit" and _state.get_client(str(editing_id or "")) is None:
        return jsonify({"error": "client_id must name an existing client"}), 400

    _state.toggle_mode(mode, editing_id)
    return jsonify({"data": {"mode": _state.mode, "editing_id": _state.editing_id}}), 200


@app.post("/api/insight")
def create_insight() -> Any:
    if _state.analyzing:
        return jsonify({"error": "analysis already running"}), 409
    insight = entries.generate_insight(_state)
    return jsonify({"data": to_insight_row(insight)}), 200


@app.delete("/api/insight")
def dismiss_insight() -> Any:
    _state.dismiss_insight()
    return jsonify({"data": None}), 200


@app.post("/api/assistant")
def query_assistant() -> Any:
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    if "query" in payload:
        _state.search_term = str(payload.get("query") or "")
    if _state.assistant_loading:
        return jsonify({"error": "assistant query already running"}), 409
    reply = entries.ask_assistant(_state)
    return jsonify({"data": {"response": reply}}), 200


@app.delete("/api/assistant")
def dismiss_assistant() -> Any:
    _state.dismiss_assistant()
    return jsonify({"data": None}), 200


@app.get("/api/export")
def export_clients() -> Any:
    body = json.dumps({"clients": [to_client_row(c) for c in _state.clients]}, indent=2)
    return Response(
        body,
        mimetype="application/json",
        headers={"Content-Disposition": "attachment; filename=clients.json"},
    )


def main() -> None:
    settings = get_settings()
    port = int(os.getenv("PORT") or settings.port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)

    # One request at a time: page state is a single in-memory session.
    app.run(host="0.0.0.0", port=port, threaded=False)


if __name__ == "__main__":
    main()
