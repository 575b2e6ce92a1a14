"""Entry workflows: single add/edit, bulk import, insight and assistant requests.

Every external call is made synchronously and one at a time. Failures of the
Gemini boundary never escape as ``GeminiError``: geocode and extraction misses
become ``EntryError`` subclasses with user-facing messages, while analysis and
assistant failures degrade to an empty/placeholder result.
"""

import logging
import uuid
from dataclasses import replace
from typing import Any, Callable, List, Mapping, Optional

from strategy_map.core.config import ConfigError
from strategy_map.core.state import MapState
from strategy_map.etl.transform import (
    assistant_context,
    normalize_industry,
    parse_revenue,
    to_extracted_entries,
    to_geocode_result,
    to_strategic_insight,
)
from strategy_map.models import DEFAULT_INDUSTRY, Client, GeocodeResult, StrategicInsight
from strategy_map.vendors import gemini

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

ASSISTANT_ERROR_REPLY = "I encountered an error while processing your request."
ASSISTANT_EMPTY_REPLY = "I'm sorry, I couldn't process that query."


class EntryError(RuntimeError):
    """Base class for user-facing entry failures."""


class GeocodeNotFoundError(EntryError):
    def __init__(self, message: str = "Could not find location.") -> None:
        super().__init__(message)


class ExtractionEmptyError(EntryError):
    def __init__(self, message: str = "AI couldn't find any entries. Try: 'School Name: Address'") -> None:
        super().__init__(message)


class BulkGeocodeError(EntryError):
    def __init__(self, message: str = "Failed to geocode any addresses from the list.") -> None:
        super().__init__(message)


class ClientNotFoundError(EntryError):
    pass


class BusyError(EntryError):
    """Raised when a submission arrives while another one is still running."""


def geocode(address: str) -> Optional[GeocodeResult]:
    try:
        payload = gemini.geocode_address(address)
    except (gemini.GeminiError, ConfigError) as exc:
        logger.warning("Geocoding failed for %r: %s", address, exc)
        return None
    result = to_geocode_result(payload)
    if result is None:
        logger.warning("Geocoding returned no usable coordinates for %r", address)
    return result


def _new_id() -> str:
    return uuid.uuid4().hex


def _begin(state: MapState) -> None:
    if state.loading:
        raise BusyError("Another submission is still in progress.")
    state.loading = True


def add_single_entry(state: MapState, form: Mapping[str, Any]) -> Client:
    """Geocode the submitted address and prepend the resulting client."""
    _begin(state)
    try:
        address = str(form.get("address") or "").strip()
        result = geocode(address)
        if result is None:
            raise GeocodeNotFoundError()

        client = Client(
            id=_new_id(),
            name=str(form.get("name") or "").strip(),
            address=result.formatted_address or address,
            industry=normalize_industry(form.get("industry") or DEFAULT_INDUSTRY),
            latitude=result.latitude,
            longitude=result.longitude,
            revenue=parse_revenue(form.get("revenue")),
            notes=(str(form["notes"]).strip() or None) if form.get("notes") else None,
        )
        state.add_client(client)
        state.set_mode("none")
        return client
    finally:
        state.loading = False


def edit_entry(state: MapState, client_id: str, form: Mapping[str, Any]) -> Client:
    """Apply an edit, re-geocoding only when the address text changed.

    A failed re-geocode does not abort the edit: the other fields (including the
    new address text) are applied and the marker stays where it was.
    """
    existing = state.get_client(client_id)
    if existing is None:
        raise ClientNotFoundError(f"Client {client_id} not found.")

    _begin(state)
    try:
        address = str(form.get("address", existing.address) or "").strip() or existing.address
        updated = replace(
            existing,
            name=str(form.get("name", existing.name) or "").strip() or existing.name,
            industry=normalize_industry(form.get("industry", existing.industry) or existing.industry),
            revenue=parse_revenue(form["revenue"]) if "revenue" in form else existing.revenue,
            notes=(str(form["notes"] or "").strip() or None) if "notes" in form else existing.notes,
            address=address,
        )

        if address != existing.address:
            result = geocode(address)
            if result is not None:
                updated.latitude = result.latitude
                updated.longitude = result.longitude
                updated.address = result.formatted_address or address
            else:
                logger.warning("Re-geocode failed for %s; keeping original coordinates", client_id)

        state.update_client(updated)
        state.set_mode("none")
        return updated
    finally:
        state.loading = False


def run_bulk_import(
    state: MapState,
    raw_text: str,
    progress: Optional[ProgressCallback] = None,
) -> List[Client]:
    """Extract entries from free text and geocode them one by one.

    Entries that fail to geocode are dropped. The client list is only touched
    when at least one entry was located.
    """
    if not (raw_text or "").strip():
        return []

    def report(message: str) -> None:
        state.progress = message
        logger.info(message)
        if progress is not None:
            progress(message)

    _begin(state)
    try:
        report("AI is identifying schools and services...")
        try:
            payload = gemini.extract_entries(raw_text)
        except (gemini.GeminiError, ConfigError) as exc:
            logger.warning("Extraction failed: %s", exc)
            payload = []
        entries = to_extracted_entries(payload)
        if not entries:
            raise ExtractionEmptyError()

        batch = _new_id()
        new_clients: List[Client] = []
        for index, entry in enumerate(entries):
            report(f"Locating {index + 1}/{len(entries)}: {entry.name}...")
            result = geocode(entry.address)
            if result is None:
                continue
            new_clients.append(
                Client(
                    id=f"{batch}-{index}",
                    name=entry.name,
                    address=result.formatted_address or entry.address,
                    industry=entry.industry,
                    latitude=result.latitude,
                    longitude=result.longitude,
                )
            )

        if not new_clients:
            raise BulkGeocodeError()

        logger.info("Bulk import located %d of %d entries", len(new_clients), len(entries))
        state.add_clients(new_clients)
        state.set_mode("none")
        state.bulk_text = ""
        return new_clients
    finally:
        state.loading = False
        state.progress = ""


def generate_insight(state: MapState) -> Optional[StrategicInsight]:
    """Analyze the full client set; failures leave the panel hidden."""
    if not state.clients or state.analyzing:
        return None

    state.analyzing = True
    try:
        try:
            payload = gemini.analyze_distribution(state.clients)
        except (gemini.GeminiError, ConfigError) as exc:
            logger.warning("Strategic analysis failed: %s", exc)
            return None
        insight = to_strategic_insight(payload)
        if insight is not None:
            state.set_insight(insight)
        return insight
    finally:
        state.analyzing = False


def ask_assistant(state: MapState, query: Optional[str] = None) -> Optional[str]:
    """Answer a free-text question about the currently visible clients."""
    query = (query if query is not None else state.search_term).strip()
    if not query or state.assistant_loading:
        return None

    state.assistant_loading = True
    try:
        try:
            reply = gemini.ask_assistant(query, assistant_context(state.visible_clients))
        except (gemini.GeminiError, ConfigError) as exc:
            logger.warning("Assistant query failed: %s", exc)
            reply = ASSISTANT_ERROR_REPLY
        state.assistant_response = reply or ASSISTANT_EMPTY_REPLY
        return state.assistant_response
    finally:
        state.assistant_loading = False
