"""Utilities for turning Gemini payloads into models and views over the client list."""

import logging
import math
from typing import Any, Dict, Iterable, List, Optional

from strategy_map.models import INDUSTRIES, Client, ExtractedEntry, GeocodeResult, StrategicInsight

logger = logging.getLogger(__name__)

_INDUSTRY_LOOKUP = {name.lower(): name for name in INDUSTRIES}


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or isinstance(value, bool):
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_revenue(value: Any) -> float:
    """Lenient revenue parsing: anything unparsable counts as zero."""
    if isinstance(value, str):
        value = value.replace(",", "").replace("$", "").strip()
    return _safe_float(value) or 0.0


def normalize_industry(value: Any) -> str:
    text = str(value or "").strip()
    return _INDUSTRY_LOOKUP.get(text.lower(), text)


def to_geocode_result(payload: Optional[Dict[str, Any]]) -> Optional[GeocodeResult]:
    """Validate a geocode payload; anything without usable coordinates is a miss."""
    if not payload:
        return None

    latitude = _safe_float(payload.get("latitude"))
    longitude = _safe_float(payload.get("longitude"))
    if latitude is None or longitude is None:
        logger.debug("Geocode payload without usable coordinates: %s", payload)
        return None
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        logger.debug("Geocode coordinates out of range: lat=%s lng=%s", latitude, longitude)
        return None

    return GeocodeResult(
        latitude=latitude,
        longitude=longitude,
        confidence=_safe_float(payload.get("confidence")) or 0.0,
        formatted_address=str(payload.get("formattedAddress") or "").strip(),
    )


def to_extracted_entries(payload: Optional[Iterable[Any]]) -> List[ExtractedEntry]:
    entries: List[ExtractedEntry] = []
    for raw in payload or []:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        address = str(raw.get("address") or "").strip()
        if not name or not address:
            logger.debug("Skipping incomplete extracted entry: %s", raw)
            continue
        entries.append(ExtractedEntry(name=name, address=address, industry=normalize_industry(raw.get("industry"))))
    return entries


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def to_strategic_insight(payload: Optional[Dict[str, Any]]) -> Optional[StrategicInsight]:
    if not payload or "summary" not in payload:
        return None
    return StrategicInsight(
        summary=str(payload.get("summary") or ""),
        recommendations=_string_list(payload.get("recommendations")),
        hotspots=_string_list(payload.get("hotspots")),
        risk_areas=_string_list(payload.get("riskAreas")),
    )


def filter_clients(clients: Iterable[Client], search_term: str) -> List[Client]:
    """Case-insensitive substring match over name and industry."""
    if not (search_term or "").strip():
        return list(clients)
    # Only blankness is judged on the trimmed term; matching uses it as typed.
    term = search_term.lower()
    return [c for c in clients if term in c.name.lower() or term in c.industry.lower()]


def assistant_context(clients: Iterable[Client]) -> str:
    context = ", ".join(f"{c.name} ({c.industry}) at {c.address}" for c in clients)
    return context or "No schools currently on the map."


def to_client_row(client: Client) -> Dict[str, Any]:
    return {
        "id": client.id,
        "name": client.name,
        "address": client.address,
        "industry": client.industry,
        "revenue": client.revenue,
        "latitude": client.latitude,
        "longitude": client.longitude,
        "notes": client.notes,
    }


def to_insight_row(insight: Optional[StrategicInsight]) -> Optional[Dict[str, Any]]:
    if insight is None:
        return None
    return {
        "summary": insight.summary,
        "recommendations": list(insight.recommendations),
        "hotspots": list(insight.hotspots),
        "riskAreas": list(insight.risk_areas),
    }
