"""Client utilities for the Gemini generative API."""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional

from google import genai

from strategy_map.core.config import ConfigError, get_settings
from strategy_map.models import INDUSTRIES, Client

logger = logging.getLogger(__name__)
_CLIENT: Optional[genai.Client] = None

GEOCODE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "latitude": {"type": "NUMBER"},
        "longitude": {"type": "NUMBER"},
        "confidence": {"type": "NUMBER"},
        "formattedAddress": {"type": "STRING"},
    },
    "required": ["latitude", "longitude", "confidence", "formattedAddress"],
}

ENTRY_LIST_SCHEMA: Dict[str, Any] = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "name": {"type": "STRING"},
            "address": {"type": "STRING"},
            "industry": {"type": "STRING"},
        },
        "required": ["name", "address", "industry"],
    },
}

INSIGHT_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "summary": {"type": "STRING"},
        "recommendations": {"type": "ARRAY", "items": {"type": "STRING"}},
        "hotspots": {"type": "ARRAY", "items": {"type": "STRING"}},
        "riskAreas": {"type": "ARRAY", "items": {"type": "STRING"}},
    },
    "required": ["summary", "recommendations", "hotspots", "riskAreas"],
}


class GeminiError(RuntimeError):
    """Raised when a Gemini request fails or returns an unusable response."""


def _get_client() -> genai.Client:
    global _CLIENT
    if _CLIENT is None:
        settings = get_settings()
        if not settings.gemini_api_key:
            raise ConfigError("GEMINI_API_KEY must be set to call Gemini.")
        _CLIENT = genai.Client(api_key=settings.gemini_api_key)
        logger.info("Gemini client initialised")
    return _CLIENT


def generate_text(prompt: str, model: str) -> str:
    client = _get_client()
    try:
        response = client.models.generate_content(model=model, contents=prompt)
    except Exception as exc:  # noqa: BLE001
        logger.error("generate_content failed: model=%s, error=%s", model, exc)
        raise GeminiError(str(exc)) from exc
    return response.text or ""


def generate_json(prompt: str, schema: Dict[str, Any], model: str) -> Any:
    """Request a JSON response constrained to ``schema`` and return it parsed."""
    client = _get_client()
    config = {"response_mime_type": "application/json", "response_schema": schema}
    try:
        response = client.models.generate_content(model=model, contents=prompt, config=config)
    except Exception as exc:  # noqa: BLE001
        logger.error("generate_content failed: model=%s, error=%s", model, exc)
        raise GeminiError(str(exc)) from exc

    text = response.text
    if not text:
        raise GeminiError(f"{model} returned an empty response")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("Unparseable JSON from %s: %s", model, text[:200])
        raise GeminiError("response was not valid JSON") from exc


def geocode_address(address: str) -> Dict[str, Any]:
    prompt = f'Geocode this address into latitude and longitude coordinates: "{address}". Return as JSON.'
    payload = generate_json(prompt, GEOCODE_SCHEMA, get_settings().flash_model)
    if not isinstance(payload, dict):
        raise GeminiError("geocode response is not an object")
    return payload


def extract_entries(raw_text: str) -> List[Dict[str, Any]]:
    categories = ", ".join(f"'{name}'" for name in INDUSTRIES if name != "Business Services")
    prompt = (
        "Extract a list of entities (Schools or Services) and their full addresses from the following text.\n"
        f"Categorize each as exactly one of: {categories}.\n\n"
        f'Text: "{raw_text}"'
    )
    payload = generate_json(prompt, ENTRY_LIST_SCHEMA, get_settings().flash_model)
    if not isinstance(payload, list):
        raise GeminiError("extraction response is not a list")
    return payload


def analyze_distribution(clients: Iterable[Client]) -> Dict[str, Any]:
    """Ask the pro model for a strategic read of the client distribution."""
    client_data = [
        {"name": c.name, "loc": [c.latitude, c.longitude], "cat": c.industry}
        for c in clients
    ]
    prompt = (
        "Analyze this geographic distribution of institutions (Christian, Public, Catholic, and Charter Schools) "
        "and Roofing services.\n"
        "Identify coverage gaps where certain types of schools are missing, or where roofing services are "
        "concentrated relative to schools.\n\n"
        f"Data: {json.dumps(client_data)}\n\n"
        "Provide strategic community insights including regional clusters and underserved areas."
    )
    payload = generate_json(prompt, INSIGHT_SCHEMA, get_settings().pro_model)
    if not isinstance(payload, dict):
        raise GeminiError("analysis response is not an object")
    return payload


def ask_assistant(query: str, context: str) -> str:
    prompt = (
        "You are a helpful education and community assistant.\n"
        f'A user is asking: "{query}".\n\n'
        f"Context of current visible entries on the map: {context}\n\n"
        "Provide a concise, helpful answer. If they are asking about specific schools, use the context. "
        "If they are asking general educational questions, provide expert insights. Keep it professional."
    )
    return generate_text(prompt, get_settings().flash_model)
