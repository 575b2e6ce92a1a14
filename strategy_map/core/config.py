"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

from strategy_map.models import DEFAULT_CENTER, DEFAULT_ZOOM

logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when mandatory configuration is missing."""


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str
    flash_model: str = "gemini-3-flash-preview"
    pro_model: str = "gemini-3-pro-preview"
    port: int = 8080
    map_center_lat: float = DEFAULT_CENTER[0]
    map_center_lng: float = DEFAULT_CENTER[1]
    map_zoom: int = DEFAULT_ZOOM


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not numeric; using %s.", name, raw, default)
        return default


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    gemini_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
    flash_model = os.getenv("GEMINI_FLASH_MODEL") or Settings.flash_model
    pro_model = os.getenv("GEMINI_PRO_MODEL") or Settings.pro_model
    port = int(os.getenv("PORT", "8080"))
    map_center_lat = _get_float("MAP_CENTER_LAT", DEFAULT_CENTER[0])
    map_center_lng = _get_float("MAP_CENTER_LNG", DEFAULT_CENTER[1])
    map_zoom = int(os.getenv("MAP_ZOOM", str(DEFAULT_ZOOM)))

    if not gemini_api_key:
        logger.warning("GEMINI_API_KEY is not configured; geocoding and analysis requests will fail.")

    return Settings(
        gemini_api_key=gemini_api_key,
        flash_model=flash_model,
        pro_model=pro_model,
        port=port,
        map_center_lat=map_center_lat,
        map_center_lng=map_center_lng,
        map_zoom=map_zoom,
    )
