"""Core data models shared by the strategy map application."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

INDUSTRIES: Tuple[str, ...] = (
    "Christian School",
    "Public School",
    "Catholic School",
    "Charter",
    "Roofing",
    "Business Services",
)
DEFAULT_INDUSTRY = "Christian School"

DEFAULT_CENTER: Tuple[float, float] = (27.2730, -80.3582)
DEFAULT_ZOOM = 12


@dataclass(slots=True)
class Client:
    """A mapped institution or business with geocoded coordinates."""

    id: str
    name: str
    address: str
    industry: str
    latitude: float
    longitude: float
    revenue: float = 0.0
    notes: Optional[str] = None


@dataclass(slots=True)
class GeocodeResult:
    latitude: float
    longitude: float
    confidence: float
    formatted_address: str


@dataclass(slots=True)
class ExtractedEntry:
    """One (name, address, industry guess) tuple pulled out of free text."""

    name: str
    address: str
    industry: str


@dataclass(slots=True)
class StrategicInsight:
    summary: str
    recommendations: List[str] = field(default_factory=list)
    hotspots: List[str] = field(default_factory=list)
    risk_areas: List[str] = field(default_factory=list)


def demo_clients() -> List[Client]:
    """Return a fresh copy of the seeded demo dataset."""
    return [
        Client(
            id="slater-1",
            name="Slater Strategies",
            address="774 SW Sail Ter, Port St. Lucie, FL 34953",
            industry="Business Services",
            latitude=27.2796,
            longitude=-80.3920,
        ),
        Client(
            id="white-pines-1",
            name="White Pines Learning",
            address="Port St. Lucie, FL",
            industry="Charter",
            latitude=27.2850,
            longitude=-80.3500,
        ),
        Client(
            id="oakwood-1",
            name="Oakwood Christian Academy",
            address="Port St. Lucie, FL",
            industry="Christian School",
            latitude=27.2500,
            longitude=-80.3800,
        ),
    ]
