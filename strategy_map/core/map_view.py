"""Folium rendering of the visible clients."""

import logging
from html import escape
from typing import Iterable, Optional, Sequence, Tuple

import folium

from strategy_map.models import Client

logger = logging.getLogger(__name__)

MARKER_FILL = "#d97706"
MARKER_OUTLINE = "#fff"
FIT_PADDING = (100, 100)


def _popup_html(client: Client, select_url: Optional[str]) -> str:
    parts = [
        "<div class='client-popup' style='min-width:200px'>",
        f"<h3 style='margin:0 0 4px;color:{MARKER_FILL};font-size:14px'>{escape(client.name)}</h3>",
        f"<p style='margin:0 0 4px;font-size:11px;text-transform:uppercase'>{escape(client.industry)}</p>",
        f"<p style='margin:0;font-size:10px'>{escape(client.address)}</p>",
    ]
    if select_url:
        parts.append(f"<a href='{escape(select_url, quote=True)}' target='_top'>Select</a>")
    parts.append("</div>")
    return "".join(parts)


def build_map(
    clients: Sequence[Client],
    center: Tuple[float, float],
    zoom: int,
    select_url_template: Optional[str] = None,
) -> folium.Map:
    """Build a map with one circle marker per client.

    ``select_url_template`` is formatted with ``id=`` to give each popup a link
    that selects the client on the page.
    """
    m = folium.Map(location=list(center), tiles="cartodbdark_matter", zoom_start=zoom)

    for client in clients:
        select_url = select_url_template.format(id=client.id) if select_url_template else None
        folium.CircleMarker(
            location=[client.latitude, client.longitude],
            radius=10,
            color=MARKER_OUTLINE,
            weight=2,
            opacity=1,
            fill=True,
            fill_color=MARKER_FILL,
            fill_opacity=0.9,
            tooltip=escape(client.name),
            popup=folium.Popup(_popup_html(client, select_url), max_width=300),
        ).add_to(m)

    if clients:
        m.fit_bounds(_bounds(clients), padding=FIT_PADDING)
    logger.debug("Rendered map with %d markers", len(clients))
    return m


def _bounds(clients: Iterable[Client]):
    lats = [c.latitude for c in clients]
    lngs = [c.longitude for c in clients]
    return [[min(lats), min(lngs)], [max(lats), max(lngs)]]


def render_map_html(clients: Sequence[Client], center: Tuple[float, float], zoom: int, **kwargs) -> str:
    return build_map(clients, center, zoom, **kwargs).get_root().render()
