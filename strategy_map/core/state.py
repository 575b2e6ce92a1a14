"""In-memory page state: the client list and everything the page shows around it."""

import logging
from typing import Iterable, List, Optional

from strategy_map.etl.transform import filter_clients
from strategy_map.models import Client, StrategicInsight, demo_clients

logger = logging.getLogger(__name__)

PANEL_MODES = ("none", "single", "bulk", "edit")


class MapState:
    """Mutable state owned by the page controller.

    The client list is the only copy of the data; every list mutation drops the
    current strategic insight because it no longer describes the entity set.
    """

    def __init__(self, clients: Optional[Iterable[Client]] = None) -> None:
        self.clients: List[Client] = list(clients) if clients is not None else demo_clients()
        self.search_term = ""
        self.insight: Optional[StrategicInsight] = None
        self.show_insight = False
        self.mode = "none"
        self.editing_id: Optional[str] = None
        self.selected_id: Optional[str] = None
        self.bulk_text = ""
        self.progress = ""
        self.loading = False
        self.analyzing = False
        self.assistant_loading = False
        self.assistant_response: Optional[str] = None

    # ---------- Views ----------

    @property
    def visible_clients(self) -> List[Client]:
        return filter_clients(self.clients, self.search_term)

    @property
    def selected_client(self) -> Optional[Client]:
        return self.get_client(self.selected_id) if self.selected_id else None

    def get_client(self, client_id: str) -> Optional[Client]:
        for client in self.clients:
            if client.id == client_id:
                return client
        return None

    # ---------- List mutations ----------

    def _invalidate_insight(self) -> None:
        self.insight = None
        self.show_insight = False

    def add_client(self, client: Client) -> None:
        self.clients.insert(0, client)
        self._invalidate_insight()
        logger.info("Added client %s (%s)", client.id, client.name)

    def add_clients(self, clients: Iterable[Client]) -> None:
        batch = list(clients)
        self.clients[:0] = batch
        self._invalidate_insight()
        logger.info("Added %d clients", len(batch))

    def update_client(self, client: Client) -> bool:
        """Replace the client with the same id in place; False if it is gone."""
        for index, existing in enumerate(self.clients):
            if existing.id == client.id:
                self.clients[index] = client
                self._invalidate_insight()
                logger.info("Updated client %s", client.id)
                return True
        return False

    def delete_client(self, client_id: str, confirmed: bool = False) -> bool:
        if not confirmed:
            logger.debug("Delete of %s not confirmed; ignoring", client_id)
            return False
        remaining = [c for c in self.clients if c.id != client_id]
        if len(remaining) == len(self.clients):
            logger.debug("Delete of %s ignored; client not present", client_id)
            return False
        self.clients = remaining
        if self.selected_id == client_id:
            self.selected_id = None
        if self.editing_id == client_id:
            self.set_mode("none")
        self._invalidate_insight()
        logger.info("Deleted client %s", client_id)
        return True

    def clear(self, confirmed: bool = False) -> bool:
        if not confirmed:
            return False
        self.clients = []
        self.selected_id = None
        if self.mode == "edit":
            self.set_mode("none")
        self._invalidate_insight()
        logger.info("Cleared all clients")
        return True

    def restore_defaults(self) -> None:
        self.clients = demo_clients()
        self.search_term = ""
        self.selected_id = None
        if self.mode == "edit":
            self.set_mode("none")
        self._invalidate_insight()
        logger.info("Restored demo dataset")

    # ---------- Page controls ----------

    def select(self, client_id: str) -> bool:
        if self.get_client(client_id) is None:
            return False
        self.selected_id = client_id
        return True

    def set_insight(self, insight: StrategicInsight) -> None:
        self.insight = insight
        self.show_insight = True

    def dismiss_insight(self) -> None:
        self.show_insight = False

    def dismiss_assistant(self) -> None:
        self.assistant_response = None

    def set_mode(self, mode: str, editing_id: Optional[str] = None) -> None:
        if mode not in PANEL_MODES:
            raise ValueError(f"unknown panel mode: {mode}")
        self.mode = mode
        self.editing_id = editing_id if mode == "edit" else None

    def toggle_mode(self, mode: str, editing_id: Optional[str] = None) -> str:
        """Open ``mode``, or close it when it is already open for the same target."""
        if mode == self.mode and (mode != "edit" or editing_id == self.editing_id):
            self.set_mode("none")
        else:
            self.set_mode(mode, editing_id)
        return self.mode
