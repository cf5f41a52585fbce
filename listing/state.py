"""Application state: the catalog plus the visitor's current filter and search."""

from dataclasses import dataclass, field

from listing.models import Service

ALL_CATEGORIES = "all"


@dataclass
class AppState:
    services: list[Service] = field(default_factory=list)
    current_filter: str = ALL_CATEGORIES
    current_search: str = ""
    load_error: str | None = None   # set when the catalog could not be loaded

    def find(self, service_id: int) -> Service | None:
        return next((s for s in self.services if s.id == service_id), None)
