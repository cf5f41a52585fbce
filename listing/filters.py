"""
Category filter and free-text search over the catalog.

A service is visible when both hold:
    category == "all" or service.category == category
    search is empty, or appears (case-insensitively) in name or description

Matching is a plain substring test. Output keeps catalog order.
"""

from dataclasses import replace

from listing.models import Service
from listing.state import ALL_CATEGORIES, AppState


def matches(service: Service, category: str, search: str) -> bool:
    if category != ALL_CATEGORIES and service.category != category:
        return False
    needle = search.lower()
    return needle in service.name.lower() or needle in service.description.lower()


def visible(services: list[Service], category: str = ALL_CATEGORIES, search: str = "") -> list[Service]:
    return [s for s in services if matches(s, category, search)]


def apply_filter(state: AppState, category: str | None = None, search: str | None = None) -> AppState:
    """Return a copy of state with the given filter and/or search replaced."""
    return replace(
        state,
        current_filter=category if category is not None else state.current_filter,
        current_search=search if search is not None else state.current_search,
    )


def visible_for(state: AppState) -> list[Service]:
    return visible(state.services, state.current_filter, state.current_search)
