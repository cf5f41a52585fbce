"""
Service catalog loader.

Reads the static list of services once, either from a local JSON file or
from a URL, and validates it into Service records.

Source resolution:
    http:// or https://   → GET with requests; any non-2xx is a failure
    anything else         → filesystem path

Every failure (network, HTTP status, missing file, bad JSON, bad record)
is raised as LoadError so the caller has a single thing to catch.

Public API:
    load(source, timeout)   → list[Service]
    reload(state, source)   → AppState
    categories(services)    → list[str]
"""

import json
import logging
from dataclasses import replace
from pathlib import Path

import requests
from pydantic import TypeAdapter, ValidationError

from listing.models import Service
from listing.state import AppState

DEFAULT_TIMEOUT = 10  # seconds

log = logging.getLogger(__name__)

_catalog_adapter = TypeAdapter(list[Service])


class LoadError(Exception):
    """The catalog could not be fetched or parsed."""


def _fetch(source: str, timeout: float) -> str:
    if source.startswith(("http://", "https://")):
        try:
            resp = requests.get(source, timeout=timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise LoadError(f"Failed to load services data from {source}: {exc}") from exc
        return resp.text

    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise LoadError(f"Failed to load services data from {path}: {exc}") from exc


def load(source: str | Path, timeout: float = DEFAULT_TIMEOUT) -> list[Service]:
    """Fetch and validate the whole catalog; raise LoadError on any failure."""
    raw = _fetch(str(source), timeout)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LoadError(f"Services data is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise LoadError("Services data must be a JSON array")

    try:
        services = _catalog_adapter.validate_python(data)
    except ValidationError as exc:
        raise LoadError(f"Services data has invalid records: {exc}") from exc

    log.info("Loaded %d services from %s", len(services), source)
    return services


def reload(state: AppState, source: str | Path, timeout: float = DEFAULT_TIMEOUT) -> AppState:
    """
    Replace the catalog wholesale.

    On failure the catalog is emptied and load_error is set; filter and
    search settings are kept so the page still works.
    """
    try:
        services = load(source, timeout)
    except LoadError as exc:
        log.error("Error loading services data: %s", exc)
        return replace(state, services=[], load_error=str(exc))
    return replace(state, services=services, load_error=None)


def categories(services: list[Service]) -> list[str]:
    """Distinct categories in first-seen catalog order."""
    seen: dict[str, None] = {}
    for s in services:
        if s.category:
            seen.setdefault(s.category, None)
    return list(seen)
