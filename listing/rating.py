"""
One rating per service per browser.

Whether a browser has rated a service is read from the rated_services
cookie. The guard is local to one cookie jar: clearing cookies or switching
browsers allows another vote.

Public API:
    has_rated(store, service_id)            → bool
    rate(state, store, service_id, value)   → Service | None
"""

import logging

from listing.cookies import CookieStore, RatedSet
from listing.models import Service
from listing.state import AppState

ALREADY_RATED_MESSAGE = "You have already rated this service!"
RATING_VALUES = (1, 2, 3, 4, 5)

log = logging.getLogger(__name__)


class AlreadyRatedError(Exception):
    def __init__(self, service_id: int):
        super().__init__(ALREADY_RATED_MESSAGE)
        self.service_id = service_id


def has_rated(store: CookieStore, service_id: int) -> bool:
    return service_id in RatedSet.from_store(store)


def mark_rated(store: CookieStore, service_id: int) -> None:
    rated = RatedSet.from_store(store)
    rated.add(service_id)
    rated.save(store)


def rate(state: AppState, store: CookieStore, service_id: int, value: int) -> Service | None:
    """
    Record `value` for a service and mark it rated for this browser.

    Raises AlreadyRatedError without touching anything if the browser has
    already rated the service. An unknown id is ignored and returns None.
    The value itself is not range-checked here; callers only offer 1..5.
    """
    if has_rated(store, service_id):
        log.info("Duplicate rating attempt for service %d", service_id)
        raise AlreadyRatedError(service_id)

    service = state.find(service_id)
    if service is None:
        log.debug("Rate request for unknown service %d ignored", service_id)
        return None

    service.ratings.append(value)
    service.total_ratings += 1
    mark_rated(store, service_id)
    log.info("Service %d rated %d (now %d ratings)", service_id, value, service.total_ratings)
    return service
