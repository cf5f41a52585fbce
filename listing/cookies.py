"""
Cookie storage for the rated-services record.

The browser's cookie jar is the only thing that survives a restart, so the
set of services a visitor has already rated lives there as a comma-joined
list of ids:

    rated_services=3,7,12; expires=...; Max-Age=2592000; Path=/

CookieStore wraps one request: reads come from the raw Cookie header,
writes are queued and emitted on the response by apply(). RatedSet is the
in-memory form of the record and is only turned into a string here, at the
storage boundary.

Public API:
    parse_cookie(header, name)              → str | None
    format_set_cookie(name, value, ttl_days) → str
    CookieStore(header).get_value / set_value / apply
    RatedSet.parse / add / serialize
"""

import logging
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

from fastapi import Response

COOKIE_NAME     = "rated_services"
COOKIE_TTL_DAYS = 30

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Raw header helpers
# ---------------------------------------------------------------------------

def parse_cookie(header: str | None, name: str) -> str | None:
    """Return the value of `name` in a raw Cookie header, or None."""
    if not header:
        return None
    prefix = name + "="
    for part in header.split(";"):
        part = part.lstrip(" ")
        if part.startswith(prefix):
            return part[len(prefix):]
    return None


def format_set_cookie(
    name: str,
    value: str,
    ttl_days: int,
    now: datetime | None = None,
) -> str:
    """Build a Set-Cookie header value scoped to the whole site."""
    now = now or datetime.now(timezone.utc)
    expires = now + timedelta(days=ttl_days)
    max_age = ttl_days * 24 * 60 * 60
    return (
        f"{name}={value}; expires={format_datetime(expires, usegmt=True)}; "
        f"Max-Age={max_age}; Path=/"
    )


# ---------------------------------------------------------------------------
# Per-request store
# ---------------------------------------------------------------------------

class CookieStore:
    def __init__(self, header: str | None = None):
        self._header  = header or ""
        self._pending: dict[str, tuple[str, int]] = {}

    def get_value(self, name: str) -> str | None:
        if name in self._pending:
            return self._pending[name][0]
        return parse_cookie(self._header, name)

    def set_value(self, name: str, value: str, ttl_days: int) -> None:
        self._pending[name] = (value, ttl_days)

    def apply(self, response: Response) -> Response:
        """Emit every queued write as a Set-Cookie header."""
        for name, (value, ttl_days) in self._pending.items():
            response.headers.append("set-cookie", format_set_cookie(name, value, ttl_days))
        return response


# ---------------------------------------------------------------------------
# Rated-services record
# ---------------------------------------------------------------------------

class RatedSet:
    """Insertion-ordered set of service ids the visitor has rated."""

    def __init__(self, ids=()):
        self._ids: dict[int, None] = dict.fromkeys(ids)

    @classmethod
    def parse(cls, raw: str | None) -> "RatedSet":
        """Tokens that are not integers are dropped; None means empty."""
        ids = []
        for token in (raw or "").split(","):
            token = token.strip()
            if not token:
                continue
            try:
                ids.append(int(token))
            except ValueError:
                log.debug("Ignoring malformed rated_services token %r", token)
        return cls(ids)

    @classmethod
    def from_store(cls, store: CookieStore) -> "RatedSet":
        return cls.parse(store.get_value(COOKIE_NAME))

    def add(self, service_id: int) -> None:
        self._ids[service_id] = None

    def serialize(self) -> str:
        return ",".join(str(i) for i in self._ids)

    def save(self, store: CookieStore) -> None:
        store.set_value(COOKIE_NAME, self.serialize(), COOKIE_TTL_DAYS)

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._ids

    def __iter__(self):
        return iter(self._ids)

    def __len__(self) -> int:
        return len(self._ids)
