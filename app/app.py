"""
FastAPI application — serves the services directory.

Run as a script:
    python app/app.py

Or as a module:
    uvicorn app.app:app --reload

The catalog (data/services.json, or CATALOG_SOURCE) is loaded once at
startup. Ratings live in memory only; the rated_services cookie is what
stops a browser from rating the same service twice.

Endpoints:
    GET  /                          HTML page   (?category=...&q=...&notice=...)
    POST /services/{id}/rate        rate from the page (?rating=1..5), redirects back
    GET  /api/services              {"services": [...], "categories": [...], "empty": bool, "error": str | null}
    POST /api/services/{id}/ratings body {"rating": 1..5}; 409 if already rated

Logs each request and wall-clock response time to stdout and logs/app.log
(rotating, 5 MB max, 3 backups).
"""

import asyncio
import logging
import logging.handlers
import os
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import urlencode

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import BaseModel, Field

# Ensure project root is on sys.path when running as a script (python app/app.py)
sys.path.insert(0, str(Path(__file__).parent.parent))

from listing import catalog
from listing.cookies import CookieStore, RatedSet
from listing.filters import apply_filter, visible_for
from listing.models import ServiceCard
from listing.rating import AlreadyRatedError, rate
from listing.render import project, render_page
from listing.state import ALL_CATEGORIES, AppState

load_dotenv()

ROOT_DIR = Path(__file__).parent.parent
LOG_DIR  = Path(os.getenv("LOG_DIR", ROOT_DIR / "logs"))

def _setup_logging(log_dir: Path = LOG_DIR) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter("%(asctime)s  %(levelname)s  %(message)s")

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)

    # Rotate at 5 MB, keep 3 backups
    rotating = logging.handlers.RotatingFileHandler(
        log_dir / "app.log", maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    rotating.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    root.addHandler(stream)
    root.addHandler(rotating)

_setup_logging()
log = logging.getLogger("api")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

DATA_DIR        = ROOT_DIR / "data"
CATALOG_SOURCE  = os.getenv("CATALOG_SOURCE", str(DATA_DIR / "services.json"))
CATALOG_TIMEOUT = float(os.getenv("CATALOG_TIMEOUT", catalog.DEFAULT_TIMEOUT))
HOST            = os.getenv("HOST", "0.0.0.0")
PORT            = int(os.getenv("PORT", "8000"))


# ---------------------------------------------------------------------------
# App + lifespan
# ---------------------------------------------------------------------------

_state = AppState()


@asynccontextmanager
async def lifespan(_: FastAPI):
    global _state

    log.info("Loading services catalog from %s…", CATALOG_SOURCE)
    _state = catalog.reload(AppState(), CATALOG_SOURCE, CATALOG_TIMEOUT)
    if _state.load_error is None:
        log.info("  %d services loaded.", len(_state.services))
    else:
        log.warning("  Catalog unavailable; serving the error state.")

    yield  # server runs here


app = FastAPI(title="Local Services Directory", lifespan=lifespan)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class RateRequest(BaseModel):
    rating: int = Field(ge=1, le=5)


class RateResponse(BaseModel):
    service: ServiceCard | None


class ServicesResponse(BaseModel):
    services: list[ServiceCard]
    categories: list[str]
    empty: bool
    error: str | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _cookie_store(request: Request) -> CookieStore:
    return CookieStore(request.headers.get("cookie"))


def _update_filter(category: str | None, q: str | None) -> None:
    global _state
    _state = apply_filter(_state, category or ALL_CATEGORIES, q or "")


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------

@app.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    category: str | None = None,
    q: str | None = None,
    notice: str | None = None,
) -> HTMLResponse:
    t0 = time.perf_counter()

    _update_filter(category, q)
    rated = RatedSet.from_store(_cookie_store(request))
    body = render_page(_state, rated, notice=notice)

    elapsed = time.perf_counter() - t0
    log.info(
        "page  category=%r  q=%r  hits=%d  %.3fs",
        _state.current_filter, _state.current_search, len(visible_for(_state)), elapsed,
    )
    return HTMLResponse(body)


@app.post("/services/{service_id}/rate")
async def rate_from_page(
    request: Request,
    service_id: int,
    rating: int = Query(ge=1, le=5),
    category: str | None = None,
    q: str | None = None,
) -> RedirectResponse:
    store = _cookie_store(request)
    params = {"category": category, "q": q}

    try:
        rate(_state, store, service_id, rating)
    except AlreadyRatedError:
        params["notice"] = "already-rated"

    query = urlencode({k: v for k, v in params.items() if v})
    target = f"/?{query}" if query else "/"
    return store.apply(RedirectResponse(target, status_code=303))


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------

@app.get("/api/services", response_model=ServicesResponse)
async def list_services(
    request: Request,
    category: str | None = None,
    q: str | None = None,
) -> ServicesResponse:
    t0 = time.perf_counter()

    _update_filter(category, q)
    rated = RatedSet.from_store(_cookie_store(request))
    cards = [] if _state.load_error else project(visible_for(_state), rated)

    elapsed = time.perf_counter() - t0
    log.info(
        "api  category=%r  q=%r  hits=%d  %.3fs",
        _state.current_filter, _state.current_search, len(cards), elapsed,
    )
    return ServicesResponse(
        services=cards,
        categories=catalog.categories(_state.services),
        empty=not cards,
        error=_state.load_error,
    )


@app.post("/api/services/{service_id}/ratings", response_model=RateResponse)
async def rate_service(
    request: Request,
    response: Response,
    service_id: int,
    req: RateRequest,
) -> RateResponse:
    store = _cookie_store(request)

    try:
        service = rate(_state, store, service_id, req.rating)
    except AlreadyRatedError as exc:
        raise HTTPException(status_code=409, detail=str(exc))

    card = None
    if service is not None:
        card = project([service], RatedSet.from_store(store))[0]

    store.apply(response)
    return RateResponse(service=card)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _launch_server() -> None:
    config = uvicorn.Config(app, host=HOST, port=PORT, reload=False)
    server = uvicorn.Server(config)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        uvicorn.run(app, host=HOST, port=PORT, reload=False)
        return

    log.warning(
        "Detected an existing asyncio event loop; serving with create_task() instead of asyncio.run()."
    )
    asyncio.create_task(server.serve())


if __name__ == "__main__":
    log.info("=== Local Services Directory — starting up ===")
    _launch_server()
