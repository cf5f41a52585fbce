"""
Streamlit frontend for the services directory.

Calls GET /api/services and POST /api/services/{id}/ratings on the FastAPI
backend and shows the results as cards. The requests.Session is kept in
st.session_state so the rated_services cookie set by the backend is sent
back on every call, exactly as a browser would.
"""

import os
import sys
from pathlib import Path

import requests
import streamlit as st
from dotenv import load_dotenv

# Ensure project root is on sys.path when run with `streamlit run frontend/ui.py`
sys.path.insert(0, str(Path(__file__).parent.parent))

from listing.render import review_count_label

load_dotenv()

API_URL = os.getenv("API_URL", "http://localhost:8000").rstrip("/")

st.set_page_config(page_title="Local Services Directory", layout="wide")
st.title("Local Services Directory")

st.markdown(
    """
Find local services, filter by category and rate the ones you have used.

### Quick start
1. Start backend API in another terminal: `python app/app.py`
2. Type in the search box or pick a category
3. Click a star to rate a service (once per service)
"""
)


def _session() -> requests.Session:
    if "http" not in st.session_state:
        st.session_state["http"] = requests.Session()
    return st.session_state["http"]


def _fetch(category: str, q: str) -> dict | None:
    params = {"category": category, "q": q}
    try:
        resp = _session().get(f"{API_URL}/api/services", params=params, timeout=30)
        resp.raise_for_status()
    except requests.exceptions.ConnectionError:
        st.error("Cannot reach the API. Start it with: python app/app.py")
        return None
    except requests.exceptions.HTTPError as exc:
        st.error(f"API error: {exc}")
        return None
    return resp.json()


def _rate(service_id: int, rating: int) -> None:
    try:
        resp = _session().post(
            f"{API_URL}/api/services/{service_id}/ratings",
            json={"rating": rating},
            timeout=30,
        )
    except requests.exceptions.ConnectionError:
        st.session_state["notice"] = ("error", "Cannot reach the API.")
        return
    if resp.status_code == 409:
        st.session_state["notice"] = ("warning", resp.json().get("detail", "Already rated."))
    elif not resp.ok:
        st.session_state["notice"] = ("error", f"API error: {resp.status_code}")


def _stars(filled: int) -> str:
    return "★" * filled + "☆" * (5 - filled)


def _card(service: dict) -> None:
    with st.container(border=True):
        st.markdown(f"**{service['name']}**  \n📞 {service['phone']}")
        st.caption(service["category"].upper())
        st.write(service["description"])

        links = service.get("social_links", {})
        if links:
            st.markdown(" · ".join(f"[{name.title()}]({url})" for name, url in links.items()))

        st.write(
            f"{_stars(service['filled_stars'])}  "
            f"{service['average_display']} ({review_count_label(service['total_ratings'])})"
        )

        if service["rated"]:
            st.success("✓ Rated")
            return

        cols = st.columns(5)
        for value, col in enumerate(cols, start=1):
            col.button(
                "★" * value,
                key=f"rate-{service['id']}-{value}",
                on_click=_rate,
                args=(service["id"], value),
            )


q = st.text_input("Search", placeholder="e.g. padaria")

# Categories come from the unfiltered catalog
everything = _fetch("all", "")
if everything is None:
    st.stop()

category = st.radio(
    "Category",
    ["all"] + everything.get("categories", []),
    horizontal=True,
    format_func=lambda c: "All" if c == "all" else c.title(),
)

notice = st.session_state.pop("notice", None)
if notice:
    kind, message = notice
    getattr(st, kind)(message)

data = _fetch(category, q)
if data is None:
    st.stop()

if data.get("error"):
    st.error("Error loading services. Could not load services data. Please try refreshing the page.")
elif data.get("empty"):
    st.info("No services found. Try adjusting your search or filters.")
else:
    cols = st.columns(3)
    for i, service in enumerate(data["services"]):
        with cols[i % 3]:
            _card(service)
