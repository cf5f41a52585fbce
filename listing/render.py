"""
Card rendering.

Two layers:
    project(services, rated)  → list[ServiceCard]   (pure data, also served as JSON)
    render_grid / render_page → HTML strings

Nothing is patched incrementally: every request rebuilds the whole grid from
the current state. Rating affordances are plain submit buttons so the page
works without JavaScript.
"""

import html
from urllib.parse import urlencode

from listing.catalog import categories
from listing.cookies import RatedSet
from listing.filters import visible_for
from listing.models import Service, ServiceCard, average_rating, format_average
from listing.rating import ALREADY_RATED_MESSAGE, RATING_VALUES
from listing.state import ALL_CATEGORIES, AppState

PAGE_TITLE = "Local Services Directory"

SOCIAL_LABELS = {
    "facebook":  "Facebook",
    "instagram": "Instagram",
    "google":    "Google",
    "website":   "Website",
}

NOTICES = {
    "already-rated": ALREADY_RATED_MESSAGE,
}

_CSS = """
html { scroll-behavior: smooth; }
body { font-family: system-ui, sans-serif; margin: 0; background: #f6f7f9; color: #222; }
header, footer { padding: 1.5rem 2rem; background: #fff; }
.categories { display: flex; flex-wrap: wrap; gap: .5rem; margin-top: 1rem; }
.category-btn { padding: .4rem .9rem; border-radius: 1rem; border: 1px solid #ccc; text-decoration: none; color: inherit; }
.category-btn.active { background: #222; color: #fff; }
.notice { margin: 1rem 2rem; padding: .75rem 1rem; background: #fff3cd; border: 1px solid #e0c36a; }
.services-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(280px, 1fr)); gap: 1rem; padding: 2rem; }
.service-card { background: #fff; border-radius: .5rem; padding: 1rem; box-shadow: 0 1px 3px rgba(0,0,0,.1); }
.service-header { display: flex; justify-content: space-between; gap: .5rem; }
.service-name { font-weight: 600; }
.service-category { font-size: .75rem; letter-spacing: .05em; }
.stars { display: inline-flex; }
.star { background: none; border: none; font-size: 1.25rem; color: #ccc; padding: 0 .1rem; }
.star.filled { color: #f5b301; }
button.star { cursor: pointer; }
.rated-badge { font-size: .75rem; margin-left: .5rem; color: #2e7d32; }
.empty-state { grid-column: 1 / -1; text-align: center; }
"""


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------

def to_card(service: Service, rated: RatedSet) -> ServiceCard:
    avg = average_rating(service)
    links = service.social_media.links() if service.social_media else {}
    return ServiceCard(
        id=service.id,
        name=service.name,
        phone=service.phone,
        category=service.category,
        description=service.description,
        social_links=links,
        average=avg,
        average_display=format_average(avg),
        total_ratings=service.total_ratings,
        filled_stars=int(avg),
        rated=service.id in rated,
    )


def project(services: list[Service], rated: RatedSet) -> list[ServiceCard]:
    return [to_card(s, rated) for s in services]


# ---------------------------------------------------------------------------
# HTML fragments
# ---------------------------------------------------------------------------

def _esc(text: str) -> str:
    return html.escape(text, quote=True)


def _url(path: str, category: str = ALL_CATEGORIES, **params) -> str:
    """path plus a query string; the default category and blanks are left out."""
    if category != ALL_CATEGORIES:
        params = {"category": category, **params}
    query = urlencode({k: v for k, v in params.items() if v})
    return f"{path}?{query}" if query else path


def render_stars(card: ServiceCard, state: AppState) -> str:
    if card.rated:
        stars = "".join(
            f'<span class="star{" filled" if v <= card.filled_stars else ""}">★</span>'
            for v in RATING_VALUES
        )
        return (
            f'<div class="stars" data-service-id="{card.id}">{stars}</div>'
            '<span class="rated-badge">✓ Rated</span>'
        )

    buttons = []
    for v in RATING_VALUES:
        action = _url(
            f"/services/{card.id}/rate", state.current_filter, q=state.current_search, rating=str(v)
        )
        buttons.append(
            f'<button type="submit" class="star{" filled" if v <= card.filled_stars else ""}" '
            f'data-rating="{v}" formaction="{_esc(action)}" title="Rate {v}">★</button>'
        )
    return (
        f'<form class="stars" data-service-id="{card.id}" method="post" '
        f'action="/services/{card.id}/rate">{"".join(buttons)}</form>'
    )


def review_count_label(count: int) -> str:
    """'1 review', '0 reviews', '3 reviews'."""
    return f"{count} review" if count == 1 else f"{count} reviews"


def render_card(card: ServiceCard, state: AppState) -> str:
    links = "".join(
        f'<a class="social-link" href="{_esc(url)}" target="_blank" rel="noopener">'
        f'{SOCIAL_LABELS[name]}</a> '
        for name, url in card.social_links.items()
    )
    social = f'<div class="service-social">{links}</div>' if links else ""
    reviews = review_count_label(card.total_ratings)
    return f"""
        <div class="service-card">
            <div class="service-header">
                <div>
                    <div class="service-name">{_esc(card.name)}</div>
                    <div class="service-phone">📞 {_esc(card.phone)}</div>
                </div>
                <div class="service-category">{_esc(card.category.upper())}</div>
            </div>
            <div class="service-info">
                <div class="service-description">{_esc(card.description)}</div>
                {social}
            </div>
            <div class="service-rating">
                {render_stars(card, state)}
                <span class="rating-text">{card.average_display} ({reviews})</span>
            </div>
        </div>
    """


def render_empty_state() -> str:
    return """
        <div class="empty-state">
            <h3>No services found</h3>
            <p>Try adjusting your search or filters.</p>
        </div>
    """


def render_error_state() -> str:
    return """
        <div class="empty-state error-state">
            <h3>Error loading services</h3>
            <p>Could not load services data. Please try refreshing the page.</p>
        </div>
    """


def render_grid(state: AppState, rated: RatedSet) -> str:
    """Inner HTML of the grid: cards, or the empty/error state."""
    if state.load_error is not None:
        return render_error_state()
    cards = project(visible_for(state), rated)
    if not cards:
        return render_empty_state()
    return "".join(render_card(c, state) for c in cards)


def render_categories(state: AppState) -> str:
    options = [ALL_CATEGORIES] + categories(state.services)
    links = []
    for cat in options:
        active = " active" if cat == state.current_filter else ""
        href = _url("/", cat, q=state.current_search)
        label = "All" if cat == ALL_CATEGORIES else cat.title()
        links.append(
            f'<a class="category-btn{active}" data-category="{_esc(cat)}" href="{_esc(href)}">{_esc(label)}</a>'
        )
    links.append('<a class="category-btn scroll-btn" id="scrollToAbout" href="#aboutSection">About</a>')
    return f'<nav class="categories">{"".join(links)}</nav>'


def render_page(state: AppState, rated: RatedSet, notice: str | None = None) -> str:
    """Full HTML document for the current state."""
    banner = ""
    if notice in NOTICES:
        banner = f'<div class="notice" role="alert">{_esc(NOTICES[notice])}</div>'

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{PAGE_TITLE}</title>
    <style>{_CSS}</style>
</head>
<body>
    <header>
        <h1>{PAGE_TITLE}</h1>
        <form method="get" action="/">
            <input type="search" id="searchInput" name="q" value="{_esc(state.current_search)}"
                   placeholder="Search services...">
            <input type="hidden" name="category" value="{_esc(state.current_filter)}">
            <button type="submit">Search</button>
        </form>
        {render_categories(state)}
    </header>
    {banner}
    <main class="services-grid" id="servicesGrid">
        {render_grid(state, rated)}
    </main>
    <footer id="aboutSection">
        <h2>About</h2>
        <p>A directory of local services. Ratings are kept only for this session;
        your browser remembers which services you have rated.</p>
    </footer>
</body>
</html>
"""
