import json
import logging

import pytest
from fastapi.testclient import TestClient
from app import app as server


@pytest.fixture
def catalog_file(tmp_path):
    """Two-service catalog from the food/auto scenario."""
    path = tmp_path / "services.json"
    path.write_text(json.dumps([
        {"id": 1, "name": "A", "description": "Bakery", "phone": "1",
         "category": "food", "ratings": [], "totalRatings": 0},
        {"id": 2, "name": "B", "description": "Garage", "phone": "2",
         "category": "auto", "ratings": [4], "totalRatings": 1},
    ]), encoding="utf-8")
    return path


@pytest.fixture
def client(catalog_file, monkeypatch):
    """FastAPI test client with the catalog loaded by the lifespan."""
    monkeypatch.setattr(server, "CATALOG_SOURCE", str(catalog_file))
    with TestClient(server.app) as c:
        yield c


@pytest.fixture
def broken_client(tmp_path, monkeypatch):
    """Test client whose catalog failed to load."""
    monkeypatch.setattr(server, "CATALOG_SOURCE", str(tmp_path / "missing.json"))
    with TestClient(server.app) as c:
        yield c


def _service(client, service_id):
    data = client.get("/api/services").json()
    return next(s for s in data["services"] if s["id"] == service_id)


class TestServicesEndpoint:
    """Test GET /api/services."""

    def test_full_catalog(self, client):
        """Test that no filter returns everything."""
        data = client.get("/api/services").json()
        assert [s["name"] for s in data["services"]] == ["A", "B"]
        assert data["categories"] == ["food", "auto"]
        assert data["empty"] is False
        assert data["error"] is None

    def test_category_filter(self, client):
        """Test filter='food' returns only A."""
        data = client.get("/api/services", params={"category": "food"}).json()
        assert [s["name"] for s in data["services"]] == ["A"]

    def test_search(self, client):
        """Test case-insensitive search over descriptions."""
        data = client.get("/api/services", params={"q": "GARAGE"}).json()
        assert [s["name"] for s in data["services"]] == ["B"]

    def test_empty_result(self, client):
        """Test filter='auto', search='zzz' reports empty."""
        data = client.get("/api/services", params={"category": "auto", "q": "zzz"}).json()
        assert data["services"] == []
        assert data["empty"] is True

    def test_card_fields(self, client):
        """Test the projected fields of a card."""
        b = _service(client, 2)
        assert b["average"] == 4.0
        assert b["average_display"] == "4.0"
        assert b["total_ratings"] == 1
        assert b["filled_stars"] == 4
        assert b["rated"] is False


class TestRatingEndpoint:
    """Test POST /api/services/{id}/ratings."""

    def test_rate_service(self, client):
        """Test rating B with 5 gives [4, 5], total 2, average 4.5."""
        response = client.post("/api/services/2/ratings", json={"rating": 5})
        assert response.status_code == 200

        card = response.json()["service"]
        assert card["total_ratings"] == 2
        assert card["average"] == 4.5
        assert card["rated"] is True
        assert server._state.services[1].ratings == [4, 5]
        assert "rated_services=2" in response.headers["set-cookie"]

    def test_second_rating_rejected(self, client):
        """Test that the cookie blocks a second vote, every time."""
        assert client.post("/api/services/2/ratings", json={"rating": 5}).status_code == 200

        for _ in range(2):
            response = client.post("/api/services/2/ratings", json={"rating": 1})
            assert response.status_code == 409
            assert response.json()["detail"] == "You have already rated this service!"

        b = _service(client, 2)
        assert b["total_ratings"] == 2
        assert b["rated"] is True

    def test_cookie_accumulates_ids(self, client):
        """Test that rating two services keeps both ids in the cookie."""
        client.post("/api/services/1/ratings", json={"rating": 3})
        client.post("/api/services/2/ratings", json={"rating": 3})
        assert client.cookies.get("rated_services") == "1,2"

    def test_existing_cookie_blocks_rating(self, client):
        """Test that a cookie from an earlier visit is honoured."""
        client.cookies.set("rated_services", "1")
        response = client.post("/api/services/1/ratings", json={"rating": 5})
        assert response.status_code == 409
        assert _service(client, 1)["total_ratings"] == 0

    def test_unknown_service_ignored(self, client):
        """Test that an unknown id is a silent no-op."""
        response = client.post("/api/services/99/ratings", json={"rating": 5})
        assert response.status_code == 200
        assert response.json()["service"] is None
        assert "set-cookie" not in response.headers

    @pytest.mark.parametrize("rating", [0, 6, "five"])
    def test_rating_out_of_range(self, client, rating):
        """Test that only 1..5 are accepted."""
        response = client.post("/api/services/1/ratings", json={"rating": rating})
        assert response.status_code == 422

    def test_rating_required(self, client):
        """Test that the rating field is required."""
        response = client.post("/api/services/1/ratings", json={})
        assert response.status_code == 422


class TestPage:
    """Test the HTML page and the rate action behind its stars."""

    def test_page_renders_cards(self, client):
        """Test that the page lists every service."""
        response = client.get("/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert response.text.count('class="service-card"') == 2

    def test_page_filter(self, client):
        """Test that ?category=food shows only A."""
        html = client.get("/", params={"category": "food"}).text
        assert html.count('class="service-card"') == 1
        assert "Bakery" in html
        assert "Garage" not in html

    def test_page_empty_state(self, client):
        """Test that no matches shows the empty state."""
        html = client.get("/", params={"category": "auto", "q": "zzz"}).text
        assert "No services found" in html
        assert 'class="service-card"' not in html

    def test_rate_from_page_redirects(self, client):
        """Test that a star click redirects back with the cookie set."""
        response = client.post(
            "/services/2/rate",
            params={"rating": 5, "category": "auto"},
            follow_redirects=False,
        )
        assert response.status_code == 303
        assert response.headers["location"] == "/?category=auto"
        assert response.headers["set-cookie"].startswith("rated_services=2;")

        html = client.get("/", params={"category": "auto"}).text
        assert "✓ Rated" in html
        assert "4.5 (2 reviews)" in html

    def test_rate_from_page_twice_shows_notice(self, client):
        """Test that a second star click shows the notice and changes nothing."""
        client.post("/services/2/rate", params={"rating": 5}, follow_redirects=False)
        response = client.post("/services/2/rate", params={"rating": 1}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/?notice=already-rated"
        assert "set-cookie" not in response.headers

        html = client.get(response.headers["location"]).text
        assert "You have already rated this service!" in html
        assert server._state.services[1].ratings == [4, 5]

    def test_rate_from_page_requires_valid_rating(self, client):
        """Test that the page action rejects values outside 1..5."""
        response = client.post("/services/2/rate", params={"rating": 9}, follow_redirects=False)
        assert response.status_code == 422


class TestLoadFailure:
    """Test behaviour when the catalog cannot be loaded."""

    def test_page_shows_error_state(self, broken_client):
        """Test that the grid shows the error message."""
        html = broken_client.get("/").text
        assert "Error loading services" in html

    def test_filter_and_search_still_work(self, broken_client):
        """Test that filter and search do not raise after a failed load."""
        response = broken_client.get("/", params={"category": "food", "q": "bread"})
        assert response.status_code == 200
        assert "Error loading services" in response.text
        assert server._state.current_filter == "food"
        assert server._state.current_search == "bread"

    def test_api_reports_error(self, broken_client):
        """Test that the JSON API exposes the load error."""
        data = broken_client.get("/api/services").json()
        assert data["services"] == []
        assert data["error"]
        assert data["empty"] is True

    def test_rating_is_a_no_op(self, broken_client):
        """Test that rating with no catalog is ignored."""
        response = broken_client.post("/api/services/1/ratings", json={"rating": 4})
        assert response.status_code == 200
        assert response.json()["service"] is None


class TestLogging:
    """Test log file setup."""

    def test_nested_log_dir_is_created(self, tmp_path):
        """Test that a log directory with missing parents is created."""
        root = logging.getLogger()
        before = list(root.handlers)
        log_dir = tmp_path / "a" / "b"

        try:
            server._setup_logging(log_dir)
            assert (log_dir / "app.log").exists()
        finally:
            for handler in root.handlers[len(before):]:
                root.removeHandler(handler)
                handler.close()
