"""Tests for the publish workflow.

Covers:
- POST /publish-site validation (missing fields, bad subdomain, reserved)
- Duplicate subdomain -> 409, original site untouched
- Auto-generated subdomains
- /api/publish-site alias + CORS preflight
- End-to-end: publish then fetch by host
- publish_site() service directly
- Storage failures surface as 500 without partial state
"""

from unittest.mock import patch

import pytest

from app.exceptions import ConflictError, ValidationError
from app.services.publish_service import normalize_subdomain, publish_site
from app.services.site_store import get_site_store


class TestPublishEndpoint:

    def test_publish_success(self, client):
        response = client.post("/publish-site", json={
            "template": "portfolio",
            "color": "#e74c3c",
            "customDomain": "jane",
        })
        assert response.status_code == 200
        data = response.get_json()
        assert data["success"] is True
        assert data["subdomain"] == "jane"
        assert data["domain"] == "jane.example.com"
        assert data["siteUrl"] == "https://jane.example.com"
        assert data["previewUrl"].endswith("/preview/jane")
        assert data["template"] == "portfolio"
        assert data["color"] == "#e74c3c"
        assert data["files"] == ["index.html"]
        assert data["createdAt"]

    def test_api_alias(self, client):
        response = client.post("/api/publish-site", json={
            "template": "basic", "color": "red", "customDomain": "alias",
        })
        assert response.status_code == 200
        assert response.get_json()["subdomain"] == "alias"

    @pytest.mark.parametrize("body", [
        {"color": "red"},
        {"template": "basic"},
        {"template": "", "color": "red"},
        {"template": "basic", "color": "   "},
        {},
    ])
    def test_missing_fields(self, client, body):
        response = client.post("/publish-site", json=body)
        assert response.status_code == 400
        data = response.get_json()
        assert data["success"] is False
        assert data["error"] == "Missing template or color"

    def test_non_json_body(self, client):
        response = client.post("/publish-site", data="template=basic")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_json_array_body(self, client):
        response = client.post("/publish-site", json=["basic", "red"])
        assert response.status_code == 400

    @pytest.mark.parametrize("bad", ["has space", "under_score", "x" * 64, "dots.in.it"])
    def test_invalid_subdomain(self, client, bad):
        response = client.post("/publish-site", json={
            "template": "basic", "color": "red", "customDomain": bad,
        })
        assert response.status_code == 400
        assert "Subdomain" in response.get_json()["error"]

    @pytest.mark.parametrize("reserved", ["www", "api"])
    def test_reserved_subdomain(self, client, reserved):
        response = client.post("/publish-site", json={
            "template": "basic", "color": "red", "customDomain": reserved,
        })
        assert response.status_code == 400
        assert "reserved" in response.get_json()["error"]

    def test_subdomain_is_lowercased(self, client):
        response = client.post("/publish-site", json={
            "template": "basic", "color": "red", "customDomain": "  MyShop ",
        })
        assert response.status_code == 200
        assert response.get_json()["subdomain"] == "myshop"

    def test_duplicate_is_conflict(self, app, client):
        body = {"template": "basic", "color": "red", "customDomain": "taken"}
        assert client.post("/publish-site", json=body).status_code == 200

        response = client.post("/publish-site", json={**body, "color": "blue"})
        assert response.status_code == 409
        data = response.get_json()
        assert data["success"] is False
        assert "already taken" in data["error"]

        with app.app_context():
            assert get_site_store().get("taken").color == "red"

    def test_auto_generated_subdomain(self, client):
        response = client.post("/publish-site", json={"template": "blog", "color": "red"})
        assert response.status_code == 200
        assert response.get_json()["subdomain"].startswith("site-")

    def test_blank_custom_domain_is_generated(self, client):
        response = client.post("/publish-site", json={
            "template": "blog", "color": "red", "customDomain": "",
        })
        assert response.get_json()["subdomain"].startswith("site-")

    def test_unknown_template_still_publishes(self, app, client):
        response = client.post("/publish-site", json={
            "template": "landing", "color": "red", "customDomain": "fallback",
        })
        assert response.status_code == 200
        with app.app_context():
            html = get_site_store().get("fallback").html
        assert "Professional Services & Solutions" in html

    def test_new_site_has_zero_views(self, app, client, published):
        published(subdomain="fresh")
        with app.app_context():
            assert get_site_store().get("fresh").view_count == 0

    def test_cors_headers(self, client):
        response = client.post(
            "/publish-site",
            json={"template": "basic", "color": "red"},
            headers={"Origin": "http://localhost:3000"},
        )
        assert response.headers.get("Access-Control-Allow-Origin") == "*"

    def test_cors_headers_on_error(self, client):
        response = client.post("/publish-site", json={})
        assert response.headers.get("Access-Control-Allow-Origin") == "*"

    def test_preflight(self, client):
        response = client.options("/api/publish-site", headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        })
        assert response.status_code == 204
        assert "POST" in response.headers["Access-Control-Allow-Methods"]

    def test_cors_restricted_origins(self):
        from app import create_app

        app = create_app("testing", overrides={"CORS_ORIGINS": ["http://localhost:3000"]})
        client = app.test_client()

        allowed = client.post("/publish-site", json={}, headers={"Origin": "http://localhost:3000"})
        assert allowed.headers.get("Access-Control-Allow-Origin") == "http://localhost:3000"

        denied = client.post("/publish-site", json={}, headers={"Origin": "https://evil.test"})
        assert denied.headers.get("Access-Control-Allow-Origin") is None

    def test_storage_failure(self, fs_app, fs_client, sites_root):
        from app.services.site_store import FileSystemSiteStore

        with patch.object(FileSystemSiteStore, "_write_meta", side_effect=OSError("disk full")):
            response = fs_client.post("/publish-site", json={
                "template": "basic", "color": "red", "customDomain": "broken",
            })
        assert response.status_code == 500
        assert response.get_json()["success"] is False
        assert not (sites_root / "broken").exists()


class TestEndToEnd:

    def test_publish_then_fetch_by_host(self, client):
        response = client.post("/publish-site", json={
            "template": "blog", "color": "#3498db", "customDomain": "demo",
        })
        assert response.get_json()["subdomain"] == "demo"

        page = client.get("/", base_url="http://demo.example.com")
        assert page.status_code == 200
        assert page.mimetype == "text/html"
        body = page.get_data(as_text=True)
        assert "#3498db" in body
        assert "Welcome to My Blog" in body

    def test_fetch_counts_views(self, app, client, published):
        published(subdomain="counted")
        client.get("/", base_url="http://counted.example.com")
        with app.app_context():
            assert get_site_store().get("counted").view_count == 1

    def test_filesystem_backend(self, fs_client, sites_root, published):
        published(template="portfolio", subdomain="ondisk", client_=fs_client)
        assert (sites_root / "ondisk" / "index.html").is_file()

        page = fs_client.get("/sites/ondisk")
        assert page.status_code == 200
        assert "Creative Professional" in page.get_data(as_text=True)


class TestPublishService:

    def test_returns_result(self, app):
        with app.app_context():
            result = publish_site("basic", "red", "svc")
        assert result.subdomain == "svc"
        assert result.domain == "svc.example.com"
        assert result.site_url == "https://svc.example.com"
        assert result.record.view_count == 0

    def test_conflict_propagates(self, app):
        with app.app_context():
            publish_site("basic", "red", "svc")
            with pytest.raises(ConflictError):
                publish_site("blog", "blue", "svc")

    def test_non_string_custom_domain(self, app):
        with app.app_context():
            with pytest.raises(ValidationError):
                publish_site("basic", "red", 42)

    def test_stores_requested_template_name(self, app):
        with app.app_context():
            result = publish_site("landing", "red", "asked")
        assert result.record.template == "landing"

    def test_creates_dns_record(self, app):
        with app.app_context():
            with patch("app.services.publish_service.dns_service.create_subdomain_record") as mock_dns:
                publish_site("basic", "red", "dns")
        mock_dns.assert_called_once_with("dns")

    def test_generated_subdomains_are_valid(self, app):
        with app.app_context():
            subdomain = normalize_subdomain(None)
            publish_site("basic", "red", subdomain)
        assert subdomain.startswith("site-")

    def test_generated_collision_is_retried(self, app):
        with app.app_context():
            with patch(
                "app.services.publish_service.generate_subdomain",
                return_value="site-1700000000000",
            ):
                first = publish_site("basic", "red")
                second = publish_site("blog", "blue", "  ")

        assert first.subdomain == "site-1700000000000"
        assert second.subdomain.startswith("site-1700000000000-")
        assert second.subdomain != first.subdomain
        assert second.record.template == "blog"
        assert f"&copy; {second.subdomain}" in second.record.html

    def test_long_color_publishes(self, client):
        color = "rgb(" + "1" * 150 + ")"
        response = client.post("/publish-site", json={
            "template": "basic", "color": color, "customDomain": "wide",
        })
        assert response.status_code == 200
        assert response.get_json()["color"] == color
