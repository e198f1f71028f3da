"""Shared test fixtures for the site builder test suite.

Provides:
- app: Flask app configured for testing (in-memory site store)
- client: Flask test client
- fs_app / fs_client: same app on the filesystem backend (tmp SITES_ROOT)
- store_app: parametrized over all three store backends, app context pushed
- store: the active SiteStore for store_app
- published: helper that publishes a site through the API
"""

import pytest

from app import create_app
from app.extensions import db as _db
from app.services.site_store import get_site_store

BACKENDS = ["memory", "filesystem", "database"]


@pytest.fixture
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def sites_root(tmp_path):
    return tmp_path / "generated-sites"


@pytest.fixture
def fs_app(sites_root):
    """App backed by the filesystem store under a temp directory."""
    app = create_app("testing", overrides={
        "SITE_STORE_BACKEND": "filesystem",
        "SITES_ROOT": str(sites_root),
    })
    yield app


@pytest.fixture
def fs_client(fs_app):
    return fs_app.test_client()


@pytest.fixture(params=BACKENDS)
def store_app(request, sites_root):
    """App for each backend, with an app context pushed and tables created."""
    app = create_app("testing", overrides={
        "SITE_STORE_BACKEND": request.param,
        "SITES_ROOT": str(sites_root),
    })
    with app.app_context():
        if request.param == "database":
            _db.create_all()
        yield app
        if request.param == "database":
            _db.session.remove()
            _db.drop_all()


@pytest.fixture
def store(store_app):
    return get_site_store()


@pytest.fixture
def published(client):
    """Publish a site through the API and return the JSON response."""

    def _publish(template="basic", color="#3498db", subdomain=None, client_=None):
        body = {"template": template, "color": color}
        if subdomain is not None:
            body["customDomain"] = subdomain
        response = (client_ or client).post("/publish-site", json=body)
        assert response.status_code == 200, response.get_json()
        return response.get_json()

    return _publish
