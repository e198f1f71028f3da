"""Tenant middleware - resolves the request host to a tenant site.

Runs before every request. If the Host header addresses a tenant
(<subdomain>.<SITE_DOMAIN>), the request is answered here and never
reaches the blueprints:

    /  or /index.html  -> the site's HTML (counts a view)
    /<anything else>   -> a file from that tenant's own folder, or 404
    unknown subdomain  -> tenant-not-found page (404)

Hosts with fewer than three labels, IP literals, and reserved first labels
(www, api, ...) fall through to normal path routing.
"""

import ipaddress
import logging
import mimetypes

from flask import Response, current_app, request

from app.services.render_service import render_not_found
from app.services.site_store import INDEX_FILENAME, get_site_store, normalize_asset_path

logger = logging.getLogger(__name__)


def extract_subdomain(host, reserved=(), apex=None):
    """Return the tenant label addressed by host, or None for the main app.

    >>> extract_subdomain("site-1.example.com")
    'site-1'
    >>> extract_subdomain("www.example.com", reserved=["www"]) is None
    True
    """
    if not host or host.startswith("["):  # IPv6 literal
        return None

    hostname = host.rsplit(":", 1)[0] if ":" in host else host
    hostname = hostname.strip().lower().rstrip(".")

    try:
        ipaddress.ip_address(hostname)
        return None
    except ValueError:
        pass

    if apex and hostname == apex.lower():
        return None

    labels = hostname.split(".")
    if len(labels) < 3:
        return None

    candidate = labels[0]
    if not candidate or candidate in reserved:
        return None
    return candidate


def not_found_response(subdomain):
    html = render_not_found(subdomain, current_app.config.get("MAIN_APP_URL", "/"))
    return Response(html, status=404, mimetype="text/html")


def tenant_response(subdomain, path="", count_view=True):
    """Serve one tenant request. Shared by host routing and /sites/<subdomain>."""
    store = get_site_store()
    path = normalize_asset_path(path)

    if path in ("", INDEX_FILENAME):
        record = store.get(subdomain)
        if record is None:
            logger.info(f"Website not found: {subdomain}")
            return not_found_response(subdomain)
        if count_view:
            store.record_access(subdomain)
            logger.info(f"Serving website: {subdomain} ({record.view_count + 1} views)")
        return Response(record.html, mimetype="text/html")

    if store.get(subdomain) is None:
        return not_found_response(subdomain)

    data = store.read_asset(subdomain, path)
    if data is None:
        return Response("Not found", status=404, mimetype="text/plain")

    mimetype = mimetypes.guess_type(path)[0] or "application/octet-stream"
    return Response(data, mimetype=mimetype)


def resolve_tenant():
    """Before-request hook for host-based tenant routing."""
    subdomain = extract_subdomain(
        request.host,
        reserved=current_app.config.get("RESERVED_SUBDOMAINS", []),
        apex=current_app.config.get("SITE_DOMAIN"),
    )
    if subdomain is None:
        return None

    if request.method not in ("GET", "HEAD"):
        return Response("Method not allowed", status=405, mimetype="text/plain")

    return tenant_response(subdomain, request.path)


def init_tenant_middleware(app):
    """Register the tenant resolver as a before_request hook."""
    app.before_request(resolve_tenant)
