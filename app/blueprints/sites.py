"""Sites blueprint - path-based access to tenant sites.

Same content the tenant middleware serves on <subdomain>.<SITE_DOMAIN>,
reachable on the main host for local dev and previews.

Route Map:
  GET /sites/<subdomain>                  - Site root (counts a view)
  GET /sites/<subdomain>/<path:asset>     - File from the tenant's folder
  GET /preview/<subdomain>                - Site root, no view counted
  GET /api/website/<subdomain>/stats      - Record stats as JSON
"""

from flask import Blueprint, jsonify

from app.exceptions import NotFoundError
from app.middleware.tenant import tenant_response
from app.services.publish_service import site_domain
from app.services.site_store import get_site_store

sites_bp = Blueprint("sites", __name__)


@sites_bp.route("/sites/<subdomain>")
@sites_bp.route("/sites/<subdomain>/")
def site_root(subdomain):
    return tenant_response(subdomain.lower())


@sites_bp.route("/sites/<subdomain>/<path:asset>")
def site_asset(subdomain, asset):
    return tenant_response(subdomain.lower(), asset)


@sites_bp.route("/preview/<subdomain>")
def preview(subdomain):
    """Show a site without touching its view count."""
    return tenant_response(subdomain.lower(), count_view=False)


@sites_bp.route("/api/website/<subdomain>/stats")
def site_stats(subdomain):
    record = get_site_store().get(subdomain.lower())
    if record is None:
        raise NotFoundError("Website not found")

    stats = record.to_dict()
    stats["domain"] = site_domain(record.subdomain)
    return jsonify(stats)
