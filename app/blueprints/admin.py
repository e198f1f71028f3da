"""Admin blueprint - site listing and removal.

Protected by @admin_required (X-Admin-Key header when ADMIN_API_KEY is set).

Route Map:
  GET    /api/admin/sites                  - All sites + totals
  GET    /debug/sites                      - Same (older tooling hits this)
  DELETE /api/admin/website/<subdomain>    - Delete a site
"""

import logging

from flask import Blueprint, jsonify

from app.decorators import admin_required
from app.exceptions import NotFoundError
from app.services import dns_service
from app.services.publish_service import site_domain
from app.services.site_store import get_site_store

admin_bp = Blueprint("admin", __name__)

logger = logging.getLogger(__name__)


@admin_bp.route("/api/admin/sites")
@admin_bp.route("/debug/sites")
@admin_required
def site_list():
    """List every stored site with view totals."""
    sites = []
    for record in get_site_store().list():
        data = record.to_dict()
        data["domain"] = site_domain(record.subdomain)
        sites.append(data)

    return jsonify(
        sites=sites,
        count=len(sites),
        totalViews=sum(site["views"] for site in sites),
    )


@admin_bp.route("/api/admin/website/<subdomain>", methods=["DELETE"])
@admin_required
def delete_site(subdomain):
    subdomain = subdomain.lower()
    if not get_site_store().delete(subdomain):
        raise NotFoundError("Website not found")

    logger.info(f"Website deleted: {subdomain}")
    dns_service.delete_subdomain_record(subdomain)

    return jsonify(success=True, message=f"Website {subdomain} deleted successfully")
