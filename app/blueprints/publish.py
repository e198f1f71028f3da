"""Publish blueprint - POST /publish-site, /api/publish-site

The JSON API behind the website builder form. Both paths do the same
thing; the frontend uses /publish-site in dev and the /api one behind the
production proxy.

Route Map:
  POST    /publish-site       - Render + store a site
  POST    /api/publish-site   - Same
  OPTIONS (both)              - CORS preflight
"""

import logging

from flask import Blueprint, current_app, jsonify, make_response, request

from app.extensions import limiter
from app.services.publish_service import publish_site

publish_bp = Blueprint("publish", __name__)

logger = logging.getLogger(__name__)


def _publish_limit():
    return current_app.config.get("PUBLISH_RATE_LIMIT", "100 per 15 minutes")


def _cors_response(response):
    """Add CORS headers so the builder frontend can call us cross-origin."""
    allowed = current_app.config.get("CORS_ORIGINS", [])
    origin = request.headers.get("Origin")

    if "*" in allowed:
        response.headers["Access-Control-Allow-Origin"] = "*"
    elif origin and origin.lower() in allowed:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Vary"] = "Origin"

    response.headers["Access-Control-Allow-Methods"] = "POST, OPTIONS"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    return response


@publish_bp.after_request
def add_cors_headers(response):
    return _cors_response(response)


@publish_bp.route("/publish-site", methods=["OPTIONS"])
@publish_bp.route("/api/publish-site", methods=["OPTIONS"])
def publish_preflight():
    """Handle CORS preflight requests."""
    return make_response("", 204)


@publish_bp.route("/publish-site", methods=["POST"])
@publish_bp.route("/api/publish-site", methods=["POST"])
@limiter.limit(_publish_limit)
def publish():
    """
    Publish a site.

    Expects: { template, color, customDomain (optional) }
    Returns: { success: true, subdomain, domain, siteUrl, ... }
             or { success: false, error: "..." } (400 / 409 / 500)
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify(success=False, error="Invalid request."), 400

    logger.info(f"Publish request: {data.get('template')!r} {data.get('color')!r} {data.get('customDomain')!r}")

    # ValidationError / ConflictError / StorageIOError are turned into
    # {success: false, error} by the app-level SiteError handler.
    result = publish_site(
        data.get("template"),
        data.get("color"),
        data.get("customDomain"),
    )
    record = result.record

    return jsonify(
        success=True,
        domain=result.domain,
        subdomain=result.subdomain,
        siteUrl=result.site_url,
        previewUrl=f"{request.host_url}preview/{result.subdomain}",
        template=record.template,
        color=record.color,
        files=["index.html"],
        message="Website published successfully! It may take a few minutes for DNS to propagate.",
        createdAt=record.created_at.isoformat(),
    ), 200

