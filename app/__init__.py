import os
import logging
from datetime import datetime, timezone

import click
from flask import Flask, jsonify, render_template, request

from app.config import config_by_name
from app.exceptions import SiteError
from app.extensions import db, migrate, limiter


def create_app(config_name=None, overrides=None):
    """Application factory.

    `overrides` is applied on top of the config class, before the site
    store is built (tests use it to pick a backend / SITES_ROOT).
    """

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])
    if overrides:
        app.config.update(overrides)

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")
        if not app.config.get("ADMIN_API_KEY"):
            app.logger.warning("ADMIN_API_KEY not set - admin endpoints are open.")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from app import models  # noqa: F401

    # --- Site store ---
    from app.services.site_store import init_site_store
    init_site_store(app)

    # --- Tenant middleware (host-based routing) ---
    from app.middleware.tenant import init_tenant_middleware
    init_tenant_middleware(app)

    # --- Register blueprints ---
    from app.blueprints.publish import publish_bp
    from app.blueprints.sites import sites_bp
    from app.blueprints.admin import admin_bp

    app.register_blueprint(publish_bp)
    app.register_blueprint(sites_bp)
    app.register_blueprint(admin_bp)

    # --- Root / health ---
    @app.route("/")
    @app.route("/api/health")
    def health():
        """Main application entry - health payload for the builder frontend."""
        return jsonify(
            status="Website Builder API Live!",
            timestamp=datetime.now(timezone.utc).isoformat(),
            domain=app.config["SITE_DOMAIN"],
            environment=config_name,
            backend=app.config["SITE_STORE_BACKEND"],
        )

    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response.

        No CSP: published sites rely on inline styles.
        """
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def _wants_json():
    return request.path.startswith("/api/") or request.is_json or request.method != "GET"


def register_error_handlers(app):
    """Uniform {success: false, error} bodies for the JSON API."""

    @app.errorhandler(SiteError)
    def site_error(e):
        return jsonify(success=False, error=e.message), e.status_code

    @app.errorhandler(404)
    def not_found(e):
        if _wants_json():
            return jsonify(success=False, error="Not found"), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify(success=False, error="Method not allowed"), 405

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify(
            success=False,
            error="Too many requests from this IP, please try again later.",
        ), 429

    @app.errorhandler(500)
    def server_error(e):
        # Flask has already logged the traceback via app.logger
        if _wants_json():
            return jsonify(success=False, error="Internal server error"), 500
        return render_template("errors/500.html"), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("list-sites")
    def list_sites():
        """Print every stored site.

        Usage:
            flask list-sites
        """
        from app.services.site_store import get_site_store

        records = get_site_store().list()
        if not records:
            click.echo("No sites published yet.")
            return

        click.echo(f"{'SUBDOMAIN':<30} {'TEMPLATE':<10} {'VIEWS':>6}  CREATED")
        for record in records:
            click.echo(
                f"{record.subdomain:<30} {record.template:<10} "
                f"{record.view_count:>6}  {record.created_at.isoformat()}"
            )
        click.echo(f"{len(records)} site(s)")

    @app.cli.command("publish-site")
    @click.option("--template", default="basic", help="basic | portfolio | blog")
    @click.option("--color", default="#3498db", help="CSS color token")
    @click.option("--subdomain", default=None, help="Subdomain (generated if omitted)")
    def publish_site_command(template, color, subdomain):
        """Publish a site from the command line.

        Usage:
            flask publish-site --template blog --color "#e67e22" --subdomain demo
        """
        from app.services.publish_service import publish_site

        try:
            result = publish_site(template, color, subdomain)
        except SiteError as e:
            raise click.ClickException(e.message)

        click.echo(f"Published {result.domain}")
        click.echo(f"  URL: {result.site_url}")

    @app.cli.command("delete-site")
    @click.argument("subdomain")
    def delete_site_command(subdomain):
        """Delete a site by subdomain.

        Usage:
            flask delete-site demo
        """
        from app.services import dns_service
        from app.services.site_store import get_site_store

        if not get_site_store().delete(subdomain.lower()):
            raise click.ClickException(f"Website {subdomain} not found")

        dns_service.delete_subdomain_record(subdomain.lower())
        click.echo(f"Website {subdomain} deleted")
