"""Publish service - validate, render, commit.

publish_site() is the whole workflow behind POST /publish-site and
`flask publish-site`:

1. template + color are required (ValidationError otherwise)
2. subdomain = custom_domain (normalized) or site-<epoch ms>
3. render via render_service.render_site (pure)
4. store.put -- ConflictError / StorageIOError propagate unchanged, except
   that a generated name which collides is retried once with a random suffix
5. best-effort CNAME via dns_service
"""

import logging
import secrets
import time

from flask import current_app

from app.exceptions import ConflictError, ValidationError
from app.services import dns_service
from app.services.render_service import render_site
from app.services.site_store import get_site_store, validate_subdomain

logger = logging.getLogger(__name__)


class PublishResult:
    """Outcome of a successful publish."""

    def __init__(self, record, domain, site_url):
        self.record = record
        self.subdomain = record.subdomain
        self.domain = domain
        self.site_url = site_url

    def __repr__(self):
        return f"<PublishResult {self.domain}>"


def generate_subdomain():
    """Time-based token for callers that didn't pick a subdomain."""
    return f"site-{int(time.time() * 1000)}"


def normalize_subdomain(custom_domain):
    """Turn the user's customDomain field into a store key.

    Returns a freshly generated subdomain when the field is blank.

    Raises:
        ValidationError: malformed or reserved label.
    """
    subdomain = (custom_domain or "").strip().lower()
    if not subdomain:
        return generate_subdomain()

    validate_subdomain(subdomain)

    reserved = current_app.config.get("RESERVED_SUBDOMAINS", [])
    if subdomain in reserved:
        raise ValidationError(f"The subdomain '{subdomain}' is reserved.")
    return subdomain


def site_domain(subdomain):
    return f"{subdomain}.{current_app.config['SITE_DOMAIN']}"


def site_url(subdomain):
    scheme = current_app.config.get("SITE_URL_SCHEME", "https")
    return f"{scheme}://{site_domain(subdomain)}"


def publish_site(template, color, custom_domain=None):
    """Render and store a new site.

    Args:
        template: basic | portfolio | blog (anything else renders as basic).
        color: CSS color token, used as given.
        custom_domain: Optional subdomain label.

    Returns:
        PublishResult

    Raises:
        ValidationError: missing template/color, bad subdomain.
        ConflictError: subdomain already taken.
        StorageIOError: the store could not persist the site.
    """
    template = template.strip() if isinstance(template, str) else ""
    color = color.strip() if isinstance(color, str) else ""
    if not template or not color:
        raise ValidationError("Missing template or color")

    if custom_domain is not None and not isinstance(custom_domain, str):
        raise ValidationError("customDomain must be a string.")

    subdomain = normalize_subdomain(custom_domain)
    html = render_site(template, color, subdomain)

    store = get_site_store()
    try:
        record = store.put(subdomain, template, color, html)
    except ConflictError:
        if (custom_domain or "").strip():
            raise
        # Generated name collided with a publish in the same millisecond
        subdomain = f"{generate_subdomain()}-{secrets.token_hex(2)}"
        html = render_site(template, color, subdomain)
        record = store.put(subdomain, template, color, html)

    logger.info(f"Website created: {site_domain(subdomain)} ({template}, {color})")

    dns_service.create_subdomain_record(subdomain)

    return PublishResult(record, site_domain(subdomain), site_url(subdomain))
