"""DNS service - per-site CNAME records on Cloudflare.

When CLOUDFLARE_API_TOKEN and CLOUDFLARE_ZONE_ID are configured, every
published subdomain gets a proxied CNAME pointing at DNS_TARGET, and the
record is removed again when the site is deleted. With a wildcard
*.SITE_DOMAIN record in place none of this is needed, so unconfigured
means "do nothing".

Best-effort: failures are logged and reported as False, never raised.
A site that published fine is not rolled back because DNS was slow.
"""

import logging

import requests
from flask import current_app

logger = logging.getLogger(__name__)

CLOUDFLARE_API_URL = "https://api.cloudflare.com/client/v4"


def _get_cloudflare_config():
    """Return Cloudflare config if available, else None."""
    token = current_app.config.get("CLOUDFLARE_API_TOKEN")
    zone_id = current_app.config.get("CLOUDFLARE_ZONE_ID")
    target = current_app.config.get("DNS_TARGET") or current_app.config.get("SITE_DOMAIN")

    if token and zone_id:
        return {"token": token, "zone_id": zone_id, "target": target}
    return None


def _headers(config):
    return {
        "Authorization": f"Bearer {config['token']}",
        "Content-Type": "application/json",
    }


def _record_name(subdomain):
    return f"{subdomain}.{current_app.config['SITE_DOMAIN']}"


def create_subdomain_record(subdomain):
    """Create a proxied CNAME for subdomain. Returns True on success."""
    config = _get_cloudflare_config()
    if config is None:
        return False

    url = f"{CLOUDFLARE_API_URL}/zones/{config['zone_id']}/dns_records"
    payload = {
        "type": "CNAME",
        "name": subdomain,
        "content": config["target"],
        "ttl": 1,  # "automatic" -- required for proxied records
        "proxied": True,
    }

    try:
        resp = requests.post(url, headers=_headers(config), json=payload, timeout=15)
        resp.raise_for_status()
        logger.info(f"Cloudflare CNAME created: {_record_name(subdomain)} -> {config['target']}")
        return True
    except requests.RequestException as e:
        logger.error(f"Cloudflare CNAME creation failed for {subdomain}: {e}")
        return False


def delete_subdomain_record(subdomain):
    """Delete the CNAME(s) for subdomain. Returns True if any were removed."""
    config = _get_cloudflare_config()
    if config is None:
        return False

    base = f"{CLOUDFLARE_API_URL}/zones/{config['zone_id']}/dns_records"
    name = _record_name(subdomain)

    try:
        resp = requests.get(
            base,
            headers=_headers(config),
            params={"type": "CNAME", "name": name},
            timeout=15,
        )
        resp.raise_for_status()
        records = resp.json().get("result") or []

        for record in records:
            requests.delete(
                f"{base}/{record['id']}", headers=_headers(config), timeout=15
            ).raise_for_status()

        if records:
            logger.info(f"Cloudflare CNAME removed: {name}")
        return bool(records)
    except requests.RequestException as e:
        logger.warning(f"Cloudflare CNAME removal failed for {subdomain}: {e}")
        return False
