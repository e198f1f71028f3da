"""
Custom route decorators for access control.

- admin_required: when ADMIN_API_KEY is configured, the request must carry
  it in the X-Admin-Key header. Unset key = open (local dev only; prod
  config validation insists on one).
"""

import hmac
from functools import wraps

from flask import current_app, jsonify, request


def admin_required(f):
    """Require the admin API key, if one is configured."""

    @wraps(f)
    def decorated(*args, **kwargs):
        expected = current_app.config.get("ADMIN_API_KEY")
        if expected:
            supplied = request.headers.get("X-Admin-Key", "")
            if not hmac.compare_digest(supplied.encode(), expected.encode()):
                return jsonify(success=False, error="Admin key required."), 401
        return f(*args, **kwargs)

    return decorated
