"""Site model.

Backing table for the "database" site store backend. One row per
published tenant site; the rendered HTML lives in the row.
"""

import uuid

from app.extensions import db


class Site(db.Model):
    __tablename__ = "sites"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    subdomain = db.Column(db.String(63), unique=True, nullable=False, index=True)
    template = db.Column(db.Text, nullable=False)  # basic | portfolio | blog (as requested)
    color = db.Column(db.Text, nullable=False)
    html = db.Column(db.Text, nullable=False)
    view_count = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    last_accessed_at = db.Column(db.DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<Site {self.subdomain} ({self.template})>"
