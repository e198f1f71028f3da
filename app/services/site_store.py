"""Site store - owns every published tenant site.

Three interchangeable backends behind one contract:
- MemorySiteStore: process-lifetime dict (lost on restart).
- FileSystemSiteStore: one directory per subdomain under SITES_ROOT,
  holding index.html + a site.json metadata sidecar. Any other file in
  the directory is a static asset of that tenant.
- DatabaseSiteStore: the `sites` table via Flask-SQLAlchemy.

Which one is active is picked by SITE_STORE_BACKEND in init_site_store().
Callers only ever go through get_site_store().

Duplicate policy: put() REJECTS an existing subdomain with ConflictError
on every backend. Replacing a site means delete() then put().

Usage:
    from app.services.site_store import get_site_store

    store = get_site_store()
    record = store.get("demo")
    if record:
        store.record_access("demo")
"""

import errno
import json
import logging
import os
import posixpath
import re
import shutil
import tempfile
import threading
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.security import safe_join

from app.exceptions import ConflictError, StorageIOError, ValidationError

logger = logging.getLogger(__name__)

SUBDOMAIN_RE = re.compile(r"^[a-z0-9-]{1,63}$")

INDEX_FILENAME = "index.html"
META_FILENAME = "site.json"

TAKEN_MESSAGE = "This subdomain is already taken. Please choose a different one."


def _utcnow():
    return datetime.now(timezone.utc)


def validate_subdomain(subdomain):
    """Raise ValidationError unless subdomain is a usable storage/routing key."""
    if not isinstance(subdomain, str) or not SUBDOMAIN_RE.match(subdomain):
        raise ValidationError(
            "Subdomain must be 1-63 characters of lowercase letters, digits and hyphens."
        )


def normalize_asset_path(path):
    """Collapse "." and ".." segments of a tenant-relative path.

    "" means the site root. A result starting with ".." points outside the
    tenant and is left for safe_join to reject.
    """
    path = posixpath.normpath((path or "").lstrip("/"))
    return "" if path == "." else path


class SiteRecord:
    """A published site. Handed out as a copy; only the store mutates state."""

    def __init__(self, subdomain, template, color, html, created_at,
                 last_accessed_at=None, view_count=0):
        self.subdomain = subdomain
        self.template = template
        self.color = color
        self.html = html
        self.created_at = created_at
        self.last_accessed_at = last_accessed_at or created_at
        self.view_count = view_count

    def copy(self):
        return SiteRecord(
            self.subdomain,
            self.template,
            self.color,
            self.html,
            self.created_at,
            self.last_accessed_at,
            self.view_count,
        )

    def to_dict(self, include_html=False):
        data = {
            "subdomain": self.subdomain,
            "template": self.template,
            "color": self.color,
            "createdAt": self.created_at.isoformat(),
            "lastAccessed": self.last_accessed_at.isoformat(),
            "views": self.view_count,
        }
        if include_html:
            data["html"] = self.html
        return data

    def __repr__(self):
        return f"<SiteRecord {self.subdomain} ({self.template}, {self.view_count} views)>"


class SiteStore:
    """Interface shared by every backend."""

    def put(self, subdomain, template, color, html):
        """Create a site. Raises ConflictError if subdomain exists."""
        raise NotImplementedError

    def get(self, subdomain):
        """Return a SiteRecord or None. Read-only."""
        raise NotImplementedError

    def record_access(self, subdomain):
        """Bump view count + last accessed. Silent no-op for unknown keys."""
        raise NotImplementedError

    def list(self):
        """All records, oldest first."""
        raise NotImplementedError

    def delete(self, subdomain):
        """Remove a site. Returns True if it existed."""
        raise NotImplementedError

    def read_asset(self, subdomain, path):
        """Return bytes of a file inside the tenant's namespace, or None."""
        raise NotImplementedError


# ──────────────────────────────────────────────
# In-memory backend
# ──────────────────────────────────────────────

class MemorySiteStore(SiteStore):

    def __init__(self):
        self._sites = {}  # insertion-ordered
        self._lock = threading.Lock()

    def put(self, subdomain, template, color, html):
        validate_subdomain(subdomain)
        record = SiteRecord(subdomain, template, color, html, _utcnow())
        with self._lock:
            if subdomain in self._sites:
                raise ConflictError(TAKEN_MESSAGE)
            self._sites[subdomain] = record
        return record.copy()

    def get(self, subdomain):
        with self._lock:
            record = self._sites.get(subdomain)
            return record.copy() if record else None

    def record_access(self, subdomain):
        with self._lock:
            record = self._sites.get(subdomain)
            if record is None:
                return
            record.view_count += 1
            record.last_accessed_at = _utcnow()

    def list(self):
        with self._lock:
            return [record.copy() for record in self._sites.values()]

    def delete(self, subdomain):
        with self._lock:
            return self._sites.pop(subdomain, None) is not None

    def read_asset(self, subdomain, path):
        if normalize_asset_path(path) not in ("", INDEX_FILENAME):
            return None
        record = self.get(subdomain)
        return record.html.encode("utf-8") if record else None


# ──────────────────────────────────────────────
# Filesystem backend
# ──────────────────────────────────────────────

class FileSystemSiteStore(SiteStore):
    """generated-sites/<subdomain>/{index.html, site.json, ...assets}

    put() builds the site in a hidden temp dir and renames it into place,
    so a failed publish never leaves a half-written site behind. The
    rename is also what decides a same-key race.
    """

    def __init__(self, root):
        self.root = os.path.abspath(root)
        self._lock = threading.Lock()

    def _site_dir(self, subdomain):
        return os.path.join(self.root, subdomain)

    def _exists(self, subdomain):
        return (
            bool(SUBDOMAIN_RE.match(subdomain or ""))
            and os.path.isfile(os.path.join(self._site_dir(subdomain), INDEX_FILENAME))
        )

    def put(self, subdomain, template, color, html):
        validate_subdomain(subdomain)
        now = _utcnow()
        record = SiteRecord(subdomain, template, color, html, now)
        final_dir = self._site_dir(subdomain)

        tmp_dir = None
        try:
            os.makedirs(self.root, exist_ok=True)
            if os.path.exists(final_dir):
                raise ConflictError(TAKEN_MESSAGE)

            tmp_dir = tempfile.mkdtemp(prefix=f".tmp-{subdomain}-", dir=self.root)
            with open(os.path.join(tmp_dir, INDEX_FILENAME), "w", encoding="utf-8") as f:
                f.write(html)
            self._write_meta(tmp_dir, record)

            try:
                os.rename(tmp_dir, final_dir)
            except OSError as e:
                if e.errno in (errno.EEXIST, errno.ENOTEMPTY):
                    raise ConflictError(TAKEN_MESSAGE)
                raise
            tmp_dir = None
        except OSError as e:
            logger.error(f"Failed to write site {subdomain} under {self.root}: {e}")
            raise StorageIOError(f"Could not save site '{subdomain}'.")
        finally:
            if tmp_dir is not None:
                shutil.rmtree(tmp_dir, ignore_errors=True)

        logger.info(f"Site written: {final_dir}")
        return record.copy()

    def get(self, subdomain):
        if not self._exists(subdomain):
            return None
        site_dir = self._site_dir(subdomain)
        try:
            with open(os.path.join(site_dir, INDEX_FILENAME), encoding="utf-8") as f:
                html = f.read()
            meta = self._read_meta(site_dir)
        except FileNotFoundError:
            # Deleted between the existence check and the read
            return None
        except (OSError, ValueError, KeyError, TypeError) as e:
            # Unreadable folder or corrupt site.json
            logger.error(f"Failed to read site {subdomain}: {e}")
            raise StorageIOError(f"Could not read site '{subdomain}'.")

        return SiteRecord(
            subdomain,
            meta["template"],
            meta["color"],
            html,
            meta["created_at"],
            meta["last_accessed_at"],
            meta["view_count"],
        )

    def record_access(self, subdomain):
        with self._lock:
            if not self._exists(subdomain):
                return
            site_dir = self._site_dir(subdomain)
            try:
                meta = self._read_meta(site_dir)
                record = SiteRecord(
                    subdomain,
                    meta["template"],
                    meta["color"],
                    None,
                    meta["created_at"],
                    _utcnow(),
                    meta["view_count"] + 1,
                )
                self._write_meta(site_dir, record)
            except (OSError, ValueError, KeyError, TypeError) as e:
                # A lost view count is not worth failing the page view over
                logger.warning(f"Failed to record access for {subdomain}: {e}")

    def list(self):
        if not os.path.isdir(self.root):
            return []
        records = []
        for entry in os.scandir(self.root):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            try:
                record = self.get(entry.name)
            except StorageIOError:
                logger.warning(f"Skipping unreadable site folder: {entry.path}")
                continue
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: r.created_at)
        return records

    def delete(self, subdomain):
        with self._lock:
            if not self._exists(subdomain):
                return False
            site_dir = self._site_dir(subdomain)
            # Move out of the way first so readers never see a half-deleted tree
            trash_dir = os.path.join(self.root, f".trash-{subdomain}-{os.getpid()}")
            try:
                os.rename(site_dir, trash_dir)
            except FileNotFoundError:
                return False
            except OSError as e:
                logger.error(f"Failed to delete site {subdomain}: {e}")
                raise StorageIOError(f"Could not delete site '{subdomain}'.")
            shutil.rmtree(trash_dir, ignore_errors=True)
        logger.info(f"Site deleted: {site_dir}")
        return True

    def read_asset(self, subdomain, path):
        if not self._exists(subdomain):
            return None
        site_dir = self._site_dir(subdomain)
        path = normalize_asset_path(path) or INDEX_FILENAME
        full_path = safe_join(site_dir, path)
        if full_path is None or not os.path.isfile(full_path):
            return None
        if os.path.normpath(full_path) == os.path.join(site_dir, META_FILENAME):
            return None
        try:
            with open(full_path, "rb") as f:
                return f.read()
        except OSError as e:
            logger.warning(f"Failed to read asset {subdomain}/{path}: {e}")
            return None

    # --- Metadata sidecar ---

    def _read_meta(self, site_dir):
        meta_path = os.path.join(site_dir, META_FILENAME)
        if not os.path.isfile(meta_path):
            # Hand-placed site folder: serve it with best-guess metadata
            mtime = datetime.fromtimestamp(
                os.path.getmtime(os.path.join(site_dir, INDEX_FILENAME)), timezone.utc
            )
            return {
                "template": "unknown",
                "color": "",
                "created_at": mtime,
                "last_accessed_at": mtime,
                "view_count": 0,
            }
        with open(meta_path, encoding="utf-8") as f:
            raw = json.load(f)
        return {
            "template": raw["template"],
            "color": raw["color"],
            "created_at": datetime.fromisoformat(raw["created_at"]),
            "last_accessed_at": datetime.fromisoformat(raw["last_accessed_at"]),
            "view_count": int(raw.get("view_count", 0)),
        }

    def _write_meta(self, site_dir, record):
        """Write site.json atomically (temp file + os.replace)."""
        payload = {
            "subdomain": record.subdomain,
            "template": record.template,
            "color": record.color,
            "created_at": record.created_at.isoformat(),
            "last_accessed_at": record.last_accessed_at.isoformat(),
            "view_count": record.view_count,
        }
        fd, tmp_path = tempfile.mkstemp(prefix=".site-", suffix=".json", dir=site_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, os.path.join(site_dir, META_FILENAME))
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


# ──────────────────────────────────────────────
# Database backend
# ──────────────────────────────────────────────

class DatabaseSiteStore(SiteStore):
    """Sites table via Flask-SQLAlchemy. Needs an app context.

    Every method commits: each store call is its own unit of work.
    """

    @staticmethod
    def _to_record(row):
        return SiteRecord(
            row.subdomain,
            row.template,
            row.color,
            row.html,
            _aware(row.created_at),
            _aware(row.last_accessed_at),
            row.view_count,
        )

    def put(self, subdomain, template, color, html):
        from app.extensions import db
        from app.models.site import Site

        validate_subdomain(subdomain)
        if Site.query.filter_by(subdomain=subdomain).first() is not None:
            raise ConflictError(TAKEN_MESSAGE)

        now = _utcnow()
        row = Site(
            subdomain=subdomain,
            template=template,
            color=color,
            html=html,
            view_count=0,
            created_at=now,
            last_accessed_at=now,
        )
        db.session.add(row)
        try:
            db.session.commit()
        except IntegrityError:
            # Lost a race against another publish of the same subdomain
            db.session.rollback()
            raise ConflictError(TAKEN_MESSAGE)
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to insert site {subdomain}: {e}")
            raise StorageIOError(f"Could not save site '{subdomain}'.")
        return self._to_record(row)

    def get(self, subdomain):
        from app.models.site import Site

        row = Site.query.filter_by(subdomain=subdomain).first()
        return self._to_record(row) if row else None

    def record_access(self, subdomain):
        from app.extensions import db
        from app.models.site import Site

        try:
            # Single UPDATE so concurrent views don't overwrite each other
            Site.query.filter_by(subdomain=subdomain).update(
                {
                    Site.view_count: Site.view_count + 1,
                    Site.last_accessed_at: _utcnow(),
                },
                synchronize_session=False,
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.warning(f"Failed to record access for {subdomain}: {e}")

    def list(self):
        from app.models.site import Site

        rows = Site.query.order_by(Site.created_at.asc()).all()
        return [self._to_record(row) for row in rows]

    def delete(self, subdomain):
        from app.extensions import db
        from app.models.site import Site

        row = Site.query.filter_by(subdomain=subdomain).first()
        if row is None:
            return False
        db.session.delete(row)
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to delete site {subdomain}: {e}")
            raise StorageIOError(f"Could not delete site '{subdomain}'.")
        return True

    def read_asset(self, subdomain, path):
        if normalize_asset_path(path) not in ("", INDEX_FILENAME):
            return None
        record = self.get(subdomain)
        return record.html.encode("utf-8") if record else None


def _aware(value):
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ──────────────────────────────────────────────
# Wiring
# ──────────────────────────────────────────────

def init_site_store(app):
    """Build the configured backend and bind it to the app."""
    backend = app.config.get("SITE_STORE_BACKEND", "filesystem")

    if backend == "memory":
        store = MemorySiteStore()
    elif backend == "filesystem":
        root = app.config.get("SITES_ROOT") or os.path.join(
            app.instance_path, "generated-sites"
        )
        store = FileSystemSiteStore(root)
    elif backend == "database":
        store = DatabaseSiteStore()
    else:
        raise RuntimeError(f"Unknown SITE_STORE_BACKEND: {backend!r}")

    app.extensions["site_store"] = store
    app.logger.info(f"Site store backend: {backend}")
    return store


def get_site_store():
    """Return the site store bound to the current app."""
    return current_app.extensions["site_store"]
