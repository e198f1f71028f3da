import os


def _env_list(name, default):
    raw = os.environ.get(name)
    if raw is None:
        return default
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # --- Domain ---
    # Apex domain tenant sites hang off, e.g. "faizanrahil.trade".
    SITE_DOMAIN = os.environ.get("SITE_DOMAIN", "localhost")
    SITE_URL_SCHEME = os.environ.get("SITE_URL_SCHEME", "https")
    MAIN_APP_URL = os.environ.get("MAIN_APP_URL", "http://localhost:5005")
    # Host labels that always mean "main application", never a tenant
    RESERVED_SUBDOMAINS = _env_list("RESERVED_SUBDOMAINS", ["www", "api"])

    # --- Site store ---
    SITE_STORE_BACKEND = os.environ.get("SITE_STORE_BACKEND", "filesystem")  # memory | filesystem | database
    SITES_ROOT = os.environ.get("SITES_ROOT")  # defaults to instance/generated-sites

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or "sqlite:///sites.db"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }

    # --- Admin ---
    # When unset, /api/admin/* is open (dev only -- validate() insists in prod).
    ADMIN_API_KEY = os.environ.get("ADMIN_API_KEY")

    # --- API ---
    CORS_ORIGINS = _env_list("CORS_ORIGINS", ["*"])
    PUBLISH_RATE_LIMIT = os.environ.get("PUBLISH_RATE_LIMIT", "100 per 15 minutes")

    # --- Cloudflare DNS (optional) ---
    CLOUDFLARE_API_TOKEN = os.environ.get("CLOUDFLARE_API_TOKEN")
    CLOUDFLARE_ZONE_ID = os.environ.get("CLOUDFLARE_ZONE_ID")
    DNS_TARGET = os.environ.get("DNS_TARGET")  # CNAME target, e.g. the Railway host

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = ["SECRET_KEY", "SITE_DOMAIN", "ADMIN_API_KEY"]
        if os.environ.get("SITE_STORE_BACKEND") == "database":
            required.append("DATABASE_URL")
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SITE_URL_SCHEME = os.environ.get("SITE_URL_SCHEME", "http")
    CORS_ORIGINS = _env_list(
        "CORS_ORIGINS",
        ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:3001"],
    )

    @staticmethod
    def validate():
        """Only SECRET_KEY matters locally."""
        if not os.environ.get("SECRET_KEY"):
            raise RuntimeError("Missing required environment variables: SECRET_KEY")


class TestConfig(Config):
    """Testing - in-memory store and SQLite, rate limiting off."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SITE_DOMAIN = "example.com"
    SITE_URL_SCHEME = "https"
    MAIN_APP_URL = "https://example.com"
    RESERVED_SUBDOMAINS = ["www", "api"]
    SITE_STORE_BACKEND = "memory"
    SITES_ROOT = None
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    ADMIN_API_KEY = None
    CORS_ORIGINS = ["*"]
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    CLOUDFLARE_API_TOKEN = None
    CLOUDFLARE_ZONE_ID = None
    DNS_TARGET = None

    @staticmethod
    def validate():
        """Skip validation in test mode - everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production on Railway."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
