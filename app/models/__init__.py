# Models package - import all models here so Alembic can discover them.

from app.models.site import Site  # noqa: F401
