"""Import all models here so metadata.create_all sees every table."""

from snapkeeper.db.base_class import Base
from snapkeeper.models import snap  # noqa: F401

__all__ = ["Base"]
