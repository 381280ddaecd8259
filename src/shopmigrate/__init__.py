"""Shopify store migrator - replay dumped store data into a destination store."""

__version__ = "0.1.0"

from .cli import app  # noqa: E402
from .config import MigratorConfig  # noqa: E402

__all__ = ["app", "MigratorConfig"]
