"""Apply engine: per-kind handlers and the phase orchestrator."""

from .files import FileSync
from .handlers import HANDLER_REGISTRY, ApplyContext, BaseHandler, ProductHandler
from .menus import MenuWriter
from .metafields import MetafieldWriter
from .metaobjects import MetaobjectWriter
from .orchestrator import ApplyOrchestrator, Phase, PhaseObserver, PhaseSelection
from .publications import PublicationSync
from .runner import MigrationRunner

__all__ = [
    "ApplyContext",
    "ApplyOrchestrator",
    "BaseHandler",
    "FileSync",
    "HANDLER_REGISTRY",
    "MenuWriter",
    "MetafieldWriter",
    "MetaobjectWriter",
    "MigrationRunner",
    "Phase",
    "PhaseObserver",
    "PhaseSelection",
    "ProductHandler",
    "PublicationSync",
]
