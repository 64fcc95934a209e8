"""Host status FastAPI service."""
from importlib.metadata import version

from .api import create_app
from .service import StatusService

__all__ = ["create_app", "StatusService", "__version__"]

try:
    __version__ = version("host-status-service")
except Exception:  # pragma: no cover - fallback when package metadata missing
    __version__ = "0.1.0"
