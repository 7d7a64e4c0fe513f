"""API routers for LegalFlow."""

from . import health
from . import submissions

__all__ = [
    "health",
    "submissions",
]
