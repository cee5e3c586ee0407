"""
Endpoint handlers.

    static.py   file server mounted under /app/
    health.py   /api/healthz
    admin.py    /admin/metrics and /admin/reset
    chirps.py   /api/validate_chirp
"""

from .static import StaticFileHandler
from .health import readiness
from .admin import AdminHandler
from .chirps import (
    ChirpHandler,
    ChirpTooLongError,
    MalformedChirpError,
    clean_body,
    validate_chirp,
    MAX_CHIRP_LENGTH,
    PROFANE_WORDS,
)

__all__ = [
    "StaticFileHandler",
    "readiness",
    "AdminHandler",
    "ChirpHandler",
    "ChirpTooLongError",
    "MalformedChirpError",
    "clean_body",
    "validate_chirp",
    "MAX_CHIRP_LENGTH",
    "PROFANE_WORDS",
]
