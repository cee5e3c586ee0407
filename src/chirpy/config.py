"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable in one dataclass. Values come from three layers; later layers
win:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   1. dataclass defaults          ServerConfig()                      │
    │   2. environment / .env file     ServerConfig.from_env()             │
    │   3. command line flags          python -m chirpy --port 9000        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    CHIRPY_HOST           bind address                 127.0.0.1
    CHIRPY_PORT           bind port (0 = any free)     8080
    CHIRPY_WORKERS        max worker threads           16
    CHIRPY_TIMEOUT        socket timeout, seconds      30
    CHIRPY_FILEPATH_ROOT  directory served at /app/    .
    CHIRPY_LOG_LEVEL      DEBUG, INFO, WARNING, ...    INFO
    CHIRPY_LOG_FORMAT     text or json                 text

A ``.env`` file is read first with python-dotenv. Variables already set in
the real environment are not overridden by the file.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional, Callable, TypeVar

from dotenv import load_dotenv, find_dotenv


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")

T = TypeVar("T")


@dataclass
class ServerConfig:
    """
    Configuration for the Chirpy server.

    Development:
        ServerConfig(port=8080, log_level="DEBUG")

    Container:
        ServerConfig(host="0.0.0.0", port=8080, max_workers=32, log_format="json")
    """

    # ─── Network ─────────────────────────────────────────────────────────

    host: str = "127.0.0.1"

    port: int = 8080
    """0 asks the OS for a free port; read the real one from HTTPServer.address."""

    backlog: int = 128

    buffer_size: int = 8192

    timeout: Optional[float] = 30.0
    """Seconds to wait for the first request on a new connection."""

    # ─── HTTP ────────────────────────────────────────────────────────────

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0

    max_request_size: int = 10 * 1024 * 1024

    # ─── Thread pool ─────────────────────────────────────────────────────

    min_workers: int = 4

    max_workers: int = 16

    # ─── File server ─────────────────────────────────────────────────────

    filepath_root: str = "."
    """Directory served under ``app_prefix``."""

    app_prefix: str = "/app"

    directory_listing: bool = True
    """List directories that have no index.html (403 when off)."""

    # ─── Logging ─────────────────────────────────────────────────────────

    log_level: str = "INFO"

    log_format: str = "text"

    # ─── Identity ────────────────────────────────────────────────────────

    server_name: str = "Chirpy/1.0"

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ServerConfig":
        """
        Build a config from ``CHIRPY_*`` environment variables.

        Args:
            env_file: A ``.env`` file to load first. Without it, the nearest
                      ``.env`` above the working directory is used, if any.

        Raises:
            ValueError: A numeric variable does not hold a number.
        """
        dotenv_path = env_file or find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)

        defaults = cls()
        max_workers = _env("CHIRPY_WORKERS", int, defaults.max_workers)
        return cls(
            host=os.getenv("CHIRPY_HOST", defaults.host),
            port=_env("CHIRPY_PORT", int, defaults.port),
            min_workers=max(1, min(defaults.min_workers, max_workers)),
            max_workers=max_workers,
            timeout=_env("CHIRPY_TIMEOUT", float, defaults.timeout),
            filepath_root=os.getenv("CHIRPY_FILEPATH_ROOT", defaults.filepath_root),
            log_level=os.getenv("CHIRPY_LOG_LEVEL", defaults.log_level).upper(),
            log_format=os.getenv("CHIRPY_LOG_FORMAT", defaults.log_format).lower(),
        )

    def validate(self) -> None:
        """
        Reject impossible settings at startup.

        Raises:
            ValueError: Describes the first bad setting found.
        """
        if not 0 <= self.port <= 65535:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")
        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")
        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
        if not self.app_prefix.startswith("/"):
            raise ValueError("app_prefix must start with '/'")


def _env(name: str, convert: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return convert(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a {convert.__name__}, got {raw!r}") from None
