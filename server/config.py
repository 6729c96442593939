"""Config management for Mangatrack.

Reads `config.ini` from DATA_DIR (defaults to the project root).
A handful of environment variables override the file so the server can run
in a container without one: SECRET_KEY, PASSWORD, PORT, STORAGE_DIR.
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
import secrets
import sys
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__)


def _get_project_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).resolve().parent
    return pathlib.Path(__file__).resolve().parents[1]


PROJECT_ROOT = _get_project_root()

# DATA_DIR holds all persistent state (config.ini, mangas/, mangatrack.log).
DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"


@dataclasses.dataclass(frozen=True)
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 3000


@dataclasses.dataclass(frozen=True)
class AuthConfig:
    """Signing secret and the single shared access password."""

    secret_key: str = ""
    password: str = ""
    token_ttl_hours: int = 24

    @property
    def token_ttl_seconds(self) -> int:
        return self.token_ttl_hours * 3600


@dataclasses.dataclass(frozen=True)
class StorageConfig:
    path: pathlib.Path = DATA_DIR / "mangas"


@dataclasses.dataclass(frozen=True)
class ProxyConfig:
    timeout_seconds: float = 15.0


@dataclasses.dataclass(frozen=True)
class LoggingConfig:
    """Console level and where the rotating log file goes."""

    level: str = "INFO"
    directory: pathlib.Path = DATA_DIR
    filename: str = "mangatrack.log"

    @property
    def log_file(self) -> pathlib.Path:
        return self.directory / self.filename


@dataclasses.dataclass(frozen=True)
class TrackerConfig:
    server: ServerConfig
    auth: AuthConfig
    storage: StorageConfig
    proxy: ProxyConfig
    logging: LoggingConfig = dataclasses.field(default_factory=LoggingConfig)

    @property
    def storage_dir(self) -> pathlib.Path:
        return self.storage.path

    @property
    def server_host(self) -> str:
        return self.server.host

    @property
    def server_port(self) -> int:
        return self.server.port


def load_config(config_path: Optional[pathlib.Path] = None) -> TrackerConfig:
    """Load configuration from config.ini, then apply environment overrides.

    A missing config file is only an error when the environment does not
    provide the signing secret either.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path)
    elif not os.environ.get("SECRET_KEY"):
        raise FileNotFoundError(f"Config file not found: {path}")

    port = parser.getint("server", "port", fallback=3000)
    if os.environ.get("PORT"):
        port = int(os.environ["PORT"])
    server = ServerConfig(
        host=parser.get("server", "host", fallback="0.0.0.0"),
        port=port,
    )

    auth = AuthConfig(
        secret_key=os.environ.get("SECRET_KEY")
        or parser.get("auth", "secret_key", fallback="").strip(),
        password=os.environ.get("PASSWORD")
        or parser.get("auth", "password", fallback="").strip(),
        token_ttl_hours=parser.getint("auth", "token_ttl_hours", fallback=24),
    )
    if not auth.secret_key:
        raise ValueError("auth.secret_key is empty; tokens cannot be signed")
    if not auth.password:
        logger.warning("auth.password is empty; token issuance is disabled")

    storage_raw = os.environ.get("STORAGE_DIR") or parser.get(
        "storage", "path", fallback=str(DATA_DIR / "mangas")
    )
    storage_path = pathlib.Path(storage_raw).expanduser()
    if not storage_path.is_absolute():
        storage_path = DATA_DIR / storage_path

    proxy = ProxyConfig(
        timeout_seconds=parser.getfloat("proxy", "timeout_seconds", fallback=15.0),
    )

    log_dir = pathlib.Path(parser.get("logging", "path", fallback=str(DATA_DIR))).expanduser()
    if not log_dir.is_absolute():
        log_dir = DATA_DIR / log_dir
    logging_config = LoggingConfig(
        level=parser.get("logging", "level", fallback="INFO").strip().upper(),
        directory=log_dir,
    )

    return TrackerConfig(
        server=server,
        auth=auth,
        storage=StorageConfig(path=storage_path),
        proxy=proxy,
        logging=logging_config,
    )


_cached_config: Optional[TrackerConfig] = None


def get_config() -> TrackerConfig:
    """Return the cached config singleton. Loads from disk on first call."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config_cache() -> None:
    """Clear the cached config (useful for tests)."""
    global _cached_config
    _cached_config = None


def write_default_config(
    config_path: pathlib.Path,
    storage_path: pathlib.Path,
    password: str,
    port: int = 3000,
) -> None:
    """Write a fresh config.ini with a random signing secret."""
    parser = configparser.ConfigParser()

    parser["server"] = {
        "host": "0.0.0.0",
        "port": str(port),
    }
    parser["auth"] = {
        "secret_key": secrets.token_urlsafe(32),
        "password": password,
        "token_ttl_hours": "24",
    }
    parser["storage"] = {
        "path": str(storage_path.expanduser()),
    }
    parser["proxy"] = {
        "timeout_seconds": "15",
    }
    parser["logging"] = {
        "level": "INFO",
        "path": str(DATA_DIR),
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as handle:
        parser.write(handle)
