"""
Configuration management for note stores.

The configuration is stored as a TOML file in the store directory. It
selects the storage backend and holds the search ranking parameters.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w


CONFIG_FILENAME = "nnotes.toml"
CONFIG_VERSION = 1

NOTES_FILENAME = "notes.json"
INDEX_DIRNAME = "index"

STORE_PATH_ENV = "NNOTES_STORE_PATH"


@dataclass
class SearchConfig:
    """Ranking parameters and result cap."""
    limit: int = 10
    k1: float = 1.2
    b: float = 0.75
    title_boost: float = 2.0


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    backend: str = "local"
    search: SearchConfig = field(default_factory=SearchConfig)
    auto_reconcile: bool = False

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def notes_path(self) -> Path:
        return self.path / NOTES_FILENAME

    @property
    def index_path(self) -> Path:
        return self.path / INDEX_DIRNAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()


def get_default_store_path() -> Path:
    """
    Resolve the store directory when none is given explicitly.

    Priority:
    1. NNOTES_STORE_PATH environment variable
    2. ~/.nnotes
    """
    env_path = os.environ.get(STORE_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / ".nnotes"


def _parse_search(section: dict[str, Any]) -> SearchConfig:
    defaults = SearchConfig()
    try:
        search = SearchConfig(
            limit=int(section.get("limit", defaults.limit)),
            k1=float(section.get("k1", defaults.k1)),
            b=float(section.get("b", defaults.b)),
            title_boost=float(section.get("title_boost", defaults.title_boost)),
        )
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid [search] section: {e}") from e
    if search.limit < 1:
        raise ValueError(f"[search] limit must be at least 1, got {search.limit}")
    if search.k1 < 0 or not 0.0 <= search.b <= 1.0:
        raise ValueError("[search] k1 must be >= 0 and b must be within [0, 1]")
    return search


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid config file {config_path}: {e}") from e

    store = _section(data, "store")
    backend = _section(data, "backend")
    index = _section(data, "index")

    # Validate version
    version = store.get("version", 1)
    if not isinstance(version, int):
        raise ValueError(f"Config version must be an integer, got {version!r}")
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=backend.get("name", "local"),
        search=_parse_search(_section(data, "search")),
        auto_reconcile=bool(index.get("auto_reconcile", False)),
    )


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"[{name}] must be a table, got {type(section).__name__}")
    return section


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
        },
        "backend": {"name": config.backend},
        "search": {
            "limit": config.search.limit,
            "k1": config.search.k1,
            "b": config.search.b,
            "title_boost": config.search.title_boost,
        },
        "index": {"auto_reconcile": config.auto_reconcile},
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Optional[Path] = None) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    if store_path is None:
        store_path = get_default_store_path()
    store_path = Path(store_path)

    if (store_path / CONFIG_FILENAME).exists():
        return load_config(store_path)
    config = StoreConfig(path=store_path)
    save_config(config)
    return config
