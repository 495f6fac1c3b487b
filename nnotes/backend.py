"""
Pluggable storage backend factory.

Creates the record store and search index based on configuration. The
local backend uses a JSON snapshot plus the embedded inverted index.
External backends register via the ``nnotes.backends`` entry point group.

External backend packages provide a factory function::

    def create_stores(config: StoreConfig) -> StoreBundle:
        ...

and register it in their pyproject.toml::

    [project.entry-points."nnotes.backends"]
    my-backend = "my_package.backend:create_stores"
"""

from typing import NamedTuple

from .config import StoreConfig
from .protocol import RecordStoreProtocol, SearchIndexProtocol


class StoreBundle(NamedTuple):
    """Storage backends returned by the factory."""
    record_store: RecordStoreProtocol
    index: SearchIndexProtocol
    is_local: bool  # True for filesystem-backed stores


def create_stores(config: StoreConfig) -> StoreBundle:
    """
    Create storage backends from configuration.

    For ``backend = "local"`` (default), creates the JSON RecordStore and
    the on-disk InvertedIndex under the store directory.

    For other values, loads the backend via the ``nnotes.backends`` entry
    point group.

    Raises:
        IndexCorrupt: If the local index exists but cannot be opened
        ValueError: If the backend name is unknown
    """
    if config.backend == "local":
        return _create_local_stores(config)
    return _load_backend(config.backend, config)


def _create_local_stores(config: StoreConfig) -> StoreBundle:
    """Create the default local storage backends."""
    from .index import InvertedIndex, ScoringParams
    from .record_store import RecordStore

    params = ScoringParams(
        k1=config.search.k1,
        b=config.search.b,
        title_boost=config.search.title_boost,
    )
    return StoreBundle(
        record_store=RecordStore(config.notes_path),
        index=InvertedIndex.open_or_create(config.index_path, params=params),
        is_local=True,
    )


def _load_backend(name: str, config: StoreConfig) -> StoreBundle:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="nnotes.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: {available}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. No backends registered."
    )
