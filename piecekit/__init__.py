"""
piecekit - hot-swappable registries of file-backed pieces.

A store treats a directory of Python files as a live collection of named
"pieces": each file is resolved by a loader strategy into piece classes,
which are constructed, hooked and indexed by name (and, for alias stores,
by alias). Pieces can be unloaded and reloaded at runtime.

Core exports:
- Piece / AliasPiece: Units of behaviour bound to a file
- Store / AliasStore: Registries owning the load/unload/reload protocol
- LoaderStrategy: Default importlib-backed strategy
- Faults: LoaderError, MissingExportsError, PieceNotFoundError, ...
"""

import logging

__version__ = "0.1.0"

from .faults import (
    AliasConflictError,
    ConfigError,
    Fault,
    FaultDomain,
    LoaderError,
    MissingExportsError,
    PieceContextError,
    PieceNotFoundError,
    RegistryFault,
    Severity,
)
from .piece import Piece, PieceContext, PieceContextExtras, PieceOptions
from .alias_piece import AliasPiece, AliasPieceOptions
from .strategies import BaseLoaderStrategy, LoaderStrategy, ModuleData
from .store import Store
from .alias_store import AliasStore
from .config import ConfigLoader, StoreConfig
from .walker import walk


def configure_logging(level: str = "info") -> None:
    """Basic logging setup for scripts embedding piecekit."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


__all__ = [
    # Pieces
    "Piece",
    "PieceContext",
    "PieceContextExtras",
    "PieceOptions",
    "AliasPiece",
    "AliasPieceOptions",
    # Stores
    "Store",
    "AliasStore",
    # Strategies
    "BaseLoaderStrategy",
    "LoaderStrategy",
    "ModuleData",
    "walk",
    # Config
    "ConfigLoader",
    "StoreConfig",
    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "RegistryFault",
    "LoaderError",
    "MissingExportsError",
    "PieceNotFoundError",
    "AliasConflictError",
    "PieceContextError",
    "ConfigError",
    "configure_logging",
]
