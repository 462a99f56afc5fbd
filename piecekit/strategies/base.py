"""
Loader strategy abstraction.

A strategy turns a file path into zero-or-more piece constructors. Stores
are agnostic to module format and file filtering; they only talk to this
interface.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import ModuleType
from typing import TYPE_CHECKING, Any, Callable, List, Optional

if TYPE_CHECKING:
    from ..piece import Piece
    from ..store import Store


logger = logging.getLogger("piecekit.strategy")

PieceConstructor = Callable[..., "Piece"]
"""Anything that builds a piece from ``(context)``; usually a Piece subclass."""


@dataclass(frozen=True)
class ModuleData:
    """
    Result of :meth:`BaseLoaderStrategy.filter` for a candidate file.

    Attributes:
        path: Resolved path of the file
        name: Piece name derived from the path (file stem)
        extension: File extension including the dot
    """

    path: str
    name: str
    extension: str


class BaseLoaderStrategy(ABC):
    """
    Abstract base class for loader strategies.

    Implementers supply path filtering (:meth:`filter`) and path-to-
    constructors resolution (:meth:`load`). The remaining methods are
    lifecycle callbacks invoked by the store; their defaults only log.

    A strategy never touches a store's index.
    """

    @abstractmethod
    def filter(self, path: str) -> Optional[ModuleData]:
        """
        Decide whether ``path`` is a candidate piece file.

        Returns:
            ModuleData for candidate files, None otherwise
        """

    async def preload(self, file: ModuleData) -> ModuleType:
        """Import the module behind ``file``."""
        raise NotImplementedError(f"{self.__class__.__name__} does not preload modules")

    @abstractmethod
    async def load(self, store: "Store", file: ModuleData) -> List[PieceConstructor]:
        """
        Resolve ``file`` into the piece constructors it exports.

        Returns:
            Possibly empty list of constructors

        Raises:
            LoaderError: If the module cannot be resolved
        """

    # ── store callbacks ──────────────────────────────────────────────────

    def on_load(self, store: "Store", piece: "Piece") -> Any:
        logger.debug("[%s] loaded '%s' from %s", store.name, piece.name, piece.path)

    def on_load_all(self, store: "Store") -> Any:
        logger.info("[%s] loaded %d piece(s)", store.name, len(store))

    def on_unload(self, store: "Store", piece: "Piece") -> Any:
        logger.debug("[%s] unloaded '%s'", store.name, piece.name)

    def on_unload_all(self, store: "Store") -> Any:
        logger.info("[%s] unloaded all pieces", store.name)

    def on_error(self, error: BaseException, path: str) -> None:
        """Called by ``Store.load_all`` for files that failed to load."""
        logger.error("Failed to load piece from %s: %s", path, error, exc_info=error)
