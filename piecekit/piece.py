"""
Piece - a named, enable-able unit of behaviour loaded from a file.

Pieces are constructed by a :class:`~piecekit.store.Store` during a load
cycle and receive a :class:`PieceContext` describing where they came from.
Subclasses override :meth:`Piece.on_load` / :meth:`Piece.on_unload` for
setup and teardown, and pass their options up through ``__init__``::

    class Ping(Piece):
        def __init__(self, context, **options):
            super().__init__(context, name="ping", **options)

        async def on_load(self):
            self.context["bus"].subscribe(self.name, self.run)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, TypedDict

from .faults import PieceContextError

if TYPE_CHECKING:
    from .store import Store


PieceContextExtras = Mapping[str, Any]
"""Read-only bag of services shared by every piece of a store."""


@dataclass(frozen=True)
class PieceContext:
    """
    Construction-time context handed to every piece.

    Attributes:
        path: The file the piece was loaded from
        name: The piece name derived from the path
        store: The store that is loading the piece
    """

    path: str
    name: str
    store: "Store"


class PieceOptions(TypedDict, total=False):
    """Keyword options accepted by :class:`Piece`."""

    name: str
    enabled: bool


class Piece:
    """
    The piece to be stored in :class:`~piecekit.store.Store` instances.

    Attributes:
        store: The store that contains the piece
        path: The path to the piece's file
        name: The name of the piece, unique within its store
        enabled: Whether the piece is enabled; disabled pieces are not indexed
    """

    def __init__(self, context: PieceContext, **options: Any):
        missing = [
            attr for attr in ("path", "name", "store")
            if getattr(context, attr, None) is None
        ]
        if missing:
            raise PieceContextError(missing)

        self._store = context.store
        self._path = context.path
        name = options.get("name")
        self._name = name if name is not None else context.name
        self.enabled: bool = options.get("enabled", True)

    @property
    def store(self) -> "Store":
        return self._store

    @property
    def path(self) -> str:
        return self._path

    @property
    def name(self) -> str:
        return self._name

    @property
    def context(self) -> PieceContextExtras:
        """The extras injected by the owning store (see ``Store.context``)."""
        return self._store.context

    # ── lifecycle hooks ──────────────────────────────────────────────────

    def on_load(self) -> Any:
        """
        Called by the store once the piece has been constructed.

        May be ``async``; the load cycle waits for it before the piece is
        indexed.
        """
        return None

    def on_unload(self) -> Any:
        """
        Called by the store before the piece is removed from its index.

        May be ``async``; useful for clean-up tasks.
        """
        return None

    # ── self-service ─────────────────────────────────────────────────────

    async def unload(self) -> None:
        """Unloads and disables the piece."""
        await self._store.unload(self)
        self.enabled = False

    async def reload(self) -> List["Piece"]:
        """
        Reloads the piece by loading the same path in the store.

        The current instance is left untouched; the store replaces the
        index entry with a freshly constructed piece.
        """
        return await self._store.load(self._path)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot for serialization; never includes the store."""
        return {
            "path": self._path,
            "name": self._name,
            "enabled": self.enabled,
        }

    def __repr__(self) -> str:
        state = "enabled" if self.enabled else "disabled"
        return f"<{self.__class__.__name__} name={self._name!r} {state}>"
