"""
AliasStore - a store that can also resolve pieces by alias.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple, Type

from .alias_piece import AliasPiece
from .faults import AliasConflictError, PieceNotFoundError
from .store import Store, T, logger


class AliasStore(Store[T]):
    """
    Store specialised for :class:`AliasPiece`.

    Keeps an ``alias → piece`` index in step with the primary index: aliases
    are registered and removed in the same synchronous step as the primary
    entry, so no alias ever points at a piece the store no longer holds.

    Lookups through the mapping protocol (``store[key]``, ``key in store``,
    ``store.get(key)``) try the primary name first, then the aliases.
    Iteration and ``len`` only cover primary names.

    An alias already owned by a piece with a different name is rejected
    with :class:`AliasConflictError`.
    """

    def __init__(self, piece_class: Type[T] = AliasPiece, **kwargs: Any):
        super().__init__(piece_class, **kwargs)
        self._aliases: Dict[str, T] = {}
        self._registered: Dict[str, Tuple[str, ...]] = {}

    @property
    def aliases(self) -> Mapping[str, T]:
        """Read-only view of the alias index."""
        return MappingProxyType(self._aliases)

    def __getitem__(self, key: str) -> T:
        try:
            return self._pieces[key]
        except KeyError:
            return self._aliases[key]

    def __contains__(self, key: object) -> bool:
        return key in self._pieces or key in self._aliases

    def lookup_alias(self, alias: str) -> T:
        """
        Resolve ``alias`` through the alias index only.

        Raises:
            PieceNotFoundError: If no loaded piece claims the alias
        """
        try:
            return self._aliases[alias]
        except KeyError:
            raise PieceNotFoundError(alias, self.name) from None

    # ── index maintenance ────────────────────────────────────────────────

    def _check_insert(self, pieces: List[T]) -> None:
        # Entries held by a name being replaced are about to be released.
        replacing = {piece.name for piece in pieces}
        claimed: Dict[str, T] = {}
        for piece in pieces:
            for alias in getattr(piece, "aliases", ()):
                owner = claimed.get(alias)
                if owner is None:
                    indexed = self._aliases.get(alias)
                    if indexed is not None and indexed.name not in replacing:
                        owner = indexed
                if owner is not None and owner.name != piece.name:
                    raise AliasConflictError(alias, owner=owner.name, claimant=piece.name)
                claimed[alias] = piece

    def _index(self, piece: T) -> None:
        super()._index(piece)
        aliases = tuple(getattr(piece, "aliases", ()))
        for alias in aliases:
            self._aliases[alias] = piece
        self._registered[piece.name] = aliases
        logger.debug("[%s] '%s' aliases: %s", self.name, piece.name, list(aliases))

    def _deindex(self, piece: T) -> None:
        # Remove what was registered, whatever the piece reports now.
        for alias in self._registered.pop(piece.name, ()):
            if self._aliases.get(alias) is piece:
                del self._aliases[alias]
        super()._deindex(piece)
