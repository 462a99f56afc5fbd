"""
Store - registry and load/unload/reload orchestration for pieces.

Data flow::

    Store.load(path)
      → strategy.filter(path)            (candidate file?)
      → strategy.load(store, file)       (constructors)
      → construct(ctor, file)            (PieceContext {path, name, store})
      → _insert_all(pieces)              (on_load hooks, release replaced, swap index)

Index mutations happen in synchronous blocks with no ``await`` inside,
so other tasks reading the store observe either the previous or the next
state, never a half-updated one.
"""

from __future__ import annotations

import inspect
import logging
from collections import ChainMap
from pathlib import Path
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from .faults import LoaderError, MissingExportsError, PieceContextError, PieceNotFoundError
from .piece import Piece, PieceContext, PieceContextExtras
from .strategies.base import BaseLoaderStrategy, ModuleData, PieceConstructor
from .strategies.loader import LoaderStrategy
from .walker import walk

logger = logging.getLogger("piecekit.store")

T = TypeVar("T", bound=Piece)


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Store(Mapping[str, T]):
    """
    An ordered, read-only mapping of piece name → piece, plus the protocol
    that loads, replaces and unloads pieces.

    Attributes:
        piece_class: Base class every loaded piece must derive from
        name: Store name, used in logs and errors
        paths: Directories walked by :meth:`load_all`
        strategy: Loader strategy resolving files into constructors

    A store is a mapping, so an empty store is falsy. Test optional stores
    with ``is not None`` rather than truthiness.

    Example:
        ```python
        store = Store(Command, name="commands", paths=["./commands"],
                      context={"bus": bus})
        await store.load_all()
        await store["ping"].reload()
        ```
    """

    #: Process-wide extras visible to every store; per-store extras win.
    injected_context: Dict[str, Any] = {}

    def __init__(
        self,
        piece_class: Type[T] = Piece,
        *,
        name: str,
        paths: Iterable[Union[str, Path]] = (),
        strategy: Optional[BaseLoaderStrategy] = None,
        context: Optional[Mapping[str, Any]] = None,
        walker: Callable[[Union[str, Path]], Iterable[str]] = walk,
    ):
        self.piece_class = piece_class
        self.name = name
        self.paths: List[str] = []
        self.strategy: BaseLoaderStrategy = strategy if strategy is not None else LoaderStrategy()
        self._extras: Dict[str, Any] = dict(context or {})
        self._context = MappingProxyType(ChainMap(self._extras, Store.injected_context))
        self._walker = walker
        self._pieces: Dict[str, T] = {}

        for path in paths:
            self.register_path(path)

    @classmethod
    def from_config(cls, piece_class: Type[T], config: Any, **kwargs: Any) -> "Store[T]":
        """
        Build a store from a :class:`~piecekit.config.StoreConfig`.

        Unless a ``strategy`` is given, a :class:`LoaderStrategy` is
        created with the configured extensions and ignore prefixes.
        """
        kwargs.setdefault(
            "strategy",
            LoaderStrategy(
                extensions=config.extensions,
                ignore_prefixes=config.ignore_prefixes,
            ),
        )
        return cls(piece_class, name=config.name, paths=config.paths, **kwargs)

    # ── mapping protocol ─────────────────────────────────────────────────

    def __getitem__(self, key: str) -> T:
        return self._pieces[key]

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._pieces))

    def __len__(self) -> int:
        return len(self._pieces)

    def __contains__(self, key: object) -> bool:
        return key in self._pieces

    def values(self) -> Tuple[T, ...]:  # type: ignore[override]
        return tuple(self._pieces.values())

    def items(self) -> Tuple[Tuple[str, T], ...]:  # type: ignore[override]
        return tuple(self._pieces.items())

    # Stores are registries, not values: compare by identity.
    __eq__ = object.__eq__
    __hash__ = object.__hash__

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} pieces={len(self._pieces)}>"

    # ── context & paths ──────────────────────────────────────────────────

    @property
    def context(self) -> PieceContextExtras:
        """Read-only extras bag shared with every piece of this store."""
        return self._context

    def register_path(self, path: Union[str, Path]) -> "Store[T]":
        """Add a directory to walk in :meth:`load_all`."""
        resolved = str(Path(path).resolve())
        if resolved not in self.paths:
            self.paths.append(resolved)
        return self

    # ── resolution ───────────────────────────────────────────────────────

    def resolve(self, key: Union[str, Piece]) -> T:
        """
        Resolve a name or a piece instance to the indexed piece.

        A piece instance only resolves if it is the one currently indexed
        under its name.

        Raises:
            PieceNotFoundError: If nothing matches
        """
        if isinstance(key, Piece):
            if self._pieces.get(key.name) is key:
                return key
            raise PieceNotFoundError(key.name, self.name)

        piece = self.get(key)
        if piece is None:
            raise PieceNotFoundError(key, self.name)
        return piece

    def construct(self, constructor: PieceConstructor, file: ModuleData) -> T:
        """Instantiate a piece for ``file``."""
        context = PieceContext(path=file.path, name=file.name, store=self)
        try:
            piece = constructor(context)
        except PieceContextError:
            raise
        except Exception as exc:
            raise LoaderError(
                file.path,
                f"Failed to construct {getattr(constructor, '__name__', constructor)!s} "
                f"from '{file.path}': {exc}",
                code="CONSTRUCTION_FAILED",
                cause=exc,
            ) from exc

        if not isinstance(piece, self.piece_class):
            raise LoaderError(
                file.path,
                f"{type(piece).__name__} from '{file.path}' is not a "
                f"{self.piece_class.__name__}",
                code="CONSTRUCTION_FAILED",
                retryable=False,
            )
        return piece

    # ── load / unload ────────────────────────────────────────────────────

    async def load(self, path: Union[str, Path]) -> List[T]:
        """
        Load every piece exported by the file at ``path``.

        Pieces replace any piece already indexed under the same name. The
        call is all-or-nothing: the replaced pieces are only released once
        every new piece has been constructed and its load hooks have run,
        so a failure leaves the index exactly as it was before the call.

        Returns:
            The constructed pieces (disabled ones are returned unindexed)

        Raises:
            LoaderError: If the path is not a candidate or cannot be resolved
            MissingExportsError: If the file exports no piece
        """
        path = str(path)
        file = self.strategy.filter(path)
        if file is None:
            raise LoaderError(
                path,
                f"'{path}' is not a piece file for store '{self.name}'",
                code="UNKNOWN_FILE",
                retryable=False,
            )

        try:
            constructors = await self.strategy.load(self, file)
        except LoaderError:
            raise
        except Exception as exc:
            raise LoaderError(file.path, f"Failed to resolve '{file.path}': {exc}", cause=exc) from exc

        if not constructors:
            raise MissingExportsError(file.path)

        loaded = [self.construct(constructor, file) for constructor in constructors]
        await self._insert_all(loaded)

        logger.info(
            "[%s] loaded %s from %s",
            self.name,
            ", ".join(repr(p.name) for p in loaded),
            file.path,
        )
        return loaded

    async def insert(self, piece: T) -> T:
        """
        Run the load hooks for ``piece`` and index it.

        If another piece holds the name, its unload hooks run after the new
        piece's load hooks; the index then swaps both in a single step.
        """
        await self._insert_all([piece])
        return piece

    async def unload(self, key: Union[str, Piece]) -> T:
        """
        Unload a piece by name or instance.

        Raises:
            PieceNotFoundError: If the piece is not loaded
        """
        piece = self.resolve(key)
        await self._release(piece)
        if self._pieces.get(piece.name) is piece:
            self._deindex(piece)
        logger.info("[%s] unloaded '%s'", self.name, piece.name)
        return piece

    async def unload_all(self) -> List[T]:
        """Unload every piece, in index order."""
        unloaded = []
        for piece in self.values():
            if self._pieces.get(piece.name) is piece:
                unloaded.append(await self.unload(piece))
        await _maybe_await(self.strategy.on_unload_all(self))
        return unloaded

    async def load_all(self) -> List[T]:
        """
        Clear the store and load every candidate file under :attr:`paths`.

        Files that fail to load are reported to ``strategy.on_error`` and
        skipped; the rest of the walk continues.
        """
        await self.unload_all()

        loaded: List[T] = []
        for root in self.paths:
            for path in self._walker(root):
                if self.strategy.filter(path) is None:
                    continue
                try:
                    loaded.extend(await self.load(path))
                except Exception as error:
                    self.strategy.on_error(error, path)

        await _maybe_await(self.strategy.on_load_all(self))
        return loaded

    # ── internals ────────────────────────────────────────────────────────

    async def _insert_all(self, pieces: List[T]) -> None:
        """
        Start ``pieces`` and swap them into the index together.

        1. run the load hooks of every enabled piece
        2. release the pieces they replace (and earlier duplicates)
        3. swap the index in one synchronous step

        If any step fails, the new pieces already started are released and
        the index is left untouched.
        """
        enabled = []
        for piece in pieces:
            if piece.enabled:
                enabled.append(piece)
            else:
                logger.debug("[%s] '%s' is disabled, not indexing", self.name, piece.name)
        if not enabled:
            return

        self._check_insert(enabled)

        started: List[T] = []
        released: List[T] = []
        try:
            for piece in enabled:
                await _maybe_await(self.strategy.on_load(self, piece))
                await _maybe_await(piece.on_load())
                started.append(piece)

            winners: Dict[str, T] = {}
            for piece in started:
                earlier = winners.get(piece.name)
                if earlier is not None and earlier is not piece:
                    await self._release(earlier)
                    released.append(earlier)
                winners[piece.name] = piece

            for name, piece in winners.items():
                previous = self._pieces.get(name)
                if previous is not None and previous is not piece:
                    await self._release(previous)
                    logger.info("[%s] replacing '%s'", self.name, name)

            self._commit(list(winners.values()))
        except Exception:
            for piece in reversed(started):
                if any(piece is done for done in released):
                    continue
                try:
                    await self._release(piece)
                except Exception:
                    logger.exception("[%s] rollback of '%s' failed", self.name, piece.name)
            raise

    def _commit(self, pieces: List[T]) -> None:
        self._check_insert(pieces)
        for piece in pieces:
            current = self._pieces.get(piece.name)
            if current is not None:
                self._deindex(current)
            self._index(piece)

    async def _release(self, piece: T) -> None:
        await _maybe_await(self.strategy.on_unload(self, piece))
        await _maybe_await(piece.on_unload())

    def _check_insert(self, pieces: List[T]) -> None:
        """Raise if ``pieces`` cannot be indexed together. Must not await."""

    def _index(self, piece: T) -> None:
        self._pieces[piece.name] = piece

    def _deindex(self, piece: T) -> None:
        del self._pieces[piece.name]
