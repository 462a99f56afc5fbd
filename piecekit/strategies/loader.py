"""
Default loader strategy backed by ``importlib``.

Each load executes the file under a fresh module name, so a reload always
sees the current file contents and never collides with a regular import
of the same file. The module is registered in ``sys.modules`` under that
name; a reload of the same path drops the previous entry.
"""

from __future__ import annotations

import importlib.util
import inspect
import itertools
import sys
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional

from ..faults import LoaderError
from .base import BaseLoaderStrategy, ModuleData, PieceConstructor, logger

if TYPE_CHECKING:
    from ..store import Store


DEFAULT_EXTENSIONS = (".py",)
DEFAULT_IGNORE_PREFIXES = ("_",)

_module_ids = itertools.count(1)


class LoaderStrategy(BaseLoaderStrategy):
    """
    Loads pieces from Python source files.

    Candidate files have one of ``extensions`` and a name that does not
    start with any of ``ignore_prefixes`` (so ``__init__.py`` and private
    helper modules are skipped).

    Exports are the classes *defined* in the module that subclass the
    store's ``piece_class`` and are neither abstract nor private. A module
    that defines ``__all__`` only exports the names it lists.
    """

    def __init__(
        self,
        *,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
        ignore_prefixes: Iterable[str] = DEFAULT_IGNORE_PREFIXES,
    ):
        self.extensions = tuple(ext if ext.startswith(".") else f".{ext}" for ext in extensions)
        self.ignore_prefixes = tuple(ignore_prefixes)
        self._modules: Dict[str, str] = {}

    def filter(self, path: str) -> Optional[ModuleData]:
        file = Path(path)
        if file.suffix not in self.extensions:
            return None
        if self.ignore_prefixes and file.name.startswith(self.ignore_prefixes):
            return None
        return ModuleData(path=str(file.resolve()), name=file.stem, extension=file.suffix)

    async def preload(self, file: ModuleData) -> ModuleType:
        module_name = f"_piecekit_{file.name}_{next(_module_ids)}"

        try:
            spec = importlib.util.spec_from_file_location(module_name, file.path)
        except Exception as exc:
            raise LoaderError(file.path, f"Cannot resolve module at '{file.path}'", cause=exc) from exc
        if spec is None or spec.loader is None:
            raise LoaderError(file.path, f"Cannot resolve module at '{file.path}'")

        module = importlib.util.module_from_spec(spec)
        # dataclasses, typing.get_type_hints and pickle look the module up
        # by name while it executes.
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            raise LoaderError(
                file.path,
                f"Failed to import '{file.path}': {exc.__class__.__name__}: {exc}",
                cause=exc,
            ) from exc

        previous = self._modules.get(file.path)
        if previous is not None:
            sys.modules.pop(previous, None)
        self._modules[file.path] = module_name
        return module

    async def load(self, store: "Store", file: ModuleData) -> List[PieceConstructor]:
        module = await self.preload(file)
        found = list(self._exports(module, store.piece_class))
        logger.debug(
            "Resolved %s to %s",
            file.path,
            [ctor.__name__ for ctor in found] or "no exports",
        )
        return found

    @staticmethod
    def _exports(module: ModuleType, piece_class: type) -> Iterable[type]:
        public = getattr(module, "__all__", None)
        seen = set()
        for name, obj in vars(module).items():
            if public is not None and name not in public:
                continue
            if name.startswith("_") or not inspect.isclass(obj) or obj in seen:
                continue
            if obj.__module__ != module.__name__:
                continue
            if not issubclass(obj, piece_class) or inspect.isabstract(obj):
                continue
            seen.add(obj)
            yield obj
