"""
Tests the default LoaderStrategy and the BaseLoaderStrategy contract.
"""

import logging
import sys

import pytest

from piecekit import BaseLoaderStrategy, LoaderError, LoaderStrategy, ModuleData, Piece, Store

from tests.conftest import EMPTY, PING, write_piece


class TestFilter:

    def test_accepts_python_files(self, tmp_path):
        data = LoaderStrategy().filter(str(tmp_path / "ping.py"))
        assert data == ModuleData(
            path=str((tmp_path / "ping.py").resolve()),
            name="ping",
            extension=".py",
        )

    @pytest.mark.parametrize("filename", ["notes.txt", "__init__.py", "_helpers.py", "ping.pyc"])
    def test_rejects(self, tmp_path, filename):
        assert LoaderStrategy().filter(str(tmp_path / filename)) is None

    def test_custom_extensions_and_prefixes(self, tmp_path):
        strategy = LoaderStrategy(extensions=["plug"], ignore_prefixes=["test_"])
        assert strategy.extensions == (".plug",)
        assert strategy.filter(str(tmp_path / "ping.plug")).name == "ping"
        assert strategy.filter(str(tmp_path / "test_ping.plug")) is None
        assert strategy.filter(str(tmp_path / "_ping.plug")).name == "_ping"

    def test_no_ignore_prefixes(self, tmp_path):
        strategy = LoaderStrategy(ignore_prefixes=())
        assert strategy.filter(str(tmp_path / "_ping.py")).name == "_ping"


class TestLoad:

    @pytest.mark.asyncio
    async def test_exports_defined_piece_classes(self, tmp_path):
        path = write_piece(tmp_path, "mixed.py", """
            import abc

            from piecekit import Piece, AliasPiece

            class Base(Piece, abc.ABC):
                @abc.abstractmethod
                def run(self): ...

            class Ping(Base):
                def run(self):
                    return "pong"

            class _Hidden(Piece):
                pass

            class NotAPiece:
                pass

            HELPER = Ping
        """)
        strategy = LoaderStrategy()
        store = Store(name="test")

        constructors = await strategy.load(store, strategy.filter(str(path)))

        assert [c.__name__ for c in constructors] == ["Ping"]

    @pytest.mark.asyncio
    async def test_respects_dunder_all(self, tmp_path):
        path = write_piece(tmp_path, "some.py", """
            from piecekit import Piece

            __all__ = ["Kept"]

            class Kept(Piece):
                pass

            class Dropped(Piece):
                pass
        """)
        strategy = LoaderStrategy()

        constructors = await strategy.load(Store(name="test"), strategy.filter(str(path)))

        assert [c.__name__ for c in constructors] == ["Kept"]

    @pytest.mark.asyncio
    async def test_filters_by_store_piece_class(self, tmp_path):
        path = write_piece(tmp_path, "ping.py", PING)

        class Command(Piece):
            pass

        strategy = LoaderStrategy()
        constructors = await strategy.load(Store(Command, name="commands"), strategy.filter(str(path)))

        assert constructors == []

    @pytest.mark.asyncio
    async def test_no_exports(self, tmp_path):
        path = write_piece(tmp_path, "helpers.py", EMPTY)
        strategy = LoaderStrategy()

        assert await strategy.load(Store(name="test"), strategy.filter(str(path))) == []

    @pytest.mark.asyncio
    async def test_each_preload_executes_fresh(self, tmp_path):
        path = write_piece(tmp_path, "counter.py", "VALUE = 1\n")
        strategy = LoaderStrategy()
        file = strategy.filter(str(path))

        first = await strategy.preload(file)
        path.write_text("VALUE = 22\n")
        second = await strategy.preload(file)

        assert first.VALUE == 1
        assert second.VALUE == 22
        assert first.__name__ != second.__name__

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        strategy = LoaderStrategy()
        file = strategy.filter(str(tmp_path / "gone.py"))

        with pytest.raises(LoaderError) as exc_info:
            await strategy.preload(file)

        assert exc_info.value.path == file.path

    @pytest.mark.asyncio
    async def test_import_time_exception(self, tmp_path):
        path = write_piece(tmp_path, "boom.py", "raise RuntimeError('import failed')\n")
        strategy = LoaderStrategy()

        with pytest.raises(LoaderError, match="RuntimeError: import failed"):
            await strategy.preload(strategy.filter(str(path)))

    @pytest.mark.asyncio
    async def test_dataclass_in_piece_file(self, tmp_path):
        path = write_piece(tmp_path, "settings.py", """
            from __future__ import annotations

            from dataclasses import dataclass, field

            from piecekit import Piece

            @dataclass
            class Limits:
                burst: int = 5
                tags: list[str] = field(default_factory=list)

            class Settings(Piece):
                def __init__(self, context, **options):
                    super().__init__(context, **options)
                    self.limits = Limits()
        """)
        store = Store(name="test")

        [piece] = await store.load(path)

        assert piece.limits.burst == 5
        assert type(piece).__module__ in sys.modules

    @pytest.mark.asyncio
    async def test_failed_import_is_not_registered(self, tmp_path):
        path = write_piece(tmp_path, "broken.py", "raise RuntimeError('nope')\n")
        strategy = LoaderStrategy()
        before = set(sys.modules)

        with pytest.raises(LoaderError):
            await strategy.preload(strategy.filter(str(path)))

        assert set(sys.modules) - before == set()

    @pytest.mark.asyncio
    async def test_reload_replaces_module_entry(self, tmp_path):
        path = write_piece(tmp_path, "counter.py", "VALUE = 1\n")
        strategy = LoaderStrategy()
        file = strategy.filter(str(path))

        first = await strategy.preload(file)
        assert sys.modules[first.__name__] is first
        second = await strategy.preload(file)

        assert first.__name__ not in sys.modules
        assert sys.modules[second.__name__] is second
        sys.modules.pop(second.__name__)


class TestCustomStrategy:

    @pytest.mark.asyncio
    async def test_factory_functions_as_constructors(self):
        built = []

        def make_ping(context):
            piece = Piece(context, name="ping")
            built.append(piece)
            return piece

        class Registry(BaseLoaderStrategy):
            def filter(self, path):
                if path.startswith("registry:"):
                    name = path.split(":", 1)[1]
                    return ModuleData(path=path, name=name, extension="")
                return None

            async def load(self, store, file):
                return [make_ping] if file.name == "ping" else []

        store = Store(name="virtual", strategy=Registry())

        [piece] = await store.load("registry:ping")

        assert built == [piece]
        assert piece.path == "registry:ping"
        assert store["ping"] is piece

    @pytest.mark.asyncio
    async def test_preload_not_implemented_by_default(self):
        class Minimal(BaseLoaderStrategy):
            def filter(self, path):
                return None

            async def load(self, store, file):
                return []

        with pytest.raises(NotImplementedError):
            await Minimal().preload(ModuleData(path="x", name="x", extension=""))

    def test_abstract(self):
        with pytest.raises(TypeError):
            BaseLoaderStrategy()

    def test_on_error_logs(self, caplog):
        with caplog.at_level(logging.ERROR, logger="piecekit.strategy"):
            LoaderStrategy().on_error(LoaderError("/x.py", "bad"), "/x.py")
        assert "Failed to load piece from /x.py" in caplog.text
