"""
Shared test fixtures and helpers for the piecekit test suite.
"""

import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from piecekit import AliasStore, Store


# ============================================================================
# Piece File Helpers
# ============================================================================


PING = """
from piecekit import Piece

class Ping(Piece):
    def __init__(self, context, **options):
        super().__init__(context, name="ping", **options)

    async def on_load(self):
        self.context["events"].append(("load", self.name, id(self)))

    async def on_unload(self):
        self.context["events"].append(("unload", self.name, id(self)))
"""

ALIASED_PING = """
from piecekit import AliasPiece

class Ping(AliasPiece):
    def __init__(self, context, **options):
        super().__init__(context, name="ping", aliases=["p", "pg"], **options)

    def on_unload(self):
        self.context["events"].append(("unload", self.name, id(self)))
"""

EMPTY = """
VALUE = 42

def helper():
    return VALUE
"""


def write_piece(directory: Path, filename: str, source: str) -> Path:
    """Write a piece module below ``directory`` and return its path."""
    path = directory / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))
    return path


def make_store(
    cls=Store,
    name: str = "test",
    events: Optional[List[Any]] = None,
    **kwargs,
):
    """Create a store whose context carries an ``events`` list."""
    context: Dict[str, Any] = {"events": events if events is not None else []}
    context.update(kwargs.pop("context", {}))
    return cls(name=name, context=context, **kwargs)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def pieces_dir(tmp_path):
    directory = tmp_path / "pieces"
    directory.mkdir()
    return directory


@pytest.fixture
def events():
    return []


@pytest.fixture
def store(events):
    return make_store(events=events)


@pytest.fixture
def alias_store(events):
    return make_store(AliasStore, name="aliases", events=events)
