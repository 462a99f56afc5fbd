"""
Tests Piece, AliasPiece, PieceContext and the to_dict snapshots.
"""

import json

import pytest

from piecekit import AliasPiece, Piece, PieceContext, PieceContextError, Store

from tests.conftest import make_store


def make_context(store=None, path="/pieces/ping.py", name="ping"):
    return PieceContext(path=path, name=name, store=store if store is not None else make_store())


# ============================================================================
# Construction
# ============================================================================

class TestPieceConstruction:

    def test_binds_context(self):
        ctx = make_context()
        piece = Piece(ctx)
        assert piece.store is ctx.store
        assert piece.path == "/pieces/ping.py"
        assert piece.name == "ping"
        assert piece.enabled is True

    def test_name_option_overrides_context(self):
        piece = Piece(make_context(), name="pong")
        assert piece.name == "pong"

    def test_enabled_option(self):
        piece = Piece(make_context(), enabled=False)
        assert piece.enabled is False

    def test_missing_context_fields(self):
        with pytest.raises(PieceContextError) as exc_info:
            Piece(PieceContext(path="/x.py", name="x", store=None))
        assert exc_info.value.missing == ["store"]
        assert exc_info.value.code == "PIECE_CONTEXT_INVALID"

    def test_no_context(self):
        with pytest.raises(TypeError):
            Piece(None)

    def test_path_and_name_are_read_only(self):
        piece = Piece(make_context())
        with pytest.raises(AttributeError):
            piece.name = "other"
        with pytest.raises(AttributeError):
            piece.path = "/other.py"

    def test_context_forwards_store_extras(self):
        store = make_store(context={"db": "sqlite"})
        piece = Piece(make_context(store=store))
        assert piece.context["db"] == "sqlite"
        assert piece.context is store.context

    def test_context_is_read_only(self):
        piece = Piece(make_context())
        with pytest.raises(TypeError):
            piece.context["db"] = "other"


# ============================================================================
# Snapshots
# ============================================================================

class TestPieceSnapshot:

    def test_to_dict(self):
        piece = Piece(make_context())
        assert piece.to_dict() == {
            "path": "/pieces/ping.py",
            "name": "ping",
            "enabled": True,
        }

    def test_json_round_trip(self):
        piece = Piece(make_context())
        data = json.loads(json.dumps(piece.to_dict()))
        assert data == {"path": "/pieces/ping.py", "name": "ping", "enabled": True}
        assert "store" not in data

    def test_repr(self):
        piece = Piece(make_context(), enabled=False)
        assert repr(piece) == "<Piece name='ping' disabled>"


class TestAliasPiece:

    def test_default_aliases(self):
        piece = AliasPiece(make_context())
        assert piece.aliases == ()

    def test_aliases_are_copied(self):
        aliases = ["p", "pg"]
        piece = AliasPiece(make_context(), aliases=aliases)
        aliases.append("x")
        assert piece.aliases == ("p", "pg")

    def test_aliases_are_read_only(self):
        piece = AliasPiece(make_context(), aliases=["p"])
        with pytest.raises(AttributeError):
            piece.aliases = ("q",)
        assert piece.aliases == ("p",)

    def test_to_dict_includes_alias_copy(self):
        piece = AliasPiece(make_context(), aliases=["p"])
        data = piece.to_dict()
        assert data == {
            "path": "/pieces/ping.py",
            "name": "ping",
            "enabled": True,
            "aliases": ["p"],
        }
        data["aliases"].append("mutated")
        assert piece.aliases == ("p",)

    def test_json_round_trip(self):
        piece = AliasPiece(make_context(), aliases=["p", "pg"])
        assert json.loads(json.dumps(piece.to_dict())) == piece.to_dict()


# ============================================================================
# Self-service lifecycle
# ============================================================================

class TestPieceLifecycle:

    @pytest.mark.asyncio
    async def test_hooks_default_to_none(self):
        piece = Piece(make_context())
        assert piece.on_load() is None
        assert piece.on_unload() is None

    @pytest.mark.asyncio
    async def test_unload_delegates_to_store(self):
        store = Store(name="test")
        piece = await store.insert(Piece(make_context(store=store)))
        assert "ping" in store

        await piece.unload()

        assert "ping" not in store
        assert piece.enabled is False
