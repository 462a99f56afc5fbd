"""
AliasPiece - a piece that can also be found under alternate names.
"""

from __future__ import annotations

from typing import Any, Dict, Sequence, Tuple

from .piece import Piece, PieceContext, PieceOptions


class AliasPieceOptions(PieceOptions, total=False):
    """Keyword options accepted by :class:`AliasPiece`."""

    aliases: Sequence[str]


class AliasPiece(Piece):
    """
    The piece to be stored in :class:`~piecekit.alias_store.AliasStore`
    instances.

    Attributes:
        aliases: Additional lookup keys, fixed at construction; they do not
            take part in the primary-name uniqueness check
    """

    def __init__(self, context: PieceContext, **options: Any):
        super().__init__(context, **options)
        self._aliases: Tuple[str, ...] = tuple(options.get("aliases") or ())

    @property
    def aliases(self) -> Tuple[str, ...]:
        return self._aliases

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["aliases"] = list(self.aliases)
        return data
