"""
Loader strategies - turn file paths into piece constructors.
"""

from .base import BaseLoaderStrategy, ModuleData, PieceConstructor
from .loader import DEFAULT_EXTENSIONS, DEFAULT_IGNORE_PREFIXES, LoaderStrategy

__all__ = [
    "BaseLoaderStrategy",
    "ModuleData",
    "PieceConstructor",
    "LoaderStrategy",
    "DEFAULT_EXTENSIONS",
    "DEFAULT_IGNORE_PREFIXES",
]
