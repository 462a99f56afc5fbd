"""
Filesystem walker used by ``Store.load_all``.
"""

import os
from pathlib import Path
from typing import Iterator, Union

SKIP_DIRS = {"__pycache__", ".git", ".hg", ".svn", ".venv", "node_modules"}


def walk(root: Union[str, Path]) -> Iterator[str]:
    """
    Yield every file below ``root`` in a stable (sorted) order.

    Hidden directories and well-known cache/VCS directories are skipped.
    A missing root yields nothing.
    """
    root = Path(root)
    if root.is_file():
        yield str(root)
        return
    if not root.is_dir():
        return

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            d for d in dirnames if d not in SKIP_DIRS and not d.startswith(".")
        )
        for filename in sorted(filenames):
            yield os.path.join(dirpath, filename)
