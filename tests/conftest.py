from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Union

import pytest


@pytest.fixture
def make_tree(tmp_path: Path) -> Callable[[Dict[str, Union[str, bytes]]], Path]:
    """Create files under ``tmp_path`` from a ``{relative_path: content}`` map."""

    def _make(files: Dict[str, Union[str, bytes]]) -> Path:
        for rel, content in files.items():
            path = tmp_path / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_bytes(content.encode("utf-8"))
        return tmp_path

    return _make
