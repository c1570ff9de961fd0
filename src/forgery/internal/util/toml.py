from __future__ import annotations

from pathlib import Path
from typing import Any

import tomli


def load_toml_file(path: str | Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomli.load(f)


def load_toml_text(text: str) -> dict[str, Any]:
    return tomli.loads(text)
