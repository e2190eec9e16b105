"""Load the relay target contract ABI."""
from __future__ import annotations

import json
import os
from pathlib import Path

# Bundled ABI (ships with the installed package)
_BUNDLED = Path(__file__).parent / "RelayTarget.json"


def load_abi(path: str | os.PathLike | None = None) -> list:
    """Load ABI from an explicit artifact path, falling back to the bundled one.

    Accepts either a bare ABI list or a build artifact with an "abi" key.
    """
    source = Path(path) if path else _BUNDLED
    data = json.loads(source.read_text())
    if isinstance(data, list):
        return data
    return data["abi"]


CONTRACT_ABI = load_abi()
