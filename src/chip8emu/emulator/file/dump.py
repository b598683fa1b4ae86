"""Raw memory dumps for post-mortem inspection."""

from __future__ import annotations

from pathlib import Path
import time
from typing import Optional


def dump_memory(snapshot: bytes, directory: str | Path, *, timestamp: Optional[int] = None) -> Path:
    """Write ``snapshot`` to ``<directory>/<unix seconds>.bin`` and return the path."""

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time()) if timestamp is None else timestamp
    target = target_dir / f"{stamp}.bin"
    target.write_bytes(snapshot)
    return target
