"""Local file output for CLI runs."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def save_json_local(record: dict[str, Any], prefix: str, output_dir: str = "output") -> Path:
    """Write one record to ``<output_dir>/<prefix>_<timestamp>.json`` and return the path."""
    now = datetime.now(timezone.utc)
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    filepath = output_path / f"{prefix}_{now.strftime('%Y_%m_%d_%H_%M_%S')}.json"
    with filepath.open("w") as f:
        json.dump(record, f, default=str, ensure_ascii=False, indent=2)

    logger.info("Saved %s to %s", prefix, filepath)
    return filepath
