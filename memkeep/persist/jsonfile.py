"""
JSON file persistence for the small state documents.

Summary state, the user profile and pending inferences are convenience
caches: a malformed file is logged and replaced by a default, never fatal.
"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def read_json(path: Path, default: Any) -> Any:
    """
    Load JSON from a file, falling back to a default.
    
    Args:
        path: File to read
        default: Value returned when the file is missing or malformed
    
    Returns:
        Parsed JSON value or the default
    """
    path = Path(path)
    if not path.exists():
        return default
    
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning(f"Malformed JSON in {path}, using defaults: {e}")
        return default


def write_json(path: Path, data: Any) -> None:
    """Write JSON to a file, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
