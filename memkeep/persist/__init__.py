"""
Persistence helpers shared by the memory and profile layers.

Provides:
- UTC clock and ISO-8601 formatting with millisecond precision
- Soft-failing JSON file reads and directory-creating writes
- Application path layout under the config directory
"""

from .clock import utcnow, to_iso, parse_iso, to_date
from .jsonfile import read_json, write_json
from .paths import AppPaths, default_config_dir, ensure_dirs

__all__ = [
    "utcnow",
    "to_iso",
    "parse_iso",
    "to_date",
    "read_json",
    "write_json",
    "AppPaths",
    "default_config_dir",
    "ensure_dirs",
]
