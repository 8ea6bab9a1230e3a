"""
Path layout for local state.

Everything lives in one config directory shared by the collaborating
tools on a machine.
"""

import os
from dataclasses import dataclass
from pathlib import Path

CONFIG_DIR_ENV = "MEMKEEP_CONFIG_DIR"


@dataclass
class AppPaths:
    """Centralized paths for local state files."""
    
    config_dir: Path           # e.g., ~/.config/memkeep
    
    @property
    def config_path(self) -> Path:
        """Path to user configuration (API key, defaults)."""
        return self.config_dir / "config.json"
    
    @property
    def local_db_path(self) -> Path:
        """Path to SQLite record table."""
        return self.config_dir / "local.db"
    
    @property
    def summary_state_path(self) -> Path:
        """Path to per-scope activity counters."""
        return self.config_dir / "summary-state.json"
    
    @property
    def profile_path(self) -> Path:
        """Path to the shared user profile document."""
        return self.config_dir / "user-profile.json"
    
    @property
    def inferences_path(self) -> Path:
        """Path to pending profile inferences."""
        return self.config_dir / "pending-inferences.json"


def default_config_dir() -> Path:
    """
    Resolve the config directory.
    
    Uses $MEMKEEP_CONFIG_DIR when set, else ~/.config/memkeep.
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "memkeep"


def ensure_dirs(paths: AppPaths) -> None:
    """Create the config directory if it doesn't exist."""
    paths.config_dir.mkdir(parents=True, exist_ok=True)
