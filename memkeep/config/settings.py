"""Application settings and configuration schema."""

import logging
from datetime import timedelta
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from memkeep.persist.jsonfile import read_json, write_json
from memkeep.persist.paths import AppPaths, default_config_dir

logger = logging.getLogger(__name__)


class MirrorCfg(BaseModel):
    """Remote memory service (Mem0) configuration."""
    api_key: Optional[str] = None
    user_id: str = "default"
    base_url: str = "https://api.mem0.ai"
    timeout_s: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


class SummaryCfg(BaseModel):
    """Thresholds for activity-triggered summaries."""
    activity_threshold: int = Field(12, ge=1)
    min_interval_hours: float = 24
    max_interval_days: float = 7
    default_period_days: float = 7
    max_lookback_days: Optional[float] = None

    @property
    def min_interval(self) -> timedelta:
        return timedelta(hours=self.min_interval_hours)

    @property
    def max_interval(self) -> timedelta:
        return timedelta(days=self.max_interval_days)

    @property
    def default_period(self) -> timedelta:
        return timedelta(days=self.default_period_days)

    @property
    def max_lookback(self) -> Optional[timedelta]:
        if self.max_lookback_days is None:
            return None
        return timedelta(days=self.max_lookback_days)


class ConfigStatus(BaseModel):
    """Whether the remote mirror has been configured."""
    status: Literal["configured", "missing"]
    config_path: str


class Settings(BaseModel):
    """Main application settings."""
    config_dir: Path = Field(default_factory=default_config_dir)
    mirror: MirrorCfg = Field(default_factory=MirrorCfg)
    summary: SummaryCfg = Field(default_factory=SummaryCfg)
    default_scope: str = "global"
    auto_summarize: bool = True
    source_agent: str = "assistant"
    log_level: str = "INFO"

    @property
    def paths(self) -> AppPaths:
        return AppPaths(config_dir=Path(self.config_dir))


def load_settings(config_dir: Optional[Path] = None) -> Settings:
    """
    Build settings from the config directory's config.json.

    The file uses the flat key layout written by save_settings():
    mem0_api_key, mem0_user_id, mem0_base_url, default_scope,
    auto_summarize and an optional "summary" object.

    Args:
        config_dir: Override for the config directory

    Returns:
        Settings (defaults when the file is missing or malformed)
    """
    base = Path(config_dir) if config_dir is not None else default_config_dir()
    paths = AppPaths(config_dir=base)

    raw = read_json(paths.config_path, default={})
    if not isinstance(raw, dict):
        logger.warning(f"Ignoring non-object config in {paths.config_path}")
        raw = {}

    mirror = MirrorCfg(
        api_key=raw.get("mem0_api_key") or None,
        user_id=raw.get("mem0_user_id", "default"),
        base_url=raw.get("mem0_base_url", MirrorCfg().base_url),
        timeout_s=raw.get("mem0_timeout_s", 10.0),
    )

    return Settings(
        config_dir=base,
        mirror=mirror,
        summary=SummaryCfg(**raw.get("summary", {})),
        default_scope=raw.get("default_scope", "global"),
        auto_summarize=raw.get("auto_summarize", True),
        source_agent=raw.get("source_agent", "assistant"),
        log_level=raw.get("log_level", "INFO"),
    )


def save_settings(settings: Settings) -> Path:
    """Persist settings in the config.json layout. Returns the file path."""
    path = settings.paths.config_path
    data = {
        "mem0_api_key": settings.mirror.api_key or "",
        "mem0_user_id": settings.mirror.user_id,
        "mem0_base_url": settings.mirror.base_url,
        "mem0_timeout_s": settings.mirror.timeout_s,
        "default_scope": settings.default_scope,
        "auto_summarize": settings.auto_summarize,
        "source_agent": settings.source_agent,
        "log_level": settings.log_level,
        "summary": settings.summary.model_dump(),
    }
    write_json(path, data)
    return path


def check_config(settings: Settings) -> ConfigStatus:
    """Report whether a remote API key is configured."""
    status = "configured" if settings.mirror.enabled else "missing"
    return ConfigStatus(status=status, config_path=str(settings.paths.config_path))


def missing_config_message(settings: Settings) -> str:
    """Help text shown when no remote API key is configured."""
    return f"""
Mem0 API key not configured - running local-only.

To mirror memories and profile snapshots to Mem0:

1. Go to https://app.mem0.ai
2. Navigate to Settings -> API Keys
3. Create and copy your key

Then create {settings.paths.config_path} with:
{{
  "mem0_api_key": "your-key-here",
  "default_scope": "global",
  "auto_summarize": true
}}
""".strip()
