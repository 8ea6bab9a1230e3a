"""Shared components for the HTTP surface (built once on startup)."""

from dataclasses import dataclass
from typing import Optional

from fastapi import HTTPException

from memkeep.config.settings import Settings
from memkeep.persist.paths import ensure_dirs
from memkeep.memory.integrate import MemoryService
from memkeep.mirror.client import Mem0Mirror
from memkeep.profile.manager import ProfileManager


@dataclass
class Components:
    settings: Settings
    memory: MemoryService
    profiles: ProfileManager
    mirror: Optional[Mem0Mirror] = None


# Global state (initialized on startup)
_components: Optional[Components] = None


def build_components(settings: Settings) -> Components:
    """Wire store, mirror, summary engine and profile manager from settings."""
    ensure_dirs(settings.paths)
    mirror = Mem0Mirror.from_settings(settings)
    return Components(
        settings=settings,
        memory=MemoryService.from_settings(settings, mirror=mirror),
        profiles=ProfileManager.from_settings(settings, mirror=mirror),
        mirror=mirror,
    )


def set_components(components: Optional[Components]) -> None:
    global _components
    _components = components


def peek_components() -> Optional[Components]:
    """Current components without raising (used by /health)."""
    return _components


def get_components() -> Components:
    """Dependency to get the initialized components."""
    if _components is None:
        raise HTTPException(status_code=503, detail="Memory service not initialized")
    return _components
