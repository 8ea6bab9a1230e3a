"""User profile: schema, closed field set, local/remote reconciliation."""

from .context import build_context_string, enrich_query
from .fields import ARRAY_FIELDS, ProfileField, resolve_field
from .manager import ProfileError, ProfileManager
from .schemas import (
    PROFILE_VERSION,
    InferenceCandidate,
    InferredPreference,
    OnboardingQuestion,
    ProfileSnapshot,
    SyncResult,
    UserProfile,
)

__all__ = [
    "ARRAY_FIELDS",
    "PROFILE_VERSION",
    "InferenceCandidate",
    "InferredPreference",
    "OnboardingQuestion",
    "ProfileError",
    "ProfileField",
    "ProfileManager",
    "ProfileSnapshot",
    "SyncResult",
    "UserProfile",
    "build_context_string",
    "enrich_query",
    "resolve_field",
]
