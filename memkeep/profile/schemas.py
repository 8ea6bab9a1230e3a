"""
User profile data models.

The profile document is shared by every collaborating tool on a machine.
On disk and in remote snapshots it uses camelCase keys
(workingStyle, operatingSystems, lastUpdated, ...).
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memkeep.persist.clock import to_iso, utcnow

PROFILE_VERSION = "1.0.0"

OnboardingCategory = Literal["identity", "technical", "workingStyle", "personal"]
InferenceStatus = Literal["pending", "confirmed", "rejected"]
InferenceConfidence = Literal["high", "medium", "low"]
InferenceSource = Literal["codebase", "conversation", "config"]


class ProfileModel(BaseModel):
    """Base for profile sections: camelCase aliases, validated assignment."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        extra="allow",
    )


class Identity(ProfileModel):
    name: Optional[str] = None
    pronouns: Optional[str] = None
    timezone: Optional[str] = None
    location: Optional[str] = None
    role: Optional[str] = None
    organization: Optional[str] = None


class Technical(ProfileModel):
    languages: List[str] = Field(default_factory=list)
    frameworks: List[str] = Field(default_factory=list)
    tools: List[str] = Field(default_factory=list)
    editors: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    operating_systems: List[str] = Field(default_factory=list)


class WorkingStyle(ProfileModel):
    verbosity: Literal["concise", "detailed", "adaptive"] = "adaptive"
    learning_pace: Literal["fast", "thorough", "adaptive"] = "adaptive"
    communication_style: Optional[str] = None
    priorities: List[str] = Field(default_factory=list)


class Knowledge(ProfileModel):
    expert: List[str] = Field(default_factory=list)
    proficient: List[str] = Field(default_factory=list)
    learning: List[str] = Field(default_factory=list)
    interests: List[str] = Field(default_factory=list)


class Personal(ProfileModel):
    interests: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)
    context: List[str] = Field(default_factory=list)


class OnboardingProgress(ProfileModel):
    identity: bool = False
    technical: bool = False
    working_style: bool = False
    personal: bool = False


def _now_iso() -> str:
    return to_iso(utcnow())


class ProfileMeta(ProfileModel):
    onboarding_complete: bool = False
    onboarding_progress: OnboardingProgress = Field(default_factory=OnboardingProgress)
    last_updated: str = Field(default_factory=_now_iso)
    last_onboarding_prompt: Optional[str] = None
    created_at: str = Field(default_factory=_now_iso)


class UserProfile(ProfileModel):
    """
    One profile per installation.

    meta.lastUpdated is the only conflict-resolution key against remote
    snapshots (whole-document last-writer-wins).
    """

    version: str = PROFILE_VERSION
    identity: Identity = Field(default_factory=Identity)
    technical: Technical = Field(default_factory=Technical)
    working_style: WorkingStyle = Field(default_factory=WorkingStyle)
    knowledge: Knowledge = Field(default_factory=Knowledge)
    personal: Personal = Field(default_factory=Personal)
    meta: ProfileMeta = Field(default_factory=ProfileMeta)

    def to_document(self) -> dict:
        """camelCase dict as written to disk and to remote snapshots."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> str:
        """Compact serialized form, used to detect changes since last push."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class ProfileSnapshot(BaseModel):
    """Immutable copy of the profile in the remote log."""

    profile: UserProfile
    timestamp: str
    remote_id: Optional[str] = None


class InferenceCandidate(ProfileModel):
    """A detected preference before it enters the pending queue."""

    field: str
    value: Union[str, List[str]]
    confidence: InferenceConfidence = "medium"
    evidence: str = ""
    source: InferenceSource = "conversation"


class InferredPreference(InferenceCandidate):
    """A candidate profile update awaiting user confirmation."""

    id: str
    status: InferenceStatus = "pending"
    created_at: str = Field(default_factory=_now_iso)


class OnboardingQuestion(ProfileModel):
    category: OnboardingCategory
    field: str
    question: str
    follow_up: Optional[str] = None
    examples: Optional[List[str]] = None
    optional: bool = True


class SyncResult(BaseModel):
    """Outcome of reconciling the local profile against the remote log."""

    action: Literal["pulled", "pushed", "skipped"]
    profile: UserProfile
