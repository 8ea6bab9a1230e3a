"""
ProfileManager - read/write access to the shared user profile.

The local file holds the current working copy; the remote mirror holds an
append-only history of snapshots. Reconciliation is whole-document
last-writer-wins on meta.lastUpdated: concurrent edits on two machines
are not merged, the newer document wins.

Single writer assumed: there is no file locking between processes.
"""

import copy
import json
import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from pydantic import ValidationError
from pydantic.alias_generators import to_snake

from memkeep.persist.clock import parse_iso, to_iso, utcnow
from memkeep.persist.jsonfile import read_json, write_json
from .fields import FieldRef, get_value, merge_values, resolve_field, set_value
from .schemas import (
    InferenceCandidate,
    InferredPreference,
    OnboardingCategory,
    OnboardingQuestion,
    ProfileSnapshot,
    SyncResult,
    UserProfile,
)

logger = logging.getLogger(__name__)

ONBOARDING_PROMPT_INTERVAL = timedelta(days=3)
REFRESH_INTERVAL = timedelta(days=2)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ProfileError(RuntimeError):
    """Raised when the profile file exists but cannot be read."""


class ProfileManager:
    """
    CRUD and sync for the user profile plus the pending-inference queue.

    Remote sync is optional: without a mirror every operation is local.
    """

    def __init__(
        self,
        profile_path: Path,
        inferences_path: Path,
        mirror=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize profile manager.

        Args:
            profile_path: JSON file with the profile document
            inferences_path: JSON file with inferred preferences
            mirror: Optional remote mirror for snapshots
            clock: Time source (tests pin it)
        """
        self.profile_path = Path(profile_path)
        self.inferences_path = Path(inferences_path)
        self.mirror = mirror
        self.clock = clock
        self._last_synced: Optional[str] = None

    @classmethod
    def from_settings(cls, settings, mirror=None) -> "ProfileManager":
        return cls(
            profile_path=settings.paths.profile_path,
            inferences_path=settings.paths.inferences_path,
            mirror=mirror,
        )

    def set_mirror(self, mirror) -> None:
        """Attach the remote mirror after construction."""
        self.mirror = mirror

    def create_default_profile(self) -> UserProfile:
        now = to_iso(self.clock())
        profile = UserProfile()
        profile.meta.last_updated = now
        profile.meta.created_at = now
        return profile

    # --- Load / save ---

    async def load(self) -> UserProfile:
        """
        Load the profile from disk.

        Creates and saves a default profile if the file is missing or is
        not valid JSON. Fields that fail validation are dropped (their
        defaults apply) and the rest of the document is kept; the file is
        not rewritten until the next save.

        Raises:
            ProfileError: If the file exists but can't be read, or isn't a
                profile document at all
        """
        profile, _ = await self._load()
        return profile

    async def _load(self, skip_remote_sync: bool = False) -> Tuple[UserProfile, bool]:
        """Returns (profile, created) where created means a default was written."""
        try:
            with open(self.profile_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            data = None
        except json.JSONDecodeError as e:
            logger.warning(f"Profile file corrupted at {self.profile_path}, creating default: {e}")
            data = None
        except OSError as e:
            raise ProfileError(f"Failed to load profile from {self.profile_path}: {e}") from e

        if data is None:
            profile = self.create_default_profile()
            await self.save(profile, skip_remote_sync=skip_remote_sync)
            return profile, True

        try:
            return UserProfile.model_validate(data), False
        except ValidationError as e:
            return self._salvage(data, e), False

    def _salvage(self, data: Any, error: ValidationError) -> UserProfile:
        if not isinstance(data, dict):
            raise ProfileError(f"Profile at {self.profile_path} is not a JSON object") from error

        cleaned = copy.deepcopy(data)
        for detail in error.errors():
            _drop_path(cleaned, detail["loc"])

        try:
            profile = UserProfile.model_validate(cleaned)
        except ValidationError as e:
            raise ProfileError(f"Profile at {self.profile_path} is invalid: {e}") from e

        invalid = sorted({".".join(str(p) for p in d["loc"]) for d in error.errors()})
        logger.warning(f"Ignoring invalid profile fields in {self.profile_path}: {', '.join(invalid)}")
        return profile

    async def save(self, profile: UserProfile, skip_remote_sync: bool = False) -> None:
        """
        Stamp lastUpdated, write to disk, and push a snapshot if changed.

        Args:
            profile: Profile to persist (stamped in place)
            skip_remote_sync: Don't push (used when the profile came from remote)
        """
        now = self.clock()
        previous = self._parse_ts(profile.meta.last_updated)
        profile.meta.last_updated = to_iso(max(now, previous) if previous else now)

        write_json(self.profile_path, profile.to_document())

        if not skip_remote_sync and self.mirror is not None:
            await self.push_snapshot(profile)

    # --- Remote sync ---

    async def sync_from_remote(self) -> SyncResult:
        """
        Reconcile with the remote snapshot log (run once at startup).

        - remote newer: pull it and overwrite the local file
        - local newer or equal, or remote empty: push local if changed
        - no mirror: skip

        A default created here (no usable local file) is never pushed
        before the remote log is read; any remote snapshot replaces it.
        """
        local, created = await self._load(skip_remote_sync=True)

        if self.mirror is None:
            return SyncResult(action="skipped", profile=local)

        remote = await self.mirror.get_latest_profile()
        if remote is None:
            await self.push_snapshot(local)
            return SyncResult(action="pushed", profile=local)

        local_ts = self._parse_ts(local.meta.last_updated) or _EPOCH
        remote_ts = self._parse_ts(remote.timestamp) or _EPOCH

        if created or remote_ts > local_ts:
            pulled = remote.profile
            await self.save(pulled, skip_remote_sync=True)
            self._last_synced = pulled.to_json()
            logger.info(f"Pulled newer profile snapshot ({remote.timestamp})")
            return SyncResult(action="pulled", profile=pulled)

        if local.to_json() != self._last_synced:
            await self.push_snapshot(local)
        return SyncResult(action="pushed", profile=local)

    async def push_snapshot(self, profile: UserProfile) -> bool:
        """Append a snapshot unless it matches the last one pushed."""
        if self.mirror is None:
            return False

        serialized = profile.to_json()
        if serialized == self._last_synced:
            return True

        try:
            remote_id = await self.mirror.save_profile_snapshot(profile)
        except Exception as e:
            logger.warning(f"Failed to push profile snapshot: {e}")
            return False

        if remote_id:
            self._last_synced = serialized
            return True
        return False

    async def get_history(
        self,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[ProfileSnapshot]:
        """Remote snapshots newest first ([] without a mirror)."""
        if self.mirror is None:
            return []
        return await self.mirror.get_profile_history(since, limit)

    # --- Field access ---

    async def get(self, field: FieldRef) -> Any:
        """Read a field by dot-path, e.g. get("technical.languages")."""
        profile = await self.load()
        return get_value(profile, field)

    async def set(self, field: FieldRef, value: Any) -> UserProfile:
        """
        Write a field by dot-path and save.

        Raises:
            ValueError: Unknown field or value rejected by the schema
        """
        profile = await self.load()
        set_value(profile, field, value)
        await self.save(profile)
        return profile

    async def add_to_array(self, field: FieldRef, values: List[str]) -> UserProfile:
        """Append values to an array field, dropping duplicates."""
        f = resolve_field(field)
        if not f.is_array:
            raise ValueError(f"{f.value} is not an array field")

        current = await self.get(f)
        return await self.set(f, merge_values(current, values))

    # --- Onboarding ---

    def get_next_onboarding_questions(
        self,
        profile: UserProfile,
        count: int = 3,
    ) -> List[OnboardingQuestion]:
        """
        Next questions for unanswered fields, capped at count overall.

        Category order: identity, technical, workingStyle, personal. A
        category whose onboarding flag is set is skipped.
        """
        progress = profile.meta.onboarding_progress
        questions: List[OnboardingQuestion] = []

        def ask(category: OnboardingCategory, field: str, question: str, **extra) -> None:
            questions.append(OnboardingQuestion(category=category, field=field, question=question, **extra))

        if not progress.identity:
            identity = profile.identity
            if not identity.name:
                ask("identity", "identity.name", "What name should I use for you?", optional=False)
            if not identity.timezone:
                ask(
                    "identity",
                    "identity.timezone",
                    "What's your timezone?",
                    follow_up="Helps me know when to wish you good morning!",
                    examples=["America/New_York", "Europe/London", "Asia/Tokyo"],
                    optional=False,
                )
            if not identity.role:
                ask(
                    "identity",
                    "identity.role",
                    "What's your primary role?",
                    examples=["Developer", "Designer", "PM", "Founder", "Student"],
                    optional=False,
                )

        if len(questions) < count and not progress.technical:
            technical = profile.technical
            if not technical.languages:
                ask(
                    "technical",
                    "technical.languages",
                    "What programming languages do you use most?",
                    examples=["TypeScript", "Python", "Go", "Rust"],
                )
            if not technical.frameworks:
                ask(
                    "technical",
                    "technical.frameworks",
                    "Any frameworks you prefer?",
                    examples=["React", "Next.js", "Django", "FastAPI"],
                )
            if not technical.editors:
                ask(
                    "technical",
                    "technical.editors",
                    "What's your editor of choice?",
                    examples=["VS Code", "Neovim", "JetBrains", "Cursor"],
                )

        if len(questions) < count and not progress.working_style:
            style = profile.working_style
            if style.verbosity == "adaptive":
                ask(
                    "workingStyle",
                    "workingStyle.verbosity",
                    "Do you prefer concise answers or detailed explanations?",
                )
            if not style.priorities:
                ask(
                    "workingStyle",
                    "workingStyle.priorities",
                    "What do you prioritize most in your work?",
                    examples=["Code quality", "Speed", "Learning", "Maintainability"],
                )

        if len(questions) < count and not progress.personal:
            personal = profile.personal
            if not personal.goals:
                ask(
                    "personal",
                    "personal.goals",
                    "Any personal or professional goals you're working toward?",
                    examples=["Learn Rust", "Ship my startup", "Get promoted"],
                )
            if not personal.interests:
                ask(
                    "personal",
                    "personal.interests",
                    "Any hobbies or interests outside of work?",
                    follow_up="Feel free to skip if you'd rather not say",
                )

        return questions[:count]

    def is_onboarding_complete(self, profile: UserProfile) -> bool:
        return profile.meta.onboarding_complete

    async def mark_category_complete(self, category: OnboardingCategory) -> UserProfile:
        """Flag a category done; onboarding completes once identity and technical are."""
        profile = await self.load()
        progress = profile.meta.onboarding_progress
        setattr(progress, resolve_category(category), True)

        if progress.identity and progress.technical:
            profile.meta.onboarding_complete = True

        await self.save(profile)
        return profile

    async def record_onboarding_prompt(self) -> None:
        profile = await self.load()
        profile.meta.last_onboarding_prompt = to_iso(self.clock())
        await self.save(profile)

    def should_prompt_onboarding(self, profile: UserProfile) -> bool:
        """True if onboarding is incomplete and the last prompt is > 3 days old."""
        if profile.meta.onboarding_complete:
            return False
        last = self._parse_ts(profile.meta.last_onboarding_prompt)
        if last is None:
            return True
        return self.clock() - last > ONBOARDING_PROMPT_INTERVAL

    async def needs_refresh(self) -> bool:
        """True if the profile hasn't been updated for more than 2 days."""
        profile = await self.load()
        last = self._parse_ts(profile.meta.last_updated)
        if last is None:
            return True
        return self.clock() - last > REFRESH_INTERVAL

    # --- Inferences ---

    def load_inferences(self) -> List[InferredPreference]:
        raw = read_json(self.inferences_path, default=[])
        if not isinstance(raw, list):
            logger.warning(f"Ignoring non-list inferences file {self.inferences_path}")
            return []

        inferences = []
        for item in raw:
            try:
                inferences.append(InferredPreference.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping invalid inference entry: {e}")
        return inferences

    def save_inferences(self, inferences: List[InferredPreference]) -> None:
        write_json(
            self.inferences_path,
            [i.model_dump(by_alias=True, exclude_none=True) for i in inferences],
        )

    async def add_inference(self, candidate: InferenceCandidate) -> InferredPreference:
        """
        Queue a candidate for confirmation.

        Raises:
            ValueError: Unknown field, or a list value for a scalar field
        """
        f = resolve_field(candidate.field)
        if isinstance(candidate.value, list) and not f.is_array:
            raise ValueError(f"{f.value} takes a single value, got a list")

        inference = InferredPreference(
            **candidate.model_dump(),
            id=str(uuid.uuid4()),
            status="pending",
            created_at=to_iso(self.clock()),
        )

        inferences = self.load_inferences()
        inferences.append(inference)
        self.save_inferences(inferences)
        return inference

    async def confirm_inference(self, inference_id: str) -> bool:
        """
        Apply a pending inference to the profile.

        Array targets (or list values) are merged, scalars overwritten.

        Returns:
            False if the inference is missing or not pending
        """
        inferences = self.load_inferences()
        inference = next((i for i in inferences if i.id == inference_id), None)
        if inference is None or inference.status != "pending":
            return False

        current = await self.get(inference.field)
        if isinstance(inference.value, list):
            await self.add_to_array(inference.field, inference.value)
        elif isinstance(current, list):
            await self.add_to_array(inference.field, [inference.value])
        else:
            await self.set(inference.field, inference.value)

        inference.status = "confirmed"
        self.save_inferences(inferences)
        return True

    async def reject_inference(self, inference_id: str) -> bool:
        """Discard a pending inference. False if missing or not pending."""
        inferences = self.load_inferences()
        inference = next((i for i in inferences if i.id == inference_id), None)
        if inference is None or inference.status != "pending":
            return False

        inference.status = "rejected"
        self.save_inferences(inferences)
        return True

    def get_pending_inferences(self) -> List[InferredPreference]:
        return [i for i in self.load_inferences() if i.status == "pending"]

    @staticmethod
    def _parse_ts(value: Optional[str]) -> Optional[datetime]:
        try:
            return parse_iso(value)
        except ValueError:
            return None


def resolve_category(category: str) -> str:
    """Attribute name of an onboarding category on OnboardingProgress."""
    mapping = {
        "identity": "identity",
        "technical": "technical",
        "workingStyle": "working_style",
        "personal": "personal",
    }
    if category not in mapping:
        raise ValueError(f"Unknown onboarding category: {category!r}")
    return mapping[category]


def _drop_path(data: dict, loc) -> None:
    """Remove the value a validation error points at; a bad list item drops the whole list."""
    keys = []
    for part in loc:
        if not isinstance(part, str):
            break
        keys.append(part)
    if not keys:
        return

    node: Any = data
    for key in keys[:-1]:
        if not isinstance(node, dict):
            return
        node = node.get(key, node.get(to_snake(key)))
    if isinstance(node, dict):
        node.pop(keys[-1], None)
        node.pop(to_snake(keys[-1]), None)
