"""
Closed set of profile field paths.

Dot-paths use the document's camelCase names ("workingStyle.verbosity").
Only these paths can be read or written through the profile manager, so
a typo never creates a stray nested object.
"""

from enum import Enum
from typing import Any, List, Union

from pydantic.alias_generators import to_snake

from .schemas import UserProfile


class ProfileField(str, Enum):
    IDENTITY_NAME = "identity.name"
    IDENTITY_PRONOUNS = "identity.pronouns"
    IDENTITY_TIMEZONE = "identity.timezone"
    IDENTITY_LOCATION = "identity.location"
    IDENTITY_ROLE = "identity.role"
    IDENTITY_ORGANIZATION = "identity.organization"

    TECHNICAL_LANGUAGES = "technical.languages"
    TECHNICAL_FRAMEWORKS = "technical.frameworks"
    TECHNICAL_TOOLS = "technical.tools"
    TECHNICAL_EDITORS = "technical.editors"
    TECHNICAL_PATTERNS = "technical.patterns"
    TECHNICAL_OPERATING_SYSTEMS = "technical.operatingSystems"

    WORKING_STYLE_VERBOSITY = "workingStyle.verbosity"
    WORKING_STYLE_LEARNING_PACE = "workingStyle.learningPace"
    WORKING_STYLE_COMMUNICATION_STYLE = "workingStyle.communicationStyle"
    WORKING_STYLE_PRIORITIES = "workingStyle.priorities"

    KNOWLEDGE_EXPERT = "knowledge.expert"
    KNOWLEDGE_PROFICIENT = "knowledge.proficient"
    KNOWLEDGE_LEARNING = "knowledge.learning"
    KNOWLEDGE_INTERESTS = "knowledge.interests"

    PERSONAL_INTERESTS = "personal.interests"
    PERSONAL_GOALS = "personal.goals"
    PERSONAL_CONTEXT = "personal.context"

    @property
    def section(self) -> str:
        """Python attribute name of the section model."""
        return to_snake(self.value.split(".")[0])

    @property
    def attr(self) -> str:
        """Python attribute name within the section."""
        return to_snake(self.value.split(".")[1])

    @property
    def is_array(self) -> bool:
        return self in ARRAY_FIELDS


ARRAY_FIELDS = frozenset({
    ProfileField.TECHNICAL_LANGUAGES,
    ProfileField.TECHNICAL_FRAMEWORKS,
    ProfileField.TECHNICAL_TOOLS,
    ProfileField.TECHNICAL_EDITORS,
    ProfileField.TECHNICAL_PATTERNS,
    ProfileField.TECHNICAL_OPERATING_SYSTEMS,
    ProfileField.WORKING_STYLE_PRIORITIES,
    ProfileField.KNOWLEDGE_EXPERT,
    ProfileField.KNOWLEDGE_PROFICIENT,
    ProfileField.KNOWLEDGE_LEARNING,
    ProfileField.KNOWLEDGE_INTERESTS,
    ProfileField.PERSONAL_INTERESTS,
    ProfileField.PERSONAL_GOALS,
    ProfileField.PERSONAL_CONTEXT,
})

FieldRef = Union[ProfileField, str]


def resolve_field(field: FieldRef) -> ProfileField:
    """
    Turn a dot-path into a known ProfileField.

    Raises:
        ValueError: If the path is not a known profile field
    """
    if isinstance(field, ProfileField):
        return field
    try:
        return ProfileField(field)
    except ValueError:
        raise ValueError(f"Unknown profile field: {field!r}") from None


def get_value(profile: UserProfile, field: FieldRef) -> Any:
    f = resolve_field(field)
    return getattr(getattr(profile, f.section), f.attr)


def set_value(profile: UserProfile, field: FieldRef, value: Any) -> None:
    """Assign a field in place (validated by the section model)."""
    f = resolve_field(field)
    setattr(getattr(profile, f.section), f.attr, value)


def merge_values(existing: Any, values: List[str]) -> List[str]:
    """Union of an array field's values and new ones, duplicates dropped."""
    current = existing if isinstance(existing, list) else []
    return list(dict.fromkeys([*current, *values]))
