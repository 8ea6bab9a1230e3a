"""Profile context text for downstream search/completion prompts."""

from .schemas import UserProfile


def build_context_string(profile: UserProfile) -> str:
    """Short "; "-joined description of the user, "" if nothing is known."""
    parts = []

    if profile.identity.role:
        parts.append(f"Role: {profile.identity.role}")

    technical = profile.technical
    if technical.languages:
        parts.append(f"Languages: {', '.join(technical.languages)}")
    if technical.frameworks:
        parts.append(f"Frameworks: {', '.join(technical.frameworks)}")

    if profile.working_style.verbosity != "adaptive":
        parts.append(f"Prefers {profile.working_style.verbosity} explanations")

    knowledge = profile.knowledge
    if knowledge.expert:
        parts.append(f"Expert in: {', '.join(knowledge.expert)}")
    if knowledge.learning:
        parts.append(f"Currently learning: {', '.join(knowledge.learning)}")

    return "; ".join(parts)


def enrich_query(query: str, profile: UserProfile) -> str:
    """Append the user context to a query (unchanged if there is none)."""
    context = build_context_string(profile)
    if not context:
        return query
    return f"{query}\n\nUser context: {context}"
