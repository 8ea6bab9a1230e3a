"""
Profile API endpoints.

Field writes go through the closed ProfileField set: unknown paths and
values rejected by the schema answer 422.
"""

from fastapi import APIRouter, Depends, HTTPException

from memkeep.profile.schemas import InferenceCandidate, InferredPreference, OnboardingCategory
from .deps import Components, get_components
from .schemas import (
    InferenceActionResponse,
    InferenceListResponse,
    OnboardingResponse,
    SetFieldRequest,
    SyncResponse,
)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("")
async def get_profile(components: Components = Depends(get_components)):
    """Current profile document (camelCase keys, as stored on disk)."""
    profile = await components.profiles.load()
    return profile.to_document()


@router.post("/field")
async def set_field(request: SetFieldRequest, components: Components = Depends(get_components)):
    """
    Set or append to one field.

    Example:
        POST /profile/field
        {"field": "technical.languages", "value": ["Python"], "mode": "append"}
    """
    profiles = components.profiles

    try:
        if request.mode == "append":
            values = request.value if isinstance(request.value, list) else [request.value]
            profile = await profiles.add_to_array(request.field, values)
        else:
            profile = await profiles.set(request.field, request.value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return profile.to_document()


@router.post("/sync", response_model=SyncResponse)
async def sync_profile(components: Components = Depends(get_components)):
    """Reconcile the local profile against the remote snapshot log."""
    try:
        result = await components.profiles.sync_from_remote()
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Profile sync failed: {str(e)}")

    return SyncResponse(action=result.action, profile=result.profile.to_document())


@router.get("/onboarding", response_model=OnboardingResponse)
async def onboarding(count: int = 3, components: Components = Depends(get_components)):
    """Next onboarding questions for unanswered fields."""
    profiles = components.profiles
    profile = await profiles.load()

    return OnboardingResponse(
        complete=profiles.is_onboarding_complete(profile),
        should_prompt=profiles.should_prompt_onboarding(profile),
        questions=profiles.get_next_onboarding_questions(profile, count=count),
    )


@router.post("/onboarding/{category}/complete")
async def complete_onboarding_category(
    category: OnboardingCategory,
    components: Components = Depends(get_components),
):
    profile = await components.profiles.mark_category_complete(category)
    return profile.to_document()


@router.post("/onboarding/prompted")
async def onboarding_prompted(components: Components = Depends(get_components)):
    await components.profiles.record_onboarding_prompt()
    return {"recorded": True}


@router.get("/inferences", response_model=InferenceListResponse)
async def list_inferences(components: Components = Depends(get_components)):
    """Pending inferences awaiting confirmation."""
    pending = components.profiles.get_pending_inferences()
    return InferenceListResponse(inferences=pending, count=len(pending))


@router.post("/inferences", response_model=InferredPreference)
async def add_inference(candidate: InferenceCandidate, components: Components = Depends(get_components)):
    """Queue an inferred preference."""
    try:
        return await components.profiles.add_inference(candidate)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/inferences/{inference_id}/confirm", response_model=InferenceActionResponse)
async def confirm_inference(inference_id: str, components: Components = Depends(get_components)):
    """Apply a pending inference to the profile. ok=false if missing or resolved."""
    try:
        ok = await components.profiles.confirm_inference(inference_id)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return InferenceActionResponse(id=inference_id, ok=ok, status="confirmed" if ok else None)


@router.post("/inferences/{inference_id}/reject", response_model=InferenceActionResponse)
async def reject_inference(inference_id: str, components: Components = Depends(get_components)):
    ok = await components.profiles.reject_inference(inference_id)
    return InferenceActionResponse(id=inference_id, ok=ok, status="rejected" if ok else None)
