"""
Profile completion routes.
Onboarding progress, the step definitions, and skip / prefer-not marks.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...db.models import User
from ..config import APISettings, get_settings
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..schemas.profile import PreferNotRequest, SkipFieldsRequest
from ..services.cache_service import CacheKeys, CacheService, get_cache_service
from ..services.onboarding_steps import TOTAL_STEPS, steps_payload
from ..services.profiles import ProfileService

router = APIRouter(prefix="/profile/completion", tags=["Profile Completion"])


@router.get("", responses=ERROR_RESPONSES)
async def get_completion(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Completion percentage, missing fields and the step to resume at."""
    service = ProfileService(db, settings)
    payload = service.completion_payload(current_user)
    db.commit()
    return ok(payload)


@router.get("/steps")
async def get_steps(
    cache: CacheService = Depends(get_cache_service),
    settings: APISettings = Depends(get_settings),
):
    """The ordered onboarding steps. Static, so served from cache."""
    steps = cache.get_or_set(
        CacheKeys.ONBOARDING_STEPS, steps_payload, ttl=settings.cache_ttl_steps, key_type="steps"
    )
    return ok({"steps": steps, "total_steps": TOTAL_STEPS})


@router.post("/skip", responses=ERROR_RESPONSES)
async def skip_fields(
    request: SkipFieldsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Mark optional fields as skipped; required fields cannot be skipped."""
    service = ProfileService(db, settings)
    service.skip_fields(current_user, request.fields)
    return ok(service.completion_payload(current_user))


@router.post("/prefer-not", responses=ERROR_RESPONSES)
async def prefer_not(
    request: PreferNotRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: APISettings = Depends(get_settings),
):
    """Answer a sensitive field with "prefer not to say"."""
    service = ProfileService(db, settings)
    service.prefer_not(current_user, request.field)
    return ok(service.completion_payload(current_user))
