"""
Discovery routes.
The browse feed and compatibility-ranked top matches.
"""

import logging
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...db.models import User
from ..dependencies import get_current_user, get_db
from ..schemas.common import ERROR_RESPONSES, ok
from ..services.discovery import DEFAULT_LIMIT, DiscoveryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/discover", tags=["Discovery"])


@router.get("", responses=ERROR_RESPONSES)
async def discover(
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0),
    sort_by: Literal["recent", "distance", "random"] = Query("recent"),
    debug: bool = Query(False, description="Include exclusion/filter counts (admins only)"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    One page of discovery candidates.

    When nothing can be shown, `profiles` is empty and `empty_reason` says why:
    profile_not_found, user_inactive, incomplete_profile or no_matches.
    """
    service = DiscoveryService(db)
    result = service.get_discoverable_candidates(
        current_user,
        limit=limit,
        offset=offset,
        sort_by=sort_by,
        include_debug=debug and current_user.is_admin,
    )
    data = result.to_dict()
    data.update({"limit": limit, "offset": offset, "sort_by": sort_by})
    return ok(data)


@router.get("/top-matches", responses=ERROR_RESPONSES)
async def top_matches(
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Candidates ordered by compatibility score, zero scores dropped."""
    service = DiscoveryService(db)
    matches = service.get_top_matches(current_user, limit=limit)
    return ok({"profiles": matches, "total": len(matches)})
