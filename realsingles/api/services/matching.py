"""
Compatibility scoring.

Scores a candidate against the viewer on a 0-100 scale from six weighted
components. Used to rank the "top matches" list.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
EARTH_RADIUS_MILES = 3959.0

WEIGHTS = {
    "location": 0.25,
    "age": 0.15,
    "interests": 0.20,
    "lifestyle": 0.20,
    "verification": 0.10,
    "activity": 0.10,
}

DEFAULT_MAX_DISTANCE_MILES = 100
DEFAULT_MIN_AGE = 18
DEFAULT_MAX_AGE = 99
NEUTRAL_SCORE = 50
ACTIVITY_SCORE = 70


def _haversine(lat1: float, lon1: float, lat2: float, lon2: float, radius: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return radius * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_km(lat1, lon1, lat2, lon2) -> Optional[float]:
    """Great-circle distance in km rounded to 0.1, or None without coordinates."""
    if None in (lat1, lon1, lat2, lon2):
        return None
    return round(_haversine(lat1, lon1, lat2, lon2, EARTH_RADIUS_KM), 1)


def distance_miles(lat1, lon1, lat2, lon2) -> Optional[float]:
    if None in (lat1, lon1, lat2, lon2):
        return None
    return _haversine(lat1, lon1, lat2, lon2, EARTH_RADIUS_MILES)


def calculate_age(date_of_birth: Optional[date], today: Optional[date] = None) -> Optional[int]:
    if date_of_birth is None:
        return None
    today = today or date.today()
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


@dataclass
class CompatibilityScore:
    total: int
    location: int
    age: int
    interests: int
    lifestyle: int
    verification: int
    activity: int

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "breakdown": {
                "location": self.location,
                "age": self.age,
                "interests": self.interests,
                "lifestyle": self.lifestyle,
                "verification": self.verification,
                "activity": self.activity,
            },
        }


def location_score(viewer: Dict[str, Any], candidate: Dict[str, Any],
                   max_distance_miles: Optional[int] = None) -> float:
    miles = distance_miles(
        viewer.get("latitude"), viewer.get("longitude"),
        candidate.get("latitude"), candidate.get("longitude"),
    )
    if miles is None:
        return NEUTRAL_SCORE
    max_miles = max_distance_miles or DEFAULT_MAX_DISTANCE_MILES
    if miles > max_miles:
        return 0
    return 100 - (miles / max_miles) * 100


def age_score(candidate: Dict[str, Any], min_age: Optional[int] = None,
              max_age: Optional[int] = None, today: Optional[date] = None) -> float:
    age = calculate_age(candidate.get("date_of_birth"), today)
    if age is None:
        return NEUTRAL_SCORE
    low = min_age if min_age is not None else DEFAULT_MIN_AGE
    high = max_age if max_age is not None else DEFAULT_MAX_AGE
    return 100 if low <= age <= high else 0


def interests_score(mine: Optional[Sequence[str]], theirs: Optional[Sequence[str]]) -> float:
    """Jaccard similarity of the two interest sets, as a percentage."""
    if not mine or not theirs:
        return NEUTRAL_SCORE
    a, b = set(mine), set(theirs)
    return len(a & b) / len(a | b) * 100


def lifestyle_score(viewer: Dict[str, Any], candidate: Dict[str, Any]) -> float:
    factors: List[float] = []

    mine, theirs = viewer.get("smoking"), candidate.get("smoking")
    if mine and theirs:
        if mine == theirs:
            factors.append(100)
        elif "never" in (mine, theirs):
            factors.append(20)
        else:
            factors.append(60)

    mine, theirs = viewer.get("drinking"), candidate.get("drinking")
    if mine and theirs:
        factors.append(100 if mine == theirs else 70)

    mine, theirs = viewer.get("wants_kids"), candidate.get("wants_kids")
    if mine and theirs:
        if mine == theirs:
            factors.append(100)
        elif {mine, theirs} == {"yes", "no"}:
            factors.append(0)
        else:
            factors.append(60)

    mine, theirs = viewer.get("exercise"), candidate.get("exercise")
    if mine and theirs:
        factors.append(100 if mine == theirs else 70)

    if not factors:
        return NEUTRAL_SCORE
    return sum(factors) / len(factors)


def calculate_compatibility(
    viewer: Dict[str, Any],
    candidate: Dict[str, Any],
    filters: Optional[Dict[str, Any]] = None,
    today: Optional[date] = None,
) -> CompatibilityScore:
    """
    Score how well `candidate` suits `viewer`.

    Args:
        viewer: Viewer profile record
        candidate: Candidate profile record
        filters: Viewer's saved filters (age range, max distance)
        today: Reference date for ages

    Returns:
        CompatibilityScore with the weighted total and each rounded component
    """
    filters = filters or {}
    components = {
        "location": round(location_score(viewer, candidate, filters.get("max_distance_miles"))),
        "age": round(age_score(candidate, filters.get("min_age"), filters.get("max_age"), today)),
        "interests": round(interests_score(viewer.get("interests"), candidate.get("interests"))),
        "lifestyle": round(lifestyle_score(viewer, candidate)),
        "verification": 100 if candidate.get("is_verified") else 0,
        "activity": ACTIVITY_SCORE,
    }
    total = round(sum(components[name] * weight for name, weight in WEIGHTS.items()))
    return CompatibilityScore(total=total, **components)


def rank_top_matches(
    viewer: Dict[str, Any],
    candidates: List[Dict[str, Any]],
    filters: Optional[Dict[str, Any]] = None,
    limit: int = 20,
) -> List[Dict[str, Any]]:
    """Score, drop zero scores, sort best first and truncate."""
    scored = []
    for candidate in candidates:
        if candidate.get("user_id") == viewer.get("user_id"):
            continue
        score = calculate_compatibility(viewer, candidate, filters)
        if score.total <= 0:
            continue
        scored.append({**candidate, "compatibility": score.to_dict()})

    scored.sort(key=lambda c: c["compatibility"]["total"], reverse=True)
    logger.debug(f"Ranked {len(scored)} of {len(candidates)} candidates")
    return scored[:limit]
