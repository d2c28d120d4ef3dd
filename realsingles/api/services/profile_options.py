"""
Allowed values for enumerated profile columns.

These mirror the CHECK constraints on the profiles table so requests are
rejected with a 400 before they reach the database.
"""

from typing import Dict, FrozenSet

PREFER_NOT_TO_SAY = "prefer_not_to_say"

GENDERS = frozenset({"male", "female", "non-binary", "other"})
BODY_TYPES = frozenset({"slim", "athletic", "average", "muscular", "curvy", "plus_size"})
MARITAL_STATUSES = frozenset({"never_married", "separated", "divorced", "widowed"})
HAS_KIDS = frozenset({"no", "yes_live_at_home", "yes_live_away", "yes_shared"})
WANTS_KIDS = frozenset({"no", "no_ok_if_partner_has", "yes", "not_sure"})
SMOKING = frozenset({"never", "occasionally", "daily", "trying_to_quit"})
DRINKING = frozenset({"never", "social", "moderate", "regular"})
MARIJUANA = frozenset({"never", "yes", "occasionally"})
EXERCISE = frozenset({"never", "sometimes", "regularly", "daily"})
DATING_INTENTIONS = frozenset(
    {"long_term", "long_term_open", "short_term_open", "short_term", "figuring_out"}
)
EDUCATION = frozenset(
    {"high_school", "trade_school", "some_college", "associate", "bachelor", "graduate", "phd"}
)
ETHNICITIES = frozenset({
    "white", "latino", "black", "asian", "native_american", "east_indian",
    "pacific_islander", "middle_eastern", "armenian", "mixed", "other", PREFER_NOT_TO_SAY,
})
RELIGIONS = frozenset({
    "adventist", "agnostic", "atheist", "buddhist", "christian_catholic", "christian_lds",
    "christian_protestant", "christian_orthodox", "hindu", "jewish", "muslim", "spiritual",
    "other", PREFER_NOT_TO_SAY,
})
POLITICAL_VIEWS = frozenset(
    {"not_political", "undecided", "conservative", "liberal", "libertarian", "moderate"}
)
PETS = frozenset({"dog", "cat", "fish", "other", "dont_have_but_love", "pet_free", "allergic"})
ZODIAC_SIGNS = frozenset({
    "aries", "taurus", "gemini", "cancer", "leo", "virgo", "libra", "scorpio",
    "sagittarius", "capricorn", "aquarius", "pisces",
})

# Single-valued columns
SCALAR_OPTIONS: Dict[str, FrozenSet[str]] = {
    "gender": GENDERS,
    "body_type": BODY_TYPES,
    "marital_status": MARITAL_STATUSES,
    "has_kids": HAS_KIDS,
    "wants_kids": WANTS_KIDS,
    "smoking": SMOKING,
    "drinking": DRINKING,
    "marijuana": MARIJUANA,
    "exercise": EXERCISE,
    "dating_intentions": DATING_INTENTIONS,
    "education": EDUCATION,
    "religion": RELIGIONS,
    "political_views": POLITICAL_VIEWS,
    "zodiac_sign": ZODIAC_SIGNS,
}

# Array columns
LIST_OPTIONS: Dict[str, FrozenSet[str]] = {
    "looking_for": GENDERS,
    "ethnicity": ETHNICITIES,
    "pets": PETS,
}

MATCH_ACTIONS = frozenset({"like", "pass", "super_like"})
POSITIVE_ACTIONS = ("like", "super_like")

PRODUCT_CATEGORIES = frozenset({"gift_card", "merchandise", "experience", "subscription"})
ORDER_STATUSES = frozenset({"pending", "processing", "shipped", "completed", "cancelled"})
REPORT_STATUSES = frozenset({"pending", "reviewed", "resolved", "dismissed"})
USER_STATUSES = frozenset({"active", "suspended", "deleted"})
USER_ROLES = frozenset({"user", "admin", "moderator"})
MATCHMAKER_STATUSES = frozenset({"pending", "approved", "suspended", "inactive"})
INTRO_OUTCOMES = frozenset({"no_response", "declined", "chatted", "dated", "relationship"})
REPORT_REASONS = frozenset(
    {"spam", "harassment", "inappropriate_content", "fake_profile", "underage", "scam", "other"}
)
EVENT_TYPES = frozenset({"in_person", "virtual"})
EVENT_STATUSES = frozenset({"upcoming", "ongoing", "completed", "cancelled"})
SPEED_DATING_GENDER_PREFERENCES = frozenset({"mixed", "men_only", "women_only"})
SPEED_DATING_STATUSES = frozenset({"scheduled", "in_progress", "completed", "cancelled"})


def invalid_values(field: str, value) -> list:
    """Return the values of `value` not allowed for `field` (empty when valid)."""
    if field in SCALAR_OPTIONS:
        return [] if value is None or value in SCALAR_OPTIONS[field] else [value]
    if field in LIST_OPTIONS:
        return [v for v in (value or []) if v not in LIST_OPTIONS[field]]
    return []
