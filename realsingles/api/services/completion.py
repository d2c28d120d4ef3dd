"""
Profile completion calculator.

Pure functions over a flat profile record (a dict of column -> value). The
record is built from the users and profiles rows by `build_profile_record`.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .onboarding_steps import (
    ONBOARDING_STEPS,
    TOTAL_STEPS,
    OnboardingStep,
    get_completion_fields,
    get_step_by_number,
    get_step_for_field,
)

MIN_PHOTOS_REQUIRED = 1

COMPLETION_FIELDS: List[str] = get_completion_fields()
TOTAL_FIELDS = len(COMPLETION_FIELDS)


def has_value(value: Any) -> bool:
    """True unless the value is None, a blank string or an empty list."""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    if isinstance(value, (list, tuple)) and len(value) == 0:
        return False
    return True


@dataclass
class CompletionStatus:
    percentage: int
    completed_count: int
    total_count: int
    completed_fields: List[str] = field(default_factory=list)
    incomplete_fields: List[str] = field(default_factory=list)
    skipped_fields: List[str] = field(default_factory=list)
    prefer_not_fields: List[str] = field(default_factory=list)
    required_incomplete: List[str] = field(default_factory=list)
    next_incomplete_step: Optional[int] = None
    first_skipped_step: Optional[int] = None
    can_start_matching: bool = False
    is_complete: bool = False
    photo_count: int = 0
    has_minimum_photos: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _marked(record: Dict[str, Any], key: str) -> List[str]:
    return list(record.get(key) or [])


def has_minimum_photos(record: Dict[str, Any], photo_count: int = 0,
                       min_photos: int = MIN_PHOTOS_REQUIRED) -> bool:
    return photo_count >= min_photos or has_value(record.get("profile_image_url"))


def calculate_completion(
    record: Dict[str, Any],
    photo_count: int = 0,
    min_photos: int = MIN_PHOTOS_REQUIRED,
) -> CompletionStatus:
    """
    Compute completion for a profile record.

    A field is complete when it has a value or the member answered "prefer
    not to say". Skipped fields stay incomplete. Photos count as one extra
    field toward the percentage.

    Args:
        record: Flat profile record, including the skipped/prefer-not lists
        photo_count: Number of gallery photos
        min_photos: Photos needed before matching

    Returns:
        CompletionStatus
    """
    skipped = _marked(record, "profile_completion_skipped")
    prefer_not = _marked(record, "profile_completion_prefer_not")

    completed: List[str] = []
    incomplete: List[str] = []
    required_incomplete: List[str] = []
    incomplete_steps = set()
    skipped_steps = set()

    for column in COMPLETION_FIELDS:
        step = get_step_for_field(column)
        if has_value(record.get(column)) or column in prefer_not:
            completed.append(column)
            continue

        incomplete.append(column)
        if column in skipped:
            skipped_steps.add(step.step_number)
        else:
            incomplete_steps.add(step.step_number)
        if step.is_required:
            required_incomplete.append(column)

    photos_ok = has_minimum_photos(record, photo_count, min_photos)
    if not photos_ok:
        incomplete_steps.add(get_step_for_field("profile_image_url").step_number)
        required_incomplete.append("profile_image_url")

    photo_done = 1 if photos_ok else 0
    percentage = round((len(completed) + photo_done) / (TOTAL_FIELDS + 1) * 100)

    return CompletionStatus(
        percentage=percentage,
        completed_count=len(completed) + photo_done,
        total_count=TOTAL_FIELDS + 1,
        completed_fields=completed,
        incomplete_fields=incomplete,
        skipped_fields=skipped,
        prefer_not_fields=prefer_not,
        required_incomplete=required_incomplete,
        next_incomplete_step=min(incomplete_steps) if incomplete_steps else None,
        first_skipped_step=min(skipped_steps) if skipped_steps else None,
        can_start_matching=not required_incomplete and photos_ok,
        is_complete=not incomplete and photos_ok,
        photo_count=photo_count,
        has_minimum_photos=photos_ok,
    )


def _needs_attention(step: OnboardingStep, record: Dict[str, Any], photo_count: int) -> bool:
    if step.id == "photos":
        return not has_minimum_photos(record, photo_count)

    skipped = _marked(record, "profile_completion_skipped")
    prefer_not = _marked(record, "profile_completion_prefer_not")

    if step.id == "verification-selfie":
        return not (has_value(record.get("verification_selfie_url"))
                    or "verification_selfie_url" in skipped)

    for column in step.columns:
        if has_value(record.get(column)) or column in prefer_not:
            continue
        if step.is_required or column not in skipped:
            return True
    return False


def get_resume_step(record: Dict[str, Any], photo_count: int = 0) -> int:
    """First step that still needs attention; skipped optional fields count as handled."""
    for step in ONBOARDING_STEPS:
        if step.id == "complete":
            continue
        if _needs_attention(step, record, photo_count):
            return step.step_number
    return TOTAL_STEPS


def is_step_complete(step_number: int, record: Dict[str, Any], photo_count: int = 0) -> bool:
    """Strict check: skipped fields do not count."""
    step = get_step_by_number(step_number)
    if step is None:
        return False
    if step.id == "complete":
        return True
    if step.id == "photos":
        return has_minimum_photos(record, photo_count)
    return not get_incomplete_fields_in_step(step_number, record)


def get_incomplete_fields_in_step(step_number: int, record: Dict[str, Any]) -> List[str]:
    step = get_step_by_number(step_number)
    if step is None:
        return []
    prefer_not = _marked(record, "profile_completion_prefer_not")
    return [
        column for column in step.columns
        if not has_value(record.get(column)) and column not in prefer_not
    ]


def get_next_incomplete_step_after(step_number: int, record: Dict[str, Any],
                                   photo_count: int = 0) -> Optional[int]:
    for step in ONBOARDING_STEPS:
        if step.step_number <= step_number or step.id == "complete":
            continue
        if not is_step_complete(step.step_number, record, photo_count):
            return step.step_number
    return None


def has_completed_steps_ahead(step_number: int, record: Dict[str, Any],
                              photo_count: int = 0) -> bool:
    """True when some later step already has all its fields filled."""
    return any(
        is_step_complete(step.step_number, record, photo_count)
        for step in ONBOARDING_STEPS
        if step.step_number > step_number and step.id != "complete" and step.fields
    )


PROFILE_TRACKING_COLUMNS = (
    "profile_completion_skipped",
    "profile_completion_prefer_not",
    "profile_completion_step",
)


def build_profile_record(user, profile) -> Dict[str, Any]:
    """Flatten the users and profiles rows into a completion record."""
    record: Dict[str, Any] = {"display_name": getattr(user, "display_name", None)}
    if profile is None:
        return record
    columns: Iterable[str] = list(COMPLETION_FIELDS) + [
        "profile_image_url", "verification_selfie_url", *PROFILE_TRACKING_COLUMNS
    ]
    for column in columns:
        if column == "display_name":
            continue
        record[column] = getattr(profile, column, None)
    return record
