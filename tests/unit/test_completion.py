"""
Tests for onboarding steps and the profile completion calculator.
"""

from realsingles.api.services.completion import (
    COMPLETION_FIELDS,
    calculate_completion,
    get_next_incomplete_step_after,
    get_resume_step,
    has_value,
    is_step_complete,
)
from realsingles.api.services.onboarding_steps import (
    ONBOARDING_STEPS,
    TOTAL_STEPS,
    get_required_fields,
    get_step_by_id,
    get_step_for_field,
    steps_payload,
)

REQUIRED_RECORD = {
    "display_name": "Sam",
    "date_of_birth": "1990-01-01",
    "gender": "male",
    "looking_for": ["female"],
    "profile_image_url": "https://img.test/sam.jpg",
}


def test_steps_are_numbered_in_order():
    assert [s.step_number for s in ONBOARDING_STEPS] == list(range(1, TOTAL_STEPS + 1))
    assert ONBOARDING_STEPS[-1].id == "complete"


def test_required_fields_and_lookup():
    assert get_required_fields() == ["display_name", "date_of_birth", "gender", "looking_for"]
    assert get_step_for_field("religion").step_number == 16
    assert get_step_by_id("religion").allow_prefer_not
    assert not get_step_by_id("bio").allow_prefer_not


def test_photo_fields_do_not_count_as_fields():
    assert "profile_image_url" not in COMPLETION_FIELDS
    assert "verification_selfie_url" not in COMPLETION_FIELDS


def test_steps_payload_has_phase_labels():
    payload = steps_payload()
    assert payload[0]["phase_label"] == "The Basics"
    assert len(payload) == TOTAL_STEPS


def test_has_value():
    assert not has_value(None)
    assert not has_value("   ")
    assert not has_value([])
    assert has_value(0)
    assert has_value(["a"])


def test_empty_profile_is_zero_percent():
    status = calculate_completion({})
    assert status.percentage == 0
    assert not status.can_start_matching
    assert status.next_incomplete_step == 1
    assert "profile_image_url" in status.required_incomplete


def test_full_profile_is_complete():
    record = {column: "x" for column in COMPLETION_FIELDS}
    record["profile_image_url"] = "https://img.test/full.jpg"
    status = calculate_completion(record)
    assert status.percentage == 100
    assert status.is_complete
    assert status.can_start_matching
    assert status.next_incomplete_step is None


def test_required_steps_unlock_matching():
    status = calculate_completion(REQUIRED_RECORD)
    assert status.can_start_matching
    assert not status.is_complete
    assert 0 < status.percentage < 100


def test_gallery_photos_satisfy_photo_step():
    record = {k: v for k, v in REQUIRED_RECORD.items() if k != "profile_image_url"}
    assert not calculate_completion(record).can_start_matching
    assert calculate_completion(record, photo_count=1).can_start_matching


def test_prefer_not_counts_as_complete_but_skip_does_not():
    record = dict(REQUIRED_RECORD, profile_completion_prefer_not=["religion"],
                  profile_completion_skipped=["bio"])
    status = calculate_completion(record)
    assert "religion" in status.completed_fields
    assert "bio" in status.incomplete_fields
    assert status.first_skipped_step == 7


def test_resume_step_skips_handled_steps():
    assert get_resume_step({}) == 1
    assert get_resume_step(REQUIRED_RECORD) == 6

    record = dict(REQUIRED_RECORD, profile_completion_skipped=["verification_selfie_url", "bio"])
    assert get_resume_step(record) == 8


def test_strict_step_checks():
    record = dict(REQUIRED_RECORD, profile_completion_skipped=["bio"])
    assert is_step_complete(1, record)
    assert is_step_complete(5, record)
    assert not is_step_complete(7, record)
    assert get_next_incomplete_step_after(5, record) == 6
