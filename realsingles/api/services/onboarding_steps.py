"""
Onboarding step configuration.

The wizard is a fixed, ordered list of steps. Each step fills one or more
profile columns. Steps 1-5 are required before a member can start matching.
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

PHASE_LABELS: Dict[str, str] = {
    "required": "The Basics",
    "about": "About You",
    "physical": "Appearance",
    "relationship": "Relationship Goals",
    "location": "Location",
    "lifestyle": "Lifestyle",
    "habits": "Habits",
    "family": "Family",
    "personality": "Personality",
    "prompts": "Prompts",
    "social": "Social",
    "complete": "All Done",
}

# Photo fields are tracked separately from the completion field count
PHOTO_FIELDS = ("profile_image_url", "verification_selfie_url")


@dataclass(frozen=True)
class StepField:
    column: str
    label: str
    input_type: str = "text"
    max_length: Optional[int] = None


@dataclass(frozen=True)
class OnboardingStep:
    step_number: int
    id: str
    title: str
    phase: str
    fields: Tuple[StepField, ...] = field(default_factory=tuple)
    is_required: bool = False
    allow_skip: bool = True
    allow_prefer_not: bool = False

    @property
    def columns(self) -> List[str]:
        return [f.column for f in self.fields]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["phase_label"] = PHASE_LABELS[self.phase]
        return data


def _step(number, step_id, title, phase, *fields, required=False, skip=True, prefer_not=False):
    return OnboardingStep(
        step_number=number,
        id=step_id,
        title=title,
        phase=phase,
        fields=tuple(fields),
        is_required=required,
        allow_skip=skip,
        allow_prefer_not=prefer_not,
    )


def _prompt(number, step_id, title, column, max_length=500):
    return _step(number, step_id, title, "prompts", StepField(column, title, "textarea", max_length))


ONBOARDING_STEPS: List[OnboardingStep] = [
    _step(1, "name", "What should we call you?", "required",
          StepField("display_name", "Display Name", max_length=50), required=True, skip=False),
    _step(2, "birthday", "When's your birthday?", "required",
          StepField("date_of_birth", "Date of Birth", "date"), required=True, skip=False),
    _step(3, "gender", "What's your gender?", "required",
          StepField("gender", "Gender", "select"), required=True, skip=False),
    _step(4, "interested-in", "Who are you interested in?", "required",
          StepField("looking_for", "Interested In", "multiselect"), required=True, skip=False),
    _step(5, "photos", "Add your photos", "required",
          StepField("profile_image_url", "Photos", "photos"), required=True, skip=False),
    _step(6, "verification-selfie", "Verify it's you", "required",
          StepField("verification_selfie_url", "Verification Selfie", "selfie")),
    _step(7, "bio", "Tell us about yourself", "about",
          StepField("bio", "Bio", "textarea", 1000)),
    _step(8, "looking-for-description", "Describe your ideal match", "about",
          StepField("looking_for_description", "Looking For", "textarea", 500)),
    _step(9, "physical", "Physical attributes", "physical",
          StepField("height_inches", "Height", "height"),
          StepField("body_type", "Body Type", "select")),
    _step(10, "ethnicity", "What's your ethnicity?", "physical",
          StepField("ethnicity", "Ethnicity", "multiselect"), prefer_not=True),
    _step(11, "marital-status", "What's your marital status?", "relationship",
          StepField("marital_status", "Marital Status", "select")),
    _step(12, "dating-intentions", "What are you looking for?", "relationship",
          StepField("dating_intentions", "Dating Intentions", "select")),
    _step(13, "location", "Where do you live?", "location",
          StepField("country", "Country", "select"),
          StepField("city", "City", max_length=100),
          StepField("zip_code", "Zip Code", max_length=20)),
    _step(14, "work", "What do you do?", "lifestyle",
          StepField("occupation", "Occupation", max_length=100),
          StepField("company", "Company", max_length=100)),
    _step(15, "education", "What's your education?", "lifestyle",
          StepField("education", "Education", "select")),
    _step(16, "religion", "What's your religion?", "lifestyle",
          StepField("religion", "Religion", "select"), prefer_not=True),
    _step(17, "political-views", "What are your political views?", "lifestyle",
          StepField("political_views", "Political Views", "select"), prefer_not=True),
    _step(18, "exercise", "How often do you exercise?", "lifestyle",
          StepField("exercise", "Exercise", "select")),
    _step(19, "languages", "What languages do you speak?", "lifestyle",
          StepField("languages", "Languages", "multiselect")),
    _step(20, "habits", "Your habits", "habits",
          StepField("smoking", "Smoking", "select"),
          StepField("drinking", "Drinking", "select"),
          StepField("marijuana", "Marijuana", "select")),
    _step(21, "has-kids", "Do you have children?", "family",
          StepField("has_kids", "Has Kids", "select")),
    _step(22, "wants-kids", "Do you want children?", "family",
          StepField("wants_kids", "Wants Kids", "select")),
    _step(23, "pets", "Do you have pets?", "family",
          StepField("pets", "Pets", "multiselect")),
    _step(24, "interests", "What are your interests?", "personality",
          StepField("interests", "Interests", "multiselect")),
    _step(25, "life-goals", "What are your life goals?", "personality",
          StepField("life_goals", "Life Goals", "multiselect")),
    _prompt(26, "prompt-ideal-date", "My ideal first date...", "ideal_first_date"),
    _prompt(27, "prompt-non-negotiables", "My top non-negotiables", "non_negotiables"),
    _prompt(28, "prompt-way-to-heart", "The way to my heart is through...", "way_to_heart"),
    _prompt(29, "prompt-after-work", "After work, you can find me...", "after_work"),
    _prompt(30, "prompt-nightclub-or-home", "Nightclub or night at home?", "nightclub_or_home", 200),
    _prompt(31, "prompt-pet-peeves", "My pet peeves", "pet_peeves"),
    _prompt(32, "prompt-travel-story", "My craziest travel story", "craziest_travel_story"),
    _prompt(33, "prompt-weirdest-gift", "The weirdest gift I've received", "weirdest_gift"),
    _prompt(34, "prompt-worst-job", "The worst job I ever had", "worst_job"),
    _prompt(35, "prompt-dream-job", "The job I'd do for free", "dream_job"),
    _step(36, "social-links", "Connect your socials", "social",
          StepField("social_link_1", "Social Link 1", "url", 255),
          StepField("social_link_2", "Social Link 2", "url", 255)),
    _step(37, "complete", "You're all set!", "complete", skip=False),
]

TOTAL_STEPS = len(ONBOARDING_STEPS)
REQUIRED_STEPS = [s for s in ONBOARDING_STEPS if s.is_required]


def get_step_by_id(step_id: str) -> Optional[OnboardingStep]:
    return next((s for s in ONBOARDING_STEPS if s.id == step_id), None)


def get_step_by_number(number: int) -> Optional[OnboardingStep]:
    return next((s for s in ONBOARDING_STEPS if s.step_number == number), None)


def get_step_for_field(column: str) -> Optional[OnboardingStep]:
    return next((s for s in ONBOARDING_STEPS if column in s.columns), None)


def get_completion_fields() -> List[str]:
    """Every column that counts toward the completion percentage."""
    return [
        f.column
        for step in ONBOARDING_STEPS
        for f in step.fields
        if f.column not in PHOTO_FIELDS
    ]


def get_required_fields() -> List[str]:
    return [c for step in REQUIRED_STEPS for c in step.columns if c not in PHOTO_FIELDS]


def steps_payload() -> List[dict]:
    """JSON-ready step list served to the clients."""
    return [step.to_dict() for step in ONBOARDING_STEPS]
