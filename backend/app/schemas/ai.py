"""
StudyGenie Backend — AI Feature Schemas
=========================================

What:  Pydantic models for the six AI features: the request payloads the
       frontend sends and the structured responses every feature returns.
How:   The same result models validate live provider output and build the
       canned fallbacks, so a response looks identical whichever path made it.
Who:   Routes (request bodies, response_model), FeatureRequestBuilder,
       response_parser, MockResponseGenerator.
"""

from enum import Enum
from typing import Annotated, Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, Field, StringConstraints, field_validator

# Shown with every support-coach reply, live or canned.
SUPPORT_DISCLAIMER = (
    "This is supportive guidance, not medical or mental health advice. "
    "If you are struggling, please reach out to a counselor, a trusted person, "
    "or your local emergency services."
)


class FeatureType(str, Enum):
    """
    The six study-assistant capabilities.

    Values double as the `feature_name` stored in the history table and as the
    route suffix under /api/ai/.
    """
    STUDY_STYLE = "study-style"
    STRESS = "stress"
    ROADMAP = "genieguide"
    CHAT = "chat"
    SUPPORT = "support"
    IMAGE_ANALYZE = "image-analyze"


# Result text fields: surrounding whitespace is dropped, blank is rejected
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def _non_blank(items: List[str]) -> List[str]:
    cleaned = [item.strip() for item in items if isinstance(item, str) and item.strip()]
    if not cleaned:
        raise ValueError("must contain at least one non-blank entry")
    return cleaned


# ══════════════════════════════════════════════════════════════════════════
# Request payloads — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class StudyStyleRequest(BaseModel):
    """Likert answers (1-5) keyed by quiz question id."""
    answers: Dict[str, int] = Field(description="Question id → answer on a 1-5 scale")

    @field_validator("answers")
    @classmethod
    def validate_answers(cls, v: Dict[str, int]) -> Dict[str, int]:
        if not v:
            raise ValueError("answers must not be empty")
        out_of_range = [key for key, value in v.items() if not 1 <= value <= 5]
        if out_of_range:
            raise ValueError(f"answers out of 1-5 range for questions: {out_of_range}")
        return v


class StressRequest(BaseModel):
    """Lifestyle survey (sleepHours, workloadLevel, exerciseFrequency, ...)."""
    lifestyle: Dict[str, Union[str, int, float]] = Field(
        description="Survey field → answer"
    )

    @field_validator("lifestyle")
    @classmethod
    def validate_lifestyle(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("lifestyle must not be empty")
        return v


class RoadmapRequest(BaseModel):
    """
    GenieGuide form. Only the course description and weekly hours are required;
    the remaining fields refine the plan when present.
    """
    course_info: str = Field(
        min_length=1,
        max_length=4000,
        validation_alias=AliasChoices("courseInfo", "course_info"),
        serialization_alias="courseInfo",
    )
    weekly_hours: float = Field(
        gt=0,
        le=168,
        validation_alias=AliasChoices("weeklyHours", "weekly_hours"),
        serialization_alias="weeklyHours",
    )
    current_level: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("currentLevel", "current_level"),
        serialization_alias="currentLevel",
    )
    learning_goals: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("learningGoals", "learning_goals"),
        serialization_alias="learningGoals",
    )
    timeframe: Optional[str] = None
    study_preference: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("studyPreference", "study_preference"),
        serialization_alias="studyPreference",
    )
    prior_knowledge: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("priorKnowledge", "prior_knowledge"),
        serialization_alias="priorKnowledge",
    )
    challenge_areas: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("challengeAreas", "challenge_areas"),
        serialization_alias="challengeAreas",
    )

    @field_validator("course_info")
    @classmethod
    def validate_course_info(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("courseInfo must not be blank")
        return v.strip()

    def details(self) -> Dict[str, Any]:
        """Optional fields the user actually filled in, keyed by their form names."""
        return {
            key: value
            for key, value in self.model_dump(by_alias=True, exclude_none=True).items()
            if key not in {"courseInfo", "weeklyHours"} and str(value).strip()
        }


class MessageRequest(BaseModel):
    """Free-text message for NOVA chat and the support coach."""
    message: str = Field(min_length=1, max_length=4000)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message must not be blank")
        return v.strip()


class ImagePayload(BaseModel):
    """An uploaded image, already validated by ImageUploadService."""
    filename: str
    content_type: str
    content: bytes


class FeatureRequest(BaseModel):
    """
    One inbound feature call: which feature, and its payload.

    Immutable and request-scoped; the payload is one of the request models
    above and has already passed its own validation.
    """
    feature_type: FeatureType
    payload: Union[
        StudyStyleRequest, StressRequest, RoadmapRequest, MessageRequest, ImagePayload
    ]

    model_config = {"frozen": True}

    def history_payload(self) -> Dict[str, Any]:
        """What gets stored as the history row's `prompt` (no raw image bytes)."""
        if isinstance(self.payload, ImagePayload):
            return {"filename": self.payload.filename}
        return self.payload.model_dump(by_alias=True, exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Structured responses — What every feature returns
# ══════════════════════════════════════════════════════════════════════════


class StudyStyleResult(BaseModel):
    style: NonBlankStr
    strengths: List[str]
    recommendations: List[str]
    summary: NonBlankStr

    @field_validator("strengths", "recommendations")
    @classmethod
    def validate_lists(cls, v: List[str]) -> List[str]:
        return _non_blank(v)


class StressResult(BaseModel):
    level: str
    drivers: List[str]
    suggestions: List[str]

    @field_validator("drivers", "suggestions")
    @classmethod
    def validate_lists(cls, v: List[str]) -> List[str]:
        return _non_blank(v)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Normalizes case; 'moderate' is what some models say for Medium."""
        normalized = v.strip().capitalize()
        if normalized == "Moderate":
            normalized = "Medium"
        if normalized not in {"Low", "Medium", "High", "Severe"}:
            raise ValueError(f"Unknown stress level '{v}'")
        return normalized


class RoadmapWeek(BaseModel):
    week: int = Field(ge=1)
    topics: List[str]
    activities: List[str]

    @field_validator("topics", "activities")
    @classmethod
    def validate_lists(cls, v: List[str]) -> List[str]:
        return _non_blank(v)


class RoadmapResult(BaseModel):
    # Providers prompted with the older template answer with "roadmap"
    weeks: List[RoadmapWeek] = Field(
        min_length=1,
        validation_alias=AliasChoices("weeks", "roadmap"),
    )
    mindmap: NonBlankStr


class ChatResult(BaseModel):
    answer: NonBlankStr


class SupportResult(BaseModel):
    response: NonBlankStr
    disclaimer: NonBlankStr = SUPPORT_DISCLAIMER


class ImageLabel(BaseModel):
    label: NonBlankStr
    score: float = Field(ge=0.0, le=1.0)


class ImageAnalysisResult(BaseModel):
    labels: List[ImageLabel] = Field(min_length=1)


StructuredResponse = Union[
    StudyStyleResult,
    StressResult,
    RoadmapResult,
    ChatResult,
    SupportResult,
    ImageAnalysisResult,
]

RESULT_MODELS = {
    FeatureType.STUDY_STYLE: StudyStyleResult,
    FeatureType.STRESS: StressResult,
    FeatureType.ROADMAP: RoadmapResult,
    FeatureType.CHAT: ChatResult,
    FeatureType.SUPPORT: SupportResult,
    FeatureType.IMAGE_ANALYZE: ImageAnalysisResult,
}
