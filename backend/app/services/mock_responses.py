"""
StudyGenie Backend — Canned Response Generator
================================================

What:  Deterministic, schema-complete stand-in responses for all six features.
How:   Static tables plus a small dispatcher. Chat and support messages are
       lowered and matched against keyword groups in a fixed precedence order;
       the first group that matches picks the canned text.
Who:   ResilientInvoker, whenever no provider produced a usable response
       (including the zero-credentials setup).

Guarantees:
    - pure: no I/O, no randomness, no clock
    - never raises for any feature type or input
    - returns a fresh model instance on every call, so callers can't mutate the tables
"""

from typing import Any, Dict, Optional, Tuple

from app.schemas.ai import (
    SUPPORT_DISCLAIMER,
    ChatResult,
    FeatureType,
    ImageAnalysisResult,
    RoadmapResult,
    StressResult,
    StructuredResponse,
    StudyStyleResult,
    SupportResult,
)

# ── Keyword precedence ────────────────────────────────────────────────────
# Order matters: "stress" beats "roadmap" when a message mentions both.
TOPIC_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("learning", ("study style", "learning")),
    ("stress", ("stress", "lifestyle")),
    ("roadmap", ("roadmap", "course")),
    ("support", ("support", "coach")),
)
DEFAULT_TOPIC = "general"


# ══════════════════════════════════════════════════════════════════════════
# Structured feature tables
# ══════════════════════════════════════════════════════════════════════════

STUDY_STYLE_FALLBACK: Dict[str, Any] = {
    "style": "Adaptive Visual-Kinesthetic Learner",
    "strengths": [
        "Visual processing",
        "Hands-on learning",
        "Pattern recognition",
        "Active engagement",
    ],
    "recommendations": [
        "Use mind maps and flowcharts for complex topics",
        "Take frequent breaks using the Pomodoro technique",
        "Practice with real-world examples and case studies",
        "Use color-coding and visual organization systems",
        "Engage in group discussions and peer learning",
    ],
    "summary": (
        "You learn best through visual aids and hands-on activities. Your adaptive "
        "learning style allows you to switch between different approaches based on "
        "the subject matter."
    ),
}

STRESS_FALLBACK: Dict[str, Any] = {
    "level": "Medium",
    "drivers": ["Academic pressure", "Time management", "Sleep quality"],
    "suggestions": [
        "Establish a consistent sleep schedule",
        "Practice deep breathing exercises",
        "Break large tasks into smaller steps",
        "Schedule regular physical activity",
    ],
}

ROADMAP_FALLBACK: Dict[str, Any] = {
    "weeks": [
        {
            "week": 1,
            "topics": ["Course Foundation", "Key Concepts"],
            "activities": [
                "Read introductory materials",
                "Complete diagnostic quiz",
                "Set learning goals",
            ],
        },
        {
            "week": 2,
            "topics": ["Core Principles", "Practical Applications"],
            "activities": ["Practice exercises", "Case study analysis", "Group discussions"],
        },
        {
            "week": 3,
            "topics": ["Advanced Topics", "Integration"],
            "activities": ["Research project", "Peer collaboration", "Expert interviews"],
        },
        {
            "week": 4,
            "topics": ["Mastery & Review", "Real-world Application"],
            "activities": ["Final project", "Comprehensive review", "Portfolio development"],
        },
    ],
    "mindmap": (
        "Core concepts form the foundation, branching into practical applications and "
        "advanced topics. Integration occurs through hands-on projects, leading to "
        "mastery and real-world application. Each element connects to reinforce "
        "learning and build comprehensive understanding."
    ),
}

IMAGE_FALLBACK: Dict[str, Any] = {
    "labels": [
        {"label": "notebook", "score": 0.62},
        {"label": "desk", "score": 0.21},
        {"label": "book jacket", "score": 0.09},
    ],
}


# ══════════════════════════════════════════════════════════════════════════
# Free-text tables (chat answers / support replies by topic)
# ══════════════════════════════════════════════════════════════════════════

CHAT_ANSWERS: Dict[str, str] = {
    "learning": (
        "Understanding your learning style is a great first step! Most students learn "
        "best with a mix of approaches: visual aids like mind maps and flowcharts, "
        "talking concepts through out loud, and hands-on practice with real examples. "
        "Try the Study Style Quiz to see which mix suits you, then build your notes "
        "and review sessions around it."
    ),
    "stress": (
        "It sounds like stress is on your mind. A few things reliably help: keep a "
        "consistent sleep schedule, break big tasks into small steps, schedule short "
        "breaks and some physical activity, and try a few minutes of deep breathing "
        "before you study. The Stress Check can give you a more personal picture of "
        "what is driving it."
    ),
    "roadmap": (
        "Let's plan it out! A good course roadmap starts with the foundations and key "
        "terminology in week one, moves to core principles and practice problems in "
        "week two, then applied work and projects, and finishes with a full review. "
        "Tell GenieGuide your course and weekly hours and it will lay out topics and "
        "activities for each week."
    ),
    "support": (
        "I'm glad you reached out. Asking for support is a sign of strength, not "
        "weakness. Take things one step at a time, and remember the Support Coach is "
        "here if you want to talk through what's weighing on you."
    ),
    "general": (
        "Thanks for your question! As your study assistant NOVA, I'd recommend "
        "approaching this systematically. Break down the topic into smaller, manageable "
        "parts and create a structured study plan. Use active recall techniques, spaced "
        "repetition, and connect new information to what you already know. Consider "
        "using visual aids like diagrams or mind maps, and don't forget to take regular "
        "breaks to maintain focus. Is there a specific aspect you'd like me to help you "
        "explore further?"
    ),
}

_DEFAULT_SUPPORT_REPLY = (
    "I hear you, and I want you to acknowledge that seeking support shows tremendous "
    "strength and self-awareness. Academic challenges can feel overwhelming, but "
    "remember that every successful person has faced similar struggles. Take things one "
    "step at a time, celebrate small victories, and be compassionate with yourself. "
    "Consider breaking down your goals into smaller, achievable steps, and don't "
    "hesitate to reach out to mentors, peers, or counselors when you need guidance. "
    "You've got this!"
)

SUPPORT_REPLIES: Dict[str, str] = {
    "learning": (
        "It's completely normal to feel frustrated when studying doesn't click. That "
        "usually means the method needs adjusting, not that you aren't capable. Try "
        "switching formats for a while: diagrams, explaining the idea aloud, or working "
        "through an example by hand. Be patient with yourself while you find what works."
    ),
    "stress": (
        "I understand you're going through a challenging time. Remember that it's "
        "completely normal to feel overwhelmed sometimes. Take things one step at a "
        "time, protect your sleep, and don't hesitate to reach out to friends, family, "
        "or counseling services when you need support. You're stronger than you think, "
        "and this difficult period will pass."
    ),
    "roadmap": (
        "Feeling behind in a course can be really discouraging, and it's okay to feel "
        "that way. Pick the single next topic you need, give it a short focused session "
        "today, and let that small win carry you into tomorrow. A clear weekly plan can "
        "make the whole course feel much more manageable."
    ),
    "support": _DEFAULT_SUPPORT_REPLY,
    "general": _DEFAULT_SUPPORT_REPLY,
}


def classify_topic(text: Optional[str]) -> str:
    """
    Picks the keyword group for a free-text message.

    Returns:
        The first topic in TOPIC_KEYWORDS whose keywords occur in the lowered
        text, or DEFAULT_TOPIC.
    """
    lowered = (text or "").lower()
    for topic, keywords in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return DEFAULT_TOPIC


class MockResponseGenerator:
    """Builds canned responses from the static tables above."""

    def generate(self, feature_type: FeatureType, inputs: Any = None) -> StructuredResponse:
        """
        Args:
            feature_type: Which feature's schema to produce
            inputs:       The feature payload (a request model) or a raw message
                          string; only chat and support look at it

        Returns:
            A schema-complete StructuredResponse for the feature.
        """
        if feature_type == FeatureType.STUDY_STYLE:
            return StudyStyleResult.model_validate(STUDY_STYLE_FALLBACK)
        if feature_type == FeatureType.STRESS:
            return StressResult.model_validate(STRESS_FALLBACK)
        if feature_type == FeatureType.ROADMAP:
            return RoadmapResult.model_validate(ROADMAP_FALLBACK)
        if feature_type == FeatureType.IMAGE_ANALYZE:
            return ImageAnalysisResult.model_validate(IMAGE_FALLBACK)

        topic = classify_topic(_message_text(inputs))
        if feature_type == FeatureType.SUPPORT:
            return SupportResult(response=SUPPORT_REPLIES[topic], disclaimer=SUPPORT_DISCLAIMER)
        return ChatResult(answer=CHAT_ANSWERS[topic])


def _message_text(inputs: Any) -> str:
    if isinstance(inputs, str):
        return inputs
    return getattr(inputs, "message", "") or ""


mock_generator = MockResponseGenerator()
