"""
StudyGenie Backend — Feature Request Builder
==============================================

What:  Turns a FeatureRequest into a provider-neutral PromptSpec.
How:   Each JSON feature embeds its payload in a fixed template that spells out
       the exact JSON shape expected back (field names and types), so provider
       output can be validated against the feature schema. Chat adds a compact
       summary of the user's most recent interactions.
Who:   StudyAssistantService, right before ResilientInvoker.

Pure transformation: no I/O, and payloads are not re-validated here (the
request models already did that).
"""

import json
from typing import Any, Dict, Optional, Sequence

from app.schemas.ai import (
    FeatureRequest,
    FeatureType,
    ImagePayload,
    MessageRequest,
    RoadmapRequest,
    StressRequest,
    StudyStyleRequest,
)
from app.schemas.history import HistoryItem
from app.services.provider_base import PromptSpec

# Chat context: how many history entries, and how much of each prompt
CHAT_CONTEXT_ENTRIES = 3
CONTEXT_PROMPT_CHARS = 120

JSON_ONLY = "Respond with a single JSON object only, no Markdown and no commentary."

NOVA_SYSTEM = (
    "You are NOVA, a helpful AI study assistant for StudyGenie. You help students with "
    "their learning journey, provide study advice, answer academic questions, and offer "
    "motivational support. Keep answers conversational, encouraging and practical."
)

COACH_SYSTEM = (
    "You are a supportive AI coach for StudyGenie. Provide empathetic, encouraging "
    "support for students dealing with academic stress and challenges. You are not a "
    "medical professional and never give medical advice."
)

ANALYST_SYSTEM = (
    "You are StudyGenie's learning analyst. You always answer with valid JSON that "
    "matches the requested shape exactly."
)

STUDY_STYLE_TEMPLATE = """Analyze the following study style quiz answers and assess the student's learning style.
Answers are on a 1-5 scale (1 = strongly disagree, 5 = strongly agree), keyed by question id.

Quiz Answers: {answers}

Return JSON with exactly these fields:
{{
  "style": string,              // name of the learning style, e.g. "Visual Learner"
  "strengths": [string, ...],   // 3-5 learning strengths
  "recommendations": [string, ...],  // 5-7 practical study tips
  "summary": string             // 2-3 sentence overview
}}
{json_only}"""

STRESS_TEMPLATE = """Analyze the following stress assessment data and give personalized recommendations.

Lifestyle Data: {lifestyle}

Return JSON with exactly these fields:
{{
  "level": "Low" | "Medium" | "High" | "Severe",
  "drivers": [string, ...],      // main stress factors identified
  "suggestions": [string, ...]   // 4-7 specific, evidence-based stress management steps
}}
{json_only}"""

ROADMAP_TEMPLATE = """Create a personalized weekly study roadmap.

Course Information: {course_info}
Weekly Study Hours: {weekly_hours}
{details}
Return JSON with exactly these fields:
{{
  "weeks": [
    {{"week": integer starting at 1, "topics": [string, ...], "activities": [string, ...]}},
    ...
  ],
  "mindmap": string   // how the topics connect across the course
}}
Keep the plan realistic for the weekly hours available.
{json_only}"""

SUPPORT_TEMPLATE = """Student message: {message}

Reply in plain text (no JSON, no Markdown headings) in a warm, professionally supportive tone that:
1. Acknowledges their feelings
2. Offers practical support strategies
3. Encourages positive coping mechanisms
4. Maintains appropriate boundaries (not medical advice)"""


def _system(content: str) -> Dict[str, str]:
    return {"role": "system", "content": content}


def _user(content: str) -> Dict[str, str]:
    return {"role": "user", "content": content}


def _truncate(text: str, limit: int) -> str:
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def summarize_history(history: Optional[Sequence[HistoryItem]]) -> str:
    """
    Compact text summary of the most recent interactions (newest first).

    Example:
        User's recent activity:
        - stress: "{"lifestyle": {"sleepHours": "5"}}"
        - chat: "How do I revise for finals?"
    """
    recent = list(history or [])[:CHAT_CONTEXT_ENTRIES]
    if not recent:
        return "No recent activity available."

    lines = ["User's recent activity:"]
    for entry in recent:
        prompt = entry.prompt or {}
        if isinstance(prompt.get("message"), str):
            text = prompt["message"]
        else:
            text = json.dumps(prompt, sort_keys=True)
        lines.append(f'- {entry.feature_name}: "{_truncate(text, CONTEXT_PROMPT_CHARS)}"')
    return "\n".join(lines)


class FeatureRequestBuilder:
    """Builds one PromptSpec per FeatureRequest."""

    def build(
        self,
        feature_type: FeatureType,
        payload: Any,
        history_context: Optional[Sequence[HistoryItem]] = None,
    ) -> PromptSpec:
        """
        Args:
            feature_type:    Which template to use
            payload:         The validated request model for that feature
            history_context: Recent history, newest first (chat only)

        Returns:
            PromptSpec with system + user messages, or image bytes for image analysis.
        """
        if feature_type == FeatureType.IMAGE_ANALYZE:
            return self._image(payload)
        if feature_type == FeatureType.CHAT:
            return self._chat(payload, history_context)
        if feature_type == FeatureType.SUPPORT:
            return self._support(payload)
        if feature_type == FeatureType.STUDY_STYLE:
            return self._study_style(payload)
        if feature_type == FeatureType.STRESS:
            return self._stress(payload)
        if feature_type == FeatureType.ROADMAP:
            return self._roadmap(payload)
        raise ValueError(f"Unsupported feature type: {feature_type!r}")

    def build_request(
        self,
        request: FeatureRequest,
        history_context: Optional[Sequence[HistoryItem]] = None,
    ) -> PromptSpec:
        return self.build(request.feature_type, request.payload, history_context)

    def _study_style(self, payload: StudyStyleRequest) -> PromptSpec:
        content = STUDY_STYLE_TEMPLATE.format(
            answers=json.dumps(payload.answers, sort_keys=True),
            json_only=JSON_ONLY,
        )
        return PromptSpec(messages=(_system(ANALYST_SYSTEM), _user(content)))

    def _stress(self, payload: StressRequest) -> PromptSpec:
        content = STRESS_TEMPLATE.format(
            lifestyle=json.dumps(payload.lifestyle, sort_keys=True),
            json_only=JSON_ONLY,
        )
        return PromptSpec(messages=(_system(ANALYST_SYSTEM), _user(content)))

    def _roadmap(self, payload: RoadmapRequest) -> PromptSpec:
        details = "".join(f"{key}: {value}\n" for key, value in sorted(payload.details().items()))
        content = ROADMAP_TEMPLATE.format(
            course_info=payload.course_info,
            weekly_hours=f"{payload.weekly_hours:g}",
            details=details,
            json_only=JSON_ONLY,
        )
        return PromptSpec(messages=(_system(ANALYST_SYSTEM), _user(content)))

    def _chat(
        self, payload: MessageRequest, history_context: Optional[Sequence[HistoryItem]]
    ) -> PromptSpec:
        content = f"{summarize_history(history_context)}\n\nCurrent question: {payload.message}"
        return PromptSpec(messages=(_system(NOVA_SYSTEM), _user(content)))

    def _support(self, payload: MessageRequest) -> PromptSpec:
        content = SUPPORT_TEMPLATE.format(message=payload.message)
        return PromptSpec(messages=(_system(COACH_SYSTEM), _user(content)))

    def _image(self, payload: ImagePayload) -> PromptSpec:
        return PromptSpec(image=payload.content, content_type=payload.content_type)


prompt_builder = FeatureRequestBuilder()
