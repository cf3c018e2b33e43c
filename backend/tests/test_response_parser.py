"""
StudyGenie Backend — Provider Output Parser Unit Tests
========================================================

What:  Tests for parse_response: fences, JSON inside prose, schema checks.
"""

import json

import pytest

from app.exceptions import ResponseShapeError
from app.schemas.ai import (
    SUPPORT_DISCLAIMER,
    ChatResult,
    FeatureType,
    ImageAnalysisResult,
    RoadmapResult,
    StressResult,
    SupportResult,
)
from app.services.response_parser import decode_json, parse_response, strip_code_fence

ROADMAP = {
    "weeks": [
        {"week": 1, "topics": ["Sets"], "activities": ["Read chapter 1"]},
        {"week": 2, "topics": ["Relations"], "activities": ["Problem set"]},
    ],
    "mindmap": "Sets underpin relations.",
}


class TestDecoding:
    """Tests for fence stripping and JSON recovery."""

    def test_strip_code_fence(self):
        """One surrounding fence, with or without a language tag, is removed."""
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fence("```\nplain\n```") == "plain"
        assert strip_code_fence("  no fence  ") == "no fence"

    def test_json_wrapped_in_prose(self):
        """The outermost object is recovered from surrounding prose."""
        text = 'Here is your plan:\n{"a": {"b": 2}}\nGood luck!'
        assert decode_json(text) == {"a": {"b": 2}}

    def test_array_wrapped_in_prose(self):
        assert decode_json('Labels: [{"label": "x", "score": 1}] done') == [{"label": "x", "score": 1}]

    def test_no_json_raises_value_error(self):
        """Plain prose has no JSON to recover."""
        with pytest.raises(ValueError):
            decode_json("I think you're a visual learner.")


class TestParseResponse:
    """Tests for turning provider text into feature results."""

    def test_roadmap_from_fenced_json(self):
        """A fenced roadmap decodes into weeks in order."""
        raw = f"```json\n{json.dumps(ROADMAP)}\n```"
        result = parse_response(FeatureType.ROADMAP, raw)

        assert isinstance(result, RoadmapResult)
        assert [w.week for w in result.weeks] == [1, 2]

    def test_roadmap_accepts_legacy_key(self):
        """Providers answering with 'roadmap' instead of 'weeks' are accepted."""
        legacy = {"roadmap": ROADMAP["weeks"], "mindmap": ROADMAP["mindmap"]}
        result = parse_response(FeatureType.ROADMAP, json.dumps(legacy))
        assert len(result.weeks) == 2

    def test_stress_level_is_normalized(self):
        """'moderate' becomes Medium."""
        raw = json.dumps({"level": "moderate", "drivers": ["Exams"], "suggestions": ["Sleep"]})
        result = parse_response(FeatureType.STRESS, raw)

        assert isinstance(result, StressResult)
        assert result.level == "Medium"

    def test_image_label_list_is_wrapped(self):
        """A bare label list is read as the labels field."""
        raw = json.dumps([{"label": "notebook", "score": 0.9}, {"label": "pen", "score": 0.05}])
        result = parse_response(FeatureType.IMAGE_ANALYZE, raw)

        assert isinstance(result, ImageAnalysisResult)
        assert result.labels[0].label == "notebook"

    def test_chat_text_is_the_answer(self):
        """Chat text is trimmed and used as the answer."""
        result = parse_response(FeatureType.CHAT, "  Spaced repetition works well.  ")
        assert result == ChatResult(answer="Spaced repetition works well.")

    def test_support_gets_disclaimer(self):
        """Support text always carries the fixed disclaimer."""
        result = parse_response(FeatureType.SUPPORT, "You are not alone.")
        assert result == SupportResult(response="You are not alone.", disclaimer=SUPPORT_DISCLAIMER)

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_blank_text_is_a_shape_error(self, raw):
        """Empty or missing text is never a usable answer."""
        with pytest.raises(ResponseShapeError):
            parse_response(FeatureType.CHAT, raw, provider="gemini")

    def test_prose_for_json_feature_is_a_shape_error(self):
        """A JSON feature answered in prose is rejected and names the provider."""
        with pytest.raises(ResponseShapeError) as exc_info:
            parse_response(FeatureType.STUDY_STYLE, "You are a visual learner.", provider="openrouter")
        assert exc_info.value.provider == "openrouter"

    @pytest.mark.parametrize(
        "feature, payload",
        [
            (FeatureType.STUDY_STYLE, {"style": "Visual"}),
            (FeatureType.STRESS, {"level": "Extreme", "drivers": ["x"], "suggestions": ["y"]}),
            (FeatureType.ROADMAP, {"weeks": [], "mindmap": "empty"}),
            (FeatureType.IMAGE_ANALYZE, {"labels": [{"label": "x", "score": 7}]}),
        ],
    )
    def test_schema_mismatch_is_a_shape_error(self, feature, payload):
        """JSON that decodes but breaks the schema is rejected with its errors."""
        with pytest.raises(ResponseShapeError) as exc_info:
            parse_response(feature, json.dumps(payload))
        assert exc_info.value.context["errors"]

    @pytest.mark.parametrize("feature", [FeatureType.CHAT, FeatureType.SUPPORT])
    @pytest.mark.parametrize("raw", ["```\n```", "```json\n```", "```text\n   \n```"])
    def test_empty_code_block_is_a_shape_error(self, feature, raw):
        """A text reply that is only an empty fence is rejected, not wrapped."""
        with pytest.raises(ResponseShapeError) as exc_info:
            parse_response(feature, raw, provider="gemini")
        assert exc_info.value.provider == "gemini"

    @pytest.mark.parametrize(
        "feature, payload",
        [
            (FeatureType.STUDY_STYLE, {
                "style": "   ", "strengths": ["Focus"], "recommendations": ["Practice"], "summary": "  ",
            }),
            (FeatureType.ROADMAP, {
                "weeks": [{"week": 1, "topics": ["Sets"], "activities": ["Read"]}], "mindmap": "\n\t",
            }),
            (FeatureType.IMAGE_ANALYZE, [{"label": "  ", "score": 0.5}]),
        ],
    )
    def test_whitespace_only_fields_are_a_shape_error(self, feature, payload):
        """Required strings must carry text, not just whitespace."""
        with pytest.raises(ResponseShapeError):
            parse_response(feature, json.dumps(payload))

    def test_result_strings_are_trimmed(self):
        """Surrounding whitespace on accepted fields is dropped."""
        raw = json.dumps({
            "style": "  Visual  ",
            "strengths": ["Diagrams"],
            "recommendations": ["Mind maps"],
            "summary": " Pictures help. ",
        })
        result = parse_response(FeatureType.STUDY_STYLE, raw)

        assert result.style == "Visual"
        assert result.summary == "Pictures help."
