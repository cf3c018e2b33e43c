"""
StudyGenie Backend — Provider Output Parser
=============================================

What:  Converts raw provider text into the feature's StructuredResponse.
How:   JSON features: strip Markdown code fences, decode JSON (falling back to
       the outermost {...} or [...] span when the model wrapped it in prose),
       then validate with the feature's pydantic model. Text features: any
       non-blank text becomes the answer.
Who:   ResilientInvoker, for every successful ProviderCallResult.

Every problem surfaces as ResponseShapeError; the invoker treats that exactly
like a failed call.
"""

import json
import re
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from app.exceptions import ResponseShapeError
from app.schemas.ai import (
    RESULT_MODELS,
    SUPPORT_DISCLAIMER,
    ChatResult,
    FeatureType,
    StructuredResponse,
    SupportResult,
)

_FENCE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)

TEXT_FEATURES = {FeatureType.CHAT, FeatureType.SUPPORT}


def strip_code_fence(text: str) -> str:
    """Removes one surrounding ```json ... ``` fence, if present."""
    text = text.strip()
    match = _FENCE.match(text)
    return match.group(1).strip() if match else text


def decode_json(text: str) -> Any:
    """
    Decodes JSON from model output.

    Raises:
        ValueError: no JSON document could be found
    """
    body = strip_code_fence(text)
    try:
        return json.loads(body)
    except ValueError:
        pass

    # Model wrapped the JSON in prose; try the outermost object, then array
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = body.find(opener), body.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(body[start:end + 1])
            except ValueError:
                continue
    raise ValueError("no JSON document found in provider output")


def parse_response(feature_type: FeatureType, raw_text: str, provider: str = "unknown") -> StructuredResponse:
    """
    Args:
        feature_type: Which schema the text must satisfy
        raw_text:     Text returned by a ProviderAdapter
        provider:     Adapter name, for error context

    Returns:
        The validated StructuredResponse.

    Raises:
        ResponseShapeError: blank text, undecodable JSON, or schema mismatch
    """
    if not raw_text or not raw_text.strip():
        raise ResponseShapeError("provider returned empty text", provider=provider)

    if feature_type in TEXT_FEATURES:
        text = strip_code_fence(raw_text)
        if not text:
            raise ResponseShapeError("provider returned an empty code block", provider=provider)
        try:
            if feature_type == FeatureType.SUPPORT:
                return SupportResult(response=text, disclaimer=SUPPORT_DISCLAIMER)
            return ChatResult(answer=text)
        except PydanticValidationError as e:
            raise ResponseShapeError(
                f"{feature_type.value} reply is not usable text",
                provider=provider,
                context={"errors": e.errors(include_url=False)[:5]},
            )

    try:
        data = decode_json(raw_text)
    except ValueError as e:
        raise ResponseShapeError(str(e), provider=provider)

    if feature_type == FeatureType.IMAGE_ANALYZE and isinstance(data, list):
        data = {"labels": data}

    model = RESULT_MODELS[feature_type]
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ResponseShapeError(
            f"{feature_type.value} reply does not match schema ({e.error_count()} errors)",
            provider=provider,
            context={"errors": e.errors(include_url=False)[:5]},
        )
