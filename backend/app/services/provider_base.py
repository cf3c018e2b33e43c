"""
StudyGenie Backend — Provider Adapter Interface
=================================================

What:  Abstract base class and value types shared by every external AI provider.
How:   Concrete adapters implement `_call_endpoint()` for one remote call.
       `invoke()` (implemented here, once) walks the adapter's ordered endpoint
       list, times and logs each attempt, and folds every outcome into a
       ProviderCallResult. Nothing raised by a concrete adapter escapes invoke().
Who:   ResilientInvoker calls invoke(); OpenRouterAdapter, GeminiAdapter and
       HuggingFaceImageAdapter subclass ProviderAdapter.

Endpoint fallback policy:
    ProviderCallError   (network, timeout, non-2xx, provider error)
        → log, try the next endpoint descriptor
    ResponseShapeError  (the call worked but the envelope carries no text)
        → stop; report failure without trying other endpoints
    ProviderUnavailable (no credential)
        → report failure before any network call
"""

import asyncio
import json
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from app.exceptions import ProviderCallError, ProviderUnavailableError, ResponseShapeError

logger = logging.getLogger(__name__)

# Less time than this left in a budget is not worth starting another call
MIN_ATTEMPT_SECONDS = 0.05


# ══════════════════════════════════════════════════════════════════════════
# Value types
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class EndpointDescriptor:
    """One candidate target for a logical provider: where to send, which model."""
    url: str = ""
    model: str = ""

    def describe(self) -> str:
        return self.model or self.url


@dataclass(frozen=True)
class ProviderConfig:
    """
    Immutable configuration for one adapter, resolved once at startup.

    Attributes:
        name:        Adapter name used in routing and logs
        api_key:     Credential; None marks the provider unavailable
        endpoints:   Candidate endpoints, tried in order
        timeout:     Seconds allowed for one invoke(), shared by all endpoints
        temperature: Default sampling temperature
        headers:     Extra static request headers
    """
    name: str
    api_key: Optional[str] = None
    endpoints: Tuple[EndpointDescriptor, ...] = ()
    timeout: float = 15.0
    temperature: float = 0.7
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return bool(self.api_key) and bool(self.endpoints)


@dataclass(frozen=True)
class CallOptions:
    """Per-call overrides; anything left as None falls back to ProviderConfig."""
    model: Optional[str] = None
    temperature: Optional[float] = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class PromptSpec:
    """
    Provider-neutral description of one request.

    Text features carry role-tagged messages; image analysis carries raw bytes.
    """
    messages: Tuple[Dict[str, str], ...] = ()
    image: Optional[bytes] = None
    content_type: Optional[str] = None

    @property
    def is_image(self) -> bool:
        return self.image is not None

    def as_text(self) -> str:
        """Flattens the messages into one prompt for single-string APIs."""
        return "\n\n".join(m["content"] for m in self.messages if m.get("content"))


@dataclass(frozen=True)
class ProviderCallResult:
    """Success(raw_text) or Failure(reason) for one adapter invocation."""
    provider: str
    ok: bool
    raw_text: Optional[str] = None
    reason: Optional[str] = None
    endpoint: Optional[str] = None

    @classmethod
    def success(cls, provider: str, raw_text: str, endpoint: Optional[str] = None) -> "ProviderCallResult":
        return cls(provider=provider, ok=True, raw_text=raw_text, endpoint=endpoint)

    @classmethod
    def failure(cls, provider: str, reason: str) -> "ProviderCallResult":
        return cls(provider=provider, ok=False, reason=reason)


# ══════════════════════════════════════════════════════════════════════════
# Response envelope extraction strategies
# ══════════════════════════════════════════════════════════════════════════
# Providers (and provider versions) disagree on where the generated text
# lives. Each strategy looks in one place; extract_text() tries them in order
# and returns the first non-blank string.

def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def _choices_message_content(payload: Any) -> Any:
    choice = _first(payload.get("choices")) if isinstance(payload, dict) else None
    message = choice.get("message") if isinstance(choice, dict) else None
    return message.get("content") if isinstance(message, dict) else None


def _choices_text(payload: Any) -> Any:
    choice = _first(payload.get("choices")) if isinstance(payload, dict) else None
    return choice.get("text") if isinstance(choice, dict) else None


def _message_content(payload: Any) -> Any:
    message = payload.get("message") if isinstance(payload, dict) else None
    return message.get("content") if isinstance(message, dict) else None


def _candidates_parts(payload: Any) -> Any:
    candidate = _first(payload.get("candidates")) if isinstance(payload, dict) else None
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return None
    texts = [p.get("text") for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
    return "".join(texts) if texts else None


def _output_text(payload: Any) -> Any:
    return payload.get("output_text") if isinstance(payload, dict) else None


def _top_level_text(payload: Any) -> Any:
    if not isinstance(payload, dict):
        return None
    for key in ("response", "text", "content"):
        if isinstance(payload.get(key), str):
            return payload[key]
    return None


EXTRACTION_STRATEGIES: Tuple[Tuple[str, Callable[[Any], Any]], ...] = (
    ("choices.message.content", _choices_message_content),
    ("choices.text", _choices_text),
    ("message.content", _message_content),
    ("candidates.content.parts", _candidates_parts),
    ("output_text", _output_text),
    ("top_level_text", _top_level_text),
)


def extract_text(payload: Any) -> Optional[Tuple[str, str]]:
    """
    Finds the generated text inside a decoded provider response.

    Returns:
        (strategy_name, text) for the first strategy yielding a non-blank
        string, or None when no strategy matches.
    """
    for name, strategy in EXTRACTION_STRATEGIES:
        value = strategy(payload)
        if isinstance(value, str) and value.strip():
            return name, value
    return None


def extract_error(payload: Any) -> Optional[str]:
    """Returns a provider-reported error message embedded in a 2xx body, if any."""
    if not isinstance(payload, dict) or "error" not in payload:
        return None
    error = payload["error"]
    if isinstance(error, dict):
        return str(error.get("message") or json.dumps(error)[:200])
    return str(error)


# ══════════════════════════════════════════════════════════════════════════
# Adapter base class
# ══════════════════════════════════════════════════════════════════════════

class ProviderAdapter(ABC):
    """
    Abstract wrapper around one external AI service.

    Contract:
        - invoke() never raises; it returns ProviderCallResult
        - an unavailable adapter fails immediately without network I/O
        - endpoints are tried sequentially in configuration order
        - no retries: one attempt per endpoint, all within one timeout budget
    """

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def available(self) -> bool:
        return self.config.available

    def resolve_options(self, options: Optional[CallOptions]) -> CallOptions:
        options = options or CallOptions()
        return CallOptions(
            model=options.model,
            temperature=(
                options.temperature if options.temperature is not None
                else self.config.temperature
            ),
            timeout=options.timeout if options.timeout is not None else self.config.timeout,
        )

    async def invoke(
        self, prompt: PromptSpec, options: Optional[CallOptions] = None
    ) -> ProviderCallResult:
        """
        Run one request against this provider.

        Args:
            prompt:  What to send (messages or image bytes)
            options: Model / temperature / timeout overrides

        Returns:
            ProviderCallResult.success with the raw text, or .failure with a
            human-readable reason. Never raises.
        """
        if not self.available:
            reason = ProviderUnavailableError(provider=self.name).message
            logger.debug("Skipping %s: %s", self.name, reason)
            return ProviderCallResult.failure(self.name, reason)

        opts = self.resolve_options(options)
        endpoints = self.config.endpoints
        if opts.model:
            # An explicit model override replaces the model list, keeps the URL
            endpoints = (EndpointDescriptor(url=endpoints[0].url, model=opts.model),)

        call_id = str(uuid.uuid4())[:8]
        reasons = []
        # One timeout budget covers the whole endpoint walk
        deadline = time.perf_counter() + opts.timeout

        for endpoint in endpoints:
            remaining = deadline - time.perf_counter()
            if remaining < MIN_ATTEMPT_SECONDS:
                reasons.append(f"{endpoint.describe()}: skipped, {opts.timeout:.1f}s budget used up")
                break

            start_time = time.perf_counter()
            logger.info("[%s] %s attempt started (%s)", call_id, self.name, endpoint.describe())
            try:
                raw_text = await asyncio.wait_for(
                    self._call_endpoint(endpoint, prompt, replace(opts, timeout=remaining)),
                    timeout=remaining,
                )
            except asyncio.TimeoutError:
                reasons.append(f"{endpoint.describe()}: timed out after {remaining:.1f}s")
            except ResponseShapeError as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.warning(
                    "[%s] %s returned an unreadable envelope after %.0fms: %s",
                    call_id, self.name, duration_ms, e.message,
                )
                return ProviderCallResult.failure(self.name, e.message)
            except ProviderCallError as e:
                reasons.append(f"{endpoint.describe()}: {e.message}")
            except Exception as e:
                # SDK-specific errors that the adapter did not translate
                reasons.append(f"{endpoint.describe()}: {type(e).__name__}: {e}")
            else:
                duration_ms = (time.perf_counter() - start_time) * 1000
                logger.info(
                    "[%s] %s succeeded in %.0fms (%s, %d chars)",
                    call_id, self.name, duration_ms, endpoint.describe(), len(raw_text),
                )
                return ProviderCallResult.success(self.name, raw_text, endpoint.describe())

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.warning(
                "[%s] %s failed after %.0fms: %s",
                call_id, self.name, duration_ms, reasons[-1],
            )

        return ProviderCallResult.failure(self.name, "; ".join(reasons) or "no endpoints configured")

    @abstractmethod
    async def _call_endpoint(
        self, endpoint: EndpointDescriptor, prompt: PromptSpec, options: CallOptions
    ) -> str:
        """
        Make exactly one remote call.

        Returns:
            The generated text (non-blank).

        Raises:
            ProviderCallError: the call itself failed (move on to the next endpoint)
            ResponseShapeError: the call worked but no text could be extracted
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Called once at application shutdown."""
        return None
