"""
StudyGenie Backend — Resilient Invoker
========================================

What:  The single place where "live provider" versus "canned response" is
       decided for a feature call.
How:   Per call, a small state machine:

           NotAttempted
               │
               ▼
         ProviderAttempt(i) ──success + parse ok──▶ Success
               │
               │ call failed / parse failed / adapter raised / hard timeout
               ▼
         NextProvider ──more adapters──▶ ProviderAttempt(i+1)
               │
               │ none left (or none available)
               ▼
           AllFailed ──▶ MockResponseGenerator.generate()

Who:   StudyAssistantService.

Guarantees:
    - invoke() returns exactly one StructuredResponse and never raises
    - raw provider text that does not fit the feature schema never reaches the caller
    - no retries; each endpoint gets one attempt, and an adapter shares one
      timeout budget across its endpoints
    - the whole provider walk for one call ends within the largest adapter
      timeout plus HARD_TIMEOUT_GRACE; adapters left over are skipped
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from app.config import Settings, split_csv
from app.exceptions import ResponseShapeError
from app.schemas.ai import FeatureRequest, FeatureType, StructuredResponse
from app.services.gemini_adapter import GeminiAdapter
from app.services.huggingface_adapter import HuggingFaceImageAdapter
from app.services.mock_responses import MockResponseGenerator, mock_generator
from app.services.openrouter_adapter import OpenRouterAdapter
from app.services.provider_base import (
    CallOptions,
    MIN_ATTEMPT_SECONDS,
    EndpointDescriptor,
    PromptSpec,
    ProviderAdapter,
    ProviderCallResult,
    ProviderConfig,
)
from app.services.response_parser import parse_response

logger = logging.getLogger(__name__)

# Seconds added on top of the provider timeout before a feature call falls back
HARD_TIMEOUT_GRACE = 1.0

MOCK_SOURCE = "mock"


@dataclass
class InvocationOutcome:
    """
    What one feature call produced and how.

    Attributes:
        response: The StructuredResponse handed to the caller
        source:   Adapter name that produced it, or "mock"
        failures: "<provider>: <reason>" for every attempt that did not succeed
    """
    response: StructuredResponse
    source: str
    failures: List[str] = field(default_factory=list)

    @property
    def from_mock(self) -> bool:
        return self.source == MOCK_SOURCE


class ResilientInvoker:
    """
    Drives ProviderAdapters in priority order and falls back to canned responses.

    Args:
        adapters: Adapter name → adapter instance
        routes:   Feature type → ordered adapter names to try
        mock:     Fallback generator
    """

    def __init__(
        self,
        adapters: Mapping[str, ProviderAdapter],
        routes: Mapping[FeatureType, Sequence[str]],
        mock: Optional[MockResponseGenerator] = None,
    ):
        self.adapters = dict(adapters)
        self.routes = {feature: tuple(names) for feature, names in routes.items()}
        self.mock = mock or mock_generator

    def candidates(self, feature_type: FeatureType) -> List[ProviderAdapter]:
        """Adapters configured for a feature, in priority order."""
        return [
            self.adapters[name]
            for name in self.routes.get(feature_type, ())
            if name in self.adapters
        ]

    async def invoke(
        self,
        request: FeatureRequest,
        prompt: PromptSpec,
        options: Optional[CallOptions] = None,
    ) -> StructuredResponse:
        """Returns the StructuredResponse for one feature call. Never raises."""
        outcome = await self.invoke_detailed(request, prompt, options)
        return outcome.response

    async def invoke_detailed(
        self,
        request: FeatureRequest,
        prompt: PromptSpec,
        options: Optional[CallOptions] = None,
    ) -> InvocationOutcome:
        """Like invoke(), but also reports which source answered and what failed."""
        feature = request.feature_type
        failures: List[str] = []
        start_time = time.perf_counter()
        candidates = self.candidates(feature)
        deadline = start_time + self.request_budget(candidates, options)

        for adapter in candidates:
            if not adapter.available:
                failures.append(f"{adapter.name}: unavailable")
                continue

            remaining = deadline - time.perf_counter()
            if remaining < MIN_ATTEMPT_SECONDS:
                failures.append(f"{adapter.name}: skipped, request deadline reached")
                continue

            result = await self._attempt(adapter, prompt, options, remaining)
            if not result.ok:
                failures.append(f"{adapter.name}: {result.reason}")
                continue

            try:
                response = parse_response(feature, result.raw_text or "", provider=adapter.name)
            except ResponseShapeError as e:
                logger.warning(
                    "%s reply for %s rejected: %s", adapter.name, feature.value, e.message
                )
                failures.append(f"{adapter.name}: {e.message}")
                continue

            logger.info(
                "%s answered by %s in %.0fms",
                feature.value, adapter.name, (time.perf_counter() - start_time) * 1000,
            )
            return InvocationOutcome(response=response, source=adapter.name, failures=failures)

        response = self.mock.generate(feature, request.payload)
        if failures:
            logger.warning(
                "All providers failed for %s; using canned response (%s)",
                feature.value, " | ".join(failures),
            )
        else:
            logger.info("No providers routed for %s; using canned response", feature.value)
        return InvocationOutcome(response=response, source=MOCK_SOURCE, failures=failures)

    def request_budget(
        self, adapters: Sequence[ProviderAdapter], options: Optional[CallOptions]
    ) -> float:
        """Seconds one feature call may spend on providers before falling back."""
        timeouts = [
            adapter.resolve_options(options).timeout for adapter in adapters if adapter.available
        ]
        return max(timeouts, default=0.0) + HARD_TIMEOUT_GRACE

    async def _attempt(
        self,
        adapter: ProviderAdapter,
        prompt: PromptSpec,
        options: Optional[CallOptions],
        budget: float,
    ) -> ProviderCallResult:
        """One adapter call, cut off after `budget` seconds, with no exception leakage."""
        try:
            return await asyncio.wait_for(adapter.invoke(prompt, options), timeout=budget)
        except asyncio.TimeoutError:
            reason = f"no reply within {budget:.1f}s"
        except Exception as e:
            logger.error("%s adapter raised unexpectedly: %s", adapter.name, e, exc_info=True)
            reason = f"{type(e).__name__}: {e}"
        return ProviderCallResult.failure(adapter.name, reason)

    async def aclose(self) -> None:
        """Closes every adapter's network resources."""
        for adapter in self.adapters.values():
            try:
                await adapter.aclose()
            except Exception as e:
                logger.warning("Failed to close %s adapter: %s", adapter.name, e)


# ══════════════════════════════════════════════════════════════════════════
# Construction from settings
# ══════════════════════════════════════════════════════════════════════════

def build_provider_configs(config: Settings) -> Dict[str, ProviderConfig]:
    """Resolves one immutable ProviderConfig per adapter name."""
    common = {"timeout": config.provider_timeout, "temperature": config.provider_temperature}
    return {
        "openrouter": ProviderConfig(
            name="openrouter",
            api_key=config.credential(config.openrouter_api_key),
            endpoints=tuple(
                EndpointDescriptor(url=config.openrouter_url, model=model)
                for model in split_csv(config.openrouter_models)
            ),
            headers={"HTTP-Referer": config.site_url, "X-Title": config.site_name},
            **common,
        ),
        "gemini": ProviderConfig(
            name="gemini",
            api_key=config.credential(config.gemini_api_key),
            endpoints=tuple(
                EndpointDescriptor(model=model) for model in split_csv(config.gemini_models)
            ),
            **common,
        ),
        "huggingface": ProviderConfig(
            name="huggingface",
            api_key=config.credential(config.hf_api_key),
            endpoints=tuple(
                EndpointDescriptor(url=url, model=url.rsplit("/models/", 1)[-1])
                for url in split_csv(config.hf_model_urls)
            ),
            **common,
        ),
    }


def build_routes(config: Settings) -> Dict[FeatureType, List[str]]:
    """Feature type → ordered adapter names, from the *_provider_order settings."""
    text_order = split_csv(config.text_provider_order)
    return {
        FeatureType.STUDY_STYLE: text_order,
        FeatureType.STRESS: text_order,
        FeatureType.ROADMAP: text_order,
        FeatureType.SUPPORT: text_order,
        FeatureType.CHAT: split_csv(config.chat_provider_order),
        FeatureType.IMAGE_ANALYZE: split_csv(config.image_provider_order),
    }


def build_invoker(config: Settings) -> ResilientInvoker:
    """
    What:  Builds the adapters and routing table once, at startup.
    Who:   app.services.assistant_service (module-level singleton).
    """
    configs = build_provider_configs(config)
    adapters: Dict[str, ProviderAdapter] = {
        "openrouter": OpenRouterAdapter(configs["openrouter"]),
        "gemini": GeminiAdapter(configs["gemini"]),
        "huggingface": HuggingFaceImageAdapter(configs["huggingface"]),
    }
    return ResilientInvoker(adapters, build_routes(config))
