"""
StudyGenie Backend — Google Gemini Adapter
============================================

What:  Alternate-model provider using the Google Generative AI SDK.
How:   One `generate_content_async` call per candidate model, in configured
       order, each bounded by the provider timeout (SDK request timeout plus an
       asyncio guard). The response is converted to a dict and read with the
       shared extraction strategies.
Who:   Default first choice for NOVA chat; fallback for the other text features.

SDK configuration:
    genai.configure() is called once, when the adapter is built at startup,
    and only when a key is configured. With no key the adapter is unavailable
    and never touches the SDK.

    configure() sets the SDK's process-wide credential, so one process
    supports exactly one Gemini key. build_invoker() creates a single
    GeminiAdapter from GEMINI_API_KEY; a second adapter with another key
    would silently switch the first one over to it.
"""

import asyncio
import logging

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from app.exceptions import ProviderCallError, ResponseShapeError
from app.services.provider_base import (
    CallOptions,
    EndpointDescriptor,
    PromptSpec,
    ProviderAdapter,
    ProviderConfig,
    extract_text,
)

logger = logging.getLogger(__name__)


class GeminiAdapter(ProviderAdapter):
    """Gemini text generation behind the ProviderAdapter contract."""

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        if config.available:
            genai.configure(api_key=config.api_key)
            logger.info(
                "GeminiAdapter initialized with models=%s",
                [e.model for e in config.endpoints],
            )

    async def _call_endpoint(
        self, endpoint: EndpointDescriptor, prompt: PromptSpec, options: CallOptions
    ) -> str:
        if prompt.is_image or not prompt.messages:
            raise ProviderCallError("only text prompts are supported", provider=self.name)

        model = genai.GenerativeModel(
            endpoint.model,
            generation_config={"temperature": options.temperature},
        )

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(
                    prompt.as_text(),
                    request_options={"timeout": options.timeout},
                ),
                timeout=options.timeout,
            )
        except asyncio.TimeoutError:
            raise ProviderCallError(f"timed out after {options.timeout:.0f}s", provider=self.name)
        except google_exceptions.GoogleAPIError as e:
            raise ProviderCallError(f"{type(e).__name__}: {e}", provider=self.name)

        payload = response.to_dict()
        block_reason = (payload.get("prompt_feedback") or {}).get("block_reason")
        if block_reason and block_reason != "BLOCK_REASON_UNSPECIFIED":
            raise ProviderCallError(f"prompt blocked ({block_reason})", provider=self.name)

        found = extract_text(payload)
        if found is None:
            raise ResponseShapeError("no generated text in response candidates", provider=self.name)
        return found[1]
