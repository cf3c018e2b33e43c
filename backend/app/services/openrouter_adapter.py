"""
StudyGenie Backend — OpenRouter Chat-Completion Adapter
=========================================================

What:  Calls OpenRouter's OpenAI-compatible /chat/completions endpoint.
How:   One POST per candidate model, in configured order. The first model
       that answers wins; a failed call moves on to the next model.
Who:   Default first choice for study-style, stress, roadmap and support;
       second choice for chat.

Request shape:
    POST {openrouter_url}
    Authorization: Bearer <key>
    HTTP-Referer / X-Title: app attribution (site_url / site_name)
    {"model": ..., "messages": [{"role": ..., "content": ...}], "temperature": ...}
"""

import logging

from app.exceptions import ProviderCallError, ResponseShapeError
from app.services.http_adapter import HttpProviderAdapter
from app.services.provider_base import CallOptions, EndpointDescriptor, PromptSpec, extract_text

logger = logging.getLogger(__name__)


class OpenRouterAdapter(HttpProviderAdapter):
    """Chat-completion provider reached over HTTPS."""

    async def _call_endpoint(
        self, endpoint: EndpointDescriptor, prompt: PromptSpec, options: CallOptions
    ) -> str:
        if prompt.is_image or not prompt.messages:
            raise ProviderCallError("only text prompts are supported", provider=self.name)

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            **self.config.headers,
        }
        body = {
            "model": endpoint.model,
            "messages": [dict(message) for message in prompt.messages],
            "temperature": options.temperature,
        }

        payload = await self._post(endpoint.url, options.timeout, headers, json_body=body)

        found = extract_text(payload)
        if found is None:
            raise ResponseShapeError("no generated text in response envelope", provider=self.name)
        strategy, text = found
        logger.debug("%s text found via %s", self.name, strategy)
        return text
