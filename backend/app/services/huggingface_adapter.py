"""
StudyGenie Backend — Hugging Face Image-Labeling Adapter
==========================================================

What:  Sends raw image bytes to a Hugging Face Inference API image
       classification model and returns its label list as JSON text.
How:   Candidate model URLs are tried in order; a model that is still loading
       (HTTP 503 or an {"error": ...} body) counts as a call failure and the
       next model is tried.
Who:   The image-analyze feature.

Reply shape (per model):
    [{"label": "notebook", "score": 0.71}, {"label": "desk", "score": 0.12}, ...]
"""

import json

from app.exceptions import ProviderCallError, ResponseShapeError
from app.services.http_adapter import HttpProviderAdapter
from app.services.provider_base import CallOptions, EndpointDescriptor, PromptSpec


class HuggingFaceImageAdapter(HttpProviderAdapter):
    """Image classification provider reached over HTTPS."""

    async def _call_endpoint(
        self, endpoint: EndpointDescriptor, prompt: PromptSpec, options: CallOptions
    ) -> str:
        if not prompt.is_image:
            raise ProviderCallError("only image prompts are supported", provider=self.name)

        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/octet-stream",
            **self.config.headers,
        }
        payload = await self._post(endpoint.url, options.timeout, headers, content=prompt.image)

        # Label validation belongs to the invoker; only the envelope is checked here
        if isinstance(payload, list) or (isinstance(payload, dict) and "labels" in payload):
            return json.dumps(payload)
        raise ResponseShapeError("expected a label list", provider=self.name)
