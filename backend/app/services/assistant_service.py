"""
StudyGenie Backend — Study Assistant Service (Feature Orchestrator)
=====================================================================

What:  Runs one feature call end to end.
How:   Composes HistoryService, FeatureRequestBuilder and ResilientInvoker.
Who:   Every /api/ai/* route handler.

Orchestration Flow:
    ┌──────────┐   ┌────────────┐   ┌────────────┐   ┌──────────────┐   ┌──────────┐
    │ Request  │──▶│  History   │──▶│  Prompt    │──▶│  Resilient   │──▶│  Record  │
    │ (Route)  │   │ (chat only)│   │  Builder   │   │  Invoker     │   │  (DB)    │
    └──────────┘   └────────────┘   └────────────┘   └──────────────┘   └──────────┘

    The invoker never raises, and recording failures are logged, so once the
    payload has been validated the user always gets a structured response.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.schemas.ai import FeatureRequest, FeatureType, StructuredResponse
from app.services.history_service import HistoryService, history_service
from app.services.prompt_builder import FeatureRequestBuilder, prompt_builder
from app.services.resilient_invoker import ResilientInvoker, build_invoker

logger = logging.getLogger(__name__)


class StudyAssistantService:
    """
    Args:
        invoker:   Provider orchestration (built from settings when omitted)
        builder:   Prompt construction
        history:   History persistence
    """

    def __init__(
        self,
        invoker: Optional[ResilientInvoker] = None,
        builder: Optional[FeatureRequestBuilder] = None,
        history: Optional[HistoryService] = None,
    ):
        self.invoker = invoker or build_invoker(settings)
        self.builder = builder or prompt_builder
        self.history = history or history_service

    async def run(
        self, db: AsyncSession, user_id: str, request: FeatureRequest
    ) -> StructuredResponse:
        """
        Args:
            db:       Request-scoped session
            user_id:  Authenticated user
            request:  Validated feature request

        Returns:
            The feature's StructuredResponse (live or canned).
        """
        feature = request.feature_type

        history_context = None
        if feature == FeatureType.CHAT:
            history_context = await self.history.get_recent(
                db, user_id, limit=settings.history_context_limit
            )

        prompt = self.builder.build_request(request, history_context)
        outcome = await self.invoker.invoke_detailed(request, prompt)

        await self.history.record(
            db,
            user_id=user_id,
            feature_name=feature.value,
            prompt=request.history_payload(),
            response=outcome.response.model_dump(mode="json"),
        )

        logger.info("%s completed for user %s (source=%s)", feature.value, user_id, outcome.source)
        return outcome.response

    async def aclose(self) -> None:
        await self.invoker.aclose()


assistant_service = StudyAssistantService()
