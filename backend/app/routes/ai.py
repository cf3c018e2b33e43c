"""
StudyGenie Backend — AI Feature Route Handlers
================================================

What:  The six /api/ai/* endpoints.
How:   Each handler wraps its validated body in a FeatureRequest and hands it
       to StudyAssistantService. Responses are always the feature's structured
       result, whether a live provider or the canned fallback produced it.
Who:   The StudyGenie frontend (quiz, stress check, GenieGuide, NOVA chat,
       support coach, image analysis).

Error responses (handled by global exception handlers):
    HTTP 400: Invalid image upload (ValidationError)
    HTTP 401: Missing X-User-ID (AuthenticationError)
    HTTP 422: Body does not match the request schema (FastAPI)
    HTTP 429: Rate limit exceeded (RateLimitMiddleware)
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db_session
from app.dependencies import get_assistant_service, get_current_user_id
from app.schemas.ai import (
    ChatResult,
    FeatureRequest,
    FeatureType,
    ImageAnalysisResult,
    MessageRequest,
    RoadmapRequest,
    RoadmapResult,
    StressRequest,
    StressResult,
    StudyStyleRequest,
    StudyStyleResult,
    SupportResult,
)
from app.schemas.history import ErrorResponse
from app.services.assistant_service import StudyAssistantService
from app.services.image_upload import image_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["AI Features"])

COMMON_RESPONSES = {
    401: {"description": "Missing X-User-ID header", "model": ErrorResponse},
    429: {"description": "Rate limit exceeded", "model": ErrorResponse},
}


@router.post(
    "/study-style",
    response_model=StudyStyleResult,
    responses=COMMON_RESPONSES,
    summary="Analyze study style quiz answers",
)
async def analyze_study_style(
    body: StudyStyleRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: StudyAssistantService = Depends(get_assistant_service),
):
    request = FeatureRequest(feature_type=FeatureType.STUDY_STYLE, payload=body)
    return await service.run(db, user_id, request)


@router.post(
    "/stress",
    response_model=StressResult,
    responses=COMMON_RESPONSES,
    summary="Assess stress from lifestyle survey",
)
async def analyze_stress(
    body: StressRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: StudyAssistantService = Depends(get_assistant_service),
):
    request = FeatureRequest(feature_type=FeatureType.STRESS, payload=body)
    return await service.run(db, user_id, request)


@router.post(
    "/genieguide",
    response_model=RoadmapResult,
    responses=COMMON_RESPONSES,
    summary="Generate a weekly study roadmap",
)
async def generate_roadmap(
    body: RoadmapRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: StudyAssistantService = Depends(get_assistant_service),
):
    request = FeatureRequest(feature_type=FeatureType.ROADMAP, payload=body)
    return await service.run(db, user_id, request)


@router.post(
    "/chat",
    response_model=ChatResult,
    responses=COMMON_RESPONSES,
    summary="Ask NOVA, the study assistant",
    description="Answers use the caller's most recent activity as context.",
)
async def chat(
    body: MessageRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: StudyAssistantService = Depends(get_assistant_service),
):
    request = FeatureRequest(feature_type=FeatureType.CHAT, payload=body)
    return await service.run(db, user_id, request)


@router.post(
    "/support",
    response_model=SupportResult,
    responses=COMMON_RESPONSES,
    summary="Talk to the support coach",
)
async def support(
    body: MessageRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: StudyAssistantService = Depends(get_assistant_service),
):
    request = FeatureRequest(feature_type=FeatureType.SUPPORT, payload=body)
    return await service.run(db, user_id, request)


@router.post(
    "/image-analyze",
    response_model=ImageAnalysisResult,
    responses={
        400: {"description": "Invalid image type or size", "model": ErrorResponse},
        **COMMON_RESPONSES,
    },
    summary="Label the contents of an image",
    description="Upload a PNG, JPG, JPEG, GIF or WEBP image (max 5MB).",
)
async def analyze_image(
    image: UploadFile = File(..., description="Image file (PNG, JPG, JPEG, GIF or WEBP, max 5MB)"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
    service: StudyAssistantService = Depends(get_assistant_service),
):
    try:
        image_upload_service.check_declared_size(image.size)
        # One byte past the cap is enough to know the upload is too large
        content = await image.read(image_upload_service.max_size + 1)
        payload = image_upload_service.validate(
            filename=image.filename,
            content_type=image.content_type,
            content=content,
        )
    finally:
        await image.close()

    request = FeatureRequest(feature_type=FeatureType.IMAGE_ANALYZE, payload=payload)
    return await service.run(db, user_id, request)
