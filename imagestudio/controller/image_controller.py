"""API routes for options, batched generation, streaming, and prompt enhancement."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse

from imagestudio.config.options import Options
from imagestudio.handlers.error_handler import ENHANCEMENT, MapExceptions
from imagestudio.models.generate import (
    EnhanceRequest,
    EnhanceResponse,
    ErrorCategory,
    GenerateResponse,
    GenerationRequest,
)
from imagestudio.services.enhance_service.enhancer import PromptEnhancer
from imagestudio.services.image_generation_service.generate import Generation
from imagestudio.services.image_generation_service.main import ImageGeneration as ig
from imagestudio.utility.logger import AppLogger

router = APIRouter(prefix="/api/image", tags=["Image"])
logger = AppLogger.get_logger(__name__)

CATEGORY_STATUS = {
    ErrorCategory.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCategory.NETWORK_UNREACHABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.SERVER_OVERLOADED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCategory.NOT_CONFIGURED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCategory.UNKNOWN: status.HTTP_502_BAD_GATEWAY,
}


@router.get("/options")
async def get_options(
    service: Options = Depends(ig.get_image_generation_options),
) -> dict[str, Any]:
    """Return the selectable values for the settings panel."""
    try:
        return service.get_options()
    except Exception as e:
        logger.error(f"Exception Occurred : {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        )


@router.post("/generate", response_model=GenerateResponse)
async def generate(
    payload: GenerationRequest,
    response: Response,
    service: Generation = Depends(ig.get_image_generation),
) -> GenerateResponse:
    """Generate every requested image; partial results survive a failed batch."""
    try:
        state = await service.generate(payload)
    finally:
        await service.aclose()

    if state.error is not None:
        code = CATEGORY_STATUS.get(state.error.category, status.HTTP_500_INTERNAL_SERVER_ERROR)
        response.status_code = code
        return GenerateResponse(
            status=code,
            message=state.error.message,
            images=state.images,
            error=state.error,
        )
    return GenerateResponse(
        status=200,
        message="Image generation successful",
        images=state.images,
    )


@router.post("/generate/stream")
async def generate_stream(
    payload: GenerationRequest,
    service: Generation = Depends(ig.get_image_generation),
):
    """Stream state snapshots so the client can render images batch by batch."""

    async def event_stream():
        try:
            async for chunk in service.generate_stream(payload):
                yield chunk
        finally:
            await service.aclose()

    return StreamingResponse(event_stream(), media_type="application/x-ndjson")


@router.post("/enhance", response_model=EnhanceResponse)
async def enhance(
    payload: EnhanceRequest,
    service: PromptEnhancer = Depends(ig.get_prompt_enhancer),
) -> EnhanceResponse:
    """Expand the prompt; failures come back categorised like generation errors."""
    try:
        enhanced = await service.enhance(payload.prompt)
    except Exception as e:
        raise MapExceptions().classify(e, ENHANCEMENT) from e
    return EnhanceResponse(prompt=enhanced)
