"""
Ingredient recognition routes.

Recognition failures always carry fallback suggestions so the client can
switch to manual ingredient entry.
"""
import logging
import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ...config import MAX_IMAGE_MB, RECOGNITION_MAX_RETRIES, RECOGNITION_TIMEOUT_MS
from ...data.models import now_iso
from ...vision import (
    API_KEY_MISSING,
    API_NETWORK_ERROR,
    API_TIMEOUT,
    IMAGE_INVALID_FORMAT,
    PARSING_ERROR,
    classify_error,
    estimate_image_size_mb,
    generate_fallback_ingredients,
)
from ..dependencies import ai_rate_limit
from ..services.recipe_service import AsyncRecipeService, get_recipe_service

logger = logging.getLogger(__name__)

router = APIRouter()


class RecognizeOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_retries: Optional[int] = Field(default=None, alias="maxRetries")
    timeout: Optional[int] = None  # Milliseconds


class RecognizeIngredientsRequest(BaseModel):
    """Request body for image recognition."""
    model_config = ConfigDict(populate_by_name=True)

    image_data_url: Optional[str] = Field(default=None, alias="imageDataUrl")
    api_keys: Optional[Dict[str, Any]] = Field(default=None, alias="apiKeys")
    options: Optional[RecognizeOptions] = None


def get_service(request: Request) -> AsyncRecipeService:
    """Dependency to get the recipe service."""
    return get_recipe_service()


def map_recognition_error(error: Exception) -> tuple:
    """HTTP status and message for a final recognition failure."""
    message = str(error)
    error_type = getattr(error, "error_type", None) or classify_error(error)

    if "未配置" in message or "API密钥" in message or error_type == API_KEY_MISSING:
        return 400, "豆包API未配置，请在设置中配置API密钥"
    if "超时" in message or error_type == API_TIMEOUT:
        return 408, "识别超时，请重试或选择更小的图片"
    if "格式" in message or "解析" in message or error_type in (IMAGE_INVALID_FORMAT, PARSING_ERROR):
        return 400, "图片格式不支持或已损坏"
    if "网络" in message or "连接" in message or error_type == API_NETWORK_ERROR:
        return 503, "网络连接失败，请检查网络后重试"
    return 500, "食材识别失败，请重试"


@router.post("/recognize-ingredients", dependencies=[Depends(ai_rate_limit)])
async def recognize_ingredients(
    body: RecognizeIngredientsRequest,
    service: AsyncRecipeService = Depends(get_service),
):
    """
    Recognize ingredients in a base64 data-URL image.

    Returns:
        {success, data: {ingredients, confidence, description, suggestions?,
        categories?, processingTime}}
    """
    start_time = time.perf_counter()
    image_data_url = body.image_data_url

    if not image_data_url:
        return JSONResponse(status_code=400, content={"success": False, "error": "缺少图片数据"})

    if not image_data_url.startswith("data:image/"):
        return JSONResponse(status_code=400, content={"success": False, "error": "无效的图片格式"})

    size_mb = estimate_image_size_mb(image_data_url)
    if size_mb > MAX_IMAGE_MB:
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"图片过大，请选择小于{MAX_IMAGE_MB}MB的图片"},
        )

    options = body.options or RecognizeOptions()
    max_retries = options.max_retries or RECOGNITION_MAX_RETRIES
    timeout_ms = options.timeout or RECOGNITION_TIMEOUT_MS
    logger.info(f"Recognizing ingredients: {size_mb:.2f}MB, {max_retries} attempts, {timeout_ms}ms timeout")

    try:
        result = await service.recognize_ingredients(
            image_data_url,
            api_keys=body.api_keys,
            max_retries=max_retries,
            timeout_ms=timeout_ms,
        )
    except Exception as e:
        processing_time = int((time.perf_counter() - start_time) * 1000)
        logger.error(f"Ingredient recognition failed after {processing_time}ms: {e}")
        status_code, message = map_recognition_error(e)
        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "error": message,
                "message": f"处理时间: {processing_time}ms",
                "fallback": generate_fallback_ingredients(),
            },
        )

    processing_time = int((time.perf_counter() - start_time) * 1000)
    logger.info(f"Recognized {len(result['ingredients'])} ingredients in {processing_time}ms")
    return {"success": True, "data": {**result, "processingTime": processing_time}}


@router.get("/recognize-ingredients")
async def recognition_status(service: AsyncRecipeService = Depends(get_service)):
    """Connectivity check for the vision provider."""
    status = await service.vision_status()
    return {
        "status": "ok",
        "service": "ingredient-recognition",
        "timestamp": now_iso(),
        "doubaoVision": {
            "available": status["success"],
            "message": status["message"],
        },
    }
