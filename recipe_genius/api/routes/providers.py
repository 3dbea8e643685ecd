"""
Provider routes: API key verification and provider status.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import ai_rate_limit
from ..services.recipe_service import AsyncRecipeService, get_recipe_service

logger = logging.getLogger(__name__)

router = APIRouter()


class ApiKeyCheckRequest(BaseModel):
    """Request body for API key verification."""
    model_config = ConfigDict(populate_by_name=True)

    provider: Optional[str] = None
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    endpoint_id: Optional[str] = Field(default=None, alias="endpointId")


class ProviderStatusRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_keys: Optional[Dict[str, Any]] = Field(default=None, alias="apiKeys")


def get_service(request: Request) -> AsyncRecipeService:
    """Dependency to get the recipe service."""
    return get_recipe_service()


@router.post("/test-api-key", dependencies=[Depends(ai_rate_limit)])
async def check_api_key(
    body: ApiKeyCheckRequest,
    service: AsyncRecipeService = Depends(get_service),
):
    """
    Verify a provider key with a minimal live call.

    Never stores the key. Failures are 400 with the reason in `error`.
    """
    if not body.provider or not body.api_key:
        return JSONResponse(status_code=400, content={"success": False, "error": "缺少必要参数"})

    result = await service.verify_api_key(body.provider, body.api_key, body.endpoint_id)
    if not result["success"]:
        return JSONResponse(status_code=400, content=result)
    return result


@router.post("/provider-status")
async def provider_status(
    body: Optional[ProviderStatusRequest] = None,
    service: AsyncRecipeService = Depends(get_service),
):
    """Which providers are usable with the given (or server) keys."""
    api_keys = body.api_keys if body else None
    return {"success": True, "data": service.provider_status(api_keys)}
