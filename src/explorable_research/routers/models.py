"""Model catalog router."""

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..dependencies import get_current_user_id
from ..llm.catalog import available_models, get_default_model

router = APIRouter(prefix="/v1", tags=["models"])


@router.get("/models")
async def list_models(
    _user_id: str = Depends(get_current_user_id),
    settings: Settings = Depends(get_settings),
) -> dict:
    """List the models a generation request may name."""
    models = [m.model_dump() for m in available_models()]
    return {
        "success": True,
        "models": models,
        "default_model": get_default_model(settings.default_model).id,
        "count": len(models),
    }
