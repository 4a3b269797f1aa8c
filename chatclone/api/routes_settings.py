from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..config import AVAILABLE_MODELS, api_base_url
from ..controller import ChatController, get_controller

router = APIRouter(prefix="/api/settings", tags=["settings"])


class TokenRequest(BaseModel):
    token: str


class ModelRequest(BaseModel):
    model: str


def _settings(controller: ChatController) -> dict:
    config = controller.config
    return {
        "has_token": bool(config.api_token),
        "selected_model": config.selected_model,
        "api_base_url": api_base_url(),
    }


@router.get("")
async def get_settings(controller: ChatController = Depends(get_controller)):
    return _settings(controller)


@router.put("/token")
async def update_token(req: TokenRequest, controller: ChatController = Depends(get_controller)):
    controller.set_api_token(req.token)
    return _settings(controller)


@router.put("/model")
async def update_model(req: ModelRequest, controller: ChatController = Depends(get_controller)):
    controller.set_model(req.model)
    return _settings(controller)


@router.get("/models")
async def list_models():
    return {"models": [m.model_dump() for m in AVAILABLE_MODELS]}
