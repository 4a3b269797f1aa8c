import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_MODEL
from ..errors import RemoteFailure
from ..llm.base import LLMProvider
from ..llm.builder_provider import get_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: Optional[list[ChatMessage]] = None
    api_token: str = Field(default="", alias="apiToken")
    model: Optional[str] = None


@router.post("")
async def chat(req: ChatRequest, provider: LLMProvider = Depends(get_provider)):
    if not req.api_token:
        raise HTTPException(status_code=401, detail="API token is required")
    if req.messages is None:
        raise HTTPException(status_code=400, detail="Messages array is required")

    messages = [m.model_dump() for m in req.messages]
    try:
        content = await provider.complete(messages, req.model or DEFAULT_MODEL, req.api_token)
    except RemoteFailure as e:
        logger.error("Chat API error: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return {"content": content}
