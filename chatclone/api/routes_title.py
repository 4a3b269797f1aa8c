import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from ..conversation.titles import request_title
from ..errors import ChatCloneError, RemoteFailure
from ..llm.base import LLMProvider
from ..llm.builder_provider import get_provider

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generate-title", tags=["title"])


class TitleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_message: str = Field(default="", alias="firstMessage")
    api_token: str = Field(default="", alias="apiToken")


@router.post("")
async def generate_title(req: TitleRequest, provider: LLMProvider = Depends(get_provider)):
    try:
        title = await request_title(req.first_message, req.api_token, provider)
    except RemoteFailure as e:
        logger.error("Title generation error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate title")
    except ChatCloneError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {"title": title}
