from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from ..controller import ChatController, get_controller
from ..conversation.models import ConversationSummary

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


class MessageRequest(BaseModel):
    content: str


def _state(controller: ChatController) -> dict:
    conv = controller.current_conversation
    return {
        "current_conversation_id": controller.current_conversation_id,
        "conversation": conv.model_dump() if conv else None,
    }


@router.get("")
async def list_conversations(controller: ChatController = Depends(get_controller)):
    summaries = [ConversationSummary.from_conversation(c) for c in controller.conversations]
    return {
        "conversations": [s.model_dump() for s in summaries],
        "current_conversation_id": controller.current_conversation_id,
    }


@router.post("")
async def create_conversation(controller: ChatController = Depends(get_controller)):
    conv = controller.new_conversation()
    return {"conversation": conv.model_dump()}


@router.get("/current")
async def get_current(controller: ChatController = Depends(get_controller)):
    return _state(controller)


@router.post("/messages")
async def send_message(req: MessageRequest, controller: ChatController = Depends(get_controller)):
    reply = await controller.send_message(req.content)
    return {"reply": reply.model_dump() if reply else None, **_state(controller)}


@router.put("/messages/{message_id}")
async def edit_message(
    message_id: str,
    req: MessageRequest,
    controller: ChatController = Depends(get_controller),
):
    reply = await controller.edit_message(message_id, req.content)
    return {"reply": reply.model_dump() if reply else None, **_state(controller)}


@router.get("/{conv_id}")
async def get_conversation(conv_id: str, controller: ChatController = Depends(get_controller)):
    conv = controller.get_conversation(conv_id)
    if not conv:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"conversation": conv.model_dump()}


@router.post("/{conv_id}/select")
async def select_conversation(conv_id: str, controller: ChatController = Depends(get_controller)):
    if not controller.select_conversation(conv_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return _state(controller)


@router.delete("/{conv_id}")
async def delete_conversation(conv_id: str, controller: ChatController = Depends(get_controller)):
    if controller.delete_conversation(conv_id):
        return {"status": "deleted", "current_conversation_id": controller.current_conversation_id}
    raise HTTPException(status_code=404, detail="Conversation not found")
