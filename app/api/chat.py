from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.models import User
from app.db.session import get_db
from app.models.schemas import ChatRequest, ChatResponse, ConversationRequest, ConversationResponse
from app.services import chat_service
from app.services.auth_dependencies import get_current_user
from app.services.document_service import DocumentNotFoundError

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("/conversations", response_model=ConversationResponse)
async def start_conversation(
    payload: ConversationRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ConversationResponse:
    try:
        conversation = chat_service.start_conversation(db=db, user=user, doc_id=payload.document_id)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return ConversationResponse(conversation_id=str(conversation.id), document_id=str(conversation.document_id))


@router.post("/conversations/{conversation_id}/messages", response_model=ChatResponse)
async def send_message(
    conversation_id: str,
    payload: ChatRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ChatResponse:
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message must not be empty")

    try:
        return chat_service.send_message(db=db, user=user, conversation_id=conversation_id, message=message)
    except chat_service.ConversationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
