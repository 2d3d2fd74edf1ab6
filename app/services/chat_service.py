from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.config import get_settings
from app.db.models import ChatConversation, ChatMessage, Document, User
from app.models.schemas import ChatResponse
from app.services.document_service import DocumentNotFoundError
from app.services.llm_client import complete

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "I'm sorry, I couldn't process your question."

SYSTEM_PROMPT = (
    "You are a helpful AI civic assistant helping residents understand government documents. "
    "Always be helpful, accurate, and focused on civic engagement."
)


class ConversationNotFoundError(ValueError):
    pass


def build_prompt(title: str, content: str, zip_code: str | None, interests: list[str], message: str) -> str:
    area = zip_code or "their area"
    topics = ", ".join(interests) if interests else "general community matters"
    return (
        f"Document Title: {title}\n"
        f"Document Content: {content}\n\n"
        "User Profile:\n"
        f"- ZIP Code: {zip_code or 'unknown'}\n"
        f"- Interests: {topics}\n\n"
        "Instructions:\n"
        "1. Answer questions about the document in plain English\n"
        f"2. Focus on how the content affects residents in {area}\n"
        f"3. Highlight information relevant to their interests: {topics}\n"
        "4. Cite specific parts of the document when possible\n"
        "5. Suggest actionable steps when appropriate\n"
        "6. Keep responses concise but informative\n\n"
        f"User Question: {message}\n\n"
        "Please provide a helpful response:"
    )


def extract_sources(reply: str, title: str) -> list[str]:
    """The document title counts as a source when the reply refers back to it."""
    lowered = reply.lower()
    if "document" in lowered or "proposal" in lowered:
        return [title]
    return []


def start_conversation(db: Session, user: User, doc_id: str) -> ChatConversation:
    try:
        doc_uuid = uuid.UUID(doc_id)
    except ValueError as exc:
        raise DocumentNotFoundError("Document not found") from exc

    doc = db.execute(select(Document).where(Document.id == doc_uuid, Document.user_id == user.id)).scalar_one_or_none()
    if not doc:
        raise DocumentNotFoundError("Document not found")

    conversation = ChatConversation(id=uuid.uuid4(), document_id=doc.id, user_id=user.id)
    db.add(conversation)
    db.commit()
    logger.info("chat.started", extra={"conversation_id": str(conversation.id), "doc_id": doc_id})
    return conversation


def _load_conversation(db: Session, user: User, conversation_id: str) -> ChatConversation:
    try:
        conv_uuid = uuid.UUID(conversation_id)
    except ValueError as exc:
        raise ConversationNotFoundError("Conversation not found") from exc

    conversation = db.execute(
        select(ChatConversation).where(ChatConversation.id == conv_uuid, ChatConversation.user_id == user.id)
    ).scalar_one_or_none()
    if not conversation:
        raise ConversationNotFoundError("Conversation not found")
    return conversation


def send_message(db: Session, user: User, conversation_id: str, message: str) -> ChatResponse:
    conversation = _load_conversation(db, user, conversation_id)
    doc = conversation.document

    settings = get_settings()
    prompt = build_prompt(
        title=doc.title,
        content=doc.content[: settings.chat_context_char_limit],
        zip_code=user.zip_code or doc.zip_code,
        interests=list(user.interests or doc.interests or []),
        message=message,
    )
    reply = complete(SYSTEM_PROMPT, prompt, temperature=0.3).strip() or FALLBACK_REPLY
    sources = extract_sources(reply, doc.title)

    next_position = db.execute(
        select(func.count()).select_from(ChatMessage).where(ChatMessage.conversation_id == conversation.id)
    ).scalar_one()
    db.add(ChatMessage(conversation_id=conversation.id, position=next_position, role="user", content=message, sources=[]))
    db.add(
        ChatMessage(
            conversation_id=conversation.id,
            position=next_position + 1,
            role="assistant",
            content=reply,
            sources=sources,
        )
    )
    db.commit()

    logger.info(
        "chat.message",
        extra={"conversation_id": conversation_id, "doc_id": str(doc.id), "reply_chars": len(reply)},
    )
    return ChatResponse(response=reply, sources=sources)
