from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.dashboard.domain.models.session import Session
from src.dashboard.domain.models.transcript import TranscriptEntry


class Conversation(BaseModel):
    """An assistant transcript owned by one user, optionally about one patient."""

    id: UUID
    created_at: datetime
    owner_id: str
    patient_id: Optional[str] = None
    entries: List[TranscriptEntry] = Field(default_factory=list)


class InMemoryConversationService:
    """Simple in-memory store for assistant conversations.

    Each conversation is only visible to the user that created it.
    """

    def __init__(self) -> None:
        self._conversations: Dict[UUID, Conversation] = {}

    def create_conversation(self, session: Session, patient_id: Optional[str] = None) -> Conversation:
        conversation = Conversation(
            id=uuid4(),
            created_at=datetime.now(timezone.utc),
            owner_id=session.user_id,
            patient_id=patient_id,
        )
        self._conversations[conversation.id] = conversation
        return conversation

    def get_conversation(self, conversation_id: UUID, session: Session) -> Optional[Conversation]:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            return None
        if conversation.owner_id != session.user_id:
            return None
        return conversation


conversation_service = InMemoryConversationService()
