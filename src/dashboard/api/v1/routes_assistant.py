from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.dashboard.domain.models.notification import Notification
from src.dashboard.domain.models.patient import Patient
from src.dashboard.domain.models.session import Session
from src.dashboard.domain.models.transcript import TranscriptEntry
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.infra.gateway.bootstrap import get_gateway
from src.dashboard.security import get_session
from src.dashboard.services.assistant.conversations import Conversation, conversation_service
from src.dashboard.services.assistant.service import DoctorAIAssistant
from src.dashboard.services.audit.service import audit_service
from src.dashboard.services.patients.directory import PatientDirectory


router = APIRouter(prefix="/assistant", tags=["assistant"])


class CreateConversationRequest(BaseModel):
    patient_id: Optional[str] = None


class AskRequest(BaseModel):
    question: str


class AskResponse(BaseModel):
    conversation: Conversation
    answer: Optional[TranscriptEntry] = None
    notifications: List[Notification] = []


def _get_owned_conversation(conversation_id: UUID, session: Session) -> Conversation:
    conversation = conversation_service.get_conversation(conversation_id, session)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


@router.post("/conversations", response_model=Conversation, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: CreateConversationRequest,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> Conversation:
    patient: Optional[Patient] = None
    if payload.patient_id:
        directory = PatientDirectory(gateway, session)
        if not await directory.load():
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="There was an error loading your patients.",
            )
        patient = directory.get(payload.patient_id)
        if patient is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    conversation = conversation_service.create_conversation(session, patient_id=payload.patient_id)
    # Seeds the greeting into the stored transcript.
    DoctorAIAssistant(gateway, session, patient=patient, transcript=conversation.entries)

    audit_service.log_event(
        action="create_conversation",
        resource_type="assistant_conversation",
        resource_id=str(conversation.id),
        session=session,
        extra={"has_patient": patient is not None},
    )

    return conversation


@router.get("/conversations/{conversation_id}", response_model=Conversation)
async def get_conversation(
    conversation_id: UUID,
    session: Session = Depends(get_session),
) -> Conversation:
    return _get_owned_conversation(conversation_id, session)


@router.post("/conversations/{conversation_id}/questions", response_model=AskResponse)
async def ask_question(
    conversation_id: UUID,
    payload: AskRequest,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> AskResponse:
    conversation = _get_owned_conversation(conversation_id, session)
    assistant = DoctorAIAssistant(gateway, session, transcript=conversation.entries)
    answer = await assistant.ask(payload.question, patient_id=conversation.patient_id)

    if answer is not None:
        audit_service.log_event(
            action="ask_assistant",
            resource_type="assistant_conversation",
            resource_id=str(conversation.id),
            session=session,
            extra={"failed": bool(assistant.notifier.notifications)},
        )

    return AskResponse(
        conversation=conversation,
        answer=answer,
        notifications=list(assistant.notifier.notifications),
    )
