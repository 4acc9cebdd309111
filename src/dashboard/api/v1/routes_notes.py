from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from src.dashboard.domain.models.note import Note
from src.dashboard.domain.models.notification import NotificationVariant
from src.dashboard.domain.models.session import Session
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.infra.gateway.bootstrap import get_gateway
from src.dashboard.presentation.notes import NotesPanelView, PatientNotesPanel
from src.dashboard.security import get_session
from src.dashboard.services.audit.service import audit_service
from src.dashboard.services.notes.service import PatientNotesSync


router = APIRouter(prefix="/patients/{patient_id}/notes", tags=["notes"])


class NoteCreateRequest(BaseModel):
    content: str


def _raise_on_failure(sync: PatientNotesSync) -> None:
    for notification in sync.notifier.drain():
        if notification.variant == NotificationVariant.DESTRUCTIVE:
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=notification.description)


@router.get("/", response_model=NotesPanelView)
async def list_notes(
    patient_id: str,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> NotesPanelView:
    sync = await PatientNotesSync.mount(gateway, session, patient_id)
    _raise_on_failure(sync)

    audit_service.log_event(
        action="list_notes",
        resource_type="patient_note",
        resource_id=patient_id,
        session=session,
        extra={"note_count": len(sync.notes)},
    )

    return PatientNotesPanel(sync).render()


@router.post("/", response_model=Note, status_code=status.HTTP_201_CREATED)
async def create_note(
    patient_id: str,
    payload: NoteCreateRequest,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> Note:
    if not payload.content.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Note content must not be empty",
        )

    sync = PatientNotesSync(gateway, session, patient_id=patient_id)
    saved = await sync.add_note(payload.content)
    _raise_on_failure(sync)
    if not saved:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="There was an error saving your note.")

    note = sync.notes[0]
    audit_service.log_event(
        action="create_note",
        resource_type="patient_note",
        resource_id=note.id,
        session=session,
        extra={"patient_id": patient_id},
    )

    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    patient_id: str,
    note_id: str,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> Response:
    sync = PatientNotesSync(gateway, session, patient_id=patient_id)
    await sync.delete_note(note_id)
    _raise_on_failure(sync)

    audit_service.log_event(
        action="delete_note",
        resource_type="patient_note",
        resource_id=note_id,
        session=session,
        extra={"patient_id": patient_id},
    )

    return Response(status_code=status.HTTP_204_NO_CONTENT)
