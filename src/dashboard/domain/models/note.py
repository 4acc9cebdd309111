from __future__ import annotations

from pydantic import BaseModel


class Note(BaseModel):
    """Client-side view of a patient note.

    ``id`` and ``timestamp`` are assigned by the gateway when the note is
    created and never change afterwards.
    """

    id: str
    content: str
    timestamp: str

    @classmethod
    def from_record(cls, record: "PatientNoteRecord") -> "Note":
        return cls(id=record.id, content=record.content, timestamp=record.created_at)


class PatientNoteRecord(BaseModel):
    """Row shape returned by the note remote procedures."""

    id: str
    patient_id: str
    user_id: str
    content: str
    created_at: str


class GetPatientNotesParams(BaseModel):
    p_patient_id: str


class AddPatientNoteParams(BaseModel):
    p_patient_id: str
    p_content: str


class DeletePatientNoteParams(BaseModel):
    p_note_id: str
