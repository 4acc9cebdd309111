from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Any, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from src.dashboard.config import settings
from src.dashboard.domain.models.note import (
    AddPatientNoteParams,
    DeletePatientNoteParams,
    GetPatientNotesParams,
    Note,
    PatientNoteRecord,
)
from src.dashboard.domain.models.session import Session, require_session
from src.dashboard.domain.models.sync_policy import UpdatePolicy, update_policy
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.services.notifications.service import Notifier

logger = logging.getLogger("notes")

_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@lru_cache(maxsize=None)
def _display_zone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown DISPLAY_TIMEZONE %r; falling back to UTC", name)
        return timezone.utc


def format_note_timestamp(timestamp: str, tz_name: Optional[str] = None) -> str:
    """Format an ISO-8601 timestamp as e.g. ``January 2, 2024, 10:30 AM``.

    Month names and the 12-hour clock are fixed (en-US) regardless of the
    process locale. Naive and date-only values are read as UTC. Input that is
    not ISO-8601, or that overflows when shifted into the display zone, is
    returned unchanged.
    """

    try:
        text = timestamp.strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        local = value.astimezone(_display_zone(tz_name or settings.display_timezone))
    except (AttributeError, TypeError, ValueError, OverflowError):
        return str(timestamp)

    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{_MONTHS[local.month - 1]} {local.day}, {local.year}, {hour}:{local.minute:02d} {meridiem}"


class PatientNotesSync:
    """Owns the in-memory note list for one patient.

    ``notes`` is kept newest first: loads take the gateway's order as-is and
    new notes are prepended. Operations never raise for gateway failures; they
    leave local state untouched, record a notification and return ``False``.

    Responses are fenced: ``_epoch`` advances whenever the bound patient
    changes and ``_load_seq`` on every load, so a response that resolves after
    a newer request has started is dropped instead of overwriting fresher
    state.
    """

    def __init__(
        self,
        gateway: RemoteDataGateway,
        session: Session,
        notifier: Optional[Notifier] = None,
        *,
        patient_id: str = "",
    ) -> None:
        self._session = require_session(session)
        self._gateway = gateway
        self.notifier = notifier or Notifier()

        self.patient_id = patient_id
        self.notes: List[Note] = []
        self.is_loading = False
        self._saving_calls = 0

        self._epoch = 0
        self._load_seq = 0

    @classmethod
    async def mount(
        cls,
        gateway: RemoteDataGateway,
        session: Session,
        patient_id: str,
        notifier: Optional[Notifier] = None,
    ) -> "PatientNotesSync":
        """Create a module bound to ``patient_id`` and run its initial load."""

        sync = cls(gateway, session, notifier)
        await sync.set_patient_id(patient_id)
        return sync

    @property
    def is_saving(self) -> bool:
        return self._saving_calls > 0

    def _require_session(self) -> Session:
        return require_session(self._session)

    def _rebind(self, patient_id: str) -> None:
        self.patient_id = patient_id
        self.notes = []
        self._epoch += 1

    async def set_patient_id(self, patient_id: str) -> None:
        """Bind to another patient; loads when the new id is non-empty."""

        if patient_id == self.patient_id:
            return
        self._rebind(patient_id)
        if patient_id:
            await self.load()

    async def load(self, patient_id: Optional[str] = None) -> bool:
        session = self._require_session()
        patient_id = patient_id or self.patient_id
        if not patient_id:
            raise ValueError("patient_id is required to load notes")
        if patient_id != self.patient_id:
            self._rebind(patient_id)

        self._load_seq += 1
        ticket = self._load_seq
        epoch = self._epoch
        self.is_loading = True

        try:
            params = GetPatientNotesParams(p_patient_id=patient_id)
            data = await self._gateway.rpc(settings.notes_get_rpc, params.model_dump(), session=session)
            records = [PatientNoteRecord.model_validate(row) for row in (data or [])]
        except (GatewayError, ValidationError, TypeError) as exc:
            if self._is_current(ticket, epoch):
                logger.error("Error loading notes for patient %s: %s", patient_id, exc)
                self.notifier.failure("Failed to load notes", "There was an error loading patient notes.")
            else:
                logger.info("Ignoring failed stale notes load for patient %s", patient_id)
            return False
        finally:
            if ticket == self._load_seq:
                self.is_loading = False

        if not self._is_current(ticket, epoch):
            logger.info("Discarding stale notes response for patient %s", patient_id)
            return False

        self.notes = [Note.from_record(record) for record in records]
        return True

    def _is_current(self, ticket: int, epoch: int) -> bool:
        return ticket == self._load_seq and epoch == self._epoch

    @update_policy(UpdatePolicy.CONFIRM_THEN_APPLY)
    async def add_note(self, content: str) -> bool:
        if not content or not content.strip():
            return False
        session = self._require_session()
        if not self.patient_id:
            raise ValueError("patient_id is required to add a note")

        patient_id = self.patient_id
        epoch = self._epoch
        self._saving_calls += 1
        try:
            params = AddPatientNoteParams(p_patient_id=patient_id, p_content=content)
            data = await self._gateway.rpc(settings.notes_add_rpc, params.model_dump(), session=session)
            record = _single_record(data)
            if record is None:
                raise GatewayError("Add note returned no data", operation=settings.notes_add_rpc)
            note = Note.from_record(PatientNoteRecord.model_validate(record))
        except (GatewayError, ValidationError) as exc:
            logger.error("Error saving note for patient %s: %s", patient_id, exc)
            self.notifier.failure("Failed to save note", "There was an error saving your note.")
            return False
        finally:
            self._saving_calls -= 1

        if epoch != self._epoch:
            logger.info("Note %s saved for patient %s after the view moved on", note.id, patient_id)
            return True

        self.notes = [note, *self.notes]
        self.notifier.success("Note saved", "Your note has been saved successfully.")
        return True

    @update_policy(UpdatePolicy.CONFIRM_THEN_APPLY)
    async def delete_note(self, note_id: str) -> bool:
        session = self._require_session()
        epoch = self._epoch

        try:
            params = DeletePatientNoteParams(p_note_id=note_id)
            await self._gateway.rpc(settings.notes_delete_rpc, params.model_dump(), session=session)
        except GatewayError as exc:
            logger.error("Error deleting note %s: %s", note_id, exc)
            self.notifier.failure("Failed to delete note", "There was an error deleting the note.")
            return False

        if epoch == self._epoch:
            self.notes = [note for note in self.notes if note.id != note_id]
        self.notifier.success("Note deleted", "The note has been deleted successfully.")
        return True

    def format_date(self, timestamp: str) -> str:
        return format_note_timestamp(timestamp)


def _single_record(data: Any) -> Optional[Any]:
    # Set-returning procedures come back as a one-element list.
    if isinstance(data, list):
        return data[0] if data else None
    return data or None
