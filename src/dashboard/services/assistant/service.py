from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import uuid4

from src.dashboard.config import settings
from src.dashboard.domain.models.patient import Patient
from src.dashboard.domain.models.session import Session, require_session
from src.dashboard.domain.models.sync_policy import UpdatePolicy, update_policy
from src.dashboard.domain.models.transcript import Sender, TranscriptEntry
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.services.notifications.service import Notifier

logger = logging.getLogger("assistant")

FALLBACK_ANSWER = (
    "I'm sorry, I couldn't process your question. Please try again or rephrase your question."
)


def greeting_for(patient: Optional[Patient]) -> str:
    if patient is not None:
        return f"Ask me anything about {patient.full_name}'s medical information."
    return (
        "How can I help you today, doctor? You can ask me about patients, "
        "conditions, or other medical information."
    )


def _entry(text: str, sender: Sender) -> TranscriptEntry:
    return TranscriptEntry(id=str(uuid4()), text=text, sender=sender, timestamp=datetime.now(timezone.utc))


class DoctorAIAssistant:
    """Question/answer transcript backed by the remote inference function.

    The transcript is append-only. A question is shown as soon as it is asked;
    the answer (or a fixed fallback when the call fails) is appended when the
    call returns. Nothing is ever rolled back.

    ``transcript`` may be passed in to continue an existing conversation; the
    list is appended to in place.
    """

    def __init__(
        self,
        gateway: RemoteDataGateway,
        session: Session,
        notifier: Optional[Notifier] = None,
        *,
        patient: Optional[Patient] = None,
        transcript: Optional[List[TranscriptEntry]] = None,
    ) -> None:
        self._session = require_session(session)
        self._gateway = gateway
        self.notifier = notifier or Notifier()
        self.patient = patient
        self.is_loading = False

        if transcript is None:
            transcript = []
        if not transcript:
            transcript.append(_entry(greeting_for(patient), Sender.AI))
        self._entries = transcript

    @property
    def transcript(self) -> Tuple[TranscriptEntry, ...]:
        return tuple(self._entries)

    @update_policy(UpdatePolicy.APPLY_THEN_RECONCILE)
    async def ask(self, question: str, patient_id: Optional[str] = None) -> Optional[TranscriptEntry]:
        """Ask a question; returns the appended ``ai`` entry, or ``None`` for blank input."""

        if not question or not question.strip():
            return None
        session = require_session(self._session)
        if patient_id is None and self.patient is not None:
            patient_id = self.patient.id

        self._entries.append(_entry(question, Sender.USER))
        self.is_loading = True
        try:
            data = await self._gateway.invoke(
                settings.ai_function_name,
                {"question": question, "patientId": patient_id},
                session=session,
            )
            answer = data.get("answer") if isinstance(data, dict) else None
            if not isinstance(answer, str):
                raise GatewayError("Inference response has no answer", operation=settings.ai_function_name)
        except GatewayError as exc:
            logger.error("Error querying AI: %s", exc)
            self.notifier.failure("Error", "Could not get an answer at this time. Please try again.")
            answer = FALLBACK_ANSWER
        finally:
            self.is_loading = False

        reply = _entry(answer, Sender.AI)
        self._entries.append(reply)
        return reply
