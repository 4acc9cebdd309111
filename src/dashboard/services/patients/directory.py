from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from src.dashboard.config import settings
from src.dashboard.domain.models.patient import Patient, PatientStatus
from src.dashboard.domain.models.session import Session, require_session
from src.dashboard.domain.models.sync_policy import UpdatePolicy, update_policy
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.services.notifications.service import Notifier

logger = logging.getLogger("patients")


def encode_patient(patient: Patient) -> str:
    """Serialize a patient into the camelCase JSON blob stored per row."""

    return json.dumps(patient.model_dump(mode="json", by_alias=True, exclude_none=True))


def decode_patient(row: Mapping[str, Any]) -> Patient:
    """Decode a stored row into a :class:`Patient`.

    ``data`` may arrive as text or as an already-decoded JSON column. A blob
    without an ``id`` takes the gateway row id. The shape of the blob is not
    enforced: a top-level key whose value does not fit the model is left out
    of the decoded patient and logged. Raises ``ValueError`` only when the
    blob is not a JSON object.
    """

    data = row.get("data")
    if isinstance(data, str):
        data = json.loads(data)
    if not isinstance(data, dict):
        raise ValueError("patient blob is not a JSON object")

    data = dict(data)
    while True:
        if not data.get("id"):
            data["id"] = str(row.get("id", ""))
        try:
            return Patient.model_validate(data)
        except ValidationError as exc:
            rejected = {err["loc"][0] for err in exc.errors() if err["loc"]} & set(data)
            if not rejected:
                raise
            logger.warning(
                "Patient row %s: ignoring fields that do not fit the model: %s",
                row.get("id"),
                ", ".join(sorted(str(key) for key in rejected)),
            )
            for key in rejected:
                del data[key]


class PatientDirectory:
    """The signed-in clinician's patient list."""

    def __init__(
        self,
        gateway: RemoteDataGateway,
        session: Session,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self._session = require_session(session)
        self._gateway = gateway
        self.notifier = notifier or Notifier()
        self.patients: List[Patient] = []
        self.is_loading = False

    async def load(self) -> bool:
        session = require_session(self._session)
        self.is_loading = True
        try:
            rows = await self._gateway.select(
                settings.patients_table,
                session=session,
                filters={"user_id": session.user_id},
                order_by="created_at",
            )
        except GatewayError as exc:
            logger.error("Error loading patients: %s", exc)
            self.notifier.failure("Failed to load patients", "There was an error loading your patients.")
            return False
        finally:
            self.is_loading = False

        patients: List[Patient] = []
        for row in rows:
            try:
                patients.append(decode_patient(row))
            except (ValueError, ValidationError) as exc:
                # json.JSONDecodeError is a ValueError subclass.
                logger.warning("Skipping undecodable patient row %s: %s", row.get("id"), exc)
        self.patients = patients
        return True

    @update_policy(UpdatePolicy.CONFIRM_THEN_APPLY)
    async def add_patient(self, patient: Patient) -> Optional[Patient]:
        """Persist ``patient`` and append it once the gateway confirms.

        Returns the stored patient, or ``None`` on failure.
        """

        session = require_session(self._session)
        row = {"user_id": session.user_id, "data": encode_patient(patient)}
        try:
            stored = await self._gateway.insert(settings.patients_table, row, session=session)
            created = decode_patient(stored)
        except (GatewayError, ValueError, ValidationError) as exc:
            logger.error("Error adding patient: %s", exc)
            self.notifier.failure("Failed to add patient", "There was an error saving the patient.")
            return None

        self.patients = [*self.patients, created]
        self.notifier.success("Patient added", f"{created.full_name or created.id} has been added.")
        return created

    def get(self, patient_id: str) -> Optional[Patient]:
        for patient in self.patients:
            if patient.id == patient_id:
                return patient
        return None

    def status_counts(self) -> Dict[PatientStatus, int]:
        """Per-status totals; patients with any other status are not counted."""

        counts = {status: 0 for status in PatientStatus}
        for patient in self.patients:
            status = patient.known_status
            if status is not None:
                counts[status] += 1
        return counts
