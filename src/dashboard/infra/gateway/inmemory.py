from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional
from uuid import uuid4

from src.dashboard.config import settings
from src.dashboard.domain.models.session import Session
from src.dashboard.errors import GatewayError
from src.dashboard.infra.gateway.base import RemoteDataGateway


FunctionHandler = Callable[[Mapping[str, Any], Session], Any]
ProcedureHandler = Callable[[Mapping[str, Any], Session], Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid4())


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


class InMemoryGateway(RemoteDataGateway):
    """Process-local stand-in for the hosted backend.

    Implements the note remote procedures, generic table select/insert, a
    token-to-session map for auth, and a registry of remote functions. Used for
    local development (GATEWAY_BACKEND=memory) and tests.

    ``fail_on(operation)`` makes every call to that operation raise until
    ``clear_failures()``; operation names are procedure/function names,
    ``select:<table>``, ``insert:<table>`` and ``auth:user``.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._notes: Dict[str, Dict[str, Any]] = {}
        self._tables: Dict[str, List[Dict[str, Any]]] = {}
        self._tokens: Dict[str, Session] = {}
        self._failures: Dict[str, Exception] = {}
        self.calls: List[str] = []

        self._procedures: Dict[str, ProcedureHandler] = {
            settings.notes_get_rpc: self._get_patient_notes,
            settings.notes_add_rpc: self._add_patient_note,
            settings.notes_delete_rpc: self._delete_patient_note,
        }
        self._functions: Dict[str, FunctionHandler] = {
            settings.notes_provision_function: self._create_notes_table,
            settings.ai_function_name: self._demo_doctor_ai,
        }

    # -- test/dev helpers -------------------------------------------------

    def register_token(self, session: Session) -> None:
        self._tokens[session.access_token] = session

    def register_function(self, name: str, handler: FunctionHandler) -> None:
        self._functions[name] = handler

    def register_procedure(self, name: str, handler: ProcedureHandler) -> None:
        self._procedures[name] = handler

    def fail_on(self, operation: str, error: Optional[Exception] = None) -> None:
        self._failures[operation] = error or GatewayError(
            f"Simulated failure for {operation}", status_code=500, operation=operation
        )

    def clear_failures(self) -> None:
        self._failures.clear()

    def seed_note(
        self,
        *,
        patient_id: str,
        user_id: str,
        content: str,
        note_id: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> Dict[str, Any]:
        record = {
            "id": note_id or self._id_factory(),
            "patient_id": patient_id,
            "user_id": user_id,
            "content": content,
            "created_at": created_at or self._clock().isoformat(),
        }
        self._notes[record["id"]] = record
        return dict(record)

    def _check(self, operation: str) -> None:
        self.calls.append(operation)
        error = self._failures.get(operation)
        if error is not None:
            raise error

    # -- gateway interface ------------------------------------------------

    async def invoke(self, function_name: str, body: Optional[Mapping[str, Any]] = None, *, session: Session) -> Any:
        self._check(function_name)
        handler = self._functions.get(function_name)
        if handler is None:
            raise GatewayError(f"Function {function_name} not found", status_code=404, operation=function_name)
        return handler(dict(body or {}), session)

    async def rpc(self, procedure: str, params: Mapping[str, Any], *, session: Session) -> Any:
        self._check(procedure)
        handler = self._procedures.get(procedure)
        if handler is None:
            raise GatewayError(f"Procedure {procedure} not found", status_code=404, operation=procedure)
        return handler(params, session)

    async def select(
        self,
        table: str,
        *,
        session: Session,
        filters: Optional[Mapping[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        self._check(f"select:{table}")
        rows = [
            dict(row)
            for row in self._tables.get(table, [])
            if all(str(row.get(col)) == str(value) for col, value in (filters or {}).items())
        ]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by, "")), reverse=descending)
        return rows

    async def insert(self, table: str, row: Mapping[str, Any], *, session: Session) -> Dict[str, Any]:
        self._check(f"insert:{table}")
        stored = dict(row)
        stored.setdefault("id", self._id_factory())
        stored.setdefault("created_at", self._clock().isoformat())
        self._tables.setdefault(table, []).append(stored)
        return dict(stored)

    async def get_user(self, access_token: str) -> Session:
        self._check("auth:user")
        session = self._tokens.get(access_token)
        if session is None:
            raise GatewayError("Invalid access token", status_code=401, operation="auth:user")
        return session

    # -- remote procedures ------------------------------------------------

    def _get_patient_notes(self, params: Mapping[str, Any], session: Session) -> List[Dict[str, Any]]:
        patient_id = params["p_patient_id"]
        rows = [
            dict(n)
            for n in self._notes.values()
            if n["patient_id"] == patient_id and n["user_id"] == session.user_id
        ]
        rows.sort(key=lambda n: n["created_at"], reverse=True)
        return rows

    def _add_patient_note(self, params: Mapping[str, Any], session: Session) -> Dict[str, Any]:
        return self.seed_note(
            patient_id=params["p_patient_id"],
            user_id=session.user_id,
            content=params["p_content"],
        )

    def _delete_patient_note(self, params: Mapping[str, Any], session: Session) -> bool:
        note = self._notes.get(params["p_note_id"])
        if note is None or note["user_id"] != session.user_id:
            return False
        del self._notes[note["id"]]
        return True

    # -- remote functions -------------------------------------------------

    def _create_notes_table(self, body: Mapping[str, Any], session: Session) -> Dict[str, Any]:
        return {"success": True, "message": "Patient notes table created successfully"}

    def _find_patient_blob(self, patient_id: str, session: Session) -> Optional[Dict[str, Any]]:
        for row in self._tables.get(settings.patients_table, []):
            if row.get("user_id") != session.user_id:
                continue
            data = row.get("data")
            if isinstance(data, str):
                try:
                    data = json.loads(data)
                except ValueError:
                    continue
            if isinstance(data, dict) and (data.get("id") or row.get("id")) == patient_id:
                return data
        return None

    def _demo_doctor_ai(self, body: Mapping[str, Any], session: Session) -> Dict[str, Any]:
        """Very small, deterministic stand-in for the inference function.

        Looks for a couple of keywords in the question and answers from the
        stored patient blob so higher layers have stable output without any
        external model.
        """

        question = str(body.get("question") or "").lower()
        patient_id = body.get("patientId")
        if not patient_id:
            return {"answer": "Please select a patient to ask about their records."}

        patient = self._find_patient_blob(str(patient_id), session)
        if patient is None:
            return {"answer": f"I couldn't find a patient with ID {patient_id}."}

        name = f"{patient.get('firstName', '')} {patient.get('lastName', '')}".strip() or str(patient_id)
        vitals = patient.get("vitalSigns")
        if not isinstance(vitals, dict):
            vitals = {}

        if "blood pressure" in question:
            bp = vitals.get("bloodPressure")
            if bp:
                return {"answer": f"{name}'s blood pressure is {bp}."}
            return {"answer": f"No blood pressure reading is recorded for {name}."}
        if "medication" in question:
            meds = [
                str(m["name"]) for m in _as_list(patient.get("medications")) if isinstance(m, dict) and m.get("name")
            ]
            if meds:
                return {"answer": f"{name} is taking: {', '.join(meds)}."}
            return {"answer": f"{name} has no recorded medications."}
        if "allerg" in question:
            allergies = [str(a) for a in _as_list(patient.get("allergies")) if a]
            if allergies:
                return {"answer": f"{name} is allergic to: {', '.join(allergies)}."}
            return {"answer": f"{name} has no known allergies."}

        return {"answer": f"I don't have a specific answer about that for {name}."}
