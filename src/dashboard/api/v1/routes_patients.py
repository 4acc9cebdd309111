from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from src.dashboard.domain.models.patient import Patient, PatientStatus
from src.dashboard.domain.models.session import Session
from src.dashboard.infra.gateway.base import RemoteDataGateway
from src.dashboard.infra.gateway.bootstrap import get_gateway
from src.dashboard.security import get_session
from src.dashboard.services.audit.service import audit_service
from src.dashboard.services.patients.directory import PatientDirectory


router = APIRouter(prefix="/patients", tags=["patients"])


class PatientSummaryResponse(BaseModel):
    total: int
    critical: int
    warning: int
    stable: int


async def load_directory(gateway: RemoteDataGateway, session: Session) -> PatientDirectory:
    directory = PatientDirectory(gateway, session)
    if not await directory.load():
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="There was an error loading your patients.",
        )
    return directory


@router.get("/", response_model=List[Patient])
async def list_patients(
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> List[Patient]:
    directory = await load_directory(gateway, session)
    return directory.patients


@router.post("/", response_model=Patient, status_code=status.HTTP_201_CREATED)
async def create_patient(
    payload: Patient,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> Patient:
    directory = PatientDirectory(gateway, session)
    created = await directory.add_patient(payload)
    if created is None:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="There was an error saving the patient.",
        )

    audit_service.log_event(
        action="create_patient",
        resource_type="patient",
        resource_id=created.id,
        session=session,
    )

    return created


@router.get("/summary", response_model=PatientSummaryResponse)
async def patient_summary(
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> PatientSummaryResponse:
    directory = await load_directory(gateway, session)
    counts = directory.status_counts()
    return PatientSummaryResponse(
        total=len(directory.patients),
        critical=counts[PatientStatus.CRITICAL],
        warning=counts[PatientStatus.WARNING],
        stable=counts[PatientStatus.STABLE],
    )


@router.get("/{patient_id}", response_model=Patient)
async def get_patient(
    patient_id: str,
    session: Session = Depends(get_session),
    gateway: RemoteDataGateway = Depends(get_gateway),
) -> Patient:
    directory = await load_directory(gateway, session)
    patient = directory.get(patient_id)
    if patient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Patient not found")

    audit_service.log_event(
        action="view_patient",
        resource_type="patient",
        resource_id=patient_id,
        session=session,
    )

    return patient
