from __future__ import annotations

from enum import Enum
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Number = Union[int, float]


class PatientStatus(str, Enum):
    STABLE = "stable"
    WARNING = "warning"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> Optional["PatientStatus"]:
        """Case-insensitive lookup; ``None`` for anything outside the three statuses."""

        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return None


class _CamelModel(BaseModel):
    # Patient blobs are stored with camelCase keys; unknown keys are carried
    # through untouched so a round trip never loses data.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        coerce_numbers_to_str=True,
    )


class ContactInfo(_CamelModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


class VitalSigns(_CamelModel):
    temperature: Optional[Number] = None
    heart_rate: Optional[Number] = None
    blood_pressure: Optional[str] = None
    respiratory_rate: Optional[Number] = None
    oxygen_saturation: Optional[Number] = None
    recorded_at: Optional[str] = None


class Condition(_CamelModel):
    name: Optional[str] = None
    diagnosed_date: Optional[str] = None
    status: Optional[str] = None  # active | resolved | chronic
    severity: Optional[str] = None  # mild | moderate | severe


class Medication(_CamelModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    prescribed_by: Optional[str] = None


class LabResult(_CamelModel):
    name: Optional[str] = None
    date: Optional[str] = None
    result: Optional[str] = None
    normal_range: Optional[str] = None
    status: Optional[str] = None  # normal | abnormal | critical


class Visit(_CamelModel):
    date: Optional[str] = None
    type: Optional[str] = None  # emergency | routine | follow-up | procedure
    provider: Optional[str] = None
    notes: Optional[str] = None


class Patient(_CamelModel):
    """Patient record as consumed by the dashboard.

    The directory treats the persisted blob as opaque: every field is optional
    and loosely typed, and ``status`` is any string. Only the three known
    statuses count towards :meth:`known_status`; anything else is kept as-is.
    An empty ``id`` is filled from the gateway row id on decode.
    """

    id: str = ""
    first_name: str = ""
    last_name: str = ""
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    mrn: Optional[str] = None
    photo: Optional[str] = None
    last_visit: Optional[str] = None
    status: str = PatientStatus.STABLE.value
    primary_doctor: Optional[str] = None
    contact_info: Optional[ContactInfo] = None
    vital_signs: Optional[VitalSigns] = None
    conditions: List[Condition] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)
    lab_results: List[LabResult] = Field(default_factory=list)
    visits: List[Visit] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def known_status(self) -> Optional[PatientStatus]:
        return PatientStatus.parse(self.status)
