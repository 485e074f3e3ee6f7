"""
models.py
Reference entities (diseases, doctors), appointments, transcript messages and error types.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class DoctorKoiError(Exception):
    """Base error for the assistant."""


class LLMUnavailable(DoctorKoiError):
    """No LLM credential is configured."""


class LLMError(DoctorKoiError):
    """The LLM call failed or returned something unusable."""


class DoctorUnavailable(DoctorKoiError):
    """A stored doctor reference no longer resolves."""


class InvalidState(DoctorKoiError):
    """Stored conversation state could not be parsed."""


class AppointmentStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


@dataclass
class Disease:
    name: str
    description: Optional[str] = None
    specialist: Optional[str] = None
    id: Optional[int] = None
    # names of symptoms recorded as present for this disease
    symptoms: List[str] = field(default_factory=list)


@dataclass
class Doctor:
    id: int
    name: str
    specialty: Optional[str] = None
    location: Optional[str] = None
    chamber: Optional[str] = None
    experience: Optional[float] = None
    consultation_fee: Optional[float] = None
    education: Optional[str] = None
    concentration: Optional[str] = None


@dataclass
class DoctorSnapshot:
    id: int
    name: str
    specialty: str
    location: str
    chamber: str
    fee: float

    def as_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "specialty": self.specialty,
            "location": self.location,
            "chamber": self.chamber,
            "fee": self.fee,
        }


@dataclass
class Appointment:
    id: int
    owner_id: str
    doctor_id: int
    appointment_date: datetime
    created_at: datetime
    status: AppointmentStatus = AppointmentStatus.PENDING
    amount: float = 0.0
    is_paid: bool = False
    payment_reference: Optional[str] = None

    def as_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "doctor_id": self.doctor_id,
            "appointment_date": self.appointment_date.isoformat(),
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
            "amount": self.amount,
            "is_paid": self.is_paid,
            "payment_reference": self.payment_reference,
        }


@dataclass
class ChatMessage:
    owner_id: str
    message: str
    is_from_user: bool = True
    timestamp: Optional[datetime] = None
    detected_disease: Optional[str] = None
    recommended_doctor_id: Optional[int] = None
    id: Optional[int] = None
