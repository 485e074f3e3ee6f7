"""
booking.py
Module for turning a confirmed recommendation into an unpaid appointment,
and for applying a payment that the external provider has verified.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

from .config import DEFAULT_CONSULTATION_FEE
from .database import utc_now
from .models import DoctorSnapshot, DoctorUnavailable

logger = logging.getLogger(__name__)

# Confirmed appointments are scheduled for the next day at this hour (UTC)
CONFIRMED_SLOT_HOUR = 16


@dataclass
class BookingResult:
    appointment_id: int
    doctor: DoctorSnapshot


def consultation_fee(doctor, default_fee=DEFAULT_CONSULTATION_FEE):
    fee = doctor.consultation_fee
    return fee if fee and fee > 0 else default_fee


def confirm_booking(doctor_id, owner_id, doctors, appointments, default_fee=DEFAULT_CONSULTATION_FEE):
    """Create a Pending, unpaid appointment for the recommended doctor.

    Raises DoctorUnavailable when the doctor id no longer resolves.
    """
    doctor = doctors.get_doctor(doctor_id)
    if doctor is None:
        raise DoctorUnavailable(f"Doctor with id {doctor_id} not found")

    fee = consultation_fee(doctor, default_fee)
    # placeholder date; the real slot is assigned when the payment is confirmed
    appointment_id = appointments.create(
        owner_id=owner_id,
        doctor_id=doctor.id,
        appointment_date=utc_now() + timedelta(days=1),
        amount=fee,
    )
    logger.info("Appointment %s created for owner %s with doctor %s", appointment_id, owner_id, doctor.id)

    snapshot = DoctorSnapshot(
        id=doctor.id,
        name=doctor.name,
        specialty=doctor.specialty or "",
        location=doctor.location or "",
        chamber=doctor.chamber or "",
        fee=fee,
    )
    return BookingResult(appointment_id=appointment_id, doctor=snapshot)


def next_day_slot(now=None):
    now = now or utc_now()
    day = now + timedelta(days=1)
    return day.replace(hour=CONFIRMED_SLOT_HOUR, minute=0, second=0, microsecond=0)


def confirm_payment(appointments, appointment_id, payment_reference, verifier, now=None):
    """Verify with the payment provider first, then mark the appointment paid.

    verifier(payment_reference) -> bool is the external provider check.
    Returns the appointment (unchanged when unverified), or None if it does not exist.
    """
    appointment = appointments.get(appointment_id)
    if appointment is None:
        return None
    if appointment.is_paid:
        return appointment
    if not payment_reference:
        return appointment

    try:
        verified = bool(verifier(payment_reference))
    except Exception as e:
        logger.warning("Payment verification failed for appointment %s: %s", appointment_id, e)
        verified = False

    if not verified:
        logger.info("Payment %s for appointment %s is not verified", payment_reference, appointment_id)
        return appointment

    return appointments.mark_paid(appointment_id, payment_reference, next_day_slot(now))
