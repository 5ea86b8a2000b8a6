from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from dependencies import get_appointments, get_current_user
from errors import RecordNotFound
from routers.common import apply_update, get_or_404, item_response, list_response, page_response
from schemas import AppointmentCreate, AppointmentStatusUpdate, AppointmentUpdate
from stores import AppointmentStore

router = APIRouter(
    prefix="/api/appointments",
    tags=["Appointments"],
    dependencies=[Depends(get_current_user)],
)

Appointments = Annotated[AppointmentStore, Depends(get_appointments)]


@router.get("")
def list_appointments(appointments: Appointments, page: int = Query(1, ge=1),
                      limit: int = Query(10, ge=1, le=100)):
    return page_response("Appointments retrieved", appointments.find_all(page, limit))


@router.get("/date")
def appointments_by_date(appointments: Appointments, day: date = Query(..., alias="date")):
    return list_response("Appointments retrieved", appointments.find_by_date(day), date=day.isoformat())


@router.get("/patient")
def appointments_by_patient(appointments: Appointments, patient_id: int = Query(..., ge=1)):
    return list_response("Appointments retrieved", appointments.find_by_patient(patient_id), patient_id=patient_id)


@router.get("/{appointment_id}")
def get_appointment(appointment_id: int, appointments: Appointments):
    return item_response("Appointment retrieved", get_or_404(appointments, appointment_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_appointment(payload: AppointmentCreate, appointments: Appointments):
    return item_response("Appointment created", appointments.create(payload.model_dump()))


@router.put("/{appointment_id}")
def update_appointment(appointment_id: int, payload: AppointmentUpdate, appointments: Appointments):
    updated = apply_update(appointments, appointment_id, payload.model_dump(exclude_unset=True))
    return item_response("Appointment updated", updated)


@router.patch("/{appointment_id}/status")
def update_appointment_status(appointment_id: int, payload: AppointmentStatusUpdate, appointments: Appointments):
    get_or_404(appointments, appointment_id)
    if appointments.update_status(appointment_id, payload.status).matched_count == 0:
        raise RecordNotFound(appointments.entity, appointment_id)
    return item_response("Appointment status updated", appointments.find_by_id(appointment_id))


@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(appointment_id: int, appointments: Appointments):
    if appointments.delete(appointment_id).deleted_count == 0:
        raise RecordNotFound(appointments.entity, appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
