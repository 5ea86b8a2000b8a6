from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import EmailStr

from database import serialize_doc
from dependencies import get_current_user, get_patients
from errors import RecordNotFound
from routers.common import apply_update, get_or_404, item_response, list_response, page_response
from schemas import OrthodonticAdjustment, PatientCreate, PatientUpdate
from stores import PatientStore

router = APIRouter(
    prefix="/api/patients",
    tags=["Patients"],
    dependencies=[Depends(get_current_user)],
)

Patients = Annotated[PatientStore, Depends(get_patients)]


@router.get("")
def list_patients(patients: Patients, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    return page_response("Patients retrieved", patients.find_all(page, limit))


@router.get("/search")
def search_patients(patients: Patients, q: str = ""):
    return list_response("Search completed", patients.search_by_name(q), search_term=q)


@router.get("/email")
def patient_by_email(patients: Patients, email: EmailStr):
    patient = patients.find_by_email(email)
    if patient is None:
        raise HTTPException(status_code=404, detail=f"No patient with email {email}")
    return item_response("Patient retrieved", patient)


@router.get("/{patient_id}")
def get_patient(patient_id: int, patients: Patients):
    return item_response("Patient retrieved", get_or_404(patients, patient_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_patient(payload: PatientCreate, patients: Patients):
    return item_response("Patient created", patients.create(payload.model_dump()))


@router.put("/{patient_id}")
def update_patient(patient_id: int, payload: PatientUpdate, patients: Patients):
    updated = apply_update(patients, patient_id, payload.model_dump(exclude_unset=True))
    return item_response("Patient updated", updated)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(patient_id: int, patients: Patients):
    if patients.delete(patient_id).deleted_count == 0:
        raise RecordNotFound(patients.entity, patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{patient_id}/orthodontics/adjustments", status_code=status.HTTP_201_CREATED)
def add_orthodontic_adjustment(patient_id: int, payload: OrthodonticAdjustment, patients: Patients):
    orthodontics = patients.add_orthodontic_adjustment(patient_id, payload.model_dump())
    return {"message": "Adjustment added", "data": serialize_doc(orthodontics)}
