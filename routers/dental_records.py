from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from dependencies import CurrentUser, get_current_user, get_dental_records, get_record_search
from errors import RecordNotFound
from routers.common import apply_update, get_or_404, item_response, list_response, page_response
from schemas import DentalRecordCreate, DentalRecordUpdate, PaymentStatusUpdate
from search import DentalRecordSearch
from stores import DentalRecordStore

router = APIRouter(
    prefix="/api/dentalrecords",
    tags=["Dental records"],
    dependencies=[Depends(get_current_user)],
)

Records = Annotated[DentalRecordStore, Depends(get_dental_records)]


@router.get("")
def list_dental_records(records: Records, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    return page_response("Dental records retrieved", records.find_all(page, limit))


@router.get("/search")
def search_dental_records(search: Annotated[DentalRecordSearch, Depends(get_record_search)], q: str = ""):
    return list_response("Dental record search completed", search.search(q), search_term=q)


@router.get("/patient")
def dental_records_by_patient(records: Records, patient_id: int = Query(..., ge=1)):
    return list_response("Dental records retrieved", records.find_by_patient(patient_id), patient_id=patient_id)


@router.get("/{record_id}")
def get_dental_record(record_id: int, records: Records):
    return item_response("Dental record retrieved", get_or_404(records, record_id))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_dental_record(payload: DentalRecordCreate, records: Records, user: CurrentUser):
    data = payload.model_dump()
    if data["created_by_info"] is None:
        data["created_by_info"] = {"id": user["id"], "name": user["name"]}
    return item_response("Dental record created", records.create(data))


@router.api_route("/{record_id}", methods=["PUT", "PATCH"])
def update_dental_record(record_id: int, payload: DentalRecordUpdate, records: Records):
    updated = apply_update(records, record_id, payload.model_dump(exclude_unset=True))
    return item_response("Dental record updated", updated)


@router.patch("/{record_id}/payment-status")
def update_payment_status(record_id: int, payload: PaymentStatusUpdate, records: Records):
    get_or_404(records, record_id)
    if records.update_payment_status(record_id, payload.payment_status).matched_count == 0:
        raise RecordNotFound(records.entity, record_id)
    return item_response("Payment status updated", records.find_by_id(record_id))


@router.delete("/{record_id}")
def delete_dental_record(record_id: int, records: Records):
    if records.delete(record_id).deleted_count == 0:
        raise RecordNotFound(records.entity, record_id)
    return {"message": "Dental record deleted", "deleted_id": record_id}
