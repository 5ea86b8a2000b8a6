from typing import Annotated, Any, Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from database import DocumentStore
from search import DentalRecordSearch
from security import decode_access_token
from stores import (
    AppointmentStore,
    DentalRecordStore,
    InventoryStore,
    PatientStore,
    UserStore,
    without_password,
)

security = HTTPBearer(auto_error=False)


# ----------------------------------------------------------
# Stores
# ----------------------------------------------------------

def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_patients(store: Annotated[DocumentStore, Depends(get_store)]) -> PatientStore:
    return PatientStore(store)


def get_appointments(store: Annotated[DocumentStore, Depends(get_store)]) -> AppointmentStore:
    return AppointmentStore(store)


def get_dental_records(
    store: Annotated[DocumentStore, Depends(get_store)],
    patients: Annotated[PatientStore, Depends(get_patients)],
) -> DentalRecordStore:
    return DentalRecordStore(store, patients)


def get_record_search(
    records: Annotated[DentalRecordStore, Depends(get_dental_records)],
    patients: Annotated[PatientStore, Depends(get_patients)],
) -> DentalRecordSearch:
    return DentalRecordSearch(records, patients)


def get_inventory(store: Annotated[DocumentStore, Depends(get_store)]) -> InventoryStore:
    return InventoryStore(store)


def get_users(store: Annotated[DocumentStore, Depends(get_store)]) -> UserStore:
    return UserStore(store)


# ----------------------------------------------------------
# Authentication
# ----------------------------------------------------------

def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=message,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    users: Annotated[UserStore, Depends(get_users)],
) -> Dict[str, Any]:
    """Validate the bearer token and return the active user it belongs to."""
    if credentials is None:
        raise _unauthorized("A valid JWT is required in the Authorization header")

    try:
        payload = decode_access_token(credentials.credentials)
        user_id = int(payload["user_id"])
    except (JWTError, KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid or expired token")

    user = users.find_by_id(user_id)
    if user is None:
        raise _unauthorized("The user behind this token does not exist or is inactive")
    return without_password(user)


def require_roles(*roles: str):
    def checker(user: Annotated[Dict[str, Any], Depends(get_current_user)]) -> Dict[str, Any]:
        if user.get("role") not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of the roles: {', '.join(roles)}",
            )
        return user

    return checker


CurrentUser = Annotated[Dict[str, Any], Depends(get_current_user)]
