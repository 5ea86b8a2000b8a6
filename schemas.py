"""
Request and response schemas for the Dental Office API

Each entity is stored in its own MongoDB collection:
- Patient -> "patients"
- Appointment -> "appointments"
- DentalRecord -> "dentalrecords"
- InventoryItem -> "inventory"
- User -> "users"

Create models carry the required fields of a new document; update models
make every field optional and are dumped with ``exclude_unset=True`` so only
the fields a client actually sent are written.
"""

from typing import Optional, List, Literal, Dict, Any, ClassVar
from pydantic import BaseModel, Field, EmailStr, model_validator
from datetime import date, datetime

AppointmentStatus = Literal["scheduled", "completed", "cancelled", "rescheduled"]
PaymentStatus = Literal["pending", "paid", "partial"]
RecordType = Literal["general", "orthodontic", "surgery"]
Role = Literal["admin", "doctor", "assistant"]

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"

# ---------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------

class PersonInfo(BaseModel):
    """Denormalized id + name snapshot embedded in another document."""
    id: int = Field(..., ge=1)
    name: str


class CreatorInfo(BaseModel):
    id: Any = Field(..., description="User id, or 'SYSTEM'")
    name: str


class PartialUpdate(BaseModel):
    """Update model: omitted fields are left alone, null only clears nullable ones."""
    nullable_fields: ClassVar[tuple] = ()

    @model_validator(mode="after")
    def reject_null_required(self):
        for name in self.model_fields_set:
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{name} cannot be null")
        return self

# ---------------------------------------------------------------------
# Users & Auth
# ---------------------------------------------------------------------

class UserRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=4)
    name: str = Field(..., min_length=2)
    last_name: str = ""
    role: Role = "assistant"
    specialty: str = ""
    phone: str = ""


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserUpdate(PartialUpdate):
    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, min_length=2)
    last_name: Optional[str] = None
    role: Optional[Role] = None
    specialty: Optional[str] = None
    phone: Optional[str] = None


class UserSummary(BaseModel):
    id: int
    email: str
    name: str
    role: str


class Token(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: UserSummary

# ---------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------

class OrthodonticAdjustment(BaseModel):
    adjustment_date: Optional[date] = None
    description: str = Field(..., min_length=1)
    notes: Optional[str] = None
    next_visit: Optional[date] = None
    performed_by: Optional[PersonInfo] = None


class Orthodontics(BaseModel):
    status: Literal["active", "completed", "paused"] = "active"
    start_date: Optional[date] = None
    adjustments: List[Dict[str, Any]] = Field(default_factory=list)


class PatientCreate(BaseModel):
    first_name: str = Field(..., min_length=2)
    last_name: str = Field(..., min_length=2)
    email: EmailStr
    phone: str = Field(..., min_length=1)
    birth_date: date
    address: Optional[str] = None
    insurance: Optional[str] = None
    orthodontics: Optional[Orthodontics] = None


class PatientUpdate(PartialUpdate):
    nullable_fields: ClassVar[tuple] = ("address", "insurance", "orthodontics")

    first_name: Optional[str] = Field(None, min_length=2)
    last_name: Optional[str] = Field(None, min_length=2)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    birth_date: Optional[date] = None
    address: Optional[str] = None
    insurance: Optional[str] = None
    orthodontics: Optional[Orthodontics] = None

# ---------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------

class AppointmentCreate(BaseModel):
    appointment_date: date
    appointment_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM, 24h")
    type: str = Field(..., min_length=1)
    status: AppointmentStatus = "scheduled"
    notes: str = ""
    patient_info: PersonInfo
    doctor_info: Optional[PersonInfo] = None
    duration_minutes: int = Field(30, ge=1)


class AppointmentUpdate(PartialUpdate):
    nullable_fields: ClassVar[tuple] = ("doctor_info",)

    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = Field(None, pattern=TIME_PATTERN)
    type: Optional[str] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None
    patient_info: Optional[PersonInfo] = None
    doctor_info: Optional[PersonInfo] = None
    duration_minutes: Optional[int] = Field(None, ge=1)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus

# ---------------------------------------------------------------------
# Dental records
# ---------------------------------------------------------------------

class DentalRecordCreate(BaseModel):
    patient_id: int = Field(..., ge=1)
    description: str = Field(..., min_length=1)
    diagnosis: str = Field(..., min_length=1)
    treatment_plan: str = Field(..., min_length=1)
    treatment_notes: str = ""
    file_path: str = ""
    next_appointment: Optional[datetime] = None
    treatment_cost: float = Field(0, ge=0)
    payment_status: PaymentStatus = "pending"
    record_type: RecordType = "general"
    created_by_info: Optional[CreatorInfo] = None


class DentalRecordUpdate(PartialUpdate):
    nullable_fields: ClassVar[tuple] = ("next_appointment",)

    patient_id: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_plan: Optional[str] = None
    treatment_notes: Optional[str] = None
    file_path: Optional[str] = None
    next_appointment: Optional[datetime] = None
    treatment_cost: Optional[float] = Field(None, ge=0)
    payment_status: Optional[PaymentStatus] = None
    record_type: Optional[RecordType] = None
    created_by_info: Optional[CreatorInfo] = None


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus

# ---------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------

class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=2)
    category: str = Field(..., min_length=1)
    description: str = ""
    current_stock: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    cost_per_unit: float = Field(0, ge=0)
    supplier: str = ""


class InventoryItemUpdate(PartialUpdate):
    """Stock is only changed through the adjustment ledger."""
    name: Optional[str] = Field(None, min_length=2)
    category: Optional[str] = None
    description: Optional[str] = None
    min_stock: Optional[int] = Field(None, ge=0)
    cost_per_unit: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = None


class StockAdjustment(BaseModel):
    quantity: int = Field(..., description="Signed change in stock")
    reason: str = Field(..., min_length=1)
