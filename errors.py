"""
Typed outcomes raised by the record stores.

The HTTP layer maps them to responses in main.py. Storage failures
(pymongo.errors.PyMongoError) are never wrapped and propagate as-is.
"""


class DentalOfficeError(Exception):
    """Base class for every error the record stores raise on purpose."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RecordNotFound(DentalOfficeError):
    def __init__(self, entity: str, record_id):
        super().__init__(f"{entity} with id {record_id} not found")
        self.entity = entity
        self.record_id = record_id


class ConflictError(DentalOfficeError):
    pass


class DuplicateEmailError(ConflictError):
    def __init__(self, entity: str, email: str):
        super().__init__(f"{entity} with email {email} already exists")
        self.email = email


class PatientNotFoundError(ConflictError):
    """A dental record points at a patient id that does not exist."""

    def __init__(self, patient_id):
        super().__init__(f"No patient exists with id {patient_id}")
        self.patient_id = patient_id


class MissingValueError(DentalOfficeError):
    """An update tried to clear a field every document must carry."""

    def __init__(self, entity: str, field: str):
        super().__init__(f"{entity} field '{field}' cannot be null")
        self.entity = entity
        self.field = field
