"""
Free-text search over dental records.

A term matches a record either through the record's own clinical text or
through the name of the patient it belongs to. Both result sets are merged,
deduplicated by record id and ordered newest first.
"""

from datetime import datetime
from typing import Any, Dict, List

from stores import DentalRecordStore, PatientStore

EPOCH = datetime(1970, 1, 1)


def _created_at(record: Dict[str, Any]) -> datetime:
    value = record.get("created_at")
    return value if isinstance(value, datetime) else EPOCH


class DentalRecordSearch:
    def __init__(self, records: DentalRecordStore, patients: PatientStore):
        self.records = records
        self.patients = patients

    def search(self, term: str) -> List[Dict[str, Any]]:
        """Return records matching ``term`` by content or by patient name.

        An empty term matches every record.
        """
        by_content = self.records.search(term)

        by_patient: List[Dict[str, Any]] = []
        for patient in self.patients.search_by_name(term):
            by_patient.extend(self.records.find_by_patient(patient["id"]))

        seen = set()
        unique = []
        for record in by_content + by_patient:
            if record["id"] in seen:
                continue
            seen.add(record["id"])
            unique.append(record)

        unique.sort(key=_created_at, reverse=True)
        return unique
