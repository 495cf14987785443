"""
In-memory stores.

Dict-backed implementations of the store protocols. Ids are random UUID4
strings. Deleting a voyage through InMemoryVoyageStore also deletes its
observations when the store was given the observation store to cascade into.
"""

import uuid
from dataclasses import replace
from typing import Dict, List, Optional

from src.models.observation import ObservationRecord, Voyage


def generate_id() -> str:
    return str(uuid.uuid4())


class InMemoryObservationStore:
    """Observation store held in a dict keyed by record id."""

    def __init__(self):
        self._records: Dict[str, ObservationRecord] = {}

    def create(self, record: ObservationRecord) -> ObservationRecord:
        stored = record.with_id(generate_id())
        self._records[stored.id] = stored
        return stored

    def get(self, record_id: str) -> Optional[ObservationRecord]:
        return self._records.get(record_id)

    def list_all(self) -> List[ObservationRecord]:
        return list(self._records.values())

    def list_by_voyage(self, voyage_id: str) -> List[ObservationRecord]:
        records = [r for r in self._records.values() if r.voyage_id == voyage_id]
        return sorted(records, key=lambda r: r.timestamp)

    def delete(self, record_id: str) -> None:
        self._records.pop(record_id, None)

    def delete_by_voyage(self, voyage_id: str) -> None:
        for record_id in [k for k, r in self._records.items() if r.voyage_id == voyage_id]:
            del self._records[record_id]

    def __len__(self) -> int:
        return len(self._records)


class InMemoryVoyageStore:
    """
    Voyage store held in a dict keyed by voyage id.

    Args:
        observations: Optional observation store; when given, delete() also
            removes the voyage's observations.
    """

    def __init__(self, observations: Optional[InMemoryObservationStore] = None):
        self._voyages: Dict[str, Voyage] = {}
        self._observations = observations

    def create(self, voyage: Voyage) -> Voyage:
        stored = replace(voyage, id=generate_id())
        self._voyages[stored.id] = stored
        return stored

    def get(self, voyage_id: str) -> Optional[Voyage]:
        return self._voyages.get(voyage_id)

    def list_all(self) -> List[Voyage]:
        return list(self._voyages.values())

    def delete(self, voyage_id: str) -> None:
        if self._observations is not None:
            self._observations.delete_by_voyage(voyage_id)
        self._voyages.pop(voyage_id, None)
