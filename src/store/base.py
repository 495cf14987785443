"""
Store protocols for voyages and observations.

**Conceptual**: The codecs never read or write the store. The import service
hands decoded records to an ObservationStore one at a time, and the export
service reads them back by voyage. Any class with these methods qualifies
(structural typing), whether it wraps a database, an HTTP API or a dict.

**Contract**:
  - create() assigns a new opaque id and returns the stored copy.
  - get() returns None for unknown ids.
  - list_by_voyage() returns observations ordered by timestamp.
  - Writes are individual; there are no batch transactions.
"""

from typing import List, Optional, Protocol

from src.models.observation import ObservationRecord, Voyage


class ObservationStore(Protocol):
    """Persistent store of observation records."""

    def create(self, record: ObservationRecord) -> ObservationRecord:
        ...

    def get(self, record_id: str) -> Optional[ObservationRecord]:
        ...

    def list_by_voyage(self, voyage_id: str) -> List[ObservationRecord]:
        ...

    def delete(self, record_id: str) -> None:
        ...

    def delete_by_voyage(self, voyage_id: str) -> None:
        ...


class VoyageStore(Protocol):
    """Persistent store of voyages."""

    def create(self, voyage: Voyage) -> Voyage:
        ...

    def get(self, voyage_id: str) -> Optional[Voyage]:
        ...

    def list_all(self) -> List[Voyage]:
        ...

    def delete(self, voyage_id: str) -> None:
        ...
