"""
Import workflow: read a file, decode it, and commit the accepted records.

**Conceptual**: The codecs evaluate rows independently and return a partial
result (accepted rows plus line-numbered errors). The import policy applied
here is stricter and fail-closed: if a decode produced *any* error, nothing is
committed. Only a fully clean result reaches the store.

**Persistence model**:
  - One store write per record, in file order.
  - No batch transaction: if write k fails, records 0..k-1 are already
    committed and records after k are never attempted. The failure is raised
    as ImportPersistenceError carrying what was committed, and nothing is
    rolled back.

**Voyage assignment**: the tabular format carries no voyage reference, so the
caller always supplies `voyage_id`. For ASPeCt files the decoded metadata can
be used to pick an existing voyage (find_matching_voyage) or to create a new
one (voyage_from_metadata).
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from src.codecs.detector import decoder_for, detect_format
from src.models.observation import (
    ImportResult,
    ObservationRecord,
    RowError,
    Voyage,
    VoyageMetadata,
)
from src.store.base import ObservationStore
from src.utils.time import Clock, RealClock


logger = logging.getLogger(__name__)


class ImportRejectedError(Exception):
    """
    Raised when committing a decode result that contains errors.

    Attributes:
        errors: The row errors that caused the rejection.
    """

    def __init__(self, errors: List[RowError]):
        self.errors = list(errors)
        preview = "; ".join(str(e) for e in self.errors[:3])
        more = f" (and {len(self.errors) - 3} more)" if len(self.errors) > 3 else ""
        super().__init__(
            f"Import rejected: {len(self.errors)} row error(s): {preview}{more}"
        )


class ImportPersistenceError(Exception):
    """
    Raised when a store write fails part-way through a commit.

    Attributes:
        committed: Records already written before the failure.
        failed_index: Position (0-based, file order) of the record that failed.
    """

    def __init__(self, committed: List[ObservationRecord], failed_index: int, cause: Exception):
        self.committed = committed
        self.failed_index = failed_index
        super().__init__(
            f"Failed to persist observation {failed_index + 1}: {cause}. "
            f"{len(committed)} observation(s) were already committed."
        )


class VoyageMetadataIncompleteError(ValueError):
    """Raised when decoded metadata lacks the fields needed to create a voyage."""


def decode_text(filename: Optional[str], content: str) -> ImportResult:
    """
    Detect the format of `content` and decode it.

    Args:
        filename: Uploaded file name (used for detection only).
        content: Full file text.
    """
    fmt = detect_format(filename, content)
    result = decoder_for(fmt)(content)
    logger.info(
        "Decoded %s as %s: %d observations, %d errors",
        filename or "<unnamed>",
        fmt.value,
        result.imported,
        len(result.errors),
    )
    return result


def read_observation_file(path: Path | str, encoding: str = "utf-8-sig") -> ImportResult:
    """
    Read a file from disk and decode it.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Observation file not found: {path}. "
            f"Ensure the file exists and the path is correct."
        )
    content = path.read_text(encoding=encoding)
    return decode_text(path.name, content)


def commit_import(
    result: ImportResult,
    voyage_id: str,
    store: ObservationStore,
) -> List[ObservationRecord]:
    """
    Persist every accepted record of a clean decode result.

    Args:
        result: Output of a decode call.
        voyage_id: Voyage that will own the imported records.
        store: Destination store.

    Returns:
        The stored records (with ids), in file order.

    Raises:
        ImportRejectedError: If `result` has any errors; nothing is written.
        ImportPersistenceError: If a store write fails; earlier writes stay.
    """
    if result.errors:
        raise ImportRejectedError(result.errors)

    committed: List[ObservationRecord] = []
    for index, record in enumerate(result.observations):
        try:
            committed.append(store.create(record.with_voyage(voyage_id)))
        except Exception as e:
            logger.error("Store write %d/%d failed: %s", index + 1, result.imported, e)
            raise ImportPersistenceError(committed, index, e) from e

    logger.info("Committed %d observations to voyage %s", len(committed), voyage_id)
    return committed


def find_matching_voyage(
    metadata: Optional[VoyageMetadata],
    voyages: Iterable[Voyage],
) -> Optional[Voyage]:
    """
    Pick the voyage whose name matches the decoded metadata.

    Names are compared trimmed and case-insensitively. Returns None when there
    is no metadata name or no match.
    """
    if metadata is None or not metadata.name:
        return None
    wanted = metadata.name.strip().lower()
    for voyage in voyages:
        if voyage.name.strip().lower() == wanted:
            return voyage
    return None


def voyage_from_metadata(metadata: VoyageMetadata, clock: Optional[Clock] = None) -> Voyage:
    """
    Build a new Voyage from decoded ASPeCt metadata.

    Missing start/end dates default to today's date (UTC) from `clock`.

    Raises:
        VoyageMetadataIncompleteError: If name, voyage_leader or captain_name
            is missing.
    """
    missing = [
        key for key in ("name", "voyage_leader", "captain_name")
        if not getattr(metadata, key)
    ]
    if missing:
        raise VoyageMetadataIncompleteError(
            f"File metadata is missing required voyage fields: {', '.join(missing)}"
        )

    today = (clock or RealClock()).now().date()
    return Voyage(
        name=metadata.name,
        voyage_leader=metadata.voyage_leader,
        captain_name=metadata.captain_name,
        voyage_vessel=metadata.voyage_vessel,
        start_date=metadata.start_date or today,
        end_date=metadata.end_date or today,
    )
