"""Persistence adapter — reads and writes the technology collection in a named durable slot.

Responsibilities:
  - Serialize the full collection as JSON and overwrite the slot on every save
  - Fall back to the seed collection when the slot is absent or unreadable
  - Repair or drop malformed records on load so corruption does not spread
  - Report write failures without raising them to the store
"""

import json
import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.data.technologies import SEED_TECHNOLOGIES, TechStatus
from app.models.storage_slot import StorageSlot
from app.schemas.technology import TechnologyRecord, is_valid_url

logger = logging.getLogger(__name__)

# Failures that degrade to in-memory-only operation instead of propagating.
STORAGE_ERRORS = (SQLAlchemyError, OSError)

_OPTIONAL_FIELDS = ("category", "difficulty", "deadline", "createdAt")


def seed_collection() -> list[TechnologyRecord]:
    """Return a fresh copy of the first-run collection."""
    return [TechnologyRecord.model_validate(entry) for entry in SEED_TECHNOLOGIES]


def serialize_collection(collection: Iterable[TechnologyRecord]) -> str:
    return json.dumps([record.to_storage() for record in collection], ensure_ascii=False)


def _valid_id(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, str) and bool(value.strip())


def _valid_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def repair_record(entry: Any) -> Optional[TechnologyRecord]:
    """Coerce one stored entry into a TechnologyRecord, or return None if it is unusable.

    Entries missing id, title or description are unusable. An unknown status
    becomes not-started; optional fields that fail validation are dropped;
    resources keep only the entries that are valid URLs.
    """
    if not isinstance(entry, dict):
        return None
    if not (_valid_id(entry.get("id")) and _valid_text(entry.get("title"))
            and _valid_text(entry.get("description"))):
        return None

    cleaned: dict[str, Any] = {
        "id": entry["id"],
        "title": entry["title"],
        "description": entry["description"],
    }

    status = entry.get("status")
    valid_statuses = {s.value for s in TechStatus}
    cleaned["status"] = (
        status if isinstance(status, str) and status in valid_statuses else TechStatus.not_started.value
    )

    notes = entry.get("notes")
    cleaned["notes"] = notes if isinstance(notes, str) else ""

    resources = entry.get("resources")
    if isinstance(resources, list):
        cleaned["resources"] = [r for r in resources if is_valid_url(r)]

    for field_name in _OPTIONAL_FIELDS:
        value = entry.get(field_name)
        if value in (None, ""):
            continue
        try:
            TechnologyRecord.model_validate({**cleaned, field_name: value})
        except ValidationError:
            logger.warning(
                "Dropping invalid %s=%r from stored technology %r", field_name, value, entry["id"]
            )
            continue
        cleaned[field_name] = value

    try:
        return TechnologyRecord.model_validate(cleaned)
    except ValidationError as exc:
        logger.warning("Stored technology %r could not be repaired: %s", entry["id"], exc)
        return None


def deserialize_collection(raw: str) -> list[TechnologyRecord]:
    """Parse slot text into records; unparseable text yields the seed collection."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Stored technologies are not valid JSON (%s); using seed collection", exc)
        return seed_collection()
    if not isinstance(data, list):
        logger.warning("Stored technologies are not a JSON array; using seed collection")
        return seed_collection()

    records: list[TechnologyRecord] = []
    seen_ids: set = set()
    for index, entry in enumerate(data):
        record = repair_record(entry)
        if record is None:
            logger.warning("Dropping malformed stored technology at position %d", index)
            continue
        if record.id in seen_ids:
            logger.warning("Dropping duplicate stored technology id %r", record.id)
            continue
        seen_ids.add(record.id)
        records.append(record)
    return records


class SlotAdapter:
    """Base adapter bound to one explicit slot key.

    Subclasses implement read_raw/write_raw against a concrete storage backend.
    """

    def __init__(self, slot_key: str) -> None:
        self.slot_key = slot_key
        self.last_error: Optional[str] = None
        # Set while the slot could not be read; writes would replace data never loaded.
        self.read_failed = False

    def read_raw(self) -> Optional[str]:
        raise NotImplementedError

    def write_raw(self, text: str) -> None:
        raise NotImplementedError

    def load(self) -> list[TechnologyRecord]:
        try:
            raw = self.read_raw()
        except STORAGE_ERRORS as exc:
            logger.warning("Could not read slot %r (%s); using seed collection", self.slot_key, exc)
            self.last_error = f"Saved technologies could not be loaded: {exc}"
            self.read_failed = True
            return seed_collection()
        self.read_failed = False
        if raw is None:
            logger.info("Slot %r is empty; starting from the seed collection", self.slot_key)
            return seed_collection()
        return deserialize_collection(raw)

    def save(self, collection: Iterable[TechnologyRecord]) -> bool:
        """Overwrite the slot with the full collection.

        Returns False (and records last_error) when the write fails or when the
        slot could not be read by the last load; never raises for storage failures.
        """
        if self.read_failed:
            logger.warning(
                "Not saving to slot %r: it could not be read and would be overwritten", self.slot_key
            )
            self.last_error = (
                "Saved technologies could not be loaded; changes are kept in memory only"
            )
            return False
        text = serialize_collection(collection)
        try:
            self.write_raw(text)
        except STORAGE_ERRORS as exc:
            logger.error("Failed to save technologies to slot %r: %s", self.slot_key, exc)
            self.last_error = f"Changes are kept in memory only; saving failed: {exc}"
            return False
        self.last_error = None
        return True


class SqlSlotAdapter(SlotAdapter):
    """Slot stored as one row of the storage_slots table."""

    def __init__(self, slot_key: str, session_factory: sessionmaker) -> None:
        super().__init__(slot_key)
        self._session_factory = session_factory

    def read_raw(self) -> Optional[str]:
        with self._session_factory() as session:
            slot = session.get(StorageSlot, self.slot_key)
            return slot.value if slot is not None else None

    def write_raw(self, text: str) -> None:
        with self._session_factory() as session, session.begin():
            slot = session.get(StorageSlot, self.slot_key)
            if slot is None:
                session.add(StorageSlot(key=self.slot_key, value=text))
            else:
                slot.value = text


class InMemorySlotAdapter(SlotAdapter):
    """Process-local slot, used when no durable storage is wanted and as a test double."""

    def __init__(self, slot_key: str = "technologies", initial: Optional[str] = None) -> None:
        super().__init__(slot_key)
        self.value: Optional[str] = initial
        self.write_count = 0
        self.fail_writes = False
        self.fail_reads = False

    def read_raw(self) -> Optional[str]:
        if self.fail_reads:
            raise OSError("database is locked")
        return self.value

    def write_raw(self, text: str) -> None:
        if self.fail_writes:
            raise OSError("storage quota exceeded")
        self.value = text
        self.write_count += 1
