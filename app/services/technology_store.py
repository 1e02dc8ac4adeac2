"""Technology store — the authoritative in-memory collection and its mutation API.

Every mutation builds a new tuple of frozen records, swaps the store's single
reference, writes the whole collection through the injected slot adapter and
then notifies subscribers. Mutations are synchronous and run to completion, so two
of them can never interleave.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

from app.data.technologies import TechStatus, next_status
from app.schemas.technology import (
    ExportSnapshot,
    RandomPick,
    StatusCounts,
    TechnologyCreate,
    TechnologyFields,
    TechnologyRecord,
    TechnologyUpdate,
)
from app.services.persistence_service import SlotAdapter
from app.services.query_service import count_by_status

logger = logging.getLogger(__name__)

TechId = Union[int, str]
Collection = tuple[TechnologyRecord, ...]
Listener = Callable[[Collection], None]

NOTHING_TO_PICK_MESSAGE = "Every technology has already been started or completed!"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_progress(completed: int, total: int) -> int:
    """Return round(100 * completed / total) with halves rounded up; 0 when total is 0."""
    if total == 0:
        return 0
    return (200 * completed + total) // (2 * total)


class TechnologyStore:
    def __init__(
        self,
        adapter: SlotAdapter,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._adapter = adapter
        self._rng = rng or random.Random()
        self._clock = clock or _utcnow
        self._technologies: Collection = tuple(adapter.load())
        self._listeners: list[Listener] = []
        self._last_issued_id = 0
        self.persistence_notice: Optional[str] = adapter.last_error

    # ── Read side ─────────────────────────────────────────────────────────────

    @property
    def technologies(self) -> Collection:
        return self._technologies

    def get(self, tech_id: TechId) -> Optional[TechnologyRecord]:
        return next((t for t in self._technologies if t.id == tech_id), None)

    def progress(self) -> int:
        completed = sum(1 for t in self._technologies if t.status == TechStatus.completed)
        return calculate_progress(completed, len(self._technologies))

    def status_counts(self) -> StatusCounts:
        return count_by_status(self._technologies)

    def export_snapshot(self) -> ExportSnapshot:
        return ExportSnapshot(exported_at=self._clock(), technologies=list(self._technologies))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener called with each new collection; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Internals ─────────────────────────────────────────────────────────────

    def _commit(self, technologies: Collection) -> None:
        self._technologies = technologies
        if self._adapter.save(technologies):
            self.persistence_notice = None
        else:
            self.persistence_notice = self._adapter.last_error
        # A failing subscriber must not undo or block a committed mutation.
        for listener in list(self._listeners):
            try:
                listener(technologies)
            except Exception:
                logger.exception("Technology listener %r failed", listener)

    def _next_id(self) -> int:
        taken = {t.id for t in self._technologies}
        candidate = max(int(self._clock().timestamp() * 1000), self._last_issued_id + 1)
        while candidate in taken:
            candidate += 1
        self._last_issued_id = candidate
        return candidate

    def _replace(
        self, tech_id: TechId, change: Callable[[TechnologyRecord], TechnologyRecord]
    ) -> Optional[TechnologyRecord]:
        """Apply ``change`` to the matching record and commit; None if the id is absent."""
        for index, record in enumerate(self._technologies):
            if record.id == tech_id:
                updated = change(record)
                self._commit(
                    self._technologies[:index] + (updated,) + self._technologies[index + 1:]
                )
                return updated
        logger.debug("Technology %r not found; nothing changed", tech_id)
        return None

    # ── Mutations ─────────────────────────────────────────────────────────────

    def add_technology(
        self, data: Union[TechnologyFields, Mapping[str, Any]]
    ) -> TechnologyRecord:
        """Append a new not-started record built from validated fields.

        Mappings are validated as form input (TechnologyCreate) and raise
        pydantic.ValidationError on bad fields.
        """
        if not isinstance(data, TechnologyFields):
            data = TechnologyCreate.model_validate(data)
        record = TechnologyRecord(
            id=self._next_id(),
            title=data.title,
            description=data.description,
            status=TechStatus.not_started,
            notes="",
            category=data.category,
            difficulty=data.difficulty,
            deadline=data.deadline,
            resources=tuple(data.resources),
            created_at=self._clock(),
        )
        self._commit(self._technologies + (record,))
        logger.info("Added technology %r (%s)", record.id, record.title)
        return record

    def update_technology(
        self, tech_id: TechId, changes: Union[TechnologyUpdate, Mapping[str, Any]]
    ) -> Optional[TechnologyRecord]:
        """Edit title, description and the optional fields of an existing record."""
        if not isinstance(changes, TechnologyUpdate):
            changes = TechnologyUpdate.model_validate(changes)
        fields = changes.model_dump(exclude_unset=True)
        if "resources" in fields:
            fields["resources"] = tuple(fields["resources"])
        return self._replace(tech_id, lambda record: record.model_copy(update=fields))

    def delete_technology(self, tech_id: TechId) -> bool:
        remaining = tuple(t for t in self._technologies if t.id != tech_id)
        if len(remaining) == len(self._technologies):
            return False
        self._commit(remaining)
        logger.info("Deleted technology %r", tech_id)
        return True

    def update_status(
        self, tech_id: TechId, new_status: Union[TechStatus, str]
    ) -> Optional[TechnologyRecord]:
        status = TechStatus(new_status)
        return self._replace(tech_id, lambda record: record.model_copy(update={"status": status}))

    def cycle_status(self, tech_id: TechId) -> Optional[TechnologyRecord]:
        return self._replace(
            tech_id, lambda record: record.model_copy(update={"status": next_status(record.status)})
        )

    def update_notes(self, tech_id: TechId, notes: str) -> Optional[TechnologyRecord]:
        return self._replace(tech_id, lambda record: record.model_copy(update={"notes": notes}))

    def _set_all_statuses(self, status: TechStatus) -> None:
        self._commit(
            tuple(t.model_copy(update={"status": status}) for t in self._technologies)
        )
        logger.info("Set all %d technologies to %s", len(self._technologies), status.value)

    def mark_all_completed(self) -> None:
        self._set_all_statuses(TechStatus.completed)

    def reset_all_statuses(self) -> None:
        self._set_all_statuses(TechStatus.not_started)

    def pick_random_not_started(self) -> RandomPick:
        """Start a uniformly chosen not-started technology.

        When nothing is eligible the collection is left untouched and the
        returned pick carries a message for the user instead of a record.
        """
        eligible = [t for t in self._technologies if t.status == TechStatus.not_started]
        if not eligible:
            return RandomPick(picked=None, message=NOTHING_TO_PICK_MESSAGE)
        chosen = self._rng.choice(eligible)
        picked = self.cycle_status(chosen.id)
        return RandomPick(picked=picked, message=f"Next up: {chosen.title}")
