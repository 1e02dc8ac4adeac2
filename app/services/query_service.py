"""Pure, stateless views over a collection snapshot.

Results always keep the original collection order of the surviving records,
so status filtering and text search can be applied in either order.
"""

from typing import Iterable, Optional, Union

from app.data.technologies import TechStatus
from app.schemas.technology import StatusCounts, TechnologyRecord

STATUS_FILTER_ALL = "all"
STATUS_FILTERS = (STATUS_FILTER_ALL,) + tuple(s.value for s in TechStatus)


def filter_by_status(
    collection: Iterable[TechnologyRecord], status_filter: Union[TechStatus, str] = STATUS_FILTER_ALL
) -> list[TechnologyRecord]:
    """Return records whose status matches ``status_filter``; ``all`` keeps everything.

    Raises ValueError for a filter that is neither ``all`` nor a known status.
    """
    if status_filter == STATUS_FILTER_ALL:
        return list(collection)
    try:
        status = TechStatus(status_filter)
    except ValueError:
        raise ValueError(
            f"Unknown status filter '{status_filter}'; expected one of {', '.join(STATUS_FILTERS)}"
        ) from None
    return [t for t in collection if t.status == status]


def search(collection: Iterable[TechnologyRecord], query: Optional[str]) -> list[TechnologyRecord]:
    """Case-insensitive substring match on title or description.

    The query is matched as typed, surrounding whitespace included; only an
    empty query matches everything.
    """
    needle = (query or "").casefold()
    if not needle:
        return list(collection)
    return [
        t for t in collection
        if needle in t.title.casefold() or needle in t.description.casefold()
    ]


def filter_technologies(
    collection: Iterable[TechnologyRecord],
    status_filter: Union[TechStatus, str] = STATUS_FILTER_ALL,
    query: Optional[str] = None,
) -> list[TechnologyRecord]:
    return search(filter_by_status(collection, status_filter), query)


def count_by_status(collection: Iterable[TechnologyRecord]) -> StatusCounts:
    # Derived on every call; counts are never cached alongside the collection.
    records = list(collection)
    return StatusCounts(
        all=len(records),
        not_started=sum(1 for t in records if t.status == TechStatus.not_started),
        in_progress=sum(1 for t in records if t.status == TechStatus.in_progress),
        completed=sum(1 for t in records if t.status == TechStatus.completed),
    )
