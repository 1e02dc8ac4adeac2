"""Import pipeline — fetches candidate technologies and admits them through the store.

Responsibilities:
  - Fetch candidates from the configured HTTP source, or simulate a slow
    source from the built-in catalogue when none is configured
  - Validate and normalize each candidate before it reaches the store
  - Import batches item by item, reporting successes and failures separately
  - Let the caller abandon an in-flight import so a late result never lands
"""

import asyncio
import copy
import logging
from typing import Any, Iterable, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from app.config import settings
from app.data.candidates import BUILTIN_CANDIDATES
from app.schemas.technology import (
    ImportCandidate,
    ImportFailure,
    ImportReport,
    TechnologyRecord,
)
from app.services.technology_store import TechnologyStore

logger = logging.getLogger(__name__)


class CandidateFetchError(Exception):
    """The candidate source could not be reached or returned an unusable payload."""


def is_allowed_import_url(url: str) -> bool:
    """Return True if a caller may ask the server to fetch candidates from ``url``.

    Only http(s) URLs qualify, and only the configured import source or a URL
    on one of the configured allowed hosts.
    """
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.host:
        return False
    if settings.import_source_url and url == settings.import_source_url:
        return True
    allowed = {host.lower() for host in settings.import_allowed_hosts}
    return parsed.host.lower() in allowed


def _extract_candidates(payload: Any) -> list[dict]:
    # Sources return either a bare list or a roadmap object wrapping one.
    if isinstance(payload, dict) and "technologies" in payload:
        payload = payload["technologies"]
    if not isinstance(payload, list):
        raise CandidateFetchError("Candidate source returned neither a list nor a roadmap")
    return payload


async def fetch_candidates(
    source_url: Optional[str] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    latency: Optional[float] = None,
) -> list[dict]:
    """Return the candidate definitions offered by the source.

    Raises CandidateFetchError on network failures, non-2xx responses and
    malformed bodies.
    """
    url = source_url or settings.import_source_url
    if not url:
        delay = settings.import_latency_seconds if latency is None else latency
        await asyncio.sleep(delay)
        return copy.deepcopy(BUILTIN_CANDIDATES)

    try:
        async with httpx.AsyncClient(
            transport=transport, timeout=settings.import_timeout_seconds
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as exc:
        logger.error("Fetching candidates from %s failed: %s", url, exc)
        raise CandidateFetchError(f"Could not load technologies from {url}: {exc}") from exc
    except ValueError as exc:
        logger.error("Candidate source %s returned invalid JSON: %s", url, exc)
        raise CandidateFetchError(f"Candidate source {url} returned invalid JSON") from exc

    return _extract_candidates(payload)


def import_one(
    store: TechnologyStore, candidate: Union[ImportCandidate, Mapping[str, Any]]
) -> TechnologyRecord:
    """Validate one candidate and add it to the store as a new not-started record.

    Raises pydantic.ValidationError when the candidate cannot be admitted.
    """
    if not isinstance(candidate, ImportCandidate):
        candidate = ImportCandidate.model_validate(candidate)
    return store.add_technology(candidate)


def _candidate_title(candidate: Any) -> Optional[str]:
    if isinstance(candidate, ImportCandidate):
        return candidate.title
    if isinstance(candidate, Mapping):
        title = candidate.get("title")
        return title if isinstance(title, str) else None
    return None


async def import_batch(
    store: TechnologyStore,
    candidates: Iterable[Union[ImportCandidate, Mapping[str, Any]]],
    job: Optional["ImportJob"] = None,
) -> ImportReport:
    """Import each candidate independently; one failure never blocks the rest."""
    report = ImportReport()
    for index, candidate in enumerate(candidates):
        if job is not None and job.abandoned:
            logger.info("Import abandoned after %d candidate(s)", index)
            break
        try:
            record = import_one(store, candidate)
        except ValidationError as exc:
            errors = "; ".join(
                f"{'.'.join(str(part) for part in err['loc']) or 'candidate'}: {err['msg']}"
                for err in exc.errors()
            )
            report.failed.append(
                ImportFailure(index=index, title=_candidate_title(candidate), error=errors)
            )
            logger.warning("Rejected candidate %d: %s", index, errors)
        else:
            report.imported.append(record)
        await asyncio.sleep(0)
    logger.info(
        "Imported %d technologies, %d rejected", len(report.imported), len(report.failed)
    )
    return report


class ImportJob:
    """A fetch-then-import run that the caller may abandon at any point.

    Once abandoned, a fetch still in flight is discarded and a running batch
    stops before its next candidate.
    """

    def __init__(
        self,
        store: TechnologyStore,
        source_url: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        latency: Optional[float] = None,
    ) -> None:
        self._store = store
        self._source_url = source_url
        self._transport = transport
        self._latency = latency
        self.abandoned = False

    def abandon(self) -> None:
        self.abandoned = True

    async def run(self) -> Optional[ImportReport]:
        """Fetch and import; returns None if the job was abandoned before any import."""
        candidates = await fetch_candidates(
            self._source_url, transport=self._transport, latency=self._latency
        )
        if self.abandoned:
            logger.info("Discarding %d fetched candidate(s) from an abandoned import", len(candidates))
            return None
        return await import_batch(self._store, candidates, job=self)


async def import_roadmap(
    store: TechnologyStore,
    roadmap_url: str,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ImportReport:
    """Import every technology listed by the roadmap at ``roadmap_url``."""
    report = await ImportJob(store, roadmap_url, transport=transport).run()
    return report or ImportReport()
