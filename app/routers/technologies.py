"""Technologies router — the HTTP surface over the technology store."""

from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.dependencies import get_store
from app.schemas.technology import (
    ExportSnapshot,
    ImportReport,
    ImportRequest,
    MutationResponse,
    NotesUpdate,
    ProgressResponse,
    RandomPick,
    StatusUpdate,
    TechnologyCreate,
    TechnologyListResponse,
    TechnologyRecord,
    TechnologyUpdate,
)
from app.services.import_service import (
    CandidateFetchError,
    ImportJob,
    is_allowed_import_url,
)
from app.services.query_service import filter_technologies
from app.services.technology_store import TechnologyStore

router = APIRouter(prefix="/technologies", tags=["technologies"])


def _resolve_id(store: TechnologyStore, tech_id: str) -> Union[int, str]:
    # Generated and seed ids are integers; stored data may also carry string ids
    # such as "7", so the numeric reading wins only when such a record exists.
    digits = tech_id[1:] if tech_id.startswith("-") else tech_id
    if digits.isdecimal() and store.get(int(tech_id)) is not None:
        return int(tech_id)
    return tech_id


def _mutation_response(
    store: TechnologyStore, record: Optional[TechnologyRecord] = None
) -> MutationResponse:
    return MutationResponse(
        technology=record,
        progress=store.progress(),
        persistence_notice=store.persistence_notice,
    )


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Technology not found")


@router.get("", response_model=TechnologyListResponse)
async def list_technologies_endpoint(
    status_filter: str = Query("all", alias="status"),
    q: Optional[str] = None,
    store: TechnologyStore = Depends(get_store),
):
    """Return technologies filtered by status and search text, in collection order."""
    try:
        found = filter_technologies(store.technologies, status_filter, q)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return TechnologyListResponse(
        technologies=found, counts=store.status_counts(), found=len(found)
    )


@router.get("/progress", response_model=ProgressResponse)
async def progress_endpoint(store: TechnologyStore = Depends(get_store)):
    return ProgressResponse(progress=store.progress(), counts=store.status_counts())


@router.get("/export", response_model=ExportSnapshot)
async def export_endpoint(store: TechnologyStore = Depends(get_store)):
    return store.export_snapshot()


@router.post("", response_model=MutationResponse, status_code=status.HTTP_201_CREATED)
async def add_technology_endpoint(
    body: TechnologyCreate, store: TechnologyStore = Depends(get_store)
):
    record = store.add_technology(body)
    return _mutation_response(store, record)


@router.post("/complete-all", response_model=MutationResponse)
async def complete_all_endpoint(store: TechnologyStore = Depends(get_store)):
    store.mark_all_completed()
    return _mutation_response(store)


@router.post("/reset", response_model=MutationResponse)
async def reset_all_endpoint(store: TechnologyStore = Depends(get_store)):
    store.reset_all_statuses()
    return _mutation_response(store)


@router.post("/pick-random", response_model=RandomPick)
async def pick_random_endpoint(store: TechnologyStore = Depends(get_store)):
    """Start a random not-started technology; ``picked`` is null when none is left."""
    return store.pick_random_not_started()


@router.post("/import", response_model=ImportReport)
async def import_endpoint(
    body: Optional[ImportRequest] = None, store: TechnologyStore = Depends(get_store)
):
    """Fetch candidates from the import source and add every valid one."""
    source_url = body.source_url if body else None
    if source_url and not is_allowed_import_url(source_url):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="sourceUrl is not an allowed import source",
        )
    try:
        report = await ImportJob(store, source_url).run()
    except CandidateFetchError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return report or ImportReport()


@router.get("/{tech_id}", response_model=TechnologyRecord)
async def get_technology_endpoint(tech_id: str, store: TechnologyStore = Depends(get_store)):
    record = store.get(_resolve_id(store, tech_id))
    if record is None:
        raise _not_found()
    return record


@router.patch("/{tech_id}", response_model=MutationResponse)
async def update_technology_endpoint(
    tech_id: str, body: TechnologyUpdate, store: TechnologyStore = Depends(get_store)
):
    record = store.update_technology(_resolve_id(store, tech_id), body)
    if record is None:
        raise _not_found()
    return _mutation_response(store, record)


@router.delete("/{tech_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_technology_endpoint(tech_id: str, store: TechnologyStore = Depends(get_store)):
    store.delete_technology(_resolve_id(store, tech_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{tech_id}/status", response_model=MutationResponse)
async def update_status_endpoint(
    tech_id: str, body: StatusUpdate, store: TechnologyStore = Depends(get_store)
):
    record = store.update_status(_resolve_id(store, tech_id), body.status)
    if record is None:
        raise _not_found()
    return _mutation_response(store, record)


@router.post("/{tech_id}/cycle", response_model=MutationResponse)
async def cycle_status_endpoint(tech_id: str, store: TechnologyStore = Depends(get_store)):
    record = store.cycle_status(_resolve_id(store, tech_id))
    if record is None:
        raise _not_found()
    return _mutation_response(store, record)


@router.put("/{tech_id}/notes", response_model=MutationResponse)
async def update_notes_endpoint(
    tech_id: str, body: NotesUpdate, store: TechnologyStore = Depends(get_store)
):
    record = store.update_notes(_resolve_id(store, tech_id), body.notes)
    if record is None:
        raise _not_found()
    return _mutation_response(store, record)
