from fastapi import Request

from app.services.technology_store import TechnologyStore


def get_store(request: Request) -> TechnologyStore:
    """Return the process-wide store created at startup."""
    return request.app.state.store
