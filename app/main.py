import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import build_engine, build_session_factory, init_db
from app.routers import technologies
from app.services.persistence_service import SqlSlotAdapter
from app.services.technology_store import TechnologyStore

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = build_engine(settings.database_url)
    init_db(engine)
    adapter = SqlSlotAdapter(settings.storage_slot_key, build_session_factory(engine))
    app.state.store = TechnologyStore(adapter)
    yield
    engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Personal tracker for technologies you are learning",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(technologies.router)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
