import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import app.models  # ensure models are registered
from app.core.config import APP_TITLE, CORS_ORIGINS, SEED_ON_STARTUP
from app.core.logging_config import setup_logging
from app.utils.database import engine, Base
from app.initial_data import init_seed

from app.routers import (
    auth_router,
    users_router,
    projects_router,
    project_members_router,
    installments_router,
    payments_router,
    penalties_router,
    reports_router,
    accounting_coding_router,
    accounting_documents_router,
    accounting_books_router,
    accounting_year_end_router,
    accounting_descriptions_router,
    archive_router,
    activities_router,
    settings_router,
)

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=APP_TITLE, version="1.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(auth_router.router)
app.include_router(users_router.router)
app.include_router(projects_router.router)
app.include_router(project_members_router.router)
app.include_router(installments_router.router)
app.include_router(payments_router.router)
app.include_router(penalties_router.router)
app.include_router(reports_router.router)
app.include_router(accounting_coding_router.router)
app.include_router(accounting_documents_router.router)
app.include_router(accounting_books_router.router)
app.include_router(accounting_year_end_router.router)
app.include_router(accounting_descriptions_router.router)
app.include_router(archive_router.router)
app.include_router(activities_router.router)
app.include_router(settings_router.router)


@app.on_event("startup")
def on_startup():
    Base.metadata.create_all(bind=engine)

    if SEED_ON_STARTUP:
        logger.info("Running initial database seeding")
        init_seed()
        logger.info("Seeding complete")


@app.get("/")
def root():
    return {"message": "Construction Finance Backend is running"}


@app.get("/health")
def health():
    return {"status": "ok"}
