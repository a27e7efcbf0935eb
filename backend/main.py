from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from .database import engine, Base
from .routers import projects, products, quotes, pricing_settings

logger = logging.getLogger("smarthome")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)


def _run_migrations():
    """Run pending Alembic migrations on startup.

    Databases created by Base.metadata.create_all() before Alembic ran have
    the tables but no alembic_version row. Those are stamped at head first.
    """
    try:
        from alembic.config import Config
        from alembic import command
        from sqlalchemy import inspect

        alembic_ini = os.path.join(os.path.dirname(__file__), "..", "alembic.ini")
        if not os.path.exists(alembic_ini):
            logger.info("alembic.ini not found, skipping migrations")
            return

        alembic_cfg = Config(alembic_ini)
        alembic_cfg.set_main_option(
            "script_location", os.path.join(os.path.dirname(__file__), "..", "alembic"),
        )

        # Override sqlalchemy.url from environment if DATABASE_URL is set
        database_url = os.environ.get("DATABASE_URL")
        if database_url:
            alembic_cfg.set_main_option("sqlalchemy.url", database_url)

        insp = inspect(engine)
        has_alembic = "alembic_version" in insp.get_table_names()
        has_projects = "projects" in insp.get_table_names()

        if not has_alembic and has_projects:
            logger.info("Stamping head migration (tables already exist)")
            command.stamp(alembic_cfg, "head")

        logger.info("Running pending Alembic migrations...")
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")

    except Exception as e:
        # Never let migration errors prevent app startup
        logger.warning(f"Alembic migration warning: {e}")


app = FastAPI(
    title="Smart Home Projects API",
    description="Quoting, fees and device shipments for smart-home installation projects",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(projects.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(quotes.router, prefix="/api")
app.include_router(pricing_settings.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "smarthome-projects"}


@app.on_event("startup")
def auto_migrate():
    """Run pending Alembic migrations on startup."""
    _run_migrations()


@app.on_event("startup")
def auto_seed():
    """Create the default pricing settings row on first run."""
    from .database import SessionLocal
    from .pricing_settings import ensure_settings
    db = SessionLocal()
    try:
        ensure_settings(db)
    finally:
        db.close()
