"""LinkVault FastAPI application."""

import logging
import secrets
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure logging so our INFO messages appear in container logs
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
# Keep noisy libraries at WARNING
logging.getLogger("aiosqlite").setLevel(logging.WARNING)
from fastapi.middleware.cors import CORSMiddleware

from linkvault.config import settings
from linkvault.database import close_db, init_db
from linkvault.routers import sharing, team
from linkvault.services.link_service import purge_expired_links

logger = logging.getLogger(__name__)

DEFAULT_SECRET_SENTINEL = "change-me-to-a-random-string"


def _ensure_secret_key() -> None:
    """Auto-generate a persistent secret key if the operator hasn't set one.

    The key signs list cursors, so it must survive restarts.
    """
    if settings.secret_key != DEFAULT_SECRET_SENTINEL:
        return

    key_file = settings.data_dir / ".secret_key"
    if key_file.exists():
        stored = key_file.read_text().strip()
        if stored:
            settings.secret_key = stored
            logger.info("Loaded auto-generated secret key from %s", key_file)
            return

    new_key = secrets.token_hex(32)
    key_file.write_text(new_key)
    settings.secret_key = new_key
    logger.warning(
        "Generated new secret key (saved to %s). "
        "Set LINKVAULT_SECRET_KEY env var to use your own.",
        key_file,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    _ensure_secret_key()
    await init_db()

    purged = await purge_expired_links()
    if purged:
        logger.info("Startup compaction removed %d expired links", purged)

    if settings.disable_auth:
        logger.warning(
            "Authentication is DISABLED (LINKVAULT_DISABLE_AUTH=true). "
            "Every request acts as member %s.",
            settings.dev_member_id,
        )

    yield
    await close_db()


app = FastAPI(
    title="LinkVault",
    description="Shared link and member quota service",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: localhost defaults plus any extra origins from LINKVAULT_CORS_ORIGINS
_cors_origins = ["http://localhost:5173", "http://localhost:8080"]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sharing.router)
app.include_router(team.router)


# Health check (public, no auth)
@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "0.1.0"}
