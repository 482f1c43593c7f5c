import logging

from fastapi import FastAPI

from .db import Base, engine, ensure_schema
from .settings import settings
from . import models  # noqa: F401  (registers tables on Base)
from .routers import health
from .routers import personas
from .routers import ibos
from .routers import cards
from .routers import sessions
from .routers import ai
from .routers import export

logging.basicConfig(
	level=getattr(logging, settings.log_level.upper(), logging.INFO),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="IBO Studio API")
app.include_router(health.router, prefix="/api")
app.include_router(personas.router, prefix="/api")
app.include_router(ibos.router, prefix="/api")
app.include_router(cards.router, prefix="/api")
app.include_router(sessions.router, prefix="/api")
app.include_router(ai.router, prefix="/api")
app.include_router(export.router, prefix="/api")


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	# Apply lightweight dev migrations
	try:
		ensure_schema()
	except Exception:
		logger.exception("Schema migration failed")
