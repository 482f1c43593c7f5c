from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session
import logging

from ..db import get_db

router = APIRouter(tags=["health"])

logger = logging.getLogger(__name__)


@router.get("/health")
def health(db: Session = Depends(get_db)):
	try:
		db.execute(text("SELECT 1"))
	except Exception as e:
		logger.warning("Database check failed: %s", e)
		return {"status": "error", "database": "disconnected", "message": "Database unreachable", "error": str(e)}
	return {"status": "ok", "database": "connected", "message": "Server is running"}
